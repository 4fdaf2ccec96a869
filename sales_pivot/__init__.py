"""
Sales Pivot — revenue and customer analytics dashboard

Analytics backend turning order-line exports into pivot grids, customer
heatmaps and revenue pulse cards.

To swap CSV/Excel inputs for a database feed:
    Replace loader functions in sales_pivot.loaders with SQL queries
    against the order-line table. The order-table schema
    (config.ORDER_COLUMNS) remains unchanged.

To connect to Streamlit/Dash:
    Call dashboard.get_pivot_view(orders, options, sort) to get a plain dict
    with the pivot grid, display row order and cell colours, or
    dashboard.get_customer_heatmap(orders) for the customer-by-month view.

To add new pivot measures:
    Add an entry to config.MEASURE_REGISTRY and a branch in
    pivot._measure_values computing it from the accumulated revenue,
    distinct order and unit columns.
"""
