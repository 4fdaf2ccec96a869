"""
Sales Pivot — Interactive Dashboard

Run with:  streamlit run app.py
"""

import sys
from pathlib import Path

import streamlit as st
import plotly.graph_objects as go
import plotly.express as px
import pandas as pd

sys.path.insert(0, str(Path(__file__).resolve().parent))

from sales_pivot.config import (
    BUCKETS,
    MEASURE_REGISTRY,
    RAG_COLORS,
    ROW_FIELDS,
    ROW_TOTAL_SORT_KEY,
    SAMPLE_DATA_FILE,
)
from sales_pivot.loaders import load_orders_csv
from sales_pivot.simulator import generate_orders
from sales_pivot.transforms import default_date_window, filter_orders, normalise_orders
from sales_pivot.kpis import (
    get_category_mix,
    get_category_series,
    get_customer_metrics,
    get_orders_revenue_scatter,
    get_pulse_kpis,
    get_trend_series,
    get_yoy_series,
    moving_average,
)
from sales_pivot.pivot import PivotOptions, SortState, parse_dates
from sales_pivot.colors import heat_rgba
from sales_pivot.dashboard import (
    get_available_periods,
    get_cold_customers,
    get_customer_detail,
    get_customer_heatmap,
    get_high_value_orders,
    get_pivot_view,
    get_revenue_by_status,
    search_customers,
)

# ---------------------------------------------------------------------------
# Page config
# ---------------------------------------------------------------------------
st.set_page_config(
    page_title="Sales Pivot Dashboard",
    page_icon="📊",
    layout="wide",
    initial_sidebar_state="expanded",
)


# ---------------------------------------------------------------------------
# Data loading (cached)
# ---------------------------------------------------------------------------
@st.cache_data
def load_all_data() -> pd.DataFrame:
    if SAMPLE_DATA_FILE.exists():
        return load_orders_csv(str(SAMPLE_DATA_FILE))
    return normalise_orders(generate_orders())


orders = load_all_data()


def money(value) -> str:
    return f"${value:,.0f}" if value is not None else "$0"


def format_value(value: float, measure: str) -> str:
    if MEASURE_REGISTRY[measure]["format"] == "currency":
        return money(value)
    return f"{round(value):,}"


# ---------------------------------------------------------------------------
# Sidebar — global filter bar
# ---------------------------------------------------------------------------
st.sidebar.title("Sales Pivot")
st.sidebar.markdown("Revenue & Customer Analytics")
st.sidebar.divider()

dates = parse_dates(orders["invoice_date"])
latest = dates.max().date() if dates.notna().any() else None
default_from, default_to = default_date_window(latest)
date_range = st.sidebar.date_input("Date range", value=(default_from, default_to))
if isinstance(date_range, (list, tuple)) and len(date_range) == 2:
    date_from, date_to = date_range
else:
    date_from, date_to = default_from, default_to

companies = sorted(orders["company"].dropna().unique().tolist())
company = st.sidebar.selectbox("Company", ["All"] + companies)
customer_types = st.sidebar.multiselect(
    "Customer type", sorted(orders["customer_type"].dropna().unique().tolist())
)
categories = st.sidebar.multiselect(
    "Category", sorted(orders["category"].dropna().unique().tolist())
)

filtered = filter_orders(
    orders,
    date_from,
    date_to,
    company=None if company == "All" else company,
    customer_types=customer_types,
    categories=categories,
)

page = st.sidebar.radio(
    "Navigate",
    ["Pulse", "Pivot Grid", "Customer Heatmap", "Trends", "Customers"],
)

st.sidebar.divider()
st.sidebar.caption(f"{len(filtered):,} of {len(orders):,} order lines in range")


# ---------------------------------------------------------------------------
# Helper: KPI card
# ---------------------------------------------------------------------------
def kpi_card(label: str, value: str, caption: str = "", color: str = RAG_COLORS["green"]):
    st.markdown(
        f"""
        <div style="background: linear-gradient(135deg, {color}22, {color}11);
                    border-left: 4px solid {color};
                    border-radius: 8px; padding: 16px; margin-bottom: 8px;">
            <div style="font-size: 13px; color: #888; font-weight: 600; text-transform: uppercase;">{label}</div>
            <div style="font-size: 28px; font-weight: 700; color: #222; margin: 4px 0;">{value}</div>
            <div style="font-size: 13px; color: #666;">{caption}</div>
        </div>
        """,
        unsafe_allow_html=True,
    )


# ===========================================================================
# PAGE: Pulse
# ===========================================================================
if page == "Pulse":
    st.title("Revenue Pulse")
    st.caption(f"Range: **{date_from} — {date_to}**")

    pulse = get_pulse_kpis(filtered, today=date_to)
    compare = pulse["compare"]

    def delta_caption(pct, label: str) -> str:
        return f"{pct:+.1f}% vs {label}" if pct is not None else ""

    cols = st.columns(5)
    with cols[0]:
        kpi_card("Revenue Today", money(pulse["revenue_today"]))
    with cols[1]:
        kpi_card(
            "This Week",
            money(pulse["revenue_week"]),
            delta_caption(compare["revenue_week_delta_pct"], "prev"),
        )
    with cols[2]:
        kpi_card(
            "MTD",
            money(pulse["revenue_mtd"]),
            delta_caption(compare["revenue_mtd_delta_pct"], "last month"),
        )
    with cols[3]:
        kpi_card("Last 30", money(pulse["revenue_last30"]))
    with cols[4]:
        kpi_card("YTD", money(pulse["revenue_ytd"]))

    cols = st.columns(4)
    with cols[0]:
        kpi_card("Orders", f"{pulse['orders']:,}", f"{pulse['units']:,} units")
    with cols[1]:
        kpi_card("AOV", money(pulse["aov"]))
    with cols[2]:
        top = pulse["top_customer"]
        kpi_card(
            "Top Customer",
            top["company"] if top else "N/A",
            money(top["revenue"]) if top else "",
        )
    with cols[3]:
        top = pulse["top_category"]
        kpi_card(
            "Top Category",
            top["category"] if top else "N/A",
            money(top["revenue"]) if top else "",
        )

    st.divider()

    col1, col2 = st.columns([2, 1])
    with col1:
        st.subheader("High-Value Orders")
        high_value = get_high_value_orders(filtered)
        if high_value.empty:
            st.info("No orders for selected range.")
        else:
            st.dataframe(high_value, use_container_width=True, hide_index=True)
    with col2:
        st.subheader("Category Mix")
        mix = get_category_mix(filtered)
        if mix.empty:
            st.info("No data")
        else:
            fig = px.pie(mix.head(5), names="category", values="revenue", hole=0.5)
            fig.update_layout(height=350, margin=dict(l=10, r=10, t=10, b=10))
            st.plotly_chart(fig, use_container_width=True)

    st.subheader("Revenue by Order Status")
    by_status = get_revenue_by_status(filtered)
    if by_status.empty:
        st.info("No data")
    else:
        fig = px.bar(by_status, x="period", y="revenue", color="order_status", barmode="stack")
        fig.update_layout(
            height=350,
            yaxis_title="USD",
            plot_bgcolor="rgba(0,0,0,0)",
            margin=dict(l=10, r=10, t=10, b=40),
        )
        st.plotly_chart(fig, use_container_width=True)


# ===========================================================================
# PAGE: Pivot Grid
# ===========================================================================
elif page == "Pivot Grid":
    st.title("Revenue Pivot")

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        row_field = st.selectbox("Rows", list(ROW_FIELDS))
    with col2:
        bucket = st.selectbox("Bucket", list(BUCKETS), index=list(BUCKETS).index("month"))
    with col3:
        measure = st.radio(
            "Measure",
            list(MEASURE_REGISTRY),
            format_func=lambda m: MEASURE_REGISTRY[m]["label"],
            horizontal=True,
        )

    options = PivotOptions(row_field=row_field, bucket=bucket, measure=measure)

    # Repeated selection of the same sort key flips the direction
    if "pivot_sort" not in st.session_state:
        st.session_state["pivot_sort"] = SortState()

    sort_keys = [ROW_TOTAL_SORT_KEY] + get_available_periods(filtered, bucket)
    with col4:
        sort_key = st.selectbox("Sort by", sort_keys)
        if st.button("Sort"):
            st.session_state["pivot_sort"] = st.session_state["pivot_sort"].toggle(sort_key)

    sort = st.session_state["pivot_sort"]
    if sort.key not in sort_keys:
        sort = SortState()
        st.session_state["pivot_sort"] = sort

    view = get_pivot_view(filtered, options, sort)
    result = view["result"]
    display_rows = view["rows"]

    if view["skipped"]:
        st.warning(f"{view['skipped']} order lines skipped: unreadable invoice date.")

    if view["empty"]:
        st.info("No data for the selected filters.")
    else:
        st.caption(
            f"Sorted by **{sort.key}** ({'desc' if sort.descending else 'asc'}) · "
            f"Grand total: **{format_value(result.grand_total, measure)}**"
        )
        table = result.grid.loc[display_rows].copy()
        table["Total"] = result.row_totals.loc[display_rows]
        styles = view["styles"].loc[display_rows].copy()
        styles["Total"] = "font-weight: 700"

        styled = table.style.apply(lambda _: styles, axis=None).format(
            lambda v: format_value(v, measure)
        )
        st.dataframe(styled, use_container_width=True)

        totals = result.column_totals.copy()
        totals["Total"] = result.grand_total
        st.markdown("**Column totals**")
        st.dataframe(
            totals.to_frame("Total").T.style.format(lambda v: format_value(v, measure)),
            use_container_width=True,
        )


# ===========================================================================
# PAGE: Customer Heatmap
# ===========================================================================
elif page == "Customer Heatmap":
    st.title("Customer Seasonality")

    heatmap = get_customer_heatmap(filtered)

    if heatmap["empty"]:
        st.info("No customer data available.")
    else:
        rows = heatmap["rows"]
        months = heatmap["months"]

        table = pd.DataFrame(
            rows["monthly"].tolist(), columns=months, index=rows["company"]
        )
        styles = pd.DataFrame(
            [
                [
                    f"background-color: {heat_rgba(v, heatmap['col_min'][i], heatmap['col_max'][i])}"
                    for i, v in enumerate(monthly)
                ]
                for monthly in rows["monthly"]
            ],
            columns=months,
            index=rows["company"],
        )
        table["Orders"] = rows["orders"].to_numpy()
        table["Units"] = rows["units"].to_numpy()
        styles["Orders"] = ""
        styles["Units"] = ""

        st.dataframe(
            table.style.apply(lambda _: styles, axis=None).format(money, subset=months),
            use_container_width=True,
        )

        fig = go.Figure(go.Heatmap(
            z=table[months].to_numpy(),
            x=months,
            y=table.index,
            colorscale=[[0, RAG_COLORS["red"]], [0.5, RAG_COLORS["amber"]], [1, RAG_COLORS["green"]]],
        ))
        fig.update_layout(height=max(300, 28 * len(table)), margin=dict(l=10, r=10, t=10, b=40))
        st.plotly_chart(fig, use_container_width=True)


# ===========================================================================
# PAGE: Trends
# ===========================================================================
elif page == "Trends":
    st.title("Revenue Trend")

    col1, col2, col3 = st.columns([2, 1, 1])
    with col1:
        bucket = st.radio("Bucket", list(BUCKETS), horizontal=True)
    with col2:
        show_ma = st.toggle("7-pt moving avg", value=True)
    with col3:
        show_yoy = st.toggle("YoY")

    trend = get_trend_series(filtered, bucket)

    if trend.empty:
        st.warning("No trend data available.")
    else:
        fig = go.Figure()
        fig.add_trace(go.Bar(
            x=trend["period"],
            y=trend["revenue"],
            name="Revenue",
            marker_color="#3498db",
        ))
        if show_ma:
            fig.add_trace(go.Scatter(
                x=trend["period"],
                y=moving_average(trend["revenue"]),
                name="7-pt moving avg",
                mode="lines",
                line=dict(color="#e74c3c", width=2, dash="dash"),
            ))
        if show_yoy:
            # prior-year lines sit outside the date window, so only the
            # dimension filters apply here
            scoped = filter_orders(
                orders,
                company=None if company == "All" else company,
                customer_types=customer_types,
                categories=categories,
            )
            yoy = get_yoy_series(scoped, date_from, date_to, bucket)
            fig.add_trace(go.Scatter(
                x=yoy["period"],
                y=yoy["prior_revenue"],
                name="Prior year",
                mode="lines+markers",
                line=dict(color="#95a5a6", width=2),
                customdata=yoy[["prior_period", "yoy_pct"]].to_numpy(),
                hovertemplate="%{customdata[0]}: $%{y:,.0f} (%{customdata[1]:+.1f}%)<extra></extra>",
            ))
        fig.update_layout(
            height=420,
            yaxis_title="USD",
            plot_bgcolor="rgba(0,0,0,0)",
            margin=dict(l=10, r=10, t=10, b=40),
        )
        st.plotly_chart(fig, use_container_width=True)

        col1, col2 = st.columns(2)
        with col1:
            st.subheader("Orders")
            st.plotly_chart(px.line(trend, x="period", y="orders", markers=True), use_container_width=True)
        with col2:
            st.subheader("Average Order Value")
            st.plotly_chart(px.line(trend, x="period", y="aov", markers=True), use_container_width=True)

        col1, col2 = st.columns(2)
        with col1:
            st.subheader("Category Stacked (share)")
            stacked = get_category_series(filtered, "month")
            shares = stacked["shares"]
            fig = go.Figure([
                go.Bar(x=stacked["periods"], y=shares.loc[s["name"]] * 100, name=s["name"])
                for s in stacked["series"]
            ])
            fig.update_layout(
                barmode="stack",
                height=380,
                yaxis_title="% of revenue",
                margin=dict(l=10, r=10, t=10, b=40),
            )
            st.plotly_chart(fig, use_container_width=True)
        with col2:
            st.subheader("Orders vs Revenue")
            scatter = get_orders_revenue_scatter(filtered)
            fig = px.scatter(scatter, x="orders", y="revenue", hover_name="date")
            fig.update_layout(height=380, yaxis_title="USD", margin=dict(l=10, r=10, t=10, b=40))
            st.plotly_chart(fig, use_container_width=True)


# ===========================================================================
# PAGE: Customers
# ===========================================================================
elif page == "Customers":
    st.title("Customers")

    metrics = get_customer_metrics(filtered)
    query = st.text_input("Search company...")
    matches = search_customers(metrics, query)

    if matches.empty:
        st.info("No customers for selected range.")
    else:
        st.dataframe(
            matches.drop(columns=["categories"]),
            use_container_width=True,
            hide_index=True,
        )

        selected = st.selectbox("Customer detail", matches["company"].tolist())
        detail = get_customer_detail(orders, selected)
        header = detail["header"]

        cols = st.columns(3)
        with cols[0]:
            kpi_card("Lifetime Revenue", money(header["lifetime_revenue"]), header["customer_type"] or "")
        with cols[1]:
            kpi_card("Lifetime Orders", f"{header['lifetime_orders']:,}")
        with cols[2]:
            kpi_card("AOV", money(header["aov"]))

        col1, col2 = st.columns([2, 1])
        with col1:
            monthly = detail["monthly"]
            if not monthly.empty:
                st.plotly_chart(px.bar(monthly, x="period", y="revenue"), use_container_width=True)
            st.dataframe(detail["orders"], use_container_width=True, hide_index=True)
        with col2:
            mix = detail["mix"]
            if not mix.empty:
                st.plotly_chart(px.pie(mix, names="category", values="revenue", hole=0.5), use_container_width=True)

    st.divider()
    st.subheader("Cold Customers")
    cold = get_cold_customers(orders, today=date_to)
    if cold.empty:
        st.success("Every customer has ordered in the last 30 days.")
    else:
        st.dataframe(cold, use_container_width=True, hide_index=True)
