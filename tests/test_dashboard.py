from datetime import date

import pandas as pd

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
from sales_pivot.kpis import get_customer_metrics
from sales_pivot.pivot import PivotOptions, SortState


def test_pivot_view(mixed_orders):
    view = get_pivot_view(mixed_orders, PivotOptions("company", "month", "revenue"))

    assert view["rows"] == ["Globex", "Acme"]
    assert not view["empty"]
    assert view["skipped"] == 0
    assert view["styles"].shape == view["result"].grid.shape


def test_pivot_view_sorted_ascending(mixed_orders):
    view = get_pivot_view(mixed_orders, sort=SortState(descending=False))

    assert view["rows"] == ["Acme", "Globex"]


def test_pivot_view_no_data():
    view = get_pivot_view(pd.DataFrame())

    assert view["empty"]
    assert view["rows"] == []
    assert view["result"].value_range == (0.0, 0.0)


def test_customer_heatmap(mixed_orders):
    heatmap = get_customer_heatmap(mixed_orders)
    rows = heatmap["rows"]

    assert heatmap["months"] == ["2025-03", "2025-04"]
    assert rows["company"].tolist() == ["Globex", "Acme"]
    assert rows.iloc[0]["monthly"] == [0.0, 600.0]
    assert rows.iloc[1]["monthly"] == [150.0, 30.0]
    assert rows.iloc[1]["orders"] == 3
    assert rows.iloc[1]["units"] == 18
    assert rows.iloc[0]["customer_type"] == "Retail"
    assert heatmap["col_min"] == [0.0, 30.0]
    assert heatmap["col_max"] == [150.0, 600.0]


def test_customer_heatmap_counts_exclude_undated_lines(mixed_orders, make_line):
    orders = pd.concat(
        [mixed_orders, pd.DataFrame([make_line(order_id="A9", invoice_date="n/a", qty=99)])],
        ignore_index=True,
    )
    acme = get_customer_heatmap(orders)["rows"].set_index("company").loc["Acme"]

    assert acme["total"] == 180.0
    assert acme["orders"] == 3
    assert acme["units"] == 18


def test_customer_heatmap_empty():
    heatmap = get_customer_heatmap(pd.DataFrame())

    assert heatmap["empty"]
    assert heatmap["rows"].empty


def test_customer_detail(mixed_orders):
    detail = get_customer_detail(mixed_orders, "Acme")

    assert detail["header"]["lifetime_revenue"] == 180.0
    assert detail["header"]["lifetime_orders"] == 3
    assert detail["header"]["aov"] == 60.0
    assert detail["orders"]["order_id"].tolist() == ["A3", "A2", "A1"]
    assert detail["monthly"]["period"].tolist() == ["2025-03", "2025-04"]


def test_customer_detail_unknown_company(mixed_orders):
    detail = get_customer_detail(mixed_orders, "Nobody Ltd")

    assert detail["header"]["lifetime_revenue"] == 0.0
    assert detail["header"]["aov"] == 0.0
    assert detail["orders"].empty
    assert detail["monthly"].empty
    assert detail["mix"].empty


def test_cold_customers(mixed_orders):
    cold = get_cold_customers(mixed_orders, today=date(2025, 5, 5), days=30)

    assert cold["company"].tolist() == ["Acme"]
    assert cold.iloc[0]["days_since_order"] == 33
    assert cold.iloc[0]["last_order_value"] == 30.0


def test_high_value_orders(mixed_orders):
    top = get_high_value_orders(mixed_orders, limit=2)

    assert top["order_id"].tolist() == ["G1", "A1"]


def test_search_customers(mixed_orders):
    metrics = get_customer_metrics(mixed_orders)

    assert search_customers(metrics, "glob")["company"].tolist() == ["Globex"]
    assert len(search_customers(metrics, "")) == 2
    assert search_customers(metrics, "zzz").empty


def test_available_periods_match_pivot_columns(mixed_orders):
    assert get_available_periods(mixed_orders) == ["2025-03", "2025-04"]
    assert get_available_periods(mixed_orders, "week") == get_pivot_view(
        mixed_orders, PivotOptions(bucket="week")
    )["result"].column_keys
    assert get_available_periods(pd.DataFrame()) == []


def test_revenue_by_status(mixed_orders, make_line):
    orders = pd.concat(
        [
            mixed_orders,
            pd.DataFrame([
                make_line(order_id="A4", invoice_date="2025-04-20", total_price=70.0, order_status="Shipped"),
                make_line(order_id="A5", invoice_date="2025-04-21", total_price=5.0, order_status=None),
                make_line(order_id="A6", invoice_date="bad", total_price=999.0),
            ]),
        ],
        ignore_index=True,
    )
    by_status = get_revenue_by_status(orders)

    assert list(by_status.columns) == ["period", "order_status", "revenue"]
    assert by_status.values.tolist() == [
        ["2025-03", "Completed", 150.0],
        ["2025-04", "(blank)", 5.0],
        ["2025-04", "Completed", 630.0],
        ["2025-04", "Shipped", 70.0],
    ]


def test_revenue_by_status_empty():
    assert get_revenue_by_status(pd.DataFrame()).empty
