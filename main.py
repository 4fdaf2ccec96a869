"""
Sales Pivot — End-to-end analytics pipeline.

Runs the full data pipeline from order lines to dashboard-ready outputs
and prints smoke-test summaries.

Usage:
    python main.py [orders.csv|orders.xlsx]
"""

import logging
import sys
from pathlib import Path

import pandas as pd

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent))

from sales_pivot.config import MEASURE_REGISTRY, SAMPLE_DATA_FILE
from sales_pivot.loaders import load_orders_csv, load_orders_excel
from sales_pivot.simulator import generate_orders
from sales_pivot.transforms import filter_orders, normalise_orders
from sales_pivot.kpis import get_customer_metrics, get_pulse_kpis, get_trend_series, get_yoy_series
from sales_pivot.pivot import PivotOptions, SortState, compute_pivot, parse_dates
from sales_pivot.dashboard import (
    get_cold_customers,
    get_customer_heatmap,
    get_high_value_orders,
    get_pivot_view,
    get_revenue_by_status,
)

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def load_orders(path: Path | None) -> pd.DataFrame:
    """Load an order export, or fall back to simulated orders."""
    if path is not None and path.exists():
        if path.suffix.lower() in (".xlsx", ".xlsm"):
            return load_orders_excel(str(path))
        return load_orders_csv(str(path))
    logger.info("No order export found — using simulated orders")
    return normalise_orders(generate_orders())


def main() -> None:
    """Run the full analytics pipeline and print smoke-test outputs."""

    print("=" * 70)
    print("  SALES PIVOT — Revenue & Customer Analytics")
    print("  Analytics Pipeline Smoke Test")
    print("=" * 70)
    print()

    # ------------------------------------------------------------------
    # 1. Load source data
    # ------------------------------------------------------------------
    print("[ 1 ] LOADING ORDER LINES")
    print("-" * 40)

    source = Path(sys.argv[1]) if len(sys.argv) > 1 else SAMPLE_DATA_FILE
    orders = load_orders(source)
    print(f"\nOrder lines: {len(orders)} rows loaded")
    print(orders.head().to_string(index=False))

    dates = parse_dates(orders["invoice_date"])
    window_to = dates.max().date()
    window_from = (dates.max() - pd.DateOffset(months=3)).date()
    filtered = filter_orders(orders, window_from, window_to)
    print(f"\nFiltered to {window_from} .. {window_to}: {len(filtered)} rows")

    # ------------------------------------------------------------------
    # 2. KPIs
    # ------------------------------------------------------------------
    print("\n")
    print("[ 2 ] PULSE KPIs")
    print("-" * 40)

    pulse = get_pulse_kpis(filtered, today=window_to)
    for name, value in pulse.items():
        print(f"  {name:14s} | {value}")

    metrics = get_customer_metrics(filtered)
    print(f"\nCustomer metrics: {len(metrics)} companies")
    if not metrics.empty:
        print(metrics[["company", "revenue", "orders", "units", "aov"]].to_string(index=False))

    trend = get_trend_series(filtered, "week")
    print(f"\nWeekly trend: {len(trend)} buckets")
    if not trend.empty:
        print(trend.head(10).to_string(index=False))

    yoy = get_yoy_series(orders, window_from, window_to, "month")
    print(f"\nYear over year: {len(yoy)} months")
    if not yoy.empty:
        print(yoy.to_string(index=False))

    # ------------------------------------------------------------------
    # 3. Pivot outputs
    # ------------------------------------------------------------------
    print("\n")
    print("[ 3 ] PIVOT OUTPUTS")
    print("-" * 40)

    for measure, meta in MEASURE_REGISTRY.items():
        view = get_pivot_view(filtered, PivotOptions("company", "month", measure), SortState())
        result = view["result"]
        print(f"\n{meta['label']} by company x month (grand total {result.grand_total:,.2f}):")
        if view["empty"]:
            print("  No data")
        else:
            print(result.grid.loc[view["rows"]].round(2).to_string())

    heatmap = get_customer_heatmap(filtered)
    print(f"\nCustomer heatmap: {len(heatmap['rows'])} rows x {len(heatmap['months'])} months")

    print("\nRevenue by order status:")
    print(get_revenue_by_status(filtered).to_string(index=False))

    print("\nHigh-value orders:")
    print(get_high_value_orders(filtered, limit=5).to_string(index=False))

    print("\nCold customers (no order in 30 days):")
    cold = get_cold_customers(orders, today=window_to)
    print(cold.to_string(index=False) if not cold.empty else "  None")

    # ------------------------------------------------------------------
    # 4. Acceptance criteria verification
    # ------------------------------------------------------------------
    print("\n")
    print("[ 4 ] ACCEPTANCE CRITERIA CHECKS")
    print("-" * 40)

    revenue = compute_pivot(filtered, PivotOptions(measure="revenue"))
    expected = filtered["total_price"].sum()
    check1 = abs(revenue.grand_total - expected) < 0.01
    print(f"\n  [{'PASS' if check1 else 'FAIL'}] Grand total {revenue.grand_total:,.2f} equals line revenue {expected:,.2f}")

    order_pivot = compute_pivot(filtered, PivotOptions(measure="orders"))
    check2 = order_pivot.grand_total <= len(filtered)
    print(f"  [{'PASS' if check2 else 'FAIL'}] Distinct orders {order_pivot.grand_total:,.0f} <= line items {len(filtered)}")

    dense = revenue.grid.notna().all().all()
    print(f"  [{'PASS' if dense else 'FAIL'}] Grid is dense ({len(revenue.row_keys)} x {len(revenue.column_keys)})")

    print("\n" + "=" * 70)
    print("  Pipeline complete.")
    print("=" * 70)


if __name__ == "__main__":
    main()
