"""
Dashboard-ready output functions.

These are the primary entry points for the Streamlit front end.
Each function returns plain dicts or DataFrames suitable for rendering
cards, heatmaps, pivot grids, and tables.
"""

import logging
from datetime import date

import pandas as pd

from .config import COLD_CUSTOMER_DAYS
from .colors import style_grid
from .kpis import calc_aov, get_category_mix, get_trend_series
from .pivot import (
    BLANK_ROW_KEY,
    PivotOptions,
    SortState,
    bucket_dates,
    compute_pivot,
    parse_dates,
    sort_rows,
)
from .transforms import build_order_summary

logger = logging.getLogger(__name__)


def get_pivot_view(
    orders: pd.DataFrame,
    options: PivotOptions | None = None,
    sort: SortState | None = None,
) -> dict:
    """Single entry point for the pivot grid widget.

    Returns
    -------
    Dict with structure:
    {
        "result": PivotResult,
        "rows": [...],            # row keys in display order
        "styles": DataFrame,      # CSS background per cell
        "empty": bool,            # render the "no data" state
        "skipped": int,
    }
    """
    result = compute_pivot(orders, options)
    if result.empty:
        logger.warning("Pivot has no data for the current filters")

    return {
        "result": result,
        "rows": sort_rows(result, sort) if not result.empty else [],
        "styles": style_grid(result),
        "empty": result.empty,
        "skipped": result.skipped,
    }


def get_customer_heatmap(orders: pd.DataFrame) -> dict:
    """Customer-by-month revenue heatmap.

    Returns
    -------
    Dict with structure:
    {
        "months": ["2025-01", ...],
        "rows": DataFrame(company, customer_type, monthly, total, orders, units),
        "col_min": [...], "col_max": [...],   # per-month colour bounds
        "empty": bool,
    }
    Rows are ordered by total revenue descending.
    """
    result = compute_pivot(orders, PivotOptions("company", "month", "revenue"))
    row_columns = ["company", "customer_type", "monthly", "total", "orders", "units"]

    if result.empty:
        return {
            "months": [],
            "rows": pd.DataFrame(columns=row_columns),
            "col_min": [],
            "col_max": [],
            "empty": True,
        }

    # counts over the same lines the pivot kept
    dated = orders.loc[parse_dates(orders["invoice_date"]).notna()]
    companies = dated["company"].fillna(BLANK_ROW_KEY).astype(str)
    per_company = dated.groupby(companies, sort=False).agg(
        customer_type=("customer_type", "first"),
        orders=("order_id", "nunique"),
        units=("qty", "sum"),
    )

    rows = []
    for company in sort_rows(result):
        rows.append({
            "company": company,
            "customer_type": per_company.at[company, "customer_type"],
            "monthly": result.grid.loc[company].tolist(),
            "total": result.row_total(company),
            "orders": int(per_company.at[company, "orders"]),
            "units": float(per_company.at[company, "units"]),
        })

    return {
        "months": result.column_keys,
        "rows": pd.DataFrame(rows, columns=row_columns),
        "col_min": result.grid.min(axis=0).tolist(),
        "col_max": result.grid.max(axis=0).tolist(),
        "empty": False,
    }


def get_customer_detail(orders: pd.DataFrame, company: str) -> dict:
    """Drill-down for one customer.

    Returns
    -------
    Dict with structure:
    {
        "header": {"company", "customer_type", "lifetime_revenue",
                   "lifetime_orders", "aov"},
        "orders": DataFrame from build_order_summary(),
        "monthly": DataFrame(period, revenue, orders, units, aov),
        "mix": DataFrame(category, revenue, share),
    }
    An unknown company yields a zeroed header and empty tables.
    """
    df = orders[orders["company"] == company] if not orders.empty else orders

    if df.empty:
        logger.warning("No orders for company '%s'", company)

    revenue = float(df["total_price"].sum()) if not df.empty else 0.0
    n_orders = int(df["order_id"].nunique()) if not df.empty else 0
    customer_type = df["customer_type"].iloc[0] if not df.empty else None

    return {
        "header": {
            "company": company,
            "customer_type": customer_type,
            "lifetime_revenue": revenue,
            "lifetime_orders": n_orders,
            "aov": calc_aov(revenue, n_orders),
        },
        "orders": build_order_summary(df),
        "monthly": get_trend_series(df, "month"),
        "mix": get_category_mix(df),
    }


def get_cold_customers(
    orders: pd.DataFrame,
    today: date | None = None,
    days: int = COLD_CUSTOMER_DAYS,
) -> pd.DataFrame:
    """Customers with no order in the last ``days`` days.

    Returns
    -------
    DataFrame with columns:
        company, customer_type, last_order_date, last_order_value,
        days_since_order, avg_orders_per_month
    sorted by last_order_date ascending (coldest first).
    """
    columns = [
        "company", "customer_type", "last_order_date", "last_order_value",
        "days_since_order", "avg_orders_per_month",
    ]
    summary = build_order_summary(orders)
    summary = summary.dropna(subset=["order_date"]) if not summary.empty else summary
    if summary.empty:
        return pd.DataFrame(columns=columns)

    today_ts = pd.Timestamp(today if today is not None else date.today()).normalize()

    rows = []
    for company, group in summary.groupby("company", sort=False):
        last = group.sort_values("order_date", kind="stable").iloc[-1]
        idle_days = (today_ts - last["order_date"].normalize()).days
        if idle_days <= days:
            continue
        span_months = max(
            1,
            (group["order_date"].max().to_period("M") - group["order_date"].min().to_period("M")).n + 1,
        )
        rows.append({
            "company": company,
            "customer_type": last["customer_type"],
            "last_order_date": last["order_date"],
            "last_order_value": float(last["order_total"]),
            "days_since_order": int(idle_days),
            "avg_orders_per_month": round(len(group) / span_months, 2),
        })

    cold = pd.DataFrame(rows, columns=columns)
    return cold.sort_values("last_order_date", kind="stable").reset_index(drop=True)


def get_high_value_orders(orders: pd.DataFrame, limit: int = 10) -> pd.DataFrame:
    """Largest orders by order total."""
    summary = build_order_summary(orders)
    if summary.empty:
        return summary
    return (
        summary.sort_values("order_total", ascending=False, kind="stable")
        .head(limit)
        .reset_index(drop=True)
    )


def search_customers(metrics: pd.DataFrame, query: str) -> pd.DataFrame:
    """Case-insensitive company-name search over get_customer_metrics() output."""
    if metrics.empty or not query:
        return metrics
    mask = metrics["company"].str.lower().str.contains(query.strip().lower(), regex=False)
    return metrics[mask].reset_index(drop=True)


def get_revenue_by_status(orders: pd.DataFrame, bucket: str = "month") -> pd.DataFrame:
    """Revenue per period and order status.

    Returns
    -------
    DataFrame with columns: period, order_status, revenue
    sorted by period, then status. Lines with unparseable dates are left
    out and a missing status reads as "(blank)".
    """
    columns = ["period", "order_status", "revenue"]
    if orders.empty:
        return pd.DataFrame(columns=columns)

    dates = parse_dates(orders["invoice_date"])
    valid = dates.notna()
    df = orders.loc[valid]
    if df.empty:
        return pd.DataFrame(columns=columns)

    by_status = (
        pd.DataFrame({
            "period": bucket_dates(dates.loc[valid], bucket),
            "order_status": df["order_status"].fillna(BLANK_ROW_KEY).astype(str),
            "revenue": pd.to_numeric(df["total_price"], errors="coerce").fillna(0.0),
        })
        .groupby(["period", "order_status"], sort=True)["revenue"].sum()
        .reset_index()
    )
    logger.info("Built revenue by status: %d period/status rows", len(by_status))
    return by_status[columns]


def get_available_periods(orders: pd.DataFrame, bucket: str = "month") -> list[str]:
    """Return sorted bucket labels present in the data for UI dropdowns.

    These match the column keys compute_pivot() produces for ``bucket``.
    """
    if orders.empty:
        return []
    dates = parse_dates(orders["invoice_date"]).dropna()
    if dates.empty:
        return []
    return sorted(bucket_dates(dates, bucket).unique().tolist())
