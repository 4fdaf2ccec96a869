"""
Data transforms: normalise, filter and roll up order-line tables before
they are handed to the pivot engine and KPI functions.
"""

import logging
from datetime import date
from typing import Iterable, Mapping

import pandas as pd

from .config import DEFAULT_LOOKBACK_MONTHS, NUMERIC_COLUMNS, ORDER_COLUMNS
from .pivot import parse_dates

logger = logging.getLogger(__name__)


def normalise_orders(orders: pd.DataFrame | Iterable[Mapping]) -> pd.DataFrame:
    """Return an order table with the columns of config.ORDER_COLUMNS.

    Missing optional columns are added as None. qty, unit_price and
    total_price are coerced to numbers, with unreadable values as 0.
    The input is never modified.
    """
    if isinstance(orders, pd.DataFrame):
        df = orders.copy()
    else:
        df = pd.DataFrame(list(orders))

    for col in ORDER_COLUMNS:
        if col not in df.columns:
            df[col] = None

    for col in NUMERIC_COLUMNS:
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0)

    return df[ORDER_COLUMNS].reset_index(drop=True)


def default_date_window(today: date | None = None) -> tuple[date, date]:
    """Dashboard default range: the last three months up to today."""
    end = pd.Timestamp(today) if today is not None else pd.Timestamp.today()
    start = end - pd.DateOffset(months=DEFAULT_LOOKBACK_MONTHS)
    return start.date(), end.date()


def filter_orders(
    orders: pd.DataFrame,
    date_from: date | str | None = None,
    date_to: date | str | None = None,
    company: str | None = None,
    customer_types: list[str] | None = None,
    categories: list[str] | None = None,
) -> pd.DataFrame:
    """Apply the dashboard filter bar to an order table.

    Date bounds are inclusive whole days. Lines whose invoice_date cannot be
    parsed are dropped when a date bound is given. Empty dimension filters
    mean "all".

    Returns
    -------
    Filtered copy with a fresh index.
    """
    if orders.empty:
        return orders.copy()

    mask = pd.Series(True, index=orders.index)

    if date_from is not None or date_to is not None:
        days = parse_dates(orders["invoice_date"]).dt.normalize()
        unparseable = int(days.isna().sum())
        if unparseable:
            logger.warning("Dropped %d order lines with unparseable invoice_date", unparseable)
        mask &= days.notna()
        if date_from is not None:
            mask &= days >= pd.Timestamp(date_from)
        if date_to is not None:
            mask &= days <= pd.Timestamp(date_to)

    if company:
        mask &= orders["company"] == company
    if customer_types:
        mask &= orders["customer_type"].isin(customer_types)
    if categories:
        mask &= orders["category"].isin(categories)

    result = orders.loc[mask].reset_index(drop=True)
    logger.info("Filtered orders: %d of %d lines kept", len(result), len(orders))
    return result


def build_order_summary(orders: pd.DataFrame) -> pd.DataFrame:
    """Roll order lines up to one row per order.

    Returns
    -------
    DataFrame with columns:
        order_id, order_date, company, customer_type, order_total, units,
        top_categories
    sorted by order_date descending. top_categories lists the order's
    categories by revenue, largest first.
    """
    columns = [
        "order_id", "order_date", "company", "customer_type",
        "order_total", "units", "top_categories",
    ]
    if orders.empty:
        return pd.DataFrame(columns=columns)

    df = orders.copy()
    df["order_date"] = parse_dates(df["invoice_date"])

    category_revenue = (
        df.groupby(["order_id", "category"], sort=False)["total_price"].sum()
        .reset_index()
        .sort_values(["order_id", "total_price"], ascending=[True, False], kind="stable")
    )
    top_categories = category_revenue.groupby("order_id", sort=False)["category"].agg(list)

    summary = df.groupby("order_id", sort=False).agg(
        order_date=("order_date", "min"),
        company=("company", "first"),
        customer_type=("customer_type", "first"),
        order_total=("total_price", "sum"),
        units=("qty", "sum"),
    )
    summary["top_categories"] = top_categories
    summary = summary.reset_index().sort_values("order_date", ascending=False, kind="stable")

    logger.info("Built order summary with %d orders", len(summary))
    return summary[columns].reset_index(drop=True)
