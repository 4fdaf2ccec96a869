"""
KPI computation functions — pure functions with no side effects.

Provides the guarded average-order-value calculation, the revenue pulse
cards with period-over-period deltas, per-customer metrics, trend series
(moving average, year over year, category stack, orders vs revenue) and
category mix.
"""

import logging
from datetime import date

import pandas as pd

from .config import TREND_MOVING_AVERAGE_WINDOW
from .pivot import PivotOptions, bucket_dates, compute_pivot, parse_dates, sort_rows
from .transforms import filter_orders

logger = logging.getLogger(__name__)


def calc_aov(revenue: float, orders: int) -> float:
    """Return revenue per order, or 0.0 when there are no orders."""
    if not orders:
        return 0.0
    return revenue / orders


def _top_by_revenue(df: pd.DataFrame, column: str) -> dict | None:
    if df.empty:
        return None
    revenue = df.groupby(column, sort=False)["total_price"].sum()
    revenue = revenue.sort_values(ascending=False, kind="stable")
    return {column: revenue.index[0], "revenue": float(revenue.iloc[0])}


def calc_delta_pct(current: float, previous: float) -> float | None:
    """Percentage change from ``previous`` to ``current``.

    Returns None when there is no previous value to compare against.
    """
    if not previous:
        return None
    return (current - previous) / abs(previous) * 100


def get_pulse_kpis(orders: pd.DataFrame, today: date | None = None) -> dict:
    """Return a dict suitable for the top-level revenue pulse cards.

    Parameters
    ----------
    orders : Filtered order table.
    today : Reference day. Defaults to the current date.

    Returns
    -------
    Dict with structure:
    {
        "revenue_today": ..., "revenue_week": ..., "revenue_mtd": ...,
        "revenue_last30": ..., "revenue_ytd": ..., "orders": ...,
        "units": ..., "aov": ...,
        "top_customer": {"company": ..., "revenue": ...} or None,
        "top_category": {"category": ..., "revenue": ...} or None,
        "compare": {"revenue_week_delta_pct": ..., "revenue_mtd_delta_pct": ...},
    }
    revenue_week covers the seven days before today plus today, and
    revenue_last30 the thirty days before today plus today. The week delta
    compares against the eight days before that window; the MTD delta
    against the same span of the previous month. Deltas are percentages,
    None when the earlier window has no revenue. Comparison windows only
    see lines present in ``orders``.
    """
    today_ts = pd.Timestamp(today if today is not None else date.today()).normalize()

    if orders.empty:
        logger.warning("Empty order table — returning zero pulse KPIs")
        return {
            "revenue_today": 0.0,
            "revenue_week": 0.0,
            "revenue_mtd": 0.0,
            "revenue_last30": 0.0,
            "revenue_ytd": 0.0,
            "orders": 0,
            "units": 0,
            "aov": 0.0,
            "top_customer": None,
            "top_category": None,
            "compare": {"revenue_week_delta_pct": None, "revenue_mtd_delta_pct": None},
        }

    days = parse_dates(orders["invoice_date"]).dt.normalize()
    revenue = orders["total_price"]

    def revenue_between(start: pd.Timestamp, end: pd.Timestamp) -> float:
        return float(revenue[(days >= start) & (days <= end)].sum())

    week_start = today_ts - pd.Timedelta(days=7)
    month_start = today_ts.replace(day=1)
    # same day last month, clipped to that month's last day
    last_month_end = today_ts - pd.DateOffset(months=1)

    revenue_week = revenue_between(week_start, today_ts)
    revenue_mtd = revenue_between(month_start, today_ts)
    previous_week = revenue_between(week_start - pd.Timedelta(days=8), week_start - pd.Timedelta(days=1))
    previous_mtd = revenue_between(last_month_end.replace(day=1), last_month_end)

    total_revenue = float(revenue.sum())
    total_orders = int(orders["order_id"].nunique())

    return {
        "revenue_today": float(revenue[days == today_ts].sum()),
        "revenue_week": revenue_week,
        "revenue_mtd": revenue_mtd,
        "revenue_last30": revenue_between(today_ts - pd.Timedelta(days=30), today_ts),
        "revenue_ytd": revenue_between(today_ts.replace(month=1, day=1), today_ts),
        "orders": total_orders,
        "units": int(orders["qty"].sum()),
        "aov": calc_aov(total_revenue, total_orders),
        "top_customer": _top_by_revenue(orders, "company"),
        "top_category": _top_by_revenue(orders, "category"),
        "compare": {
            "revenue_week_delta_pct": calc_delta_pct(revenue_week, previous_week),
            "revenue_mtd_delta_pct": calc_delta_pct(revenue_mtd, previous_mtd),
        },
    }


def get_customer_metrics(orders: pd.DataFrame) -> pd.DataFrame:
    """One row per company, sorted by revenue descending.

    Returns
    -------
    DataFrame with columns:
        company, customer_type, revenue, orders, units, aov,
        last_order_date, categories
    """
    columns = [
        "company", "customer_type", "revenue", "orders", "units", "aov",
        "last_order_date", "categories",
    ]
    if orders.empty:
        return pd.DataFrame(columns=columns)

    df = orders.copy()
    df["day"] = parse_dates(df["invoice_date"])

    metrics = df.groupby("company", sort=False).agg(
        customer_type=("customer_type", "first"),
        revenue=("total_price", "sum"),
        orders=("order_id", "nunique"),
        units=("qty", "sum"),
        last_order_date=("day", "max"),
        categories=("category", lambda s: list(pd.unique(s.dropna()))),
    )
    metrics["aov"] = [
        calc_aov(rev, n) for rev, n in zip(metrics["revenue"], metrics["orders"])
    ]

    result = (
        metrics.reset_index()
        .sort_values("revenue", ascending=False, kind="stable")
        .reset_index(drop=True)
    )
    logger.info("Built customer metrics for %d companies", len(result))
    return result[columns]


def get_trend_series(orders: pd.DataFrame, bucket: str = "day") -> pd.DataFrame:
    """Revenue, distinct orders and units per time bucket.

    Returns
    -------
    DataFrame with columns: period, revenue, orders, units, aov
    sorted chronologically. Lines with unparseable dates are left out.
    """
    columns = ["period", "revenue", "orders", "units", "aov"]
    if orders.empty:
        return pd.DataFrame(columns=columns)

    dates = parse_dates(orders["invoice_date"])
    valid = dates.notna()
    df = orders.loc[valid].copy()
    if df.empty:
        return pd.DataFrame(columns=columns)
    df["period"] = bucket_dates(dates.loc[valid], bucket)

    trend = df.groupby("period").agg(
        revenue=("total_price", "sum"),
        orders=("order_id", "nunique"),
        units=("qty", "sum"),
    ).reset_index()
    trend["aov"] = [calc_aov(rev, n) for rev, n in zip(trend["revenue"], trend["orders"])]

    return trend.sort_values("period").reset_index(drop=True)[columns]


def moving_average(values: list[float] | pd.Series, window: int = TREND_MOVING_AVERAGE_WINDOW) -> list[float]:
    """Trailing mean over up to ``window`` points (shorter at the start)."""
    series = pd.Series(values, dtype=float)
    return series.rolling(window=window, min_periods=1).mean().tolist()


def get_category_mix(orders: pd.DataFrame) -> pd.DataFrame:
    """Revenue and share per category, largest first.

    Returns
    -------
    DataFrame with columns: category, revenue, share
    """
    if orders.empty:
        return pd.DataFrame(columns=["category", "revenue", "share"])

    mix = (
        orders.groupby("category", sort=False)["total_price"].sum()
        .sort_values(ascending=False, kind="stable")
        .reset_index()
        .rename(columns={"total_price": "revenue"})
    )
    total = mix["revenue"].sum()
    mix["share"] = mix["revenue"] / total if total else 0.0
    return mix


def _previous_year_label(period: str) -> str:
    return f"{int(period[:4]) - 1}{period[4:]}"


def get_yoy_series(
    orders: pd.DataFrame,
    date_from: date | None = None,
    date_to: date | None = None,
    bucket: str = "month",
) -> pd.DataFrame:
    """Revenue per bucket next to the same bucket one year earlier.

    ``orders`` should not be date-filtered: the prior-year window is read
    from it as well.

    Returns
    -------
    DataFrame with columns:
        period, revenue, prior_period, prior_revenue, yoy_pct
    yoy_pct is NaN where the prior period has no revenue.
    """
    columns = ["period", "revenue", "prior_period", "prior_revenue", "yoy_pct"]
    current = get_trend_series(filter_orders(orders, date_from, date_to), bucket)
    if current.empty:
        return pd.DataFrame(columns=columns)

    year = pd.DateOffset(years=1)
    prior_from = pd.Timestamp(date_from) - year if date_from is not None else None
    prior_to = pd.Timestamp(date_to) - year if date_to is not None else None
    prior = get_trend_series(filter_orders(orders, prior_from, prior_to), bucket)

    current["prior_period"] = current["period"].map(_previous_year_label)
    yoy = current[["period", "revenue", "prior_period"]].merge(
        prior[["period", "revenue"]].rename(
            columns={"period": "prior_period", "revenue": "prior_revenue"}
        ),
        on="prior_period",
        how="left",
    )
    yoy["prior_revenue"] = yoy["prior_revenue"].fillna(0.0).astype(float)
    yoy["yoy_pct"] = pd.Series(
        [calc_delta_pct(rev, prev) for rev, prev in zip(yoy["revenue"], yoy["prior_revenue"])],
        index=yoy.index,
        dtype=float,
    )
    return yoy[columns]


def get_category_series(orders: pd.DataFrame, bucket: str = "month") -> dict:
    """Category revenue per bucket for a stacked chart.

    Returns
    -------
    Dict with structure:
    {
        "periods": ["2025-01", ...],
        "series": [{"name": category, "data": [revenue per period]}, ...],
        "shares": DataFrame,   # category x period share of period revenue
    }
    Categories are ordered by total revenue, largest first.
    """
    result = compute_pivot(orders, PivotOptions("category", bucket, "revenue"))
    if result.empty:
        return {"periods": [], "series": [], "shares": pd.DataFrame()}

    categories = sort_rows(result)
    grid = result.grid.loc[categories]
    totals = result.column_totals.where(result.column_totals != 0)

    return {
        "periods": result.column_keys,
        "series": [{"name": name, "data": grid.loc[name].tolist()} for name in categories],
        "shares": grid.div(totals, axis=1).fillna(0.0),
    }


def get_orders_revenue_scatter(orders: pd.DataFrame) -> pd.DataFrame:
    """Daily points of distinct orders against revenue.

    Returns
    -------
    DataFrame with columns: date, orders, revenue
    """
    daily = get_trend_series(orders, "day")
    return daily.rename(columns={"period": "date"})[["date", "orders", "revenue"]]
