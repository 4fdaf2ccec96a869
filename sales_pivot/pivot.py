"""
Pivot aggregation engine — pure functions with no side effects.

Groups order lines by a row dimension (company, category, customer type)
and a time bucket (day, week, month), computes one measure per cell and
returns a dense grid with row/column/grand totals and the value range used
for colour scaling.
"""

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Mapping, NamedTuple

import pandas as pd

from .config import (
    BUCKETS,
    DEFAULT_BUCKET,
    DEFAULT_MEASURE,
    DEFAULT_ROW_FIELD,
    MEASURE_REGISTRY,
    ROW_FIELDS,
    ROW_TOTAL_SORT_KEY,
)

logger = logging.getLogger(__name__)

# Row label used when the projected row field is missing on a record
BLANK_ROW_KEY = "(blank)"


class PivotOptionsError(ValueError):
    """Raised for a row field, bucket or measure outside the registries."""


@dataclass(frozen=True)
class PivotOptions:
    """Which projection, time bucket and measure a pivot is built from."""

    row_field: str = DEFAULT_ROW_FIELD
    bucket: str = DEFAULT_BUCKET
    measure: str = DEFAULT_MEASURE

    def __post_init__(self) -> None:
        if self.row_field not in ROW_FIELDS:
            raise PivotOptionsError(
                f"Unknown row field {self.row_field!r}; expected one of {sorted(ROW_FIELDS)}"
            )
        if self.bucket not in BUCKETS:
            raise PivotOptionsError(
                f"Unknown bucket {self.bucket!r}; expected one of {list(BUCKETS)}"
            )
        if self.measure not in MEASURE_REGISTRY:
            raise PivotOptionsError(
                f"Unknown measure {self.measure!r}; expected one of {list(MEASURE_REGISTRY)}"
            )


class ValueRange(NamedTuple):
    min: float
    max: float

    @property
    def uniform(self) -> bool:
        """True when every cell holds the same value (nothing to scale)."""
        return self.max == self.min


@dataclass(frozen=True, eq=False)
class PivotResult:
    """Dense pivot grid plus totals.

    ``grid`` is indexed by row key (encounter order) with one column per
    bucket label (ascending). Combinations without records hold 0.
    """

    grid: pd.DataFrame
    row_totals: pd.Series
    column_totals: pd.Series
    grand_total: float
    value_range: ValueRange
    options: PivotOptions
    skipped: int = 0

    @property
    def row_keys(self) -> list[str]:
        return list(self.grid.index)

    @property
    def column_keys(self) -> list[str]:
        return list(self.grid.columns)

    @property
    def empty(self) -> bool:
        return self.grid.empty

    def cell(self, row: str, column: str) -> float:
        if row in self.grid.index and column in self.grid.columns:
            return float(self.grid.at[row, column])
        return 0.0

    def row_total(self, row: str) -> float:
        return float(self.row_totals.get(row, 0.0))

    def column_total(self, column: str) -> float:
        return float(self.column_totals.get(column, 0.0))


@dataclass(frozen=True)
class SortState:
    """Display ordering of pivot rows.

    ``key`` is ``"row_total"`` or one of the pivot's column keys.
    """

    key: str = ROW_TOTAL_SORT_KEY
    descending: bool = True

    def toggle(self, key: str) -> "SortState":
        """Selecting the current key flips direction; a new key starts descending."""
        if key == self.key:
            return replace(self, descending=not self.descending)
        return SortState(key=key, descending=True)


# ---------------------------------------------------------------------------
# Date bucketing
# ---------------------------------------------------------------------------
def parse_dates(values: pd.Series) -> pd.Series:
    """Parse ISO 8601 dates to naive UTC timestamps.

    Offsets are converted to UTC; naive values are taken as UTC.
    Unparseable values become NaT.
    """
    parsed = pd.to_datetime(values, errors="coerce", utc=True, format="ISO8601")
    return parsed.dt.tz_localize(None)


def bucket_dates(dates: pd.Series, bucket: str) -> pd.Series:
    """Return the bucket label for each timestamp in ``dates``.

    - day:   ``YYYY-MM-DD``
    - month: ``YYYY-MM``
    - week:  ``YYYY-Www`` where
      ``week = ceil((day_of_year0 + weekday_of_jan1 + 1) / 7)`` and
      weekday_of_jan1 counts Sunday as 0. Weeks start on Sunday and are
      tied to 1 January, so labels differ from ISO-8601 weeks near the
      turn of the year (e.g. 2024-12-31 is ``2024-W53``).
    """
    if bucket not in BUCKETS:
        raise PivotOptionsError(f"Unknown bucket {bucket!r}; expected one of {list(BUCKETS)}")

    if bucket == "day":
        return dates.dt.strftime("%Y-%m-%d")
    if bucket == "month":
        return dates.dt.strftime("%Y-%m")

    day_of_year0 = dates.dt.dayofyear - 1
    # Monday=0 weekday of 1 January, shifted to Sunday=0
    jan1_weekday = ((dates.dt.dayofweek - day_of_year0) % 7 + 1) % 7
    week = (day_of_year0 + jan1_weekday + 1 + 6) // 7
    return dates.dt.strftime("%Y") + "-W" + week.astype(int).astype(str).str.zfill(2)


def bucket_label(value, bucket: str) -> str:
    """Bucket label for a single date value.

    Raises ValueError if the value cannot be parsed as a date.
    """
    parsed = parse_dates(pd.Series([value], dtype=object))
    if parsed.isna().iloc[0]:
        raise ValueError(f"Could not parse date value: {value!r}")
    return bucket_dates(parsed, bucket).iloc[0]


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------
def _as_frame(records: pd.DataFrame | Iterable[Mapping] | None) -> pd.DataFrame:
    if records is None:
        return pd.DataFrame()
    if isinstance(records, pd.DataFrame):
        return records
    return pd.DataFrame(list(records))


def _empty_result(options: PivotOptions, skipped: int = 0) -> PivotResult:
    grid = pd.DataFrame(index=pd.Index([], dtype=object), columns=pd.Index([], dtype=object), dtype=float)
    return PivotResult(
        grid=grid,
        row_totals=pd.Series(dtype=float),
        column_totals=pd.Series(dtype=float),
        grand_total=0.0,
        value_range=ValueRange(0.0, 0.0),
        options=options,
        skipped=skipped,
    )


def _measure_values(cells: pd.DataFrame, measure: str) -> pd.Series:
    """Per-cell measure from the accumulated revenue / order / unit columns."""
    if measure == "revenue":
        return cells["revenue"]
    if measure == "orders":
        return cells["orders"].astype(float)
    if measure == "units":
        return cells["units"].astype(float)
    # aov: cells with no distinct order id are 0, never NaN/inf
    has_orders = cells["orders"] > 0
    return cells["revenue"].div(cells["orders"].where(has_orders)).where(has_orders, 0.0)


def compute_pivot(
    records: pd.DataFrame | Iterable[Mapping] | None,
    options: PivotOptions | None = None,
) -> PivotResult:
    """Aggregate order lines into a dense row x bucket pivot.

    Parameters
    ----------
    records : Order lines, as a DataFrame or an iterable of mappings with
              columns order_id, invoice_date, qty, total_price and the
              column selected by ``options.row_field``. Never mutated.
    options : Row field, bucket and measure. Defaults to company by month
              revenue.

    Returns
    -------
    PivotResult. Records whose invoice_date cannot be parsed are skipped
    and counted in ``PivotResult.skipped``.
    """
    if options is None:
        options = PivotOptions()

    frame = _as_frame(records)
    if frame.empty:
        return _empty_result(options)

    row_column = ROW_FIELDS[options.row_field]
    for column in ("order_id", "invoice_date", "qty", "total_price", row_column):
        if column not in frame.columns:
            raise KeyError(f"Order records are missing required column {column!r}")

    dates = parse_dates(frame["invoice_date"])
    bad = dates.isna()
    skipped = int(bad.sum())
    if skipped:
        logger.warning(
            "Skipped %d of %d records with unparseable invoice_date", skipped, len(frame)
        )

    keep = ~bad.to_numpy()
    valid = frame.loc[keep].reset_index(drop=True)
    valid_dates = dates.loc[keep].reset_index(drop=True)
    if valid.empty:
        return _empty_result(options, skipped)

    # Pass 1: accumulate revenue, distinct orders and units per cell
    work = pd.DataFrame({
        "row": valid[row_column].fillna(BLANK_ROW_KEY).astype(str),
        "column": bucket_dates(valid_dates, options.bucket),
        "order_id": valid["order_id"],
        "revenue": pd.to_numeric(valid["total_price"], errors="coerce").fillna(0.0),
        "units": pd.to_numeric(valid["qty"], errors="coerce").fillna(0),
    })

    cells = work.groupby(["row", "column"], sort=False).agg(
        revenue=("revenue", "sum"),
        orders=("order_id", "nunique"),
        units=("units", "sum"),
    )

    row_keys = list(pd.unique(work["row"]))
    column_keys = sorted(work["column"].unique())

    # Pass 2: materialise the dense grid (float before reshaping, integer
    # unit counts cannot hold the float fill value)
    values = _measure_values(cells, options.measure).astype(float)
    grid = (
        values.unstack("column", fill_value=0.0)
        .reindex(index=row_keys, columns=column_keys, fill_value=0.0)
        .astype(float)
    )
    grid.index.name = options.row_field
    grid.columns.name = options.bucket

    row_totals = grid.sum(axis=1)
    column_totals = grid.sum(axis=0)
    cell_values = grid.to_numpy()

    result = PivotResult(
        grid=grid,
        row_totals=row_totals,
        column_totals=column_totals,
        grand_total=float(row_totals.sum()),
        value_range=ValueRange(float(cell_values.min()), float(cell_values.max())),
        options=options,
        skipped=skipped,
    )

    logger.info(
        "Built %s pivot by %s/%s with %d rows x %d columns",
        options.measure, options.row_field, options.bucket,
        len(row_keys), len(column_keys),
    )
    return result


def sort_rows(result: PivotResult, sort: SortState | None = None) -> list[str]:
    """Row keys ordered for display.

    Orders by row total or by one column's cell values. Ties keep the
    pivot's encounter order.
    """
    if sort is None:
        sort = SortState()

    if sort.key == ROW_TOTAL_SORT_KEY:
        values = result.row_totals
    elif sort.key in result.grid.columns:
        values = result.grid[sort.key]
    else:
        raise KeyError(f"Cannot sort by unknown column {sort.key!r}")

    return sorted(result.row_keys, key=lambda row: values[row], reverse=sort.descending)
