"""
Shared utilities for data ingestion: header detection, date normalisation,
column renaming.
"""

import logging
import re
from typing import Any

import pandas as pd

from ..config import COLUMN_ALIASES

logger = logging.getLogger(__name__)


def normalise_date(val: Any) -> str | None:
    """Convert an Excel serial number or datetime to an ISO date string.

    Excel serial numbers use the 1899-12-30 epoch. Strings are passed through
    untouched so the pivot engine can count the ones it cannot parse.
    Returns None for empty values.
    """
    if val is None:
        return None
    if isinstance(val, str):
        return val.strip() or None
    if isinstance(val, bool):
        logger.warning("Could not convert boolean %s to date", val)
        return None
    if isinstance(val, (int, float)):
        try:
            ts = pd.Timestamp("1899-12-30") + pd.Timedelta(days=int(val))
        except (ValueError, OverflowError):
            logger.warning("Could not convert serial number %s to date", val)
            return None
        return ts.strftime("%Y-%m-%d")
    try:
        return pd.Timestamp(val).strftime("%Y-%m-%d")
    except (ValueError, TypeError):
        logger.warning("Could not parse date value: %s", val)
        return None


def to_snake_case(name: str) -> str:
    """Convert a column name to snake_case.

    Handles spaces, parentheses, slashes, and hash signs.
    """
    s = str(name).strip()
    s = s.replace("#", "number").replace("/", "_").replace("(", "").replace(")", "")
    s = s.replace("-", "_").replace(".", "_")
    # CamelCase to snake_case
    s = re.sub(r"([a-z])([A-Z])", r"\1_\2", s)
    # Collapse whitespace and special chars to underscores
    s = re.sub(r"[^a-zA-Z0-9]+", "_", s)
    s = s.lower().strip("_")
    s = re.sub(r"_+", "_", s)
    return s


def canonical_column(name: str) -> str:
    """Map a raw export header onto the order-table schema."""
    snake = to_snake_case(name)
    return COLUMN_ALIASES.get(snake, snake)


def find_header_row(
    sheet,
    signature: set[str],
    max_rows: int = 20,
) -> int | None:
    """Scan an openpyxl sheet for the row containing signature columns.

    Returns the 1-based row index where at least two cells map onto
    canonical names in `signature`, or None if not found within `max_rows`.
    """
    for row_idx in range(1, max_rows + 1):
        matches = 0
        for cell in sheet[row_idx]:
            if cell.value is not None and canonical_column(cell.value) in signature:
                matches += 1
        if matches >= 2:
            return row_idx
    return None


def safe_float(val: Any) -> float | None:
    """Coerce a value to float, returning None for non-numeric values."""
    if val is None:
        return None
    if isinstance(val, str):
        val = val.strip().replace(",", "").lstrip("$")
        if val.startswith("=") or not val:
            return None
        try:
            return float(val)
        except ValueError:
            return None
    try:
        return float(val)
    except (ValueError, TypeError):
        return None
