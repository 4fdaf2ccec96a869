"""
Loaders for order-line exports (CSV or Excel).

One row per order line. Headers are matched case-insensitively and through
common aliases ("Invoice Date", "Quantity", "Line Total", "Order #", ...)
onto the order-table schema in config.ORDER_COLUMNS.

Invoice dates are kept as ISO strings. Values that cannot be read as dates
are left in place for the pivot engine to count and skip.
"""

import logging

import openpyxl
import pandas as pd

from ..transforms import normalise_orders
from .utils import canonical_column, find_header_row, normalise_date, safe_float

logger = logging.getLogger(__name__)

# Columns that identify the header row of an export
_HEADER_SIGNATURE = {"order_id", "invoice_date", "company", "total_price", "qty"}


def load_orders_csv(path: str) -> pd.DataFrame:
    """Load order lines from a CSV export.

    Returns
    -------
    Order table with the columns of config.ORDER_COLUMNS.
    """
    try:
        raw = pd.read_csv(path, dtype=str, keep_default_na=False)
    except Exception:
        logger.exception("Failed to open orders CSV: %s", path)
        raise

    raw = raw.rename(columns=canonical_column)
    for col in ("qty", "unit_price", "total_price"):
        if col in raw.columns:
            raw[col] = raw[col].map(safe_float)
    raw = raw.replace({"": None})

    df = normalise_orders(raw)
    logger.info("Loaded %d order lines from %s", len(df), path)
    return df


def load_orders_excel(path: str, sheet_name: str | None = None) -> pd.DataFrame:
    """Load order lines from an Excel export.

    Assumptions
    -----------
    - The header row sits within the first 20 rows and names at least two
      of order id, invoice date, company, total price, quantity.
    - Data runs from the row after the header until the first fully empty
      row.
    - Invoice dates may be datetime cells or Excel serial numbers.

    Parameters
    ----------
    path : Path to the Excel file.
    sheet_name : Sheet to read. Defaults to the first sheet.

    Returns
    -------
    Order table with the columns of config.ORDER_COLUMNS.
    """
    try:
        wb = openpyxl.load_workbook(path, data_only=True)
    except Exception:
        logger.exception("Failed to open orders workbook: %s", path)
        raise

    if sheet_name is None or sheet_name not in wb.sheetnames:
        if sheet_name is not None:
            logger.warning("Sheet '%s' not found, using '%s'", sheet_name, wb.sheetnames[0])
        sheet_name = wb.sheetnames[0]

    ws = wb[sheet_name]

    header_row = find_header_row(ws, _HEADER_SIGNATURE)
    if header_row is None:
        wb.close()
        logger.warning("No order header row found in %s [%s]", path, sheet_name)
        return normalise_orders(pd.DataFrame())

    headers = [
        canonical_column(cell.value) if cell.value is not None else None
        for cell in ws[header_row]
    ]

    rows = []
    for values in ws.iter_rows(min_row=header_row + 1, values_only=True):
        if all(v is None for v in values):
            break
        record = {}
        for name, raw in zip(headers, values):
            if name is None:
                continue
            if name == "invoice_date":
                record[name] = normalise_date(raw)
            elif name in ("qty", "unit_price", "total_price"):
                record[name] = safe_float(raw)
            else:
                record[name] = str(raw).strip() if raw is not None else None
        rows.append(record)

    wb.close()

    df = normalise_orders(pd.DataFrame(rows))
    logger.info("Loaded %d order lines from %s [%s]", len(df), path, sheet_name)
    return df
