"""
Configuration: pivot registries, order schema, colours, constants.

ROW_FIELDS maps each selectable row dimension to the order-table column it
projects. MEASURE_REGISTRY maps each pivot measure to its display label,
format and unit.
"""

from pathlib import Path

# ---------------------------------------------------------------------------
# File paths — adjust these if source files move
# ---------------------------------------------------------------------------
DATA_DIR = Path(__file__).resolve().parent.parent / "data"

SAMPLE_DATA_FILE = DATA_DIR / "orders.csv"

# ---------------------------------------------------------------------------
# Order-line schema
# ---------------------------------------------------------------------------
ORDER_COLUMNS: list[str] = [
    "order_id",
    "invoice_date",
    "company",
    "category",
    "customer_type",
    "qty",
    "unit_price",
    "total_price",
    "line_item_id",
    "order_status",
]

NUMERIC_COLUMNS = ["qty", "unit_price", "total_price"]

# Raw export headers (after snake_case) -> canonical column names
COLUMN_ALIASES: dict[str, str] = {
    "orderid": "order_id",
    "order_number": "order_id",
    "invoicedate": "invoice_date",
    "date": "invoice_date",
    "order_date": "invoice_date",
    "company_name": "company",
    "customer": "company",
    "customertype": "customer_type",
    "client_type": "customer_type",
    "quantity": "qty",
    "units": "qty",
    "unitprice": "unit_price",
    "price": "unit_price",
    "totalprice": "total_price",
    "line_total": "total_price",
    "amount": "total_price",
    "lineitemid": "line_item_id",
    "orderstatus": "order_status",
    "status": "order_status",
}

# ---------------------------------------------------------------------------
# Pivot registries
# ---------------------------------------------------------------------------
# Row dimension name -> order-table column
ROW_FIELDS: dict[str, str] = {
    "company": "company",
    "category": "category",
    "customer_type": "customer_type",
}

BUCKETS = ("day", "week", "month")

# label: UI label
# format: "currency" or "count"
MEASURE_REGISTRY: dict[str, dict] = {
    "revenue": {
        "label": "Revenue",
        "format": "currency",
        "unit": "USD",
    },
    "orders": {
        "label": "Orders",
        "format": "count",
        "unit": "orders",
    },
    "units": {
        "label": "Units",
        "format": "count",
        "unit": "units",
    },
    "aov": {
        "label": "Avg Order Value",
        "format": "currency",
        "unit": "USD",
    },
}

DEFAULT_ROW_FIELD = "company"
DEFAULT_BUCKET = "month"
DEFAULT_MEASURE = "revenue"

# Sort key meaning "order rows by their row total"
ROW_TOTAL_SORT_KEY = "row_total"

# ---------------------------------------------------------------------------
# Colour scale
# ---------------------------------------------------------------------------
RAG_COLORS = {
    "green": "#16a34a",
    "amber": "#f59e0b",
    "red": "#ef4444",
    "grey": "#95a5a6",
}

# Ratio thresholds for the three-stop grid scale
AMBER_THRESHOLD = 0.33
GREEN_THRESHOLD = 0.66

UNIFORM_HEAT_COLOR = "rgba(200,200,200,0.25)"

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
DEFAULT_LOOKBACK_MONTHS = 3
COLD_CUSTOMER_DAYS = 30
TREND_MOVING_AVERAGE_WINDOW = 7
