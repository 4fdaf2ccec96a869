"""
Simulated order generator for the sales pivot dashboard.

Generates realistic decorated-apparel order lines (several lines per order)
for a fixed roster of customers. All values are synthetic.
"""

import numpy as np
import pandas as pd

# ---------------------------------------------------------------------------
# Typical roster and price ranges
# ---------------------------------------------------------------------------
_CUSTOMERS = [
    ("Urban Threads", "Retail"),
    ("Gym Club", "Direct"),
    ("Enterprise Corp", "Enterprise"),
    ("Contract Solutions Inc", "Enterprise"),
    ("Yoga Studio", "Direct"),
    ("Campus Outfitters", "Retail"),
    ("Harbor Brewing Co", "Direct"),
    ("Metro School District", "Education"),
]

# category -> (min unit price, max unit price)
_CATEGORIES = {
    "Screen Print": (6.0, 14.0),
    "Embroidery": (9.0, 22.0),
    "Hybrid Decoration": (12.0, 28.0),
    "Custom Screen Print": (8.0, 18.0),
    "Promotional": (2.0, 8.0),
}

_STATUSES = ["Completed", "Shipped", "Production"]

# Relative order volume per customer (bigger accounts order more often)
_CUSTOMER_WEIGHTS = np.array([0.22, 0.16, 0.15, 0.12, 0.08, 0.11, 0.07, 0.09])


def generate_orders(
    start: str = "2025-01-01",
    n_days: int = 240,
    n_orders: int = 400,
    seed: int = 42,
) -> pd.DataFrame:
    """Generate simulated order lines.

    Each order has 1-4 lines on the same invoice date, each line in one
    category with a quantity of 12-300 units. total_price is quantity x unit
    price with a 5% volume discount above 144 units.

    Returns
    -------
    DataFrame with the columns of config.ORDER_COLUMNS.
    """
    rng = np.random.default_rng(seed)
    start_ts = pd.Timestamp(start)
    categories = list(_CATEGORIES)

    rows = []
    for n in range(n_orders):
        company, customer_type = _CUSTOMERS[rng.choice(len(_CUSTOMERS), p=_CUSTOMER_WEIGHTS)]
        invoice_date = start_ts + pd.Timedelta(days=int(rng.integers(0, n_days)))
        order_id = f"{invoice_date:%Y%m}{n:05d}"
        status = _STATUSES[rng.choice(len(_STATUSES), p=[0.7, 0.2, 0.1])]

        for line in range(int(rng.integers(1, 5))):
            category = categories[rng.integers(0, len(categories))]
            low, high = _CATEGORIES[category]
            qty = int(rng.integers(12, 301))
            unit_price = round(float(rng.uniform(low, high)), 2)
            discount = 0.95 if qty > 144 else 1.0

            rows.append({
                "order_id": order_id,
                "invoice_date": invoice_date.strftime("%Y-%m-%d"),
                "company": company,
                "category": category,
                "customer_type": customer_type,
                "qty": qty,
                "unit_price": unit_price,
                "total_price": round(qty * unit_price * discount, 2),
                "line_item_id": f"{order_id}-{line + 1}",
                "order_status": status,
            })

    return pd.DataFrame(rows)
