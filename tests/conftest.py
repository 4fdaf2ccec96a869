"""Shared fixtures: small hand-built order tables and a simulated one."""

import pandas as pd
import pytest

from sales_pivot.simulator import generate_orders
from sales_pivot.transforms import normalise_orders


def _line(**overrides) -> dict:
    line = {
        "order_id": "A1",
        "invoice_date": "2025-03-03",
        "company": "Acme",
        "category": "Screen Print",
        "customer_type": "Enterprise",
        "qty": 10,
        "unit_price": 10.0,
        "total_price": 100.0,
        "line_item_id": None,
        "order_status": "Completed",
    }
    line.update(overrides)
    return line


@pytest.fixture
def make_line():
    """Factory for one order line with sensible defaults."""
    return _line


@pytest.fixture
def acme_orders() -> pd.DataFrame:
    """Three Acme lines in March 2025; the first two share an order id."""
    return pd.DataFrame([
        _line(order_id="A1", invoice_date="2025-03-03", total_price=100.0, qty=10),
        _line(order_id="A1", invoice_date="2025-03-10", total_price=150.0, qty=15,
              category="Embroidery"),
        _line(order_id="A2", invoice_date="2025-03-20", total_price=50.0, qty=5),
    ])


@pytest.fixture
def mixed_orders() -> pd.DataFrame:
    """Two companies, two months, disjoint activity for Globex."""
    return pd.DataFrame([
        _line(order_id="A1", invoice_date="2025-03-03", company="Acme", total_price=100.0, qty=10),
        _line(order_id="A2", invoice_date="2025-03-20", company="Acme", total_price=50.0, qty=5),
        _line(order_id="A3", invoice_date="2025-04-02", company="Acme", total_price=30.0, qty=3),
        _line(order_id="G1", invoice_date="2025-04-11", company="Globex", total_price=400.0, qty=40,
              customer_type="Retail", category="Embroidery"),
        _line(order_id="G1", invoice_date="2025-04-11", company="Globex", total_price=200.0, qty=20,
              customer_type="Retail", category="Promotional"),
    ])


@pytest.fixture
def sample_orders() -> pd.DataFrame:
    return normalise_orders(generate_orders(n_orders=150, seed=7))
