"""Data ingestion loaders for order-line exports."""

from .orders import load_orders_csv, load_orders_excel

__all__ = [
    "load_orders_csv",
    "load_orders_excel",
]
