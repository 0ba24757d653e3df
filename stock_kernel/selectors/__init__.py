"""Selectors for the stock kernel (read side)."""

from stock_kernel.selectors.sales_selector import SalesSelector
from stock_kernel.selectors.stock_selector import StockSelector

__all__ = [
    "StockSelector",
    "SalesSelector",
]
