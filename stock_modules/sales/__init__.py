"""
Sales Reports Module (``stock_modules.sales``).

Read-only store discount summary and profit and loss report over confirmed
invoices, with CSV export.
"""

from stock_modules.sales.discounts import (
    build_store_discount_summary,
    free_goods_cost,
    line_discount_amount,
)
from stock_modules.sales.export import export_profit_loss, export_store_discount_summary
from stock_modules.sales.models import (
    DiscountRecipient,
    DiscountTotals,
    InvoiceProfitLine,
    ProductDiscountLine,
    ProfitBreakdownLine,
    ProfitLossMetrics,
    ProfitLossReport,
    StoreDiscountLine,
    StoreDiscountSummary,
)
from stock_modules.sales.profit_loss import build_profit_loss, line_unit_cost
from stock_modules.sales.service import ProfitLossService, StoreDiscountService

__all__ = [
    "StoreDiscountService",
    "ProfitLossService",
    "build_store_discount_summary",
    "build_profit_loss",
    "line_discount_amount",
    "line_unit_cost",
    "free_goods_cost",
    "export_store_discount_summary",
    "export_profit_loss",
    "StoreDiscountLine",
    "ProductDiscountLine",
    "DiscountRecipient",
    "DiscountTotals",
    "StoreDiscountSummary",
    "ProfitLossMetrics",
    "InvoiceProfitLine",
    "ProfitBreakdownLine",
    "ProfitLossReport",
]
