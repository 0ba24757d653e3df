"""
Sales Report Models (``stock_modules.sales.models``).

Frozen view-models for the store discount summary (one row per store,
the most discounted products, the stores that received any discount, and
the overall totals) and for the profit and loss report.  All money fields
are ``Decimal``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from stock_kernel.domain.values import ZERO
from stock_modules.reporting.models import ReportMetadata


@dataclass(frozen=True)
class StoreDiscountLine:
    """
    Discounts given to one store over the period.

    total_discount == invoice_discount + line_amount_discount
                      + line_percent_discount
    """

    store_id: UUID | None
    store_name: str
    total_sales: Decimal
    invoice_discount: Decimal
    line_amount_discount: Decimal
    line_percent_discount: Decimal
    amount_discount_count: int
    percent_discount_count: int
    invoice_count: int
    free_quantity: Decimal
    free_cost: Decimal
    total_discount: Decimal


@dataclass(frozen=True)
class ProductDiscountLine:
    product_id: UUID
    product_name: str
    total_discount: Decimal
    discount_count: int


@dataclass(frozen=True)
class DiscountRecipient:
    store_name: str
    total_sales: Decimal
    total_discount: Decimal
    invoice_count: int
    discount_percent: Decimal


@dataclass(frozen=True)
class DiscountTotals:
    total_sales: Decimal = ZERO
    total_discount: Decimal = ZERO
    invoice_discount: Decimal = ZERO
    line_amount_discount: Decimal = ZERO
    line_percent_discount: Decimal = ZERO
    amount_discount_count: int = 0
    percent_discount_count: int = 0
    free_quantity: Decimal = ZERO
    free_cost: Decimal = ZERO


@dataclass(frozen=True)
class StoreDiscountSummary:
    metadata: ReportMetadata
    stores: tuple[StoreDiscountLine, ...]
    top_products: tuple[ProductDiscountLine, ...] = ()
    recipients: tuple[DiscountRecipient, ...] = ()
    totals: DiscountTotals = DiscountTotals()


# =========================================================================
# Profit and loss
# =========================================================================


@dataclass(frozen=True)
class ProfitLossMetrics:
    """
    Headline profit and loss figures for the period.

    gross_profit == total_sales - total_cogs
    net_profit   == gross_profit + return_adjustment - damage_write_off

    Free goods are reported beside the P&L, never inside COGS.
    """

    total_sales: Decimal = ZERO
    total_paid: Decimal = ZERO
    total_due: Decimal = ZERO
    total_cogs: Decimal = ZERO
    gross_profit: Decimal = ZERO
    return_adjustment: Decimal = ZERO
    damage_write_off: Decimal = ZERO
    net_profit: Decimal = ZERO
    invoice_count: int = 0
    profit_margin: Decimal = ZERO
    free_quantity: Decimal = ZERO
    free_cost: Decimal = ZERO


@dataclass(frozen=True)
class InvoiceProfitLine:
    invoice_id: UUID
    invoice_number: str
    created_at: datetime
    store_id: UUID | None
    store_name: str
    total: Decimal
    paid: Decimal
    due: Decimal
    cogs: Decimal
    profit: Decimal
    profit_margin: Decimal
    free_quantity: Decimal
    free_cost: Decimal


@dataclass(frozen=True)
class ProfitBreakdownLine:
    """Sales, cost and profit for one store or one product."""

    key: UUID | None
    name: str
    sales: Decimal
    cogs: Decimal
    profit: Decimal
    quantity: Decimal
    free_quantity: Decimal
    free_cost: Decimal


@dataclass(frozen=True)
class ProfitLossReport:
    metadata: ReportMetadata
    metrics: ProfitLossMetrics
    invoices: tuple[InvoiceProfitLine, ...] = ()
    by_store: tuple[ProfitBreakdownLine, ...] = ()
    by_product: tuple[ProfitBreakdownLine, ...] = ()
