"""
Pure store discount summary builder.

Summarises the discounts granted on confirmed sales invoices, per store and
per product.  ZERO I/O.  Draft and cancelled invoices never count.

A line discount is either a flat amount or a percentage of the line's gross
value (quantity x unit price).  ``DiscountKind`` is parsed once at the
boundary and both members are handled explicitly here, so a new kind cannot
slip through as a silent flat amount.  A line whose stored kind is not
recognised (``discount_type is None``) contributes no discount and is
logged as a warning; the rest of the summary still builds.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence
from uuid import UUID

from stock_engines.tracer import traced_engine
from stock_kernel.domain.dtos import (
    DiscountKind,
    Invoice,
    InvoiceLine,
    Product,
    Store,
)
from stock_kernel.domain.values import ZERO, ReportPeriod, safe_divide, to_decimal
from stock_kernel.logging_config import get_logger
from stock_modules.reporting.models import ReportMetadata
from stock_modules.sales.models import (
    DiscountRecipient,
    DiscountTotals,
    ProductDiscountLine,
    StoreDiscountLine,
    StoreDiscountSummary,
)

logger = get_logger("modules.sales.discounts")

HUNDRED = Decimal("100")
NO_STORE_NAME = "No Store"


def line_discount_amount(line: InvoiceLine) -> Decimal:
    """Money value of a line's discount.  Zero when the kind is unrecognised."""
    value = to_decimal(line.discount_value)
    match line.discount_type:
        case DiscountKind.AMOUNT:
            return value
        case DiscountKind.PERCENT:
            gross = to_decimal(line.quantity) * to_decimal(line.unit_price)
            return gross * value / HUNDRED
        case None:
            return ZERO
    raise ValueError(f"Unhandled discount kind: {line.discount_type!r}")


def free_goods_cost(line: InvoiceLine) -> Decimal:
    """Free quantity valued at the TP rate, falling back to cost price."""
    rate = to_decimal(line.tp_rate) or to_decimal(line.cost_price)
    return to_decimal(line.free_quantity) * rate


@dataclass
class _StoreAccumulator:
    store_id: UUID | None
    store_name: str
    total_sales: Decimal = ZERO
    invoice_discount: Decimal = ZERO
    line_amount_discount: Decimal = ZERO
    line_percent_discount: Decimal = ZERO
    amount_discount_count: int = 0
    percent_discount_count: int = 0
    invoice_count: int = 0
    free_quantity: Decimal = ZERO
    free_cost: Decimal = ZERO

    def add_line(self, line: InvoiceLine) -> None:
        if to_decimal(line.discount_value) > 0:
            amount = line_discount_amount(line)
            match line.discount_type:
                case DiscountKind.AMOUNT:
                    self.line_amount_discount += amount
                    self.amount_discount_count += 1
                case DiscountKind.PERCENT:
                    self.line_percent_discount += amount
                    self.percent_discount_count += 1
        free_qty = to_decimal(line.free_quantity)
        if free_qty > 0:
            self.free_quantity += free_qty
            self.free_cost += free_goods_cost(line)

    def freeze(self) -> StoreDiscountLine:
        return StoreDiscountLine(
            store_id=self.store_id,
            store_name=self.store_name,
            total_sales=self.total_sales,
            invoice_discount=self.invoice_discount,
            line_amount_discount=self.line_amount_discount,
            line_percent_discount=self.line_percent_discount,
            amount_discount_count=self.amount_discount_count,
            percent_discount_count=self.percent_discount_count,
            invoice_count=self.invoice_count,
            free_quantity=self.free_quantity,
            free_cost=self.free_cost,
            total_discount=(
                self.invoice_discount
                + self.line_amount_discount
                + self.line_percent_discount
            ),
        )


def reportable_invoices(
    invoices: Sequence[Invoice],
    period: ReportPeriod,
    store_id: UUID | None,
) -> list[Invoice]:
    return [
        invoice for invoice in invoices
        if invoice.status.is_reportable
        and invoice.created_at is not None
        and period.contains(invoice.created_at)
        and (store_id is None or invoice.store_id == store_id)
    ]


@traced_engine(
    "store_discount_summary", "1.0",
    fingerprint_fields=("period", "store_id", "invoices"),
)
def build_store_discount_summary(
    *,
    period: ReportPeriod,
    invoices: Sequence[Invoice],
    lines: Sequence[InvoiceLine],
    stores: Sequence[Store],
    products: Sequence[Product],
    metadata: ReportMetadata,
    store_id: UUID | None = None,
    top_products_limit: int = 10,
) -> StoreDiscountSummary:
    """
    Per-store discounts over a closed interval, optionally for one store.

    Stores are ordered by total discount descending.  Recipients are the
    stores with any discount, with discount percent =
    discount / (sales + discount) x 100.
    """
    store_names = {s.id: s.name for s in stores}
    product_names = {p.id: p.name for p in products}
    included = reportable_invoices(invoices, period, store_id)
    lines_by_invoice: dict[UUID, list[InvoiceLine]] = defaultdict(list)
    for line in lines:
        lines_by_invoice[line.invoice_id].append(line)

    per_store: dict[UUID | None, _StoreAccumulator] = {}
    product_discount: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
    product_count: dict[UUID, int] = defaultdict(int)
    unrecognised: list[InvoiceLine] = []

    for invoice in included:
        acc = per_store.get(invoice.store_id)
        if acc is None:
            acc = _StoreAccumulator(
                store_id=invoice.store_id,
                store_name=store_names.get(invoice.store_id, NO_STORE_NAME),
            )
            per_store[invoice.store_id] = acc
        acc.total_sales += to_decimal(invoice.total)
        acc.invoice_discount += to_decimal(invoice.discount)
        acc.invoice_count += 1

        for line in lines_by_invoice.get(invoice.id, ()):
            if line.discount_type is None:
                unrecognised.append(line)
            acc.add_line(line)
            if (
                to_decimal(line.discount_value) > 0
                and line.discount_type is not None
                and line.product_id in product_names
            ):
                product_discount[line.product_id] += line_discount_amount(line)
                product_count[line.product_id] += 1

    store_lines = sorted(
        (acc.freeze() for acc in per_store.values()),
        key=lambda s: (-s.total_discount, s.store_name.casefold(), str(s.store_id)),
    )

    top_products = sorted(
        (
            ProductDiscountLine(
                product_id=pid,
                product_name=product_names[pid],
                total_discount=amount,
                discount_count=product_count[pid],
            )
            for pid, amount in product_discount.items()
        ),
        key=lambda p: (-p.total_discount, p.product_name.casefold(), str(p.product_id)),
    )[:top_products_limit]

    recipients = tuple(
        DiscountRecipient(
            store_name=s.store_name,
            total_sales=s.total_sales,
            total_discount=s.total_discount,
            invoice_count=s.invoice_count,
            discount_percent=(
                safe_divide(s.total_discount, s.total_sales + s.total_discount) * HUNDRED
                if s.total_sales > 0 else ZERO
            ),
        )
        for s in store_lines
        if s.total_discount > 0
    )

    totals = DiscountTotals(
        total_sales=sum((s.total_sales for s in store_lines), ZERO),
        total_discount=sum((s.total_discount for s in store_lines), ZERO),
        invoice_discount=sum((s.invoice_discount for s in store_lines), ZERO),
        line_amount_discount=sum((s.line_amount_discount for s in store_lines), ZERO),
        line_percent_discount=sum((s.line_percent_discount for s in store_lines), ZERO),
        amount_discount_count=sum(s.amount_discount_count for s in store_lines),
        percent_discount_count=sum(s.percent_discount_count for s in store_lines),
        free_quantity=sum((s.free_quantity for s in store_lines), ZERO),
        free_cost=sum((s.free_cost for s in store_lines), ZERO),
    )

    if unrecognised:
        logger.warning(
            "invoice_line_discount_type_unknown",
            extra={
                "line_count": len(unrecognised),
                "line_ids": [str(line.id) for line in unrecognised],
            },
        )

    logger.debug(
        "store_discount_summary_built",
        extra={
            "invoices_considered": len(invoices),
            "invoices_included": len(included),
            "store_count": len(store_lines),
        },
    )

    return StoreDiscountSummary(
        metadata=metadata,
        stores=tuple(store_lines),
        top_products=tuple(top_products),
        recipients=recipients,
        totals=totals,
    )
