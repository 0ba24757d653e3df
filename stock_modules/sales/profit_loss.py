"""
Pure profit and loss builder.

Sales, cost of goods sold and profit over confirmed, paid and partially paid
invoices, with stock adjustments applied on top.  ZERO I/O.

Cost rules:
    - A line's unit cost is the ``cost_price`` captured on the line, or the
      batch's ``cost_price`` when none was captured.
    - COGS counts the sold quantity only.  Free quantity is valued at the
      same unit cost and reported beside the P&L, never inside it.
    - A RETURN adjustment with the RESTOCK action gives its batch cost back
      (``return_adjustment``); a SCRAP return stays a loss.
    - DAMAGE and EXPIRED adjustments are written off at batch cost.

With a product filter, invoices without a line for the product drop out;
for the rest, sales are the filtered lines' totals and the invoice's paid
and due amounts are prorated by the filtered share of the invoice total.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence
from uuid import UUID

from stock_engines.tracer import traced_engine
from stock_kernel.domain.dtos import (
    AdjustmentType,
    Batch,
    Invoice,
    InvoiceLine,
    Product,
    ReturnAction,
    StockAdjustment,
    Store,
)
from stock_kernel.domain.values import ZERO, ReportPeriod, safe_divide, to_decimal
from stock_kernel.logging_config import get_logger
from stock_modules.reporting.models import ReportMetadata
from stock_modules.sales.discounts import HUNDRED, NO_STORE_NAME, reportable_invoices
from stock_modules.sales.models import (
    InvoiceProfitLine,
    ProfitBreakdownLine,
    ProfitLossMetrics,
    ProfitLossReport,
)

logger = get_logger("modules.sales.profit_loss")


def line_unit_cost(line: InvoiceLine, batch_costs: dict[UUID, Decimal]) -> Decimal:
    """Captured line cost, falling back to the batch cost, else zero."""
    cost = to_decimal(line.cost_price)
    if cost > 0:
        return cost
    if line.batch_id is None:
        return ZERO
    return batch_costs.get(line.batch_id, ZERO)


def margin_percent(profit: Decimal, sales: Decimal) -> Decimal:
    return safe_divide(profit, sales) * HUNDRED if sales > 0 else ZERO


@dataclass
class _Breakdown:
    key: UUID | None
    name: str
    sales: Decimal = ZERO
    cogs: Decimal = ZERO
    quantity: Decimal = ZERO
    free_quantity: Decimal = ZERO
    free_cost: Decimal = ZERO

    def freeze(self) -> ProfitBreakdownLine:
        return ProfitBreakdownLine(
            key=self.key,
            name=self.name,
            sales=self.sales,
            cogs=self.cogs,
            profit=self.sales - self.cogs,
            quantity=self.quantity,
            free_quantity=self.free_quantity,
            free_cost=self.free_cost,
        )


def _by_profit(lines) -> tuple[ProfitBreakdownLine, ...]:
    return tuple(sorted(
        (b.freeze() for b in lines),
        key=lambda b: (-b.profit, b.name.casefold(), str(b.key)),
    ))


def _adjustment_totals(
    adjustments: Sequence[StockAdjustment],
    *,
    period: ReportPeriod,
    batch_costs: dict[UUID, Decimal],
    batch_products: dict[UUID, UUID],
    invoice_ids: set[UUID] | None,
    product_id: UUID | None,
) -> tuple[Decimal, Decimal]:
    returned = ZERO
    written_off = ZERO
    for adj in adjustments:
        if adj.created_at is None or not period.contains(adj.created_at):
            continue
        if product_id is not None and (
            adj.product_id or batch_products.get(adj.batch_id)
        ) != product_id:
            continue
        # Under a store filter only returns against that store's invoices count.
        if invoice_ids is not None and adj.invoice_id not in invoice_ids:
            continue
        value = batch_costs.get(adj.batch_id, ZERO) * to_decimal(adj.quantity)
        match adj.adjustment_type:
            case AdjustmentType.RETURN if adj.return_action == ReturnAction.RESTOCK:
                returned += value
            case AdjustmentType.DAMAGE | AdjustmentType.EXPIRED:
                written_off += value
    return returned, written_off


@traced_engine(
    "profit_loss", "1.0",
    fingerprint_fields=("period", "store_id", "product_id", "invoices", "adjustments"),
)
def build_profit_loss(
    *,
    period: ReportPeriod,
    invoices: Sequence[Invoice],
    lines: Sequence[InvoiceLine],
    batches: Sequence[Batch],
    adjustments: Sequence[StockAdjustment],
    stores: Sequence[Store],
    products: Sequence[Product],
    metadata: ReportMetadata,
    store_id: UUID | None = None,
    product_id: UUID | None = None,
) -> ProfitLossReport:
    """
    Profit and loss over a closed interval.

    ``store_id`` restricts invoices to one store; ``product_id`` restricts
    invoice lines (and the adjustments of that product's batches).
    Invoices are listed oldest first; the store and product breakdowns are
    ordered by profit descending.
    """
    batch_costs = {b.id: to_decimal(b.cost_price) for b in batches}
    batch_products = {b.id: b.product_id for b in batches}
    store_names = {s.id: s.name for s in stores}
    product_names = {p.id: p.name for p in products}
    included = sorted(
        reportable_invoices(invoices, period, store_id),
        key=lambda inv: (inv.created_at, inv.invoice_number),
    )
    lines_by_invoice: dict[UUID, list[InvoiceLine]] = defaultdict(list)
    for line in lines:
        lines_by_invoice[line.invoice_id].append(line)

    invoice_rows: list[InvoiceProfitLine] = []
    per_store: dict[UUID | None, _Breakdown] = {}
    per_product: dict[UUID, _Breakdown] = {}
    total_paid = ZERO
    total_due = ZERO

    for invoice in included:
        cogs = ZERO
        free_qty = ZERO
        free_cost = ZERO
        filtered_total = ZERO
        matched = False
        for line in lines_by_invoice.get(invoice.id, ()):
            if product_id is not None and line.product_id != product_id:
                continue
            matched = True
            cost = line_unit_cost(line, batch_costs)
            sold = to_decimal(line.quantity)
            free = to_decimal(line.free_quantity)
            line_cogs = cost * sold
            cogs += line_cogs
            if free > 0:
                free_qty += free
                free_cost += cost * free
            filtered_total += to_decimal(line.total)

            if line.product_id in product_names:
                acc = per_product.get(line.product_id)
                if acc is None:
                    acc = _Breakdown(key=line.product_id, name=product_names[line.product_id])
                    per_product[line.product_id] = acc
                acc.sales += to_decimal(line.total)
                acc.cogs += line_cogs
                acc.quantity += sold
                acc.free_quantity += free
                acc.free_cost += cost * free

        if product_id is not None and not matched:
            continue
        invoice_total = to_decimal(invoice.total)
        paid = to_decimal(invoice.paid)
        due = to_decimal(invoice.due)
        if product_id is None:
            sales = invoice_total
        else:
            sales = filtered_total
            share = safe_divide(filtered_total, invoice_total) if invoice_total > 0 else ZERO
            paid *= share
            due *= share
        total_paid += paid
        total_due += due

        profit = sales - cogs
        store_name = store_names.get(invoice.store_id, NO_STORE_NAME)
        invoice_rows.append(InvoiceProfitLine(
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            created_at=invoice.created_at,
            store_id=invoice.store_id,
            store_name=store_name,
            total=sales,
            paid=paid,
            due=due,
            cogs=cogs,
            profit=profit,
            profit_margin=margin_percent(profit, sales),
            free_quantity=free_qty,
            free_cost=free_cost,
        ))

        acc = per_store.get(invoice.store_id)
        if acc is None:
            acc = _Breakdown(key=invoice.store_id, name=store_name)
            per_store[invoice.store_id] = acc
        acc.sales += sales
        acc.cogs += cogs
        acc.free_quantity += free_qty
        acc.free_cost += free_cost

    returned, written_off = _adjustment_totals(
        adjustments,
        period=period,
        batch_costs=batch_costs,
        batch_products=batch_products,
        invoice_ids={inv.id for inv in included} if store_id is not None else None,
        product_id=product_id,
    )

    total_sales = sum((row.total for row in invoice_rows), ZERO)
    total_cogs = sum((row.cogs for row in invoice_rows), ZERO)
    gross_profit = total_sales - total_cogs
    net_profit = gross_profit + returned - written_off

    metrics = ProfitLossMetrics(
        total_sales=total_sales,
        total_paid=total_paid,
        total_due=total_due,
        total_cogs=total_cogs,
        gross_profit=gross_profit,
        return_adjustment=returned,
        damage_write_off=written_off,
        net_profit=net_profit,
        invoice_count=len(invoice_rows),
        profit_margin=margin_percent(net_profit, total_sales),
        free_quantity=sum((row.free_quantity for row in invoice_rows), ZERO),
        free_cost=sum((row.free_cost for row in invoice_rows), ZERO),
    )

    logger.debug(
        "profit_loss_built",
        extra={
            "invoices_considered": len(invoices),
            "invoices_included": len(invoice_rows),
            "adjustments_considered": len(adjustments),
        },
    )

    return ProfitLossReport(
        metadata=metadata,
        metrics=metrics,
        invoices=tuple(invoice_rows),
        by_store=_by_profit(per_store.values()),
        by_product=_by_profit(per_product.values()),
    )
