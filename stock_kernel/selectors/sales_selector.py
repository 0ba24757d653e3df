"""
Sales query selector.

Read-only access to stores, products, batches, invoices, invoice lines and
stock adjustments for the store discount summary and the profit and loss
report.  Invoice status filtering is left to the summary
builder so that the selector stays a plain snapshot.
"""

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy import select

from stock_kernel.domain.dtos import (
    Batch,
    Invoice,
    InvoiceLine,
    Product,
    StockAdjustment,
    Store,
)
from stock_kernel.domain.values import ensure_utc
from stock_kernel.models.sales import (
    BatchModel,
    InvoiceLineModel,
    InvoiceModel,
    ProductModel,
    StockAdjustmentModel,
    StoreModel,
)
from stock_kernel.selectors.base import BaseSelector


class SalesSelector(BaseSelector):
    """Selector for sales documents."""

    def stores(self) -> tuple[Store, ...]:
        stmt = select(StoreModel).order_by(StoreModel.name, StoreModel.id)
        return tuple(s.to_dto() for s in self.session.scalars(stmt))

    def products(self) -> tuple[Product, ...]:
        stmt = select(ProductModel).order_by(ProductModel.name, ProductModel.id)
        return tuple(p.to_dto() for p in self.session.scalars(stmt))

    def invoices(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> tuple[Invoice, ...]:
        """Invoices created within the closed interval [start, end]."""
        stmt = select(InvoiceModel)
        if start is not None:
            stmt = stmt.where(InvoiceModel.created_at >= ensure_utc(start))
        if end is not None:
            stmt = stmt.where(InvoiceModel.created_at <= ensure_utc(end))
        stmt = stmt.order_by(InvoiceModel.created_at, InvoiceModel.id)
        return tuple(i.to_dto() for i in self.session.scalars(stmt))

    def invoice_lines(
        self,
        invoice_ids: Iterable[UUID] | None = None,
    ) -> tuple[InvoiceLine, ...]:
        """Lines of the given invoices, or every line when ``invoice_ids`` is None."""
        stmt = select(InvoiceLineModel)
        if invoice_ids is not None:
            ids = list(invoice_ids)
            if not ids:
                return ()
            stmt = stmt.where(InvoiceLineModel.invoice_id.in_(ids))
        stmt = stmt.order_by(InvoiceLineModel.invoice_id, InvoiceLineModel.id)
        return tuple(line.to_dto() for line in self.session.scalars(stmt))

    def batches(self) -> tuple[Batch, ...]:
        stmt = select(BatchModel).order_by(BatchModel.batch_number, BatchModel.id)
        return tuple(b.to_dto() for b in self.session.scalars(stmt))

    def stock_adjustments(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> tuple[StockAdjustment, ...]:
        """Adjustments created within the closed interval [start, end]."""
        stmt = select(StockAdjustmentModel)
        if start is not None:
            stmt = stmt.where(StockAdjustmentModel.created_at >= ensure_utc(start))
        if end is not None:
            stmt = stmt.where(StockAdjustmentModel.created_at <= ensure_utc(end))
        stmt = stmt.order_by(StockAdjustmentModel.created_at, StockAdjustmentModel.id)
        return tuple(a.to_dto() for a in self.session.scalars(stmt))
