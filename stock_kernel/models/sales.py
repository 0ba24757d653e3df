"""
Module: stock_kernel.models.sales
Responsibility: ORM persistence for the sales documents read by the store
    discount summary and the profit and loss report: stores, products,
    batches, invoices, invoice lines and stock adjustments.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/.  MUST NOT import from services/, selectors/ or outer layers.

Invariants enforced:
    - Monetary fields use Decimal (Numeric(38,9)).
    - discount_type is stored as String(20) with server-side default AMOUNT,
      so rows written before the column existed read as AMOUNT.

Audit relevance:
    These tables are owned by the invoicing workflow; the stock kernel only
    reads them.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import TrackedBase, UUIDString
from stock_kernel.domain.dtos import (
    AdjustmentType,
    Batch,
    DiscountKind,
    Invoice,
    InvoiceLine,
    InvoiceStatus,
    Product,
    ReturnAction,
    StockAdjustment,
    Store,
)
from stock_kernel.domain.values import ZERO, ensure_utc, to_decimal


class StoreModel(TrackedBase):
    __tablename__ = "stores"

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    def to_dto(self) -> Store:
        return Store(id=self.id, name=self.name)


class ProductModel(TrackedBase):
    __tablename__ = "products"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def to_dto(self) -> Product:
        return Product(id=self.id, name=self.name, sku=self.sku)


class BatchModel(TrackedBase):
    """
    Finished-goods batch.

    Maps to: stock_kernel.domain.dtos.Batch (frozen dataclass).
    """

    __tablename__ = "batches"

    __table_args__ = (
        Index("idx_batch_product", "product_id"),
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("products.id"), nullable=False,
    )
    batch_number: Mapped[str] = mapped_column(String(100), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(default=ZERO)
    cost_price: Mapped[Decimal] = mapped_column(default=ZERO)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    def to_dto(self) -> Batch:
        return Batch(
            id=self.id,
            product_id=self.product_id,
            batch_number=self.batch_number,
            cost_price=to_decimal(self.cost_price),
            expiry_date=self.expiry_date,
        )


class InvoiceModel(TrackedBase):
    """
    Sales invoice header.

    Maps to: stock_kernel.domain.dtos.Invoice (frozen dataclass).
    """

    __tablename__ = "invoices"

    __table_args__ = (
        Index("idx_invoice_created", "created_at"),
        Index("idx_invoice_store", "store_id"),
    )

    invoice_number: Mapped[str] = mapped_column(String(100), nullable=False)
    store_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("stores.id"), nullable=True,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=InvoiceStatus.DRAFT.value,
    )
    total: Mapped[Decimal] = mapped_column(default=ZERO)
    discount: Mapped[Decimal] = mapped_column(default=ZERO)
    paid: Mapped[Decimal] = mapped_column(default=ZERO)
    due: Mapped[Decimal] = mapped_column(default=ZERO)

    def to_dto(self) -> Invoice:
        return Invoice(
            id=self.id,
            invoice_number=self.invoice_number,
            status=InvoiceStatus(self.status),
            created_at=ensure_utc(self.created_at),
            store_id=self.store_id,
            total=to_decimal(self.total),
            discount=to_decimal(self.discount),
            paid=to_decimal(self.paid),
            due=to_decimal(self.due),
        )


class InvoiceLineModel(TrackedBase):
    """
    One product line on an invoice.

    Maps to: stock_kernel.domain.dtos.InvoiceLine (frozen dataclass).
    """

    __tablename__ = "invoice_lines"

    __table_args__ = (
        Index("idx_invoice_line_invoice", "invoice_id"),
    )

    invoice_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("invoices.id"), nullable=False,
    )
    product_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("products.id"), nullable=False,
    )
    batch_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("batches.id"), nullable=True,
    )
    quantity: Mapped[Decimal] = mapped_column(default=ZERO)
    total: Mapped[Decimal] = mapped_column(default=ZERO)
    free_quantity: Mapped[Decimal] = mapped_column(default=ZERO)
    unit_price: Mapped[Decimal] = mapped_column(default=ZERO)
    tp_rate: Mapped[Decimal] = mapped_column(default=ZERO)
    cost_price: Mapped[Decimal] = mapped_column(default=ZERO)
    discount_value: Mapped[Decimal] = mapped_column(default=ZERO)
    discount_type: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
        default=DiscountKind.AMOUNT.value,
        server_default=text("'AMOUNT'"),
    )

    def to_dto(self) -> InvoiceLine:
        return InvoiceLine(
            id=self.id,
            invoice_id=self.invoice_id,
            product_id=self.product_id,
            batch_id=self.batch_id,
            quantity=to_decimal(self.quantity),
            total=to_decimal(self.total),
            free_quantity=to_decimal(self.free_quantity),
            unit_price=to_decimal(self.unit_price),
            tp_rate=to_decimal(self.tp_rate),
            cost_price=to_decimal(self.cost_price),
            discount_value=to_decimal(self.discount_value),
            discount_type=DiscountKind.parse_or_none(self.discount_type),
        )


class StockAdjustmentModel(TrackedBase):
    """
    Finished-goods stock adjustment (damage, expiry write-off, return...).

    Maps to: stock_kernel.domain.dtos.StockAdjustment (frozen dataclass).
    """

    __tablename__ = "stock_adjustments"

    __table_args__ = (
        Index("idx_stock_adjustment_created", "created_at"),
        Index("idx_stock_adjustment_batch", "batch_id"),
    )

    product_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("products.id"), nullable=True,
    )
    batch_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("batches.id"), nullable=False,
    )
    invoice_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("invoices.id"), nullable=True,
    )
    adjustment_type: Mapped[str] = mapped_column("type", String(20), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(default=ZERO)
    return_action: Mapped[str | None] = mapped_column(String(20), nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self) -> StockAdjustment:
        return StockAdjustment(
            id=self.id,
            batch_id=self.batch_id,
            adjustment_type=AdjustmentType.parse(self.adjustment_type),
            quantity=to_decimal(self.quantity),
            created_at=ensure_utc(self.created_at),
            product_id=self.product_id,
            return_action=ReturnAction.parse(self.return_action),
            invoice_id=self.invoice_id,
            reason=self.reason,
        )
