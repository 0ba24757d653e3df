"""
DTOs -- Immutable snapshot rows for materials, lots, movements and sales.

Responsibility:
    Defines the frozen data structures that selectors return and that the
    pure report builders consume: Material, Lot, Movement for the raw
    material ledger; Store, Product, Invoice, InvoiceLine for the discount
    summary and the profit and loss report; Batch and StockAdjustment for
    cost of goods.  Also defines the closed enumerations of material types,
    movement types, discount kinds and adjustment types.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  ORM models convert to
    these via ``to_dto()``; loosely typed rows (CSV imports, API payloads)
    convert via ``from_mapping()``.

Invariants enforced:
    - Every numeric field is a finite ``Decimal`` once a DTO exists --
      ``from_mapping`` routes all numerics through ``to_decimal``.
    - Movement quantities are signed: positive = receipt, negative =
      consumption.
    - ``DiscountKind`` is parsed once at the boundary; downstream code
      handles both members exhaustively.

Failure modes:
    - ``from_mapping`` raises KeyError when ``id`` is absent; every other
      missing field takes its neutral default.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping
from uuid import UUID

from stock_kernel.domain.values import ZERO, ensure_utc, to_decimal


# =========================================================================
# Enums
# =========================================================================


class MaterialType(str, Enum):
    """Raw material classification."""

    CHEMICAL = "CHEMICAL"
    HERB = "HERB"
    PACKAGING = "PACKAGING"
    OTHER = "OTHER"


class MaterialUnit(str, Enum):
    """Stock-keeping unit of measure."""

    GRAM = "g"
    KILOGRAM = "kg"
    MILLILITER = "ml"
    LITER = "l"
    PIECES = "pcs"


class StorageCondition(str, Enum):
    DRY = "DRY"
    COOL = "COOL"
    FRIDGE = "FRIDGE"


class MovementDirection(str, Enum):
    IN = "in"
    OUT = "out"
    BOTH = "both"


class MovementType(str, Enum):
    """Stock movement types; the direction fixes the quantity sign."""

    OPENING = "OPENING"
    RECEIVE = "RECEIVE"
    PURCHASE = "PURCHASE"
    PRODUCTION = "PRODUCTION"
    SAMPLE = "SAMPLE"
    WASTE = "WASTE"
    TRANSFER_IN = "TRANSFER_IN"
    TRANSFER_OUT = "TRANSFER_OUT"
    ADJUSTMENT = "ADJUSTMENT"

    @property
    def direction(self) -> MovementDirection:
        return _MOVEMENT_DIRECTIONS[self]

    @property
    def is_consumption(self) -> bool:
        return self in CONSUMPTION_REASONS

    @classmethod
    def parse(cls, value: Any) -> MovementType | None:
        """Parse a movement type tag, returning None for unknown values."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


_MOVEMENT_DIRECTIONS = {
    MovementType.OPENING: MovementDirection.IN,
    MovementType.RECEIVE: MovementDirection.IN,
    MovementType.PURCHASE: MovementDirection.IN,
    MovementType.TRANSFER_IN: MovementDirection.IN,
    MovementType.PRODUCTION: MovementDirection.OUT,
    MovementType.SAMPLE: MovementDirection.OUT,
    MovementType.WASTE: MovementDirection.OUT,
    MovementType.TRANSFER_OUT: MovementDirection.OUT,
    MovementType.ADJUSTMENT: MovementDirection.BOTH,
}

# Reason tags that count as consumption, in report order.
CONSUMPTION_REASONS: tuple[MovementType, ...] = (
    MovementType.PRODUCTION,
    MovementType.SAMPLE,
    MovementType.WASTE,
    MovementType.TRANSFER_OUT,
)

STOCK_IN_TYPES: frozenset[MovementType] = frozenset({
    MovementType.OPENING,
    MovementType.RECEIVE,
    MovementType.PURCHASE,
    MovementType.TRANSFER_IN,
})


class DiscountKind(str, Enum):
    """How an invoice line's ``discount_value`` is expressed."""

    AMOUNT = "AMOUNT"
    PERCENT = "PERCENT"

    @classmethod
    def parse(cls, value: Any) -> DiscountKind:
        """
        Parse a stored discount type.

        Missing values take the column default (AMOUNT).  Anything else that
        is not a member raises ValueError rather than silently falling back.
        """
        if isinstance(value, cls):
            return value
        if value is None or (isinstance(value, str) and not value.strip()):
            return cls.AMOUNT
        return cls(str(value).strip().upper())

    @classmethod
    def parse_or_none(cls, value: Any) -> DiscountKind | None:
        """Like ``parse``, but an unrecognised tag reads as None."""
        try:
            return cls.parse(value)
        except ValueError:
            return None


class InvoiceStatus(str, Enum):
    DRAFT = "DRAFT"
    CONFIRMED = "CONFIRMED"
    PAID = "PAID"
    PARTIAL = "PARTIAL"
    CANCELLED = "CANCELLED"

    @property
    def is_reportable(self) -> bool:
        """Drafts and cancelled invoices never count toward sales figures."""
        return self not in (InvoiceStatus.DRAFT, InvoiceStatus.CANCELLED)


class AdjustmentType(str, Enum):
    """Reason tag on a finished-goods stock adjustment."""

    DAMAGE = "DAMAGE"
    EXPIRED = "EXPIRED"
    LOST = "LOST"
    FOUND = "FOUND"
    CORRECTION = "CORRECTION"
    RETURN = "RETURN"

    @classmethod
    def parse(cls, value: Any) -> AdjustmentType | None:
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None

    @property
    def is_write_off(self) -> bool:
        return self in (AdjustmentType.DAMAGE, AdjustmentType.EXPIRED)


class ReturnAction(str, Enum):
    """What happened to returned goods."""

    RESTOCK = "RESTOCK"
    SCRAP = "SCRAP"

    @classmethod
    def parse(cls, value: Any) -> ReturnAction | None:
        if isinstance(value, cls):
            return value
        if not isinstance(value, str) or not value.strip():
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


# =========================================================================
# Boundary helpers
# =========================================================================


def _as_uuid(value: Any) -> UUID | None:
    if value is None or value == "":
        return None
    if isinstance(value, UUID):
        return value
    return UUID(str(value))


def _as_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _as_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    text = str(value).replace("Z", "+00:00")
    return ensure_utc(datetime.fromisoformat(text))


# =========================================================================
# Raw material ledger
# =========================================================================


@dataclass(frozen=True)
class Material:
    """A raw material master record."""

    id: UUID
    name: str
    material_type: MaterialType = MaterialType.CHEMICAL
    unit: str = MaterialUnit.KILOGRAM.value
    reorder_level: Decimal = ZERO
    min_stock: Decimal = ZERO
    storage_condition: StorageCondition = StorageCondition.DRY
    supplier: str | None = None
    active: bool = True
    is_deleted: bool = False

    @property
    def is_reportable(self) -> bool:
        return self.active and not self.is_deleted

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> Material:
        return cls(
            id=_as_uuid(row["id"]),
            name=str(row.get("name") or ""),
            material_type=MaterialType(row.get("type") or MaterialType.CHEMICAL.value),
            unit=str(row.get("unit") or MaterialUnit.KILOGRAM.value),
            reorder_level=to_decimal(row.get("reorder_level")),
            min_stock=to_decimal(row.get("min_stock")),
            storage_condition=StorageCondition(
                row.get("storage_condition") or StorageCondition.DRY.value
            ),
            supplier=row.get("supplier"),
            active=bool(row.get("active", True)),
            is_deleted=bool(row.get("is_deleted", False)),
        )


@dataclass(frozen=True)
class Lot:
    """A received quantity of one material at one unit cost."""

    id: UUID
    material_id: UUID
    lot_number: str
    received_date: date | None = None
    expiry_date: date | None = None
    unit_cost: Decimal = ZERO
    quantity_received: Decimal = ZERO
    current_balance: Decimal = ZERO
    location: str | None = None
    is_deleted: bool = False

    @property
    def value(self) -> Decimal:
        """Remaining balance valued at this lot's own unit cost."""
        return to_decimal(self.current_balance) * to_decimal(self.unit_cost)

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> Lot:
        return cls(
            id=_as_uuid(row["id"]),
            material_id=_as_uuid(row.get("material_id")),
            lot_number=str(row.get("lot_number") or ""),
            received_date=_as_date(row.get("received_date")),
            expiry_date=_as_date(row.get("expiry_date")),
            unit_cost=to_decimal(row.get("unit_cost")),
            quantity_received=to_decimal(row.get("quantity_received")),
            current_balance=to_decimal(row.get("current_balance")),
            location=row.get("location"),
            is_deleted=bool(row.get("is_deleted", False)),
        )


@dataclass(frozen=True)
class Movement:
    """A single signed quantity change against a material (and usually a lot)."""

    id: UUID
    material_id: UUID
    movement_type: MovementType | None
    quantity: Decimal
    created_at: datetime | None
    lot_id: UUID | None = None
    unit_cost: Decimal = ZERO
    invoice_number: str | None = None
    reference: str | None = None
    reason: str | None = None
    notes: str | None = None
    created_by: str | None = None

    @property
    def is_receipt(self) -> bool:
        return to_decimal(self.quantity) > 0

    @property
    def is_issue(self) -> bool:
        return to_decimal(self.quantity) < 0

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> Movement:
        return cls(
            id=_as_uuid(row["id"]),
            material_id=_as_uuid(row.get("material_id")),
            movement_type=MovementType.parse(row.get("type")),
            quantity=to_decimal(row.get("quantity")),
            created_at=_as_datetime(row.get("created_at")),
            lot_id=_as_uuid(row.get("lot_id")),
            unit_cost=to_decimal(row.get("unit_cost")),
            invoice_number=row.get("invoice_number"),
            reference=row.get("reference"),
            reason=row.get("reason"),
            notes=row.get("notes"),
            created_by=row.get("created_by"),
        )


# =========================================================================
# Sales documents
# =========================================================================


@dataclass(frozen=True)
class Store:
    id: UUID
    name: str


@dataclass(frozen=True)
class Product:
    id: UUID
    name: str
    sku: str | None = None


@dataclass(frozen=True)
class Invoice:
    """Sales invoice header; ``discount`` is the invoice-level discount amount."""

    id: UUID
    invoice_number: str
    status: InvoiceStatus
    created_at: datetime
    store_id: UUID | None = None
    total: Decimal = ZERO
    discount: Decimal = ZERO
    paid: Decimal = ZERO
    due: Decimal = ZERO

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> Invoice:
        return cls(
            id=_as_uuid(row["id"]),
            invoice_number=str(row.get("invoice_number") or ""),
            status=InvoiceStatus(row.get("status") or InvoiceStatus.DRAFT.value),
            created_at=_as_datetime(row.get("created_at")),
            store_id=_as_uuid(row.get("store_id")),
            total=to_decimal(row.get("total")),
            discount=to_decimal(row.get("discount")),
            paid=to_decimal(row.get("paid")),
            due=to_decimal(row.get("due")),
        )


@dataclass(frozen=True)
class InvoiceLine:
    """
    One product line on an invoice.

    ``total`` is the line's sale value after its own discount;
    ``cost_price`` is the unit cost captured at sale time (zero when it was
    not captured, in which case the batch cost applies).
    """

    id: UUID
    invoice_id: UUID
    product_id: UUID
    batch_id: UUID | None = None
    quantity: Decimal = ZERO
    total: Decimal = ZERO
    free_quantity: Decimal = ZERO
    unit_price: Decimal = ZERO
    tp_rate: Decimal = ZERO
    cost_price: Decimal = ZERO
    discount_value: Decimal = ZERO
    # None when the stored tag is not a known kind.
    discount_type: DiscountKind | None = DiscountKind.AMOUNT

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> InvoiceLine:
        return cls(
            id=_as_uuid(row["id"]),
            invoice_id=_as_uuid(row.get("invoice_id")),
            product_id=_as_uuid(row.get("product_id")),
            batch_id=_as_uuid(row.get("batch_id")),
            quantity=to_decimal(row.get("quantity")),
            total=to_decimal(row.get("total")),
            free_quantity=to_decimal(row.get("free_quantity")),
            unit_price=to_decimal(row.get("unit_price")),
            tp_rate=to_decimal(row.get("tp_rate")),
            cost_price=to_decimal(row.get("cost_price")),
            discount_value=to_decimal(row.get("discount_value")),
            discount_type=DiscountKind.parse_or_none(row.get("discount_type")),
        )


@dataclass(frozen=True)
class Batch:
    """A finished-goods batch; ``cost_price`` is its unit cost."""

    id: UUID
    product_id: UUID
    batch_number: str
    cost_price: Decimal = ZERO
    expiry_date: date | None = None

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> Batch:
        return cls(
            id=_as_uuid(row["id"]),
            product_id=_as_uuid(row.get("product_id")),
            batch_number=str(row.get("batch_number") or ""),
            cost_price=to_decimal(row.get("cost_price")),
            expiry_date=_as_date(row.get("expiry_date")),
        )


@dataclass(frozen=True)
class StockAdjustment:
    """
    A finished-goods stock adjustment against one batch.

    ``adjustment_type`` is None when the stored tag is not recognised;
    ``return_action`` is only meaningful for RETURN adjustments.
    """

    id: UUID
    batch_id: UUID
    adjustment_type: AdjustmentType | None
    quantity: Decimal
    created_at: datetime | None
    product_id: UUID | None = None
    return_action: ReturnAction | None = None
    invoice_id: UUID | None = None
    reason: str | None = None

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> StockAdjustment:
        return cls(
            id=_as_uuid(row["id"]),
            batch_id=_as_uuid(row.get("batch_id")),
            adjustment_type=AdjustmentType.parse(row.get("type")),
            quantity=to_decimal(row.get("quantity")),
            created_at=_as_datetime(row.get("created_at")),
            product_id=_as_uuid(row.get("product_id")),
            return_action=ReturnAction.parse(row.get("return_action")),
            invoice_id=_as_uuid(row.get("invoice_id")),
            reason=row.get("reason"),
        )
