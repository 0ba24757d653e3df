"""
Module: stock_kernel.models.raw_material
Responsibility: ORM persistence for raw materials, their lots and the signed
    movement ledger that explains every lot balance.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/.  MUST NOT import from services/, selectors/ or outer layers.

Invariants enforced:
    - Quantities and costs are Decimal (Numeric(38,9)), never float.
    - Enum fields are stored as String(50) for portability.
    - Movements are append-only: the mutation service never updates or
      deletes a movement row; corrections are new ADJUSTMENT rows.
    - lot.current_balance is maintained by the mutation service in the same
      transaction as the movement that changes it.

Failure modes:
    - IntegrityError on a lot or movement whose material_id does not exist.

Audit relevance:
    The movement table is the authoritative history.  A lot's stored balance
    is a running total that reconciliation checks against the signed sum of
    the lot's movements.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import TrackedBase, UUIDString
from stock_kernel.domain.dtos import (
    Lot,
    Material,
    MaterialType,
    Movement,
    MovementType,
    StorageCondition,
)
from stock_kernel.domain.values import ZERO, ensure_utc, to_decimal


class RawMaterialModel(TrackedBase):
    """
    ORM model for the raw material master.

    Maps to: stock_kernel.domain.dtos.Material (frozen dataclass).

    Guarantees:
        - reorder_level and min_stock default to zero.
        - Soft deletion sets is_deleted; rows are never physically removed
          while lots reference them.
    """

    __tablename__ = "raw_materials"

    __table_args__ = (
        Index("idx_raw_material_name", "name"),
        Index("idx_raw_material_type", "type"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    material_type: Mapped[str] = mapped_column(
        "type", String(50), nullable=False, default=MaterialType.CHEMICAL.value,
    )
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default="kg")
    reorder_level: Mapped[Decimal] = mapped_column(default=ZERO)
    min_stock: Mapped[Decimal] = mapped_column(default=ZERO)
    storage_condition: Mapped[str] = mapped_column(
        String(50), nullable=False, default=StorageCondition.DRY.value,
    )
    supplier: Mapped[str | None] = mapped_column(String(255), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def to_dto(self) -> Material:
        return Material(
            id=self.id,
            name=self.name,
            material_type=MaterialType(self.material_type),
            unit=self.unit,
            reorder_level=to_decimal(self.reorder_level),
            min_stock=to_decimal(self.min_stock),
            storage_condition=StorageCondition(self.storage_condition),
            supplier=self.supplier,
            active=bool(self.active),
            is_deleted=bool(self.is_deleted),
        )

    def __repr__(self) -> str:
        return f"<RawMaterial {self.id}: {self.name} ({self.material_type})>"


class RawMaterialLotModel(TrackedBase):
    """
    ORM model for a received lot of a raw material.

    Maps to: stock_kernel.domain.dtos.Lot (frozen dataclass).

    Guarantees:
        - unit_cost and quantity_received are frozen at receipt.
        - current_balance is the running signed sum of the lot's movements.
        - (material_id, received_date) index supports "latest lot" lookups.
    """

    __tablename__ = "raw_material_lots"

    __table_args__ = (
        Index("idx_rm_lot_material_received", "material_id", "received_date"),
        Index("idx_rm_lot_expiry", "expiry_date"),
    )

    material_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("raw_materials.id"), nullable=False,
    )
    lot_number: Mapped[str] = mapped_column(String(100), nullable=False)
    received_date: Mapped[date] = mapped_column(Date, nullable=False)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    unit_cost: Mapped[Decimal] = mapped_column(default=ZERO)
    quantity_received: Mapped[Decimal] = mapped_column(default=ZERO)
    current_balance: Mapped[Decimal] = mapped_column(default=ZERO)
    location: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def to_dto(self) -> Lot:
        return Lot(
            id=self.id,
            material_id=self.material_id,
            lot_number=self.lot_number,
            received_date=self.received_date,
            expiry_date=self.expiry_date,
            unit_cost=to_decimal(self.unit_cost),
            quantity_received=to_decimal(self.quantity_received),
            current_balance=to_decimal(self.current_balance),
            location=self.location,
            is_deleted=bool(self.is_deleted),
        )

    def __repr__(self) -> str:
        return (
            f"<RawMaterialLot {self.lot_number}: material={self.material_id} "
            f"balance={self.current_balance} @ {self.unit_cost}>"
        )


class RawMaterialMovementModel(TrackedBase):
    """
    ORM model for one signed stock movement.

    Maps to: stock_kernel.domain.dtos.Movement (frozen dataclass).

    Guarantees:
        - quantity is signed: positive for receipts, negative for issues.
        - unit_cost records the cost in effect when the movement was written.
        - (material_id, created_at) index supports period-bounded scans.
    """

    __tablename__ = "raw_material_movements"

    __table_args__ = (
        Index("idx_rm_movement_material_created", "material_id", "created_at"),
        Index("idx_rm_movement_lot", "lot_id"),
        Index("idx_rm_movement_type", "type"),
    )

    material_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("raw_materials.id"), nullable=False,
    )
    lot_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("raw_material_lots.id"), nullable=True,
    )
    movement_type: Mapped[str] = mapped_column("type", String(50), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(default=ZERO)
    invoice_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reference: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self) -> Movement:
        created_at: datetime | None = self.created_at
        return Movement(
            id=self.id,
            material_id=self.material_id,
            lot_id=self.lot_id,
            movement_type=MovementType.parse(self.movement_type),
            quantity=to_decimal(self.quantity),
            unit_cost=to_decimal(self.unit_cost),
            created_at=ensure_utc(created_at) if created_at is not None else None,
            invoice_number=self.invoice_number,
            reference=self.reference,
            reason=self.reason,
            notes=self.notes,
            created_by=self.created_by,
        )

    def __repr__(self) -> str:
        return (
            f"<RawMaterialMovement {self.movement_type}: lot={self.lot_id} "
            f"qty={self.quantity}>"
        )
