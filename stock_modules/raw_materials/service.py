"""
Raw Material Service (``stock_modules.raw_materials.service``).

Responsibility
--------------
Writes to the raw material ledger: the material master (including
permanent deletion of a material with no lots), lot receipts and lot
master edits, stock-in, stock-out, signed adjustments and lot soft
deletion.  Every balance change is written together with the movement
that explains it.

Architecture position
---------------------
**Modules layer** -- imperative shell.  Constructor: ``session`` +
``clock`` + ``config`` + ``cache``.  The cache is the one shared with the
reporting services; this class is the only writer that invalidates it.

Invariants enforced
-------------------
* Movements are append-only.  Corrections are new ``ADJUSTMENT`` rows.
* ``lot.current_balance`` changes in the same transaction as its movement,
  so a lot's balance always equals the signed sum of its movements.
* Stock-out never takes a lot below zero; adjustment never leaves a lot
  below zero.
* Movement ``created_at`` comes from the injected clock.

Failure modes
-------------
* ``MaterialNotFoundError`` / ``LotNotFoundError`` for unknown ids.
* ``MaterialInactiveError`` when receiving into an inactive or deleted
  material (unless ``reject_inactive_materials`` is off).
* ``DuplicateLotNumberError`` when a lot number is reused for a material.
* ``MaterialHasLotsError`` when permanently deleting a material that still
  has lots (soft-deleted lots included).
* ``InvalidMovementError`` for a movement type that does not belong to the
  operation, a non-positive quantity, or a write to a deleted lot.
* ``InsufficientStockError``, ``ExpiredLotError``, ``NegativeBalanceError``.
* Any failure rolls the session back and re-raises; the cache is left
  untouched because nothing was written.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.dtos import (
    CONSUMPTION_REASONS,
    STOCK_IN_TYPES,
    Lot,
    Material,
    MaterialType,
    MaterialUnit,
    Movement,
    MovementType,
    StorageCondition,
)
from stock_kernel.domain.values import ZERO, to_decimal
from stock_kernel.exceptions import (
    DuplicateLotNumberError,
    ExpiredLotError,
    InsufficientStockError,
    InvalidMovementError,
    LotNotFoundError,
    MaterialHasLotsError,
    MaterialInactiveError,
    MaterialNotFoundError,
    NegativeBalanceError,
)
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.models.raw_material import (
    RawMaterialLotModel,
    RawMaterialModel,
    RawMaterialMovementModel,
)
from stock_kernel.services.snapshot_cache import LOTS, MATERIALS, STOCK_FAMILIES, SnapshotCache
from stock_modules.raw_materials.config import RawMaterialsConfig

logger = get_logger("modules.raw_materials.service")

UPDATABLE_MATERIAL_FIELDS = frozenset({
    "name",
    "material_type",
    "unit",
    "reorder_level",
    "min_stock",
    "storage_condition",
    "supplier",
    "active",
})

UPDATABLE_LOT_FIELDS = frozenset({
    "lot_number",
    "expiry_date",
    "location",
    "unit_cost",
})


class RawMaterialService:
    """
    Raw material ledger writes.

    Contract
    --------
    * Each public method is one transaction: commit on success, rollback
      and re-raise on failure.
    * Each public method returns a frozen DTO of the row it wrote.

    Guarantees
    ----------
    * Successful writes invalidate the snapshot families they touch:
      material master edits drop ``materials``, lot master edits drop
      ``lots``, and balance writes drop every stock family.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: RawMaterialsConfig | None = None,
        cache: SnapshotCache | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or RawMaterialsConfig.with_defaults()
        self._cache = cache if cache is not None else SnapshotCache()

    @property
    def cache(self) -> SnapshotCache:
        return self._cache

    # =========================================================================
    # Internal helpers
    # =========================================================================

    @contextmanager
    def _transaction(self, *families: str) -> Iterator[None]:
        try:
            yield
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        self._cache.invalidate(*families)

    def _material(self, material_id: UUID) -> RawMaterialModel:
        material = self._session.get(RawMaterialModel, material_id)
        if material is None:
            raise MaterialNotFoundError(str(material_id))
        return material

    def _lot(self, lot_id: UUID) -> RawMaterialLotModel:
        lot = self._session.get(RawMaterialLotModel, lot_id)
        if lot is None:
            raise LotNotFoundError(str(lot_id))
        return lot

    def _live_lot(self, lot_id: UUID, movement_type: MovementType) -> RawMaterialLotModel:
        lot = self._lot(lot_id)
        if lot.is_deleted:
            raise InvalidMovementError(movement_type.value, f"lot {lot.lot_number} is deleted")
        return lot

    @staticmethod
    def _movement_type(value: MovementType | str, allowed, operation: str) -> MovementType:
        movement_type = MovementType.parse(value)
        if movement_type is None or movement_type not in allowed:
            raise InvalidMovementError(str(getattr(value, "value", value)), f"not a {operation} type")
        return movement_type

    @staticmethod
    def _positive(quantity: Any, movement_type: MovementType) -> Decimal:
        amount = to_decimal(quantity)
        if amount <= 0:
            raise InvalidMovementError(movement_type.value, "quantity must be positive")
        return amount

    def _write_movement(
        self,
        lot: RawMaterialLotModel,
        movement_type: MovementType,
        quantity: Decimal,
        *,
        unit_cost: Decimal | None = None,
        invoice_number: str | None = None,
        reference: str | None = None,
        reason: str | None = None,
        notes: str | None = None,
        actor: str | None = None,
    ) -> RawMaterialMovementModel:
        movement = RawMaterialMovementModel(
            material_id=lot.material_id,
            lot_id=lot.id,
            movement_type=movement_type.value,
            quantity=quantity,
            unit_cost=lot.unit_cost if unit_cost is None else unit_cost,
            invoice_number=invoice_number,
            reference=reference,
            reason=reason,
            notes=notes,
            created_at=self._clock.now(),
            created_by=actor,
        )
        lot.current_balance = to_decimal(lot.current_balance) + quantity
        self._session.add(movement)
        self._session.flush()
        return movement

    # =========================================================================
    # Material master
    # =========================================================================

    def add_material(
        self,
        *,
        name: str,
        material_type: MaterialType | str | None = None,
        unit: MaterialUnit | str | None = None,
        reorder_level: Any = ZERO,
        min_stock: Any = ZERO,
        storage_condition: StorageCondition | str | None = None,
        supplier: str | None = None,
        actor: str | None = None,
    ) -> Material:
        """Create a material master record, filling gaps from config."""
        if not name or not name.strip():
            raise ValueError("Material name is required")
        material = RawMaterialModel(
            name=name.strip(),
            material_type=MaterialType(material_type or self._config.default_material_type).value,
            unit=MaterialUnit(unit or self._config.default_unit).value,
            reorder_level=to_decimal(reorder_level),
            min_stock=to_decimal(min_stock),
            storage_condition=StorageCondition(
                storage_condition or self._config.default_storage_condition
            ).value,
            supplier=supplier,
            active=True,
            is_deleted=False,
            created_at=self._clock.now(),
            created_by=actor,
        )
        with self._transaction(MATERIALS):
            self._session.add(material)
            self._session.flush()
            dto = material.to_dto()

        logger.info(
            "material_added",
            extra={"material_id": str(dto.id), "material_name": dto.name,
                   "material_type": dto.material_type.value},
        )
        return dto

    def update_material(self, material_id: UUID, **changes: Any) -> Material:
        """
        Update master fields of a material.

        Only the fields in ``UPDATABLE_MATERIAL_FIELDS`` may be changed;
        anything else raises ``ValueError`` before the database is touched.
        """
        unknown = set(changes) - UPDATABLE_MATERIAL_FIELDS
        if unknown:
            raise ValueError(f"Cannot update material fields: {sorted(unknown)}")

        with self._transaction(MATERIALS):
            material = self._material(material_id)
            for field_name, value in changes.items():
                match field_name:
                    case "material_type":
                        value = MaterialType(value).value
                    case "unit":
                        value = MaterialUnit(value).value
                    case "storage_condition":
                        value = StorageCondition(value).value
                    case "reorder_level" | "min_stock":
                        value = to_decimal(value)
                    case "active":
                        value = bool(value)
                setattr(material, field_name, value)
            self._session.flush()
            dto = material.to_dto()

        logger.info(
            "material_updated",
            extra={"material_id": str(material_id), "fields": sorted(changes)},
        )
        return dto

    def soft_delete_material(self, material_id: UUID) -> Material:
        """Hide a material from reports; its lots and movements remain."""
        return self._set_material_deleted(material_id, True)

    def restore_material(self, material_id: UUID) -> Material:
        return self._set_material_deleted(material_id, False)

    def _set_material_deleted(self, material_id: UUID, deleted: bool) -> Material:
        with self._transaction(MATERIALS):
            material = self._material(material_id)
            material.is_deleted = deleted
            self._session.flush()
            dto = material.to_dto()

        logger.info(
            "material_deleted" if deleted else "material_restored",
            extra={"material_id": str(material_id)},
        )
        return dto

    def delete_material_permanently(self, material_id: UUID) -> Material:
        """
        Remove a material row for good.

        Only a material that never received a lot can be removed; lots keep
        the movement history that reports are built from, so a material
        with any lot (soft-deleted ones included) is soft-deleted instead.

        Raises:
            MaterialHasLotsError: At least one lot references the material.
        """
        with self._transaction(MATERIALS):
            material = self._material(material_id)
            lot_count = self._session.scalar(
                select(func.count())
                .select_from(RawMaterialLotModel)
                .where(RawMaterialLotModel.material_id == material_id)
            )
            if lot_count:
                raise MaterialHasLotsError(str(material_id), lot_count)
            dto = material.to_dto()
            self._session.delete(material)
            self._session.flush()

        logger.warning(
            "material_deleted_permanently",
            extra={"material_id": str(material_id), "material_name": dto.name},
        )
        return dto

    # =========================================================================
    # Lots and movements
    # =========================================================================

    def receive_lot(
        self,
        *,
        material_id: UUID,
        lot_number: str,
        quantity: Any,
        unit_cost: Any,
        received_date: date | None = None,
        expiry_date: date | None = None,
        location: str | None = None,
        invoice_number: str | None = None,
        reference: str | None = None,
        notes: str | None = None,
        actor: str | None = None,
    ) -> Lot:
        """
        Receive a new lot.

        The lot is created with a zero balance and a ``RECEIVE`` movement of
        the received quantity brings it to ``quantity``.
        """
        amount = self._positive(quantity, MovementType.RECEIVE)
        cost = to_decimal(unit_cost)
        if cost < 0:
            raise InvalidMovementError(MovementType.RECEIVE.value, "unit cost cannot be negative")

        with LogContext.bind(material_id=str(material_id), actor_id=actor):
            with self._transaction(*STOCK_FAMILIES):
                material = self._material(material_id)
                if self._config.reject_inactive_materials and (
                    material.is_deleted or not material.active
                ):
                    raise MaterialInactiveError(str(material_id), material.name)
                if self._config.unique_lot_numbers:
                    existing = self._session.scalars(
                        select(RawMaterialLotModel.id)
                        .where(RawMaterialLotModel.material_id == material_id)
                        .where(RawMaterialLotModel.lot_number == lot_number)
                        .limit(1)
                    ).first()
                    if existing is not None:
                        raise DuplicateLotNumberError(str(material_id), lot_number)

                lot = RawMaterialLotModel(
                    material_id=material_id,
                    lot_number=lot_number,
                    received_date=received_date or self._clock.today(),
                    expiry_date=expiry_date,
                    unit_cost=cost,
                    quantity_received=amount,
                    current_balance=ZERO,
                    location=location,
                    is_deleted=False,
                    created_at=self._clock.now(),
                    created_by=actor,
                )
                self._session.add(lot)
                self._session.flush()
                self._write_movement(
                    lot, MovementType.RECEIVE, amount,
                    unit_cost=cost,
                    invoice_number=invoice_number,
                    reference=reference,
                    notes=notes,
                    actor=actor,
                )
                dto = lot.to_dto()

            logger.info(
                "lot_received",
                extra={"lot_id": str(dto.id), "lot_number": lot_number,
                       "quantity": str(amount), "unit_cost": str(cost)},
            )
        return dto

    def stock_in(
        self,
        *,
        lot_id: UUID,
        movement_type: MovementType | str,
        quantity: Any,
        location: str | None = None,
        invoice_number: str | None = None,
        reference: str | None = None,
        notes: str | None = None,
        actor: str | None = None,
    ) -> Movement:
        """Add stock to an existing lot, optionally moving it to ``location``."""
        kind = self._movement_type(movement_type, STOCK_IN_TYPES, "stock-in")
        amount = self._positive(quantity, kind)

        with LogContext.bind(lot_id=str(lot_id), actor_id=actor):
            with self._transaction(*STOCK_FAMILIES):
                lot = self._live_lot(lot_id, kind)
                if location:
                    lot.location = location
                movement = self._write_movement(
                    lot, kind, amount,
                    invoice_number=invoice_number,
                    reference=reference,
                    notes=notes,
                    actor=actor,
                )
                dto = movement.to_dto()
                balance = lot.current_balance

            logger.info(
                "stock_in_recorded",
                extra={"movement_type": kind.value, "quantity": str(amount),
                       "balance": str(balance)},
            )
        return dto

    def stock_out(
        self,
        *,
        lot_id: UUID,
        movement_type: MovementType | str,
        quantity: Any,
        reference: str | None = None,
        notes: str | None = None,
        actor: str | None = None,
    ) -> Movement:
        """
        Issue stock from a lot for production, samples, waste or transfer.

        Raises:
            InsufficientStockError: The lot holds less than ``quantity``.
            ExpiredLotError: The lot's expiry date is before today.  A lot
                can still be issued on its expiry date.
        """
        kind = self._movement_type(movement_type, CONSUMPTION_REASONS, "stock-out")
        amount = self._positive(quantity, kind)

        with LogContext.bind(lot_id=str(lot_id), actor_id=actor):
            with self._transaction(*STOCK_FAMILIES):
                lot = self._live_lot(lot_id, kind)
                available = to_decimal(lot.current_balance)
                if available < amount:
                    raise InsufficientStockError(str(lot_id), lot.lot_number, amount, available)
                if lot.expiry_date is not None and lot.expiry_date < self._clock.today():
                    raise ExpiredLotError(str(lot_id), lot.lot_number, lot.expiry_date.isoformat())
                movement = self._write_movement(
                    lot, kind, -amount,
                    reason=kind.value,
                    reference=reference,
                    notes=notes,
                    actor=actor,
                )
                dto = movement.to_dto()
                balance = lot.current_balance

            logger.info(
                "stock_out_recorded",
                extra={"movement_type": kind.value, "quantity": str(amount),
                       "balance": str(balance)},
            )
        return dto

    def adjust(
        self,
        *,
        lot_id: UUID,
        quantity: Any,
        reason: str,
        notes: str | None = None,
        actor: str | None = None,
    ) -> Movement:
        """
        Correct a lot balance by a signed quantity.

        Raises:
            NegativeBalanceError: The adjusted balance would be below zero.
        """
        amount = to_decimal(quantity)
        if amount == 0:
            raise InvalidMovementError(MovementType.ADJUSTMENT.value, "quantity cannot be zero")
        if not reason or not reason.strip():
            raise InvalidMovementError(MovementType.ADJUSTMENT.value, "a reason is required")

        with LogContext.bind(lot_id=str(lot_id), actor_id=actor):
            with self._transaction(*STOCK_FAMILIES):
                lot = self._live_lot(lot_id, MovementType.ADJUSTMENT)
                current = to_decimal(lot.current_balance)
                if current + amount < 0:
                    raise NegativeBalanceError(str(lot_id), current, amount)
                movement = self._write_movement(
                    lot, MovementType.ADJUSTMENT, amount,
                    reason=reason.strip(),
                    notes=notes,
                    actor=actor,
                )
                dto = movement.to_dto()

            logger.warning(
                "stock_adjusted",
                extra={"quantity": str(amount), "previous_balance": str(current),
                       "reason": reason.strip()},
            )
        return dto

    def update_lot(self, lot_id: UUID, **changes: Any) -> Lot:
        """
        Edit lot master data.

        Only the fields in ``UPDATABLE_LOT_FIELDS`` may be changed.  The
        balance is never touched here: quantities move through stock-in,
        stock-out and adjustment so that every change has a movement.  A
        new ``unit_cost`` values the remaining balance; movements already
        written keep the cost they were recorded at.

        Raises:
            ValueError: Unknown field, blank lot number or negative cost.
            DuplicateLotNumberError: The new lot number is already used for
                the same material.
        """
        unknown = set(changes) - UPDATABLE_LOT_FIELDS
        if unknown:
            raise ValueError(f"Cannot update lot fields: {sorted(unknown)}")

        values: dict[str, Any] = {}
        for field_name, value in changes.items():
            match field_name:
                case "lot_number":
                    if not value or not str(value).strip():
                        raise ValueError("Lot number is required")
                    value = str(value).strip()
                case "expiry_date":
                    if isinstance(value, str):
                        value = date.fromisoformat(value) if value.strip() else None
                case "location":
                    value = value or None
                case "unit_cost":
                    value = to_decimal(value)
                    if value < 0:
                        raise ValueError("Unit cost cannot be negative")
            values[field_name] = value

        with self._transaction(LOTS):
            lot = self._lot(lot_id)
            new_number = values.get("lot_number")
            if (
                self._config.unique_lot_numbers
                and new_number is not None
                and new_number != lot.lot_number
            ):
                existing = self._session.scalars(
                    select(RawMaterialLotModel.id)
                    .where(RawMaterialLotModel.material_id == lot.material_id)
                    .where(RawMaterialLotModel.lot_number == new_number)
                    .limit(1)
                ).first()
                if existing is not None:
                    raise DuplicateLotNumberError(str(lot.material_id), new_number)
            for field_name, value in values.items():
                setattr(lot, field_name, value)
            self._session.flush()
            dto = lot.to_dto()

        logger.info(
            "lot_updated",
            extra={"lot_id": str(lot_id), "lot_number": dto.lot_number,
                   "fields": sorted(changes)},
        )
        return dto

    def soft_delete_lot(self, lot_id: UUID) -> Lot:
        """Hide a lot from stock figures; its movements remain."""
        return self._set_lot_deleted(lot_id, True)

    def restore_lot(self, lot_id: UUID) -> Lot:
        return self._set_lot_deleted(lot_id, False)

    def _set_lot_deleted(self, lot_id: UUID, deleted: bool) -> Lot:
        with self._transaction(*STOCK_FAMILIES):
            lot = self._lot(lot_id)
            lot.is_deleted = deleted
            self._session.flush()
            dto = lot.to_dto()

        logger.info(
            "lot_deleted" if deleted else "lot_restored",
            extra={"lot_id": str(lot_id), "lot_number": dto.lot_number},
        )
        return dto
