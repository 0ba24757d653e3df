"""
Stock query selector.

Read-only access to the raw material master, lots and the movement ledger.

Key design decisions:
- Returns tuples of frozen DTOs, not ORM models
- Soft-deleted rows are returned; the report builders decide what counts
- Period bounds are closed at both ends and compared in UTC
- Uses the caller's Session, never creates its own
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select

from stock_kernel.domain.dtos import Lot, Material, Movement
from stock_kernel.domain.values import ensure_utc
from stock_kernel.logging_config import get_logger
from stock_kernel.models.raw_material import (
    RawMaterialLotModel,
    RawMaterialModel,
    RawMaterialMovementModel,
)
from stock_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.stock")


class StockSelector(BaseSelector):
    """Selector for materials, lots and movements."""

    def materials(self) -> tuple[Material, ...]:
        """All materials, including inactive and soft-deleted ones."""
        stmt = select(RawMaterialModel).order_by(
            RawMaterialModel.name, RawMaterialModel.id,
        )
        rows = tuple(m.to_dto() for m in self.session.scalars(stmt))
        logger.debug("materials_fetched", extra={"row_count": len(rows)})
        return rows

    def get_material(self, material_id: UUID) -> Material | None:
        model = self.session.get(RawMaterialModel, material_id)
        return model.to_dto() if model is not None else None

    def lots(self, material_id: UUID | None = None) -> tuple[Lot, ...]:
        """All lots, optionally for one material, oldest receipt first."""
        stmt = select(RawMaterialLotModel)
        if material_id is not None:
            stmt = stmt.where(RawMaterialLotModel.material_id == material_id)
        stmt = stmt.order_by(
            RawMaterialLotModel.received_date, RawMaterialLotModel.id,
        )
        rows = tuple(lot.to_dto() for lot in self.session.scalars(stmt))
        logger.debug("lots_fetched", extra={"row_count": len(rows)})
        return rows

    def movements(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        material_id: UUID | None = None,
    ) -> tuple[Movement, ...]:
        """
        Movements with ``start <= created_at <= end``, oldest first.

        Either bound may be omitted.  The movement report passes only ``end``
        so that the opening balance can be derived from earlier movements.
        """
        stmt = select(RawMaterialMovementModel)
        if start is not None:
            stmt = stmt.where(RawMaterialMovementModel.created_at >= ensure_utc(start))
        if end is not None:
            stmt = stmt.where(RawMaterialMovementModel.created_at <= ensure_utc(end))
        if material_id is not None:
            stmt = stmt.where(RawMaterialMovementModel.material_id == material_id)
        stmt = stmt.order_by(
            RawMaterialMovementModel.created_at, RawMaterialMovementModel.id,
        )
        rows = tuple(m.to_dto() for m in self.session.scalars(stmt))
        logger.debug(
            "movements_fetched",
            extra={
                "row_count": len(rows),
                "start": start,
                "end": end,
                "material_id": material_id,
            },
        )
        return rows

    def recent_movements(self, limit: int = 20) -> tuple[Movement, ...]:
        """The ``limit`` most recent movements, newest first."""
        stmt = (
            select(RawMaterialMovementModel)
            .order_by(
                RawMaterialMovementModel.created_at.desc(),
                RawMaterialMovementModel.id.desc(),
            )
            .limit(limit)
        )
        return tuple(m.to_dto() for m in self.session.scalars(stmt))
