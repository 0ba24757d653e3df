"""
Stock Reporting Domain Models (``stock_modules.reporting.models``).

Responsibility
--------------
Frozen dataclass view-models for the raw material reports: current stock,
stock movement, valuation, consumption, expiry, the dashboard summary and
lot balance reconciliation.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Built by the
pure functions in ``stock_reports.py`` and returned to callers by
``RawMaterialReportingService``.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All quantities and money fields use ``Decimal`` -- NEVER ``float``.
* Every report total equals the sum of its lines.

Audit relevance
---------------
* ``ReportMetadata`` carries the generation timestamp (from the injected
  clock) and the period, so a report can be reproduced from the same
  snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from stock_engines.expiry import ExpiryStatus
from stock_kernel.domain.dtos import Lot, Material, MaterialType, Movement, MovementType
from stock_kernel.domain.values import ZERO


# =========================================================================
# Enums
# =========================================================================


class ReportType(str, Enum):
    """Report names; the value is the export filename stem."""

    CURRENT_STOCK = "current-stock"
    STOCK_MOVEMENT = "stock-movement"
    VALUATION = "stock-valuation"
    CONSUMPTION = "consumption"
    EXPIRY = "expiry-report"
    DASHBOARD = "dashboard"
    LOT_RECONCILIATION = "lot-reconciliation"
    STORE_DISCOUNT_SUMMARY = "store-discount-summary"
    PROFIT_LOSS = "profit-loss"


# =========================================================================
# Report Metadata (common to all reports)
# =========================================================================


@dataclass(frozen=True)
class ReportMetadata:
    """Metadata attached to every stock report."""

    report_type: ReportType
    entity_name: str
    currency: str
    as_of_date: date
    generated_at: str  # ISO format timestamp from injected clock
    period_start: date | None = None
    period_end: date | None = None


# =========================================================================
# Current stock
# =========================================================================


@dataclass(frozen=True)
class CurrentStockLine:
    material: Material
    total_balance: Decimal
    average_cost: Decimal
    total_value: Decimal
    is_low_stock: bool
    lots: tuple[Lot, ...] = ()


@dataclass(frozen=True)
class CurrentStockReport:
    metadata: ReportMetadata
    lines: tuple[CurrentStockLine, ...]
    total_value: Decimal = ZERO

    @property
    def line_count(self) -> int:
        return len(self.lines)

    @property
    def low_stock_lines(self) -> tuple[CurrentStockLine, ...]:
        """Low-stock materials that still hold some stock."""
        return tuple(
            line for line in self.lines
            if line.is_low_stock and line.total_balance > 0
        )

    def line_for(self, material_id: UUID) -> CurrentStockLine | None:
        for line in self.lines:
            if line.material.id == material_id:
                return line
        return None


# =========================================================================
# Stock movement
# =========================================================================


@dataclass(frozen=True)
class StockMovementLine:
    """
    Opening / in / out / closing for one material over the report period.

    closing_balance == opening_balance + in_quantity - out_quantity.
    """

    material: Material
    unit_cost: Decimal
    opening_balance: Decimal
    opening_value: Decimal
    in_quantity: Decimal
    in_value: Decimal
    out_quantity: Decimal
    out_value: Decimal
    closing_balance: Decimal
    closing_value: Decimal

    @property
    def is_all_zero(self) -> bool:
        return (
            self.opening_balance == 0
            and self.in_quantity == 0
            and self.out_quantity == 0
            and self.closing_balance == 0
        )


@dataclass(frozen=True)
class StockMovementReport:
    metadata: ReportMetadata
    lines: tuple[StockMovementLine, ...]
    total_opening_value: Decimal = ZERO
    total_in_value: Decimal = ZERO
    total_out_value: Decimal = ZERO
    total_closing_value: Decimal = ZERO

    def line_for(self, material_id: UUID) -> StockMovementLine | None:
        for line in self.lines:
            if line.material.id == material_id:
                return line
        return None


# =========================================================================
# Valuation
# =========================================================================


@dataclass(frozen=True)
class ValuationLotLine:
    lot: Lot
    balance: Decimal
    unit_cost: Decimal
    value: Decimal


@dataclass(frozen=True)
class ValuationLine:
    material: Material
    lots: tuple[ValuationLotLine, ...]
    total_balance: Decimal
    weighted_average_cost: Decimal
    total_value: Decimal


@dataclass(frozen=True)
class TypeSubtotal:
    material_type: MaterialType
    material_count: int
    total_value: Decimal


@dataclass(frozen=True)
class ValuationReport:
    metadata: ReportMetadata
    lines: tuple[ValuationLine, ...]
    grand_total: Decimal = ZERO
    subtotals_by_type: tuple[TypeSubtotal, ...] = ()


# =========================================================================
# Consumption
# =========================================================================


@dataclass(frozen=True)
class ConsumptionReasonLine:
    reason: MovementType
    quantity: Decimal
    value: Decimal
    movements: tuple[Movement, ...] = ()


@dataclass(frozen=True)
class ConsumptionLine:
    material: Material
    by_reason: tuple[ConsumptionReasonLine, ...]
    total_quantity: Decimal
    total_value: Decimal


@dataclass(frozen=True)
class ReasonTotal:
    reason: MovementType
    quantity: Decimal
    value: Decimal


@dataclass(frozen=True)
class ConsumptionReport:
    metadata: ReportMetadata
    lines: tuple[ConsumptionLine, ...]
    total_quantity: Decimal = ZERO
    total_value: Decimal = ZERO
    by_reason: tuple[ReasonTotal, ...] = ()

    def reason_total(self, reason: MovementType) -> ReasonTotal | None:
        for total in self.by_reason:
            if total.reason == reason:
                return total
        return None


# =========================================================================
# Expiry
# =========================================================================


@dataclass(frozen=True)
class ExpiryLine:
    lot: Lot
    material: Material
    days_until_expiry: int
    status: ExpiryStatus
    loss_value: Decimal


@dataclass(frozen=True)
class ExpiryReport:
    metadata: ReportMetadata
    threshold_days: int
    lines: tuple[ExpiryLine, ...]
    expired: tuple[ExpiryLine, ...] = ()
    expiring_soon: tuple[ExpiryLine, ...] = ()
    total_expired_value: Decimal = ZERO
    total_expiring_soon_value: Decimal = ZERO


# =========================================================================
# Dashboard
# =========================================================================


@dataclass(frozen=True)
class ConsumedMaterial:
    material: Material
    total_quantity: Decimal


@dataclass(frozen=True)
class TypeStock:
    material_type: MaterialType
    count: int
    value: Decimal


@dataclass(frozen=True)
class DashboardSummary:
    metadata: ReportMetadata
    materials_in_stock: int
    total_value: Decimal
    low_stock_count: int
    expired_count: int
    expiring_soon_count: int
    low_stock_items: tuple[CurrentStockLine, ...] = ()
    expired_lots: tuple[ExpiryLine, ...] = ()
    expiring_soon_lots: tuple[ExpiryLine, ...] = ()
    recent_movements: tuple[Movement, ...] = ()
    top_consumed: tuple[ConsumedMaterial, ...] = ()
    stock_by_type: tuple[TypeStock, ...] = ()


# =========================================================================
# Lot balance reconciliation
# =========================================================================


@dataclass(frozen=True)
class LotReconciliationLine:
    lot_id: UUID
    lot_number: str
    material_id: UUID
    material_name: str
    stored_balance: Decimal
    derived_balance: Decimal
    difference: Decimal


@dataclass(frozen=True)
class LotReconciliationReport:
    metadata: ReportMetadata
    lots_checked: int
    discrepancies: tuple[LotReconciliationLine, ...] = ()

    @property
    def is_clean(self) -> bool:
        return not self.discrepancies
