"""
Pure raw material report builders.

These functions turn selector snapshots (tuples of frozen DTOs) into the
report view-models in ``models.py``.  ZERO I/O. ZERO side effects.

All quantities and values are Decimal.  All inputs and outputs are frozen
dataclasses.

Functions in this module follow the domain purity convention:
- No database access
- No clock access (the report date arrives in ``metadata`` / ``as_of``)
- No mutation of inputs
- Deterministic: same inputs in any order always produce the same report

Dirty rows never abort a report.  Bad numerics count as zero, movements
whose material is unknown are dropped, and movements without a timestamp
are skipped with a warning.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable, Sequence
from uuid import UUID

from stock_engines.expiry import ExpiryClassifier, ExpiryStatus, ExpiryThresholds
from stock_engines.reconciliation import LotBalanceReconciler
from stock_engines.tracer import traced_engine
from stock_engines.valuation import (
    aggregate_lots,
    is_valued_lot,
    lot_value,
    material_unit_cost,
    movement_unit_cost,
)
from stock_kernel.domain.dtos import (
    CONSUMPTION_REASONS,
    Lot,
    Material,
    MaterialType,
    Movement,
)
from stock_kernel.domain.values import ZERO, ReportPeriod, to_decimal
from stock_kernel.logging_config import get_logger
from stock_modules.reporting.config import ReportingConfig
from stock_modules.reporting.models import (
    ConsumedMaterial,
    ConsumptionLine,
    ConsumptionReasonLine,
    ConsumptionReport,
    CurrentStockLine,
    CurrentStockReport,
    DashboardSummary,
    ExpiryLine,
    ExpiryReport,
    LotReconciliationLine,
    LotReconciliationReport,
    ReasonTotal,
    ReportMetadata,
    StockMovementLine,
    StockMovementReport,
    TypeStock,
    TypeSubtotal,
    ValuationLine,
    ValuationLotLine,
    ValuationReport,
)

logger = get_logger("modules.reporting.stock_reports")


# =========================================================================
# Shared helpers
# =========================================================================


def _name_key(material: Material) -> tuple[str, str]:
    return (material.name.casefold(), str(material.id))


def _reportable_materials(materials: Iterable[Material]) -> dict[UUID, Material]:
    return {m.id: m for m in materials if m.is_reportable}


def _lots_by_material(lots: Iterable[Lot]) -> dict[UUID, list[Lot]]:
    grouped: dict[UUID, list[Lot]] = defaultdict(list)
    for lot in lots:
        grouped[lot.material_id].append(lot)
    return grouped


def _sum(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)


def _timestamped(movements: Iterable[Movement], report: str) -> list[Movement]:
    """Drop movements without a timestamp, logging how many were skipped."""
    kept: list[Movement] = []
    skipped = 0
    for movement in movements:
        if movement.created_at is None:
            skipped += 1
            continue
        kept.append(movement)
    if skipped:
        logger.warning(
            "movements_without_timestamp_skipped",
            extra={"report": report, "skipped": skipped},
        )
    return kept


# =========================================================================
# 1. CURRENT STOCK
# =========================================================================


@traced_engine("current_stock", "1.0", fingerprint_fields=("materials", "lots"))
def build_current_stock_report(
    *,
    materials: Sequence[Material],
    lots: Sequence[Lot],
    metadata: ReportMetadata,
) -> CurrentStockReport:
    """
    Per-material stock on hand, valued lot by lot.

    Every active, non-deleted material is reported, including materials
    with no lots at all (balance and value zero).  Low stock means the total
    balance is strictly below the reorder level.
    """
    by_material = _lots_by_material(lots)
    lines: list[CurrentStockLine] = []

    for material in sorted(_reportable_materials(materials).values(), key=_name_key):
        aggregate = aggregate_lots(by_material.get(material.id, ()))
        lines.append(
            CurrentStockLine(
                material=material,
                total_balance=aggregate.total_balance,
                average_cost=aggregate.average_cost,
                total_value=aggregate.total_value,
                is_low_stock=aggregate.total_balance < to_decimal(material.reorder_level),
                lots=aggregate.lots,
            )
        )

    return CurrentStockReport(
        metadata=metadata,
        lines=tuple(lines),
        total_value=_sum(line.total_value for line in lines),
    )


# =========================================================================
# 2. STOCK MOVEMENT
# =========================================================================


@traced_engine(
    "stock_movement", "1.0",
    fingerprint_fields=("period", "materials", "lots", "movements"),
)
def build_stock_movement_report(
    *,
    period: ReportPeriod,
    materials: Sequence[Material],
    lots: Sequence[Lot],
    movements: Sequence[Movement],
    config: ReportingConfig,
    metadata: ReportMetadata,
) -> StockMovementReport:
    """
    Opening, in, out and closing per material over a closed interval.

    Opening is the signed sum of movements strictly before ``period.start``;
    in and out sum the positive and negative movements inside
    [start, end].  Movements after ``end`` are ignored.  Movements on
    deleted lots are excluded so the closing balance agrees with the
    current stock report.
    """
    reportable = _reportable_materials(materials)
    by_material = _lots_by_material(lots)
    deleted_lots = {lot.id for lot in lots if lot.is_deleted}

    opening: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
    in_qty: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
    out_qty: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
    in_val: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
    out_val: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
    unit_costs = {
        material_id: material_unit_cost(by_material.get(material_id, ()))
        for material_id in reportable
    }

    for movement in _timestamped(movements, "stock_movement"):
        material_id = movement.material_id
        if material_id not in reportable:
            continue
        if movement.lot_id is not None and movement.lot_id in deleted_lots:
            continue

        qty = to_decimal(movement.quantity)
        if period.is_before(movement.created_at):
            opening[material_id] += qty
        elif period.contains(movement.created_at):
            cost = movement_unit_cost(movement, unit_costs[material_id])
            if qty > 0:
                in_qty[material_id] += qty
                in_val[material_id] += qty * cost
            elif qty < 0:
                out_qty[material_id] += -qty
                out_val[material_id] += -qty * cost

    lines: list[StockMovementLine] = []
    for material in sorted(reportable.values(), key=_name_key):
        mid = material.id
        unit_cost = unit_costs[mid]
        closing = opening[mid] + in_qty[mid] - out_qty[mid]
        line = StockMovementLine(
            material=material,
            unit_cost=unit_cost,
            opening_balance=opening[mid],
            opening_value=opening[mid] * unit_cost,
            in_quantity=in_qty[mid],
            in_value=in_val[mid],
            out_quantity=out_qty[mid],
            out_value=out_val[mid],
            closing_balance=closing,
            closing_value=closing * unit_cost,
        )
        if line.is_all_zero and not config.include_zero_balances:
            continue
        lines.append(line)

    return StockMovementReport(
        metadata=metadata,
        lines=tuple(lines),
        total_opening_value=_sum(line.opening_value for line in lines),
        total_in_value=_sum(line.in_value for line in lines),
        total_out_value=_sum(line.out_value for line in lines),
        total_closing_value=_sum(line.closing_value for line in lines),
    )


# =========================================================================
# 3. VALUATION
# =========================================================================


@traced_engine("valuation", "1.0", fingerprint_fields=("materials", "lots"))
def build_valuation_report(
    *,
    materials: Sequence[Material],
    lots: Sequence[Lot],
    metadata: ReportMetadata,
) -> ValuationReport:
    """
    Weighted-average valuation of stock on hand.

    Materials without stock are omitted.  Lines are ordered by total value
    descending, then by name, so the report (and its grand total) does not
    depend on input order.
    """
    by_material = _lots_by_material(lots)
    lines: list[ValuationLine] = []

    for material in _reportable_materials(materials).values():
        valued = sorted(
            (lot for lot in by_material.get(material.id, ()) if is_valued_lot(lot)),
            key=lambda lot: (lot.received_date or date.min, lot.lot_number, str(lot.id)),
        )
        if not valued:
            continue
        aggregate = aggregate_lots(valued)
        lines.append(
            ValuationLine(
                material=material,
                lots=tuple(
                    ValuationLotLine(
                        lot=lot,
                        balance=to_decimal(lot.current_balance),
                        unit_cost=to_decimal(lot.unit_cost),
                        value=lot_value(lot),
                    )
                    for lot in valued
                ),
                total_balance=aggregate.total_balance,
                weighted_average_cost=aggregate.average_cost,
                total_value=aggregate.total_value,
            )
        )

    lines.sort(key=lambda line: (-line.total_value, *_name_key(line.material)))

    subtotals: list[TypeSubtotal] = []
    for material_type in MaterialType:
        typed = [line for line in lines if line.material.material_type == material_type]
        if typed:
            subtotals.append(
                TypeSubtotal(
                    material_type=material_type,
                    material_count=len(typed),
                    total_value=_sum(line.total_value for line in typed),
                )
            )

    return ValuationReport(
        metadata=metadata,
        lines=tuple(lines),
        grand_total=_sum(line.total_value for line in lines),
        subtotals_by_type=tuple(subtotals),
    )


# =========================================================================
# 4. CONSUMPTION
# =========================================================================


@traced_engine(
    "consumption", "1.0",
    fingerprint_fields=("period", "materials", "movements"),
)
def build_consumption_report(
    *,
    period: ReportPeriod,
    materials: Sequence[Material],
    lots: Sequence[Lot],
    movements: Sequence[Movement],
    metadata: ReportMetadata,
) -> ConsumptionReport:
    """
    Consumption by material and reason over a closed interval.

    Only negative movements tagged PRODUCTION, SAMPLE, WASTE or
    TRANSFER_OUT count.  Each is valued at its own unit cost, falling back
    to its lot's unit cost, else zero.  Reasons appear in that fixed order;
    the global per-reason totals are summed from the per-material rows.
    """
    known = {m.id: m for m in materials if not m.is_deleted}
    lot_costs = {lot.id: to_decimal(lot.unit_cost) for lot in lots}

    qty: dict[UUID, dict] = defaultdict(lambda: defaultdict(lambda: ZERO))
    val: dict[UUID, dict] = defaultdict(lambda: defaultdict(lambda: ZERO))
    contributing: dict[UUID, dict] = defaultdict(lambda: defaultdict(list))

    for movement in _timestamped(movements, "consumption"):
        reason = movement.movement_type
        if reason is None or not reason.is_consumption:
            continue
        if movement.material_id not in known:
            continue
        quantity = to_decimal(movement.quantity)
        if quantity >= 0 or not period.contains(movement.created_at):
            continue

        fallback = lot_costs.get(movement.lot_id, ZERO) if movement.lot_id else ZERO
        cost = movement_unit_cost(movement, fallback)
        consumed = -quantity
        qty[movement.material_id][reason] += consumed
        val[movement.material_id][reason] += consumed * cost
        contributing[movement.material_id][reason].append(movement)

    lines: list[ConsumptionLine] = []
    for material_id, reason_qty in qty.items():
        by_reason = tuple(
            ConsumptionReasonLine(
                reason=reason,
                quantity=reason_qty[reason],
                value=val[material_id][reason],
                movements=tuple(
                    sorted(
                        contributing[material_id][reason],
                        key=lambda m: (m.created_at, str(m.id)),
                    )
                ),
            )
            for reason in CONSUMPTION_REASONS
            if reason in reason_qty
        )
        lines.append(
            ConsumptionLine(
                material=known[material_id],
                by_reason=by_reason,
                total_quantity=_sum(r.quantity for r in by_reason),
                total_value=_sum(r.value for r in by_reason),
            )
        )

    lines.sort(key=lambda line: (-line.total_value, *_name_key(line.material)))

    reason_totals: list[ReasonTotal] = []
    for reason in CONSUMPTION_REASONS:
        rows = [r for line in lines for r in line.by_reason if r.reason == reason]
        if rows:
            reason_totals.append(
                ReasonTotal(
                    reason=reason,
                    quantity=_sum(r.quantity for r in rows),
                    value=_sum(r.value for r in rows),
                )
            )

    return ConsumptionReport(
        metadata=metadata,
        lines=tuple(lines),
        total_quantity=_sum(line.total_quantity for line in lines),
        total_value=_sum(line.total_value for line in lines),
        by_reason=tuple(reason_totals),
    )


# =========================================================================
# 5. EXPIRY
# =========================================================================


@traced_engine("expiry", "1.0", fingerprint_fields=("as_of", "threshold_days", "lots"))
def build_expiry_report(
    *,
    materials: Sequence[Material],
    lots: Sequence[Lot],
    as_of: date,
    threshold_days: int,
    thresholds: ExpiryThresholds,
    metadata: ReportMetadata,
) -> ExpiryReport:
    """
    Lots with an expiry date and stock on hand, soonest first.

    ``expiring_soon`` holds the lots not yet expired whose expiry falls
    within ``threshold_days`` of ``as_of``.  Loss value is the lot's
    remaining balance at its own unit cost.
    """
    classifier = ExpiryClassifier(thresholds)
    reportable = _reportable_materials(materials)
    lines: list[ExpiryLine] = []

    for lot in lots:
        if lot.expiry_date is None or not is_valued_lot(lot):
            continue
        material = reportable.get(lot.material_id)
        if material is None:
            continue
        days = classifier.days_until(lot.expiry_date, as_of)
        lines.append(
            ExpiryLine(
                lot=lot,
                material=material,
                days_until_expiry=days,
                status=classifier.classify(days),
                loss_value=lot_value(lot),
            )
        )

    lines.sort(key=lambda line: (line.days_until_expiry, *_name_key(line.material), line.lot.lot_number))
    expired = tuple(line for line in lines if line.status == ExpiryStatus.EXPIRED)
    expiring_soon = tuple(
        line for line in lines
        if line.status != ExpiryStatus.EXPIRED
        and classifier.is_expiring_soon(line.days_until_expiry, threshold_days)
    )

    return ExpiryReport(
        metadata=metadata,
        threshold_days=threshold_days,
        lines=tuple(lines),
        expired=expired,
        expiring_soon=expiring_soon,
        total_expired_value=_sum(line.loss_value for line in expired),
        total_expiring_soon_value=_sum(line.loss_value for line in expiring_soon),
    )


# =========================================================================
# 6. DASHBOARD
# =========================================================================


def top_consumed_materials(
    consumption: ConsumptionReport,
    limit: int,
) -> tuple[ConsumedMaterial, ...]:
    """The ``limit`` materials with the largest consumed quantity."""
    ranked = sorted(
        consumption.lines,
        key=lambda line: (-line.total_quantity, *_name_key(line.material)),
    )
    return tuple(
        ConsumedMaterial(material=line.material, total_quantity=line.total_quantity)
        for line in ranked[:limit]
    )


def build_dashboard_summary(
    *,
    current_stock: CurrentStockReport,
    valuation: ValuationReport,
    expiry: ExpiryReport,
    consumption: ConsumptionReport,
    recent_movements: Sequence[Movement],
    config: ReportingConfig,
    metadata: ReportMetadata,
) -> DashboardSummary:
    """Headline counts and short lists derived from the other reports."""
    limit = config.dashboard_list_limit
    low_stock = current_stock.low_stock_lines

    by_type: list[TypeStock] = []
    for material_type in MaterialType:
        typed = [
            line for line in current_stock.lines
            if line.material.material_type == material_type
        ]
        if typed:
            by_type.append(
                TypeStock(
                    material_type=material_type,
                    count=len(typed),
                    value=_sum(line.total_value for line in typed),
                )
            )

    return DashboardSummary(
        metadata=metadata,
        materials_in_stock=sum(1 for line in current_stock.lines if line.total_balance > 0),
        total_value=valuation.grand_total,
        low_stock_count=len(low_stock),
        expired_count=len(expiry.expired),
        expiring_soon_count=len(expiry.expiring_soon),
        low_stock_items=low_stock[:limit],
        expired_lots=expiry.expired[:limit],
        expiring_soon_lots=expiry.expiring_soon[:limit],
        recent_movements=tuple(recent_movements)[: config.recent_movement_limit],
        top_consumed=top_consumed_materials(consumption, limit),
        stock_by_type=tuple(by_type),
    )


# =========================================================================
# 7. LOT BALANCE RECONCILIATION
# =========================================================================


@traced_engine("lot_reconciliation_report", "1.0", fingerprint_fields=("lots", "movements"))
def build_lot_reconciliation_report(
    *,
    materials: Sequence[Material],
    lots: Sequence[Lot],
    movements: Sequence[Movement],
    metadata: ReportMetadata,
) -> LotReconciliationReport:
    """Lots whose stored balance disagrees with their movement history."""
    names = {m.id: m.name for m in materials}
    discrepancies = LotBalanceReconciler().reconcile(lots=lots, movements=movements)
    return LotReconciliationReport(
        metadata=metadata,
        lots_checked=len(lots),
        discrepancies=tuple(
            LotReconciliationLine(
                lot_id=d.lot_id,
                lot_number=d.lot_number,
                material_id=d.material_id,
                material_name=names.get(d.material_id, ""),
                stored_balance=d.stored_balance,
                derived_balance=d.derived_balance,
                difference=d.difference,
            )
            for d in discrepancies
        ),
    )
