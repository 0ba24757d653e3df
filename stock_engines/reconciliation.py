"""
LotBalanceReconciler -- Pure engine comparing stored lot balances with the
movement ledger.

A lot's ``current_balance`` is a running total maintained by the mutation
service.  The movement ledger is the authoritative history.  This engine
recomputes each lot's balance as the signed sum of its movements and
reports every lot where the two disagree.

Architecture: stock_engines -- pure calculation, zero I/O, zero DB access.
All inputs are frozen DTOs populated by the selectors.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from stock_engines.tracer import traced_engine
from stock_kernel.domain.dtos import Lot, Movement
from stock_kernel.domain.values import ZERO, to_decimal
from stock_kernel.logging_config import get_logger

logger = get_logger("engines.reconciliation")

_DEFAULT_TOLERANCE = Decimal("0")


@dataclass(frozen=True)
class LotBalanceDiscrepancy:
    """One lot whose stored balance differs from its movement history."""

    lot_id: UUID
    material_id: UUID
    lot_number: str
    stored_balance: Decimal
    derived_balance: Decimal

    @property
    def difference(self) -> Decimal:
        return self.stored_balance - self.derived_balance


class LotBalanceReconciler:
    """Pure engine for lot balance reconciliation.

    Usage:
        reconciler = LotBalanceReconciler()
        discrepancies = reconciler.reconcile(lots=lots, movements=movements)
    """

    def __init__(self, tolerance: Decimal = _DEFAULT_TOLERANCE):
        self.tolerance = tolerance

    def derived_balances(self, movements: Iterable[Movement]) -> dict[UUID, Decimal]:
        """Signed movement sum per lot; movements without a lot are ignored."""
        totals: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
        for movement in movements:
            if movement.lot_id is None:
                continue
            totals[movement.lot_id] += to_decimal(movement.quantity)
        return dict(totals)

    @traced_engine("lot_reconciliation", "1.0", fingerprint_fields=("lots",))
    def reconcile(
        self,
        *,
        lots: Iterable[Lot],
        movements: Iterable[Movement],
    ) -> tuple[LotBalanceDiscrepancy, ...]:
        """
        Every lot whose stored balance differs from the signed sum of its
        movements by more than the tolerance, ordered by lot number.
        """
        derived = self.derived_balances(movements)
        findings: list[LotBalanceDiscrepancy] = []
        checked = 0
        for lot in lots:
            checked += 1
            stored = to_decimal(lot.current_balance)
            expected = derived.get(lot.id, ZERO)
            if abs(stored - expected) > self.tolerance:
                findings.append(
                    LotBalanceDiscrepancy(
                        lot_id=lot.id,
                        material_id=lot.material_id,
                        lot_number=lot.lot_number,
                        stored_balance=stored,
                        derived_balance=expected,
                    )
                )

        findings.sort(key=lambda d: (d.lot_number, str(d.lot_id)))
        if findings:
            logger.warning(
                "lot_balance_discrepancies_found",
                extra={"lots_checked": checked, "discrepancies": len(findings)},
            )
        else:
            logger.info("lot_balances_reconciled", extra={"lots_checked": checked})
        return tuple(findings)
