"""
Module: stock_engines.valuation
Responsibility:
    Weighted-average valuation primitives shared by every stock report:
    lot value, per-material lot aggregation, the material unit cost used to
    value opening and closing balances, and the unit cost applied to a
    single movement.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import stock_kernel/domain.

Invariants enforced:
    - Decimal-only arithmetic; every numeric input passes through
      ``to_decimal`` so dirty values contribute zero.
    - Only non-deleted lots with a strictly positive balance carry value.
    - Weighted average = total value / total balance, zero when the balance
      is zero.  No FIFO consumption order is modelled.

Failure modes:
    None.  Empty input yields a zero aggregate.

Usage:
    from stock_engines.valuation import aggregate_lots

    agg = aggregate_lots(lots_for_material)
    agg.total_value, agg.average_cost
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable

from stock_kernel.domain.dtos import Lot, Movement
from stock_kernel.domain.values import ZERO, safe_divide, to_decimal


@dataclass(frozen=True)
class LotAggregate:
    """Balance and value summed over the valued lots of one material."""

    total_balance: Decimal = ZERO
    total_value: Decimal = ZERO
    lots: tuple[Lot, ...] = ()

    @property
    def average_cost(self) -> Decimal:
        return safe_divide(self.total_value, self.total_balance)

    @property
    def lot_count(self) -> int:
        return len(self.lots)


def is_valued_lot(lot: Lot) -> bool:
    """A lot carries value when it is not deleted and holds stock."""
    return not lot.is_deleted and to_decimal(lot.current_balance) > 0


def lot_value(lot: Lot) -> Decimal:
    return to_decimal(lot.current_balance) * to_decimal(lot.unit_cost)


def aggregate_lots(lots: Iterable[Lot]) -> LotAggregate:
    """
    Sum balance and value over the valued lots in ``lots``.

    Lots that are deleted or hold no stock are ignored, so callers may pass
    every lot of a material unfiltered.
    """
    valued = tuple(lot for lot in lots if is_valued_lot(lot))
    balance = sum((to_decimal(lot.current_balance) for lot in valued), ZERO)
    value = sum((lot_value(lot) for lot in valued), ZERO)
    return LotAggregate(total_balance=balance, total_value=value, lots=valued)


def _received_key(lot: Lot) -> tuple[date, str]:
    return (lot.received_date or date.min, str(lot.id))


def material_unit_cost(lots: Iterable[Lot]) -> Decimal:
    """
    Unit cost used to value a material's opening and closing balances.

    Weighted average over the valued lots; when none hold stock, the unit
    cost of the most recently received non-deleted lot; otherwise zero.
    """
    lots = tuple(lots)
    aggregate = aggregate_lots(lots)
    if aggregate.total_balance > 0:
        return aggregate.average_cost

    live = [lot for lot in lots if not lot.is_deleted]
    if not live:
        return ZERO
    latest = max(live, key=_received_key)
    return to_decimal(latest.unit_cost)


def movement_unit_cost(movement: Movement, fallback: Decimal) -> Decimal:
    """The movement's own unit cost, or ``fallback`` when it carries none."""
    cost = to_decimal(movement.unit_cost)
    if cost != 0:
        return cost
    return to_decimal(fallback)
