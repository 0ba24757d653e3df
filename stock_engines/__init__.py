"""
Stock Engines

Pure calculation layer used by the stock reports:
- Weighted-average lot valuation
- Expiry classification
- Lot balance reconciliation against the movement ledger
- Engine invocation tracing
"""

from stock_engines.expiry import ExpiryClassifier, ExpiryStatus, ExpiryThresholds
from stock_engines.reconciliation import LotBalanceDiscrepancy, LotBalanceReconciler
from stock_engines.tracer import traced_engine
from stock_engines.valuation import (
    LotAggregate,
    aggregate_lots,
    is_valued_lot,
    lot_value,
    material_unit_cost,
    movement_unit_cost,
)

__all__ = [
    "ExpiryClassifier",
    "ExpiryStatus",
    "ExpiryThresholds",
    "LotBalanceDiscrepancy",
    "LotBalanceReconciler",
    "LotAggregate",
    "aggregate_lots",
    "is_valued_lot",
    "lot_value",
    "material_unit_cost",
    "movement_unit_cost",
    "traced_engine",
]
