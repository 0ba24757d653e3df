"""
Raw Material Reporting Module (``stock_modules.reporting``).

Responsibility
--------------
Read-only module that derives stock reports from material, lot and
movement snapshots: current stock, stock movement over a period,
weighted-average valuation, consumption by reason, expiry, the dashboard
summary and lot balance reconciliation, plus CSV export of each.

Invariants enforced
-------------------
* No rows are written by this module.
* Report arithmetic lives in pure functions; the service only wires
  selectors, the snapshot cache and the clock to them.
"""

from stock_modules.reporting.config import ReportingConfig
from stock_modules.reporting.export import (
    CsvExport,
    export_consumption,
    export_current_stock,
    export_expiry,
    export_lot_reconciliation,
    export_stock_movement,
    export_valuation,
)
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
    ReportType,
    StockMovementLine,
    StockMovementReport,
    TypeStock,
    TypeSubtotal,
    ValuationLine,
    ValuationLotLine,
    ValuationReport,
)
from stock_modules.reporting.service import RawMaterialReportingService, resolve_period

__all__ = [
    # Service
    "RawMaterialReportingService",
    "resolve_period",
    # Config
    "ReportingConfig",
    # Export
    "CsvExport",
    "export_current_stock",
    "export_stock_movement",
    "export_valuation",
    "export_consumption",
    "export_expiry",
    "export_lot_reconciliation",
    # Models
    "ReportType",
    "ReportMetadata",
    "CurrentStockLine",
    "CurrentStockReport",
    "StockMovementLine",
    "StockMovementReport",
    "ValuationLotLine",
    "ValuationLine",
    "TypeSubtotal",
    "ValuationReport",
    "ConsumptionReasonLine",
    "ConsumptionLine",
    "ReasonTotal",
    "ConsumptionReport",
    "ExpiryLine",
    "ExpiryReport",
    "ConsumedMaterial",
    "TypeStock",
    "DashboardSummary",
    "LotReconciliationLine",
    "LotReconciliationReport",
]
