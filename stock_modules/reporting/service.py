"""
Raw Material Reporting Service (``stock_modules.reporting.service``).

Responsibility
--------------
Orchestrates raw material report generation (current stock, stock
movement, valuation, consumption, expiry, dashboard and lot balance
reconciliation) by bridging ``StockSelector`` snapshots, served through the
explicit ``SnapshotCache``, to the pure builders in ``stock_reports.py``.
This is a **read-only** service.

Architecture position
---------------------
**Modules layer** -- thin glue.  Constructor: ``session`` + ``clock`` +
``config`` + ``cache``.  No report arithmetic lives in this class.

Invariants enforced
-------------------
* Read-only -- no writes to materials, lots or movements.
* Every report in one call is built from one snapshot per family; two
  reports that share a cache see the same rows until a mutation
  invalidates them.
* Report metadata carries the injected clock's timestamp.

Failure modes
-------------
* ``InvalidReportPeriodError`` when end < start, raised before any query.
* Selector query failure -> exception propagates (nothing to roll back).
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

from sqlalchemy.orm import Session

from stock_engines.expiry import ExpiryThresholds
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.dtos import Lot, Material, Movement
from stock_kernel.domain.values import ReportPeriod
from stock_kernel.logging_config import get_logger
from stock_kernel.selectors.stock_selector import StockSelector
from stock_kernel.services.snapshot_cache import (
    LOTS,
    MATERIALS,
    MOVEMENTS,
    RECENT_MOVEMENTS,
    SnapshotCache,
)
from stock_modules.reporting.config import ReportingConfig
from stock_modules.reporting.models import (
    ConsumptionReport,
    CurrentStockReport,
    DashboardSummary,
    ExpiryReport,
    LotReconciliationReport,
    ReportMetadata,
    ReportType,
    StockMovementReport,
    ValuationReport,
)
from stock_modules.reporting.stock_reports import (
    build_consumption_report,
    build_current_stock_report,
    build_dashboard_summary,
    build_expiry_report,
    build_lot_reconciliation_report,
    build_stock_movement_report,
    build_valuation_report,
)

logger = get_logger("modules.reporting.service")


def resolve_period(start: date | datetime, end: date | datetime) -> ReportPeriod:
    """
    Build a closed report period.

    Plain dates cover whole days (first instant of ``start`` to the last
    instant of ``end``); datetimes are used as given.
    """
    if not isinstance(start, datetime) and not isinstance(end, datetime):
        return ReportPeriod.for_dates(start, end)
    if not isinstance(start, datetime):
        start = ReportPeriod.for_dates(start, start).start
    if not isinstance(end, datetime):
        end = ReportPeriod.for_dates(end, end).end
    return ReportPeriod(start=start, end=end)


class RawMaterialReportingService:
    """
    Raw material report generation service.

    Contract
    --------
    * Every public method returns a typed, frozen report.
    * All methods are **read-only**.

    Guarantees
    ----------
    * Report generation delegates to pure functions in ``stock_reports.py``.
    * Clock is injectable for deterministic testing.
    * Snapshots come from the shared ``SnapshotCache`` when present.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: ReportingConfig | None = None,
        cache: SnapshotCache | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or ReportingConfig.with_defaults()
        self._cache = cache if cache is not None else SnapshotCache()
        self._stock = StockSelector(session)

        logger.info(
            "reporting_service_initialized",
            extra={
                "entity_name": self._config.entity_name,
                "default_currency": self._config.default_currency,
            },
        )

    @property
    def cache(self) -> SnapshotCache:
        return self._cache

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _materials(self) -> tuple[Material, ...]:
        return self._cache.get_or_load((MATERIALS,), self._stock.materials)

    def _lots(self) -> tuple[Lot, ...]:
        return self._cache.get_or_load((LOTS,), self._stock.lots)

    def _movements(self) -> tuple[Movement, ...]:
        # Full ledger; the builders apply their own period bounds.
        return self._cache.get_or_load((MOVEMENTS,), self._stock.movements)

    def _recent_movements(self) -> tuple[Movement, ...]:
        limit = self._config.recent_movement_limit
        return self._cache.get_or_load(
            (RECENT_MOVEMENTS, limit),
            lambda: self._stock.recent_movements(limit),
        )

    def _build_metadata(
        self,
        report_type: ReportType,
        period: ReportPeriod | None = None,
    ) -> ReportMetadata:
        """Build report metadata with injected clock timestamp."""
        return ReportMetadata(
            report_type=report_type,
            entity_name=self._config.entity_name,
            currency=self._config.default_currency,
            as_of_date=self._clock.today(),
            generated_at=self._clock.now().isoformat(),
            period_start=period.start.date() if period else None,
            period_end=period.end.date() if period else None,
        )

    def _thresholds(self) -> ExpiryThresholds:
        return ExpiryThresholds(
            critical_days=self._config.expiry_critical_days,
            warning_days=self._config.expiry_warning_days,
        )

    # =========================================================================
    # Public API
    # =========================================================================

    def current_stock(self) -> CurrentStockReport:
        """Stock on hand per active material, valued lot by lot."""
        report = build_current_stock_report(
            materials=self._materials(),
            lots=self._lots(),
            metadata=self._build_metadata(ReportType.CURRENT_STOCK),
        )
        logger.info(
            "current_stock_generated",
            extra={
                "line_count": report.line_count,
                "low_stock_count": len(report.low_stock_lines),
                "total_value": str(report.total_value),
            },
        )
        return report

    def stock_movement(
        self,
        start: date | datetime,
        end: date | datetime,
    ) -> StockMovementReport:
        """
        Opening / in / out / closing per material over [start, end].

        Args:
            start: First day (or instant) of the period, inclusive.
            end: Last day (or instant) of the period, inclusive.
        """
        period = resolve_period(start, end)
        report = build_stock_movement_report(
            period=period,
            materials=self._materials(),
            lots=self._lots(),
            movements=self._movements(),
            config=self._config,
            metadata=self._build_metadata(ReportType.STOCK_MOVEMENT, period),
        )
        logger.info(
            "stock_movement_generated",
            extra={
                "period": period.label,
                "line_count": len(report.lines),
                "total_closing_value": str(report.total_closing_value),
            },
        )
        return report

    def valuation(self) -> ValuationReport:
        """Weighted-average valuation of stock on hand."""
        report = build_valuation_report(
            materials=self._materials(),
            lots=self._lots(),
            metadata=self._build_metadata(ReportType.VALUATION),
        )
        logger.info(
            "valuation_generated",
            extra={
                "line_count": len(report.lines),
                "grand_total": str(report.grand_total),
            },
        )
        return report

    def consumption(
        self,
        start: date | datetime,
        end: date | datetime,
    ) -> ConsumptionReport:
        """Consumption by material and reason over [start, end]."""
        period = resolve_period(start, end)
        return self._consumption(period, ReportType.CONSUMPTION)

    def _consumption(self, period: ReportPeriod, report_type: ReportType) -> ConsumptionReport:
        report = build_consumption_report(
            period=period,
            materials=self._materials(),
            lots=self._lots(),
            movements=self._movements(),
            metadata=self._build_metadata(report_type, period),
        )
        logger.info(
            "consumption_generated",
            extra={
                "period": period.label,
                "line_count": len(report.lines),
                "total_value": str(report.total_value),
            },
        )
        return report

    def expiry(self, threshold_days: int | None = None) -> ExpiryReport:
        """
        Lots with an expiry date, soonest first.

        Args:
            threshold_days: "Expiring soon" look-ahead; defaults to the
                configured ``expiry_threshold_days``.
        """
        threshold = (
            self._config.expiry_threshold_days
            if threshold_days is None else threshold_days
        )
        if threshold < 0:
            raise ValueError("threshold_days cannot be negative")
        report = build_expiry_report(
            materials=self._materials(),
            lots=self._lots(),
            as_of=self._clock.today(),
            threshold_days=threshold,
            thresholds=self._thresholds(),
            metadata=self._build_metadata(ReportType.EXPIRY),
        )
        logger.info(
            "expiry_generated",
            extra={
                "threshold_days": threshold,
                "expired_count": len(report.expired),
                "expiring_soon_count": len(report.expiring_soon),
            },
        )
        return report

    def dashboard(self) -> DashboardSummary:
        """Headline stock figures for the raw material dashboard."""
        today = self._clock.today()
        window = ReportPeriod.for_dates(
            today - timedelta(days=self._config.top_consumed_window_days), today,
        )
        summary = build_dashboard_summary(
            current_stock=self.current_stock(),
            valuation=self.valuation(),
            expiry=self.expiry(self._config.dashboard_expiry_threshold_days),
            consumption=self._consumption(window, ReportType.DASHBOARD),
            recent_movements=self._recent_movements(),
            config=self._config,
            metadata=self._build_metadata(ReportType.DASHBOARD, window),
        )
        logger.info(
            "dashboard_generated",
            extra={
                "materials_in_stock": summary.materials_in_stock,
                "low_stock_count": summary.low_stock_count,
                "expired_count": summary.expired_count,
            },
        )
        return summary

    def lot_reconciliation(self) -> LotReconciliationReport:
        """Lots whose stored balance disagrees with their movement history."""
        report = build_lot_reconciliation_report(
            materials=self._materials(),
            lots=self._lots(),
            movements=self._movements(),
            metadata=self._build_metadata(ReportType.LOT_RECONCILIATION),
        )
        logger.info(
            "lot_reconciliation_generated",
            extra={
                "lots_checked": report.lots_checked,
                "discrepancy_count": len(report.discrepancies),
            },
        )
        return report
