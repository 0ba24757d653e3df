"""
Sales Report Services (``stock_modules.sales.service``).

Read-only glue between ``SalesSelector`` and the pure sales builders:
``StoreDiscountService`` for ``build_store_discount_summary`` and
``ProfitLossService`` for ``build_profit_loss``.  Constructor: ``session`` +
``clock`` + ``config`` + ``cache``, the same shape as the stock reporting
service so all of them can share one ``SnapshotCache``.

Snapshots are full history, one cache entry per family member; the builders
apply the period bounds.  Asking for many periods therefore never grows the
cache.

Failure modes
-------------
* ``InvalidReportPeriodError`` when end < start, raised before any query.
* An invoice line with an unknown stored discount type adds no discount;
  the builder logs it and the summary still builds.
"""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from sqlalchemy.orm import Session

from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.dtos import (
    Batch,
    Invoice,
    InvoiceLine,
    Product,
    StockAdjustment,
    Store,
)
from stock_kernel.domain.values import ReportPeriod
from stock_kernel.logging_config import get_logger
from stock_kernel.selectors.sales_selector import SalesSelector
from stock_kernel.services.snapshot_cache import SALES, SnapshotCache
from stock_modules.reporting.config import ReportingConfig
from stock_modules.reporting.models import ReportMetadata, ReportType
from stock_modules.reporting.service import resolve_period
from stock_modules.sales.discounts import build_store_discount_summary
from stock_modules.sales.models import ProfitLossReport, StoreDiscountSummary
from stock_modules.sales.profit_loss import build_profit_loss

logger = get_logger("modules.sales.service")


class _SalesReportService:
    """Cached sales snapshots shared by the sales report services."""

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
        self._sales = SalesSelector(session)

    @property
    def cache(self) -> SnapshotCache:
        return self._cache

    def _stores(self) -> tuple[Store, ...]:
        return self._cache.get_or_load((SALES, "stores"), self._sales.stores)

    def _products(self) -> tuple[Product, ...]:
        return self._cache.get_or_load((SALES, "products"), self._sales.products)

    def _invoices(self) -> tuple[Invoice, ...]:
        return self._cache.get_or_load((SALES, "invoices"), self._sales.invoices)

    def _lines(self) -> tuple[InvoiceLine, ...]:
        return self._cache.get_or_load((SALES, "invoice_lines"), self._sales.invoice_lines)

    def _batches(self) -> tuple[Batch, ...]:
        return self._cache.get_or_load((SALES, "batches"), self._sales.batches)

    def _adjustments(self) -> tuple[StockAdjustment, ...]:
        return self._cache.get_or_load(
            (SALES, "stock_adjustments"), self._sales.stock_adjustments,
        )

    def _build_metadata(self, report_type: ReportType, period: ReportPeriod) -> ReportMetadata:
        return ReportMetadata(
            report_type=report_type,
            entity_name=self._config.entity_name,
            currency=self._config.default_currency,
            as_of_date=self._clock.today(),
            generated_at=self._clock.now().isoformat(),
            period_start=period.start.date(),
            period_end=period.end.date(),
        )


class StoreDiscountService(_SalesReportService):
    """Store discount summary generation (read-only)."""

    def store_discount_summary(
        self,
        start: date | datetime,
        end: date | datetime,
        store_id: UUID | None = None,
    ) -> StoreDiscountSummary:
        """
        Discounts per store over [start, end].

        Args:
            start: First day (or instant) of the period, inclusive.
            end: Last day (or instant) of the period, inclusive.
            store_id: Restrict the summary to one store.
        """
        period = resolve_period(start, end)
        summary = build_store_discount_summary(
            period=period,
            invoices=self._invoices(),
            lines=self._lines(),
            stores=self._stores(),
            products=self._products(),
            metadata=self._build_metadata(ReportType.STORE_DISCOUNT_SUMMARY, period),
            store_id=store_id,
            top_products_limit=self._config.top_discounted_products_limit,
        )
        logger.info(
            "store_discount_summary_generated",
            extra={
                "period": period.label,
                "store_id": store_id,
                "store_count": len(summary.stores),
                "total_discount": str(summary.totals.total_discount),
            },
        )
        return summary


class ProfitLossService(_SalesReportService):
    """Profit and loss report generation (read-only)."""

    def profit_loss(
        self,
        start: date | datetime,
        end: date | datetime,
        store_id: UUID | None = None,
        product_id: UUID | None = None,
    ) -> ProfitLossReport:
        """
        Sales, cost of goods and profit over [start, end].

        Args:
            start: First day (or instant) of the period, inclusive.
            end: Last day (or instant) of the period, inclusive.
            store_id: Restrict the report to one store's invoices.
            product_id: Restrict the report to one product's lines.
        """
        period = resolve_period(start, end)
        report = build_profit_loss(
            period=period,
            invoices=self._invoices(),
            lines=self._lines(),
            batches=self._batches(),
            adjustments=self._adjustments(),
            stores=self._stores(),
            products=self._products(),
            metadata=self._build_metadata(ReportType.PROFIT_LOSS, period),
            store_id=store_id,
            product_id=product_id,
        )
        logger.info(
            "profit_loss_generated",
            extra={
                "period": period.label,
                "store_id": store_id,
                "product_id": product_id,
                "invoice_count": report.metrics.invoice_count,
                "net_profit": str(report.metrics.net_profit),
            },
        )
        return report
