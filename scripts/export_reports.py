#!/usr/bin/env python3
"""
Export a stock report as CSV.

Connects to the database (assumes tables and data already exist), builds
one report and writes it to ``--out`` under the standard report filename.

Usage:
    python scripts/export_reports.py current-stock --database-url URL
    python scripts/export_reports.py stock-movement --database-url URL \\
        --start 2024-01-01 --end 2024-01-31 --out exports/
    python scripts/export_reports.py store-discount-summary \\
        --start 2024-01-01 --end 2024-01-31 --store-id <uuid>
    python scripts/export_reports.py profit-loss \\
        --start 2024-01-01 --end 2024-01-31 --product-id <uuid>

Reports:
    current-stock, stock-valuation, expiry-report, lot-reconciliation
        point-in-time; --start/--end are ignored.
    stock-movement, consumption, store-discount-summary, profit-loss
        require --start and --end.

``--database-url`` defaults to the DATABASE_URL environment variable.
Exit status is 0 on success, 1 on a report error, 2 on bad arguments.
"""

import argparse
import os
import sys
from datetime import date
from pathlib import Path
from uuid import UUID

# Add project root to path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from sqlalchemy.orm import Session

from stock_config import load_config
from stock_kernel.db.engine import init_engine_from_url, reset_engine, session_scope
from stock_kernel.domain.clock import Clock
from stock_kernel.exceptions import StockKernelError, UnknownReportError
from stock_kernel.logging_config import configure_logging, get_logger
from stock_kernel.services.snapshot_cache import SnapshotCache
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
from stock_modules.reporting.models import ReportType
from stock_modules.reporting.service import RawMaterialReportingService
from stock_modules.sales.export import export_profit_loss, export_store_discount_summary
from stock_modules.sales.service import ProfitLossService, StoreDiscountService

logger = get_logger("scripts.export_reports")

PERIOD_REPORTS = frozenset({
    ReportType.STOCK_MOVEMENT.value,
    ReportType.CONSUMPTION.value,
    ReportType.STORE_DISCOUNT_SUMMARY.value,
    ReportType.PROFIT_LOSS.value,
})

EXPORTABLE_REPORTS = (
    ReportType.CURRENT_STOCK.value,
    ReportType.STOCK_MOVEMENT.value,
    ReportType.VALUATION.value,
    ReportType.CONSUMPTION.value,
    ReportType.EXPIRY.value,
    ReportType.LOT_RECONCILIATION.value,
    ReportType.STORE_DISCOUNT_SUMMARY.value,
    ReportType.PROFIT_LOSS.value,
)


def export_report(
    name: str,
    *,
    session: Session,
    config: ReportingConfig,
    clock: Clock | None = None,
    start: date | None = None,
    end: date | None = None,
    store_id: UUID | None = None,
    product_id: UUID | None = None,
    threshold_days: int | None = None,
) -> CsvExport:
    """
    Build the named report and render it to CSV.

    Raises:
        UnknownReportError: ``name`` is not an exportable report.
        ValueError: a period report was requested without start and end.
    """
    if name not in EXPORTABLE_REPORTS:
        raise UnknownReportError(name)
    if name in PERIOD_REPORTS and (start is None or end is None):
        raise ValueError(f"{name} requires --start and --end")

    cache = SnapshotCache()
    places = config.display_precision
    reports = RawMaterialReportingService(session, clock=clock, config=config, cache=cache)

    match ReportType(name):
        case ReportType.CURRENT_STOCK:
            return export_current_stock(reports.current_stock(), places)
        case ReportType.STOCK_MOVEMENT:
            return export_stock_movement(reports.stock_movement(start, end), places)
        case ReportType.VALUATION:
            return export_valuation(reports.valuation(), places)
        case ReportType.CONSUMPTION:
            return export_consumption(reports.consumption(start, end), places)
        case ReportType.EXPIRY:
            return export_expiry(reports.expiry(threshold_days), places)
        case ReportType.LOT_RECONCILIATION:
            return export_lot_reconciliation(reports.lot_reconciliation(), places)
        case ReportType.STORE_DISCOUNT_SUMMARY:
            discounts = StoreDiscountService(session, clock=clock, config=config, cache=cache)
            return export_store_discount_summary(
                discounts.store_discount_summary(start, end, store_id=store_id), places,
            )
        case ReportType.PROFIT_LOSS:
            profit = ProfitLossService(session, clock=clock, config=config, cache=cache)
            return export_profit_loss(
                profit.profit_loss(start, end, store_id=store_id, product_id=product_id), places,
            )
        case _:
            raise UnknownReportError(name)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Export a raw material or sales report as CSV.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "report",
        help=f"Report name: {', '.join(EXPORTABLE_REPORTS)}.",
    )
    parser.add_argument(
        "--database-url",
        default=os.environ.get("DATABASE_URL"),
        help="SQLAlchemy database URL (default: $DATABASE_URL).",
    )
    parser.add_argument(
        "--start",
        type=lambda s: date.fromisoformat(s),
        default=None,
        help="First day of the period (YYYY-MM-DD).",
    )
    parser.add_argument(
        "--end",
        type=lambda s: date.fromisoformat(s),
        default=None,
        help="Last day of the period (YYYY-MM-DD).",
    )
    parser.add_argument(
        "--out",
        type=Path,
        default=Path("."),
        help="Directory to write the CSV into (default: current directory).",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML configuration file (default: packaged defaults).",
    )
    parser.add_argument(
        "--store-id",
        type=UUID,
        default=None,
        help="Restrict store-discount-summary or profit-loss to one store.",
    )
    parser.add_argument(
        "--product-id",
        type=UUID,
        default=None,
        help="Restrict profit-loss to one product.",
    )
    parser.add_argument(
        "--threshold-days",
        type=int,
        default=None,
        help="Expiring-soon look-ahead for expiry-report.",
    )
    args = parser.parse_args(argv)
    if not args.database_url:
        parser.error("--database-url is required when DATABASE_URL is not set")
    return args


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging()

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    init_engine_from_url(args.database_url)
    try:
        with session_scope() as session:
            export = export_report(
                args.report,
                session=session,
                config=config.reporting,
                start=args.start,
                end=args.end,
                store_id=args.store_id,
                product_id=args.product_id,
                threshold_days=args.threshold_days,
            )
        path = export.write_to(args.out)
    except (StockKernelError, ValueError) as exc:
        logger.error("report_export_failed", extra={"report": args.report, "error": str(exc)})
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        reset_engine()

    print(f"Wrote {export.row_count} rows to {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
