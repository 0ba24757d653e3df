"""
CSV export of stock reports.

Uses the standard ``csv`` module.  Layout:

- one unquoted header row, comma separated
- text cells double-quoted, numeric cells unquoted
- money and quantities with exactly two decimals (ROUND_HALF_UP), whole
  counts and day numbers as integers
- ``\\n`` line endings, no trailing totals row, so N report lines give
  N + 1 CSV lines

Filenames are ``<report>-<YYYY-MM-DD>.csv`` for point-in-time reports and
``<report>-<start>-to-<end>.csv`` for period reports.
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Any, Iterable, Sequence

from stock_kernel.domain.values import to_decimal
from stock_kernel.logging_config import get_logger
from stock_modules.reporting.models import (
    ConsumptionReport,
    CurrentStockReport,
    ExpiryReport,
    LotReconciliationReport,
    ReportMetadata,
    StockMovementReport,
    ValuationReport,
)

logger = get_logger("modules.reporting.export")

CURRENT_STOCK_HEADER = (
    "Material", "Unit", "Total Balance", "Avg Cost", "Total Value", "Low Stock",
)
STOCK_MOVEMENT_HEADER = (
    "Material", "Unit", "Opening Bal", "Opening Value", "In Qty", "In Value",
    "Out Qty", "Out Value", "Closing Bal", "Closing Value",
)
VALUATION_HEADER = (
    "Material", "Type", "Unit", "Total Balance", "Weighted Avg Cost", "Total Value",
)
CONSUMPTION_HEADER = ("Material", "Unit", "Reason", "Quantity", "Value")
EXPIRY_HEADER = (
    "Material", "Lot No", "Expiry Date", "Days Until Expiry", "Balance",
    "Unit Cost", "Loss Value", "Status",
)
LOT_RECONCILIATION_HEADER = (
    "Material", "Lot No", "Stored Balance", "Derived Balance", "Difference",
)


@dataclass(frozen=True)
class CsvExport:
    """A rendered CSV document and the filename it should be saved under."""

    filename: str
    content: str
    row_count: int

    def write_to(self, directory: Path) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / self.filename
        path.write_text(self.content, encoding="utf-8", newline="")
        logger.info(
            "csv_export_written",
            extra={"path": str(path), "row_count": self.row_count},
        )
        return path


def money(value: Any, places: int = 2) -> Decimal:
    """Quantize to a fixed number of decimals for display."""
    exponent = Decimal(1).scaleb(-places)
    return to_decimal(value).quantize(exponent, rounding=ROUND_HALF_UP)


def render_csv(header: Sequence[str], rows: Iterable[Sequence[Any]]) -> tuple[str, int]:
    """
    Render a header and rows to CSV text.

    Returns the text and the number of data rows.  Cells that are ``str``
    are quoted; ``Decimal`` and ``int`` cells are written bare.
    """
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="\n").writerow(header)
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    count = 0
    for row in rows:
        if len(row) != len(header):
            raise ValueError(
                f"CSV row has {len(row)} cells, header has {len(header)}"
            )
        writer.writerow(row)
        count += 1
    return buffer.getvalue(), count


def dated_filename(name: str, on: date) -> str:
    return f"{name}-{on.isoformat()}.csv"


def period_filename(name: str, metadata: ReportMetadata) -> str:
    start = metadata.period_start or metadata.as_of_date
    end = metadata.period_end or metadata.as_of_date
    return f"{name}-{start.isoformat()}-to-{end.isoformat()}.csv"


def _export(filename: str, header: Sequence[str], rows: Iterable[Sequence[Any]]) -> CsvExport:
    content, count = render_csv(header, rows)
    logger.debug("csv_rendered", extra={"csv_filename": filename, "row_count": count})
    return CsvExport(filename=filename, content=content, row_count=count)


# =========================================================================
# Per-report exporters
# =========================================================================


def export_current_stock(report: CurrentStockReport, places: int = 2) -> CsvExport:
    rows = (
        (
            line.material.name,
            line.material.unit,
            money(line.total_balance, places),
            money(line.average_cost, places),
            money(line.total_value, places),
            "Yes" if line.is_low_stock else "No",
        )
        for line in report.lines
    )
    return _export(
        dated_filename(report.metadata.report_type.value, report.metadata.as_of_date),
        CURRENT_STOCK_HEADER,
        rows,
    )


def export_stock_movement(report: StockMovementReport, places: int = 2) -> CsvExport:
    rows = (
        (
            line.material.name,
            line.material.unit,
            money(line.opening_balance, places),
            money(line.opening_value, places),
            money(line.in_quantity, places),
            money(line.in_value, places),
            money(line.out_quantity, places),
            money(line.out_value, places),
            money(line.closing_balance, places),
            money(line.closing_value, places),
        )
        for line in report.lines
    )
    return _export(
        period_filename(report.metadata.report_type.value, report.metadata),
        STOCK_MOVEMENT_HEADER,
        rows,
    )


def export_valuation(report: ValuationReport, places: int = 2) -> CsvExport:
    rows = (
        (
            line.material.name,
            line.material.material_type.value,
            line.material.unit,
            money(line.total_balance, places),
            money(line.weighted_average_cost, places),
            money(line.total_value, places),
        )
        for line in report.lines
    )
    return _export(
        dated_filename(report.metadata.report_type.value, report.metadata.as_of_date),
        VALUATION_HEADER,
        rows,
    )


def export_consumption(report: ConsumptionReport, places: int = 2) -> CsvExport:
    """One CSV row per (material, reason) pair."""
    rows = (
        (
            line.material.name,
            line.material.unit,
            reason.reason.value,
            money(reason.quantity, places),
            money(reason.value, places),
        )
        for line in report.lines
        for reason in line.by_reason
    )
    return _export(
        period_filename(report.metadata.report_type.value, report.metadata),
        CONSUMPTION_HEADER,
        rows,
    )


def export_expiry(report: ExpiryReport, places: int = 2) -> CsvExport:
    rows = (
        (
            line.material.name,
            line.lot.lot_number,
            line.lot.expiry_date.isoformat() if line.lot.expiry_date else "",
            line.days_until_expiry,
            money(line.lot.current_balance, places),
            money(line.lot.unit_cost, places),
            money(line.loss_value, places),
            line.status.value.upper(),
        )
        for line in report.lines
    )
    return _export(
        dated_filename(report.metadata.report_type.value, report.metadata.as_of_date),
        EXPIRY_HEADER,
        rows,
    )


def export_lot_reconciliation(report: LotReconciliationReport, places: int = 2) -> CsvExport:
    rows = (
        (
            line.material_name,
            line.lot_number,
            money(line.stored_balance, places),
            money(line.derived_balance, places),
            money(line.difference, places),
        )
        for line in report.discrepancies
    )
    return _export(
        dated_filename(report.metadata.report_type.value, report.metadata.as_of_date),
        LOT_RECONCILIATION_HEADER,
        rows,
    )
