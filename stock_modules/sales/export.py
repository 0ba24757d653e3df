"""CSV export of the sales reports."""

from __future__ import annotations

from stock_modules.reporting.export import (
    CsvExport,
    dated_filename,
    money,
    period_filename,
    render_csv,
)
from stock_modules.sales.models import ProfitLossReport, StoreDiscountSummary

STORE_DISCOUNT_HEADER = (
    "Store", "Total Sales", "Total Discount", "Overall Discount",
    "Line Discount (৳)", "Line Discount (%)", "Invoice Count",
)
PROFIT_LOSS_HEADER = (
    "Invoice", "Date", "Store", "Sales", "COGS", "Profit", "Margin (%)",
    "Paid", "Due", "Free Qty", "Free Cost",
)


def export_store_discount_summary(summary: StoreDiscountSummary, places: int = 2) -> CsvExport:
    """One row per store; the file is named after the period's first day."""
    rows = (
        (
            line.store_name,
            money(line.total_sales, places),
            money(line.total_discount, places),
            money(line.invoice_discount, places),
            money(line.line_amount_discount, places),
            money(line.line_percent_discount, places),
            line.invoice_count,
        )
        for line in summary.stores
    )
    content, count = render_csv(STORE_DISCOUNT_HEADER, rows)
    metadata = summary.metadata
    return CsvExport(
        filename=dated_filename(
            metadata.report_type.value, metadata.period_start or metadata.as_of_date,
        ),
        content=content,
        row_count=count,
    )


def export_profit_loss(report: ProfitLossReport, places: int = 2) -> CsvExport:
    """One row per invoice, oldest first."""
    rows = (
        (
            line.invoice_number,
            line.created_at.date().isoformat(),
            line.store_name,
            money(line.total, places),
            money(line.cogs, places),
            money(line.profit, places),
            money(line.profit_margin, places),
            money(line.paid, places),
            money(line.due, places),
            money(line.free_quantity, places),
            money(line.free_cost, places),
        )
        for line in report.invoices
    )
    content, count = render_csv(PROFIT_LOSS_HEADER, rows)
    return CsvExport(
        filename=period_filename(report.metadata.report_type.value, report.metadata),
        content=content,
        row_count=count,
    )
