"""Tests for CSV rendering of the stock reports."""

import csv
import io
from datetime import date
from decimal import Decimal

import pytest

from stock_engines.expiry import ExpiryThresholds
from stock_kernel.domain.dtos import MovementType
from stock_kernel.domain.values import ReportPeriod
from stock_modules.reporting.config import ReportingConfig
from stock_modules.reporting.export import (
    CONSUMPTION_HEADER,
    CURRENT_STOCK_HEADER,
    EXPIRY_HEADER,
    export_consumption,
    export_current_stock,
    export_expiry,
    export_lot_reconciliation,
    export_stock_movement,
    export_valuation,
    money,
    render_csv,
)
from stock_modules.reporting.models import ReportType
from stock_modules.reporting.stock_reports import (
    build_consumption_report,
    build_current_stock_report,
    build_expiry_report,
    build_lot_reconciliation_report,
    build_stock_movement_report,
    build_valuation_report,
)
from stock_factories import AS_OF, T0, day, lot, material, metadata, movement


@pytest.fixture
def paracetamol():
    return material("Paracetamol Powder", reorder_level="50")


@pytest.fixture
def current_stock(paracetamol):
    return build_current_stock_report(
        materials=[paracetamol, material("Zinc Oxide")],
        lots=[lot(paracetamol, "10", "5"), lot(paracetamol, "20", "8")],
        metadata=metadata(),
    )


class TestRenderCsv:

    def test_header_unquoted_text_quoted_numbers_bare(self):
        content, count = render_csv(("Material", "Qty"), [("Lactose", Decimal("1.50"))])
        assert count == 1
        assert content == 'Material,Qty\n"Lactose",1.50\n'

    def test_embedded_quotes_and_commas_escaped(self):
        content, _ = render_csv(("Material",), [('Talc, "fine"',)])
        assert content.splitlines()[1] == '"Talc, ""fine"""'
        rows = list(csv.reader(io.StringIO(content)))
        assert rows[1] == ['Talc, "fine"']

    def test_row_width_mismatch_raises(self):
        with pytest.raises(ValueError, match="2 cells"):
            render_csv(("A",), [("x", "y")])

    def test_no_rows_gives_header_only(self):
        content, count = render_csv(("A", "B"), [])
        assert count == 0
        assert content == "A,B\n"


@pytest.mark.parametrize(
    "value, places, expected",
    [
        (Decimal("2.345"), 2, Decimal("2.35")),
        (Decimal("2.344"), 2, Decimal("2.34")),
        ("7", 2, Decimal("7.00")),
        (None, 2, Decimal("0.00")),
        (Decimal("1.23456"), 4, Decimal("1.2346")),
    ],
)
def test_money_rounds_half_up(value, places, expected):
    assert money(value, places) == expected
    assert str(money(value, places)) == str(expected)


class TestCurrentStockExport:

    def test_line_count_is_rows_plus_header(self, current_stock):
        export = export_current_stock(current_stock)
        assert export.row_count == 2
        assert len(export.content.splitlines()) == 3

    def test_filename_uses_as_of_date(self, current_stock):
        assert export_current_stock(current_stock).filename == "current-stock-2024-06-15.csv"

    def test_row_content(self, current_stock):
        export = export_current_stock(current_stock)
        lines = export.content.splitlines()
        assert lines[0] == ",".join(CURRENT_STOCK_HEADER)
        assert lines[1] == '"Paracetamol Powder","kg",30.00,7.00,210.00,"Yes"'
        assert lines[2] == '"Zinc Oxide","kg",0.00,0.00,0.00,"No"'

    def test_precision_follows_places(self, current_stock):
        export = export_current_stock(current_stock, places=3)
        assert "210.000" in export.content

    def test_write_to_creates_directory(self, current_stock, tmp_path):
        target = tmp_path / "exports" / "daily"
        path = export_current_stock(current_stock).write_to(target)
        assert path == target / "current-stock-2024-06-15.csv"
        assert path.read_text(encoding="utf-8").startswith("Material,Unit,")


def test_stock_movement_period_filename(paracetamol):
    on_hand = lot(paracetamol, "40", "2")
    report = build_stock_movement_report(
        period=ReportPeriod.for_dates(date(2024, 1, 2), date(2024, 1, 9)),
        materials=[paracetamol],
        lots=[on_hand],
        movements=[
            movement(paracetamol, MovementType.OPENING, "50", T0, on_lot=on_hand),
            movement(paracetamol, MovementType.PRODUCTION, "-10", day(5), on_lot=on_hand),
        ],
        config=ReportingConfig(),
        metadata=metadata(
            ReportType.STOCK_MOVEMENT,
            period_start=date(2024, 1, 2),
            period_end=date(2024, 1, 9),
        ),
    )
    export = export_stock_movement(report)
    assert export.filename == "stock-movement-2024-01-02-to-2024-01-09.csv"
    assert export.content.splitlines()[1] == (
        '"Paracetamol Powder","kg",50.00,100.00,0.00,0.00,10.00,20.00,40.00,80.00'
    )


def test_valuation_export_has_type_column(paracetamol):
    report = build_valuation_report(
        materials=[paracetamol],
        lots=[lot(paracetamol, "10", "5")],
        metadata=metadata(ReportType.VALUATION),
    )
    export = export_valuation(report)
    assert export.filename == "stock-valuation-2024-06-15.csv"
    assert export.content.splitlines()[1] == '"Paracetamol Powder","CHEMICAL","kg",10.00,5.00,50.00'


def test_consumption_one_row_per_reason(paracetamol):
    report = build_consumption_report(
        period=ReportPeriod(start=T0, end=day(30)),
        materials=[paracetamol],
        lots=[],
        movements=[
            movement(paracetamol, MovementType.PRODUCTION, "-3", day(1), unit_cost="2"),
            movement(paracetamol, MovementType.WASTE, "-1", day(2), unit_cost="2"),
        ],
        metadata=metadata(
            ReportType.CONSUMPTION,
            period_start=date(2024, 1, 1),
            period_end=date(2024, 1, 31),
        ),
    )
    export = export_consumption(report)
    assert export.filename == "consumption-2024-01-01-to-2024-01-31.csv"
    assert export.row_count == 2
    lines = export.content.splitlines()
    assert lines[0] == ",".join(CONSUMPTION_HEADER)
    assert lines[1] == '"Paracetamol Powder","kg","PRODUCTION",3.00,6.00'
    assert lines[2] == '"Paracetamol Powder","kg","WASTE",1.00,2.00'


def test_expiry_export_days_are_integers(paracetamol):
    report = build_expiry_report(
        materials=[paracetamol],
        lots=[lot(paracetamol, "10", "3", lot_number="PCM-9", expiry=date(2024, 6, 10))],
        as_of=AS_OF,
        threshold_days=60,
        thresholds=ExpiryThresholds(),
        metadata=metadata(ReportType.EXPIRY),
    )
    export = export_expiry(report)
    assert export.filename == "expiry-report-2024-06-15.csv"
    lines = export.content.splitlines()
    assert lines[0] == ",".join(EXPIRY_HEADER)
    assert lines[1] == '"Paracetamol Powder","PCM-9","2024-06-10",-5,10.00,3.00,30.00,"EXPIRED"'


def test_lot_reconciliation_export_lists_discrepancies_only(paracetamol):
    clean = lot(paracetamol, "5", "1", lot_number="A")
    drifted = lot(paracetamol, "8", "1", lot_number="B")
    report = build_lot_reconciliation_report(
        materials=[paracetamol],
        lots=[clean, drifted],
        movements=[
            movement(paracetamol, MovementType.RECEIVE, "5", day(1), on_lot=clean),
            movement(paracetamol, MovementType.RECEIVE, "10", day(1), on_lot=drifted),
        ],
        metadata=metadata(ReportType.LOT_RECONCILIATION),
    )
    export = export_lot_reconciliation(report)
    assert export.row_count == 1
    assert export.content.splitlines()[1] == '"Paracetamol Powder","B",8.00,10.00,-2.00'
