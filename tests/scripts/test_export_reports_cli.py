"""
Tests for scripts/export_reports.py.

``main()`` initialises and resets the module-level engine itself, so these
tests seed a file-backed SQLite database with their own engine instead of
using the shared in-memory one.
"""

from datetime import date, datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from scripts.export_reports import EXPORTABLE_REPORTS, export_report, main
from stock_kernel.db.base import Base
from stock_kernel.domain.clock import DeterministicClock
from stock_kernel.domain.dtos import MovementType
from stock_kernel.exceptions import UnknownReportError
from stock_kernel.models import import_all_models
from stock_modules.raw_materials.service import RawMaterialService
from stock_modules.reporting.models import ReportType


@pytest.fixture
def database_url(tmp_path):
    """A seeded SQLite file: one material, one lot, one production issue."""
    url = f"sqlite:///{tmp_path / 'stock.db'}"
    import_all_models()
    engine = create_engine(url)
    Base.metadata.create_all(engine)

    clock = DeterministicClock(datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc))
    with Session(engine, expire_on_commit=False) as session:
        service = RawMaterialService(session, clock=clock)
        material = service.add_material(name="Paracetamol Powder")
        lot = service.receive_lot(
            material_id=material.id, lot_number="PCM-1", quantity="30", unit_cost="7",
        )
        clock.set_time(datetime(2024, 6, 10, 9, 0, tzinfo=timezone.utc))
        service.stock_out(lot_id=lot.id, movement_type=MovementType.PRODUCTION, quantity="5")

    engine.dispose()
    return url


def test_every_exportable_report_is_a_report_type():
    assert {ReportType(name) for name in EXPORTABLE_REPORTS} == {
        ReportType.CURRENT_STOCK,
        ReportType.STOCK_MOVEMENT,
        ReportType.VALUATION,
        ReportType.CONSUMPTION,
        ReportType.EXPIRY,
        ReportType.LOT_RECONCILIATION,
        ReportType.STORE_DISCOUNT_SUMMARY,
        ReportType.PROFIT_LOSS,
    }


def test_current_stock_written(database_url, tmp_path, capsys):
    out = tmp_path / "exports"
    assert main(["current-stock", "--database-url", database_url, "--out", str(out)]) == 0

    (written,) = list(out.glob("current-stock-*.csv"))
    lines = written.read_text(encoding="utf-8").splitlines()
    assert lines[1] == '"Paracetamol Powder","kg",25.00,7.00,175.00,"No"'
    assert "Wrote 1 rows" in capsys.readouterr().out


def test_period_report_filename(database_url, tmp_path):
    out = tmp_path / "exports"
    status = main([
        "stock-movement", "--database-url", database_url,
        "--start", "2024-06-01", "--end", "2024-06-30", "--out", str(out),
    ])
    assert status == 0
    path = out / "stock-movement-2024-06-01-to-2024-06-30.csv"
    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[1] == '"Paracetamol Powder","kg",0.00,0.00,30.00,210.00,5.00,35.00,25.00,175.00'


def test_database_url_from_environment(database_url, tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", database_url)
    assert main(["stock-valuation", "--out", str(tmp_path)]) == 0
    assert len(list(tmp_path.glob("stock-valuation-*.csv"))) == 1


def test_unknown_report_fails(database_url, tmp_path, capsys):
    assert main(["balance-sheet", "--database-url", database_url, "--out", str(tmp_path)]) == 1
    assert "Unknown report: balance-sheet" in capsys.readouterr().err


def test_period_report_without_dates_fails(database_url, tmp_path, capsys):
    assert main(["consumption", "--database-url", database_url, "--out", str(tmp_path)]) == 1
    assert "requires --start and --end" in capsys.readouterr().err
    assert list(tmp_path.glob("*.csv")) == []


def test_end_before_start_fails(database_url, tmp_path):
    status = main([
        "consumption", "--database-url", database_url,
        "--start", "2024-06-30", "--end", "2024-06-01", "--out", str(tmp_path),
    ])
    assert status == 1


def test_bad_config_file_fails(database_url, tmp_path, capsys):
    config = tmp_path / "bad.yaml"
    config.write_text("reporting:\n  display_precision: -1\n")
    status = main([
        "current-stock", "--database-url", database_url, "--config", str(config),
        "--out", str(tmp_path),
    ])
    assert status == 1
    assert "display_precision" in capsys.readouterr().err


def test_missing_database_url_is_usage_error(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(SystemExit) as exc_info:
        main(["current-stock"])
    assert exc_info.value.code == 2


class TestExportReport:
    """``export_report`` against the shared test session."""

    def test_consumption(self, raw_material_service, session, reporting_config, deterministic_clock):
        material = raw_material_service.add_material(name="Starch")
        lot = raw_material_service.receive_lot(
            material_id=material.id, lot_number="ST-1", quantity="10", unit_cost="3",
        )
        raw_material_service.stock_out(lot_id=lot.id, movement_type=MovementType.SAMPLE, quantity="2")

        export = export_report(
            "consumption",
            session=session,
            config=reporting_config,
            clock=deterministic_clock,
            start=date(2024, 6, 1),
            end=date(2024, 6, 30),
        )
        assert export.filename == "consumption-2024-06-01-to-2024-06-30.csv"
        assert export.content.splitlines()[1] == '"Starch","kg","SAMPLE",2.00,6.00'

    def test_expiry_threshold_passed_through(self, raw_material_service, session, reporting_config, deterministic_clock):
        material = raw_material_service.add_material(name="Starch")
        raw_material_service.receive_lot(
            material_id=material.id, lot_number="ST-1", quantity="10", unit_cost="3",
            expiry_date=date(2024, 7, 15),
        )
        export = export_report(
            "expiry-report", session=session, config=reporting_config,
            clock=deterministic_clock, threshold_days=10,
        )
        assert export.filename == "expiry-report-2024-06-15.csv"
        assert export.row_count == 1

    def test_unknown_name(self, session, reporting_config):
        with pytest.raises(UnknownReportError):
            export_report("dashboard", session=session, config=reporting_config)

    def test_store_discount_summary_without_sales(self, session, reporting_config, deterministic_clock):
        export = export_report(
            "store-discount-summary", session=session, config=reporting_config,
            clock=deterministic_clock, start=date(2024, 1, 1), end=date(2024, 1, 31),
        )
        assert export.filename == "store-discount-summary-2024-01-01.csv"
        assert export.row_count == 0

    def test_profit_loss_without_sales(self, session, reporting_config, deterministic_clock):
        export = export_report(
            "profit-loss", session=session, config=reporting_config,
            clock=deterministic_clock, start=date(2024, 1, 1), end=date(2024, 1, 31),
        )
        assert export.filename == "profit-loss-2024-01-01-to-2024-01-31.csv"
        assert export.row_count == 0


def test_profit_loss_requires_period(database_url, tmp_path, capsys):
    assert main(["profit-loss", "--database-url", database_url, "--out", str(tmp_path)]) == 1
    assert "requires --start and --end" in capsys.readouterr().err
