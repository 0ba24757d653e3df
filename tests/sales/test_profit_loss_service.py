"""
Integration tests for ProfitLossService against the ORM tables.

Invoice and adjustment ``created_at`` are set explicitly; the server
default would stamp rows with the real wall clock.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from stock_kernel.domain.dtos import AdjustmentType, InvoiceStatus, ReturnAction
from stock_kernel.exceptions import InvalidReportPeriodError
from stock_kernel.models.sales import (
    BatchModel,
    InvoiceLineModel,
    InvoiceModel,
    ProductModel,
    StockAdjustmentModel,
    StoreModel,
)
from stock_kernel.services.snapshot_cache import SALES


def _at(month: int, day: int) -> datetime:
    return datetime(2024, month, day, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def sales_rows(session):
    dhaka = StoreModel(id=uuid4(), name="Dhaka Central")
    napa = ProductModel(id=uuid4(), name="Napa 500", sku="NAPA-500")
    session.add_all([dhaka, napa])
    session.flush()
    batch = BatchModel(
        id=uuid4(), product_id=napa.id, batch_number="N-01",
        quantity=Decimal("100"), cost_price=Decimal("20"),
    )
    session.add(batch)
    session.flush()

    confirmed = InvoiceModel(
        id=uuid4(), invoice_number="INV-1", store_id=dhaka.id,
        status=InvoiceStatus.CONFIRMED.value, total=Decimal("500"),
        paid=Decimal("200"), due=Decimal("300"), created_at=_at(1, 5),
    )
    draft = InvoiceModel(
        id=uuid4(), invoice_number="INV-2", store_id=dhaka.id,
        status=InvoiceStatus.DRAFT.value, total=Decimal("100"), created_at=_at(1, 6),
    )
    session.add_all([confirmed, draft])
    session.flush()

    session.add_all([
        InvoiceLineModel(
            invoice_id=confirmed.id, product_id=napa.id, batch_id=batch.id,
            quantity=Decimal("10"), unit_price=Decimal("50"), total=Decimal("500"),
        ),
        InvoiceLineModel(
            invoice_id=draft.id, product_id=napa.id, batch_id=batch.id,
            quantity=Decimal("2"), unit_price=Decimal("50"), total=Decimal("100"),
        ),
        StockAdjustmentModel(
            product_id=napa.id, batch_id=batch.id, invoice_id=confirmed.id,
            adjustment_type=AdjustmentType.RETURN.value, quantity=Decimal("2"),
            return_action=ReturnAction.RESTOCK.value, created_at=_at(1, 10),
        ),
        StockAdjustmentModel(
            product_id=napa.id, batch_id=batch.id,
            adjustment_type=AdjustmentType.DAMAGE.value, quantity=Decimal("1"),
            reason="Broken strip", created_at=_at(1, 11),
        ),
        StockAdjustmentModel(
            product_id=napa.id, batch_id=batch.id,
            adjustment_type="MYSTERY", quantity=Decimal("9"), created_at=_at(1, 12),
        ),
        StockAdjustmentModel(
            product_id=napa.id, batch_id=batch.id,
            adjustment_type=AdjustmentType.DAMAGE.value, quantity=Decimal("5"),
            created_at=_at(2, 3),
        ),
    ])
    session.commit()
    return {"dhaka": dhaka.id, "napa": napa.id}


def test_profit_loss_over_january(sales_rows, profit_loss_service):
    report = profit_loss_service.profit_loss(date(2024, 1, 1), date(2024, 1, 31))
    metrics = report.metrics

    assert metrics.invoice_count == 1
    assert metrics.total_sales == Decimal("500")
    assert metrics.total_paid == Decimal("200")
    assert metrics.total_due == Decimal("300")
    assert metrics.total_cogs == Decimal("200")
    assert metrics.return_adjustment == Decimal("40")
    assert metrics.damage_write_off == Decimal("20")
    assert metrics.net_profit == Decimal("320")
    assert report.metadata.period_end == date(2024, 1, 31)
    assert [p.name for p in report.by_product] == ["Napa 500"]


def test_february_sees_only_its_write_off(sales_rows, profit_loss_service):
    metrics = profit_loss_service.profit_loss(date(2024, 2, 1), date(2024, 2, 29)).metrics
    assert metrics.invoice_count == 0
    assert metrics.damage_write_off == Decimal("100")
    assert metrics.net_profit == Decimal("-100")


def test_periods_share_sales_snapshots(sales_rows, profit_loss_service, snapshot_cache):
    profit_loss_service.profit_loss(date(2024, 1, 1), date(2024, 1, 31))
    size = len(snapshot_cache)
    profit_loss_service.profit_loss(date(2024, 2, 1), date(2024, 2, 29))
    profit_loss_service.profit_loss(date(2024, 1, 1), date(2024, 1, 31), store_id=sales_rows["dhaka"])
    assert len(snapshot_cache) == size
    assert (SALES, "stock_adjustments") in snapshot_cache


def test_logs_generation(sales_rows, profit_loss_service, captured_logs):
    profit_loss_service.profit_loss(date(2024, 1, 1), date(2024, 1, 31))
    (record,) = [r for r in captured_logs() if r["message"] == "profit_loss_generated"]
    assert record["invoice_count"] == 1
    assert Decimal(record["net_profit"]) == Decimal("320")


def test_end_before_start_rejected(profit_loss_service, snapshot_cache):
    with pytest.raises(InvalidReportPeriodError):
        profit_loss_service.profit_loss(date(2024, 1, 31), date(2024, 1, 1))
    assert len(snapshot_cache) == 0
