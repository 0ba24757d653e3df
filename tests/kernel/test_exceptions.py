"""Tests for the typed exception hierarchy."""

from decimal import Decimal

import pytest

from stock_kernel.exceptions import (
    DuplicateLotNumberError,
    ExpiredLotError,
    InsufficientStockError,
    InvalidMovementError,
    InvalidReportPeriodError,
    LotError,
    LotNotFoundError,
    MaterialError,
    MaterialHasLotsError,
    MaterialInactiveError,
    MaterialNotFoundError,
    MovementError,
    NegativeBalanceError,
    ReportError,
    StockKernelError,
    UnknownReportError,
)

ALL_ERRORS = [
    (MaterialNotFoundError("m-1"), MaterialError, "MATERIAL_NOT_FOUND"),
    (MaterialInactiveError("m-1", "Talc"), MaterialError, "MATERIAL_INACTIVE"),
    (MaterialHasLotsError("m-1", 2), MaterialError, "MATERIAL_HAS_LOTS"),
    (LotNotFoundError("l-1"), LotError, "LOT_NOT_FOUND"),
    (InsufficientStockError("l-1", "L1", Decimal("5"), Decimal("2")), LotError, "INSUFFICIENT_STOCK"),
    (NegativeBalanceError("l-1", Decimal("2"), Decimal("-5")), LotError, "NEGATIVE_BALANCE"),
    (ExpiredLotError("l-1", "L1", "2024-01-01"), LotError, "EXPIRED_LOT"),
    (DuplicateLotNumberError("m-1", "L1"), LotError, "DUPLICATE_LOT_NUMBER"),
    (InvalidMovementError("WASTE", "quantity must be positive"), MovementError, "INVALID_MOVEMENT"),
    (InvalidReportPeriodError("2024-02-01", "2024-01-01"), ReportError, "INVALID_REPORT_PERIOD"),
    (UnknownReportError("sales-forecast"), ReportError, "UNKNOWN_REPORT"),
]


@pytest.mark.parametrize("error,category,code", ALL_ERRORS)
def test_hierarchy_and_codes(error, category, code):
    assert isinstance(error, category)
    assert isinstance(error, StockKernelError)
    assert error.code == code


def test_codes_are_unique():
    codes = [code for _, _, code in ALL_ERRORS]
    assert len(codes) == len(set(codes))


def test_insufficient_stock_carries_amounts():
    error = InsufficientStockError("l-1", "PCM-001", Decimal("40"), Decimal("30"))
    assert error.requested == Decimal("40")
    assert error.available == Decimal("30")
    assert "PCM-001" in str(error)
