"""
Typed exception hierarchy for the stock kernel.

Every error has a typed class, a machine-readable ``code`` class attribute,
and structured attributes carrying the data needed to act on it.  Callers
catch by type and report by ``code``; they never parse messages.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    StockKernelError (base)
    |
    +-- MaterialError
    |   +-- MaterialNotFoundError
    |   +-- MaterialInactiveError
    |   +-- MaterialHasLotsError
    |
    +-- LotError
    |   +-- LotNotFoundError
    |   +-- InsufficientStockError
    |   +-- NegativeBalanceError
    |   +-- ExpiredLotError
    |   +-- DuplicateLotNumberError
    |
    +-- MovementError
    |   +-- InvalidMovementError
    |
    +-- ReportError
        +-- InvalidReportPeriodError
        +-- UnknownReportError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                   | When Raised
-----------|------------------------|---------------------------------------------
Material   | MATERIAL_NOT_FOUND     | Material ID doesn't exist
           | MATERIAL_INACTIVE      | Receiving into an inactive/deleted material
           | MATERIAL_HAS_LOTS      | Permanent delete of a material with lots
-----------|------------------------|---------------------------------------------
Lot        | LOT_NOT_FOUND          | Lot ID doesn't exist
           | INSUFFICIENT_STOCK     | Stock-out larger than the lot balance
           | NEGATIVE_BALANCE       | Adjustment would take a lot below zero
           | EXPIRED_LOT            | Stock-out from a lot after its expiry date
           | DUPLICATE_LOT_NUMBER   | Lot number already used for the material
-----------|------------------------|---------------------------------------------
Movement   | INVALID_MOVEMENT       | Wrong movement type for the operation, or
           |                        | a non-positive quantity
-----------|------------------------|---------------------------------------------
Report     | INVALID_REPORT_PERIOD  | Period end precedes period start
           | UNKNOWN_REPORT         | Export requested for an unknown report name

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        service.stock_out(lot_id=lot_id, movement_type=MovementType.PRODUCTION,
                          quantity=Decimal("5"))
    except InsufficientStockError as e:
        notify_user(f"Only {e.available} left in lot {e.lot_number}")

Aggregation code never raises these: dirty report input degrades to zero
contributions instead (see ``stock_kernel.domain.values``).
"""

from decimal import Decimal


class StockKernelError(Exception):
    """
    Base exception for all stock kernel errors.

    All subclasses must have a ``code`` class attribute for
    machine-readable error identification.
    """

    code: str = "STOCK_KERNEL_ERROR"


# Material-related exceptions


class MaterialError(StockKernelError):
    """Base exception for material errors."""

    code: str = "MATERIAL_ERROR"


class MaterialNotFoundError(MaterialError):
    """Material with given ID was not found."""

    code: str = "MATERIAL_NOT_FOUND"

    def __init__(self, material_id: str):
        self.material_id = material_id
        super().__init__(f"Material not found: {material_id}")


class MaterialInactiveError(MaterialError):
    """Material is inactive or soft-deleted and cannot receive stock."""

    code: str = "MATERIAL_INACTIVE"

    def __init__(self, material_id: str, name: str):
        self.material_id = material_id
        self.name = name
        super().__init__(f"Material {name} ({material_id}) is inactive")


class MaterialHasLotsError(MaterialError):
    """Material still has lots and cannot be permanently deleted."""

    code: str = "MATERIAL_HAS_LOTS"

    def __init__(self, material_id: str, lot_count: int):
        self.material_id = material_id
        self.lot_count = lot_count
        super().__init__(
            f"Cannot delete material {material_id}: {lot_count} lot(s) exist"
        )


# Lot-related exceptions


class LotError(StockKernelError):
    """Base exception for lot errors."""

    code: str = "LOT_ERROR"


class LotNotFoundError(LotError):
    """Lot with given ID was not found."""

    code: str = "LOT_NOT_FOUND"

    def __init__(self, lot_id: str):
        self.lot_id = lot_id
        super().__init__(f"Lot not found: {lot_id}")


class InsufficientStockError(LotError):
    """Requested stock-out exceeds the lot's current balance."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        lot_id: str,
        lot_number: str,
        requested: Decimal,
        available: Decimal,
    ):
        self.lot_id = lot_id
        self.lot_number = lot_number
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock in lot {lot_number}: "
            f"requested {requested}, available {available}"
        )


class NegativeBalanceError(LotError):
    """Adjustment would reduce a lot balance below zero."""

    code: str = "NEGATIVE_BALANCE"

    def __init__(
        self,
        lot_id: str,
        current_balance: Decimal,
        adjustment: Decimal,
    ):
        self.lot_id = lot_id
        self.current_balance = current_balance
        self.adjustment = adjustment
        super().__init__(
            f"Cannot reduce lot {lot_id} below zero: "
            f"current {current_balance}, adjustment {adjustment}"
        )


class ExpiredLotError(LotError):
    """Stock-out requested from a lot that is past its expiry date."""

    code: str = "EXPIRED_LOT"

    def __init__(self, lot_id: str, lot_number: str, expiry_date: str):
        self.lot_id = lot_id
        self.lot_number = lot_number
        self.expiry_date = expiry_date
        super().__init__(f"Lot {lot_number} expired on {expiry_date}")


class DuplicateLotNumberError(LotError):
    """Lot number is already in use for the material."""

    code: str = "DUPLICATE_LOT_NUMBER"

    def __init__(self, material_id: str, lot_number: str):
        self.material_id = material_id
        self.lot_number = lot_number
        super().__init__(
            f"Lot number {lot_number} already exists for material {material_id}"
        )


# Movement-related exceptions


class MovementError(StockKernelError):
    """Base exception for movement errors."""

    code: str = "MOVEMENT_ERROR"


class InvalidMovementError(MovementError):
    """Movement type or quantity is not valid for the requested operation."""

    code: str = "INVALID_MOVEMENT"

    def __init__(self, movement_type: str, reason: str):
        self.movement_type = movement_type
        self.reason = reason
        super().__init__(f"Invalid {movement_type} movement: {reason}")


# Report-related exceptions


class ReportError(StockKernelError):
    """Base exception for report generation errors."""

    code: str = "REPORT_ERROR"


class InvalidReportPeriodError(ReportError):
    """Report period end precedes its start."""

    code: str = "INVALID_REPORT_PERIOD"

    def __init__(self, start: str, end: str):
        self.start = start
        self.end = end
        super().__init__(f"Report period end {end} precedes start {start}")


class UnknownReportError(ReportError):
    """No report is registered under the requested name."""

    code: str = "UNKNOWN_REPORT"

    def __init__(self, report_name: str):
        self.report_name = report_name
        super().__init__(f"Unknown report: {report_name}")
