"""Pure domain helpers: clock abstraction and value coercion."""

from stock_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from stock_kernel.domain.values import (
    CENT,
    ZERO,
    ReportPeriod,
    ensure_utc,
    safe_divide,
    to_decimal,
)

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "ReportPeriod",
    "ZERO",
    "CENT",
    "to_decimal",
    "safe_divide",
    "ensure_utc",
]
