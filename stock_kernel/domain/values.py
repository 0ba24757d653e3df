"""
Values -- Tolerant numeric coercion and the report period value object.

Responsibility:
    Report input comes from loosely typed rows: numeric columns may be
    missing, ``None``, empty strings, NaN or garbage.  ``to_decimal`` turns
    any of those into ``Decimal("0")`` so a dirty row contributes zero
    instead of aborting a report.  ``ReportPeriod`` carries the closed
    [start, end] interval used by the date-ranged reports.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Decimal-only arithmetic: floats are converted through ``str`` so
      ``0.1`` becomes ``Decimal("0.1")``, never the binary expansion.
    - ``to_decimal`` never raises and never returns NaN or infinity.
    - ``ReportPeriod.start <= ReportPeriod.end`` and both are UTC-aware.

Failure modes:
    - InvalidReportPeriodError when a period is constructed with end < start.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from stock_kernel.exceptions import InvalidReportPeriodError

ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """
    Coerce a loosely typed numeric field to a finite Decimal.

    Postconditions:
        Returns a finite ``Decimal``.  ``None``, ``bool``, empty or
        non-numeric strings, NaN and infinities all yield ``Decimal("0")``.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        return Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return ZERO
        try:
            result = Decimal(text)
        except InvalidOperation:
            return ZERO
    else:
        return ZERO
    if not result.is_finite():
        return ZERO
    return result


def safe_divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Divide, returning zero when the denominator is zero."""
    if denominator == 0:
        return ZERO
    return numerator / denominator


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and normalise aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class ReportPeriod:
    """
    Closed reporting interval [start, end].

    A movement stamped exactly at ``start`` or exactly at ``end`` lies
    inside the period.
    """

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", ensure_utc(self.start))
        object.__setattr__(self, "end", ensure_utc(self.end))
        if self.end < self.start:
            raise InvalidReportPeriodError(
                self.start.isoformat(), self.end.isoformat(),
            )

    @classmethod
    def for_dates(cls, start_date: date, end_date: date) -> ReportPeriod:
        """Whole-day period from the first instant of start_date to the last of end_date."""
        return cls(
            start=datetime.combine(start_date, time.min, tzinfo=timezone.utc),
            end=datetime.combine(end_date, time.max, tzinfo=timezone.utc),
        )

    def contains(self, moment: datetime) -> bool:
        return self.start <= ensure_utc(moment) <= self.end

    def is_before(self, moment: datetime) -> bool:
        """True when ``moment`` falls strictly before the period start."""
        return ensure_utc(moment) < self.start

    @property
    def label(self) -> str:
        """ISO date range used in export filenames."""
        return f"{self.start.date().isoformat()}-to-{self.end.date().isoformat()}"
