"""
Clock -- injectable time source for the stock kernel.

Report builders take their as-of date as a parameter; services ask a Clock
for it.  Nothing else in the kernel reads the wall clock, so a report run
under ``DeterministicClock`` is reproducible: the same movements give the
same ``generated_at``, the same expiry day counts and the same movement
timestamps.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone


class Clock(ABC):
    """
    Time source handed to services through their constructor.

    ``now()`` is timezone-aware UTC; ``today()`` is its UTC calendar date,
    which is the date expiry days and report periods are counted in.
    """

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        return self.now().astimezone(timezone.utc).date()


class SystemClock(Clock):
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    Naive datetimes passed in are taken as UTC.  ``advance()`` moves forward
    by whole days and/or seconds, which is how tests step a lot towards its
    expiry date or space movements apart.
    """

    DEFAULT_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __init__(self, fixed_time: datetime | None = None):
        self._now = self._as_utc(fixed_time or self.DEFAULT_TIME)

    @staticmethod
    def _as_utc(value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def now(self) -> datetime:
        return self._now

    def set_time(self, time: datetime) -> None:
        self._now = self._as_utc(time)

    def advance(self, *, days: int = 0, seconds: int = 0) -> datetime:
        """Move forward and return the new time."""
        if days < 0 or seconds < 0:
            raise ValueError("DeterministicClock cannot move backwards; use set_time()")
        self._now += timedelta(days=days, seconds=seconds)
        return self._now
