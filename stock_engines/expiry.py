"""
Module: stock_engines.expiry
Responsibility:
    Classify lots by days remaining until their expiry date.  Used by the
    expiry report and the dashboard's expired / expiring-soon counts.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The as-of date is always
    a parameter; this module never reads the clock.

Invariants enforced:
    - Deterministic classification for identical (expiry_date, as_of) pairs.
    - 0 < critical_days <= warning_days.

Failure modes:
    - ValueError from ExpiryThresholds on inconsistent thresholds.

Usage:
    from stock_engines.expiry import ExpiryClassifier

    classifier = ExpiryClassifier()
    days = classifier.days_until(date(2024, 1, 20), as_of=date(2024, 1, 15))  # 5
    classifier.classify(days)  # ExpiryStatus.CRITICAL
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum


class ExpiryStatus(str, Enum):
    EXPIRED = "expired"
    CRITICAL = "critical"
    WARNING = "warning"
    OK = "ok"


@dataclass(frozen=True)
class ExpiryThresholds:
    """
    Day thresholds for expiry classification.

    Guarantees:
        - days <= 0 is EXPIRED, <= critical_days CRITICAL,
          <= warning_days WARNING, anything later OK.
    """

    critical_days: int = 7
    warning_days: int = 30

    def __post_init__(self) -> None:
        if self.critical_days <= 0:
            raise ValueError("critical_days must be positive")
        if self.warning_days < self.critical_days:
            raise ValueError("warning_days cannot be less than critical_days")


class ExpiryClassifier:
    """
    Pure expiry classification.

    Contract:
        No I/O and no clock access.  All dates are passed as parameters.
    """

    def __init__(self, thresholds: ExpiryThresholds | None = None):
        self.thresholds = thresholds or ExpiryThresholds()

    def days_until(self, expiry_date: date, as_of: date) -> int:
        """Whole days from ``as_of`` to ``expiry_date``; negative once past."""
        return (expiry_date - as_of).days

    def classify(self, days_until_expiry: int) -> ExpiryStatus:
        if days_until_expiry <= 0:
            return ExpiryStatus.EXPIRED
        if days_until_expiry <= self.thresholds.critical_days:
            return ExpiryStatus.CRITICAL
        if days_until_expiry <= self.thresholds.warning_days:
            return ExpiryStatus.WARNING
        return ExpiryStatus.OK

    def is_expiring_soon(self, days_until_expiry: int, threshold_days: int) -> bool:
        """Not yet expired, but expiring within ``threshold_days``."""
        return 0 < days_until_expiry <= threshold_days
