"""
Reporting Configuration Schema.

Thresholds, list sizes and formatting options for the raw material
reports.  Values mirror the stock dashboard: a 60-day expiry look-ahead on
the expiry report, 30 days on the dashboard, top-ten lists and the twenty
most recent movements.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Self

from stock_kernel.logging_config import get_logger

logger = get_logger("modules.reporting.config")


@dataclass
class ReportingConfig:
    """
    Configuration schema for the reporting module.

    Controls report headers, expiry classification and dashboard lists.
    """

    # Entity name shown on reports
    entity_name: str = "Company"

    # Currency all costs are recorded in
    default_currency: str = "BDT"

    # Rounding precision for display and CSV export
    display_precision: int = 2

    # Keep movement-report rows whose quantities are all zero
    include_zero_balances: bool = False

    # Expiry report: "expiring soon" look-ahead in days
    expiry_threshold_days: int = 60

    # Expiry status bands (days until expiry, inclusive)
    expiry_critical_days: int = 7
    expiry_warning_days: int = 30

    # Dashboard
    dashboard_expiry_threshold_days: int = 30
    dashboard_list_limit: int = 10
    recent_movement_limit: int = 20
    top_consumed_window_days: int = 30

    # Store discount summary
    top_discounted_products_limit: int = 10

    def __post_init__(self):
        if self.display_precision < 0:
            raise ValueError("display_precision cannot be negative")
        if len(self.default_currency) != 3:
            raise ValueError("default_currency must be a 3-letter ISO 4217 code")
        if self.expiry_threshold_days < 0 or self.dashboard_expiry_threshold_days < 0:
            raise ValueError("expiry thresholds cannot be negative")
        if self.expiry_critical_days <= 0:
            raise ValueError("expiry_critical_days must be positive")
        if self.expiry_warning_days < self.expiry_critical_days:
            raise ValueError("expiry_warning_days cannot be less than expiry_critical_days")
        for name in (
            "dashboard_list_limit",
            "recent_movement_limit",
            "top_consumed_window_days",
            "top_discounted_products_limit",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with standard defaults."""
        logger.info("reporting_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary."""
        logger.info(
            "reporting_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
