"""
Tests for reporting configuration.

Verifies config validation, defaults, and factory methods.
NO database required.
"""

from __future__ import annotations

import pytest

from stock_modules.reporting.config import ReportingConfig


class TestReportingConfig:
    """Tests for ReportingConfig."""

    def test_defaults(self):
        config = ReportingConfig.with_defaults()
        assert config.default_currency == "BDT"
        assert config.entity_name == "Company"
        assert config.display_precision == 2
        assert config.include_zero_balances is False
        assert config.expiry_threshold_days == 60
        assert config.dashboard_expiry_threshold_days == 30
        assert config.dashboard_list_limit == 10
        assert config.recent_movement_limit == 20

    def test_custom_values(self):
        config = ReportingConfig(
            default_currency="USD",
            entity_name="Test Pharma Ltd",
            display_precision=4,
            include_zero_balances=True,
        )
        assert config.default_currency == "USD"
        assert config.entity_name == "Test Pharma Ltd"
        assert config.display_precision == 4
        assert config.include_zero_balances is True

    def test_negative_precision_rejected(self):
        with pytest.raises(ValueError, match="display_precision"):
            ReportingConfig(display_precision=-1)

    def test_invalid_currency_rejected(self):
        with pytest.raises(ValueError, match="3-letter ISO"):
            ReportingConfig(default_currency="TK")

    def test_negative_expiry_threshold_rejected(self):
        with pytest.raises(ValueError, match="expiry thresholds"):
            ReportingConfig(expiry_threshold_days=-5)

    def test_warning_band_inside_critical_rejected(self):
        with pytest.raises(ValueError, match="expiry_warning_days"):
            ReportingConfig(expiry_critical_days=10, expiry_warning_days=5)

    @pytest.mark.parametrize(
        "field",
        ["dashboard_list_limit", "recent_movement_limit", "top_consumed_window_days"],
    )
    def test_list_limits_must_be_positive(self, field):
        with pytest.raises(ValueError, match=field):
            ReportingConfig(**{field: 0})

    def test_from_dict(self):
        config = ReportingConfig.from_dict({
            "default_currency": "INR",
            "entity_name": "Hill Pharma",
        })
        assert config.default_currency == "INR"
        assert config.entity_name == "Hill Pharma"

    def test_from_dict_unknown_key_rejected(self):
        with pytest.raises(TypeError):
            ReportingConfig.from_dict({"classification": {}})
