"""Tests for bonus percentage parsing."""

from decimal import Decimal

import pytest

from payroll_tracker.calculators import BonusConfig
from payroll_tracker.calculators.bonus_config import (
    FIRST_TIME_BONUS_KEY,
    QUOTED_BY_BONUS_KEY,
    parse_percentage,
)


class TestParsePercentage:
    """Stored values are strings edited by admins."""

    def test_valid_value(self):
        assert parse_percentage("25.5", Decimal("30")) == Decimal("25.5")

    @pytest.mark.parametrize("raw", [None, "", "   ", "abc", "NaN", "Infinity", "-3"])
    def test_invalid_values_fall_back(self, raw):
        assert parse_percentage(raw, Decimal("30")) == Decimal("30")

    def test_zero_is_kept(self):
        """Zero switches the bonus off rather than restoring the default."""
        assert parse_percentage("0", Decimal("30")) == Decimal("0")


class TestBonusConfig:
    """BonusConfig construction."""

    def test_defaults(self):
        config = BonusConfig()
        assert config.first_time_bonus_percentage == Decimal("30")
        assert config.quoted_by_bonus_percentage == Decimal("2")

    def test_from_settings(self):
        config = BonusConfig.from_settings(
            {FIRST_TIME_BONUS_KEY: "40", QUOTED_BY_BONUS_KEY: "garbage"}
        )
        assert config.first_time_bonus_percentage == Decimal("40")
        assert config.quoted_by_bonus_percentage == Decimal("2")

    def test_from_empty_settings(self):
        assert BonusConfig.from_settings({}) == BonusConfig()
