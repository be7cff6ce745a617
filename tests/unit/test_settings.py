"""
Unit tests for settings validation.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from app.config.settings import Settings, parse_schedule_time


DB_URL = "sqlite+aiosqlite:///:memory:"


class TestSettings:
    """Test settings validators."""

    def test_defaults(self):
        settings = Settings(database_url=DB_URL)

        assert settings.bonus_rate == Decimal("0.05")
        assert settings.daily_profit_time == "00:15"
        assert settings.daily_bonus_time == "00:20"
        assert settings.leg_rewards_inline is True

    def test_log_level_normalized(self):
        assert Settings(database_url=DB_URL, log_level="debug").log_level == "DEBUG"

    def test_unknown_log_level_rejected(self):
        with pytest.raises(ValidationError):
            Settings(database_url=DB_URL, log_level="verbose")

    def test_schedule_time_padded(self):
        settings = Settings(database_url=DB_URL, daily_bonus_time="1:5")
        assert settings.daily_bonus_time == "01:05"

    @pytest.mark.parametrize("value", ["25:00", "00:60", "noon", "1:2:3"])
    def test_invalid_schedule_time(self, value):
        with pytest.raises(ValidationError):
            Settings(database_url=DB_URL, daily_profit_time=value)

    def test_bonus_rate_bounds(self):
        with pytest.raises(ValidationError):
            Settings(database_url=DB_URL, bonus_rate=Decimal("1.5"))

    def test_parse_schedule_time(self):
        assert parse_schedule_time("00:20") == (0, 20)
