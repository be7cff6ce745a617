"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from decimal import Decimal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Redis (for Dramatiq and distributed locks)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"
    health_check_port: int = Field(
        default=8081, ge=1, le=65535, description="Health check HTTP server port"
    )

    # Bonus engine
    bonus_rate: Decimal = Field(
        default=Decimal("0.05"),
        gt=0,
        le=1,
        description="Share of a qualified sub's daily profit paid to the ancestor",
    )
    bonus_batch_size: int = Field(
        default=100, ge=1, le=10_000, description="Users per page in daily runs"
    )

    # Trade feed
    trade_feed_expiry_days: int = Field(
        default=30, ge=1, description="Lifetime of a cached trade-report document"
    )

    # Leg rewards: run inside the deposit transaction or through the queue
    leg_rewards_inline: bool = True

    # Daily schedule (UTC)
    trade_feed_cleanup_time: str = "00:00"
    daily_profit_time: str = "00:15"
    daily_bonus_time: str = "00:20"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and validate loguru level name."""
        level = v.upper()
        allowed = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}
        if level not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return level

    @field_validator(
        "trade_feed_cleanup_time", "daily_profit_time", "daily_bonus_time"
    )
    @classmethod
    def validate_schedule_time(cls, v: str) -> str:
        """Validate HH:MM schedule strings."""
        parts = v.split(":")
        if len(parts) != 2 or not all(p.isdigit() for p in parts):
            raise ValueError(f"Invalid schedule time '{v}', expected HH:MM")
        hour, minute = int(parts[0]), int(parts[1])
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            raise ValueError(f"Invalid schedule time '{v}', expected HH:MM")
        return f"{hour:02d}:{minute:02d}"

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"


def parse_schedule_time(value: str) -> tuple[int, int]:
    """
    Split a validated HH:MM string into hour and minute.

    Args:
        value: Time string such as "00:15"

    Returns:
        Tuple of (hour, minute)
    """
    hour, minute = value.split(":")
    return int(hour), int(minute)


# Global settings instance
settings = Settings()
