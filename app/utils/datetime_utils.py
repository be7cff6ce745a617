"""
Datetime utilities.

Provides timezone-aware datetime functions.
"""

from datetime import UTC, date, datetime


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone info.

    Returns:
        Current datetime in UTC with timezone awareness
    """
    return datetime.now(UTC)


def utc_today() -> date:
    """
    Get current UTC calendar date.

    Returns:
        Today's date in UTC
    """
    return utc_now().date()


def ensure_utc(value: datetime | None) -> datetime | None:
    """
    Attach UTC to naive datetimes read back from the database.

    Some backends (SQLite) drop tzinfo on round-trip.

    Args:
        value: Datetime or None

    Returns:
        Timezone-aware datetime or None
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def parse_date(value: str) -> date:
    """
    Parse YYYY-MM-DD into a date.

    Args:
        value: ISO date string

    Returns:
        Parsed date

    Raises:
        ValueError: If the string is not a valid ISO date
    """
    return date.fromisoformat(value.strip()[:10])
