"""
Trade feed reader.

Normalizing adapter over the cached per-user trade-report documents. The
engines only ever see ProfitEntry(date, percent); the document shape is
handled here.
"""

import json
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import settings
from app.models.trade_report import TradeReport
from app.repositories.trade_report_repository import TradeReportRepository
from app.utils.datetime_utils import ensure_utc, parse_date, utc_now
from app.utils.exceptions import ExternalFeedUnavailable, MissingFeedEntry
from app.utils.money import to_decimal


# Keys that carry the daily percentage, in lookup order
PERCENT_KEYS = ("dailyProfit", "dailyProfitPercent", "profitPercent")


@dataclass(frozen=True)
class ProfitEntry:
    """Daily profit percentage reported for one date."""

    date: date
    percent: Decimal


def _daily_reports(payload: Any) -> list:
    """
    Locate the dailyReports list in one of the known document shapes.

    Raises:
        ValueError: If no shape matches
    """
    if isinstance(payload, str):
        payload = json.loads(payload)
    if not isinstance(payload, dict):
        raise ValueError("Trade report is not a JSON object")

    candidates = (
        (payload.get("data") or {}),
        ((payload.get("result") or {}).get("data") or {}),
        payload,
    )
    for container in candidates:
        if isinstance(container, dict) and isinstance(
            container.get("dailyReports"), list
        ):
            return container["dailyReports"]

    raise ValueError("dailyReports not found in trade report")


def normalize_payload(payload: Any) -> list[ProfitEntry]:
    """
    Convert a raw trade-report document into profit entries.

    Accepted shapes: {"data": {"dailyReports": [...]}},
    {"result": {"data": {"dailyReports": [...]}}} and {"dailyReports": [...]}.
    Reports without a date or a percentage are skipped.

    Args:
        payload: Document as stored (dict or JSON string)

    Returns:
        Entries in document order

    Raises:
        ValueError: If the document has none of the accepted shapes
    """
    entries = []
    for report in _daily_reports(payload):
        if not isinstance(report, dict) or not report.get("date"):
            logger.warning(
                "Skipping daily report without date", extra={"report": report}
            )
            continue

        raw_percent = next(
            (report[key] for key in PERCENT_KEYS if report.get(key) is not None),
            None,
        )
        if raw_percent is None:
            logger.warning(
                "Skipping daily report without profit percent",
                extra={"date": report.get("date")},
            )
            continue

        try:
            entries.append(
                ProfitEntry(
                    date=parse_date(str(report["date"])),
                    percent=to_decimal(raw_percent),
                )
            )
        except ValueError:
            logger.warning(
                "Skipping unparseable daily report",
                extra={"date": report.get("date"), "percent": raw_percent},
            )

    return entries


class TradeFeedReader:
    """
    Reader for cached trade reports.

    prefetch() loads many users' documents in one query; later lookups for
    those users are served from memory.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize trade feed reader."""
        self.session = session
        self.report_repo = TradeReportRepository(session)
        self._reports: dict[int, TradeReport | None] = {}

    async def prefetch(self, user_ids: list[int]) -> None:
        """Load documents of several users at once."""
        missing = [uid for uid in user_ids if uid not in self._reports]
        if not missing:
            return
        reports = await self.report_repo.get_by_users(missing)
        for user_id in missing:
            self._reports[user_id] = reports.get(user_id)

    async def get_report(self, user_id: int) -> TradeReport | None:
        """Get the raw document row of a user (cached)."""
        if user_id not in self._reports:
            self._reports[user_id] = await self.report_repo.get_by_user(user_id)
        return self._reports[user_id]

    async def entries_for(
        self, user_id: int, now: datetime | None = None
    ) -> list[ProfitEntry]:
        """
        Get all profit entries of a user.

        Args:
            user_id: User ID
            now: Reference time for the expiry check

        Returns:
            List of ProfitEntry

        Raises:
            ExternalFeedUnavailable: Missing, inactive, expired or
                malformed document
        """
        now = now or utc_now()
        report = await self.get_report(user_id)

        if report is None:
            raise ExternalFeedUnavailable(user_id, "no trade report")
        if not report.is_active:
            raise ExternalFeedUnavailable(user_id, "trade report inactive")
        if self._expires_at(report) < now:
            raise ExternalFeedUnavailable(user_id, "trade report expired")

        try:
            return normalize_payload(report.payload)
        except (ValueError, TypeError, AttributeError) as e:
            raise ExternalFeedUnavailable(user_id, f"malformed payload: {e}") from e

    async def percent_for(
        self, user_id: int, on: date, now: datetime | None = None
    ) -> Decimal | None:
        """
        Get the total percentage reported for a date.

        Args:
            user_id: User ID
            on: Feed date
            now: Reference time for the expiry check

        Returns:
            Sum of matching entries' percentages, or None if no entry
            matches the date

        Raises:
            ExternalFeedUnavailable: Document cannot be used
        """
        matching = [
            entry.percent
            for entry in await self.entries_for(user_id, now=now)
            if entry.date == on
        ]
        if not matching:
            return None
        return sum(matching, Decimal("0"))

    async def require_percent(
        self, user_id: int, on: date, now: datetime | None = None
    ) -> Decimal:
        """
        Get the total percentage reported for a date, which must exist.

        Raises:
            MissingFeedEntry: No entry matches the date
            ExternalFeedUnavailable: Document cannot be used
        """
        percent = await self.percent_for(user_id, on, now=now)
        if percent is None:
            raise MissingFeedEntry(user_id, on)
        return percent

    @staticmethod
    def _expires_at(report: TradeReport) -> datetime:
        """Explicit expiry, or refresh time plus the configured lifetime."""
        expires_at = ensure_utc(report.expires_at)
        if expires_at is None:
            expires_at = ensure_utc(report.refreshed_at) + timedelta(
                days=settings.trade_feed_expiry_days
            )
        return expires_at

    def clear_cache(self) -> None:
        """Forget cached documents (required after a rollback expires them)."""
        self._reports.clear()

    async def deactivate_expired(self, now: datetime | None = None) -> int:
        """
        Flag expired documents inactive and commit.

        Args:
            now: Reference time

        Returns:
            Number of deactivated documents
        """
        now = now or utc_now()
        count = await self.report_repo.deactivate_expired(
            now, stale_before=now - timedelta(days=settings.trade_feed_expiry_days)
        )
        await self.session.commit()
        self.clear_cache()

        logger.info(
            f"Deactivated {count} expired trade reports",
            extra={"deactivated": count},
        )
        return count
