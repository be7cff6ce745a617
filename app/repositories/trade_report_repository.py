"""
TradeReport repository.

Data access layer for TradeReport and ProfitSettlement models.
"""

from datetime import date, datetime

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.profit_settlement import ProfitSettlement
from app.models.trade_report import TradeReport
from app.repositories.base import BaseRepository


class TradeReportRepository(BaseRepository[TradeReport]):
    """Repository for cached trade-report documents."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(TradeReport, session)

    async def get_by_user(self, user_id: int) -> TradeReport | None:
        """
        Get the cached document of a user.

        Args:
            user_id: User ID

        Returns:
            TradeReport or None if the user has no document
        """
        return await self.get_by(user_id=user_id)

    async def get_by_users(self, user_ids: list[int]) -> dict[int, TradeReport]:
        """
        Get cached documents of several users in one query.

        Args:
            user_ids: User IDs

        Returns:
            Dict mapping user ID to TradeReport
        """
        if not user_ids:
            return {}

        stmt = select(TradeReport).where(TradeReport.user_id.in_(user_ids))
        result = await self.session.execute(stmt)
        return {report.user_id: report for report in result.scalars().all()}

    async def deactivate_expired(
        self, now: datetime, stale_before: datetime
    ) -> int:
        """
        Flag active documents past their expiry as inactive.

        Documents without expires_at expire when refreshed before
        stale_before.

        Args:
            now: Current time
            stale_before: Refresh cutoff for documents without expires_at

        Returns:
            Number of deactivated documents
        """
        stmt = (
            update(TradeReport)
            .where(
                TradeReport.is_active == True,  # noqa: E712
                or_(
                    TradeReport.expires_at < now,
                    and_(
                        TradeReport.expires_at.is_(None),
                        TradeReport.refreshed_at < stale_before,
                    ),
                ),
            )
            .values(is_active=False)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def is_settled(self, user_id: int, settlement_date: date) -> bool:
        """
        Check if the daily profit for (user, date) was already applied.

        Args:
            user_id: User ID
            settlement_date: Feed date

        Returns:
            True if a settlement row exists
        """
        stmt = select(ProfitSettlement.id).where(
            ProfitSettlement.user_id == user_id,
            ProfitSettlement.settlement_date == settlement_date,
        )
        result = await self.session.execute(stmt)
        return result.first() is not None

    async def add_settlement(self, **data) -> ProfitSettlement:
        """
        Insert a profit settlement row.

        Args:
            **data: ProfitSettlement fields

        Returns:
            Created settlement
        """
        settlement = ProfitSettlement(**data)
        self.session.add(settlement)
        await self.session.flush()
        return settlement
