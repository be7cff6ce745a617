"""
CapitalHistory repository.

Data access layer for CapitalHistory model.
"""

from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.capital_history import CapitalHistory
from app.repositories.base import BaseRepository


class CapitalHistoryRepository(BaseRepository[CapitalHistory]):
    """Repository for daily bonus history."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(CapitalHistory, session)

    async def get_for_day(
        self, user_id: int, calculation_date: date
    ) -> CapitalHistory | None:
        """
        Get the history row of a user for a date.

        Args:
            user_id: User ID
            calculation_date: Run date

        Returns:
            History row or None if the day is not settled
        """
        return await self.get_by(
            user_id=user_id, calculation_date=calculation_date
        )

    async def get_by_user(
        self, user_id: int, limit: int = 30
    ) -> list[CapitalHistory]:
        """
        Get recent history rows of a user, newest first.

        Args:
            user_id: User ID
            limit: Max rows

        Returns:
            List of history rows
        """
        stmt = (
            select(CapitalHistory)
            .where(CapitalHistory.user_id == user_id)
            .order_by(CapitalHistory.calculation_date.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
