"""
Deposit repository.

Data access layer for Deposit model.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.deposit import Deposit
from app.models.enums import DepositStatus
from app.repositories.base import BaseRepository


class DepositRepository(BaseRepository[Deposit]):
    """Deposit repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize deposit repository."""
        super().__init__(Deposit, session)

    async def get_completed_totals(
        self, user_ids: list[int] | None = None
    ) -> dict[int, Decimal]:
        """
        Sum completed deposits per user in a single query.

        Uses SQL GROUP BY instead of loading deposits.

        Args:
            user_ids: Restrict to these users (None for all users)

        Returns:
            Dict mapping user ID to completed deposit total
            (users without completed deposits are absent)
        """
        if user_ids is not None and not user_ids:
            return {}

        stmt = (
            select(
                Deposit.user_id,
                func.coalesce(func.sum(Deposit.amount), Decimal("0")).label("total"),
            )
            .where(Deposit.status == DepositStatus.COMPLETED.value)
            .group_by(Deposit.user_id)
        )
        if user_ids is not None:
            stmt = stmt.where(Deposit.user_id.in_(user_ids))

        result = await self.session.execute(stmt)
        return {row.user_id: Decimal(row.total) for row in result.all()}

    async def get_by_user(
        self, user_id: int, status: str | None = None
    ) -> list[Deposit]:
        """
        Get deposits of a user, newest first.

        Args:
            user_id: User ID
            status: Optional status filter

        Returns:
            List of deposits
        """
        stmt = select(Deposit).where(Deposit.user_id == user_id)
        if status:
            stmt = stmt.where(Deposit.status == status)
        stmt = stmt.order_by(Deposit.created_at.desc())

        result = await self.session.execute(stmt)
        return list(result.scalars().all())
