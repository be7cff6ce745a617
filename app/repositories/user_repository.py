"""
User repository.

Data access layer for User model.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """User repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize user repository."""
        super().__init__(User, session)

    async def get_by_external_id(self, external_id: str) -> User | None:
        """
        Get user by public member code.

        Args:
            external_id: Member code (e.g. MC34234)

        Returns:
            User or None if not found
        """
        return await self.get_by(external_id=external_id)

    async def get_many(self, user_ids: list[int]) -> dict[int, User]:
        """
        Get users by IDs in one query.

        Args:
            user_ids: User IDs

        Returns:
            Dict mapping user ID to User
        """
        if not user_ids:
            return {}

        stmt = select(User).where(User.id.in_(user_ids))
        result = await self.session.execute(stmt)
        return {user.id: user for user in result.scalars().all()}

    async def get_node_attributes(
        self, user_ids: list[int]
    ) -> dict[int, tuple[Decimal, datetime]]:
        """
        Get deposit balance and creation time for tree nodes.

        Optimized to avoid fetching full objects.

        Args:
            user_ids: User IDs

        Returns:
            Dict mapping user ID to (deposit_balance, created_at)
        """
        if not user_ids:
            return {}

        stmt = select(User.id, User.deposit_balance, User.created_at).where(
            User.id.in_(user_ids)
        )
        result = await self.session.execute(stmt)
        return {
            row.id: (row.deposit_balance or Decimal("0"), row.created_at)
            for row in result.all()
        }

    async def get_all_node_attributes(
        self,
    ) -> dict[int, tuple[Decimal, datetime]]:
        """
        Get deposit balance and creation time for every user.

        Returns:
            Dict mapping user ID to (deposit_balance, created_at)
        """
        stmt = select(User.id, User.deposit_balance, User.created_at)
        result = await self.session.execute(stmt)
        return {
            row.id: (row.deposit_balance or Decimal("0"), row.created_at)
            for row in result.all()
        }

    async def get_with_parent_ref_page(
        self, after_id: int = 0, limit: int = 500
    ) -> list[User]:
        """
        Get users that reference a parent, keyset-paginated.

        Args:
            after_id: Last ID of the previous page
            limit: Page size

        Returns:
            List of users ordered by ID
        """
        stmt = (
            select(User)
            .where(User.parent_ref.is_not(None), User.id > after_id)
            .order_by(User.id.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
