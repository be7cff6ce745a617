"""
Ledger repository.

Data access layer for LedgerEntry model.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.ledger_entry import LedgerEntry
from app.repositories.base import BaseRepository


class LedgerRepository(BaseRepository[LedgerEntry]):
    """Repository for ledger audit rows."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(LedgerEntry, session)

    async def key_exists(self, idempotency_key: str) -> bool:
        """
        Check if a credit with this key was already applied.

        Args:
            idempotency_key: Business event key

        Returns:
            True if an entry exists
        """
        stmt = select(LedgerEntry.id).where(
            LedgerEntry.idempotency_key == idempotency_key
        )
        result = await self.session.execute(stmt)
        return result.first() is not None

    async def get_total(
        self, user_id: int, account: str, reason: str | None = None
    ) -> Decimal:
        """
        Sum credited amounts of a user's account.

        Args:
            user_id: User ID
            account: Balance column name
            reason: Optional reason filter

        Returns:
            Total credited amount
        """
        stmt = select(
            func.coalesce(func.sum(LedgerEntry.amount), Decimal("0"))
        ).where(
            LedgerEntry.user_id == user_id,
            LedgerEntry.account == account,
        )
        if reason:
            stmt = stmt.where(LedgerEntry.reason == reason)

        result = await self.session.execute(stmt)
        return Decimal(result.scalar() or 0)
