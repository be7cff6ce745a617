"""
Ledger service.

Single entry point for every balance mutation. Engines and the deposit path
never touch User balance columns directly.
"""

from decimal import Decimal

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import LedgerAccount
from app.models.ledger_entry import LedgerEntry
from app.models.user import User
from app.repositories.ledger_repository import LedgerRepository
from app.services.base_service import BaseService
from app.utils.exceptions import LedgerError, UserNotFound
from app.utils.money import round_ledger, to_decimal


class LedgerService(BaseService):
    """
    Ledger service.

    Credits run inside the caller's transaction: the balance increment and
    its LedgerEntry row are flushed together and committed (or rolled back)
    by the caller along with the business record that caused them.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize ledger service."""
        super().__init__(session)
        self.ledger_repo = LedgerRepository(session)

    async def credit(
        self,
        user_id: int,
        account: str,
        amount: Decimal,
        reason: str,
        idempotency_key: str,
    ) -> bool:
        """
        Credit a user balance once per idempotency key.

        Args:
            user_id: User to credit
            account: deposit_balance, gain_profit or capital_profit
            amount: Positive amount
            reason: LedgerReason value
            idempotency_key: Business event key, e.g. "bonus:12:2025-09-01"

        Returns:
            True if credited, False if the key was already applied

        Raises:
            LedgerError: Non-positive amount or unknown account
            UserNotFound: User does not exist
        """
        try:
            account = LedgerAccount(account).value
        except ValueError as e:
            raise LedgerError(f"Unknown ledger account: {account}") from e

        amount = round_ledger(to_decimal(amount))
        if amount <= 0:
            raise LedgerError(
                f"Ledger credit must be positive, got {amount} ({idempotency_key})"
            )

        if await self.ledger_repo.key_exists(idempotency_key):
            self.logger.info(
                "Ledger credit already applied, skipping",
                extra={"user_id": user_id, "idempotency_key": idempotency_key},
            )
            return False

        # Atomic increment, no read-modify-write
        column = getattr(User, account)
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values({account: column + amount})
        )
        result = await self.session.execute(stmt)
        if result.rowcount == 0:
            raise UserNotFound(f"User {user_id} not found")

        entry = LedgerEntry(
            user_id=user_id,
            account=account,
            amount=amount,
            reason=reason,
            idempotency_key=idempotency_key,
        )
        self.session.add(entry)
        await self.session.flush()

        self.logger.info(
            f"Credited {amount} to {account}",
            extra={
                "user_id": user_id,
                "account": account,
                "amount": str(amount),
                "reason": reason,
                "idempotency_key": idempotency_key,
            },
        )
        return True
