"""
Deposit service.

Deposit lifecycle: pending -> completed (triggers leg rewards) or failed.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import settings
from app.models.deposit import Deposit
from app.models.enums import DepositStatus, LedgerAccount, LedgerReason
from app.repositories.deposit_repository import DepositRepository
from app.repositories.user_repository import UserRepository
from app.services.base_service import BaseService, transaction
from app.services.ledger_service import LedgerService
from app.services.reward.leg_reward_engine import LegRewardEngine, LegRewardResult
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import (
    DepositNotFound,
    InvalidDepositTransition,
    UserNotFound,
)
from app.utils.money import to_decimal


@dataclass
class DepositCompletion:
    """Result of completing a deposit."""

    deposit: Deposit
    already_completed: bool = False
    leg_rewards: LegRewardResult | None = None
    queued: bool = False


class DepositService(BaseService):
    """Deposit service handles the deposit lifecycle."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize deposit service."""
        super().__init__(session)
        self.deposit_repo = DepositRepository(session)
        self.user_repo = UserRepository(session)
        self.ledger = LedgerService(session)

    @transaction
    async def create_deposit(self, user_id: int, amount: Decimal) -> Deposit:
        """
        Create a pending deposit.

        Args:
            user_id: Depositing user
            amount: Deposit amount

        Returns:
            Created deposit

        Raises:
            ValueError: If amount is not positive
            UserNotFound: If user does not exist
        """
        amount = to_decimal(amount)
        if amount <= 0:
            raise ValueError(f"Deposit amount must be positive, got {amount}")

        if await self.user_repo.get_by_id(user_id) is None:
            raise UserNotFound(f"User {user_id} not found")

        deposit = await self.deposit_repo.create(
            user_id=user_id,
            amount=amount,
            status=DepositStatus.PENDING.value,
        )

        self.logger.info(
            "Deposit created",
            extra={
                "deposit_id": deposit.id,
                "user_id": user_id,
                "amount": str(amount),
            },
        )
        return deposit

    async def complete_deposit(
        self, deposit_id: int, now: datetime | None = None
    ) -> DepositCompletion:
        """
        Complete a pending deposit.

        Credits deposit_balance and applies leg rewards in the same
        transaction, or commits first and queues the leg rewards when
        settings.leg_rewards_inline is off. Completing an already completed
        deposit is a no-op.

        Args:
            deposit_id: Deposit ID
            now: Completion time (defaults to now)

        Returns:
            DepositCompletion

        Raises:
            DepositNotFound: Deposit does not exist
            InvalidDepositTransition: Deposit already failed
        """
        now = now or utc_now()
        try:
            deposit = await self.deposit_repo.get_for_update(deposit_id)
            if deposit is None:
                raise DepositNotFound(f"Deposit {deposit_id} not found")

            if deposit.is_completed:
                await self.commit()
                self.logger.info(
                    "Deposit already completed, skipping",
                    extra={"deposit_id": deposit_id},
                )
                return DepositCompletion(deposit=deposit, already_completed=True)

            if deposit.status != DepositStatus.PENDING.value:
                raise InvalidDepositTransition(
                    f"Deposit {deposit_id} is {deposit.status}, cannot complete"
                )

            deposit.status = DepositStatus.COMPLETED.value
            deposit.completed_at = now
            await self.session.flush()

            await self.ledger.credit(
                user_id=deposit.user_id,
                account=LedgerAccount.DEPOSIT_BALANCE,
                amount=deposit.amount,
                reason=LedgerReason.DEPOSIT,
                idempotency_key=f"deposit:{deposit.id}",
            )

            leg_rewards = None
            if settings.leg_rewards_inline:
                leg_rewards = await LegRewardEngine(self.session).process(
                    deposit.id
                )

            await self.commit()
        except Exception:
            await self.rollback()
            raise

        self.logger.info(
            "Deposit completed",
            extra={
                "deposit_id": deposit.id,
                "user_id": deposit.user_id,
                "amount": str(deposit.amount),
            },
        )

        if leg_rewards is not None:
            return DepositCompletion(deposit=deposit, leg_rewards=leg_rewards)

        from jobs.tasks.leg_rewards import process_leg_rewards

        process_leg_rewards.send(deposit.id)
        return DepositCompletion(deposit=deposit, queued=True)

    @transaction
    async def fail_deposit(self, deposit_id: int) -> Deposit:
        """
        Mark a pending deposit as failed.

        Args:
            deposit_id: Deposit ID

        Returns:
            Updated deposit

        Raises:
            DepositNotFound: Deposit does not exist
            InvalidDepositTransition: Deposit already completed
        """
        deposit = await self.deposit_repo.get_for_update(deposit_id)
        if deposit is None:
            raise DepositNotFound(f"Deposit {deposit_id} not found")

        if deposit.is_completed:
            raise InvalidDepositTransition(
                f"Deposit {deposit_id} is completed and cannot fail"
            )

        if deposit.status != DepositStatus.FAILED.value:
            deposit.status = DepositStatus.FAILED.value
            await self.session.flush()
            self.logger.warning(
                "Deposit failed", extra={"deposit_id": deposit_id}
            )

        return deposit
