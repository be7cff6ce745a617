"""
Leg reward engine.

Applies a completed deposit to the capped leg buckets of every ancestor.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import (
    BUCKET_POLICIES,
    LEG_COUNT,
    BucketPolicy,
)
from app.models.deposit import Deposit
from app.models.enums import LedgerAccount, LedgerReason
from app.models.reward_bucket import RewardBucket
from app.repositories.deposit_repository import DepositRepository
from app.repositories.reward_bucket_repository import RewardBucketRepository
from app.repositories.user_repository import UserRepository
from app.services.base_service import BaseService
from app.services.hierarchy.hierarchy_store import HierarchyStore
from app.services.ledger_service import LedgerService
from app.services.reward.capped_bucket import complete_bucket, fill_leg
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import DepositNotFound, InvalidDepositTransition


@dataclass
class LegRewardPayout:
    """Single bucket completion."""

    parent_id: int
    bucket_type: str
    bucket_id: int
    amount: Decimal


@dataclass
class LegRewardResult:
    """Outcome of applying one deposit to all ancestors."""

    deposit_id: int
    bucket_writes: int = 0
    already_processed: int = 0
    non_leg_ancestors: int = 0
    cycle_detected: bool = False
    payouts: list[LegRewardPayout] = field(default_factory=list)


class LegRewardEngine(BaseService):
    """
    Leg reward engine.

    For each bucket policy, walks from the depositor up to the root. At every
    ancestor the child's join position picks leg A/B/C; the full deposit
    amount is added to that leg of the ancestor's buckets. Ancestors reached
    through a 4th-or-later child get no bucket write but the walk continues.

    Runs in the caller's transaction. Each (ancestor, deposit, bucket type)
    is applied once, guarded by a RewardProcessing row.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize leg reward engine."""
        super().__init__(session)
        self.store = HierarchyStore(session)
        self.ledger = LedgerService(session)
        self.bucket_repo = RewardBucketRepository(session)
        self.deposit_repo = DepositRepository(session)
        self.user_repo = UserRepository(session)

    async def process(self, deposit_id: int) -> LegRewardResult:
        """
        Apply a completed deposit to every ancestor's buckets.

        Args:
            deposit_id: Completed deposit

        Returns:
            LegRewardResult

        Raises:
            DepositNotFound: Deposit does not exist
            InvalidDepositTransition: Deposit is not completed
        """
        deposit = await self.deposit_repo.get_by_id(deposit_id)
        if deposit is None:
            raise DepositNotFound(f"Deposit {deposit_id} not found")
        if not deposit.is_completed:
            raise InvalidDepositTransition(
                f"Deposit {deposit_id} is {deposit.status}, not completed"
            )

        result = LegRewardResult(deposit_id=deposit_id)
        for policy in BUCKET_POLICIES:
            await self._walk_ancestors(deposit, policy, result)

        self.logger.info(
            "Leg rewards processed",
            extra={
                "deposit_id": deposit_id,
                "user_id": deposit.user_id,
                "bucket_writes": result.bucket_writes,
                "already_processed": result.already_processed,
                "payouts": len(result.payouts),
            },
        )
        return result

    async def _walk_ancestors(
        self, deposit: Deposit, policy: BucketPolicy, result: LegRewardResult
    ) -> None:
        child_id = deposit.user_id
        visited = {child_id}
        parent_id = await self.store.parent_of(child_id)

        while parent_id is not None:
            if parent_id in visited:
                self.logger.error(
                    "Hierarchy cycle while walking ancestors, stopping",
                    extra={
                        "deposit_id": deposit.id,
                        "user_id": parent_id,
                        "bucket_type": policy.bucket_type,
                    },
                )
                result.cycle_detected = True
                return
            visited.add(parent_id)

            leg_index = await self.store.leg_index(parent_id, child_id)
            if leg_index is None:
                return

            if leg_index < LEG_COUNT:
                await self._apply_to_parent(
                    parent_id, leg_index, deposit, policy, result
                )
            else:
                result.non_leg_ancestors += 1

            child_id = parent_id
            parent_id = await self.store.parent_of(parent_id)

    async def _apply_to_parent(
        self,
        parent_id: int,
        leg_index: int,
        deposit: Deposit,
        policy: BucketPolicy,
        result: LegRewardResult,
    ) -> None:
        if await self.bucket_repo.is_processed(
            parent_id, deposit.id, policy.bucket_type
        ):
            result.already_processed += 1
            return

        # Serializes deposits landing on the same parent
        await self.user_repo.get_for_update(parent_id)

        buckets = await self.bucket_repo.get_open_buckets(
            parent_id, policy.bucket_type
        )
        fill = fill_leg(
            buckets,
            leg_index,
            Decimal(deposit.amount),
            policy,
            lambda: RewardBucket.open_for(parent_id, policy.bucket_type),
        )
        self.session.add_all(fill.created)
        await self.session.flush()

        await self.bucket_repo.mark_processed(
            parent_id=parent_id,
            deposit_id=deposit.id,
            bucket_type=policy.bucket_type,
            leg_index=leg_index,
            amount=deposit.amount,
        )
        result.bucket_writes += 1

        now = utc_now()
        for bucket in fill.completed:
            complete_bucket(bucket, policy, now)
            await self.session.flush()
            await self.ledger.credit(
                user_id=parent_id,
                account=LedgerAccount.CAPITAL_PROFIT,
                amount=policy.payout,
                reason=LedgerReason.LEG_REWARD,
                idempotency_key=f"leg_reward:{policy.bucket_type}:{bucket.id}",
            )
            result.payouts.append(
                LegRewardPayout(
                    parent_id=parent_id,
                    bucket_type=policy.bucket_type,
                    bucket_id=bucket.id,
                    amount=policy.payout,
                )
            )
            self.logger.success(
                f"{policy.bucket_type.capitalize()} leg bucket completed",
                extra={
                    "parent_id": parent_id,
                    "bucket_id": bucket.id,
                    "payout": str(policy.payout),
                },
            )
