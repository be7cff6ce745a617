"""
RewardBucket repository.

Data access layer for RewardBucket and RewardProcessing models.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.reward_bucket import RewardBucket
from app.models.reward_processing import RewardProcessing
from app.repositories.base import BaseRepository


class RewardBucketRepository(BaseRepository[RewardBucket]):
    """Repository for reward bucket operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(RewardBucket, session)

    async def get_open_buckets(
        self, owner_user_id: int, bucket_type: str
    ) -> list[RewardBucket]:
        """
        Get buckets that can still take deposits, oldest first.

        A bucket is open until it is rewarded; leg-level fullness is checked
        by the fill algorithm against the policy cap.

        Args:
            owner_user_id: Bucket owner
            bucket_type: "standard" or "legacy"

        Returns:
            Open buckets ordered by creation
        """
        stmt = (
            select(RewardBucket)
            .where(
                RewardBucket.owner_user_id == owner_user_id,
                RewardBucket.bucket_type == bucket_type,
                RewardBucket.is_rewarded == False,  # noqa: E712
            )
            .order_by(RewardBucket.created_at.asc(), RewardBucket.id.asc())
            .with_for_update()
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_owner(
        self, owner_user_id: int, bucket_type: str | None = None
    ) -> list[RewardBucket]:
        """
        Get all buckets of an owner, oldest first.

        Args:
            owner_user_id: Bucket owner
            bucket_type: Optional type filter

        Returns:
            List of buckets
        """
        stmt = select(RewardBucket).where(
            RewardBucket.owner_user_id == owner_user_id
        )
        if bucket_type:
            stmt = stmt.where(RewardBucket.bucket_type == bucket_type)
        stmt = stmt.order_by(RewardBucket.created_at.asc(), RewardBucket.id.asc())

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def is_processed(
        self, parent_id: int, deposit_id: int, bucket_type: str
    ) -> bool:
        """
        Check the durable idempotency marker.

        Args:
            parent_id: Ancestor user ID
            deposit_id: Deposit ID
            bucket_type: Bucket type

        Returns:
            True if this deposit was already applied to this ancestor
        """
        stmt = select(RewardProcessing.id).where(
            RewardProcessing.parent_id == parent_id,
            RewardProcessing.deposit_id == deposit_id,
            RewardProcessing.bucket_type == bucket_type,
        )
        result = await self.session.execute(stmt)
        return result.first() is not None

    async def mark_processed(
        self,
        parent_id: int,
        deposit_id: int,
        bucket_type: str,
        leg_index: int,
        amount,
    ) -> RewardProcessing:
        """
        Record that a deposit was applied to an ancestor.

        The unique constraint rejects a concurrent duplicate at commit.
        """
        marker = RewardProcessing(
            parent_id=parent_id,
            deposit_id=deposit_id,
            bucket_type=bucket_type,
            leg_index=leg_index,
            amount=amount,
        )
        self.session.add(marker)
        await self.session.flush()
        return marker
