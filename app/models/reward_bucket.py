"""
RewardBucket model.

Per-owner accumulator of leg balances for the capped leg reward.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.config.business_constants import LEG_COUNT
from app.models.base import Base
from app.models.types import MoneyType


_LEG_COLUMNS = ("leg_a_balance", "leg_b_balance", "leg_c_balance")


class RewardBucket(Base):
    """
    RewardBucket entity.

    Standard and legacy buckets share this table and differ only by
    bucket_type (and the cap/payout applied by the engine):
    - Each leg fills independently up to the policy cap
    - When all three legs reach the cap the bucket pays a fixed reward once
    - A completed bucket never changes again; new deposits open a new bucket

    Attributes:
        id: Primary key
        owner_user_id: User the bucket pays out to
        bucket_type: "standard" or "legacy"
        leg_a_balance / leg_b_balance / leg_c_balance: Filled amount per leg
        reward_amount: Payout recorded on completion (0 until paid)
        is_rewarded: Whether the payout was applied
        created_at: Opening time, defines fill order
        completed_at: When the payout was applied
    """

    __tablename__ = "reward_buckets"
    __table_args__ = (
        CheckConstraint('leg_a_balance >= 0', name='check_bucket_leg_a_non_negative'),
        CheckConstraint('leg_b_balance >= 0', name='check_bucket_leg_b_non_negative'),
        CheckConstraint('leg_c_balance >= 0', name='check_bucket_leg_c_non_negative'),
        CheckConstraint('reward_amount >= 0', name='check_bucket_reward_non_negative'),
        CheckConstraint(
            "bucket_type IN ('standard', 'legacy')", name='check_bucket_type'
        ),
        Index("idx_reward_buckets_owner_type", "owner_user_id", "bucket_type", "is_rewarded"),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    owner_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    bucket_type: Mapped[str] = mapped_column(String(20), nullable=False)

    leg_a_balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    leg_b_balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    leg_c_balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    reward_amount: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    is_rewarded: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    @classmethod
    def open_for(cls, owner_user_id: int, bucket_type: str) -> "RewardBucket":
        """
        Build a new empty bucket.

        Column defaults only apply on INSERT, so balances are set explicitly
        to keep the transient object usable before flush.
        """
        return cls(
            owner_user_id=owner_user_id,
            bucket_type=bucket_type,
            leg_a_balance=Decimal("0"),
            leg_b_balance=Decimal("0"),
            leg_c_balance=Decimal("0"),
            reward_amount=Decimal("0"),
            is_rewarded=False,
            created_at=datetime.now(UTC),
        )

    def leg_balance(self, leg_index: int) -> Decimal:
        """Get balance of leg 0 (A), 1 (B) or 2 (C)."""
        return Decimal(getattr(self, _LEG_COLUMNS[leg_index]) or 0)

    def set_leg_balance(self, leg_index: int, value: Decimal) -> None:
        """Set balance of leg 0 (A), 1 (B) or 2 (C)."""
        setattr(self, _LEG_COLUMNS[leg_index], value)

    def is_leg_full(self, leg_index: int, cap: Decimal) -> bool:
        """Check if the given leg reached the cap."""
        return self.leg_balance(leg_index) >= cap

    def is_full(self, cap: Decimal) -> bool:
        """Check if every leg reached the cap."""
        return all(self.is_leg_full(i, cap) for i in range(LEG_COUNT))

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<RewardBucket(id={self.id}, owner={self.owner_user_id}, "
            f"type={self.bucket_type}, legs=({self.leg_a_balance}, "
            f"{self.leg_b_balance}, {self.leg_c_balance}), "
            f"rewarded={self.is_rewarded})>"
        )
