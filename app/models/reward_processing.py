"""
RewardProcessing model.

Durable idempotency marker for leg reward processing.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.types import MoneyType


class RewardProcessing(Base):
    """
    RewardProcessing entity.

    One row per (ancestor, deposit, bucket type) that was applied.
    Written in the same transaction as the bucket update, so a redelivered
    deposit event finds the row and skips the ancestor.
    """

    __tablename__ = "reward_processing"
    __table_args__ = (
        UniqueConstraint(
            "parent_id", "deposit_id", "bucket_type",
            name="uq_reward_processing_parent_deposit_type",
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    parent_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    deposit_id: Mapped[int] = mapped_column(
        ForeignKey("deposits.id", ondelete="CASCADE"), nullable=False, index=True
    )
    bucket_type: Mapped[str] = mapped_column(String(20), nullable=False)
    leg_index: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<RewardProcessing(parent_id={self.parent_id}, "
            f"deposit_id={self.deposit_id}, type={self.bucket_type})>"
        )
