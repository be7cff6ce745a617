"""
LedgerEntry model.

Audit row for every balance credit made through the ledger service.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.types import MoneyType


class LedgerEntry(Base):
    """
    LedgerEntry entity.

    Attributes:
        id: Primary key
        user_id: Credited user
        account: Balance column credited (deposit_balance, gain_profit,
            capital_profit)
        amount: Positive credited amount
        reason: Source of the credit (deposit, daily_bonus, leg_reward,
            daily_profit)
        idempotency_key: Unique key of the business event
        created_at: When the credit was applied
    """

    __tablename__ = "ledger_entries"
    __table_args__ = (
        CheckConstraint('amount > 0', name='check_ledger_amount_positive'),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    account: Mapped[str] = mapped_column(String(32), nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    reason: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    idempotency_key: Mapped[str] = mapped_column(
        String(128), nullable=False, unique=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<LedgerEntry(user_id={self.user_id}, account={self.account}, "
            f"amount={self.amount}, key={self.idempotency_key})>"
        )
