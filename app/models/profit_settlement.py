"""
ProfitSettlement model.

Record of a daily profit percentage applied to a user's capital.
"""

from datetime import UTC, date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.types import MoneyType, RatePercentType


class ProfitSettlement(Base):
    """ProfitSettlement model - at most one per (user, date)."""

    __tablename__ = "profit_settlements"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "settlement_date", name="uq_profit_settlement_user_date"
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    settlement_date: Mapped[date] = mapped_column(Date, nullable=False)

    percent: Mapped[Decimal] = mapped_column(RatePercentType, nullable=False)
    base_balance: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<ProfitSettlement(user_id={self.user_id}, "
            f"date={self.settlement_date}, amount={self.amount})>"
        )
