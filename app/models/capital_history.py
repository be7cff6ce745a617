"""
CapitalHistory model.

Audit trail of daily bonus engine runs.
"""

from datetime import UTC, date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.types import MoneyType


class CapitalHistory(Base):
    """
    CapitalHistory entity.

    One row per (user, calculation_date). The row is written together with
    the gain_profit credit, so its presence means the day is settled.
    """

    __tablename__ = "capital_history"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "calculation_date", name="uq_capital_history_user_date"
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    calculation_date: Mapped[date] = mapped_column(
        Date, nullable=False, index=True
    )

    bonus_amount: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_sub_capital: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_subs: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    active_subs: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    new_subs_last_24h: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    max_generation: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<CapitalHistory(user_id={self.user_id}, "
            f"date={self.calculation_date}, bonus={self.bonus_amount})>"
        )
