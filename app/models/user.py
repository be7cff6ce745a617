"""
User model.

Represents a registered member of the referral network.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base
from app.models.types import MoneyType


if TYPE_CHECKING:
    from app.models.deposit import Deposit


class User(Base):
    """User model - referral network members."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            'deposit_balance >= 0', name='check_user_deposit_balance_non_negative'
        ),
        CheckConstraint(
            'gain_profit >= 0', name='check_user_gain_profit_non_negative'
        ),
        CheckConstraint(
            'capital_profit >= 0',
            name='check_user_capital_profit_non_negative'
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    # Public member code (e.g. MC34234)
    external_id: Mapped[str] = mapped_column(
        String(32), unique=True, index=True, nullable=False
    )

    # Referrer, weak reference by external id.
    # The open HierarchyEdge row is authoritative; this mirrors it.
    parent_ref: Mapped[str | None] = mapped_column(
        String(32), nullable=True, index=True
    )

    # Balances
    deposit_balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    gain_profit: Mapped[Decimal] = mapped_column(
        MoneyType,
        default=Decimal("0"),
        nullable=False,
        comment="Bonus-credited balance, withdrawable as gain",
    )
    capital_profit: Mapped[Decimal] = mapped_column(
        MoneyType,
        default=Decimal("0"),
        nullable=False,
        comment="Profit and leg-reward balance, withdrawable as capital",
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False
    )

    # Relationships
    deposits: Mapped[list["Deposit"]] = relationship(
        "Deposit",
        back_populates="user",
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<User(id={self.id}, external_id={self.external_id}, "
            f"parent_ref={self.parent_ref})>"
        )
