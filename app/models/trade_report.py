"""
TradeReport model.

Cached per-user trade-report document maintained by the external refresh
process. The engine only reads it and stamps last_processed_at.
"""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.types import DocumentType


class TradeReport(Base):
    """TradeReport model - cached daily profit feed per user."""

    __tablename__ = "trade_reports"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )

    # Raw feed document, shape owned by the third-party API
    payload: Mapped[dict[str, Any] | None] = mapped_column(
        DocumentType, nullable=True
    )

    refreshed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False, index=True
    )
    last_processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<TradeReport(user_id={self.user_id}, active={self.is_active}, "
            f"expires_at={self.expires_at})>"
        )
