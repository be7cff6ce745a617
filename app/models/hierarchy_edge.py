"""
HierarchyEdge model.

Append-only log of parent/child relationships.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class HierarchyEdge(Base):
    """
    HierarchyEdge entity.

    One row per period a child spent under a parent:
    - joined_at: when the child was placed under the parent
    - left_at: when the edge was closed (NULL for the current edge)
    - Rows are never deleted, only closed

    Exactly one row per child has left_at = NULL.
    """

    __tablename__ = "hierarchy_edges"
    __table_args__ = (
        Index(
            "uq_hierarchy_edges_open_child",
            "child_id",
            unique=True,
            postgresql_where=text("left_at IS NULL"),
            sqlite_where=text("left_at IS NULL"),
        ),
        Index("idx_hierarchy_edges_parent_open", "parent_id", "left_at"),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    child_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    parent_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    left_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def is_open(self) -> bool:
        """Check if this is the child's current edge."""
        return self.left_at is None

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<HierarchyEdge(child_id={self.child_id}, parent_id={self.parent_id}, "
            f"joined_at={self.joined_at}, left_at={self.left_at})>"
        )
