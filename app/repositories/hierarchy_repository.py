"""
Hierarchy repository.

Data access layer for HierarchyEdge model.
"""

from datetime import datetime

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.hierarchy_edge import HierarchyEdge
from app.repositories.base import BaseRepository


class HierarchyRepository(BaseRepository[HierarchyEdge]):
    """HierarchyEdge repository with tree queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize hierarchy repository."""
        super().__init__(HierarchyEdge, session)

    async def get_open_edge(self, child_id: int) -> HierarchyEdge | None:
        """
        Get the child's current (open) edge.

        Args:
            child_id: Child user ID

        Returns:
            Open edge or None for root users
        """
        stmt = select(HierarchyEdge).where(
            HierarchyEdge.child_id == child_id,
            HierarchyEdge.left_at.is_(None),
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_open_children(
        self, parent_id: int
    ) -> list[HierarchyEdge]:
        """
        Get open edges below a parent in join order.

        Args:
            parent_id: Parent user ID

        Returns:
            Edges ordered by joined_at, then edge ID
        """
        stmt = (
            select(HierarchyEdge)
            .where(
                HierarchyEdge.parent_id == parent_id,
                HierarchyEdge.left_at.is_(None),
            )
            .order_by(HierarchyEdge.joined_at.asc(), HierarchyEdge.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_open_children_of_many(
        self, parent_ids: list[int]
    ) -> list[HierarchyEdge]:
        """
        Get open edges below several parents in one query.

        Args:
            parent_ids: Parent user IDs

        Returns:
            Edges ordered by parent, joined_at, edge ID
        """
        if not parent_ids:
            return []

        stmt = (
            select(HierarchyEdge)
            .where(
                HierarchyEdge.parent_id.in_(parent_ids),
                HierarchyEdge.left_at.is_(None),
            )
            .order_by(
                HierarchyEdge.parent_id.asc(),
                HierarchyEdge.joined_at.asc(),
                HierarchyEdge.id.asc(),
            )
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_all_open_edges(self) -> list[tuple[int, int, datetime, int]]:
        """
        Get every open edge as plain tuples.

        Optimized to avoid fetching full objects.

        Returns:
            List of (child_id, parent_id, joined_at, edge_id)
        """
        stmt = select(
            HierarchyEdge.child_id,
            HierarchyEdge.parent_id,
            HierarchyEdge.joined_at,
            HierarchyEdge.id,
        ).where(HierarchyEdge.left_at.is_(None))
        result = await self.session.execute(stmt)
        return [tuple(row) for row in result.all()]

    async def get_children_at(
        self, parent_id: int, at: datetime
    ) -> list[HierarchyEdge]:
        """
        Get edges that were active below a parent at a point in time.

        Args:
            parent_id: Parent user ID
            at: Point in time

        Returns:
            Edges ordered by joined_at, then edge ID
        """
        stmt = (
            select(HierarchyEdge)
            .where(
                HierarchyEdge.parent_id == parent_id,
                HierarchyEdge.joined_at <= at,
                or_(
                    HierarchyEdge.left_at.is_(None),
                    HierarchyEdge.left_at > at,
                ),
            )
            .order_by(HierarchyEdge.joined_at.asc(), HierarchyEdge.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_open_children(self, parent_id: int) -> int:
        """
        Count active children of a parent.

        Args:
            parent_id: Parent user ID

        Returns:
            Number of open edges below the parent
        """
        stmt = select(func.count(HierarchyEdge.id)).where(
            HierarchyEdge.parent_id == parent_id,
            HierarchyEdge.left_at.is_(None),
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def get_history(self, child_id: int) -> list[HierarchyEdge]:
        """
        Get all edges (open and closed) of a child, oldest first.

        Args:
            child_id: Child user ID

        Returns:
            Edge history
        """
        stmt = (
            select(HierarchyEdge)
            .where(HierarchyEdge.child_id == child_id)
            .order_by(HierarchyEdge.joined_at.asc(), HierarchyEdge.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
