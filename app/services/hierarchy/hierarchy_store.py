"""
Hierarchy store.

Owns the parent/child relationship: append-only HierarchyEdge rows are the
source of truth, User.parent_ref mirrors the open edge for readers that only
need the referrer code.
"""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import LEG_COUNT
from app.models.hierarchy_edge import HierarchyEdge
from app.models.user import User
from app.repositories.deposit_repository import DepositRepository
from app.repositories.hierarchy_repository import HierarchyRepository
from app.repositories.user_repository import UserRepository
from app.services.base_service import BaseService, transaction
from app.services.hierarchy.tree import ReferralTree
from app.utils.datetime_utils import ensure_utc, utc_now
from app.utils.exceptions import CycleDetected, InvalidParent, UserNotFound


MIGRATION_NOTE = "Migrated from existing user relationship"


@dataclass
class BackfillResult:
    """Outcome of rebuilding edges from User.parent_ref."""

    created: int = 0
    skipped: int = 0
    missing_parent: int = 0


class HierarchyStore(BaseService):
    """
    Hierarchy store.

    Read methods never commit. attach() runs in the caller's transaction
    (registration); change_parent() is a complete operation and commits.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize hierarchy store."""
        super().__init__(session)
        self.edge_repo = HierarchyRepository(session)
        self.user_repo = UserRepository(session)
        self.deposit_repo = DepositRepository(session)

    async def current_children(
        self, user_id: int
    ) -> list[tuple[int, datetime]]:
        """
        Get active children of a user in join order.

        Args:
            user_id: Parent user ID

        Returns:
            List of (child_id, joined_at); index 0/1/2 are legs A/B/C
        """
        edges = await self.edge_repo.get_open_children(user_id)
        return [(edge.child_id, ensure_utc(edge.joined_at)) for edge in edges]

    async def children_at(
        self, user_id: int, at: datetime
    ) -> list[tuple[int, datetime]]:
        """
        Get children of a user as they were at a point in time.

        Args:
            user_id: Parent user ID
            at: Point in time

        Returns:
            List of (child_id, joined_at) in join order
        """
        edges = await self.edge_repo.get_children_at(user_id, at)
        return [(edge.child_id, ensure_utc(edge.joined_at)) for edge in edges]

    async def parent_of(self, user_id: int) -> int | None:
        """
        Get the current parent of a user.

        Args:
            user_id: Child user ID

        Returns:
            Parent user ID or None for a root user
        """
        edge = await self.edge_repo.get_open_edge(user_id)
        return edge.parent_id if edge else None

    async def leg_index(self, parent_id: int, child_id: int) -> int | None:
        """
        Get the position of a child under its parent.

        Args:
            parent_id: Parent user ID
            child_id: Child user ID

        Returns:
            0-based join position, or None if child is not an active child.
            Positions >= LEG_COUNT exist but are not legs.
        """
        children = await self.current_children(parent_id)
        for index, (candidate_id, _) in enumerate(children):
            if candidate_id == child_id:
                return index
        return None

    async def attach(
        self,
        child_id: int,
        parent_id: int,
        notes: str | None = None,
        joined_at: datetime | None = None,
    ) -> HierarchyEdge:
        """
        Place a parentless user under a parent.

        Runs in the caller's transaction; nothing is committed here.

        Args:
            child_id: User being placed
            parent_id: New parent
            notes: Optional audit note
            joined_at: Join time (defaults to now)

        Returns:
            Created open edge

        Raises:
            UserNotFound: Child does not exist
            InvalidParent: Parent rejected (see _validate_parent)
        """
        child = await self.user_repo.get_by_id(child_id)
        if child is None:
            raise UserNotFound(f"User {child_id} not found")

        if await self.edge_repo.get_open_edge(child_id) is not None:
            raise InvalidParent(
                "User already has a parent", user_id=child_id, parent_id=parent_id
            )

        parent = await self._validate_parent(child_id, parent_id)
        edge = await self._open_edge(child, parent, joined_at or utc_now(), notes)

        self.logger.info(
            "User attached to parent",
            extra={"child_id": child_id, "parent_id": parent_id},
        )
        return edge

    @transaction
    async def change_parent(
        self,
        user_id: int,
        new_parent_id: int,
        notes: str | None = None,
        now: datetime | None = None,
    ) -> HierarchyEdge:
        """
        Move a user under a different parent.

        Closes the current edge and opens a new one. Validation happens before
        any write; a failure rolls the whole change back.

        Args:
            user_id: User being moved
            new_parent_id: New parent
            notes: Optional audit note
            now: Change time (defaults to now)

        Returns:
            New open edge

        Raises:
            UserNotFound: User does not exist
            InvalidParent: Parent rejected
        """
        now = now or utc_now()

        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise UserNotFound(f"User {user_id} not found")

        current = await self.edge_repo.get_open_edge(user_id)
        if current is not None and current.parent_id == new_parent_id:
            raise InvalidParent(
                "User is already under this parent",
                user_id=user_id,
                parent_id=new_parent_id,
            )

        parent = await self._validate_parent(user_id, new_parent_id)

        if current is not None:
            current.left_at = now
            # Close before insert: one open edge per child
            await self.session.flush()

        edge = await self._open_edge(user, parent, now, notes)

        self.logger.info(
            "User moved to new parent",
            extra={
                "user_id": user_id,
                "old_parent_id": current.parent_id if current else None,
                "new_parent_id": new_parent_id,
            },
        )
        return edge

    async def load_subtree(
        self, root_id: int, max_depth: int | None = None
    ) -> ReferralTree:
        """
        Load a user's subtree level by level.

        One edge query per generation, then one query each for node
        attributes and completed deposit totals.

        Args:
            root_id: Subtree root
            max_depth: Deepest generation to load (None for unbounded)

        Returns:
            ReferralTree rooted at root_id

        Raises:
            CycleDetected: If a user is reached twice
        """
        tree = ReferralTree(root_id)
        tree.add_node(root_id)

        visited = {root_id}
        frontier = [root_id]
        depth = 0
        while frontier and (max_depth is None or depth < max_depth):
            edges = await self.edge_repo.get_open_children_of_many(frontier)
            next_frontier = []
            for edge in edges:
                if edge.child_id in visited:
                    raise CycleDetected(edge.child_id)
                visited.add(edge.child_id)
                tree.add_child(edge.parent_id, edge.child_id)
                next_frontier.append(edge.child_id)
            frontier = next_frontier
            depth += 1

        user_ids = list(tree.nodes)
        attributes = await self.user_repo.get_node_attributes(user_ids)
        totals = await self.deposit_repo.get_completed_totals(user_ids)
        self._fill_attributes(tree, attributes, totals)
        return tree

    async def load_tree(self) -> ReferralTree:
        """
        Load the whole hierarchy into one arena.

        Returns:
            ReferralTree without a single root
        """
        tree = ReferralTree()
        attributes = await self.user_repo.get_all_node_attributes()
        totals = await self.deposit_repo.get_completed_totals()
        for user_id in attributes:
            tree.add_node(user_id)

        edges = await self.edge_repo.get_all_open_edges()
        edges.sort(key=lambda row: (ensure_utc(row[2]), row[3]))
        for child_id, parent_id, _, _ in edges:
            tree.add_child(parent_id, child_id)

        self._fill_attributes(tree, attributes, totals)
        return tree

    async def backfill_from_parent_refs(
        self, batch_size: int = 500
    ) -> BackfillResult:
        """
        Open edges for users whose parent_ref has no matching edge yet.

        Used when migrating data that only carried parent_ref. The join time
        is the user's creation time.

        Args:
            batch_size: Users per page

        Returns:
            BackfillResult with created/skipped/missing_parent counts
        """
        result = BackfillResult()
        after_id = 0
        while True:
            users = await self.user_repo.get_with_parent_ref_page(
                after_id=after_id, limit=batch_size
            )
            if not users:
                break
            after_id = users[-1].id

            for user in users:
                if await self.edge_repo.get_open_edge(user.id) is not None:
                    result.skipped += 1
                    continue

                parent = await self.user_repo.get_by_external_id(user.parent_ref)
                if parent is None or parent.id == user.id:
                    self.logger.warning(
                        "Parent reference cannot be resolved",
                        extra={"user_id": user.id, "parent_ref": user.parent_ref},
                    )
                    result.missing_parent += 1
                    continue

                self.session.add(
                    HierarchyEdge(
                        child_id=user.id,
                        parent_id=parent.id,
                        joined_at=ensure_utc(user.created_at),
                        notes=MIGRATION_NOTE,
                    )
                )
                result.created += 1

            await self.session.commit()

        self.logger.info(
            "Hierarchy backfill finished",
            extra={
                "created": result.created,
                "skipped": result.skipped,
                "missing_parent": result.missing_parent,
            },
        )
        return result

    async def _validate_parent(self, child_id: int, parent_id: int) -> User:
        """
        Check that parent_id may receive child_id.

        Locks the parent row so concurrent attaches serialize on capacity.

        Raises:
            InvalidParent: Self-parenting, unknown parent, full parent, or
                parent inside the child's own subtree
        """
        if parent_id == child_id:
            raise InvalidParent(
                "User cannot be their own parent",
                user_id=child_id,
                parent_id=parent_id,
            )

        parent = await self.user_repo.get_for_update(parent_id)
        if parent is None:
            raise InvalidParent(
                "Parent does not exist", user_id=child_id, parent_id=parent_id
            )

        active = await self.edge_repo.count_open_children(parent_id)
        if active >= LEG_COUNT:
            raise InvalidParent(
                f"Parent already has {LEG_COUNT} active children",
                user_id=child_id,
                parent_id=parent_id,
            )

        # Walk up from the parent; meeting the child means a cycle
        visited = {parent_id}
        ancestor_id = await self.parent_of(parent_id)
        while ancestor_id is not None:
            if ancestor_id == child_id:
                raise InvalidParent(
                    "Parent is a descendant of the user",
                    user_id=child_id,
                    parent_id=parent_id,
                )
            if ancestor_id in visited:
                raise CycleDetected(ancestor_id)
            visited.add(ancestor_id)
            ancestor_id = await self.parent_of(ancestor_id)

        return parent

    async def _open_edge(
        self,
        child: User,
        parent: User,
        joined_at: datetime,
        notes: str | None,
    ) -> HierarchyEdge:
        """Insert the open edge and sync parent_ref."""
        edge = HierarchyEdge(
            child_id=child.id,
            parent_id=parent.id,
            joined_at=joined_at,
            notes=notes,
        )
        self.session.add(edge)
        child.parent_ref = parent.external_id
        await self.session.flush()
        return edge

    @staticmethod
    def _fill_attributes(tree: ReferralTree, attributes, totals) -> None:
        for user_id, node in tree.nodes.items():
            balance, created_at = attributes.get(user_id, (None, None))
            if balance is not None:
                node.deposit_balance = balance
            node.created_at = ensure_utc(created_at)
            node.completed_deposits = totals.get(user_id, node.completed_deposits)
