"""
Referral tree arena.

In-memory snapshot of (part of) the hierarchy: nodes indexed by user ID,
children kept in join order. All traversals are iterative and track visited
nodes, so corrupted data with a cycle raises instead of recursing forever.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from app.config.business_constants import LEG_COUNT
from app.utils.exceptions import CycleDetected


@dataclass
class TreeNode:
    """Single member of the tree snapshot."""

    user_id: int
    created_at: datetime | None = None
    deposit_balance: Decimal = Decimal("0")
    completed_deposits: Decimal = Decimal("0")
    children: list[int] = field(default_factory=list)


class ReferralTree:
    """
    Arena of TreeNode objects.

    Children are appended in the order the loader provides them, which is
    ascending join time. Index 0/1/2 of a node's children are its legs A/B/C.
    """

    def __init__(self, root_id: int | None = None) -> None:
        self.root_id = root_id
        self.nodes: dict[int, TreeNode] = {}

    def __contains__(self, user_id: int) -> bool:
        return user_id in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def add_node(
        self,
        user_id: int,
        created_at: datetime | None = None,
        deposit_balance: Decimal | None = None,
        completed_deposits: Decimal | None = None,
    ) -> TreeNode:
        """Get or create a node, updating any attribute that is given."""
        node = self.nodes.get(user_id)
        if node is None:
            node = TreeNode(user_id=user_id)
            self.nodes[user_id] = node
        if created_at is not None:
            node.created_at = created_at
        if deposit_balance is not None:
            node.deposit_balance = deposit_balance
        if completed_deposits is not None:
            node.completed_deposits = completed_deposits
        return node

    def add_child(self, parent_id: int, child_id: int) -> None:
        """Append child_id under parent_id (creating both nodes if needed)."""
        parent = self.add_node(parent_id)
        self.add_node(child_id)
        parent.children.append(child_id)

    def node(self, user_id: int) -> TreeNode:
        """
        Get node by user ID.

        Raises:
            KeyError: If the user is not part of the snapshot
        """
        return self.nodes[user_id]

    def children(self, user_id: int) -> list[int]:
        """Children of a user in join order (empty if unknown)."""
        node = self.nodes.get(user_id)
        return list(node.children) if node else []

    def legs(self, user_id: int) -> list[int]:
        """First LEG_COUNT children of a user; later children are not legs."""
        return self.children(user_id)[:LEG_COUNT]

    def subtree_total(self, user_id: int) -> Decimal:
        """
        Sum completed deposits of a node and all its descendants.

        Args:
            user_id: Subtree root

        Returns:
            Completed deposit total of the whole subtree

        Raises:
            CycleDetected: If a node is reached twice
        """
        if user_id not in self.nodes:
            return Decimal("0")

        total = Decimal("0")
        visited: set[int] = set()
        stack = [user_id]
        while stack:
            current = stack.pop()
            if current in visited:
                raise CycleDetected(current)
            visited.add(current)

            node = self.nodes[current]
            total += node.completed_deposits
            stack.extend(node.children)

        return total

    def descendants(
        self, user_id: int, max_depth: int | None = None
    ) -> list[tuple[TreeNode, int]]:
        """
        Walk all current children breadth-first.

        Children of user_id are depth 1. The walk descends while
        depth < max_depth, so max_depth=3 returns depths 1..3.

        Args:
            user_id: Walk root (not included in the result)
            max_depth: Deepest generation to include (None for unbounded)

        Returns:
            List of (node, depth) in breadth-first order

        Raises:
            CycleDetected: If a node is reached twice
        """
        if max_depth is not None and max_depth <= 0:
            return []

        result: list[tuple[TreeNode, int]] = []
        visited = {user_id}
        queue = deque((child_id, 1) for child_id in self.children(user_id))
        while queue:
            current, depth = queue.popleft()
            if current in visited:
                raise CycleDetected(current)
            visited.add(current)

            node = self.nodes[current]
            result.append((node, depth))
            if max_depth is None or depth < max_depth:
                queue.extend((child_id, depth + 1) for child_id in node.children)

        return result
