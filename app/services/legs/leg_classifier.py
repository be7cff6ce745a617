"""
Leg classifier.

Computes the A/B/C leg balances of a user: the completed-deposit total of
each of the first three children's full subtrees.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import LEG_COUNT
from app.services.hierarchy.hierarchy_store import HierarchyStore
from app.services.hierarchy.tree import ReferralTree


@dataclass(frozen=True)
class LegBalances:
    """Completed-deposit totals of legs A, B and C."""

    a: Decimal = Decimal("0")
    b: Decimal = Decimal("0")
    c: Decimal = Decimal("0")

    @property
    def total(self) -> Decimal:
        return self.a + self.b + self.c

    def as_list(self) -> list[Decimal]:
        return [self.a, self.b, self.c]


def legs_from_tree(tree: ReferralTree, user_id: int) -> LegBalances:
    """
    Compute leg balances from an already loaded tree.

    Args:
        tree: Snapshot containing the user's full subtree
        user_id: User whose legs are computed

    Returns:
        LegBalances (missing legs are zero)

    Raises:
        CycleDetected: If a leg subtree contains a cycle
    """
    totals = [tree.subtree_total(child_id) for child_id in tree.legs(user_id)]
    totals += [Decimal("0")] * (LEG_COUNT - len(totals))
    return LegBalances(*totals)


class LegClassifier:
    """Reads leg balances on demand; nothing is stored."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize leg classifier."""
        self.store = HierarchyStore(session)

    async def leg_balances(self, user_id: int) -> LegBalances:
        """
        Compute leg balances of a user.

        Args:
            user_id: User ID

        Returns:
            LegBalances with a/b/c/total

        Raises:
            CycleDetected: If the subtree contains a cycle
        """
        tree = await self.store.load_subtree(user_id)
        return legs_from_tree(tree, user_id)
