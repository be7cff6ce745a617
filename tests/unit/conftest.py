"""
Shared fixtures for unit tests.

This module provides common fixtures used across multiple test modules:
- Referral tree snapshots
- Empty reward buckets
- Sub snapshots for the bonus calculator
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from app.config.business_constants import BucketType
from app.models.reward_bucket import RewardBucket
from app.services.bonus.bonus_calculator import SubSnapshot
from app.services.hierarchy.tree import ReferralTree


@pytest.fixture
def three_leg_tree():
    """
    Tree with three funded legs.

    Layout:
        1 -> 2 (600), 3 (200), 4 (400)
        3 -> 5 (300)

    Leg balances of user 1: A=600, B=500, C=400.

    Returns:
        ReferralTree: Snapshot rooted at user 1
    """
    tree = ReferralTree(root_id=1)
    tree.add_node(1)
    for child_id in (2, 3, 4):
        tree.add_child(1, child_id)
    tree.add_child(3, 5)

    tree.node(2).completed_deposits = Decimal("600")
    tree.node(3).completed_deposits = Decimal("200")
    tree.node(5).completed_deposits = Decimal("300")
    tree.node(4).completed_deposits = Decimal("400")
    return tree


@pytest.fixture
def new_bucket():
    """
    Factory for empty standard buckets owned by user 1.

    Returns:
        Callable returning a fresh RewardBucket
    """
    return lambda: RewardBucket.open_for(1, BucketType.STANDARD)


@pytest.fixture
def funded_sub(now):
    """
    Sub with 1000 capital and a 2.5% entry for the run date.

    Returns:
        SubSnapshot: Registered a month before the run
    """
    return SubSnapshot(
        user_id=10,
        deposit_balance=Decimal("1000"),
        created_at=now - timedelta(days=30),
        percents=(Decimal("2.5"),),
    )
