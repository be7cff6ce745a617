"""
Leg services package.

- leg_classifier: A/B/C leg balances from the referral tree
- generation: generation-depth qualification from leg balances
"""

from app.services.legs.generation import max_generation
from app.services.legs.leg_classifier import (
    LegBalances,
    LegClassifier,
    legs_from_tree,
)

__all__ = [
    "LegBalances",
    "LegClassifier",
    "legs_from_tree",
    "max_generation",
]
