"""
Generation qualification.

Maps a user's leg balances to the number of downline generations that
count toward the daily bonus.
"""

from app.config.business_constants import (
    GENERATION_ALL_LEGS,
    GENERATION_NONE,
    GENERATION_ONE_LEG,
    GENERATION_TWO_LEGS,
)
from app.services.legs.leg_classifier import LegBalances


def max_generation(legs: LegBalances) -> int:
    """
    Get qualifying depth for the daily bonus.

    Legs must be filled in join order: B without A (or C without A and B)
    does not qualify.

    Args:
        legs: Leg balances of the user

    Returns:
        10 (A, B, C funded), 6 (A, B), 3 (A) or 0
    """
    if legs.a > 0 and legs.b > 0 and legs.c > 0:
        return GENERATION_ALL_LEGS
    if legs.a > 0 and legs.b > 0:
        return GENERATION_TWO_LEGS
    if legs.a > 0:
        return GENERATION_ONE_LEG
    return GENERATION_NONE
