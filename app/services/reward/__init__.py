"""
Reward services package.

- capped_bucket: pure fill algorithm for capped leg buckets
- leg_reward_engine: applies completed deposits to ancestors' buckets
"""

from app.services.reward.capped_bucket import (
    FillResult,
    complete_bucket,
    fill_leg,
    is_payable,
)
from app.services.reward.leg_reward_engine import (
    LegRewardEngine,
    LegRewardPayout,
    LegRewardResult,
)

__all__ = [
    "FillResult",
    "fill_leg",
    "complete_bucket",
    "is_payable",
    "LegRewardEngine",
    "LegRewardPayout",
    "LegRewardResult",
]
