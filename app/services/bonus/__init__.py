"""
Bonus services package.

- bonus_calculator: pure per-sub profit and bonus arithmetic
- bonus_engine: daily run, per-user settlement and history
"""

from app.services.bonus.bonus_calculator import (
    BonusBreakdown,
    SubSnapshot,
    calculate_bonus,
    daily_profit,
    sub_bonus,
)
from app.services.bonus.bonus_engine import (
    BonusEngine,
    BonusRunSummary,
    BonusStatus,
    UserBonusOutcome,
)

__all__ = [
    "BonusBreakdown",
    "SubSnapshot",
    "calculate_bonus",
    "daily_profit",
    "sub_bonus",
    "BonusEngine",
    "BonusRunSummary",
    "BonusStatus",
    "UserBonusOutcome",
]
