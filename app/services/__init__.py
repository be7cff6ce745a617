"""
Services.

Business logic layer.
"""

# Base Service Infrastructure
from app.services.base_service import (
    BaseService,
    log_operation,
    transaction,
)

# Daily settlement
from app.services.bonus import BonusEngine, BonusRunSummary

# Core Services
from app.services.deposit_service import DepositService
from app.services.hierarchy import HierarchyStore, ReferralTree
from app.services.ledger_service import LedgerService
from app.services.legs import LegBalances, LegClassifier, max_generation
from app.services.profit import DailyProfitSettlement
from app.services.reward import LegRewardEngine
from app.services.trade_feed import TradeFeedReader
from app.services.user_service import UserService

__all__ = [
    # Base
    "BaseService",
    "log_operation",
    "transaction",
    # Core
    "DepositService",
    "HierarchyStore",
    "ReferralTree",
    "LedgerService",
    "LegBalances",
    "LegClassifier",
    "max_generation",
    "UserService",
    # Rewards and settlement
    "LegRewardEngine",
    "BonusEngine",
    "BonusRunSummary",
    "DailyProfitSettlement",
    "TradeFeedReader",
]
