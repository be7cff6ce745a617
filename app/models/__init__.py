"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from app.models.base import Base
from app.models.capital_history import CapitalHistory
from app.models.deposit import Deposit
from app.models.enums import DepositStatus, LedgerAccount, LedgerReason
from app.models.hierarchy_edge import HierarchyEdge
from app.models.ledger_entry import LedgerEntry
from app.models.profit_settlement import ProfitSettlement
from app.models.reward_bucket import RewardBucket
from app.models.reward_processing import RewardProcessing
from app.models.trade_report import TradeReport

# Core Models
from app.models.user import User

__all__ = [
    # Base
    "Base",
    # Enums
    "DepositStatus",
    "LedgerAccount",
    "LedgerReason",
    # Core Models
    "User",
    "HierarchyEdge",
    "Deposit",
    # Reward Models
    "RewardBucket",
    "RewardProcessing",
    # Daily settlement
    "CapitalHistory",
    "ProfitSettlement",
    "TradeReport",
    # Ledger
    "LedgerEntry",
]
