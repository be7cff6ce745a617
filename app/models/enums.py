"""
Model enumerations.

String enums stored in VARCHAR columns.
"""

from enum import StrEnum


class DepositStatus(StrEnum):
    """Deposit lifecycle states."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class LedgerAccount(StrEnum):
    """User balance columns that the ledger may credit."""

    DEPOSIT_BALANCE = "deposit_balance"
    GAIN_PROFIT = "gain_profit"
    CAPITAL_PROFIT = "capital_profit"


class LedgerReason(StrEnum):
    """Why a ledger entry was written."""

    DEPOSIT = "deposit"
    DAILY_BONUS = "daily_bonus"
    LEG_REWARD = "leg_reward"
    DAILY_PROFIT = "daily_profit"
