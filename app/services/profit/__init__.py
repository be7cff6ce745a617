"""Daily profit settlement package."""

from app.services.profit.daily_profit_settlement import (
    DailyProfitSettlement,
    SettlementOutcome,
    SettlementRunSummary,
    SettlementStatus,
)

__all__ = [
    "DailyProfitSettlement",
    "SettlementOutcome",
    "SettlementRunSummary",
    "SettlementStatus",
]
