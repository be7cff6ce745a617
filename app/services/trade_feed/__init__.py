"""Trade feed adapter package."""

from app.services.trade_feed.feed_reader import (
    ProfitEntry,
    TradeFeedReader,
    normalize_payload,
)

__all__ = [
    "ProfitEntry",
    "TradeFeedReader",
    "normalize_payload",
]
