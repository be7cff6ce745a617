"""Trade feed maintenance task: deactivates expired trade reports."""

import dramatiq
from loguru import logger

from app.config.operational_constants import (
    DRAMATIQ_TIME_LIMIT_STANDARD,
    LOCK_TIMEOUT_MEDIUM,
)
from app.services.trade_feed.feed_reader import TradeFeedReader
from jobs.async_runner import run_async, run_exclusive
from jobs.broker import broker  # noqa: F401


@dramatiq.actor(max_retries=1, time_limit=DRAMATIQ_TIME_LIMIT_STANDARD)
def deactivate_expired_trade_reports() -> None:
    """Flag trade reports past their expiry as inactive."""
    logger.info("Starting expired trade report cleanup...")

    try:
        acquired, count = run_async(
            run_exclusive(
                "trade_feed_maintenance",
                LOCK_TIMEOUT_MEDIUM,
                lambda session: TradeFeedReader(session).deactivate_expired(),
            )
        )
    except Exception as e:
        logger.exception(f"Expired trade report cleanup failed: {e}")
        return

    if acquired:
        logger.info(f"Expired trade report cleanup complete: {count} deactivated")
