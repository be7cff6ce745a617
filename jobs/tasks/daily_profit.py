"""
Daily profit task.

Credits every user's capital_profit from the day's trade feed.
Scheduled once per day, before the daily bonus.
"""

import dramatiq
from loguru import logger

from app.config.operational_constants import (
    DRAMATIQ_TIME_LIMIT_LONG,
    LOCK_TIMEOUT_LONG,
)
from app.services.profit.daily_profit_settlement import DailyProfitSettlement
from app.utils.datetime_utils import parse_date, utc_today
from jobs.async_runner import run_async, run_exclusive
from jobs.broker import broker  # noqa: F401


@dramatiq.actor(max_retries=0, time_limit=DRAMATIQ_TIME_LIMIT_LONG)
def settle_daily_profit(settlement_date: str | None = None) -> None:
    """
    Settle daily profit for all users.

    Args:
        settlement_date: Feed date as YYYY-MM-DD (defaults to today UTC)
    """
    run_date = parse_date(settlement_date) if settlement_date else utc_today()
    logger.info(f"Starting daily profit settlement for {run_date}...")

    try:
        acquired, summary = run_async(
            run_exclusive(
                "daily_profit_settlement",
                LOCK_TIMEOUT_LONG,
                lambda session: DailyProfitSettlement(session).run_daily(run_date),
            )
        )
    except Exception as e:
        logger.exception(f"Daily profit settlement failed: {e}")
        return

    if acquired:
        logger.info(
            f"Daily profit settlement complete: {summary.credited} credited, "
            f"{summary.failed} failed, total {summary.total_amount}"
        )
