"""
Daily bonus task.

Computes the generation-depth bonus for every qualified user and writes the
capital history. Scheduled once per day after the profit settlement.
"""

import dramatiq
from loguru import logger

from app.config.operational_constants import (
    DRAMATIQ_TIME_LIMIT_LONG,
    LOCK_TIMEOUT_LONG,
)
from app.services.bonus.bonus_engine import BonusEngine
from app.utils.datetime_utils import parse_date, utc_today
from jobs.async_runner import run_async, run_exclusive
from jobs.broker import broker  # noqa: F401


@dramatiq.actor(max_retries=0, time_limit=DRAMATIQ_TIME_LIMIT_LONG)
def calculate_daily_bonus(calculation_date: str | None = None) -> None:
    """
    Calculate daily bonus for all users.

    A user already settled for the date is skipped, so a re-run after a
    crash only processes the remaining users.

    Args:
        calculation_date: Feed date as YYYY-MM-DD (defaults to today UTC)
    """
    run_date = parse_date(calculation_date) if calculation_date else utc_today()
    logger.info(f"Starting daily bonus calculation for {run_date}...")

    try:
        acquired, summary = run_async(
            run_exclusive(
                "daily_bonus_calculation",
                LOCK_TIMEOUT_LONG,
                lambda session: BonusEngine(session).run_daily(run_date),
            )
        )
    except Exception as e:
        logger.exception(f"Daily bonus calculation failed: {e}")
        return

    if acquired:
        logger.info(
            f"Daily bonus calculation complete: {summary.credited} credited, "
            f"{summary.already_settled} already settled, "
            f"{summary.failed} failed, total {summary.total_bonus}"
        )
