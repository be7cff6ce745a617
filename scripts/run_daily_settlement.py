#!/usr/bin/env python3
"""
Manually run the daily profit settlement and/or the daily bonus.

Both steps are idempotent per (user, date): users already settled for the
date are skipped, so the script can be re-run after a failed night.

Usage:
    python scripts/run_daily_settlement.py --date 2025-09-01
    python scripts/run_daily_settlement.py --date 2025-09-01 --profit-only
    python scripts/run_daily_settlement.py --bonus-only    # today (UTC)
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger

from app.config.database import async_engine, async_session_maker
from app.services.bonus.bonus_engine import BonusEngine
from app.services.profit.daily_profit_settlement import DailyProfitSettlement
from app.utils.datetime_utils import parse_date, utc_today


# Configure logger
logger.remove()
logger.add(sys.stderr, level="INFO", format="{time:HH:mm:ss} | {level} | {message}")


async def run(run_date, profit: bool, bonus: bool) -> int:
    """Run the selected steps; returns the number of failed users."""
    failed = 0
    try:
        if profit:
            async with async_session_maker() as session:
                summary = await DailyProfitSettlement(session).run_daily(run_date)
            logger.info(
                f"Profit: {summary.credited} credited, {summary.skipped} skipped, "
                f"{summary.failed} failed, total {summary.total_amount}"
            )
            failed += summary.failed

        if bonus:
            async with async_session_maker() as session:
                summary = await BonusEngine(session).run_daily(run_date)
            logger.info(
                f"Bonus: {summary.credited} credited, "
                f"{summary.zero_bonus} zero, "
                f"{summary.already_settled} already settled, "
                f"{summary.not_qualified} not qualified, "
                f"{summary.failed} failed, total {summary.total_bonus}"
            )
            failed += summary.failed
    finally:
        await async_engine.dispose()

    return failed


def main() -> None:
    parser = argparse.ArgumentParser(description="Run daily settlement")
    parser.add_argument(
        "--date", type=parse_date, default=None,
        help="Feed date YYYY-MM-DD (default: today UTC)",
    )
    steps = parser.add_mutually_exclusive_group()
    steps.add_argument("--profit-only", action="store_true", help="Only settle daily profit")
    steps.add_argument("--bonus-only", action="store_true", help="Only calculate daily bonus")
    args = parser.parse_args()

    run_date = args.date or utc_today()
    logger.info(f"Running daily settlement for {run_date}")

    failed = asyncio.run(
        run(run_date, profit=not args.bonus_only, bonus=not args.profit_only)
    )
    if failed:
        logger.warning(f"{failed} users failed, see log above")
        sys.exit(1)
    logger.success("Daily settlement finished")


if __name__ == "__main__":
    main()
