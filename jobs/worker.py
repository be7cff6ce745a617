"""
Dramatiq worker entry point.

Imports the broker and every actor module so a single module path starts
all queues:

    dramatiq jobs.worker
"""

from app.config.logging import setup_logging
from jobs.broker import broker  # noqa: F401
from jobs.tasks.daily_bonus import calculate_daily_bonus  # noqa: F401
from jobs.tasks.daily_profit import settle_daily_profit  # noqa: F401
from jobs.tasks.leg_rewards import process_leg_rewards  # noqa: F401
from jobs.tasks.trade_feed_maintenance import (  # noqa: F401
    deactivate_expired_trade_reports,
)

setup_logging("worker")
