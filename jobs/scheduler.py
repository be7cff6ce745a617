"""
Daily job scheduler.

Enqueues the daily actors on UTC cron triggers:
- expired trade report cleanup (settings.trade_feed_cleanup_time)
- daily profit settlement (settings.daily_profit_time)
- daily bonus calculation (settings.daily_bonus_time)

Run with: python -m jobs.scheduler
"""

import asyncio
import signal

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger

from app.config.logging import setup_logging
from app.config.settings import parse_schedule_time, settings
from jobs.health import set_scheduler, start_health_server, stop_health_server
from jobs.tasks.daily_bonus import calculate_daily_bonus
from jobs.tasks.daily_profit import settle_daily_profit
from jobs.tasks.trade_feed_maintenance import deactivate_expired_trade_reports


def _daily(value: str) -> CronTrigger:
    hour, minute = parse_schedule_time(value)
    return CronTrigger(hour=hour, minute=minute, timezone="UTC")


def create_scheduler() -> AsyncIOScheduler:
    """
    Build the scheduler with all daily jobs registered.

    max_instances=1 and coalesce=True: a missed or overlapping fire results
    in a single run. The actors additionally hold a distributed lock.

    Returns:
        Configured (not started) scheduler
    """
    scheduler = AsyncIOScheduler(timezone="UTC")
    job_defaults = {"max_instances": 1, "coalesce": True, "misfire_grace_time": 3600}

    scheduler.add_job(
        deactivate_expired_trade_reports.send,
        _daily(settings.trade_feed_cleanup_time),
        id="trade_feed_cleanup",
        name="Deactivate expired trade reports",
        **job_defaults,
    )
    scheduler.add_job(
        settle_daily_profit.send,
        _daily(settings.daily_profit_time),
        id="daily_profit",
        name="Daily profit settlement",
        **job_defaults,
    )
    scheduler.add_job(
        calculate_daily_bonus.send,
        _daily(settings.daily_bonus_time),
        id="daily_bonus",
        name="Daily bonus calculation",
        **job_defaults,
    )
    return scheduler


async def main() -> None:
    """Start scheduler and health server, run until SIGINT/SIGTERM."""
    setup_logging("scheduler")

    scheduler = create_scheduler()
    scheduler.start()
    set_scheduler(scheduler)

    runner, _ = await start_health_server(port=settings.health_check_port)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    for job in scheduler.get_jobs():
        logger.info(f"Scheduled {job.name}: next run {job.next_run_time}")

    try:
        await stop_event.wait()
    finally:
        logger.info("Shutting down scheduler...")
        scheduler.shutdown(wait=False)
        await stop_health_server(runner)


if __name__ == "__main__":
    asyncio.run(main())
