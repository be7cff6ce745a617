"""
Logging configuration.

Configures loguru sinks for workers, the scheduler and scripts.
Sets up log rotation and retention policies.
"""

import sys

from loguru import logger

from app.config.settings import settings


def setup_logging(name: str) -> None:
    """
    Configure logger with stderr output and file rotation.

    Args:
        name: Process name, used for the log file (logs/{name}.log)
    """
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)
    logger.add(
        f"logs/{name}.log",
        rotation="1 day",
        retention="7 days",
        level=settings.log_level,
        encoding="utf-8",
    )

    logger.info(f"Starting referral engine {name}...")
