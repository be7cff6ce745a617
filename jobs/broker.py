"""
Dramatiq broker configuration.

Redis-based message broker for the reward and settlement task queue.
"""

import dramatiq
from dramatiq.brokers.redis import RedisBroker
from dramatiq.middleware import (
    AgeLimit,
    Callbacks,
    CurrentMessage,
    Pipelines,
    Retries,
    ShutdownNotifications,
    TimeLimit,
)
from loguru import logger

from app.config.operational_constants import (
    DEFAULT_MAX_RETRIES,
    RETRY_MAX_BACKOFF_MS,
    RETRY_MIN_BACKOFF_MS,
)
from app.config.settings import settings
from app.utils.redis_utils import get_redis_url_masked

# Full middleware list, each registered once
# ShutdownNotifications: lets long daily runs stop between users
# CurrentMessage: exposes the message to actors for logging
# Retries: exponential backoff for failed leg-reward walks
redis_broker = RedisBroker(
    host=settings.redis_host,
    port=settings.redis_port,
    password=settings.redis_password if settings.redis_password else None,
    db=settings.redis_db,
    middleware=[
        AgeLimit(),
        TimeLimit(),
        ShutdownNotifications(),
        Callbacks(),
        Pipelines(),
        CurrentMessage(),
        Retries(
            max_retries=DEFAULT_MAX_RETRIES,
            min_backoff=RETRY_MIN_BACKOFF_MS,
            max_backoff=RETRY_MAX_BACKOFF_MS,
        ),
    ],
)

dramatiq.set_broker(redis_broker)

broker = redis_broker

logger.info(f"Dramatiq broker initialized: {get_redis_url_masked()}")
