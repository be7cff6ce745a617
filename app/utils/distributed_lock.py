"""
Distributed lock.

Redis-based lock used to keep batch jobs from running concurrently.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from loguru import logger
from redis.asyncio import Redis
from redis.exceptions import LockError, RedisError

from app.config.operational_constants import (
    BLOCKING_TIMEOUT_DEFAULT,
    LOCK_TIMEOUT_MEDIUM,
)


class DistributedLock:
    """
    Distributed lock over redis-py's Lock.

    Usage:
        lock = DistributedLock(redis_client=redis_client)
        async with lock.lock("daily_bonus", timeout=1800, blocking=False) as acquired:
            if not acquired:
                return
            ...
    """

    def __init__(self, redis_client: Redis, prefix: str = "lock:") -> None:
        """
        Initialize lock.

        Args:
            redis_client: Redis client
            prefix: Key prefix in Redis
        """
        self.redis_client = redis_client
        self.prefix = prefix

    @asynccontextmanager
    async def lock(
        self,
        key: str,
        timeout: int = LOCK_TIMEOUT_MEDIUM,
        blocking: bool = True,
        blocking_timeout: float = BLOCKING_TIMEOUT_DEFAULT,
    ) -> AsyncIterator[bool]:
        """
        Acquire lock for the duration of the context.

        Args:
            key: Lock name
            timeout: Lock expiry in seconds
            blocking: Wait for the lock if it is held
            blocking_timeout: Maximum wait in seconds when blocking

        Yields:
            True if the lock was acquired, False otherwise
        """
        full_key = f"{self.prefix}{key}"
        redis_lock = self.redis_client.lock(
            full_key,
            timeout=timeout,
            blocking=blocking,
            blocking_timeout=blocking_timeout,
        )

        try:
            acquired = await redis_lock.acquire()
        except RedisError as e:
            logger.error(f"Failed to acquire lock {full_key}: {e}")
            acquired = False

        if acquired:
            logger.debug(f"Lock acquired: {full_key}")
        else:
            logger.debug(f"Lock busy: {full_key}")

        try:
            yield acquired
        finally:
            if acquired:
                await self._release(redis_lock, full_key)

    @staticmethod
    async def _release(redis_lock, full_key: str) -> None:
        """Release lock if still owned."""
        try:
            await redis_lock.release()
            logger.debug(f"Lock released: {full_key}")
        except LockError as e:
            # Expired and possibly taken over by another worker
            logger.warning(f"Lock {full_key} was no longer held: {e}")
        except RedisError as e:
            logger.warning(f"Failed to release lock {full_key}: {e}")
