"""
Async runner for dramatiq tasks.

Dramatiq actors are synchronous; the engines are async. Each worker thread
keeps one event loop and every task gets its own NullPool engine, so no
connection is shared across loops.
"""

import asyncio
import threading
from collections.abc import AsyncIterator, Awaitable, Callable, Coroutine
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.config.settings import settings
from app.utils.distributed_lock import DistributedLock
from app.utils.redis_utils import get_redis_client

T = TypeVar("T")

_thread_local = threading.local()


def get_event_loop() -> asyncio.AbstractEventLoop:
    """
    Get or create the event loop of the current worker thread.

    Reusing one loop per thread prevents "Future attached to a different
    loop" errors in asyncpg and redis clients.
    """
    loop = getattr(_thread_local, "loop", None)
    if loop is None or loop.is_closed():
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        _thread_local.loop = loop
        logger.debug(
            f"Created new event loop for thread {threading.current_thread().name}"
        )
    return loop


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """
    Run a coroutine to completion in the thread's event loop.

    Args:
        coro: Coroutine to run

    Returns:
        Result of the coroutine
    """
    return get_event_loop().run_until_complete(coro)


@asynccontextmanager
async def create_local_session() -> AsyncIterator[AsyncSession]:
    """
    Create a session bound to a task-local NullPool engine.

    Usage:
        async with create_local_session() as session:
            await BonusEngine(session).run_daily(run_date)

    Yields:
        AsyncSession bound to the current event loop
    """
    local_engine = create_async_engine(
        settings.database_url,
        echo=False,
        poolclass=NullPool,
    )
    local_session_maker = async_sessionmaker(
        local_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    try:
        async with local_session_maker() as session:
            yield session
    finally:
        await local_engine.dispose()


async def run_exclusive(
    lock_key: str,
    timeout: int,
    operation: Callable[[AsyncSession], Awaitable[T]],
) -> tuple[bool, T | None]:
    """
    Run a batch operation unless another worker is already running it.

    The Redis lock is taken non-blocking: a second run while one is in
    progress is skipped, not queued.

    Args:
        lock_key: Distributed lock name
        timeout: Lock expiry in seconds (longer than the run)
        operation: Coroutine function receiving a fresh session

    Returns:
        (acquired, result); result is None when the lock was busy
    """
    redis_client = await get_redis_client()
    lock = DistributedLock(redis_client=redis_client)
    try:
        async with lock.lock(lock_key, timeout=timeout, blocking=False) as acquired:
            if not acquired:
                logger.warning(
                    f"{lock_key} already running in another worker, skipping"
                )
                return False, None

            async with create_local_session() as session:
                return True, await operation(session)
    finally:
        await redis_client.aclose()
