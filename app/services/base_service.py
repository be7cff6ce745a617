"""
Base service class.

Provides common functionality for all service classes including session
management, bound logging and transaction decorators.
"""

import functools
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession


# Type variable for generic decorator return types
T = TypeVar("T")


class BaseService:
    """
    Base service class.

    Provides common functionality for all service classes:
    - Session management
    - Logging with bound service context
    - Transaction helpers
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize base service.

        Args:
            session: Async database session
        """
        self.session = session
        self.logger = logger.bind(service=self.__class__.__name__)

    async def commit(self) -> None:
        """Commit current transaction."""
        await self.session.commit()

    async def rollback(self) -> None:
        """Rollback current transaction."""
        await self.session.rollback()

    @asynccontextmanager
    async def with_rollback_on_error(self) -> AsyncIterator[None]:
        """
        Roll back the session if the block raises.

        Usage:
            async with self.with_rollback_on_error():
                await self.ledger.credit(...)
                await self.commit()
        """
        try:
            yield
        except Exception:
            await self.rollback()
            raise


def _context(kwargs: dict[str, Any]) -> dict[str, Any]:
    """Pick loggable identifiers from call kwargs."""
    return {
        key: str(value)
        for key, value in kwargs.items()
        if key.endswith("_id") or key.endswith("_date")
    }


def transaction(func: Callable[..., T]) -> Callable[..., T]:
    """
    Decorator to run a service method as one unit of work.

    Commits on success, rolls back on exception and re-raises. Every balance
    credit and the history row written next to it share the commit.

    Usage:
        @transaction
        async def process_user(self, user_id: int, run_date: date):
            ...

    Args:
        func: Async method to wrap

    Returns:
        Wrapped async method
    """
    @functools.wraps(func)
    async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> Any:
        try:
            result = await func(self, *args, **kwargs)
            await self.commit()
            return result
        except Exception as e:
            await self.rollback()
            self.logger.error(
                f"Transaction rolled back in {func.__name__}: {e}",
                extra={
                    "function": func.__name__,
                    "error_type": type(e).__name__,
                    **_context(kwargs),
                },
            )
            raise

    return wrapper


def log_operation(func: Callable[..., T]) -> Callable[..., T]:
    """
    Decorator to log start and end of a long-running operation with timing.

    Usage:
        @log_operation
        async def run_daily(self, run_date: date):
            ...

    Args:
        func: Async method to wrap

    Returns:
        Wrapped async method
    """
    @functools.wraps(func)
    async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> Any:
        started = time.perf_counter()
        self.logger.info(
            f"Starting {func.__name__}",
            extra={"function": func.__name__, "args": [str(a) for a in args]},
        )

        try:
            result = await func(self, *args, **kwargs)
        except Exception:
            self.logger.exception(
                f"Failed {func.__name__} after "
                f"{time.perf_counter() - started:.3f}s",
                extra={"function": func.__name__},
            )
            raise

        self.logger.info(
            f"Completed {func.__name__} in {time.perf_counter() - started:.3f}s",
            extra={"function": func.__name__},
        )
        return result

    return wrapper
