"""Pytest configuration and shared fixtures for all tests."""

import itertools
import os
import sys
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from pathlib import Path

# Minimal environment for Settings(); tests never reach a real server
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_HOST", "localhost")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.models import Base, Deposit, DepositStatus, HierarchyEdge, TradeReport, User


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Fixed clock used by the fixtures and the date-sensitive tests
BASE_TIME = datetime(2025, 9, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def now():
    """Fixed run time: 2025-09-01 12:00 UTC."""
    return BASE_TIME


@pytest.fixture
def mock_session():
    """Mock AsyncSession for tests without a database."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.add = MagicMock()
    session.add_all = MagicMock()
    return session


@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite engine with the full schema."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Session configured like app.config.database.async_session_maker."""
    session_maker = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_maker() as session:
        yield session


@pytest.fixture
def make_user(db_session):
    """
    Factory for committed users, optionally placed under a parent.

    Edges get strictly increasing joined_at values so join order follows
    call order.

    Returns:
        Async callable (external_id, parent=None, deposit_balance=0,
        created_at=None) -> User
    """
    join_clock = itertools.count(1)

    async def _make(
        external_id: str,
        parent: User | None = None,
        deposit_balance: Decimal | str | int = 0,
        created_at: datetime | None = None,
    ) -> User:
        user = User(
            external_id=external_id,
            deposit_balance=Decimal(str(deposit_balance)),
            gain_profit=Decimal("0"),
            capital_profit=Decimal("0"),
            created_at=created_at or BASE_TIME - timedelta(days=30),
        )
        db_session.add(user)
        await db_session.flush()

        if parent is not None:
            db_session.add(
                HierarchyEdge(
                    child_id=user.id,
                    parent_id=parent.id,
                    joined_at=BASE_TIME
                    - timedelta(days=20)
                    + timedelta(minutes=next(join_clock)),
                )
            )
            user.parent_ref = parent.external_id

        await db_session.commit()
        return user

    return _make


@pytest.fixture
def make_completed_deposit(db_session):
    """
    Factory for completed deposits that count toward leg balances.

    Only the deposit row is written; balances are left untouched.
    """

    async def _make(user: User, amount: Decimal | str | int) -> Deposit:
        deposit = Deposit(
            user_id=user.id,
            amount=Decimal(str(amount)),
            status=DepositStatus.COMPLETED.value,
            completed_at=BASE_TIME - timedelta(days=10),
        )
        db_session.add(deposit)
        await db_session.commit()
        return deposit

    return _make


@pytest.fixture
def make_trade_report(db_session):
    """
    Factory for cached trade-report documents.

    Args (of the returned callable):
        user: Report owner
        reports: List of (date string, percent) tuples
        is_active: Active flag
        expires_at: Explicit expiry (defaults to a week after BASE_TIME)
    """

    async def _make(
        user: User,
        reports: list[tuple[str, object]],
        is_active: bool = True,
        expires_at: datetime | None = None,
    ) -> TradeReport:
        report = TradeReport(
            user_id=user.id,
            payload={
                "data": {
                    "dailyReports": [
                        {"date": day, "dailyProfit": percent}
                        for day, percent in reports
                    ]
                }
            },
            refreshed_at=BASE_TIME - timedelta(hours=1),
            expires_at=expires_at or BASE_TIME + timedelta(days=7),
            is_active=is_active,
        )
        db_session.add(report)
        await db_session.commit()
        return report

    return _make
