"""
Integration tests for the daily profit settlement and feed maintenance.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from app.models import ProfitSettlement, TradeReport
from app.services.profit import DailyProfitSettlement, SettlementStatus
from app.services.trade_feed import TradeFeedReader
from app.utils.datetime_utils import ensure_utc
from app.utils.exceptions import ExternalFeedUnavailable, MissingFeedEntry


RUN_DATE = date(2025, 9, 1)


async def _settlements(db_session, user_id):
    result = await db_session.execute(
        select(ProfitSettlement).where(ProfitSettlement.user_id == user_id)
    )
    return result.scalars().all()


class TestApplyDaily:
    """Test settlement of a single user."""

    @pytest.mark.asyncio
    async def test_profit_credited(self, db_session, make_user, make_trade_report, now):
        user = await make_user("MC1", deposit_balance=1000)
        report = await make_trade_report(user, [("2025-09-01", 2.5)])

        outcome = await DailyProfitSettlement(db_session).apply_daily(
            user.id, RUN_DATE, now
        )

        assert outcome.status == SettlementStatus.CREDITED
        assert outcome.amount == Decimal("25")

        await db_session.refresh(user)
        await db_session.refresh(report)
        assert user.capital_profit == Decimal("25")
        assert user.deposit_balance == Decimal("1000")
        assert ensure_utc(report.last_processed_at) == now

        rows = await _settlements(db_session, user.id)
        assert len(rows) == 1
        assert rows[0].percent == Decimal("2.5")
        assert rows[0].base_balance == Decimal("1000")

    @pytest.mark.asyncio
    async def test_same_day_once(self, db_session, make_user, make_trade_report, now):
        user = await make_user("MC1", deposit_balance=1000)
        await make_trade_report(user, [("2025-09-01", 2.5)])
        settlement = DailyProfitSettlement(db_session)

        await settlement.apply_daily(user.id, RUN_DATE, now)
        again = await settlement.apply_daily(user.id, RUN_DATE, now)

        assert again.status == SettlementStatus.ALREADY_SETTLED
        await db_session.refresh(user)
        assert user.capital_profit == Decimal("25")

    @pytest.mark.asyncio
    async def test_loss_day_recorded_without_credit(
        self, db_session, make_user, make_trade_report, now
    ):
        user = await make_user("MC1", deposit_balance=1000)
        await make_trade_report(user, [("2025-09-01", "-0.75")])

        outcome = await DailyProfitSettlement(db_session).apply_daily(
            user.id, RUN_DATE, now
        )

        assert outcome.status == SettlementStatus.ZERO_PROFIT
        await db_session.refresh(user)
        assert user.capital_profit == Decimal("0")
        assert len(await _settlements(db_session, user.id)) == 1

    @pytest.mark.asyncio
    async def test_no_entry_for_date(self, db_session, make_user, make_trade_report, now):
        user = await make_user("MC1", deposit_balance=1000)
        await make_trade_report(user, [("2025-08-31", 2.5)])

        outcome = await DailyProfitSettlement(db_session).apply_daily(
            user.id, RUN_DATE, now
        )

        assert outcome.status == SettlementStatus.NO_ENTRY
        assert await _settlements(db_session, user.id) == []

    @pytest.mark.asyncio
    async def test_feed_unavailable(self, db_session, make_user, make_trade_report, now):
        missing = await make_user("MC1", deposit_balance=1000)
        inactive = await make_user("MC2", deposit_balance=1000)
        await make_trade_report(inactive, [("2025-09-01", 2.5)], is_active=False)

        settlement = DailyProfitSettlement(db_session)
        for user in (missing, inactive):
            outcome = await settlement.apply_daily(user.id, RUN_DATE, now)
            assert outcome.status == SettlementStatus.FEED_UNAVAILABLE


class TestRunDaily:
    """Test the batch run."""

    @pytest.mark.asyncio
    async def test_summary(self, db_session, make_user, make_trade_report, now):
        credited = await make_user("MC1", deposit_balance=1000)
        await make_trade_report(credited, [("2025-09-01", 2.5)])
        await make_user("MC2", deposit_balance=1000)
        idle = await make_user("MC3")
        await make_trade_report(idle, [("2025-09-01", 2.5)])

        summary = await DailyProfitSettlement(db_session).run_daily(RUN_DATE, now)

        assert summary.processed == 3
        assert summary.credited == 1
        assert summary.skipped == 2
        assert summary.failed == 0
        assert summary.total_amount == Decimal("25")

    @pytest.mark.asyncio
    async def test_bad_feed_values_are_isolated(
        self, db_session, make_user, make_trade_report, now
    ):
        """Non-finite entries and malformed documents skip only their owner."""
        credited = await make_user("MC1", deposit_balance=1000)
        await make_trade_report(credited, [("2025-09-01", 2.5)])
        not_a_number = await make_user("MC2", deposit_balance=1000)
        await make_trade_report(not_a_number, [("2025-09-01", "NaN")])
        infinite = await make_user("MC3", deposit_balance=1000)
        await make_trade_report(infinite, [("2025-09-01", "Infinity")])
        malformed = await make_user("MC4", deposit_balance=1000)
        db_session.add(
            TradeReport(
                user_id=malformed.id,
                payload={"unexpected": []},
                refreshed_at=now - timedelta(hours=1),
                is_active=True,
            )
        )
        await db_session.commit()
        skipped_ids = [not_a_number.id, infinite.id, malformed.id]

        summary = await DailyProfitSettlement(db_session).run_daily(RUN_DATE, now)

        assert summary.failed == 0
        assert summary.credited == 1
        assert summary.skipped == 3
        assert summary.total_amount == Decimal("25")
        for user_id in skipped_ids:
            assert await _settlements(db_session, user_id) == []

    @pytest.mark.asyncio
    async def test_non_finite_entry_is_no_entry(
        self, db_session, make_user, make_trade_report, now
    ):
        user = await make_user("MC1", deposit_balance=1000)
        await make_trade_report(user, [("2025-09-01", "NaN")])

        outcome = await DailyProfitSettlement(db_session).apply_daily(
            user.id, RUN_DATE, now
        )

        assert outcome.status == SettlementStatus.NO_ENTRY


class TestTradeFeedReader:
    """Test feed lookups and expiry maintenance."""

    @pytest.mark.asyncio
    async def test_percent_for_sums_same_day(
        self, db_session, make_user, make_trade_report, now
    ):
        user = await make_user("MC1")
        await make_trade_report(
            user, [("2025-09-01", 1), ("2025-09-01", "0.5"), ("2025-09-02", 9)]
        )

        reader = TradeFeedReader(db_session)

        assert await reader.percent_for(user.id, RUN_DATE, now) == Decimal("1.5")
        assert await reader.percent_for(user.id, date(2025, 9, 3), now) is None

    @pytest.mark.asyncio
    async def test_require_percent_raises_missing_entry(
        self, db_session, make_user, make_trade_report, now
    ):
        user = await make_user("MC1")
        await make_trade_report(user, [("2025-08-31", 1)])

        with pytest.raises(MissingFeedEntry) as exc_info:
            await TradeFeedReader(db_session).require_percent(user.id, RUN_DATE, now)

        assert exc_info.value.on == RUN_DATE

    @pytest.mark.asyncio
    async def test_missing_report_raises(self, db_session, make_user, now):
        user = await make_user("MC1")

        with pytest.raises(ExternalFeedUnavailable):
            await TradeFeedReader(db_session).entries_for(user.id, now)

    @pytest.mark.asyncio
    async def test_deactivate_expired(self, db_session, make_user, make_trade_report, now):
        expired_user = await make_user("MC1")
        stale_user = await make_user("MC2")
        fresh_user = await make_user("MC3")

        await make_trade_report(expired_user, [], expires_at=now - timedelta(days=1))
        await make_trade_report(fresh_user, [])
        db_session.add(
            TradeReport(
                user_id=stale_user.id,
                payload={"dailyReports": []},
                refreshed_at=now - timedelta(days=40),
                expires_at=None,
                is_active=True,
            )
        )
        await db_session.commit()

        count = await TradeFeedReader(db_session).deactivate_expired(now)

        assert count == 2
        result = await db_session.execute(
            select(TradeReport.user_id).where(TradeReport.is_active == True)  # noqa: E712
        )
        assert result.scalars().all() == [fresh_user.id]
