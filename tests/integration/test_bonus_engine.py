"""
Integration tests for the daily bonus engine.

Tests:
- Bonus over qualified subs and the CapitalHistory row
- Generation depth limit
- Re-running a day
- Isolation of per-user failures in the batch run
- Unusable feed values of one sub do not cost the others their share
"""

from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest

from app.config.settings import settings
from app.models import HierarchyEdge, LedgerAccount, LedgerReason, TradeReport
from app.repositories.capital_history_repository import CapitalHistoryRepository
from app.repositories.ledger_repository import LedgerRepository
from app.services.bonus import BonusEngine, BonusStatus


RUN_DATE = date(2025, 9, 1)
ENTRY = [("2025-09-01", 2.5)]


@pytest.fixture
def three_leg_owner(make_user, make_completed_deposit, make_trade_report):
    """
    Owner with legs A/B/C funded 600/500/400.

    A and B hold 1000 capital with a 2.5% entry for RUN_DATE; C has no
    trade report.

    Returns:
        Async callable returning (owner, [leg_a, leg_b, leg_c])
    """

    async def _build():
        owner = await make_user("MC1")
        leg_a = await make_user("MC2", parent=owner, deposit_balance=1000)
        leg_b = await make_user("MC3", parent=owner, deposit_balance=1000)
        leg_c = await make_user("MC4", parent=owner)

        await make_completed_deposit(leg_a, 600)
        await make_completed_deposit(leg_b, 500)
        await make_completed_deposit(leg_c, 400)

        await make_trade_report(leg_a, ENTRY)
        await make_trade_report(leg_b, ENTRY)
        return owner, [leg_a, leg_b, leg_c]

    return _build


class TestProcessUser:
    """Test the bonus of a single user."""

    @pytest.mark.asyncio
    async def test_bonus_and_history(self, db_session, three_leg_owner, now):
        owner, _ = await three_leg_owner()

        outcome = await BonusEngine(db_session).process_user(owner.id, RUN_DATE, now)

        assert outcome.status == BonusStatus.CREDITED
        assert outcome.bonus_amount == Decimal("2.50")
        assert outcome.max_generation == 10

        await db_session.refresh(owner)
        assert owner.gain_profit == Decimal("2.50")

        history = await CapitalHistoryRepository(db_session).get_for_day(
            owner.id, RUN_DATE
        )
        assert history.bonus_amount == Decimal("2.50")
        assert history.total_subs == 3
        assert history.active_subs == 2
        assert history.total_sub_capital == Decimal("2000")
        assert history.new_subs_last_24h == 0
        assert history.max_generation == 10

    @pytest.mark.asyncio
    async def test_rerun_same_day_is_noop(self, db_session, three_leg_owner, now):
        owner, _ = await three_leg_owner()
        engine = BonusEngine(db_session)

        await engine.process_user(owner.id, RUN_DATE, now)
        again = await engine.process_user(owner.id, RUN_DATE, now)

        assert again.status == BonusStatus.ALREADY_SETTLED
        total = await LedgerRepository(db_session).get_total(
            owner.id, LedgerAccount.GAIN_PROFIT, LedgerReason.DAILY_BONUS
        )
        assert total == Decimal("2.50")

    @pytest.mark.asyncio
    async def test_rate_override(self, db_session, three_leg_owner, now):
        owner, _ = await three_leg_owner()

        outcome = await BonusEngine(db_session, rate=Decimal("0.10")).process_user(
            owner.id, RUN_DATE, now
        )

        assert outcome.bonus_amount == Decimal("5.00")

    @pytest.mark.asyncio
    async def test_generation_limits_depth(
        self, db_session, make_user, make_completed_deposit, make_trade_report, now
    ):
        """Leg A only unlocks three generations; the 4th level is ignored."""
        owner = await make_user("MC1")
        chain = []
        parent = owner
        for n in range(4):
            parent = await make_user(f"MC1{n}", parent=parent, deposit_balance=1000)
            await make_trade_report(parent, ENTRY)
            chain.append(parent)
        await make_completed_deposit(chain[0], 100)

        outcome = await BonusEngine(db_session).process_user(owner.id, RUN_DATE, now)

        assert outcome.max_generation == 3
        assert outcome.bonus_amount == Decimal("3.75")
        assert outcome.history.total_subs == 3

    @pytest.mark.asyncio
    async def test_not_qualified_writes_nothing(self, db_session, make_user, now):
        """Without a funded leg A there is no bonus and no history row."""
        owner = await make_user("MC1")
        await make_user("MC2", parent=owner, deposit_balance=1000)

        outcome = await BonusEngine(db_session).process_user(owner.id, RUN_DATE, now)

        assert outcome.status == BonusStatus.NOT_QUALIFIED
        assert (
            await CapitalHistoryRepository(db_session).get_for_day(owner.id, RUN_DATE)
            is None
        )

    @pytest.mark.asyncio
    async def test_unusable_feed_counts_as_no_entry(
        self, db_session, make_user, make_completed_deposit, make_trade_report, now
    ):
        """Inactive or expired reports give zero profit, not a failure."""
        owner = await make_user("MC1")
        inactive = await make_user("MC2", parent=owner, deposit_balance=1000)
        expired = await make_user("MC3", parent=owner, deposit_balance=1000)
        await make_completed_deposit(inactive, 100)
        await make_trade_report(inactive, ENTRY, is_active=False)
        await make_trade_report(expired, ENTRY, expires_at=now - timedelta(days=1))

        outcome = await BonusEngine(db_session).process_user(owner.id, RUN_DATE, now)

        assert outcome.status == BonusStatus.ZERO_BONUS
        assert outcome.history.active_subs == 0
        assert outcome.history.total_subs == 2

    @pytest.mark.asyncio
    async def test_new_subs_counter(
        self, db_session, make_user, make_completed_deposit, now
    ):
        owner = await make_user("MC1")
        fresh = await make_user(
            "MC2", parent=owner, created_at=now - timedelta(hours=3)
        )
        await make_completed_deposit(fresh, 100)

        outcome = await BonusEngine(db_session).process_user(owner.id, RUN_DATE, now)

        assert outcome.history.new_subs_last_24h == 1


class TestRunDaily:
    """Test the batch run."""

    @pytest.mark.asyncio
    async def test_failures_are_isolated(
        self, db_session, make_user, three_leg_owner, now
    ):
        """Users caught in a hierarchy cycle fail; everyone else settles."""
        owner, _ = await three_leg_owner()
        looped = await make_user("MC9")
        partner = await make_user("MC10", parent=looped)
        db_session.add(HierarchyEdge(child_id=looped.id, parent_id=partner.id))
        await db_session.commit()
        owner_id = owner.id

        summary = await BonusEngine(db_session).run_daily(RUN_DATE, now)

        assert summary.failed == 2
        assert summary.processed == 4
        assert summary.credited == 1
        assert summary.not_qualified == 3
        assert summary.total_bonus == Decimal("2.50")

        rerun = await BonusEngine(db_session).run_daily(RUN_DATE, now)
        assert rerun.already_settled == 1
        assert rerun.credited == 0

        total = await LedgerRepository(db_session).get_total(
            owner_id, LedgerAccount.GAIN_PROFIT
        )
        assert total == Decimal("2.50")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("poisoned", ["NaN", "Infinity", "-Infinity"])
    async def test_bad_feed_values_do_not_block_ancestors(
        self,
        db_session,
        make_user,
        make_completed_deposit,
        make_trade_report,
        now,
        poisoned,
    ):
        """A non-finite entry and a malformed document count as no profit."""
        owner = await make_user("MC1")
        healthy = await make_user("MC2", parent=owner, deposit_balance=1000)
        bad_value = await make_user("MC3", parent=owner, deposit_balance=1000)
        malformed = await make_user("MC4", parent=owner, deposit_balance=1000)
        await make_completed_deposit(healthy, 100)

        await make_trade_report(healthy, ENTRY)
        await make_trade_report(bad_value, [("2025-09-01", poisoned)])
        db_session.add(
            TradeReport(
                user_id=malformed.id,
                payload={"unexpected": []},
                refreshed_at=now - timedelta(hours=1),
                is_active=True,
            )
        )
        await db_session.commit()
        owner_id = owner.id

        summary = await BonusEngine(db_session).run_daily(RUN_DATE, now)

        assert summary.failed == 0
        assert summary.processed == 4
        assert summary.credited == 1
        assert summary.not_qualified == 3
        assert summary.total_bonus == Decimal("1.25")

        history = await CapitalHistoryRepository(db_session).get_for_day(
            owner_id, RUN_DATE
        )
        assert history.total_subs == 3
        assert history.active_subs == 1

    @pytest.mark.asyncio
    async def test_feed_cache_cleared_per_page(self, db_session, three_leg_owner, now):
        await three_leg_owner()
        engine = BonusEngine(db_session)

        with patch.object(settings, "bonus_batch_size", 2), patch.object(
            engine.feed, "clear_cache", wraps=engine.feed.clear_cache
        ) as clear_cache:
            summary = await engine.run_daily(RUN_DATE, now)

        assert summary.processed == 4
        assert clear_cache.call_count == 2
        assert engine.feed._reports == {}
