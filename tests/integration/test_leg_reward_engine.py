"""
Integration tests for the leg reward engine.

Tests:
- Deposit amount reaches every ancestor's bucket on the right leg
- Ancestors above a 4th child are skipped but the walk continues
- Bucket completion pays exactly once
- Redelivered deposits are not applied twice
- A hierarchy cycle stops the walk after the ancestors already reached
"""

from decimal import Decimal

import pytest

from app.config.business_constants import BucketType
from app.models import Deposit, DepositStatus, HierarchyEdge, LedgerAccount
from app.repositories.ledger_repository import LedgerRepository
from app.repositories.reward_bucket_repository import RewardBucketRepository
from app.services.reward import LegRewardEngine
from app.utils.exceptions import DepositNotFound, InvalidDepositTransition


async def _process(db_session, deposit):
    result = await LegRewardEngine(db_session).process(deposit.id)
    await db_session.commit()
    return result


def _legs(bucket):
    return (bucket.leg_a_balance, bucket.leg_b_balance, bucket.leg_c_balance)


class TestAncestorWalk:
    """Test which ancestors receive the deposit."""

    @pytest.mark.asyncio
    async def test_every_ancestor_gets_full_amount(
        self, db_session, make_user, make_completed_deposit
    ):
        """Three ancestors, two bucket types: six bucket writes."""
        root = await make_user("MC1")
        upper = await make_user("MC2", parent=root)
        parent = await make_user("MC3", parent=upper)
        depositor = await make_user("MC4", parent=parent)
        deposit = await make_completed_deposit(depositor, 1000)

        result = await _process(db_session, deposit)

        assert result.bucket_writes == 6
        assert result.payouts == []

        repo = RewardBucketRepository(db_session)
        for ancestor in (root, upper, parent):
            for bucket_type in (BucketType.STANDARD, BucketType.LEGACY):
                buckets = await repo.get_by_owner(ancestor.id, bucket_type)
                assert len(buckets) == 1
                assert _legs(buckets[0]) == (Decimal("1000"), 0, 0)

        assert await repo.get_by_owner(depositor.id) == []

    @pytest.mark.asyncio
    async def test_join_position_picks_leg(
        self, db_session, make_user, make_completed_deposit
    ):
        parent = await make_user("MC1")
        await make_user("MC2", parent=parent)
        second = await make_user("MC3", parent=parent)
        deposit = await make_completed_deposit(second, 250)

        await _process(db_session, deposit)

        buckets = await RewardBucketRepository(db_session).get_by_owner(
            parent.id, BucketType.STANDARD
        )
        assert _legs(buckets[0]) == (0, Decimal("250"), 0)

    @pytest.mark.asyncio
    async def test_fourth_child_skips_parent_only(
        self, db_session, make_user, make_completed_deposit
    ):
        """No bucket for the parent, but the grandparent still gets leg A."""
        grandparent = await make_user("MC1")
        parent = await make_user("MC2", parent=grandparent)
        for n in range(3):
            await make_user(f"MC2{n}", parent=parent)
        fourth = await make_user("MC24", parent=parent)
        deposit = await make_completed_deposit(fourth, 800)

        result = await _process(db_session, deposit)

        repo = RewardBucketRepository(db_session)
        assert result.non_leg_ancestors == 2
        assert result.bucket_writes == 2
        assert await repo.get_by_owner(parent.id) == []

        buckets = await repo.get_by_owner(grandparent.id, BucketType.STANDARD)
        assert _legs(buckets[0]) == (Decimal("800"), 0, 0)

    @pytest.mark.asyncio
    async def test_root_depositor_writes_nothing(
        self, db_session, make_user, make_completed_deposit
    ):
        root = await make_user("MC1")
        deposit = await make_completed_deposit(root, 100)

        result = await _process(db_session, deposit)

        assert result.bucket_writes == 0

    @pytest.mark.asyncio
    async def test_cycle_stops_walk(
        self, db_session, make_user, make_completed_deposit
    ):
        """MC1 and MC2 are each other's parent; both still get one write."""
        top = await make_user("MC1")
        middle = await make_user("MC2", parent=top)
        depositor = await make_user("MC3", parent=middle)
        db_session.add(HierarchyEdge(child_id=top.id, parent_id=middle.id))
        await db_session.commit()
        deposit = await make_completed_deposit(depositor, 400)

        result = await _process(db_session, deposit)

        assert result.cycle_detected is True
        assert result.bucket_writes == 4
        assert result.payouts == []

        repo = RewardBucketRepository(db_session)
        for ancestor in (middle, top):
            for bucket_type in (BucketType.STANDARD, BucketType.LEGACY):
                buckets = await repo.get_by_owner(ancestor.id, bucket_type)
                assert len(buckets) == 1
                assert _legs(buckets[0]) == (Decimal("400"), 0, 0)

        retry = await _process(db_session, deposit)
        assert retry.cycle_detected is True
        assert retry.bucket_writes == 0
        assert retry.already_processed == 4


class TestBucketFill:
    """Test capped filling and completion."""

    @pytest.mark.asyncio
    async def test_overflow_into_new_bucket(
        self, db_session, make_user, make_completed_deposit
    ):
        """2000 onto leg A holding 1000 leaves two buckets at 1500."""
        parent = await make_user("MC1")
        child = await make_user("MC2", parent=parent)

        await _process(db_session, await make_completed_deposit(child, 1000))
        await _process(db_session, await make_completed_deposit(child, 2000))

        buckets = await RewardBucketRepository(db_session).get_by_owner(
            parent.id, BucketType.STANDARD
        )
        assert [b.leg_a_balance for b in buckets] == [Decimal("1500"), Decimal("1500")]

    @pytest.mark.asyncio
    async def test_completion_pays_once(
        self, db_session, make_user, make_completed_deposit
    ):
        parent = await make_user("MC1")
        legs = [await make_user(f"MC1{n}", parent=parent) for n in range(3)]

        results = [
            await _process(db_session, await make_completed_deposit(leg, 1500))
            for leg in legs
        ]

        assert [len(r.payouts) for r in results] == [0, 0, 1]
        payout = results[-1].payouts[0]
        assert payout.parent_id == parent.id
        assert payout.bucket_type == BucketType.STANDARD
        assert payout.amount == Decimal("500")

        await db_session.refresh(parent)
        assert parent.capital_profit == Decimal("500")

        buckets = await RewardBucketRepository(db_session).get_by_owner(
            parent.id, BucketType.STANDARD
        )
        assert len(buckets) == 1
        assert buckets[0].is_rewarded is True
        assert buckets[0].reward_amount == Decimal("500")

        # Further deposits open a fresh bucket; the paid one never changes
        await _process(db_session, await make_completed_deposit(legs[0], 100))
        buckets = await RewardBucketRepository(db_session).get_by_owner(
            parent.id, BucketType.STANDARD
        )
        assert _legs(buckets[0]) == (Decimal("1500"),) * 3
        assert _legs(buckets[1]) == (Decimal("100"), 0, 0)

        total = await LedgerRepository(db_session).get_total(
            parent.id, LedgerAccount.CAPITAL_PROFIT
        )
        assert total == Decimal("500")


class TestIdempotency:
    """Test redelivery and invalid input."""

    @pytest.mark.asyncio
    async def test_reprocessing_is_noop(
        self, db_session, make_user, make_completed_deposit
    ):
        root = await make_user("MC1")
        parent = await make_user("MC2", parent=root)
        depositor = await make_user("MC3", parent=parent)
        deposit = await make_completed_deposit(depositor, 700)

        await _process(db_session, deposit)
        retry = await _process(db_session, deposit)

        assert retry.bucket_writes == 0
        assert retry.already_processed == 4

        buckets = await RewardBucketRepository(db_session).get_by_owner(
            parent.id, BucketType.STANDARD
        )
        assert len(buckets) == 1
        assert buckets[0].leg_a_balance == Decimal("700")

    @pytest.mark.asyncio
    async def test_missing_deposit(self, db_session):
        with pytest.raises(DepositNotFound):
            await LegRewardEngine(db_session).process(12345)

    @pytest.mark.asyncio
    async def test_pending_deposit_rejected(self, db_session, make_user):
        user = await make_user("MC1")
        deposit = Deposit(
            user_id=user.id,
            amount=Decimal("10"),
            status=DepositStatus.PENDING.value,
        )
        db_session.add(deposit)
        await db_session.commit()

        with pytest.raises(InvalidDepositTransition):
            await LegRewardEngine(db_session).process(deposit.id)
