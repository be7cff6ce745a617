"""
Unit tests for the capped leg bucket fill.

Tests:
- Filling the oldest open bucket first
- Overflow into new buckets without exceeding the cap
- Completion and single payout
"""

from datetime import UTC, datetime
from decimal import Decimal

from app.config.business_constants import LEGACY_BUCKET, STANDARD_BUCKET
from app.services.reward import complete_bucket, fill_leg, is_payable


LEG_A, LEG_B, LEG_C = 0, 1, 2


def _legs(bucket):
    return [bucket.leg_balance(i) for i in (LEG_A, LEG_B, LEG_C)]


class TestFillLeg:
    """Test distribution of a deposit over buckets."""

    def test_first_deposit_opens_bucket(self, new_bucket):
        """An owner without buckets gets a new one."""
        result = fill_leg([], LEG_B, Decimal("700"), STANDARD_BUCKET, new_bucket)

        assert len(result.created) == 1
        assert _legs(result.created[0]) == [Decimal("0"), Decimal("700"), Decimal("0")]
        assert result.completed == []

    def test_overflow_opens_second_bucket(self, new_bucket):
        """2000 onto leg A holding 1000: 500 tops up, 1500 opens a bucket."""
        existing = new_bucket()
        existing.set_leg_balance(LEG_A, Decimal("1000"))

        result = fill_leg(
            [existing], LEG_A, Decimal("2000"), STANDARD_BUCKET, new_bucket
        )

        assert existing.leg_balance(LEG_A) == Decimal("1500")
        assert len(result.created) == 1
        assert result.created[0].leg_balance(LEG_A) == Decimal("1500")
        assert result.touched == [existing, result.created[0]]

    def test_large_deposit_never_exceeds_cap(self, new_bucket):
        """Leftover beyond one cap is spread over several new buckets."""
        result = fill_leg([], LEG_C, Decimal("4000"), STANDARD_BUCKET, new_bucket)

        assert [b.leg_balance(LEG_C) for b in result.created] == [
            Decimal("1500"),
            Decimal("1500"),
            Decimal("1000"),
        ]

    def test_oldest_open_bucket_first(self, new_bucket):
        """Older buckets fill before newer ones."""
        older, newer = new_bucket(), new_bucket()
        older.set_leg_balance(LEG_A, Decimal("1400"))

        fill_leg([older, newer], LEG_A, Decimal("300"), STANDARD_BUCKET, new_bucket)

        assert older.leg_balance(LEG_A) == Decimal("1500")
        assert newer.leg_balance(LEG_A) == Decimal("200")

    def test_full_leg_is_skipped(self, new_bucket):
        """A bucket whose leg is at the cap takes nothing more on that leg."""
        full_a = new_bucket()
        full_a.set_leg_balance(LEG_A, Decimal("1500"))

        result = fill_leg([full_a], LEG_A, Decimal("100"), STANDARD_BUCKET, new_bucket)

        assert full_a.leg_balance(LEG_A) == Decimal("1500")
        assert result.created[0].leg_balance(LEG_A) == Decimal("100")

    def test_zero_amount_is_noop(self, new_bucket):
        result = fill_leg([], LEG_A, Decimal("0"), STANDARD_BUCKET, new_bucket)

        assert result.touched == []
        assert result.created == []


class TestCompletion:
    """Test bucket completion and payout."""

    def test_last_leg_completes_bucket(self, new_bucket):
        """Filling the final leg to the cap makes the bucket payable."""
        bucket = new_bucket()
        bucket.set_leg_balance(LEG_B, Decimal("1500"))
        bucket.set_leg_balance(LEG_C, Decimal("1500"))

        result = fill_leg([bucket], LEG_A, Decimal("1500"), STANDARD_BUCKET, new_bucket)

        assert result.completed == [bucket]
        assert result.created == []

    def test_completed_bucket_pays_once(self, new_bucket):
        """After completion the bucket is no longer payable or fillable."""
        bucket = new_bucket()
        for leg in (LEG_A, LEG_B, LEG_C):
            bucket.set_leg_balance(leg, Decimal("1500"))
        now = datetime(2025, 9, 1, tzinfo=UTC)

        assert is_payable(bucket, STANDARD_BUCKET)
        complete_bucket(bucket, STANDARD_BUCKET, now)

        assert bucket.is_rewarded is True
        assert bucket.reward_amount == Decimal("500")
        assert bucket.completed_at == now
        assert not is_payable(bucket, STANDARD_BUCKET)

        result = fill_leg([bucket], LEG_A, Decimal("10"), STANDARD_BUCKET, new_bucket)
        assert bucket not in result.touched

    def test_legacy_policy_uses_its_cap(self, new_bucket):
        """Legacy buckets accept up to 45000 per leg."""
        result = fill_leg([], LEG_A, Decimal("50000"), LEGACY_BUCKET, new_bucket)

        assert [b.leg_balance(LEG_A) for b in result.created] == [
            Decimal("45000"),
            Decimal("5000"),
        ]
        assert LEGACY_BUCKET.payout == Decimal("15000")
