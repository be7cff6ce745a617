"""
Capped leg bucket.

Pure fill algorithm shared by the standard and legacy leg rewards. Works on
RewardBucket objects in memory; persisting them is the caller's job.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from app.config.business_constants import BucketPolicy
from app.models.reward_bucket import RewardBucket


@dataclass
class FillResult:
    """Buckets affected by one fill."""

    touched: list[RewardBucket] = field(default_factory=list)
    created: list[RewardBucket] = field(default_factory=list)
    completed: list[RewardBucket] = field(default_factory=list)


def is_payable(bucket: RewardBucket, policy: BucketPolicy) -> bool:
    """Check if a bucket is full and has not paid yet."""
    return (
        bucket.is_full(policy.cap)
        and not bucket.is_rewarded
        and Decimal(bucket.reward_amount or 0) == 0
    )


def fill_leg(
    open_buckets: list[RewardBucket],
    leg_index: int,
    amount: Decimal,
    policy: BucketPolicy,
    new_bucket: Callable[[], RewardBucket],
) -> FillResult:
    """
    Add an amount to one leg across buckets.

    Open buckets are filled oldest first, each leg up to the cap. Whatever
    is left opens new buckets, again capped per leg, so no leg ever exceeds
    the cap.

    Args:
        open_buckets: Unrewarded buckets of the owner, oldest first
        leg_index: 0 (A), 1 (B) or 2 (C)
        amount: Deposit amount to place
        policy: Cap and payout
        new_bucket: Factory for an empty bucket

    Returns:
        FillResult with touched, newly created and newly completed buckets
    """
    result = FillResult()
    remaining = amount
    if remaining <= 0:
        return result

    for bucket in open_buckets:
        if remaining <= 0:
            break
        if bucket.is_rewarded:
            continue

        space = policy.cap - bucket.leg_balance(leg_index)
        if space <= 0:
            continue

        addable = min(space, remaining)
        bucket.set_leg_balance(leg_index, bucket.leg_balance(leg_index) + addable)
        remaining -= addable
        result.touched.append(bucket)
        if is_payable(bucket, policy):
            result.completed.append(bucket)

    while remaining > 0:
        bucket = new_bucket()
        addable = min(policy.cap, remaining)
        bucket.set_leg_balance(leg_index, addable)
        remaining -= addable
        result.created.append(bucket)
        result.touched.append(bucket)
        if is_payable(bucket, policy):
            result.completed.append(bucket)

    return result


def complete_bucket(
    bucket: RewardBucket, policy: BucketPolicy, now: datetime
) -> None:
    """Mark a full bucket as paid; the bucket never changes afterwards."""
    bucket.is_rewarded = True
    bucket.reward_amount = policy.payout
    bucket.completed_at = now
