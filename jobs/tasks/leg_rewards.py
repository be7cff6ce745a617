"""
Leg rewards task.

Applies a completed deposit to the ancestors' capped leg buckets when
rewards are not processed inline with the deposit.
"""

import dramatiq
from loguru import logger

from app.config.operational_constants import (
    DEFAULT_MAX_RETRIES,
    DRAMATIQ_TIME_LIMIT_SHORT,
)
from app.services.reward.leg_reward_engine import LegRewardEngine, LegRewardResult
from app.utils.exceptions import must_raise
from jobs.async_runner import create_local_session, run_async
from jobs.broker import broker  # noqa: F401


@dramatiq.actor(max_retries=DEFAULT_MAX_RETRIES, time_limit=DRAMATIQ_TIME_LIMIT_SHORT)
def process_leg_rewards(deposit_id: int) -> None:
    """
    Process leg rewards for one completed deposit.

    Safe to retry: ancestors already applied are skipped.

    Args:
        deposit_id: Completed deposit ID
    """
    logger.info(f"Processing leg rewards for deposit {deposit_id}...")

    try:
        result = run_async(_process_leg_rewards_async(deposit_id))
    except Exception as e:
        if must_raise(e):
            # Bad input, a retry cannot succeed
            logger.error(f"Leg rewards rejected for deposit {deposit_id}: {e}")
            return
        logger.exception(f"Leg rewards failed for deposit {deposit_id}: {e}")
        raise

    logger.info(
        f"Leg rewards for deposit {deposit_id}: "
        f"{result.bucket_writes} bucket writes, {len(result.payouts)} payouts"
    )


async def _process_leg_rewards_async(deposit_id: int) -> LegRewardResult:
    """Async implementation of leg reward processing."""
    async with create_local_session() as session:
        engine = LegRewardEngine(session)
        async with engine.with_rollback_on_error():
            result = await engine.process(deposit_id)
            await engine.commit()
        return result
