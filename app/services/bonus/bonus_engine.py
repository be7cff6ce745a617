"""
Bonus engine.

Daily generation-depth bonus: each qualified user earns a share of the
daily profit of every sub within their unlocked generations.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import settings
from app.models.capital_history import CapitalHistory
from app.models.enums import LedgerAccount, LedgerReason
from app.repositories.capital_history_repository import CapitalHistoryRepository
from app.repositories.user_repository import UserRepository
from app.services.base_service import BaseService, log_operation, transaction
from app.services.bonus.bonus_calculator import SubSnapshot, calculate_bonus
from app.services.hierarchy.hierarchy_store import HierarchyStore
from app.services.hierarchy.tree import ReferralTree, TreeNode
from app.services.ledger_service import LedgerService
from app.services.legs.generation import max_generation
from app.services.legs.leg_classifier import legs_from_tree
from app.services.trade_feed.feed_reader import TradeFeedReader
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import ExternalFeedUnavailable, must_log


class BonusStatus:
    """Per-user outcome of a bonus run."""

    CREDITED = "credited"
    ZERO_BONUS = "zero_bonus"
    ALREADY_SETTLED = "already_settled"
    NOT_QUALIFIED = "not_qualified"


@dataclass
class UserBonusOutcome:
    """Bonus outcome of one user."""

    user_id: int
    status: str
    bonus_amount: Decimal = Decimal("0")
    max_generation: int = 0
    history: CapitalHistory | None = None


@dataclass
class BonusRunSummary:
    """Totals of a daily bonus run."""

    run_date: date
    processed: int = 0
    credited: int = 0
    zero_bonus: int = 0
    already_settled: int = 0
    not_qualified: int = 0
    failed: int = 0
    total_bonus: Decimal = Decimal("0")

    def record(self, outcome: UserBonusOutcome) -> None:
        self.processed += 1
        if outcome.status == BonusStatus.CREDITED:
            self.credited += 1
            self.total_bonus += outcome.bonus_amount
        elif outcome.status == BonusStatus.ZERO_BONUS:
            self.zero_bonus += 1
        elif outcome.status == BonusStatus.ALREADY_SETTLED:
            self.already_settled += 1
        elif outcome.status == BonusStatus.NOT_QUALIFIED:
            self.not_qualified += 1


class BonusEngine(BaseService):
    """
    Bonus engine.

    Users are processed in keyset-paginated batches with one transaction per
    user. A CapitalHistory row for (user, date) marks the day as settled, so
    an interrupted run can simply be started again.
    """

    def __init__(
        self, session: AsyncSession, rate: Decimal | None = None
    ) -> None:
        """
        Initialize bonus engine.

        Args:
            session: Database session
            rate: Bonus rate override (defaults to settings.bonus_rate)
        """
        super().__init__(session)
        self.rate = rate if rate is not None else settings.bonus_rate
        self.store = HierarchyStore(session)
        self.ledger = LedgerService(session)
        self.feed = TradeFeedReader(session)
        self.user_repo = UserRepository(session)
        self.history_repo = CapitalHistoryRepository(session)

    @log_operation
    async def run_daily(
        self, run_date: date, now: datetime | None = None
    ) -> BonusRunSummary:
        """
        Run the daily bonus for every user.

        Args:
            run_date: Feed date to settle
            now: Run time (defaults to now)

        Returns:
            BonusRunSummary
        """
        now = now or utc_now()
        summary = BonusRunSummary(run_date=run_date)

        after_id = 0
        while True:
            user_ids = await self.user_repo.get_id_page(
                after_id=after_id, limit=settings.bonus_batch_size
            )
            if not user_ids:
                break
            after_id = user_ids[-1]

            for user_id in user_ids:
                try:
                    outcome = await self.process_user(user_id, run_date, now)
                except Exception as e:
                    summary.failed += 1
                    self.feed.clear_cache()
                    if must_log(e):
                        self.logger.warning(
                            f"Bonus skipped for user {user_id}: {e}",
                            extra={"user_id": user_id, "date": str(run_date)},
                        )
                    else:
                        self.logger.exception(
                            f"Bonus failed for user {user_id}",
                            extra={"user_id": user_id, "date": str(run_date)},
                        )
                    continue
                summary.record(outcome)

            # Cached documents are only reused within a page
            self.feed.clear_cache()

        self.logger.info(
            f"Daily bonus run finished for {run_date}",
            extra={
                "date": str(run_date),
                "processed": summary.processed,
                "credited": summary.credited,
                "failed": summary.failed,
                "total_bonus": str(summary.total_bonus),
            },
        )
        return summary

    @transaction
    async def process_user(
        self, user_id: int, run_date: date, now: datetime | None = None
    ) -> UserBonusOutcome:
        """
        Settle the daily bonus of a single user.

        Credits gain_profit and writes the CapitalHistory row in one
        transaction. Users without a funded leg A are not qualified and get
        no history row.

        Args:
            user_id: Bonus owner
            run_date: Feed date to settle
            now: Run time (defaults to now)

        Returns:
            UserBonusOutcome

        Raises:
            CycleDetected: The user's subtree contains a cycle
        """
        now = now or utc_now()

        if await self.history_repo.get_for_day(user_id, run_date) is not None:
            return UserBonusOutcome(user_id, BonusStatus.ALREADY_SETTLED)

        tree = await self.store.load_subtree(user_id)
        generation = max_generation(legs_from_tree(tree, user_id))
        if generation == 0:
            return UserBonusOutcome(user_id, BonusStatus.NOT_QUALIFIED)

        subs = await self._qualified_subs(tree, user_id, generation, run_date, now)
        breakdown = calculate_bonus(subs, self.rate, now)

        if breakdown.total_bonus > 0:
            await self.ledger.credit(
                user_id=user_id,
                account=LedgerAccount.GAIN_PROFIT,
                amount=breakdown.total_bonus,
                reason=LedgerReason.DAILY_BONUS,
                idempotency_key=f"bonus:{user_id}:{run_date.isoformat()}",
            )

        history = CapitalHistory(
            user_id=user_id,
            calculation_date=run_date,
            bonus_amount=breakdown.total_bonus,
            total_sub_capital=breakdown.total_sub_capital,
            total_subs=breakdown.total_subs,
            active_subs=breakdown.active_subs,
            new_subs_last_24h=breakdown.new_subs_last_24h,
            max_generation=generation,
        )
        self.session.add(history)
        await self.session.flush()

        status = (
            BonusStatus.CREDITED if breakdown.total_bonus > 0
            else BonusStatus.ZERO_BONUS
        )
        self.logger.info(
            f"Daily bonus for user {user_id}: {breakdown.total_bonus}",
            extra={
                "user_id": user_id,
                "date": str(run_date),
                "max_generation": generation,
                "total_subs": breakdown.total_subs,
                "active_subs": breakdown.active_subs,
            },
        )
        return UserBonusOutcome(
            user_id=user_id,
            status=status,
            bonus_amount=breakdown.total_bonus,
            max_generation=generation,
            history=history,
        )

    async def _qualified_subs(
        self,
        tree: ReferralTree,
        user_id: int,
        generation: int,
        run_date: date,
        now: datetime,
    ) -> list[SubSnapshot]:
        descendants = tree.descendants(user_id, max_depth=generation)
        await self.feed.prefetch([node.user_id for node, _ in descendants])

        return [
            SubSnapshot(
                user_id=node.user_id,
                deposit_balance=node.deposit_balance,
                created_at=node.created_at,
                percents=await self._percents_on(node, run_date, now),
                generation=depth,
            )
            for node, depth in descendants
        ]

    async def _percents_on(
        self, node: TreeNode, run_date: date, now: datetime
    ) -> tuple[Decimal, ...]:
        try:
            entries = await self.feed.entries_for(node.user_id, now=now)
        except ExternalFeedUnavailable as e:
            self.logger.debug(
                f"No usable trade feed for sub {node.user_id}: {e.reason}",
                extra={"user_id": node.user_id},
            )
            return ()
        return tuple(entry.percent for entry in entries if entry.date == run_date)
