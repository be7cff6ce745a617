"""
Daily profit settlement.

Credits each user's capital_profit with the day's feed percentage applied
to their deposit balance.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import settings
from app.models.enums import LedgerAccount, LedgerReason
from app.repositories.trade_report_repository import TradeReportRepository
from app.repositories.user_repository import UserRepository
from app.services.base_service import BaseService, log_operation, transaction
from app.services.ledger_service import LedgerService
from app.services.trade_feed.feed_reader import TradeFeedReader
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import (
    ExternalFeedUnavailable,
    MissingFeedEntry,
    UserNotFound,
)
from app.utils.money import percent_of, round_ledger


class SettlementStatus:
    """Per-user outcome of a profit settlement."""

    CREDITED = "credited"
    ZERO_PROFIT = "zero_profit"
    ALREADY_SETTLED = "already_settled"
    NO_ENTRY = "no_entry"
    FEED_UNAVAILABLE = "feed_unavailable"


@dataclass
class SettlementOutcome:
    """Settlement outcome of one user."""

    user_id: int
    status: str
    percent: Decimal | None = None
    amount: Decimal = Decimal("0")


@dataclass
class SettlementRunSummary:
    """Totals of a daily settlement run."""

    settlement_date: date
    processed: int = 0
    credited: int = 0
    skipped: int = 0
    failed: int = 0
    total_amount: Decimal = Decimal("0")


class DailyProfitSettlement(BaseService):
    """
    Daily profit settlement.

    A ProfitSettlement row per (user, date) is written in the same
    transaction as the credit, so a day is never applied twice.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize settlement service."""
        super().__init__(session)
        self.ledger = LedgerService(session)
        self.feed = TradeFeedReader(session)
        self.user_repo = UserRepository(session)
        self.report_repo = TradeReportRepository(session)

    @transaction
    async def apply_daily(
        self, user_id: int, settlement_date: date, now: datetime | None = None
    ) -> SettlementOutcome:
        """
        Apply the day's profit to one user.

        Args:
            user_id: User ID
            settlement_date: Feed date
            now: Processing time (defaults to now)

        Returns:
            SettlementOutcome

        Raises:
            UserNotFound: User does not exist
        """
        now = now or utc_now()

        if await self.report_repo.is_settled(user_id, settlement_date):
            return SettlementOutcome(user_id, SettlementStatus.ALREADY_SETTLED)

        try:
            percent = await self.feed.require_percent(
                user_id, settlement_date, now=now
            )
        except MissingFeedEntry:
            return SettlementOutcome(user_id, SettlementStatus.NO_ENTRY)
        except ExternalFeedUnavailable as e:
            self.logger.debug(
                f"Profit skipped for user {user_id}: {e.reason}",
                extra={"user_id": user_id, "date": str(settlement_date)},
            )
            return SettlementOutcome(user_id, SettlementStatus.FEED_UNAVAILABLE)

        user = await self.user_repo.get_for_update(user_id)
        if user is None:
            raise UserNotFound(f"User {user_id} not found")

        base_balance = Decimal(user.deposit_balance or 0)
        amount = round_ledger(percent_of(base_balance, percent))

        if amount > 0:
            await self.ledger.credit(
                user_id=user_id,
                account=LedgerAccount.CAPITAL_PROFIT,
                amount=amount,
                reason=LedgerReason.DAILY_PROFIT,
                idempotency_key=f"profit:{user_id}:{settlement_date.isoformat()}",
            )

        await self.report_repo.add_settlement(
            user_id=user_id,
            settlement_date=settlement_date,
            percent=percent,
            base_balance=base_balance,
            amount=amount,
        )

        report = await self.feed.get_report(user_id)
        if report is not None:
            report.last_processed_at = now
            await self.session.flush()

        self.logger.info(
            f"Daily profit for user {user_id}: {amount} ({percent}%)",
            extra={
                "user_id": user_id,
                "date": str(settlement_date),
                "percent": str(percent),
                "base_balance": str(base_balance),
                "amount": str(amount),
            },
        )
        status = (
            SettlementStatus.CREDITED if amount > 0
            else SettlementStatus.ZERO_PROFIT
        )
        return SettlementOutcome(user_id, status, percent=percent, amount=amount)

    @log_operation
    async def run_daily(
        self, settlement_date: date, now: datetime | None = None
    ) -> SettlementRunSummary:
        """
        Settle the day's profit for every user.

        Args:
            settlement_date: Feed date
            now: Processing time (defaults to now)

        Returns:
            SettlementRunSummary
        """
        now = now or utc_now()
        summary = SettlementRunSummary(settlement_date=settlement_date)

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
                    outcome = await self.apply_daily(user_id, settlement_date, now)
                except Exception:
                    summary.failed += 1
                    self.feed.clear_cache()
                    self.logger.exception(
                        f"Profit settlement failed for user {user_id}",
                        extra={"user_id": user_id, "date": str(settlement_date)},
                    )
                    continue

                summary.processed += 1
                if outcome.status == SettlementStatus.CREDITED:
                    summary.credited += 1
                    summary.total_amount += outcome.amount
                else:
                    summary.skipped += 1

            self.feed.clear_cache()

        self.logger.info(
            f"Daily profit run finished for {settlement_date}",
            extra={
                "date": str(settlement_date),
                "processed": summary.processed,
                "credited": summary.credited,
                "failed": summary.failed,
                "total_amount": str(summary.total_amount),
            },
        )
        return summary
