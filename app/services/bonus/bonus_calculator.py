"""
Bonus calculator.

Pure daily-bonus arithmetic over a user's qualified subs.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal

from app.config.business_constants import NEW_SUB_WINDOW_HOURS
from app.utils.money import percent_of, round_money


@dataclass(frozen=True)
class SubSnapshot:
    """
    Qualified sub as seen by the bonus run.

    Attributes:
        user_id: Sub user ID
        deposit_balance: Current deposit balance
        created_at: Registration time
        percents: Feed percentages reported for the run date
        generation: Depth below the bonus owner (children are 1)
    """

    user_id: int
    deposit_balance: Decimal
    created_at: datetime | None
    percents: tuple[Decimal, ...] = ()
    generation: int = 1

    @property
    def has_feed_entry(self) -> bool:
        return bool(self.percents)


@dataclass
class BonusBreakdown:
    """Aggregated bonus of one user for one date."""

    total_bonus: Decimal = Decimal("0")
    total_sub_capital: Decimal = Decimal("0")
    total_subs: int = 0
    active_subs: int = 0
    new_subs_last_24h: int = 0
    per_sub: dict[int, Decimal] = field(default_factory=dict)


def daily_profit(deposit_balance: Decimal, percents) -> Decimal:
    """
    Profit of a sub for the day, rounded to cents.

    Example:
        >>> daily_profit(Decimal("1000"), [Decimal("2.5")])
        Decimal('25.00')
    """
    total = sum(
        (percent_of(deposit_balance, percent) for percent in percents),
        Decimal("0"),
    )
    return round_money(total)


def sub_bonus(profit: Decimal, rate: Decimal) -> Decimal:
    """
    Bonus earned from one sub's profit; losses pay nothing.

    Example:
        >>> sub_bonus(Decimal("25.00"), Decimal("0.05"))
        Decimal('1.25')
    """
    if profit <= 0:
        return Decimal("0.00")
    return round_money(profit * rate)


def today_capital(sub: SubSnapshot) -> Decimal:
    """Sub balance counted as active capital when the feed reports the day."""
    return sub.deposit_balance if sub.has_feed_entry else Decimal("0")


def calculate_bonus(
    subs: list[SubSnapshot], rate: Decimal, now: datetime
) -> BonusBreakdown:
    """
    Aggregate bonus and history counters over qualified subs.

    Args:
        subs: Qualified subs of the bonus owner
        rate: Bonus rate (0.05 for 5%)
        now: Run time, anchors the new-subs window

    Returns:
        BonusBreakdown
    """
    breakdown = BonusBreakdown(total_subs=len(subs))
    window_start = now - timedelta(hours=NEW_SUB_WINDOW_HOURS)

    for sub in subs:
        bonus = sub_bonus(daily_profit(sub.deposit_balance, sub.percents), rate)
        if bonus > 0:
            breakdown.per_sub[sub.user_id] = bonus
            breakdown.total_bonus += bonus

        capital = today_capital(sub)
        if capital > 0:
            breakdown.total_sub_capital += capital
            breakdown.active_subs += 1

        if sub.created_at is not None and window_start <= sub.created_at <= now:
            breakdown.new_subs_last_24h += 1

    breakdown.total_bonus = round_money(breakdown.total_bonus)
    return breakdown
