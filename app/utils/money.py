"""
Money utilities.

Decimal conversion and rounding for balances and percentages.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from app.config.business_constants import LEDGER_PLACES, MONEY_PLACES


def to_decimal(value: object) -> Decimal:
    """
    Convert feed or database values to Decimal.

    Floats go through str() so 2.5 becomes Decimal("2.5"), not its binary
    expansion.

    Args:
        value: int, float, str or Decimal

    Returns:
        Decimal value

    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a numeric value: {value!r}")
    try:
        if isinstance(value, Decimal):
            result = value
        elif isinstance(value, float):
            result = Decimal(str(value))
        else:
            result = Decimal(str(value).strip())
    except (InvalidOperation, AttributeError) as e:
        raise ValueError(f"Not a numeric value: {value!r}") from e

    # Decimal() accepts NaN and Infinity
    if not result.is_finite():
        raise ValueError(f"Not a finite value: {value!r}")
    return result


def round_money(value: Decimal) -> Decimal:
    """Round to cents, half away from zero."""
    return value.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def round_ledger(value: Decimal) -> Decimal:
    """Round to the ledger column precision (8 places)."""
    return value.quantize(LEDGER_PLACES, rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, percent: Decimal) -> Decimal:
    """
    Apply a percentage to an amount.

    Args:
        amount: Base amount
        percent: Percentage, e.g. Decimal("2.5") for 2.5%

    Returns:
        amount * percent / 100 (unrounded)
    """
    return amount * percent / Decimal("100")
