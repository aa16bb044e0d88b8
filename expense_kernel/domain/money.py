"""
Money precision rules.

Balances and transaction values are Decimal with exactly two decimal
places.  Pure module; the column type in ``db/types.py`` and the input
validators both read their precision from here.
"""

from decimal import ROUND_HALF_UP, Decimal

MONEY_DECIMAL_PLACES = 2
MONEY_QUANTUM = Decimal(1).scaleb(-MONEY_DECIMAL_PLACES)
ZERO = Decimal("0.00")


def round_money(value: Decimal) -> Decimal:
    """Quantize a monetary value to two decimal places (half-up)."""
    return value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def has_money_precision(value: Decimal) -> bool:
    """True when ``value`` carries no more than two significant decimal places."""
    return value == value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def format_money(value: Decimal) -> str:
    return str(value.quantize(MONEY_QUANTUM))
