"""Money helpers for the store.

Storage unit: dollars as Decimal with two places (Numeric(10, 2) columns).
Payment processor unit: cents (int, 100 cents = $1).
API unit: float dollars, rounded to cents.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

CENTS_PER_DOLLAR: int = 100
TWO_PLACES = Decimal("0.01")

Number = Union[Decimal, float, int, str]


def to_decimal(value: Number | None) -> Decimal:
    """Coerce a number to a two-place Decimal (round half-up). None -> 0.00."""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def dollars_to_cents(amount: Number) -> int:
    """Convert dollars to cents. $1 = 100 cents."""
    return int((to_decimal(amount) * CENTS_PER_DOLLAR).to_integral_value(ROUND_HALF_UP))


def cents_to_dollars(cents: int) -> Decimal:
    """Convert cents to dollars."""
    return to_decimal(Decimal(cents) / CENTS_PER_DOLLAR)


def as_float(amount: Number | None) -> float:
    """Dollars for JSON payloads."""
    return float(to_decimal(amount))


def format_usd(amount: Number | None) -> str:
    """Format dollars for display, e.g. $1,234.50."""
    return f"${to_decimal(amount):,.2f}"
