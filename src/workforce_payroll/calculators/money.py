"""Money rounding helpers.

Every intermediate amount is rounded to cents with ROUND_HALF_UP before it is
combined with another amount.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value: Decimal | int | float | str | None) -> Decimal:
    """Coerce a numeric value to Decimal without binary float noise."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_to_cents(amount: Decimal | int | float | str) -> Decimal:
    """Round amount to 2 decimal places (cents)."""
    return to_decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)


def round_half_up(value: Decimal | int | float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def sum_money(amounts: Iterable[Decimal]) -> Decimal:
    return round_to_cents(sum(amounts, Decimal("0")))
