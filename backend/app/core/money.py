"""Decimal helpers shared by the split calculator and the balance aggregator."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO    = Decimal("0.00")
CENT    = Decimal("0.01")
HUNDRED = Decimal("100")


def round_money(value: Decimal) -> Decimal:
    """Rounds to two decimal places, half-up (2.345 → 2.35)."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def sum_money(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)


def has_at_most_two_places(value: Decimal) -> bool:
    # 10.500 is fine; 10.505 is not.
    return value == value.quantize(CENT)


def to_decimal(value) -> Decimal | None:
    """
    Converts an int, str, float or Decimal to Decimal.

    Floats go through str() so 0.1 becomes Decimal("0.1"), not the binary
    expansion. Returns None for anything that is not a finite number.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return None
    if not result.is_finite():
        return None
    return result
