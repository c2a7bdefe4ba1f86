"""
Money helpers.

Amounts are handed out as two-place Decimals but every floor is taken on
exact rationals and integer cents, never under the ambient Decimal context,
so nothing is rounded before the floor and token-scale stakes still fit.
"""
from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation, localcontext
from fractions import Fraction
from typing import Any, Union

ZERO = Decimal("0")

Number = Union[Decimal, int, Fraction]


def _d(x: Any) -> Decimal:
    if x is None:
        raise ValueError("Missing required numeric input.")
    if isinstance(x, Decimal):
        return x
    try:
        return Decimal(str(x))
    except (InvalidOperation, TypeError):
        raise ValueError(f"Invalid numeric input: {x}")


def cents(x: Number) -> int:
    """floor(x * 100), exact for any finite Decimal."""
    return math.floor(Fraction(x) * 100)


def from_cents(n: int) -> Decimal:
    # Precision widened to the operand so scaleb never rounds
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(str(abs(n))))
        return Decimal(n).scaleb(-2)


def floor_cents(x: Number) -> Decimal:
    """
    floor(x * 100) / 100, exact.
    Never rounds up, so a floored share can never exceed its source amount.
    """
    return from_cents(cents(x))


def rate_percent(part: Number, whole: Number) -> Decimal:
    if whole == 0:
        return from_cents(0)
    return floor_cents(Fraction(part) / Fraction(whole) * 100)


def commission_cents(total_bet_amount: int, rate: Decimal) -> int:
    num, den = rate.as_integer_ratio()
    return total_bet_amount * 100 * num // den


def floor_share(pool: Decimal, part: int, whole: int) -> Decimal:
    """
    floor(pool * part / whole) to the cent, computed on integer cents
    so no intermediate division is rounded.
    """
    if whole <= 0:
        raise ValueError("Share denominator must be positive.")
    return from_cents(cents(pool) * part // whole)
