from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal, getcontext, localcontext

TWO_PLACES = Decimal("0.01")
# uint256 amounts run to 78 digits; ratios of them plus two places must fit exactly
WIDE_PRECISION = 120


def wide_context():
    context = getcontext().copy()
    context.prec = WIDE_PRECISION
    return localcontext(context)


def scale_amount(raw_amount: int, denominator: Decimal) -> Decimal:
    """Convert a raw on-chain integer amount into token units."""

    with wide_context():
        return Decimal(raw_amount) / denominator


def ratio(numerator: Decimal, denominator: Decimal) -> Decimal:
    with wide_context():
        return numerator / denominator


def round_2(value: Decimal) -> Decimal:
    """Round to exactly two places, halves away from zero (2.005 -> 2.01)."""

    with wide_context():
        return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def round_half_up(value: float) -> int:
    """Nearest integer for a non-negative float, halves rounded up."""

    return int(math.floor(value + 0.5))
