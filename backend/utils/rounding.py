"""Presentation rounding for analytics outputs.

Engines compute in float and round once at the edge. Rounding is half away
from zero, so ``-0.125`` becomes ``-0.13`` rather than banker's ``-0.12``.
"""

from decimal import ROUND_HALF_UP, Decimal

CENTS = Decimal("0.01")
THOUSANDTHS = Decimal("0.001")
TOKEN_UNITS = Decimal("0.0001")


def _quantize(value, exponent: Decimal) -> Decimal:
    if isinstance(value, Decimal):
        d = value
    else:
        # str() gives the shortest repr, avoiding binary float artifacts
        d = Decimal(str(float(value)))
    result = d.quantize(exponent, rounding=ROUND_HALF_UP)
    # Normalize -0.00 so signed zero never reaches a response
    return result if result != 0 else abs(result)


def round_money(value) -> Decimal:
    """Round a currency amount or percentage to 2 decimal places."""
    return _quantize(value, CENTS)


def round_ratio(value) -> Decimal:
    """Round a ratio (R², growth rate) to 3 decimal places."""
    return _quantize(value, THOUSANDTHS)


def round_amount(value) -> Decimal:
    """Round a token amount to 4 decimal places."""
    return _quantize(value, TOKEN_UNITS)


def to_float(value) -> float:
    """Convert a Numeric column value (Decimal or None) to float."""
    if value is None:
        return 0.0
    return float(value)
