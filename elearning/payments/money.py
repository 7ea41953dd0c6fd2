"""
Money Utilities for Course Payments

All money handled by the settlement engine is stored as integer cents.
Unit values (e.g. ``49.99``) are only ever *derived* from cents for display
and for the seller balance, never edited on their own.

Conversions go through ``Decimal(str(value))`` so that floats coming from
JSON bodies or the catalog do not accumulate binary drift.

Author: DSP Development Team
Date: 2025-10-02
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[Decimal, int, float, str, None]

CENT = Decimal("0.01")
HUNDRED = Decimal(100)


def _as_decimal(value: Number) -> Decimal:
    if value is None or value == "":
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_cents(unit: Number) -> int:
    """
    Convert a unit amount to integer cents (half-up rounding).

    Examples:
        >>> to_cents("49.99")
        4999
        >>> to_cents(0.1 + 0.2)
        30
    """
    cents = (_as_decimal(unit) * HUNDRED).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return int(cents)


def cents_to_unit(cents: Number) -> Decimal:
    """
    Convert cents to a unit amount with two decimal places.

    Cents are rounded to a whole number *before* dividing, so a stray
    fractional cent can never leak into a unit value.
    """
    whole = _as_decimal(cents).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return (whole / HUNDRED).quantize(CENT)


def percent_of(cents: int, rate: Number) -> int:
    """Return ``round(cents * rate / 100)`` in integer cents (half-up)."""
    value = Decimal(int(cents)) * _as_decimal(rate) / HUNDRED
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))
