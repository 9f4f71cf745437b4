"""Money helpers.

Amounts are stored as floats in the database but every calculation goes
through Decimal with half-up rounding to two places.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

_CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Coerce ``value`` to a 2-place Decimal; invalid input becomes 0.00."""
    if value is None or value == "":
        return Decimal("0.00")
    try:
        return Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError):
        return Decimal("0.00")


def quantize(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def to_minor_units(value: Any) -> int:
    """Convert an amount to the gateway's minor unit (paise / cents)."""
    return int((to_decimal(value) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def as_float(value: Decimal) -> float:
    return float(quantize(value))


__all__ = [
    "to_decimal",
    "quantize",
    "to_minor_units",
    "as_float",
]
