"""Unit conversion and rounding rules for the property calculator.

Every monetary value inside the engine is an integer number of cents and
every rate is an integer number of basis points (``600`` means 6.00 %).
This module is the only place where values cross between those internal
units and the outside world (dollars, percentages, decimal fractions), and
the only place where money is rounded.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP, getcontext
from typing import Union

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

Number = Union[int, float, str, Decimal]

_CENT = Decimal("1")
_HUNDREDTH = Decimal("0.01")
BPS_PER_PERCENT = 100
BPS_PER_UNIT = 10000


def to_decimal(value: Number) -> Decimal:
    """Return ``value`` as a ``Decimal``.

    Floats are converted through ``str`` so that ``6.1`` becomes
    ``Decimal("6.1")`` rather than its binary approximation.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_cents(value: Number) -> int:
    """Round an amount expressed in cents to a whole cent (half-up)."""
    return int(to_decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP))


def round_percent(value: Number) -> float:
    """Round a percentage to two decimals for reporting."""
    return float(to_decimal(value).quantize(_HUNDREDTH, rounding=ROUND_HALF_UP))


def dollars_to_cents(dollars: Number) -> int:
    return round_cents(to_decimal(dollars) * 100)


def cents_to_dollars(cents: int) -> Decimal:
    return Decimal(cents) / 100


def percent_to_bps(percent: Number) -> int:
    """Convert a percentage (``6.5``) to basis points (``650``).

    Sub-basis-point precision is rounded half-up to the nearest point.
    """
    return round_cents(to_decimal(percent) * BPS_PER_PERCENT)


def bps_to_percent(bps: int) -> Decimal:
    return Decimal(bps) / BPS_PER_PERCENT


def bps_to_rate(bps: int) -> Decimal:
    """Convert basis points to a decimal fraction (``650`` -> ``0.065``)."""
    return Decimal(bps) / BPS_PER_UNIT


def apply_rate(amount: int, bps: int) -> int:
    """Return ``amount`` multiplied by a basis-point rate, rounded to the cent."""
    return round_cents(Decimal(amount) * bps_to_rate(bps))


def grow(amount: int, bps: int) -> int:
    """Compound ``amount`` by one period of ``bps`` growth."""
    return round_cents(Decimal(amount) * (1 + bps_to_rate(bps)))


def ratio_percent(part: int, whole: int) -> float:
    """Return ``part / whole`` as a two-decimal percentage (0 when ``whole`` is 0)."""
    if whole == 0:
        return 0.0
    return round_percent(Decimal(part) * 100 / Decimal(whole))
