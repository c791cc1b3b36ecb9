"""Utility functions for the property calculator.

This module provides helpers for parsing user input into Python data types
and for handling dates: adding months, stepping through repayment periods
and normalizing year-month strings to ``datetime.date`` instances.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
import calendar

from .data_models import Frequency

DAYS_PER_STEP = {
    Frequency.WEEKLY: 7,
    Frequency.FORTNIGHTLY: 14,
}

MONTHS_PER_STEP = {
    Frequency.MONTHLY: 1,
    Frequency.ANNUALLY: 12,
}


def parse_year_month(ym: str) -> date:
    """Parse ``"YYYY-MM"`` into the first day of that month.

    Anything after the month is ignored, so ``"2025-03-17"`` also gives
    2025-03-01. Raises ``ValueError`` for text that has no year and month.
    """
    try:
        year, month = ym.strip().split("-")[:2]
        return date(int(year), int(month), 1)
    except (ValueError, AttributeError) as exc:
        raise ValueError(f"Invalid year-month string: {ym}") from exc


def parse_date(value: str) -> date:
    """Parse ``YYYY-MM-DD`` or ``YYYY-MM`` (first of the month)."""
    text = value.strip()
    if len(text.split("-")) == 2:
        return parse_year_month(text)
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise ValueError(f"Invalid date string: {value}") from exc


def add_months(dt: date, months: int) -> date:
    """Shift ``dt`` by ``months``, clamping the day to the month's length."""
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def step_date(start: date, frequency: Frequency, steps: int) -> date:
    """Return the date ``steps`` repayment periods after ``start``.

    Dates are always derived from ``start`` rather than from the previous
    period so month-end clamping never drifts.
    """
    frequency = Frequency(frequency)
    if frequency in DAYS_PER_STEP:
        return start + timedelta(days=DAYS_PER_STEP[frequency] * steps)
    return add_months(start, MONTHS_PER_STEP[frequency] * steps)


def months_between(earlier: date, later: date) -> int:
    return (later.year - earlier.year) * 12 + later.month - earlier.month


def decimal_from_str(value: str) -> Decimal:
    """``Decimal`` from text such as ``"500,000.50"``; thousands separators are dropped."""
    try:
        result = Decimal(str(value).replace(",", "").strip())
    except InvalidOperation as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result
