"""Rate resolution.

Interest rate and property growth forecasts are sparse lists of
``RateForecast`` override points. An override applies from its year
onwards until a later override supersedes it.
"""

from __future__ import annotations

from typing import Iterable

from .data_models import RateForecast


def resolve_rate(base_rate: int, year: int, forecasts: Iterable[RateForecast]) -> int:
    """Return the rate in force during ``year``.

    Forecasts may be unsorted. When several forecasts share a year the one
    that appears last in ``forecasts`` wins: ``sorted`` is stable, so the
    backward scan meets it first.
    """
    ordered = sorted(forecasts, key=lambda f: f.year)
    for forecast in reversed(ordered):
        if forecast.year <= year:
            return forecast.rate
    return base_rate
