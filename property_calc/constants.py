"""Static configuration tables for the calculation engine.

Regional day-count and compounding conventions, repayment frequency
multipliers, mortgage insurance bands and the engine's defaults. None of
these tables are mutated at runtime.
"""

from __future__ import annotations

from typing import Dict, Tuple

from .data_models import (
    Frequency,
    Region,
    RegionalParams,
)
from .units import apply_rate, to_decimal

REGIONAL_PARAMS: Dict[Region, RegionalParams] = {
    Region.AU: RegionalParams(days_per_year=365, compounding="daily", lmi_threshold=80, stamp_duty_rate=400),
    # US lenders quote on a 360 day year and compound monthly
    Region.US: RegionalParams(days_per_year=360, compounding="monthly", lmi_threshold=80, stamp_duty_rate=0),
    Region.UK: RegionalParams(days_per_year=365, compounding="daily", lmi_threshold=75, stamp_duty_rate=200),
}

PAYMENTS_PER_YEAR: Dict[Frequency, int] = {
    Frequency.WEEKLY: 52,
    Frequency.FORTNIGHTLY: 26,
    Frequency.MONTHLY: 12,
    Frequency.ANNUALLY: 1,
}

# Premium bands above the insurance threshold: upper LVR bound and the
# premium charged on the loan amount (bps).
LMI_BANDS: Tuple[Tuple[int, int], ...] = (
    (85, 150),
    (90, 250),
    (95, 400),
)

MAX_LVR = 100
MAX_TERM_YEARS = 100
MIN_RATE_BPS = -10000  # -100 %


def payments_per_year(frequency: Frequency) -> int:
    return PAYMENTS_PER_YEAR[Frequency(frequency)]


def regional_params(region: Region) -> RegionalParams:
    return REGIONAL_PARAMS[Region(region)]


def calculate_lmi(loan_amount: int, lvr: float, threshold: int = 80) -> int:
    """Return the mortgage insurance premium for a loan at ``lvr`` percent.

    Nothing is charged at or below ``threshold``. Above it the premium is a
    percentage of the loan amount picked from ``LMI_BANDS``; anything above
    the last band is charged the last band's rate.
    """
    lvr_value = to_decimal(lvr)
    if lvr_value <= threshold:
        return 0
    rate = LMI_BANDS[-1][1]
    for upper, band_rate in LMI_BANDS:
        if lvr_value <= upper:
            rate = band_rate
            break
    return apply_rate(loan_amount, rate)


def regional_stamp_duty(property_value: int, region: Region = Region.AU) -> int:
    """Approximate transfer duty using the region's flat rate."""
    return apply_rate(property_value, regional_params(region).stamp_duty_rate)
