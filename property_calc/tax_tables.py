"""Pluggable tax and duty tables.

The tables here are plain data: each jurisdiction is a list of brackets and
the functions below only walk them. Thresholds are written in whole
dollars, the way they are published; the functions take and return cents.

The figures are approximations of the 2024-25 Australian rules and are
meant to be replaced when rules change, not to be complete.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from .data_models import IncomeTaxResult, PurchaseCosts
from .units import cents_to_dollars, dollars_to_cents, percent_to_bps

logger = logging.getLogger(__name__)

INFINITY = None


@dataclass(frozen=True)
class DutyBracket:
    """``duty = base + (price - threshold) * rate`` for prices up to ``limit``."""

    limit: Optional[Decimal]
    base: Decimal
    threshold: Decimal
    rate: Decimal


def _brackets(rows: List[Tuple[Optional[str], str, str, str]]) -> List[DutyBracket]:
    return [
        DutyBracket(
            limit=Decimal(limit) if limit is not None else INFINITY,
            base=Decimal(base),
            threshold=Decimal(threshold),
            rate=Decimal(rate),
        )
        for limit, base, threshold, rate in rows
    ]


STAMP_DUTY_TABLES: Dict[str, List[DutyBracket]] = {
    "QLD": _brackets([
        ("5000", "0", "0", "0"),
        ("75000", "0", "0", "0.015"),
        ("540000", "1125", "75000", "0.035"),
        ("1000000", "17400", "540000", "0.045"),
        (None, "38100", "1000000", "0.0575"),
    ]),
    "NSW": _brackets([
        ("14000", "0", "0", "0.0125"),
        ("32000", "175", "14000", "0.015"),
        ("85000", "445", "32000", "0.0175"),
        ("319000", "1372.5", "85000", "0.035"),
        ("1064000", "9562.5", "319000", "0.045"),
        (None, "43087.5", "1064000", "0.055"),
    ]),
    "VIC": _brackets([
        ("25000", "0", "0", "0.014"),
        ("130000", "350", "25000", "0.024"),
        ("960000", "2870", "130000", "0.06"),
        ("2000000", "52670", "960000", "0.055"),
        (None, "109870", "2000000", "0.065"),
    ]),
    "SA": _brackets([
        ("12000", "0", "0", "0.01"),
        ("30000", "120", "12000", "0.02"),
        ("50000", "480", "30000", "0.03"),
        ("100000", "1080", "50000", "0.035"),
        ("200000", "2830", "100000", "0.04"),
        ("250000", "6830", "200000", "0.0425"),
        ("300000", "8955", "250000", "0.045"),
        ("500000", "11205", "300000", "0.0475"),
        (None, "20705", "500000", "0.055"),
    ]),
    "WA": _brackets([
        ("80000", "0", "0", "0.019"),
        ("100000", "1520", "80000", "0.029"),
        ("250000", "2100", "100000", "0.038"),
        ("500000", "7800", "250000", "0.049"),
        (None, "20050", "500000", "0.051"),
    ]),
    "TAS": _brackets([
        ("3000", "0", "0", "0.0175"),
        ("25000", "52.5", "3000", "0.0225"),
        ("75000", "547.5", "25000", "0.035"),
        ("200000", "2297.5", "75000", "0.04"),
        ("375000", "7297.5", "200000", "0.0425"),
        ("725000", "14735", "375000", "0.045"),
        (None, "30485", "725000", "0.045"),
    ]),
    "ACT": _brackets([
        ("200000", "0", "0", "0.0118"),
        ("300000", "2360", "200000", "0.0304"),
        ("500000", "5400", "300000", "0.046"),
        ("750000", "14600", "500000", "0.0625"),
        ("1000000", "30225", "750000", "0.067"),
        ("1455000", "46975", "1000000", "0.0685"),
        (None, "78142.5", "1455000", "0.064"),
    ]),
    "NT": _brackets([
        ("525000", "0", "0", "0"),
        ("3000000", "0", "525000", "0.0495"),
        ("5000000", "122513", "3000000", "0.0575"),
        (None, "237513", "5000000", "0.0595"),
    ]),
}

STATE_ALIASES = {
    "QUEENSLAND": "QLD",
    "NEW SOUTH WALES": "NSW",
    "VICTORIA": "VIC",
    "SOUTH AUSTRALIA": "SA",
    "WESTERN AUSTRALIA": "WA",
    "TASMANIA": "TAS",
    "AUSTRALIAN CAPITAL TERRITORY": "ACT",
    "NORTHERN TERRITORY": "NT",
}

# Typical professional fees on a purchase (dollars).
LEGAL_FEE = 2000
INSPECTION_FEE = 500
CONVEYANCING_FEE = 1500


@dataclass(frozen=True)
class IncomeBracket:
    limit: Optional[Decimal]
    rate: Decimal
    base: Decimal


# 2024-25 resident rates (Stage 3).
INCOME_TAX_BRACKETS: List[IncomeBracket] = [
    IncomeBracket(Decimal("18200"), Decimal("0"), Decimal("0")),
    IncomeBracket(Decimal("45000"), Decimal("0.16"), Decimal("0")),
    IncomeBracket(Decimal("135000"), Decimal("0.30"), Decimal("4288")),
    IncomeBracket(Decimal("190000"), Decimal("0.37"), Decimal("31288")),
    IncomeBracket(INFINITY, Decimal("0.45"), Decimal("51638")),
]

MEDICARE_LEVY_RATE = Decimal("0.02")
MEDICARE_LOW_INCOME_THRESHOLD = Decimal("31000")

# Singles thresholds; families have higher ones.
MEDICARE_SURCHARGE_TIERS: List[Tuple[Decimal, Decimal]] = [
    (Decimal("151000"), Decimal("0.015")),
    (Decimal("113000"), Decimal("0.0125")),
    (Decimal("97000"), Decimal("0.01")),
]

HELP_REPAYMENT_THRESHOLDS: List[Tuple[Optional[Decimal], Decimal]] = [
    (Decimal("54435"), Decimal("0")),
    (Decimal("62850"), Decimal("0.01")),
    (Decimal("66620"), Decimal("0.02")),
    (Decimal("70618"), Decimal("0.025")),
    (Decimal("74855"), Decimal("0.03")),
    (Decimal("79346"), Decimal("0.035")),
    (Decimal("84107"), Decimal("0.04")),
    (Decimal("89154"), Decimal("0.045")),
    (Decimal("94503"), Decimal("0.05")),
    (Decimal("100174"), Decimal("0.055")),
    (Decimal("106185"), Decimal("0.06")),
    (Decimal("112556"), Decimal("0.065")),
    (Decimal("119309"), Decimal("0.07")),
    (Decimal("126467"), Decimal("0.075")),
    (Decimal("134056"), Decimal("0.08")),
    (Decimal("142100"), Decimal("0.085")),
    (Decimal("150626"), Decimal("0.09")),
    (Decimal("159663"), Decimal("0.095")),
    (INFINITY, Decimal("0.10")),
]

SUPER_GUARANTEE_RATE = Decimal("0.115")


def normalize_state(state: str) -> str:
    code = state.upper().strip()
    return STATE_ALIASES.get(code, code)


def calculate_stamp_duty(price: int, state: str, first_home: bool = False) -> int:
    """Return transfer duty in cents for a purchase ``price`` in cents.

    ``first_home`` is accepted for callers that collect it, but no
    concessions are modelled. Unknown states log a warning and pay no duty.
    """
    table = STAMP_DUTY_TABLES.get(normalize_state(state))
    if table is None:
        logger.warning("Unknown state %r, returning 0 for stamp duty", state)
        return 0
    dollars = cents_to_dollars(price)
    for bracket in table:
        if bracket.limit is INFINITY or dollars <= bracket.limit:
            duty = bracket.base + (dollars - bracket.threshold) * bracket.rate
            return dollars_to_cents(max(duty, Decimal(0)))
    return 0


def purchase_costs(price: int, state: str, first_home: bool = False) -> PurchaseCosts:
    """Stamp duty plus typical professional fees for a purchase."""
    stamp_duty = calculate_stamp_duty(price, state, first_home)
    legal = dollars_to_cents(LEGAL_FEE)
    inspection = dollars_to_cents(INSPECTION_FEE)
    conveyancing = dollars_to_cents(CONVEYANCING_FEE)
    return PurchaseCosts(
        stamp_duty=stamp_duty,
        legal_fee=legal,
        inspection_fee=inspection,
        conveyancing=conveyancing,
        total=stamp_duty + legal + inspection + conveyancing,
    )


def _income_tax_dollars(income: Decimal) -> Decimal:
    lower = Decimal(0)
    for bracket in INCOME_TAX_BRACKETS:
        if bracket.limit is INFINITY or income <= bracket.limit:
            return bracket.base + (income - lower) * bracket.rate
        lower = bracket.limit
    return Decimal(0)


def marginal_rate(taxable_income: int) -> int:
    """Marginal income tax rate in basis points for ``taxable_income`` cents."""
    income = cents_to_dollars(taxable_income)
    for bracket in INCOME_TAX_BRACKETS:
        if bracket.limit is INFINITY or income <= bracket.limit:
            return percent_to_bps(bracket.rate * 100)
    return 0


def calculate_income_tax(
    gross_income: int,
    has_help_debt: bool = False,
    has_private_health: bool = False,
    super_inclusive: bool = False,
) -> IncomeTaxResult:
    """Estimate the annual tax position of a salary in cents.

    When ``super_inclusive`` is set the gross figure is treated as a package
    that already contains the superannuation guarantee.
    """
    package = cents_to_dollars(gross_income)
    if super_inclusive:
        salary = package / (1 + SUPER_GUARANTEE_RATE)
        superannuation = package - salary
    else:
        salary = package
        superannuation = salary * SUPER_GUARANTEE_RATE

    income_tax = _income_tax_dollars(max(salary, Decimal(0)))

    medicare = Decimal(0)
    if salary > MEDICARE_LOW_INCOME_THRESHOLD:
        medicare = salary * MEDICARE_LEVY_RATE

    surcharge = Decimal(0)
    if not has_private_health:
        for threshold, rate in MEDICARE_SURCHARGE_TIERS:
            if salary > threshold:
                surcharge = salary * rate
                break

    help_repayment = Decimal(0)
    if has_help_debt:
        for limit, rate in HELP_REPAYMENT_THRESHOLDS:
            if limit is INFINITY or salary <= limit:
                help_repayment = salary * rate
                break

    salary_cents = dollars_to_cents(salary)
    tax_cents = dollars_to_cents(income_tax)
    medicare_cents = dollars_to_cents(medicare)
    surcharge_cents = dollars_to_cents(surcharge)
    help_cents = dollars_to_cents(help_repayment)
    return IncomeTaxResult(
        gross_income=salary_cents,
        income_tax=tax_cents,
        medicare_levy=medicare_cents,
        medicare_levy_surcharge=surcharge_cents,
        help_repayment=help_cents,
        superannuation=dollars_to_cents(superannuation),
        net_income=salary_cents - tax_cents - medicare_cents - surcharge_cents - help_cents,
    )
