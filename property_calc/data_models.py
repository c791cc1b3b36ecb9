"""Data models for the property calculator.

This module defines dataclasses representing the entities used by the
engine: loan inputs, forecasts, extra repayments, property configurations
and the rows the engine produces (amortization entries, projections,
yearly and portfolio summaries). Inputs are frozen so they can be shared
between threads and used as cache keys.

Units: money is always integer cents, rates are always integer basis
points (``600`` == 6.00 %). Ratios reported back to callers (LVR, growth
percentages) are floats rounded to two decimals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional, Tuple

DEFAULT_GROWTH_RATE_BPS = 400  # 4 % a year


def _first_of_month() -> date:
    return date.today().replace(day=1)


def _current_year() -> int:
    return date.today().year


class LoanStructure(str, Enum):
    PRINCIPAL_AND_INTEREST = "PrincipalAndInterest"
    INTEREST_ONLY = "InterestOnly"


class Frequency(str, Enum):
    WEEKLY = "Weekly"
    FORTNIGHTLY = "Fortnightly"
    MONTHLY = "Monthly"
    ANNUALLY = "Annually"  # extra payments only


class Region(str, Enum):
    AU = "AU"
    US = "US"
    UK = "UK"


LOAN_FREQUENCIES = (Frequency.WEEKLY, Frequency.FORTNIGHTLY, Frequency.MONTHLY)


@dataclass(frozen=True)
class RegionalParams:
    """Per-region calculation constants.

    Attributes
    ----------
    days_per_year: int
        Day-count basis (365, or 360 for the US convention).
    compounding: str
        ``"daily"`` or ``"monthly"``.
    lmi_threshold: int
        LVR percentage above which mortgage insurance applies.
    stamp_duty_rate: int
        Approximate flat transfer duty in basis points.
    """

    days_per_year: int
    compounding: str
    lmi_threshold: int
    stamp_duty_rate: int


@dataclass(frozen=True)
class MortgageInput:
    """Static parameters of one loan.

    ``start_date`` is the date of the first repayment. ``io_years`` gives an
    initial interest-only period for a principal-and-interest loan; after
    it ends the loan is re-amortized over the remaining term.
    """

    principal: int  # cents
    annual_rate: int  # basis points
    term_years: int
    structure: LoanStructure = LoanStructure.PRINCIPAL_AND_INTEREST
    frequency: Frequency = Frequency.MONTHLY
    region: Region = Region.AU
    start_date: date = field(default_factory=_first_of_month)
    io_years: int = 0


@dataclass(frozen=True)
class RateForecast:
    """An override point: ``rate`` applies from ``year`` until superseded."""

    year: int
    rate: int  # basis points


@dataclass(frozen=True)
class ExtraPayment:
    """A recurring additional principal contribution.

    Occurrences start on ``start_date`` and repeat at ``frequency`` until
    ``end_date`` (inclusive), or forever when ``end_date`` is ``None``.
    """

    amount: int
    frequency: Frequency
    start_date: date
    end_date: Optional[date] = None


@dataclass(frozen=True)
class LumpSum:
    amount: int
    date: date


@dataclass(frozen=True)
class PropertyConfig:
    """One property together with its (optional) loan and assumptions.

    Annual amounts (``rental_income``, ``expenses``, ``depreciation``) are
    in cents per year; their growth rates are in basis points per year.
    ``valuation_year`` is the year in which ``property_value`` holds; when
    the property has a loan the loan's first repayment year is used.
    """

    name: str
    property_value: int
    loan: Optional[MortgageInput] = None
    growth_rate: int = DEFAULT_GROWTH_RATE_BPS
    rental_income: int = 0
    rent_growth: int = 0
    expenses: int = 0
    expense_growth: int = 0
    depreciation: int = 0
    offset_balance: int = 0
    extra_payments: Tuple[ExtraPayment, ...] = ()
    lump_sums: Tuple[LumpSum, ...] = ()
    rate_forecasts: Tuple[RateForecast, ...] = ()
    growth_forecasts: Tuple[RateForecast, ...] = ()
    valuation_year: int = field(default_factory=_current_year)

    @property
    def base_year(self) -> int:
        if self.loan is not None:
            return self.loan.start_date.year
        return self.valuation_year


@dataclass
class PeriodResult:
    interest: int
    principal: int
    new_balance: int


@dataclass
class AmortizationEntry:
    """One payment period of an amortization schedule.

    ``principal`` includes ``extra`` (the part contributed by extra
    repayments and lump sums), so ``payment == principal + interest``.
    """

    period: int
    date: date
    rate: int
    payment: int
    principal: int
    interest: int
    extra: int
    balance: int
    cumulative_principal: int
    cumulative_interest: int


@dataclass
class AmortizationSchedule:
    entries: List[AmortizationEntry]
    scheduled_payment: int
    total_paid: int
    total_interest: int
    total_principal: int

    @property
    def periods(self) -> int:
        return len(self.entries)

    @property
    def final_balance(self) -> int:
        return self.entries[-1].balance if self.entries else 0


@dataclass
class RepaymentProjection:
    """A period of the loan life combined with the property's position."""

    year: int
    month: int
    date: date
    balance: int
    principal: int
    interest: int
    payment: int
    property_value: int
    equity: int
    lvr: float
    rental: int = 0
    expenses: int = 0
    net_cashflow: int = 0


@dataclass
class YearlySummary:
    year: int
    total_principal: int
    total_interest: int
    total_payment: int
    rental: int
    expenses: int
    net_cashflow: int
    end_balance: int
    end_property_value: int
    end_equity: int
    lvr: float


@dataclass
class GrowthForecast:
    years: List[int]
    values: List[int]
    growth_rate: int
    total_growth: int
    total_growth_percent: float


@dataclass
class LVRCalculation:
    loan_amount: int
    property_value: int
    lvr: float
    equity: int
    lmi: int
    requires_lmi: bool


@dataclass
class CashflowProjection:
    period: int
    date: date
    rental: int
    expenses: int
    loan_repayment: int
    net_cashflow: int
    cumulative_cashflow: int
    depreciation: int = 0


@dataclass
class TaxCalculation:
    rental_income: int
    deductible_expenses: int
    loan_interest: int
    depreciation: int
    taxable_income: int
    tax_benefit: int
    effective_cashflow: int


@dataclass
class ComparisonScenario:
    name: str
    loan_amount: int
    interest_rate: int
    term_years: int
    structure: LoanStructure
    repayment: int
    total_cost: int
    total_interest: int
    periods: int


@dataclass
class ScenarioComparison:
    """Result of comparing two loans.

    ``savings`` is ``scenario 1 cost - scenario 2 cost``: positive means the
    second scenario is cheaper.
    """

    scenarios: Tuple[ComparisonScenario, ComparisonScenario]
    savings: int
    savings_percent: float
    recommendation: str


@dataclass
class BaselineSavings:
    """Effect of extras, lump sums and offset against the plain loan."""

    baseline_periods: int
    periods: int
    periods_saved: int
    baseline_interest: int
    total_interest: int
    interest_saved: int


@dataclass
class PropertyYear:
    name: str
    year: int
    value: int
    debt: int
    equity: int
    lvr: float
    rental_income: int
    expenses: int
    loan_repayments: int
    interest: int
    net_cashflow: int
    tax: Optional[TaxCalculation] = None


@dataclass
class PortfolioYear:
    year: int
    total_value: int
    total_debt: int
    total_equity: int
    lvr: float
    total_rental_income: int
    total_expenses: int
    total_loan_repayments: int
    total_net_cashflow: int
    total_tax_benefit: int
    properties: List[PropertyYear]


@dataclass
class IncomeTaxResult:
    gross_income: int
    income_tax: int
    medicare_levy: int
    medicare_levy_surcharge: int
    help_repayment: int
    superannuation: int
    net_income: int


@dataclass
class PurchaseCosts:
    stamp_duty: int
    legal_fee: int
    inspection_fee: int
    conveyancing: int
    total: int



@dataclass
class InvestmentComparison:
    year: int
    property_equity: int
    share_equity: int
    difference: int
