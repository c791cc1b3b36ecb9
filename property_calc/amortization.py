"""Core amortization engine.

This module implements the period-level financial logic: converting an
annual rate into a payment-period rate for a region's compounding
convention, the annuity (equal installment) payment, the interest and
principal split of a single period, and the full amortization schedule
with extra repayments, lump sums, offset balances and interest rate
forecasts.

All money is integer cents. Interest is rounded half-up to the cent once
per period and never accumulated in fractions.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from datetime import date
from typing import Iterable, List, Optional, Sequence

from .constants import payments_per_year, regional_params
from .data_models import (
    AmortizationEntry,
    AmortizationSchedule,
    ExtraPayment,
    Frequency,
    LoanStructure,
    LumpSum,
    MortgageInput,
    PeriodResult,
    RateForecast,
    Region,
)
from .rates import resolve_rate
from .units import bps_to_rate, round_cents
from .utils import DAYS_PER_STEP, MONTHS_PER_STEP, months_between, step_date
from .validation import validate_mortgage, validate_schedule_inputs

logger = logging.getLogger(__name__)


def period_rate(annual_rate: int, frequency: Frequency, region: Region) -> Decimal:
    """Return the interest rate of one payment period as a decimal fraction.

    With daily compounding (AU, UK) interest accrues on a daily rate of
    ``r / days_per_year`` and compounds over the days of the period:

        period_rate = (1 + r / days) ^ (days / periods_per_year) - 1

    With monthly compounding (US) the nominal rate is simply divided by the
    number of payments per year (``r / 12`` for monthly repayments).
    """
    params = regional_params(region)
    periods = payments_per_year(frequency)
    rate = bps_to_rate(annual_rate)
    if params.compounding == "daily":
        daily = rate / params.days_per_year
        return (1 + daily) ** (Decimal(params.days_per_year) / periods) - 1
    return rate / periods


def annuity_payment(principal: int, rate: Decimal, periods: int) -> int:
    """Return the equal installment that repays ``principal`` in ``periods``.

    The formula is:

        payment = P * (r * (1 + r)^n) / ((1 + r)^n - 1)

    When the rate is zero the payment simplifies to ``P / n``.
    """
    if periods <= 0:
        raise ValueError("Term must be positive")
    if rate == 0:
        return round_cents(Decimal(principal) / periods)
    factor = (1 + rate) ** periods
    return round_cents(principal * rate * factor / (factor - 1))


def calculate_repayment(loan: MortgageInput) -> int:
    """Return the scheduled repayment per period in cents.

    Interest-only loans pay the period's interest on the full principal.
    Principal-and-interest loans pay the annuity installment; when the loan
    starts with an interest-only period this is the installment that
    applies once that period ends.
    """
    validate_mortgage(loan)
    rate = period_rate(loan.annual_rate, loan.frequency, loan.region)
    if loan.structure == LoanStructure.INTEREST_ONLY:
        return round_cents(loan.principal * rate)
    periods = (loan.term_years - loan.io_years) * payments_per_year(loan.frequency)
    return annuity_payment(loan.principal, rate, periods)


def amortize_period(
    balance: int,
    rate: Decimal,
    structure: LoanStructure,
    scheduled_payment: int,
    extra: int = 0,
    offset: int = 0,
    settle: bool = False,
) -> PeriodResult:
    """Split one period's payment into interest and principal.

    ``offset`` reduces the balance interest is charged on but not the
    balance itself. ``settle`` marks the final period of a
    principal-and-interest term: the whole remaining balance is repaid,
    absorbing the rounding of the installment.
    """
    if balance <= 0:
        return PeriodResult(interest=0, principal=0, new_balance=0)
    interest = round_cents(max(0, balance - offset) * rate)
    if structure == LoanStructure.INTEREST_ONLY:
        principal = extra
    elif settle:
        principal = balance
    else:
        principal = scheduled_payment - interest + extra
    principal = max(0, min(principal, balance))
    return PeriodResult(interest=interest, principal=principal, new_balance=balance - principal)


def _occurrences(extra: ExtraPayment, start: date, end: date) -> int:
    """Count how many times ``extra`` falls due in ``[start, end)``."""
    frequency = Frequency(extra.frequency)
    if frequency in DAYS_PER_STEP:
        step = DAYS_PER_STEP[frequency]
        elapsed = (start - extra.start_date).days
        k = max(0, -(-elapsed // step))
    else:
        step = MONTHS_PER_STEP[frequency]
        k = max(0, months_between(extra.start_date, start) // step - 1)
    count = 0
    due = step_date(extra.start_date, frequency, k)
    while due < end:
        if extra.end_date is not None and due > extra.end_date:
            break
        if due >= start:
            count += 1
        k += 1
        due = step_date(extra.start_date, frequency, k)
    return count


def extra_for_period(
    extra_payments: Iterable[ExtraPayment],
    lump_sums: Iterable[LumpSum],
    start: date,
    end: date,
) -> int:
    """Total extra principal contributed during the period ``[start, end)``."""
    total = 0
    for extra in extra_payments:
        total += extra.amount * _occurrences(extra, start, end)
    for lump in lump_sums:
        if start <= lump.date < end:
            total += lump.amount
    return total


def generate_schedule(
    loan: MortgageInput,
    extra_payments: Sequence[ExtraPayment] = (),
    lump_sums: Sequence[LumpSum] = (),
    rate_forecasts: Sequence[RateForecast] = (),
    offset_balance: int = 0,
    max_periods: Optional[int] = None,
) -> AmortizationSchedule:
    """Compute the amortization schedule of a loan.

    The rate of each period is resolved from ``rate_forecasts`` for the
    period's calendar year. Whenever it changes, and when an initial
    interest-only period ends, the installment is recomputed for the
    remaining balance over the remaining term so the loan still matures on
    time. Extra repayments and lump sums reduce the term, not the
    installment. The schedule stops early once the balance reaches zero,
    or after ``max_periods`` periods.
    """
    validate_schedule_inputs(loan, extra_payments, lump_sums, rate_forecasts, offset_balance)

    frequency = Frequency(loan.frequency)
    total_periods = loan.term_years * payments_per_year(frequency)
    if loan.structure == LoanStructure.INTEREST_ONLY:
        io_periods = total_periods
    else:
        io_periods = loan.io_years * payments_per_year(frequency)
    limit = total_periods if max_periods is None else min(total_periods, max_periods)

    entries: List[AmortizationEntry] = []
    balance = loan.principal
    installment: Optional[int] = None
    current_rate: Optional[int] = None
    cumulative_principal = 0
    cumulative_interest = 0

    for index in range(limit):
        when = step_date(loan.start_date, frequency, index)
        following = step_date(loan.start_date, frequency, index + 1)
        annual_rate = resolve_rate(loan.annual_rate, when.year, rate_forecasts)
        rate = period_rate(annual_rate, frequency, loan.region)
        interest_only = index < io_periods
        remaining = total_periods - index

        if not interest_only and (installment is None or annual_rate != current_rate):
            installment = annuity_payment(balance, rate, remaining)
            logger.debug("Period %d: installment %d at %d bps", index + 1, installment, annual_rate)
        current_rate = annual_rate

        extra = extra_for_period(extra_payments, lump_sums, when, following)
        result = amortize_period(
            balance,
            rate,
            LoanStructure.INTEREST_ONLY if interest_only else LoanStructure.PRINCIPAL_AND_INTEREST,
            installment or 0,
            extra=extra,
            offset=offset_balance,
            settle=not interest_only and remaining == 1,
        )
        balance = result.new_balance
        cumulative_principal += result.principal
        cumulative_interest += result.interest
        entries.append(
            AmortizationEntry(
                period=index + 1,
                date=when,
                rate=annual_rate,
                payment=result.principal + result.interest,
                principal=result.principal,
                interest=result.interest,
                extra=min(extra, result.principal),
                balance=balance,
                cumulative_principal=cumulative_principal,
                cumulative_interest=cumulative_interest,
            )
        )
        if balance == 0:
            break

    return AmortizationSchedule(
        entries=entries,
        scheduled_payment=calculate_repayment(loan),
        total_paid=cumulative_principal + cumulative_interest,
        total_interest=cumulative_interest,
        total_principal=cumulative_principal,
    )
