"""Projection orchestration.

Drives the amortization engine forward while tracking the property side of
an investment: value growth, equity, loan-to-value ratio, rent and
expenses. Per-period rows can be rolled up into yearly summaries, several
properties into a portfolio, and two loans can be compared against each
other. Tax effects are layered on top of the projections without feeding
back into them.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .amortization import generate_schedule
from .constants import calculate_lmi, payments_per_year, regional_params
from .data_models import (
    BaselineSavings,
    CashflowProjection,
    ComparisonScenario,
    GrowthForecast,
    InvestmentComparison,
    LVRCalculation,
    MortgageInput,
    PortfolioYear,
    PropertyConfig,
    PropertyYear,
    RateForecast,
    Region,
    RepaymentProjection,
    ScenarioComparison,
    TaxCalculation,
    YearlySummary,
)
from .rates import resolve_rate
from .units import apply_rate, bps_to_rate, cents_to_dollars, grow, ratio_percent, round_cents
from .validation import validate_growth, validate_lvr, validate_portfolio, validate_property


def _annual_amount(amount: int, growth: int, elapsed_years: int) -> int:
    """``amount`` grown for ``elapsed_years`` years, rounded once."""
    if elapsed_years <= 0:
        return amount
    return round_cents(amount * (1 + bps_to_rate(growth)) ** elapsed_years)


def _lvr(balance: int, value: int) -> float:
    return ratio_percent(balance, value) if balance > 0 else 0.0


def project(config: PropertyConfig, years: Optional[int] = None) -> List[RepaymentProjection]:
    """Project a mortgaged property period by period.

    Runs the loan's amortization schedule (interest rate forecasts, offset,
    extra repayments and lump sums included) for the full term or for
    ``years`` years, whichever is shorter, stopping early at payoff. The
    property value compounds once per calendar year: the growth rate
    resolved for a year is applied when the first period of that year is
    reached. Rent and expenses for a period are that year's grown annual
    amounts spread evenly over the year's repayments.
    """
    validate_property(config, require_loan=True)
    loan = config.loan
    periods_per_year = payments_per_year(loan.frequency)
    schedule = generate_schedule(
        loan,
        config.extra_payments,
        config.lump_sums,
        config.rate_forecasts,
        config.offset_balance,
        max_periods=None if years is None else years * periods_per_year,
    )

    rows: List[RepaymentProjection] = []
    value = config.property_value
    value_year = config.base_year
    for entry in schedule.entries:
        year = entry.date.year
        while value_year < year:
            value_year += 1
            value = grow(value, resolve_rate(config.growth_rate, value_year, config.growth_forecasts))
        elapsed = year - config.base_year
        rental = round_cents(
            Decimal(_annual_amount(config.rental_income, config.rent_growth, elapsed)) / periods_per_year
        )
        expenses = round_cents(
            Decimal(_annual_amount(config.expenses, config.expense_growth, elapsed)) / periods_per_year
        )
        rows.append(
            RepaymentProjection(
                year=year,
                month=entry.date.month,
                date=entry.date,
                balance=entry.balance,
                principal=entry.principal,
                interest=entry.interest,
                payment=entry.payment,
                property_value=value,
                equity=value - entry.balance,
                lvr=_lvr(entry.balance, value),
                rental=rental,
                expenses=expenses,
                net_cashflow=rental - expenses - entry.payment,
            )
        )
    return rows


def aggregate_by_year(rows: Iterable[RepaymentProjection]) -> List[YearlySummary]:
    """Roll projection rows up into one summary per calendar year.

    Flows (payments, rent, expenses) are summed; positions (balance, value,
    equity, LVR) are taken from the year's last period.
    """
    summaries: Dict[int, YearlySummary] = {}
    for row in rows:
        summary = summaries.get(row.year)
        if summary is None:
            summary = YearlySummary(
                year=row.year,
                total_principal=0,
                total_interest=0,
                total_payment=0,
                rental=0,
                expenses=0,
                net_cashflow=0,
                end_balance=row.balance,
                end_property_value=row.property_value,
                end_equity=row.equity,
                lvr=row.lvr,
            )
            summaries[row.year] = summary
        summary.total_principal += row.principal
        summary.total_interest += row.interest
        summary.total_payment += row.payment
        summary.rental += row.rental
        summary.expenses += row.expenses
        summary.net_cashflow += row.net_cashflow
        summary.end_balance = row.balance
        summary.end_property_value = row.property_value
        summary.end_equity = row.equity
        summary.lvr = row.lvr
    return [summaries[year] for year in sorted(summaries)]


def compare_to_baseline(config: PropertyConfig, years: Optional[int] = None) -> BaselineSavings:
    """Periods and interest saved by extras, lump sums and the offset.

    The baseline is the same loan under the same rate forecasts with no
    extra contributions and no offset balance.
    """
    validate_property(config, require_loan=True)
    loan = config.loan
    max_periods = None if years is None else years * payments_per_year(loan.frequency)
    actual = generate_schedule(
        loan,
        config.extra_payments,
        config.lump_sums,
        config.rate_forecasts,
        config.offset_balance,
        max_periods=max_periods,
    )
    baseline = generate_schedule(loan, rate_forecasts=config.rate_forecasts, max_periods=max_periods)
    return BaselineSavings(
        baseline_periods=baseline.periods,
        periods=actual.periods,
        periods_saved=baseline.periods - actual.periods,
        baseline_interest=baseline.total_interest,
        total_interest=actual.total_interest,
        interest_saved=baseline.total_interest - actual.total_interest,
    )


def project_growth(
    current_value: int,
    growth_rate: int,
    years: int,
    forecasts: Sequence[RateForecast] = (),
    start_year: int = 0,
) -> GrowthForecast:
    """Project a property value with compound annual growth.

    ``values[0]`` is ``current_value``; each following value is the previous
    one grown by the rate resolved for that year, rounded to the cent.
    Forecast years are calendar years, so pass ``start_year`` when using
    them.
    """
    validate_growth(current_value, growth_rate, years, forecasts, start_year or None)
    values = [current_value]
    for offset in range(1, years + 1):
        rate = resolve_rate(growth_rate, start_year + offset, forecasts)
        values.append(grow(values[-1], rate))
    total_growth = values[-1] - current_value
    return GrowthForecast(
        years=list(range(years + 1)),
        values=values,
        growth_rate=growth_rate,
        total_growth=total_growth,
        total_growth_percent=ratio_percent(total_growth, current_value),
    )


def calculate_lvr(loan_amount: int, property_value: int, region: Region = Region.AU) -> LVRCalculation:
    """Loan-to-value ratio, equity and mortgage insurance for a purchase.

    Mortgage insurance applies when the LVR is above the region's
    threshold.
    """
    validate_lvr(loan_amount, property_value)
    threshold = regional_params(region).lmi_threshold
    lvr = ratio_percent(loan_amount, property_value)
    requires_lmi = lvr > threshold
    return LVRCalculation(
        loan_amount=loan_amount,
        property_value=property_value,
        lvr=lvr,
        equity=property_value - loan_amount,
        lmi=calculate_lmi(loan_amount, lvr, threshold) if requires_lmi else 0,
        requires_lmi=requires_lmi,
    )


def project_cashflow(
    loan: MortgageInput,
    rental_income: int,
    expenses: int,
    depreciation: int = 0,
) -> List[CashflowProjection]:
    """Pre-tax cashflow of a rented property for every repayment period.

    Annual rent, expenses and depreciation are spread evenly over the
    repayment periods of a year and do not grow.
    """
    schedule = generate_schedule(loan)
    periods_per_year = payments_per_year(loan.frequency)
    rental = round_cents(Decimal(rental_income) / periods_per_year)
    outgoings = round_cents(Decimal(expenses) / periods_per_year)
    period_depreciation = round_cents(Decimal(depreciation) / periods_per_year)

    rows: List[CashflowProjection] = []
    cumulative = 0
    for entry in schedule.entries:
        net = rental - outgoings - entry.payment
        cumulative += net
        rows.append(
            CashflowProjection(
                period=entry.period,
                date=entry.date,
                rental=rental,
                expenses=outgoings,
                loan_repayment=entry.payment,
                net_cashflow=net,
                cumulative_cashflow=cumulative,
                depreciation=period_depreciation,
            )
        )
    return rows


def calculate_tax(
    rental_income: int,
    expenses: int,
    loan_interest: int,
    depreciation: int,
    marginal_rate: int,
) -> TaxCalculation:
    """Tax effect of an investment property for one year.

    When deductions exceed the rent (negative gearing) the loss reduces tax
    on other income at ``marginal_rate`` basis points.
    """
    deductions = expenses + loan_interest + depreciation
    taxable_income = rental_income - deductions
    tax_benefit = apply_rate(-taxable_income, marginal_rate) if taxable_income < 0 else 0
    return TaxCalculation(
        rental_income=rental_income,
        deductible_expenses=deductions,
        loan_interest=loan_interest,
        depreciation=depreciation,
        taxable_income=taxable_income,
        tax_benefit=tax_benefit,
        effective_cashflow=rental_income - expenses - loan_interest + tax_benefit,
    )


def compare_scenarios(
    first: MortgageInput,
    second: MortgageInput,
    names: Tuple[str, str] = ("Scenario 1", "Scenario 2"),
) -> ScenarioComparison:
    """Compare the lifetime cost of two loans.

    A loan's total cost is everything paid plus any balance still owed at
    maturity, so an interest-only loan carries its principal. ``savings``
    is positive when the second loan is cheaper. The percentage is taken
    against the dearer loan so swapping the arguments only flips the sign.
    """
    schedules = (generate_schedule(first), generate_schedule(second))
    costs = [schedule.total_paid + schedule.final_balance for schedule in schedules]
    scenarios = tuple(
        ComparisonScenario(
            name=name,
            loan_amount=loan.principal,
            interest_rate=loan.annual_rate,
            term_years=loan.term_years,
            structure=loan.structure,
            repayment=schedule.scheduled_payment,
            total_cost=cost,
            total_interest=schedule.total_interest,
            periods=schedule.periods,
        )
        for name, loan, schedule, cost in zip(names, (first, second), schedules, costs)
    )
    savings = costs[0] - costs[1]
    savings_percent = ratio_percent(savings, max(costs))

    if savings == 0:
        recommendation = "Both scenarios result in the same total cost."
    else:
        cheaper = names[1] if savings > 0 else names[0]
        amount = cents_to_dollars(abs(savings))
        recommendation = (
            f"{cheaper} saves ${amount:,.2f} ({abs(savings_percent):.2f}%) over the life of the loan."
        )
    return ScenarioComparison(
        scenarios=scenarios,
        savings=savings,
        savings_percent=savings_percent,
        recommendation=recommendation,
    )


def _property_years(
    config: PropertyConfig,
    start_year: int,
    end_year: int,
    marginal_rate: Optional[int],
) -> List[PropertyYear]:
    """Yearly position of one property between ``start_year`` and ``end_year``.

    Years before the property's base year are skipped. After the loan ends
    the property keeps growing and renting; the debt is whatever the
    schedule left (zero unless an interest-only loan matured).
    """
    base = config.base_year
    summaries: Dict[int, YearlySummary] = {}
    remaining_debt = 0
    if config.loan is not None and end_year >= base:
        rows = project(config, years=end_year - base + 1)
        summaries = {summary.year: summary for summary in aggregate_by_year(rows)}
        remaining_debt = rows[-1].balance if rows else config.loan.principal

    result: List[PropertyYear] = []
    value = config.property_value
    for year in range(base, end_year + 1):
        if year > base:
            value = grow(value, resolve_rate(config.growth_rate, year, config.growth_forecasts))
        if year < start_year:
            continue
        summary = summaries.get(year)
        if summary is not None:
            debt, repayments, interest = summary.end_balance, summary.total_payment, summary.total_interest
        else:
            debt, repayments, interest = remaining_debt, 0, 0
        rental = _annual_amount(config.rental_income, config.rent_growth, year - base)
        expenses = _annual_amount(config.expenses, config.expense_growth, year - base)
        tax = None
        if marginal_rate is not None:
            tax = calculate_tax(rental, expenses, interest, config.depreciation, marginal_rate)
        result.append(
            PropertyYear(
                name=config.name,
                year=year,
                value=value,
                debt=debt,
                equity=value - debt,
                lvr=_lvr(debt, value),
                rental_income=rental,
                expenses=expenses,
                loan_repayments=repayments,
                interest=interest,
                net_cashflow=rental - expenses - repayments,
                tax=tax,
            )
        )
    return result


def project_portfolio(
    properties: Sequence[PropertyConfig],
    start_year: int,
    end_year: int,
    marginal_rate: Optional[int] = None,
) -> List[PortfolioYear]:
    """Project several properties independently and total them per year.

    Properties never share loans or offset balances. Rent and expenses in
    the rollup are full-year amounts; repayments and interest are what the
    schedule actually paid in that calendar year. With ``marginal_rate``
    each property-year also carries its tax calculation.
    """
    validate_portfolio(properties, start_year, end_year)
    by_year: Dict[int, List[PropertyYear]] = {year: [] for year in range(start_year, end_year + 1)}
    for config in properties:
        for row in _property_years(config, start_year, end_year, marginal_rate):
            by_year[row.year].append(row)

    portfolio: List[PortfolioYear] = []
    for year, rows in by_year.items():
        total_value = sum(row.value for row in rows)
        total_debt = sum(row.debt for row in rows)
        portfolio.append(
            PortfolioYear(
                year=year,
                total_value=total_value,
                total_debt=total_debt,
                total_equity=sum(row.equity for row in rows),
                lvr=ratio_percent(total_debt, total_value),
                total_rental_income=sum(row.rental_income for row in rows),
                total_expenses=sum(row.expenses for row in rows),
                total_loan_repayments=sum(row.loan_repayments for row in rows),
                total_net_cashflow=sum(row.net_cashflow for row in rows),
                total_tax_benefit=sum(row.tax.tax_benefit for row in rows if row.tax is not None),
                properties=rows,
            )
        )
    return portfolio


def share_strategy(initial: int, annual_contribution: int, annual_return: int, years: int) -> int:
    """Balance of a share portfolio after ``years`` of growth and contributions."""
    balance = Decimal(initial)
    rate = bps_to_rate(annual_return)
    for _ in range(years):
        balance = balance * (1 + rate) + annual_contribution
    return round_cents(balance)


def compare_with_shares(portfolio: Sequence[PortfolioYear], annual_return: int = 700) -> List[InvestmentComparison]:
    """Compare portfolio equity with investing the same money in shares.

    The share strategy starts with the portfolio's first-year equity and
    contributes each year's net cashflow.
    """
    if not portfolio:
        return []
    initial = portfolio[0].total_equity
    comparisons: List[InvestmentComparison] = []
    for elapsed, year in enumerate(portfolio):
        shares = share_strategy(initial, year.total_net_cashflow, annual_return, elapsed)
        comparisons.append(
            InvestmentComparison(
                year=year.year,
                property_equity=year.total_equity,
                share_equity=shares,
                difference=year.total_equity - shares,
            )
        )
    return comparisons
