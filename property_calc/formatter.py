"""Output helpers for the property calculator.

This module renders engine results as plain text tables. Amounts are held
in cents internally and shown in dollars with two decimals.
"""

from __future__ import annotations

from typing import Iterable, Optional

from .data_models import (
    AmortizationEntry,
    AmortizationSchedule,
    BaselineSavings,
    GrowthForecast,
    IncomeTaxResult,
    LVRCalculation,
    PortfolioYear,
    PurchaseCosts,
    ScenarioComparison,
    TaxCalculation,
    YearlySummary,
)
from .units import bps_to_percent, cents_to_dollars


def money(cents: int) -> str:
    return f"{cents_to_dollars(cents):,.2f}"


def rate(bps: int) -> str:
    return f"{bps_to_percent(bps):.2f}%"


def print_summary(schedule: AmortizationSchedule, savings: Optional[BaselineSavings] = None) -> None:
    """Print a summary of loan metrics in a human-readable format."""
    print("Summary")
    print("-" * 72)
    print(f"Scheduled repayment : {money(schedule.scheduled_payment)}")
    print(f"Total interest      : {money(schedule.total_interest)}")
    print(f"Total principal     : {money(schedule.total_principal)}")
    print(f"Total paid          : {money(schedule.total_paid)}")
    print(f"Payments made       : {schedule.periods}")
    if schedule.entries:
        print(f"Final payment date  : {schedule.entries[-1].date.isoformat()}")
    if schedule.final_balance:
        print(f"Balance remaining   : {money(schedule.final_balance)}")
    if savings is not None and (savings.interest_saved or savings.periods_saved):
        print(f"Baseline interest   : {money(savings.baseline_interest)}")
        print(f"Interest saved      : {money(savings.interest_saved)}")
        print(f"Term reduction      : {savings.periods_saved} payments")
    print("-" * 72)


def print_schedule(entries: Iterable[AmortizationEntry]) -> None:
    """Print the amortization schedule as a simple table."""
    headers = ["Period", "Date", "Rate", "Payment", "Principal", "Interest", "Extra", "Balance"]
    print("\t".join(headers))
    for entry in entries:
        row = [
            str(entry.period),
            entry.date.isoformat(),
            rate(entry.rate),
            money(entry.payment),
            money(entry.principal),
            money(entry.interest),
            money(entry.extra),
            money(entry.balance),
        ]
        print("\t".join(row))


def print_yearly(summaries: Iterable[YearlySummary]) -> None:
    """Print one line per calendar year of a property projection."""
    headers = ["Year", "Principal", "Interest", "Rent", "Expenses", "Cashflow", "Balance", "Value", "Equity", "LVR"]
    print("\t".join(headers))
    for summary in summaries:
        row = [
            str(summary.year),
            money(summary.total_principal),
            money(summary.total_interest),
            money(summary.rental),
            money(summary.expenses),
            money(summary.net_cashflow),
            money(summary.end_balance),
            money(summary.end_property_value),
            money(summary.end_equity),
            f"{summary.lvr:.2f}%",
        ]
        print("\t".join(row))


def print_portfolio(years: Iterable[PortfolioYear]) -> None:
    headers = ["Year", "Value", "Debt", "Equity", "LVR", "Rent", "Expenses", "Repayments", "Cashflow", "Tax benefit"]
    print("\t".join(headers))
    for year in years:
        row = [
            str(year.year),
            money(year.total_value),
            money(year.total_debt),
            money(year.total_equity),
            f"{year.lvr:.2f}%",
            money(year.total_rental_income),
            money(year.total_expenses),
            money(year.total_loan_repayments),
            money(year.total_net_cashflow),
            money(year.total_tax_benefit),
        ]
        print("\t".join(row))


def print_comparison(comparison: ScenarioComparison) -> None:
    """Print two loan scenarios side by side.

    The difference column is scenario 2 minus scenario 1, so a negative
    value means the second scenario is cheaper or shorter.
    """
    first, second = comparison.scenarios
    print("Comparison")
    print("=" * 72)
    print(f"{'Metric':20s} {first.name:>15s} {second.name:>15s} {'Difference':>15s}")
    for label, key in (("repayment", "repayment"), ("total_cost", "total_cost"), ("total_interest", "total_interest")):
        v1 = getattr(first, key)
        v2 = getattr(second, key)
        print(f"{label:20s} {money(v1):>15s} {money(v2):>15s} {money(v2 - v1):>15s}")
    print(f"{'payments_made':20s} {first.periods:15d} {second.periods:15d} {second.periods - first.periods:15d}")
    print("=" * 72)
    print(comparison.recommendation)


def print_growth(forecast: GrowthForecast, start_year: int = 0) -> None:
    print("Year\tValue")
    for offset, value in zip(forecast.years, forecast.values):
        label = str(start_year + offset) if start_year else str(offset)
        print(f"{label}\t{money(value)}")
    print(f"Total growth: {money(forecast.total_growth)} ({forecast.total_growth_percent:.2f}%)")


def print_lvr(result: LVRCalculation) -> None:
    print(f"Loan amount    : {money(result.loan_amount)}")
    print(f"Property value : {money(result.property_value)}")
    print(f"LVR            : {result.lvr:.2f}%")
    print(f"Equity         : {money(result.equity)}")
    if result.requires_lmi:
        print(f"LMI            : {money(result.lmi)}")
    else:
        print("LMI            : not required")


def print_tax(result: TaxCalculation) -> None:
    print(f"Rental income       : {money(result.rental_income)}")
    print(f"Total deductions    : {money(result.deductible_expenses)}")
    print(f"Taxable income      : {money(result.taxable_income)}")
    print(f"Tax benefit         : {money(result.tax_benefit)}")
    print(f"Effective cashflow  : {money(result.effective_cashflow)}")


def print_income_tax(result: IncomeTaxResult) -> None:
    print(f"Gross income        : {money(result.gross_income)}")
    print(f"Income tax          : {money(result.income_tax)}")
    print(f"Medicare levy       : {money(result.medicare_levy)}")
    if result.medicare_levy_surcharge:
        print(f"Medicare surcharge  : {money(result.medicare_levy_surcharge)}")
    if result.help_repayment:
        print(f"HELP repayment      : {money(result.help_repayment)}")
    print(f"Superannuation      : {money(result.superannuation)}")
    print(f"Net income          : {money(result.net_income)}")


def print_purchase_costs(state: str, costs: PurchaseCosts) -> None:
    print(f"Stamp duty ({state}) : {money(costs.stamp_duty)}")
    print(f"Legal fees         : {money(costs.legal_fee)}")
    print(f"Building inspection: {money(costs.inspection_fee)}")
    print(f"Conveyancing       : {money(costs.conveyancing)}")
    print(f"Total              : {money(costs.total)}")
