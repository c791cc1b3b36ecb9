"""Command-line interface for the property calculator.

This module uses the ``click`` library to implement a multi-command
interface. Users can compute loan repayments and amortization schedules,
project a property's value, equity and cashflow, roll several properties
into a portfolio, compare two loans and look up the tax and stamp duty
tables. Results can be printed to the terminal or exported to JSON/CSV
files.
"""

from __future__ import annotations

import csv
import functools
import json
import logging
import shlex
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import click

from .amortization import calculate_repayment, generate_schedule
from .data_models import (
    ExtraPayment,
    Frequency,
    LoanStructure,
    LumpSum,
    MortgageInput,
    PropertyConfig,
    RateForecast,
    Region,
    DEFAULT_GROWTH_RATE_BPS,
)
from .formatter import (
    money,
    print_comparison,
    print_growth,
    print_income_tax,
    print_lvr,
    print_portfolio,
    print_purchase_costs,
    print_schedule,
    print_summary,
    print_tax,
    print_yearly,
)
from .inputs import parse_enum, portfolio_from_dict, to_jsonable
from .projection import (
    aggregate_by_year,
    calculate_lvr,
    calculate_tax,
    compare_scenarios,
    compare_to_baseline,
    compare_with_shares,
    project,
    project_growth,
    project_portfolio,
)
from .tax_tables import calculate_income_tax, marginal_rate, purchase_costs
from .units import dollars_to_cents, percent_to_bps
from .utils import decimal_from_str, parse_date
from .validation import ValidationError

logger = logging.getLogger(__name__)

MAX_ROWS = 120


def parse_amount(value: str) -> int:
    """Parse a dollar amount with optional suffixes into cents.

    Accepts plain numbers ("500000") and shorthand with ``k``/``m`` suffixes
    (e.g., "500k" meaning 500_000).
    """
    text = str(value).strip().lower().replace(",", "").lstrip("$")
    factor = 1
    if text.endswith("k"):
        factor = 1_000
        text = text[:-1]
    elif text.endswith("m"):
        factor = 1_000_000
        text = text[:-1]
    try:
        return dollars_to_cents(decimal_from_str(text) * factor)
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def parse_percent(value: str) -> int:
    """Parse a percentage string (e.g. "6.5" or "6.5%") into basis points."""
    text = str(value).strip()
    if text.endswith("%"):
        text = text[:-1]
    try:
        return percent_to_bps(decimal_from_str(text))
    except ValueError:
        raise click.BadParameter(f"Invalid percentage: {value}")


def _parse_date(value: str) -> date:
    try:
        return parse_date(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def _parse_choice(enum_type, value: str):
    try:
        return parse_enum(enum_type, value)
    except ValueError as exc:
        raise click.BadParameter(f"{value}: {exc}")


def parse_extra_strings(values: Iterable[str]) -> Tuple[ExtraPayment, ...]:
    """Parse ``AMOUNT:FREQUENCY:START[:END]`` recurring extra repayments."""
    extras: List[ExtraPayment] = []
    for item in values:
        parts = item.split(":")
        if len(parts) not in (3, 4):
            raise click.BadParameter(
                f"Extra payment must be in AMOUNT:FREQUENCY:START[:END] format; got {item}"
            )
        end = _parse_date(parts[3]) if len(parts) == 4 else None
        extras.append(
            ExtraPayment(
                amount=parse_amount(parts[0]),
                frequency=_parse_choice(Frequency, parts[1]),
                start_date=_parse_date(parts[2]),
                end_date=end,
            )
        )
    return tuple(extras)


def parse_lump_strings(values: Iterable[str]) -> Tuple[LumpSum, ...]:
    """Parse ``DATE:AMOUNT`` one-off lump sums."""
    lumps: List[LumpSum] = []
    for item in values:
        parts = item.rsplit(":", 1)
        if len(parts) != 2:
            raise click.BadParameter(f"Lump sum must be in DATE:AMOUNT format; got {item}")
        lumps.append(LumpSum(amount=parse_amount(parts[1]), date=_parse_date(parts[0])))
    return tuple(lumps)


def parse_forecast_strings(values: Iterable[str]) -> Tuple[RateForecast, ...]:
    """Parse ``YEAR:RATE`` override points."""
    forecasts: List[RateForecast] = []
    for item in values:
        parts = item.split(":")
        if len(parts) != 2:
            raise click.BadParameter(f"Forecast must be in YEAR:RATE format; got {item}")
        try:
            year = int(parts[0])
        except ValueError:
            raise click.BadParameter(f"Invalid forecast year: {parts[0]}")
        forecasts.append(RateForecast(year=year, rate=parse_percent(parts[1])))
    return tuple(forecasts)


def build_loan_from_options(
    principal: str,
    rate: str,
    term: int,
    structure: str = "PrincipalAndInterest",
    frequency: str = "Monthly",
    region: str = "AU",
    start_date: Optional[str] = None,
    io_years: int = 0,
    **_: Any,
) -> MortgageInput:
    values: Dict[str, Any] = dict(
        principal=parse_amount(principal),
        annual_rate=parse_percent(rate),
        term_years=term,
        structure=_parse_choice(LoanStructure, structure),
        frequency=_parse_choice(Frequency, frequency),
        region=_parse_choice(Region, region),
        io_years=io_years,
    )
    if start_date:
        values["start_date"] = _parse_date(start_date)
    return MortgageInput(**values)


def loan_options(func: Callable) -> Callable:
    """Attach the options describing a single loan to a command."""
    options = [
        click.option("--principal", "-p", "principal", required=True, help="Loan amount, e.g. 600k"),
        click.option("--rate", "-r", "rate", required=True, help="Annual interest rate (percent)"),
        click.option("--term", "-t", "term", type=int, default=30, show_default=True, help="Loan term in years"),
        click.option(
            "--structure",
            type=click.Choice(["PrincipalAndInterest", "InterestOnly"], case_sensitive=False),
            default="PrincipalAndInterest",
            show_default=True,
        ),
        click.option(
            "--frequency",
            type=click.Choice(["Weekly", "Fortnightly", "Monthly"], case_sensitive=False),
            default="Monthly",
            show_default=True,
        ),
        click.option("--region", type=click.Choice(["AU", "US", "UK"], case_sensitive=False), default="AU", show_default=True),
        click.option("--start-date", "-s", "start_date", help="First repayment date (YYYY-MM or YYYY-MM-DD)"),
        click.option("--io-years", "io_years", type=int, default=0, help="Initial interest-only years"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def extras_options(func: Callable) -> Callable:
    """Attach extra repayment, lump sum, offset and rate forecast options."""
    options = [
        click.option("--extra", "extra", multiple=True, help="Recurring extra repayment AMOUNT:FREQUENCY:START[:END]"),
        click.option("--lump-sum", "lump_sum", multiple=True, help="One-off repayment DATE:AMOUNT"),
        click.option("--rate-forecast", "rate_forecast", multiple=True, help="Rate change YEAR:RATE"),
        click.option("--offset", "offset", default="0", help="Offset account balance"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def reports_errors(func: Callable) -> Callable:
    """Turn engine validation errors into click usage errors."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ValidationError as exc:
            logger.debug("Rejected input: %s", exc.errors)
            raise click.UsageError(str(exc))

    return wrapper


def export_to_json(path: Path, payload: Any) -> None:
    """Export any engine result to a JSON file."""
    with path.open("w", encoding="utf-8") as f:
        json.dump(to_jsonable(payload), f, indent=2)


def export_to_csv(path: Path, header: Sequence[str], rows: Iterable[Sequence[Any]]) -> None:
    """Export table rows to a CSV file."""
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for row in rows:
            writer.writerow(row)


def _export(output: str, payload: Any, header: Sequence[str], rows: Callable[[], Iterable[Sequence[Any]]]) -> None:
    path = Path(output)
    if path.suffix.lower() == ".json":
        export_to_json(path, payload)
    elif path.suffix.lower() == ".csv":
        export_to_csv(path, header, rows())
    else:
        raise click.BadParameter("Unsupported output format; use .json or .csv")
    click.echo(f"Results exported to {path}")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Property investment calculator: loans, projections and portfolios."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@loan_options
@reports_errors
def repayment(**options: Any) -> None:
    """Compute the scheduled repayment of a loan."""
    loan = build_loan_from_options(**options)
    amount = calculate_repayment(loan)
    click.echo(f"{loan.frequency.value} repayment: {money(amount)}")


@cli.command()
@loan_options
@extras_options
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
@reports_errors
def schedule(
    extra: Tuple[str, ...],
    lump_sum: Tuple[str, ...],
    rate_forecast: Tuple[str, ...],
    offset: str,
    output: Optional[str],
    **options: Any,
) -> None:
    """Compute and print the full amortization schedule."""
    loan = build_loan_from_options(**options)
    extras = parse_extra_strings(extra)
    lumps = parse_lump_strings(lump_sum)
    forecasts = parse_forecast_strings(rate_forecast)
    offset_balance = parse_amount(offset)
    result = generate_schedule(loan, extras, lumps, forecasts, offset_balance)
    if output:
        header = ["Period", "Date", "Rate_Bps", "Payment", "Principal", "Interest", "Extra", "Balance"]
        _export(
            output,
            result,
            header,
            lambda: (
                [e.period, e.date.isoformat(), e.rate, e.payment, e.principal, e.interest, e.extra, e.balance]
                for e in result.entries
            ),
        )
        return
    savings = None
    if extras or lumps or offset_balance:
        config = PropertyConfig(
            name="loan",
            property_value=0,
            loan=loan,
            offset_balance=offset_balance,
            extra_payments=extras,
            lump_sums=lumps,
            rate_forecasts=forecasts,
        )
        savings = compare_to_baseline(config)
    print_summary(result, savings)
    # Limit schedule length printed to avoid flooding the terminal
    if len(result.entries) > MAX_ROWS:
        click.echo(f"Schedule has {len(result.entries)} rows; showing first {MAX_ROWS} rows.")
    print_schedule(result.entries[:MAX_ROWS])


@cli.command(name="project")
@loan_options
@extras_options
@click.option("--value", "value", required=True, help="Current property value")
@click.option("--growth", "growth", default=str(DEFAULT_GROWTH_RATE_BPS / 100), show_default=True, help="Annual capital growth (percent)")
@click.option("--growth-forecast", "growth_forecast", multiple=True, help="Growth change YEAR:RATE")
@click.option("--rent", "rent", default="0", help="Annual rental income")
@click.option("--rent-growth", "rent_growth", default="0", help="Annual rent growth (percent)")
@click.option("--expenses", "expenses", default="0", help="Annual property expenses")
@click.option("--expense-growth", "expense_growth", default="0", help="Annual expense growth (percent)")
@click.option("--years", "years", type=int, help="Limit the projection to this many years")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
@reports_errors
def project_command(
    extra: Tuple[str, ...],
    lump_sum: Tuple[str, ...],
    rate_forecast: Tuple[str, ...],
    offset: str,
    value: str,
    growth: str,
    growth_forecast: Tuple[str, ...],
    rent: str,
    rent_growth: str,
    expenses: str,
    expense_growth: str,
    years: Optional[int],
    output: Optional[str],
    **options: Any,
) -> None:
    """Project loan balance, property value, equity and cashflow by year."""
    config = PropertyConfig(
        name="property",
        property_value=parse_amount(value),
        loan=build_loan_from_options(**options),
        growth_rate=parse_percent(growth),
        rental_income=parse_amount(rent),
        rent_growth=parse_percent(rent_growth),
        expenses=parse_amount(expenses),
        expense_growth=parse_percent(expense_growth),
        offset_balance=parse_amount(offset),
        extra_payments=parse_extra_strings(extra),
        lump_sums=parse_lump_strings(lump_sum),
        rate_forecasts=parse_forecast_strings(rate_forecast),
        growth_forecasts=parse_forecast_strings(growth_forecast),
    )
    rows = project(config, years)
    summaries = aggregate_by_year(rows)
    if output:
        header = ["Year", "Principal", "Interest", "Payment", "Rental", "Expenses", "Net_Cashflow",
                  "Balance", "Property_Value", "Equity", "LVR"]
        _export(
            output,
            {"periods": rows, "years": summaries},
            header,
            lambda: (
                [s.year, s.total_principal, s.total_interest, s.total_payment, s.rental, s.expenses,
                 s.net_cashflow, s.end_balance, s.end_property_value, s.end_equity, s.lvr]
                for s in summaries
            ),
        )
        return
    print_yearly(summaries)


def _scenario_command() -> click.Command:
    @click.command(name="scenario")
    @loan_options
    def scenario(**options: Any) -> None:
        pass

    return scenario


def parse_scenario_opts(opts: str) -> MortgageInput:
    """Parse a quoted option string such as ``"-p 500k -r 6 -t 30"`` into a loan."""
    command = _scenario_command()
    try:
        ctx = command.make_context("scenario", shlex.split(opts))
    except click.ClickException as exc:
        raise click.BadParameter(f"Invalid scenario {opts!r}: {exc.format_message()}")
    return build_loan_from_options(**ctx.params)


@cli.command()
@click.option("--scenario1", "scenario1", required=True, help="First scenario options quoted string")
@click.option("--scenario2", "scenario2", required=True, help="Second scenario options quoted string")
@click.option("--output", "output", type=str, help="Output file path (.json)")
@reports_errors
def compare(scenario1: str, scenario2: str, output: Optional[str]) -> None:
    """Compare two loan scenarios.

    Scenarios are provided as quoted option strings, for example:

        property-calc compare --scenario1 "-p 500k -r 6.5 -t 30" --scenario2 "-p 500k -r 6.0 -t 25"
    """
    comparison = compare_scenarios(parse_scenario_opts(scenario1), parse_scenario_opts(scenario2))
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Comparison export must use .json extension")
        export_to_json(path, comparison)
        click.echo(f"Results exported to {path}")
        return
    print_comparison(comparison)


@cli.command()
@click.option("--file", "-f", "file", required=True, type=click.Path(exists=True, dir_okay=False),
              help="Portfolio description (JSON)")
@click.option("--marginal-rate", "marginal_rate_", help="Marginal tax rate (percent) for the tax overlay")
@click.option("--shares-return", "shares_return", help="Compare equity with a share portfolio returning this percent")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
@reports_errors
def portfolio(file: str, marginal_rate_: Optional[str], shares_return: Optional[str], output: Optional[str]) -> None:
    """Project a portfolio of properties described in a JSON file.

    Amounts in the file are dollars and rates are percentages.
    """
    with open(file, encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise click.BadParameter(f"Invalid JSON in {file}: {exc}")
    properties, start_year, end_year, tax_rate = portfolio_from_dict(data)
    if marginal_rate_:
        tax_rate = parse_percent(marginal_rate_)
    years = project_portfolio(properties, start_year, end_year, tax_rate)
    shares = compare_with_shares(years, parse_percent(shares_return)) if shares_return else None
    if output:
        header = ["Year", "Value", "Debt", "Equity", "LVR", "Rental", "Expenses", "Repayments",
                  "Net_Cashflow", "Tax_Benefit"]
        _export(
            output,
            {"years": years, "shares": shares},
            header,
            lambda: (
                [y.year, y.total_value, y.total_debt, y.total_equity, y.lvr, y.total_rental_income,
                 y.total_expenses, y.total_loan_repayments, y.total_net_cashflow, y.total_tax_benefit]
                for y in years
            ),
        )
        return
    print_portfolio(years)
    if shares:
        click.echo("Year\tProperty equity\tShare equity\tDifference")
        for row in shares:
            click.echo(f"{row.year}\t{money(row.property_equity)}\t{money(row.share_equity)}\t{money(row.difference)}")


@cli.command()
@click.option("--value", "value", required=True, help="Current property value")
@click.option("--rate", "-r", "rate", default=str(DEFAULT_GROWTH_RATE_BPS / 100), show_default=True,
              help="Annual growth rate (percent)")
@click.option("--years", "years", type=int, default=10, show_default=True)
@click.option("--start-year", "start_year", type=int, default=lambda: date.today().year)
@click.option("--forecast", "forecast", multiple=True, help="Growth change YEAR:RATE")
@reports_errors
def growth(value: str, rate: str, years: int, start_year: int, forecast: Tuple[str, ...]) -> None:
    """Project a property value with compound annual growth."""
    result = project_growth(
        parse_amount(value), parse_percent(rate), years, parse_forecast_strings(forecast), start_year
    )
    print_growth(result, start_year)


@cli.command()
@click.option("--loan", "loan", required=True, help="Loan amount")
@click.option("--value", "value", required=True, help="Property value")
@click.option("--region", type=click.Choice(["AU", "US", "UK"], case_sensitive=False), default="AU", show_default=True)
@reports_errors
def lvr(loan: str, value: str, region: str) -> None:
    """Loan-to-value ratio and mortgage insurance."""
    print_lvr(calculate_lvr(parse_amount(loan), parse_amount(value), _parse_choice(Region, region)))


@cli.command()
@click.option("--rent", "rent", required=True, help="Annual rental income")
@click.option("--expenses", "expenses", default="0", help="Annual deductible expenses")
@click.option("--interest", "interest", default="0", help="Annual loan interest")
@click.option("--depreciation", "depreciation", default="0", help="Annual depreciation")
@click.option("--marginal-rate", "marginal_rate_", help="Marginal tax rate (percent)")
@click.option("--income", "income", help="Taxable salary, used to look up the marginal rate")
def tax(rent: str, expenses: str, interest: str, depreciation: str, marginal_rate_: Optional[str],
        income: Optional[str]) -> None:
    """Negative gearing effect of an investment property."""
    if marginal_rate_:
        bps = parse_percent(marginal_rate_)
    elif income:
        bps = marginal_rate(parse_amount(income))
    else:
        raise click.UsageError("Provide --marginal-rate or --income")
    print_tax(
        calculate_tax(parse_amount(rent), parse_amount(expenses), parse_amount(interest), parse_amount(depreciation), bps)
    )


@cli.command(name="income-tax")
@click.option("--gross", "gross", required=True, help="Gross annual income")
@click.option("--help-debt", "help_debt", is_flag=True, help="Include HELP/HECS repayments")
@click.option("--private-health", "private_health", is_flag=True, help="Holds private hospital cover")
@click.option("--super-inclusive", "super_inclusive", is_flag=True, help="Gross amount includes superannuation")
def income_tax(gross: str, help_debt: bool, private_health: bool, super_inclusive: bool) -> None:
    """Estimate income tax, levies and take-home pay."""
    print_income_tax(calculate_income_tax(parse_amount(gross), help_debt, private_health, super_inclusive))


@cli.command(name="stamp-duty")
@click.option("--price", "price", required=True, help="Purchase price")
@click.option("--state", "state", default="QLD", show_default=True, help="Australian state or territory")
@click.option("--first-home", "first_home", is_flag=True)
def stamp_duty(price: str, state: str, first_home: bool) -> None:
    """Stamp duty and purchase costs for an Australian property."""
    print_purchase_costs(state.upper(), purchase_costs(parse_amount(price), state, first_home))


if __name__ == "__main__":
    cli()
