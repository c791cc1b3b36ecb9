"""Input validation for the calculation engine.

Every public entry point of the engine validates its inputs before running
any simulation loop. Problems are collected per field so that a form or an
API client can show all of them at once.
"""

from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, Optional

from .constants import MAX_LVR, MAX_TERM_YEARS, MIN_RATE_BPS
from .data_models import (
    LOAN_FREQUENCIES,
    ExtraPayment,
    Frequency,
    LoanStructure,
    LumpSum,
    MortgageInput,
    PropertyConfig,
    RateForecast,
    Region,
)


class ValidationError(ValueError):
    """Raised when engine inputs are structurally invalid.

    ``errors`` maps a field name to a human readable message.
    """

    def __init__(self, errors: Dict[str, str]) -> None:
        self.errors = dict(errors)
        message = "; ".join(f"{name}: {text}" for name, text in self.errors.items())
        super().__init__(message)


class _Collector:
    def __init__(self) -> None:
        self.errors: Dict[str, str] = {}

    def check(self, condition: bool, name: str, message: str) -> None:
        if not condition and name not in self.errors:
            self.errors[name] = message

    def raise_if_any(self) -> None:
        if self.errors:
            raise ValidationError(self.errors)


def _check_enum(errors: _Collector, enum_type, value, name: str) -> None:
    try:
        enum_type(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_type)
        errors.check(False, name, f"must be one of {allowed}")


def _check_mortgage(errors: _Collector, loan: MortgageInput, prefix: str = "") -> None:
    errors.check(loan.principal > 0, prefix + "principal", "must be positive")
    errors.check(loan.term_years > 0, prefix + "term_years", "must be positive")
    errors.check(
        loan.term_years <= MAX_TERM_YEARS,
        prefix + "term_years",
        f"must be at most {MAX_TERM_YEARS} years",
    )
    errors.check(loan.annual_rate > MIN_RATE_BPS, prefix + "annual_rate", "must be above -100%")
    _check_enum(errors, LoanStructure, loan.structure, prefix + "structure")
    _check_enum(errors, Region, loan.region, prefix + "region")
    try:
        frequency = Frequency(loan.frequency)
    except ValueError:
        frequency = None
    errors.check(
        frequency in LOAN_FREQUENCIES,
        prefix + "frequency",
        "must be one of Weekly, Fortnightly, Monthly",
    )
    errors.check(
        0 <= loan.io_years < max(loan.term_years, 1),
        prefix + "io_years",
        "must be between 0 and the loan term",
    )


def _check_forecasts(
    errors: _Collector,
    forecasts: Iterable[RateForecast],
    name: str,
    start_year: Optional[int],
) -> None:
    for forecast in forecasts:
        errors.check(forecast.rate > MIN_RATE_BPS, name, "rates must be above -100%")
        if start_year is not None:
            errors.check(
                forecast.year >= start_year,
                name,
                f"forecast year {forecast.year} is before the start year {start_year}",
            )


def _check_extras(
    errors: _Collector,
    extra_payments: Iterable[ExtraPayment],
    lump_sums: Iterable[LumpSum],
    first_repayment: date,
    prefix: str = "",
) -> None:
    for extra in extra_payments:
        errors.check(extra.amount >= 0, prefix + "extra_payments", "amounts must not be negative")
        _check_enum(errors, Frequency, extra.frequency, prefix + "extra_payments")
        if extra.end_date is not None:
            errors.check(
                extra.end_date >= extra.start_date,
                prefix + "extra_payments",
                "end date must not be before the start date",
            )
    for lump in lump_sums:
        errors.check(lump.amount >= 0, prefix + "lump_sums", "amounts must not be negative")
        errors.check(
            lump.date >= first_repayment,
            prefix + "lump_sums",
            "dates must not be before the first repayment",
        )


def validate_mortgage(loan: MortgageInput) -> None:
    errors = _Collector()
    _check_mortgage(errors, loan)
    errors.raise_if_any()


def validate_schedule_inputs(
    loan: MortgageInput,
    extra_payments: Iterable[ExtraPayment] = (),
    lump_sums: Iterable[LumpSum] = (),
    rate_forecasts: Iterable[RateForecast] = (),
    offset_balance: int = 0,
) -> None:
    errors = _Collector()
    _check_mortgage(errors, loan)
    _check_extras(errors, extra_payments, lump_sums, loan.start_date)
    _check_forecasts(errors, rate_forecasts, "rate_forecasts", loan.start_date.year)
    errors.check(offset_balance >= 0, "offset_balance", "must not be negative")
    errors.raise_if_any()


def _check_property(errors: _Collector, config: PropertyConfig, prefix: str = "") -> None:
    errors.check(config.property_value >= 0, prefix + "property_value", "must not be negative")
    for name in ("rental_income", "expenses", "depreciation", "offset_balance"):
        errors.check(getattr(config, name) >= 0, prefix + name, "must not be negative")
    for name in ("growth_rate", "rent_growth", "expense_growth"):
        errors.check(getattr(config, name) > MIN_RATE_BPS, prefix + name, "must be above -100%")
    _check_forecasts(errors, config.growth_forecasts, prefix + "growth_forecasts", config.base_year)
    if config.loan is None:
        return
    _check_mortgage(errors, config.loan, prefix + "loan.")
    _check_extras(errors, config.extra_payments, config.lump_sums, config.loan.start_date, prefix)
    _check_forecasts(errors, config.rate_forecasts, prefix + "rate_forecasts", config.base_year)
    if config.property_value > 0:
        errors.check(
            config.loan.principal * 100 <= config.property_value * MAX_LVR,
            prefix + "loan.principal",
            f"loan-to-value ratio must not exceed {MAX_LVR}%",
        )


def validate_property(config: PropertyConfig, require_loan: bool = False) -> None:
    errors = _Collector()
    if require_loan:
        errors.check(config.loan is not None, "loan", "a loan is required for a repayment projection")
    _check_property(errors, config)
    errors.raise_if_any()


def validate_portfolio(properties: Iterable[PropertyConfig], start_year: int, end_year: int) -> None:
    errors = _Collector()
    errors.check(end_year >= start_year, "end_year", "must not be before start_year")
    errors.check(
        end_year - start_year < MAX_TERM_YEARS,
        "end_year",
        f"projections are limited to {MAX_TERM_YEARS} years",
    )
    for index, config in enumerate(properties):
        _check_property(errors, config, f"properties[{index}].")
    errors.raise_if_any()


def validate_lvr(loan_amount: int, property_value: int) -> None:
    errors = _Collector()
    errors.check(loan_amount >= 0, "loan_amount", "must not be negative")
    errors.check(property_value > 0, "property_value", "must be positive")
    if property_value > 0:
        errors.check(
            loan_amount * 100 <= property_value * MAX_LVR,
            "loan_amount",
            f"loan-to-value ratio must not exceed {MAX_LVR}%",
        )
    errors.raise_if_any()


def validate_growth(
    current_value: int,
    growth_rate: int,
    years: int,
    forecasts: Iterable[RateForecast] = (),
    start_year: Optional[int] = None,
) -> None:
    errors = _Collector()
    errors.check(current_value >= 0, "current_value", "must not be negative")
    errors.check(growth_rate > MIN_RATE_BPS, "growth_rate", "must be above -100%")
    errors.check(years >= 0, "years", "must not be negative")
    _check_forecasts(errors, forecasts, "forecasts", start_year)
    errors.raise_if_any()
