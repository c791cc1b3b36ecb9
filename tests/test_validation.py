import unittest
from datetime import date

from property_calc.data_models import ExtraPayment, Frequency, MortgageInput, PropertyConfig, RateForecast
from property_calc.validation import (
    ValidationError,
    validate_growth,
    validate_lvr,
    validate_mortgage,
    validate_portfolio,
    validate_property,
)

START = date(2025, 1, 1)


def make_loan(**overrides):
    values = dict(principal=50_000_000, annual_rate=600, term_years=30, start_date=START)
    values.update(overrides)
    return MortgageInput(**values)


class TestValidation(unittest.TestCase):

    def test_valid_loan(self):
        validate_mortgage(make_loan())

    def test_collects_all_errors(self):
        with self.assertRaises(ValidationError) as ctx:
            validate_mortgage(make_loan(principal=-1, term_years=0, annual_rate=-10000))
        errors = ctx.exception.errors
        self.assertEqual(set(errors), {"principal", "term_years", "annual_rate"})
        self.assertIn("principal: must be positive", str(ctx.exception))

    def test_is_a_value_error(self):
        with self.assertRaises(ValueError):
            validate_mortgage(make_loan(principal=0))

    def test_term_limit(self):
        with self.assertRaises(ValidationError) as ctx:
            validate_mortgage(make_loan(term_years=101))
        self.assertIn("term_years", ctx.exception.errors)

    def test_unknown_enum_values(self):
        with self.assertRaises(ValidationError) as ctx:
            validate_mortgage(make_loan(structure="Balloon", region="NZ"))
        self.assertIn("structure", ctx.exception.errors)
        self.assertIn("region", ctx.exception.errors)

    def test_annual_frequency_is_not_a_loan_frequency(self):
        with self.assertRaises(ValidationError) as ctx:
            validate_mortgage(make_loan(frequency=Frequency.ANNUALLY))
        self.assertIn("frequency", ctx.exception.errors)

    def test_io_years_within_term(self):
        with self.assertRaises(ValidationError):
            validate_mortgage(make_loan(io_years=30))

    def test_property_checks(self):
        config = PropertyConfig(
            name="x",
            property_value=60_000_000,
            loan=make_loan(),
            rental_income=-1,
            extra_payments=(ExtraPayment(100, Frequency.MONTHLY, date(2025, 5, 1), date(2025, 4, 1)),),
            growth_forecasts=(RateForecast(2020, 300),),
        )
        with self.assertRaises(ValidationError) as ctx:
            validate_property(config)
        errors = ctx.exception.errors
        self.assertIn("rental_income", errors)
        self.assertIn("extra_payments", errors)
        self.assertIn("growth_forecasts", errors)

    def test_property_without_loan(self):
        validate_property(PropertyConfig(name="home", property_value=0, valuation_year=2025))

    def test_portfolio_range(self):
        with self.assertRaises(ValidationError):
            validate_portfolio([], 2025, 2200)

    def test_lvr(self):
        validate_lvr(50_000_000, 50_000_000)
        with self.assertRaises(ValidationError) as ctx:
            validate_lvr(50_000_001, 50_000_000)
        self.assertIn("loan_amount", ctx.exception.errors)

    def test_growth(self):
        validate_growth(50_000_000, -300, 10)
        with self.assertRaises(ValidationError) as ctx:
            validate_growth(-1, -10_000, -1, [RateForecast(2024, 300)], 2025)
        self.assertEqual(set(ctx.exception.errors), {"current_value", "growth_rate", "years", "forecasts"})


if __name__ == "__main__":
    unittest.main()
