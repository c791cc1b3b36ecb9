import unittest
from datetime import date

from property_calc.amortization import generate_schedule
from property_calc.data_models import (
    ExtraPayment,
    Frequency,
    LoanStructure,
    MortgageInput,
    PropertyConfig,
    RateForecast,
    Region,
)
from property_calc.projection import (
    aggregate_by_year,
    calculate_lvr,
    calculate_tax,
    compare_scenarios,
    compare_to_baseline,
    project,
    project_cashflow,
    project_growth,
)
from property_calc.validation import ValidationError

START = date(2025, 1, 1)


def make_loan(**overrides):
    values = dict(principal=48_000_000, annual_rate=600, term_years=30, start_date=START)
    values.update(overrides)
    return MortgageInput(**values)


def make_config(**overrides):
    values = dict(
        name="Investment",
        property_value=60_000_000,
        loan=make_loan(),
        growth_rate=400,
        rental_income=2_400_000,
        rent_growth=300,
        expenses=600_000,
    )
    values.update(overrides)
    return PropertyConfig(**values)


class TestProject(unittest.TestCase):

    def setUp(self):
        self.config = make_config()
        self.rows = project(self.config)

    def test_runs_full_term(self):
        self.assertEqual(len(self.rows), 360)
        self.assertEqual(self.rows[-1].balance, 0)

    def test_years_limit(self):
        self.assertEqual(len(project(self.config, years=5)), 60)

    def test_equity_identity(self):
        for row in self.rows:
            self.assertEqual(row.equity, row.property_value - row.balance)

    def test_value_grows_at_year_boundary(self):
        first_year = {row.property_value for row in self.rows if row.year == 2025}
        second_year = {row.property_value for row in self.rows if row.year == 2026}
        self.assertEqual(first_year, {60_000_000})
        self.assertEqual(second_year, {62_400_000})

    def test_value_is_monotonic_with_positive_growth(self):
        values = [row.property_value for row in self.rows]
        self.assertEqual(values, sorted(values))

    def test_growth_forecast_overrides_rate(self):
        config = make_config(growth_forecasts=(RateForecast(2026, 0),))
        values = {row.property_value for row in project(config, years=3)}
        self.assertEqual(values, {60_000_000})

    def test_rent_and_expenses_per_period(self):
        first, second_year = self.rows[0], self.rows[12]
        self.assertEqual(first.rental, 200_000)
        self.assertEqual(first.expenses, 50_000)
        self.assertEqual(second_year.rental, 206_000)
        self.assertEqual(first.net_cashflow, first.rental - first.expenses - first.payment)

    def test_lvr(self):
        self.assertLess(self.rows[0].lvr, 80.0)
        self.assertGreater(self.rows[0].lvr, 79.0)
        self.assertEqual(self.rows[-1].lvr, 0.0)

    def test_requires_loan(self):
        with self.assertRaises(ValidationError) as ctx:
            project(make_config(loan=None))
        self.assertIn("loan", ctx.exception.errors)

    def test_rejects_lvr_above_100(self):
        with self.assertRaises(ValidationError) as ctx:
            project(make_config(property_value=40_000_000))
        self.assertIn("loan.principal", ctx.exception.errors)


class TestAggregateByYear(unittest.TestCase):

    def test_yearly_totals(self):
        config = make_config()
        rows = project(config)
        summaries = aggregate_by_year(rows)
        schedule = generate_schedule(config.loan)
        self.assertEqual(len(summaries), 30)
        self.assertEqual([s.year for s in summaries], list(range(2025, 2055)))
        self.assertEqual(sum(s.total_payment for s in summaries), schedule.total_paid)
        self.assertEqual(summaries[0].end_balance, rows[11].balance)
        self.assertEqual(summaries[0].rental, 2_400_000)
        self.assertEqual(summaries[-1].end_balance, 0)

    def test_empty(self):
        self.assertEqual(aggregate_by_year([]), [])


class TestCompareToBaseline(unittest.TestCase):

    def test_no_extras_saves_nothing(self):
        savings = compare_to_baseline(make_config())
        self.assertEqual(savings.periods_saved, 0)
        self.assertEqual(savings.interest_saved, 0)

    def test_extras_save_interest_and_time(self):
        extra = ExtraPayment(amount=100_000, frequency=Frequency.MONTHLY, start_date=START)
        savings = compare_to_baseline(make_config(extra_payments=(extra,), offset_balance=2_000_000))
        self.assertGreater(savings.periods_saved, 0)
        self.assertGreater(savings.interest_saved, 0)
        self.assertEqual(savings.baseline_periods, 360)


class TestProjectGrowth(unittest.TestCase):

    def test_compound_growth(self):
        forecast = project_growth(50_000_000, 500, 2)
        self.assertEqual(forecast.years, [0, 1, 2])
        self.assertEqual(forecast.values, [50_000_000, 52_500_000, 55_125_000])
        self.assertEqual(forecast.total_growth, 5_125_000)
        self.assertEqual(forecast.total_growth_percent, 10.25)

    def test_forecasts_use_calendar_years(self):
        forecast = project_growth(50_000_000, 500, 3, [RateForecast(2027, 0)], start_year=2025)
        self.assertEqual(forecast.values, [50_000_000, 52_500_000, 52_500_000, 52_500_000])

    def test_zero_years(self):
        forecast = project_growth(50_000_000, 500, 0)
        self.assertEqual(forecast.values, [50_000_000])
        self.assertEqual(forecast.total_growth_percent, 0.0)

    def test_zero_growth_is_constant(self):
        forecast = project_growth(50_000_000, 0, 10)
        self.assertEqual(set(forecast.values), {50_000_000})
        self.assertEqual(forecast.total_growth, 0)

    def test_negative_growth_strictly_decreases(self):
        values = project_growth(50_000_000, -300, 10).values
        for earlier, later in zip(values, values[1:]):
            self.assertLess(later, earlier)
        self.assertGreater(values[-1], 0)

    def test_negative_years(self):
        with self.assertRaises(ValidationError) as ctx:
            project_growth(50_000_000, 500, -1)
        self.assertIn("years", ctx.exception.errors)

    def test_rate_at_minus_100_percent_is_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            project_growth(50_000_000, -20_000, 2)
        self.assertIn("growth_rate", ctx.exception.errors)
        with self.assertRaises(ValidationError) as ctx:
            project_growth(50_000_000, 500, 3, [RateForecast(2026, -10_000)], start_year=2025)
        self.assertIn("forecasts", ctx.exception.errors)


class TestCalculateLVR(unittest.TestCase):

    def test_at_threshold_no_insurance(self):
        result = calculate_lvr(40_000_000, 50_000_000)
        self.assertEqual(result.lvr, 80.0)
        self.assertFalse(result.requires_lmi)
        self.assertEqual(result.lmi, 0)
        self.assertEqual(result.equity, 10_000_000)

    def test_above_threshold(self):
        result = calculate_lvr(45_000_000, 50_000_000)
        self.assertEqual(result.lvr, 90.0)
        self.assertTrue(result.requires_lmi)
        self.assertEqual(result.lmi, 1_125_000)

    def test_uk_threshold_is_lower(self):
        result = calculate_lvr(40_000_000, 50_000_000, Region.UK)
        self.assertTrue(result.requires_lmi)
        self.assertEqual(result.lmi, 600_000)

    def test_rejects_invalid(self):
        with self.assertRaises(ValidationError):
            calculate_lvr(60_000_000, 50_000_000)
        with self.assertRaises(ValidationError):
            calculate_lvr(10_000_000, 0)


class TestCashflowAndTax(unittest.TestCase):

    def test_cashflow(self):
        loan = make_loan(principal=50_000_000, region=Region.US)
        rows = project_cashflow(loan, 3_000_000, 1_200_000, depreciation=1_200_000)
        self.assertEqual(len(rows), 360)
        first = rows[0]
        self.assertEqual((first.rental, first.expenses, first.depreciation), (250_000, 100_000, 100_000))
        self.assertEqual(first.loan_repayment, 299_775)
        self.assertEqual(first.net_cashflow, 250_000 - 100_000 - 299_775)
        self.assertEqual(rows[-1].cumulative_cashflow, sum(row.net_cashflow for row in rows))

    def test_negative_gearing(self):
        result = calculate_tax(2_000_000, 500_000, 2_500_000, 300_000, 3700)
        self.assertEqual(result.deductible_expenses, 3_300_000)
        self.assertEqual(result.taxable_income, -1_300_000)
        self.assertEqual(result.tax_benefit, 481_000)
        self.assertEqual(result.effective_cashflow, -519_000)

    def test_positive_gearing_has_no_benefit(self):
        result = calculate_tax(5_000_000, 500_000, 500_000, 0, 3700)
        self.assertEqual(result.taxable_income, 4_000_000)
        self.assertEqual(result.tax_benefit, 0)
        self.assertEqual(result.effective_cashflow, 4_000_000)


class TestCompareScenarios(unittest.TestCase):

    def setUp(self):
        self.dear = make_loan(principal=50_000_000, annual_rate=650, region=Region.US)
        self.cheap = make_loan(principal=50_000_000, annual_rate=600, region=Region.US)

    def test_cheaper_second_scenario(self):
        comparison = compare_scenarios(self.dear, self.cheap)
        self.assertGreater(comparison.savings, 0)
        self.assertGreater(comparison.savings_percent, 0)
        self.assertTrue(comparison.recommendation.startswith("Scenario 2 saves $"))
        self.assertTrue(comparison.recommendation.endswith("over the life of the loan."))
        first, second = comparison.scenarios
        self.assertEqual(comparison.savings, first.total_cost - second.total_cost)
        self.assertEqual(second.repayment, 299_775)

    def test_symmetry(self):
        forward = compare_scenarios(self.dear, self.cheap)
        backward = compare_scenarios(self.cheap, self.dear)
        self.assertEqual(backward.savings, -forward.savings)
        self.assertEqual(backward.savings_percent, -forward.savings_percent)
        self.assertEqual(
            backward.recommendation, forward.recommendation.replace("Scenario 2", "Scenario 1")
        )

    def test_equal_cost(self):
        comparison = compare_scenarios(self.cheap, self.cheap)
        self.assertEqual(comparison.savings, 0)
        self.assertEqual(comparison.savings_percent, 0.0)
        self.assertEqual(comparison.recommendation, "Both scenarios result in the same total cost.")

    def test_interest_only_costs_more(self):
        io = make_loan(principal=50_000_000, region=Region.US, structure=LoanStructure.INTEREST_ONLY)
        comparison = compare_scenarios(io, self.cheap)
        # The interest-only loan pays interest on the full balance for the whole term
        self.assertEqual(comparison.scenarios[0].total_interest, 250_000 * 360)
        self.assertGreater(comparison.scenarios[0].total_interest, comparison.scenarios[1].total_interest)

    def test_interest_only_cost_includes_outstanding_principal(self):
        io = make_loan(principal=50_000_000, region=Region.US, structure=LoanStructure.INTEREST_ONLY)
        comparison = compare_scenarios(self.cheap, io)
        self.assertEqual(comparison.scenarios[1].total_cost, 250_000 * 360 + 50_000_000)
        self.assertLess(comparison.savings, 0)
        self.assertTrue(comparison.recommendation.startswith("Scenario 1 saves $"))


if __name__ == "__main__":
    unittest.main()
