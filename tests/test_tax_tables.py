import unittest

from property_calc.constants import calculate_lmi, regional_stamp_duty
from property_calc.data_models import Region
from property_calc.tax_tables import (
    calculate_income_tax,
    calculate_stamp_duty,
    marginal_rate,
    purchase_costs,
)


class TestStampDuty(unittest.TestCase):

    def test_queensland(self):
        self.assertEqual(calculate_stamp_duty(50_000_000, "QLD"), 1_600_000)

    def test_new_south_wales(self):
        self.assertEqual(calculate_stamp_duty(80_000_000, "NSW"), 3_120_750)

    def test_full_state_name(self):
        self.assertEqual(calculate_stamp_duty(50_000_000, "Queensland"), 1_600_000)

    def test_every_state_charges_duty(self):
        for state in ("QLD", "NSW", "VIC", "SA", "WA", "TAS", "ACT", "NT"):
            self.assertGreater(calculate_stamp_duty(100_000_000, state), 0, state)

    def test_unknown_state_warns(self):
        with self.assertLogs("property_calc.tax_tables", level="WARNING"):
            self.assertEqual(calculate_stamp_duty(50_000_000, "XYZ"), 0)

    def test_purchase_costs(self):
        costs = purchase_costs(50_000_000, "QLD")
        self.assertEqual(costs.stamp_duty, 1_600_000)
        self.assertEqual(costs.total, 1_600_000 + 200_000 + 50_000 + 150_000)

    def test_regional_flat_rate(self):
        self.assertEqual(regional_stamp_duty(50_000_000, Region.AU), 2_000_000)
        self.assertEqual(regional_stamp_duty(50_000_000, Region.US), 0)
        self.assertEqual(regional_stamp_duty(50_000_000, Region.UK), 1_000_000)


class TestMortgageInsurance(unittest.TestCase):

    def test_bands(self):
        self.assertEqual(calculate_lmi(40_000_000, 80.0), 0)
        self.assertEqual(calculate_lmi(40_000_000, 82.5), 600_000)
        self.assertEqual(calculate_lmi(40_000_000, 90.0), 1_000_000)
        self.assertEqual(calculate_lmi(40_000_000, 97.0), 1_600_000)

    def test_custom_threshold(self):
        self.assertEqual(calculate_lmi(40_000_000, 78.0, threshold=75), 600_000)


class TestIncomeTax(unittest.TestCase):

    def test_hundred_thousand(self):
        result = calculate_income_tax(10_000_000)
        self.assertEqual(result.income_tax, 2_078_800)
        self.assertEqual(result.medicare_levy, 200_000)
        self.assertEqual(result.medicare_levy_surcharge, 100_000)
        self.assertEqual(result.help_repayment, 0)
        self.assertEqual(result.superannuation, 1_150_000)
        self.assertEqual(result.net_income, 10_000_000 - 2_078_800 - 200_000 - 100_000)

    def test_private_health_avoids_surcharge(self):
        result = calculate_income_tax(10_000_000, has_private_health=True)
        self.assertEqual(result.medicare_levy_surcharge, 0)
        self.assertEqual(result.net_income, 7_721_200)

    def test_help_debt(self):
        result = calculate_income_tax(10_000_000, has_help_debt=True, has_private_health=True)
        self.assertEqual(result.help_repayment, 550_000)

    def test_low_income(self):
        result = calculate_income_tax(1_800_000)
        self.assertEqual(result.income_tax, 0)
        self.assertEqual(result.medicare_levy, 0)

    def test_super_inclusive_package(self):
        result = calculate_income_tax(11_500_000, super_inclusive=True)
        self.assertEqual(result.gross_income + result.superannuation, 11_500_000)
        self.assertLess(result.gross_income, 11_500_000)

    def test_marginal_rate(self):
        self.assertEqual(marginal_rate(1_800_000), 0)
        self.assertEqual(marginal_rate(4_000_000), 1600)
        self.assertEqual(marginal_rate(10_000_000), 3000)
        self.assertEqual(marginal_rate(20_000_000), 4500)


if __name__ == "__main__":
    unittest.main()
