import csv
import json
import unittest
from pathlib import Path

import click
from click.testing import CliRunner

from property_calc.main import cli, parse_amount, parse_percent, parse_scenario_opts

LOAN = ["-p", "500k", "-r", "6", "-t", "30", "-s", "2025-01"]


class TestParsers(unittest.TestCase):

    def test_parse_amount(self):
        self.assertEqual(parse_amount("500k"), 50_000_000)
        self.assertEqual(parse_amount("1.2m"), 120_000_000)
        self.assertEqual(parse_amount("$1,250.50"), 125_050)

    def test_parse_percent(self):
        self.assertEqual(parse_percent("6.5"), 650)
        self.assertEqual(parse_percent("6.5%"), 650)

    def test_non_finite_values_are_rejected(self):
        for text in ("inf", "nan", "-Infinity"):
            with self.assertRaises(click.BadParameter):
                parse_amount(text)
            with self.assertRaises(click.BadParameter):
                parse_percent(text)

    def test_parse_scenario(self):
        loan = parse_scenario_opts("-p 400k -r 5.5 -t 25 --frequency Weekly")
        self.assertEqual(loan.principal, 40_000_000)
        self.assertEqual(loan.annual_rate, 550)
        self.assertEqual(loan.term_years, 25)
        self.assertEqual(loan.frequency.value, "Weekly")


class TestCommands(unittest.TestCase):

    def setUp(self):
        self.runner = CliRunner()

    def test_repayment(self):
        result = self.runner.invoke(cli, ["repayment", *LOAN, "--region", "US"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Monthly repayment: 2,997.75", result.output)

    def test_schedule(self):
        result = self.runner.invoke(cli, ["schedule", "-p", "100k", "-r", "5", "-t", "1", "-s", "2025-01"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Summary", result.output)
        self.assertIn("Payments made       : 12", result.output)
        self.assertIn("2025-12-01", result.output)

    def test_schedule_with_extras_reports_savings(self):
        result = self.runner.invoke(cli, ["schedule", *LOAN, "--extra", "500:Monthly:2025-01", "--lump-sum", "2026-06-01:20k"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Interest saved", result.output)
        self.assertIn("showing first 120 rows", result.output)

    def test_schedule_exports(self):
        with self.runner.isolated_filesystem():
            result = self.runner.invoke(cli, ["schedule", *LOAN, "-t", "2", "--output", "out.json"])
            self.assertEqual(result.exit_code, 0, result.output)
            data = json.loads(Path("out.json").read_text())
            self.assertEqual(len(data["entries"]), 24)
            self.assertEqual(data["entries"][-1]["balance"], 0)

            result = self.runner.invoke(cli, ["schedule", *LOAN, "-t", "2", "--output", "out.csv"])
            self.assertEqual(result.exit_code, 0, result.output)
            with open("out.csv", newline="") as f:
                rows = list(csv.reader(f))
            self.assertEqual(rows[0][0], "Period")
            self.assertEqual(len(rows), 25)

            result = self.runner.invoke(cli, ["schedule", *LOAN, "--output", "out.txt"])
            self.assertNotEqual(result.exit_code, 0)

    def test_invalid_input_is_a_usage_error(self):
        result = self.runner.invoke(cli, ["repayment", "-p", "0", "-r", "6"])
        self.assertEqual(result.exit_code, 2)
        self.assertIn("principal", result.output)

    def test_project(self):
        result = self.runner.invoke(cli, ["project", *LOAN, "--value", "650k", "--rent", "30k", "--years", "3"])
        self.assertEqual(result.exit_code, 0, result.output)
        lines = result.output.strip().splitlines()
        self.assertTrue(lines[0].startswith("Year"))
        self.assertEqual([line.split("\t")[0] for line in lines[1:]], ["2025", "2026", "2027"])

    def test_compare(self):
        result = self.runner.invoke(
            cli,
            [
                "compare",
                "--scenario1", "-p 500k -r 6.5 -t 30 -s 2025-01 --region US",
                "--scenario2", "-p 500k -r 6.0 -t 30 -s 2025-01 --region US",
            ],
        )
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Comparison", result.output)
        self.assertIn("Scenario 2 saves $", result.output)

    def test_compare_rejects_bad_scenario(self):
        result = self.runner.invoke(cli, ["compare", "--scenario1", "-r 6", "--scenario2", "-p 1k -r 6"])
        self.assertEqual(result.exit_code, 2)

    def test_portfolio(self):
        portfolio = {
            "start_year": 2025,
            "end_year": 2030,
            "properties": [
                {"name": "Home", "property_value": 400000, "valuation_year": 2025},
                {
                    "name": "Rental",
                    "property_value": 600000,
                    "rental_income": 26000,
                    "expenses": 6000,
                    "loan": {"principal": 480000, "rate": 6, "term_years": 30, "start_date": "2025-01"},
                },
            ],
        }
        with self.runner.isolated_filesystem():
            Path("portfolio.json").write_text(json.dumps(portfolio))
            result = self.runner.invoke(
                cli, ["portfolio", "-f", "portfolio.json", "--marginal-rate", "37", "--shares-return", "7"]
            )
            self.assertEqual(result.exit_code, 0, result.output)
            self.assertIn("Tax benefit", result.output)
            self.assertIn("Share equity", result.output)
            self.assertIn("2030", result.output)

            Path("bad.json").write_text("{not json")
            result = self.runner.invoke(cli, ["portfolio", "-f", "bad.json"])
            self.assertEqual(result.exit_code, 2)

    def test_growth(self):
        result = self.runner.invoke(cli, ["growth", "--value", "500k", "--rate", "5", "--years", "2", "--start-year", "2025"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("2027\t551,250.00", result.output)
        self.assertIn("Total growth: 51,250.00 (10.25%)", result.output)

    def test_growth_rejects_rate_at_or_below_minus_100_percent(self):
        result = self.runner.invoke(cli, ["growth", "--value", "500k", "--rate", "-200", "--years", "2"])
        self.assertEqual(result.exit_code, 2)
        self.assertIn("growth_rate", result.output)

    def test_infinite_principal_is_a_usage_error(self):
        result = self.runner.invoke(cli, ["repayment", "--principal", "inf", "--rate", "6", "--term", "30"])
        self.assertEqual(result.exit_code, 2)
        self.assertIn("Invalid amount: inf", result.output)

    def test_lvr(self):
        result = self.runner.invoke(cli, ["lvr", "--loan", "450k", "--value", "500k"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("90.00%", result.output)
        self.assertIn("11,250.00", result.output)

    def test_tax(self):
        result = self.runner.invoke(
            cli,
            ["tax", "--rent", "20000", "--expenses", "5000", "--interest", "25000", "--depreciation", "3000",
             "--marginal-rate", "37"],
        )
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Tax benefit         : 4,810.00", result.output)

    def test_tax_needs_a_rate(self):
        result = self.runner.invoke(cli, ["tax", "--rent", "20000"])
        self.assertEqual(result.exit_code, 2)

    def test_income_tax(self):
        result = self.runner.invoke(cli, ["income-tax", "--gross", "100k"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Income tax          : 20,788.00", result.output)

    def test_stamp_duty(self):
        result = self.runner.invoke(cli, ["stamp-duty", "--price", "500k", "--state", "qld"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Stamp duty (QLD) : 16,000.00", result.output)
        self.assertIn("Total              : 20,000.00", result.output)


if __name__ == "__main__":
    unittest.main()
