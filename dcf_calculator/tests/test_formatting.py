import math
import unittest

from dcf_calculator.formatting import clean_number, clean_payload, format_currency, format_result, to_fixed
from dcf_calculator.valuation import compute_valuation


class ToFixedTests(unittest.TestCase):
    def test_rounds_to_two_decimals(self):
        self.assertEqual(to_fixed(379.078676), "379.08")
        self.assertEqual(to_fixed(1275), "1275.00")
        self.assertEqual(to_fixed(0.125), "0.13")
        self.assertEqual(to_fixed(-0.125), "-0.13")

    def test_uses_exact_binary_value(self):
        self.assertEqual(to_fixed(1.005), "1.00")
        self.assertEqual(to_fixed(2.675), "2.67")

    def test_custom_digits(self):
        self.assertEqual(to_fixed(1.5, 0), "2")
        self.assertEqual(to_fixed(0.826446281, 4), "0.8264")

    def test_zero_and_negative_zero(self):
        self.assertEqual(to_fixed(0.0), "0.00")
        self.assertEqual(to_fixed(-0.0), "0.00")
        self.assertEqual(to_fixed(-0.001), "-0.00")

    def test_non_finite_values(self):
        self.assertEqual(to_fixed(math.inf), "Infinity")
        self.assertEqual(to_fixed(-math.inf), "-Infinity")
        self.assertEqual(to_fixed(math.nan), "NaN")

    def test_very_large_values_use_exponent(self):
        self.assertEqual(to_fixed(1e21), "1e+21")
        self.assertEqual(to_fixed(10 ** 21), "1e+21")
        self.assertEqual(to_fixed(-(10 ** 22)), "-1e+22")


class DisplayTests(unittest.TestCase):
    def test_format_currency(self):
        self.assertEqual(format_currency(1234.5), "$1234.50")
        self.assertEqual(format_currency(-10, "€"), "€-10.00")
        self.assertEqual(format_currency(math.inf), "$Infinity")

    def test_format_result_reference_case(self):
        result = compute_valuation([100] * 5, 0.10, 0.02, debt=200, cash=50)
        self.assertEqual(
            format_result(result),
            {
                "dcfValue": "$379.08",
                "terminalValue": "$1275.00",
                "discountedTerminalValue": "$791.67",
                "enterpriseValue": "$1170.75",
                "equityValue": "$1020.75",
            },
        )


class CleanNumberTests(unittest.TestCase):
    def test_non_finite_values_become_none(self):
        self.assertIsNone(clean_number(math.inf))
        self.assertIsNone(clean_number(math.nan))
        self.assertIsNone(clean_number(None))
        self.assertIsNone(clean_number("not a number"))
        self.assertEqual(clean_number(12.5), 12.5)

    def test_clean_payload_only_touches_floats(self):
        payload = clean_payload({"year": 3, "value": math.inf, "label": "x", "pv": 1.5})
        self.assertEqual(payload, {"year": 3, "value": None, "label": "x", "pv": 1.5})


if __name__ == "__main__":
    unittest.main()
