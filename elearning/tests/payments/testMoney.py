from decimal import Decimal

from django.test import SimpleTestCase

from elearning.payments.money import cents_to_unit, percent_of, to_cents


class ToCentsTests(SimpleTestCase):
    def test_converts_common_inputs(self):
        cases = [
            ("49.99", 4999),
            (Decimal("49.99"), 4999),
            (49.99, 4999),
            (10, 1000),
            ("0.005", 1),
            ("0.004", 0),
            (None, 0),
            ("", 0),
        ]
        for unit, expected in cases:
            with self.subTest(unit=unit):
                self.assertEqual(to_cents(unit), expected)

    def test_float_sums_do_not_drift(self):
        self.assertEqual(to_cents(0.1 + 0.2), 30)
        total = sum(to_cents(19.99) for _ in range(1000))
        self.assertEqual(total, 1999000)


class CentsToUnitTests(SimpleTestCase):
    def test_two_decimal_places(self):
        self.assertEqual(cents_to_unit(4749), Decimal("47.49"))
        self.assertEqual(cents_to_unit(5), Decimal("0.05"))
        self.assertEqual(str(cents_to_unit(100)), "1.00")

    def test_none_is_zero(self):
        self.assertEqual(cents_to_unit(None), Decimal("0.00"))

    def test_fractional_cents_are_rounded_first(self):
        self.assertEqual(cents_to_unit(Decimal("4749.5")), Decimal("47.50"))
        self.assertEqual(cents_to_unit(4749.4), Decimal("47.49"))


class PercentOfTests(SimpleTestCase):
    def test_half_up(self):
        self.assertEqual(percent_of(4999, 5), 250)  # 249.95
        self.assertEqual(percent_of(4999, 20), 1000)  # 999.8
        self.assertEqual(percent_of(1, 50), 1)  # 0.5
        self.assertEqual(percent_of(1000, Decimal("17.5")), 175)

    def test_bounds(self):
        self.assertEqual(percent_of(4999, 0), 0)
        self.assertEqual(percent_of(4999, 100), 4999)
