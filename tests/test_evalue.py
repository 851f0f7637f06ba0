import unittest

from hitgff.core.evalue import EValue


class TestEValue(unittest.TestCase):

    def test_parse_string(self):
        e = EValue("1e-50")
        self.assertEqual(e.coefficient, 1.0)
        self.assertEqual(e.exponent, -50)

    def test_parse_keeps_values_below_float_range(self):
        e = EValue("3.2e-500")
        self.assertEqual(e.coefficient, 3.2)
        self.assertEqual(e.exponent, -500)
        self.assertEqual(str(e), "3.20e-500")

    def test_parse_float_and_int(self):
        self.assertEqual(EValue(1e-5), EValue("1e-5"))
        self.assertEqual(EValue(10).exponent, 1)

    def test_two_decimal_precision(self):
        self.assertEqual(EValue("1.234e-10").coefficient, 1.23)

    def test_rounding_carries_into_exponent(self):
        e = EValue("9.996e-5")
        self.assertEqual(e.coefficient, 1.0)
        self.assertEqual(e.exponent, -4)

    def test_zero(self):
        e = EValue("0.0")
        self.assertEqual((e.coefficient, e.exponent), (0.0, 0))
        self.assertLess(e, EValue("1e-300"))

    def test_ordering(self):
        self.assertLess(EValue("1e-50"), EValue("1e-5"))
        self.assertLess(EValue("2e-6"), EValue("3e-6"))
        self.assertGreater(EValue("0.5"), EValue("1e-5"))
        self.assertLessEqual(EValue("1e-5"), 1e-5)
        self.assertEqual(sorted([EValue("1e-3"), EValue("1e-9"), EValue("5e-9")]),
                         [EValue("1e-9"), EValue("5e-9"), EValue("1e-3")])

    def test_ordering_against_numbers(self):
        self.assertLessEqual(EValue("1e-5"), 1e-5)
        self.assertGreaterEqual(EValue("1e-5"), 1e-5)
        self.assertLess(EValue("1e-500"), 0.001)
        self.assertGreater(1, EValue("0.5"))

    def test_hashable(self):
        self.assertEqual(len({EValue("1e-5"), EValue(1e-5), EValue("2e-5")}), 2)
        self.assertEqual(hash(EValue("1e-5")), hash(EValue(1e-5)))

    def test_equality_only_between_evalues(self):
        self.assertNotEqual(EValue(1e-5), 1e-5)
        self.assertNotEqual(1, EValue(1))
        self.assertNotEqual(EValue("1e-5"), "1e-5")
        self.assertEqual(len({EValue(1e-5), 1e-5}), 2)

    def test_str_and_float(self):
        self.assertEqual(str(EValue("1e-50")), "1.00e-50")
        self.assertEqual(str(EValue("0.5")), "5.00e-01")
        self.assertAlmostEqual(float(EValue("2.5e-3")), 0.0025)
        self.assertEqual(float(EValue("1e-500")), 0.0)

    def test_multiplication(self):
        e = EValue("2e-10") * 1000
        self.assertEqual(e, EValue("2e-7"))
        self.assertEqual(3 * EValue("4e-5"), EValue("1.2e-4"))

    def test_invalid(self):
        with self.assertRaises(ValueError):
            EValue("not-a-number")
        with self.assertRaises(ValueError):
            EValue("inf")


if __name__ == '__main__':
    unittest.main()
