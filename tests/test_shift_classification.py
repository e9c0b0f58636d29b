import unittest

from eventstaff.services.shift_classification import NO_CREDIT, ShiftCredit, classify, classify_people


class ShiftClassificationTests(unittest.TestCase):
    def test_short_shift_counts_as_one(self) -> None:
        self.assertEqual(classify(4, 8), ShiftCredit(shifts=1, overtime_hours=0.0))

    def test_exact_shift(self) -> None:
        self.assertEqual(classify(8, 8), ShiftCredit(shifts=1, overtime_hours=0.0))

    def test_overtime_beyond_shift_length(self) -> None:
        self.assertEqual(classify(10, 8), ShiftCredit(shifts=1, overtime_hours=2.0))

    def test_long_day_is_still_one_shift(self) -> None:
        self.assertEqual(classify(20, 8), ShiftCredit(shifts=1, overtime_hours=12.0))

    def test_without_shift_length_everything_is_overtime(self) -> None:
        self.assertEqual(classify(5, None), ShiftCredit(shifts=0, overtime_hours=5))
        self.assertEqual(classify(5, 0), ShiftCredit(shifts=0, overtime_hours=5))

    def test_classify_people_scales_by_headcount(self) -> None:
        self.assertEqual(classify_people([10, 10], 8), ShiftCredit(shifts=2, overtime_hours=4.0))
        self.assertEqual(classify_people([6, 10, 6], 8), ShiftCredit(shifts=3, overtime_hours=2.0))

    def test_classify_people_empty(self) -> None:
        self.assertEqual(classify_people([], 8), NO_CREDIT)

    def test_credit_addition(self) -> None:
        total = ShiftCredit(shifts=1, overtime_hours=0.5) + ShiftCredit(shifts=2, overtime_hours=1.0)
        self.assertEqual(total, ShiftCredit(shifts=3, overtime_hours=1.5))


if __name__ == "__main__":
    unittest.main()
