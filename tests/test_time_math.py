import unittest

from eventstaff.services.time_math import (
    BreakInterval,
    assignment_break_hours,
    break_hours,
    hours_between,
    interval_hours,
    intervals_hours,
    parse_hhmm_minutes,
)


class TimeMathTests(unittest.TestCase):
    def test_parse_hhmm(self) -> None:
        self.assertEqual(parse_hhmm_minutes("09:30"), 570)
        self.assertEqual(parse_hhmm_minutes("07:05:00"), 425)
        self.assertEqual(parse_hhmm_minutes(" 24:00 "), 1440)
        self.assertIsNone(parse_hhmm_minutes("25:00"))
        self.assertIsNone(parse_hhmm_minutes("12:75"))
        self.assertIsNone(parse_hhmm_minutes("noon"))
        self.assertIsNone(parse_hhmm_minutes("9"))
        self.assertIsNone(parse_hhmm_minutes(""))
        self.assertIsNone(parse_hhmm_minutes(None))

    def test_same_day_window(self) -> None:
        self.assertEqual(hours_between("09:00", "13:00"), 4.0)
        self.assertEqual(hours_between("08:15", "12:45"), 4.5)

    def test_window_crossing_midnight(self) -> None:
        self.assertEqual(hours_between("22:00", "06:00"), 8.0)
        self.assertEqual(hours_between("23:30", "00:15"), 0.75)

    def test_equal_start_and_end_is_a_full_day(self) -> None:
        self.assertEqual(hours_between("08:00", "08:00"), 24.0)

    def test_missing_or_invalid_times_give_zero(self) -> None:
        self.assertEqual(hours_between("", "10:00"), 0.0)
        self.assertEqual(hours_between("09:00", None), 0.0)
        self.assertEqual(hours_between("xx:yy", "10:00"), 0.0)

    def test_break_hours_requires_flag_and_both_ends(self) -> None:
        self.assertEqual(break_hours(True, "12:00", "13:00"), 1.0)
        self.assertEqual(break_hours(True, "12:00", "12:30"), 0.5)
        self.assertEqual(break_hours(False, "12:00", "13:00"), 0.0)
        self.assertEqual(break_hours(True, "12:00", None), 0.0)
        self.assertEqual(break_hours(True, None, "13:00"), 0.0)

    def test_intervals_hours(self) -> None:
        intervals = [BreakInterval("10:00", "10:15"), BreakInterval("13:00", "13:45")]
        self.assertEqual(intervals_hours(intervals), 1.0)
        self.assertEqual(intervals_hours([]), 0.0)

    def test_interval_list_wins_over_single_break(self) -> None:
        total = assignment_break_hours(
            has_break=True,
            break_start="12:00",
            break_end="13:00",
            intervals=[BreakInterval("12:00", "12:30")],
        )
        self.assertEqual(total, 0.5)

    def test_empty_interval_counts_as_nothing(self) -> None:
        self.assertEqual(interval_hours("12:00", "12:00"), 0.0)
        self.assertEqual(interval_hours("23:45", "00:15"), 0.5)
        total = assignment_break_hours(
            has_break=True,
            break_start="12:00",
            break_end="13:00",
            intervals=[BreakInterval("12:00", "12:00"), BreakInterval("15:00", "15:30")],
        )
        self.assertEqual(total, 0.5)

    def test_single_break_used_without_intervals(self) -> None:
        total = assignment_break_hours(has_break=True, break_start="12:00", break_end="13:00")
        self.assertEqual(total, 1.0)
        self.assertEqual(assignment_break_hours(has_break=False, break_start="12:00", break_end="13:00"), 0.0)


if __name__ == "__main__":
    unittest.main()
