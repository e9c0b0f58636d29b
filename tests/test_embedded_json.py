import unittest

from eventstaff.services.embedded_json import (
    AssignedUser,
    ParseStatus,
    first_requested_duty,
    parse_assigned_users,
    parse_break_intervals,
    parse_embedded_list,
    parse_id_list,
)
from eventstaff.services.time_math import BreakInterval


class EmbeddedJsonTests(unittest.TestCase):
    def test_blank_and_empty_arrays_are_empty(self) -> None:
        self.assertEqual(parse_embedded_list(None).status, ParseStatus.EMPTY)
        self.assertEqual(parse_embedded_list("   ").status, ParseStatus.EMPTY)
        self.assertEqual(parse_embedded_list("[]").status, ParseStatus.EMPTY)

    def test_valid_array(self) -> None:
        parsed = parse_embedded_list('[1, "a"]')
        self.assertTrue(parsed.is_ok)
        self.assertEqual(parsed.items, (1, "a"))

    def test_malformed_json_is_logged_and_reported(self) -> None:
        with self.assertLogs("eventstaff.embedded_json", level="WARNING") as captured:
            parsed = parse_embedded_list("[{oops", field="assigned_users", owner_id="as-9")

        self.assertEqual(parsed.status, ParseStatus.MALFORMED)
        self.assertEqual(parsed.items, ())
        self.assertIsNotNone(parsed.error)
        self.assertEqual(captured.records[0].getMessage(), "embedded_json_malformed")
        self.assertEqual(captured.records[0].owner_id, "as-9")
        self.assertEqual(captured.records[0].field, "assigned_users")

    def test_non_array_document_is_malformed(self) -> None:
        with self.assertLogs("eventstaff.embedded_json", level="WARNING"):
            parsed = parse_embedded_list('{"userId": "u1"}')
        self.assertEqual(parsed.status, ParseStatus.MALFORMED)

    def test_assigned_users_with_duties(self) -> None:
        raw = '[{"userId": "u1", "dutyId": "d1"}, {"userId": "u2", "dutyId": null}, {"dutyId": "d3"}]'
        self.assertEqual(
            parse_assigned_users(raw),
            [AssignedUser(user_id="u1", duty_id="d1"), AssignedUser(user_id="u2", duty_id=None)],
        )

    def test_assigned_users_legacy_id_strings(self) -> None:
        self.assertEqual(
            parse_assigned_users('["u1", "", "u2"]'),
            [AssignedUser(user_id="u1"), AssignedUser(user_id="u2")],
        )

    def test_first_requested_duty(self) -> None:
        raw = '[{"dutyId": "d-x", "quantity": 2}, {"dutyId": "d-y", "quantity": 1}]'
        self.assertEqual(first_requested_duty(raw), "d-x")
        self.assertIsNone(first_requested_duty('[{"quantity": 2}]'))
        self.assertIsNone(first_requested_duty("[]"))
        self.assertIsNone(first_requested_duty(None))

    def test_break_intervals_skip_incomplete_items(self) -> None:
        raw = '[{"start": "10:00", "end": "10:15"}, {"start": "13:00"}, "12:00"]'
        self.assertEqual(parse_break_intervals(raw), [BreakInterval("10:00", "10:15")])

    def test_id_list(self) -> None:
        self.assertEqual(parse_id_list('["c1", 3, "c2"]'), ["c1", "c2"])
        self.assertEqual(parse_id_list(None), [])


if __name__ == "__main__":
    unittest.main()
