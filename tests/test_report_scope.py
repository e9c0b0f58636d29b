import unittest
from datetime import date

from report_fixtures import ScheduleBuilder, entry, make_session

from eventstaff.models import TaskTypeKind
from eventstaff.services.report_repository import (
    AssignmentRecord,
    DutyRecord,
    ReportRepository,
    TaskTypeRecord,
)
from eventstaff.services.report_scope import (
    ClientScope,
    DutyScope,
    DutySource,
    EmployeeScope,
    EventScope,
    LookupCache,
    TimesheetScope,
    resolve_assignments,
    resolve_user_duties,
)


class _CountingRepository:
    def __init__(self) -> None:
        self.duty_calls: list[set[str]] = []
        self.task_type_calls: list[set[str]] = []

    def find_duties(self, duty_ids):  # type: ignore[no-untyped-def]
        self.duty_calls.append(set(duty_ids))
        return {"d1": DutyRecord(id="d1", code="GPG", name="Guardia")}

    def find_task_types(self, task_type_ids):  # type: ignore[no-untyped-def]
        self.task_type_calls.append(set(task_type_ids))
        return {"tt1": TaskTypeRecord(id="tt1", name="Vigilanza")}


class ResolveUserDutiesTests(unittest.TestCase):
    def test_assigned_users_give_duties_and_headcount(self) -> None:
        record = AssignmentRecord(
            id="as-1",
            workday_id="wd-1",
            task_type_id="tt1",
            assigned_users_json='[{"userId": "u1", "dutyId": "d-a"}, {"userId": "u2", "dutyId": null}]',
        )
        duties, people, source = resolve_user_duties(record)

        self.assertEqual(duties, {"u1": "d-a"})
        self.assertEqual(people, ("u1", "u2"))
        self.assertEqual(source, DutySource.ASSIGNED_USERS)

    def test_personnel_request_duty_applies_to_everybody(self) -> None:
        record = AssignmentRecord(
            id="as-1",
            workday_id="wd-1",
            task_type_id="tt1",
            personnel_requests_json='[{"dutyId": "d-x", "quantity": 2}, {"dutyId": "d-y", "quantity": 1}]',
            time_entries=(entry("u1", 8), entry("u2", 8)),
        )
        duties, people, source = resolve_user_duties(record)

        self.assertEqual(duties, {"u1": "d-x", "u2": "d-x"})
        self.assertEqual(people, ("u1", "u2"))
        self.assertEqual(source, DutySource.PERSONNEL_REQUESTS)

    def test_malformed_assigned_users_falls_back_to_time_entries(self) -> None:
        record = AssignmentRecord(
            id="as-7",
            workday_id="wd-1",
            task_type_id="tt1",
            assigned_users_json="[{broken",
            time_entries=(entry("u1", 6),),
        )
        with self.assertLogs("eventstaff.embedded_json", level="WARNING") as captured:
            duties, people, source = resolve_user_duties(record)

        self.assertEqual(duties, {})
        self.assertEqual(people, ("u1",))
        self.assertEqual(source, DutySource.NONE)
        self.assertEqual(captured.records[0].owner_id, "as-7")

    def test_legacy_id_list(self) -> None:
        record = AssignmentRecord(id="as-1", workday_id="wd-1", task_type_id="tt1", assigned_users_json='["u1", "u2"]')
        _, people, _ = resolve_user_duties(record)
        self.assertEqual(people, ("u1", "u2"))

    def test_direct_user_is_last_resort(self) -> None:
        record = AssignmentRecord(id="as-1", workday_id="wd-1", task_type_id="tt1", user_id="u9")
        duties, people, source = resolve_user_duties(record)

        self.assertEqual(people, ("u9",))
        self.assertEqual(duties, {})
        self.assertEqual(source, DutySource.NONE)


class LookupCacheTests(unittest.TestCase):
    def test_each_id_is_fetched_once(self) -> None:
        repository = _CountingRepository()
        cache = LookupCache(repository)  # type: ignore[arg-type]

        cache.warm(duty_ids=["d1", "d-missing"], task_type_ids=["tt1"])
        self.assertEqual(cache.duty("d1").code, "GPG")
        self.assertIsNone(cache.duty("d-missing"))
        self.assertEqual(cache.task_type("tt1").name, "Vigilanza")
        cache.warm(duty_ids=["d1", "d-missing"], task_type_ids=["tt1"])

        self.assertEqual(repository.duty_calls, [{"d1", "d-missing"}])
        self.assertEqual(repository.task_type_calls, [{"tt1"}])
        self.assertEqual(set(cache.known_duties()), {"d1"})

    def test_blank_ids_are_ignored(self) -> None:
        repository = _CountingRepository()
        cache = LookupCache(repository)  # type: ignore[arg-type]

        cache.warm(duty_ids=["", ""])
        self.assertEqual(repository.duty_calls, [])


class ResolveAssignmentsTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session()
        self.repository = ReportRepository(self.db)
        build = ScheduleBuilder(self.db)

        self.client_a = build.client("CLI-A", ragione_sociale="Alfa Eventi Srl")
        self.client_b = build.client("CLI-B", ragione_sociale="Beta Congressi")
        self.fiera = build.location("Fiera", city="Rimini")
        self.palazzo = build.location("Palazzo dei Congressi", city="Rimini")
        self.event = build.event("Expo Rimini", clients=[self.client_a, self.client_b], location=self.fiera)
        self.day_one = build.workday(self.event, date(2026, 5, 4))
        self.day_two = build.workday(self.event, date(2026, 5, 5), location=self.palazzo)
        self.outside = build.workday(self.event, date(2026, 5, 6))

        self.vigilanza = build.task_type("Vigilanza")
        self.riunione = build.task_type("Riunione", kind=TaskTypeKind.ACTIVITY)
        self.gpg = build.duty("GPG", "Guardia")
        self.user = build.user("U001", name="Luca", cognome="Bianchi")

        self.first = build.assignment(
            self.day_one,
            self.vigilanza,
            client=self.client_a,
            assigned=[(self.user, self.gpg)],
        )
        build.time_entry(self.first, self.user, 8)
        self.second = build.assignment(self.day_two, self.vigilanza, client=self.client_b, assigned=[(self.user, None)])
        build.assignment(self.day_one, self.riunione, client=self.client_a, assigned=[(self.user, self.gpg)])
        self.late = build.assignment(self.outside, self.vigilanza, client=self.client_a, assigned=[(self.user, self.gpg)])
        build.commit()

    def tearDown(self) -> None:
        self.db.close()

    def _resolve(self, scope):  # type: ignore[no-untyped-def]
        return resolve_assignments(self.repository, scope, date(2026, 5, 4), date(2026, 5, 5))

    def test_activity_assignments_and_out_of_range_days_excluded(self) -> None:
        resolved = self._resolve(EventScope(event_id=self.event.id))
        self.assertEqual({item.id for item in resolved.assignments}, {self.first.id, self.second.id})

    def test_client_scope_filters_assignments(self) -> None:
        resolved = self._resolve(ClientScope(client_id=self.client_a.id))

        self.assertEqual([item.id for item in resolved.assignments], [self.first.id])
        item = resolved.assignments[0]
        self.assertEqual(item.user_duties, {self.user.id: self.gpg.id})
        self.assertEqual([entry.hours_worked for entry in item.time_entries], [8.0])
        self.assertEqual(resolved.duties[self.gpg.id].code, "GPG")

    def test_workday_location_falls_back_to_event_location(self) -> None:
        resolved = self._resolve(EventScope(event_id=self.event.id))
        by_id = {item.id: item for item in resolved.assignments}

        self.assertEqual(by_id[self.first.id].workday.location_id, self.fiera.id)
        self.assertEqual(by_id[self.first.id].workday.location_name, "Fiera (Rimini)")
        self.assertEqual(by_id[self.second.id].workday.location_id, self.palazzo.id)

    def test_duty_scope_location_filter(self) -> None:
        resolved = self._resolve(DutyScope(duty_id=self.gpg.id, location_id=self.palazzo.id))
        self.assertEqual([item.id for item in resolved.assignments], [self.second.id])

    def test_employee_scope_spans_everything(self) -> None:
        resolved = self._resolve(EmployeeScope())
        self.assertEqual(len(resolved.assignments), 2)
        self.assertEqual(resolved.people_ids(), {self.user.id})

    def test_client_without_events_is_empty(self) -> None:
        lonely = ScheduleBuilder(self.db).client("CLI-C", ragione_sociale="Gamma")
        self.db.commit()

        resolved = self._resolve(ClientScope(client_id=lonely.id))
        self.assertEqual(resolved.assignments, [])
        self.assertEqual(resolved.duties, {})

    def test_timesheet_client_scope_takes_billed_and_listed_assignments(self) -> None:
        build = ScheduleBuilder(self.db)
        other_event = build.event("Convention privata")
        other_day = build.workday(other_event, date(2026, 5, 5))
        billed = build.assignment(other_day, self.vigilanza, client=self.client_b, user=self.user)
        build.assignment(other_day, self.vigilanza, client=self.client_a, user=self.user)
        build.commit()

        resolved = self._resolve(TimesheetScope(client_id=self.client_b.id))

        self.assertEqual({item.id for item in resolved.assignments}, {self.first.id, self.second.id, billed.id})
        by_id = {item.id: item for item in resolved.assignments}
        self.assertEqual(by_id[billed.id].user_id, self.user.id)

    def test_open_ended_period(self) -> None:
        resolved = resolve_assignments(self.repository, TimesheetScope(event_id=self.event.id), None, None)
        self.assertEqual({item.id for item in resolved.assignments}, {self.first.id, self.second.id, self.late.id})

        from_second_day = resolve_assignments(self.repository, EmployeeScope(), date(2026, 5, 5), None)
        self.assertEqual({item.id for item in from_second_day.assignments}, {self.second.id, self.late.id})

    def test_client_id_substring_does_not_match(self) -> None:
        build = ScheduleBuilder(self.db)
        partial = build.client("CLI-D", ragione_sociale="Delta")
        build.event("Altro evento", raw_client_ids=f'["{partial.id}-old"]')
        build.commit()

        self.assertEqual(self.repository.find_event_ids(client_id=partial.id), [])
        self.assertEqual(self.repository.find_event_ids(client_id=self.client_a.id), [self.event.id])


if __name__ == "__main__":
    unittest.main()
