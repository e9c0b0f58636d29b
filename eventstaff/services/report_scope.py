from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date

from eventstaff.services.embedded_json import (
    first_requested_duty,
    parse_assigned_users,
    parse_break_intervals,
)
from eventstaff.services.report_repository import (
    AssignmentRecord,
    DutyRecord,
    ReportRepository,
    TaskTypeRecord,
    TimeEntryRecord,
    WorkdayRecord,
)
from eventstaff.services.time_math import assignment_break_hours


@dataclass(frozen=True, slots=True)
class ClientScope:
    client_id: str


@dataclass(frozen=True, slots=True)
class EventScope:
    event_id: str
    client_id: str | None = None


@dataclass(frozen=True, slots=True)
class DutyScope:
    duty_id: str
    client_id: str | None = None
    location_id: str | None = None


@dataclass(frozen=True, slots=True)
class CompanyScope:
    company_id: str | None = None


@dataclass(frozen=True, slots=True)
class EmployeeScope:
    user_id: str | None = None


@dataclass(frozen=True, slots=True)
class TimesheetScope:
    """Event, client or plain date-range selection of the staff timesheet.

    A client selects the assignments billed to it plus every assignment of the events
    that list it.
    """

    event_id: str | None = None
    client_id: str | None = None


ReportScope = ClientScope | EventScope | DutyScope | CompanyScope | EmployeeScope | TimesheetScope


class DutySource(str, enum.Enum):
    ASSIGNED_USERS = "ASSIGNED_USERS"
    PERSONNEL_REQUESTS = "PERSONNEL_REQUESTS"
    NONE = "NONE"


@dataclass(frozen=True)
class ResolvedAssignment:
    id: str
    workday: WorkdayRecord
    task_type: TaskTypeRecord
    start_time: str | None = None
    end_time: str | None = None
    client_id: str | None = None
    user_id: str | None = None
    has_scheduled_break: bool = False
    break_start: str | None = None
    break_end: str | None = None
    break_hours: float = 0.0
    user_duties: Mapping[str, str] = field(default_factory=dict)
    scheduled_people: tuple[str, ...] = ()
    time_entries: tuple[TimeEntryRecord, ...] = ()
    duty_source: DutySource = DutySource.NONE

    def people_ids(self) -> set[str]:
        ids = set(self.user_duties) | set(self.scheduled_people)
        ids.update(entry.user_id for entry in self.time_entries)
        return ids


@dataclass(frozen=True)
class ResolvedScope:
    assignments: list[ResolvedAssignment]
    duties: Mapping[str, DutyRecord]

    def people_ids(self) -> set[str]:
        ids: set[str] = set()
        for assignment in self.assignments:
            ids |= assignment.people_ids()
        return ids


EMPTY_SCOPE = ResolvedScope(assignments=[], duties={})


class LookupCache:
    """Duty and task type records, fetched at most once per id for one report run."""

    def __init__(self, repository: ReportRepository):
        self._repository = repository
        self._duties: dict[str, DutyRecord | None] = {}
        self._task_types: dict[str, TaskTypeRecord | None] = {}

    def warm(self, *, duty_ids: Iterable[str] = (), task_type_ids: Iterable[str] = ()) -> None:
        missing_duties = {duty_id for duty_id in duty_ids if duty_id and duty_id not in self._duties}
        if missing_duties:
            found = self._repository.find_duties(missing_duties)
            for duty_id in missing_duties:
                self._duties[duty_id] = found.get(duty_id)

        missing_task_types = {tt_id for tt_id in task_type_ids if tt_id and tt_id not in self._task_types}
        if missing_task_types:
            found_task_types = self._repository.find_task_types(missing_task_types)
            for tt_id in missing_task_types:
                self._task_types[tt_id] = found_task_types.get(tt_id)

    def duty(self, duty_id: str) -> DutyRecord | None:
        self.warm(duty_ids=[duty_id])
        return self._duties.get(duty_id)

    def task_type(self, task_type_id: str) -> TaskTypeRecord | None:
        self.warm(task_type_ids=[task_type_id])
        return self._task_types.get(task_type_id)

    def known_duties(self) -> dict[str, DutyRecord]:
        return {duty_id: duty for duty_id, duty in self._duties.items() if duty is not None}


def resolve_user_duties(assignment: AssignmentRecord) -> tuple[dict[str, str], tuple[str, ...], DutySource]:
    """Work out who is on an assignment and under which duty.

    Returns the ``user_id -> duty_id`` map, the people counted when hours come from the
    schedule, and where the duties came from. When ``assignedUsers`` names no duty, the
    first personnel request's duty is applied to everybody on the assignment.
    """
    assigned = parse_assigned_users(assignment.assigned_users_json, owner_id=assignment.id)
    entry_user_ids = [entry.user_id for entry in assignment.time_entries]

    scheduled_people = tuple(dict.fromkeys(user.user_id for user in assigned))
    if not scheduled_people:
        scheduled_people = tuple(dict.fromkeys(entry_user_ids))
    if not scheduled_people and assignment.user_id:
        scheduled_people = (assignment.user_id,)

    user_duties = {user.user_id: user.duty_id for user in assigned if user.duty_id}
    if user_duties:
        return user_duties, scheduled_people, DutySource.ASSIGNED_USERS

    fallback_duty = first_requested_duty(assignment.personnel_requests_json, owner_id=assignment.id)
    if fallback_duty is None:
        return {}, scheduled_people, DutySource.NONE

    people = dict.fromkeys([*entry_user_ids, *scheduled_people])
    return {user_id: fallback_duty for user_id in people}, scheduled_people, DutySource.PERSONNEL_REQUESTS


def resolve_assignments(
    repository: ReportRepository,
    scope: ReportScope,
    start_date: date | None,
    end_date: date | None,
    *,
    cache: LookupCache | None = None,
) -> ResolvedScope:
    cache = cache or LookupCache(repository)

    event_ids: list[str] | None = None
    client_id: str | None = None
    location_id: str | None = None
    billed_to: str | None = None
    listing_event_ids: set[str] = set()
    if isinstance(scope, ClientScope):
        event_ids = repository.find_event_ids(client_id=scope.client_id)
        client_id = scope.client_id
    elif isinstance(scope, EventScope):
        event_ids = [scope.event_id]
        client_id = scope.client_id
    elif isinstance(scope, DutyScope):
        if scope.client_id is not None:
            event_ids = repository.find_event_ids(client_id=scope.client_id)
        client_id = scope.client_id
        location_id = scope.location_id
    elif isinstance(scope, TimesheetScope):
        if scope.event_id is not None:
            event_ids = [scope.event_id]
        elif scope.client_id is not None:
            billed_to = scope.client_id
            listing_event_ids = set(repository.find_event_ids(client_id=scope.client_id))

    if event_ids is not None and not event_ids:
        return EMPTY_SCOPE

    workdays = {
        workday.id: workday
        for workday in repository.find_workdays(event_ids, start_date, end_date, location_id=location_id)
    }
    records = repository.find_assignments(list(workdays), client_id=client_id)
    if billed_to is not None:
        records = [
            record
            for record in records
            if record.client_id == billed_to or workdays[record.workday_id].event_id in listing_event_ids
        ]
    cache.warm(task_type_ids=[record.task_type_id for record in records])

    resolved: list[ResolvedAssignment] = []
    for record in records:
        task_type = cache.task_type(record.task_type_id)
        workday = workdays.get(record.workday_id)
        if task_type is None or workday is None:
            continue
        user_duties, scheduled_people, duty_source = resolve_user_duties(record)
        resolved.append(
            ResolvedAssignment(
                id=record.id,
                workday=workday,
                task_type=task_type,
                start_time=record.start_time,
                end_time=record.end_time,
                client_id=record.client_id,
                user_id=record.user_id,
                has_scheduled_break=record.has_scheduled_break,
                break_start=record.break_start,
                break_end=record.break_end,
                break_hours=assignment_break_hours(
                    has_break=record.has_scheduled_break,
                    break_start=record.break_start,
                    break_end=record.break_end,
                    intervals=parse_break_intervals(record.scheduled_breaks_json, owner_id=record.id),
                ),
                user_duties=user_duties,
                scheduled_people=scheduled_people,
                time_entries=record.time_entries,
                duty_source=duty_source,
            )
        )

    cache.warm(duty_ids=[duty_id for item in resolved for duty_id in item.user_duties.values()])
    return ResolvedScope(assignments=resolved, duties=cache.known_duties())
