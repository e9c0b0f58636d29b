from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date

from eventstaff.schemas import (
    DayDetailRead,
    DutyBreakdownRead,
    DutySummaryRead,
    HoursType,
    ReportTotals,
    ShiftWindowRead,
    TaskTypeDetailRead,
)
from eventstaff.services.report_repository import DutyRecord, TaskTypeRecord, TimeEntryRecord, WorkdayRecord
from eventstaff.services.report_scope import ResolvedAssignment
from eventstaff.services.shift_classification import NO_CREDIT, ShiftCredit, classify, classify_people
from eventstaff.services.time_math import hours_between

UNSPECIFIED_DUTY_NAME = "Non specificato"
ALL = ""
HOURS_PRECISION = 4


@dataclass(frozen=True, slots=True)
class PersonHours:
    user_id: str
    duty_id: str
    hours: float
    entry: TimeEntryRecord | None = None


@dataclass(frozen=True, slots=True)
class PersonEntry:
    user_id: str
    duty_id: str
    assignment_id: str
    date: date
    event_id: str
    event_title: str
    task_type_id: str
    task_type_name: str
    is_hourly_service: bool
    start_time: str | None
    end_time: str | None
    hours: float
    shifts: int
    overtime_hours: float
    notes: str | None = None


Partitioner = Callable[[PersonHours], Hashable | None]


@dataclass
class _DutyTotals:
    hours: float = 0.0
    shifts: int = 0
    overtime_hours: float = 0.0


@dataclass
class _WindowDuty:
    number_of_people: int = 0
    total_hours: float = 0.0


@dataclass
class _Window:
    scheduled_start_time: str | None
    scheduled_end_time: str | None
    start_time: str | None
    end_time: str | None
    has_scheduled_break: bool
    break_start: str | None
    break_end: str | None
    fixed_total_hours: float
    shifts: int
    overtime_hours: float
    number_of_people: int = 0
    duties: dict[str, _WindowDuty] = field(default_factory=dict)
    notes: list[str] = field(default_factory=list)


@dataclass
class _TaskTypeGroup:
    task_type: TaskTypeRecord
    windows: dict[tuple[str, str], _Window] = field(default_factory=dict)


@dataclass
class _DayGroup:
    workday: WorkdayRecord
    task_types: dict[str, _TaskTypeGroup] = field(default_factory=dict)


@dataclass
class _Accumulator:
    duties: dict[str, _DutyTotals] = field(default_factory=dict)
    totals: _DutyTotals = field(default_factory=_DutyTotals)
    days: dict[tuple[str, str, str], _DayGroup] = field(default_factory=dict)
    entries: list[PersonEntry] = field(default_factory=list)
    assignment_ids: set[str] = field(default_factory=set)


@dataclass(frozen=True)
class AggregationResult:
    summary_by_duty: list[DutySummaryRead]
    totals: ReportTotals
    daily_details: list[DayDetailRead]
    entries: list[PersonEntry]
    assignment_count: int = 0

    @property
    def total_hours(self) -> float:
        return self.totals.hours

    @classmethod
    def empty(cls) -> AggregationResult:
        return cls(summary_by_duty=[], totals=ReportTotals(), daily_details=[], entries=[])


def round_hours(value: float) -> float:
    rounded = round(value, HOURS_PRECISION)
    return rounded + 0.0 if rounded else 0.0


def person_hours(
    assignment: ResolvedAssignment,
    *,
    hours_type: HoursType,
    include_breaks_hourly: bool,
) -> list[PersonHours]:
    """Hours credited to each person on one assignment.

    Actual mode trusts each time entry's net ``hours_worked`` and only adds the scheduled
    break back for hourly services. Scheduled mode takes the gross window, nets the break
    unless an hourly service includes it, and splits the result evenly across the people.
    """
    include_breaks = assignment.task_type.is_hourly_service and include_breaks_hourly

    if hours_type == HoursType.ACTUAL:
        added_break = assignment.break_hours if include_breaks else 0.0
        by_user: dict[str, PersonHours] = {}
        for entry in assignment.time_entries:
            by_user[entry.user_id] = PersonHours(
                user_id=entry.user_id,
                duty_id=assignment.user_duties.get(entry.user_id, ""),
                hours=entry.hours_worked + added_break,
                entry=entry,
            )
        return list(by_user.values())

    people = assignment.scheduled_people
    if not people:
        return []
    window_hours = hours_between(assignment.start_time, assignment.end_time)
    if not include_breaks:
        window_hours = max(0.0, window_hours - assignment.break_hours)
    per_person = window_hours / len(people)
    entries = {entry.user_id: entry for entry in assignment.time_entries}
    return [
        PersonHours(
            user_id=user_id,
            duty_id=assignment.user_duties.get(user_id, ""),
            hours=per_person,
            entry=entries.get(user_id),
        )
        for user_id in people
    ]


def aggregate(
    assignments: Iterable[ResolvedAssignment],
    *,
    duties: Mapping[str, DutyRecord],
    hours_type: HoursType,
    include_breaks_hourly: bool,
    include_daily_details: bool = True,
    partition: Partitioner | None = None,
    unspecified_duty_name: str = UNSPECIFIED_DUTY_NAME,
) -> dict[Hashable, AggregationResult]:
    """Fold assignments into duty summaries and daily detail trees.

    ``partition`` maps each credited person to the report bucket they belong to, or
    ``None`` to leave them out. Without it everybody lands in the ``ALL`` bucket.
    """
    accumulators: dict[Hashable, _Accumulator] = {}
    for assignment in assignments:
        people = person_hours(
            assignment,
            hours_type=hours_type,
            include_breaks_hourly=include_breaks_hourly,
        )
        groups: dict[Hashable, list[PersonHours]] = {}
        for person in people:
            key = partition(person) if partition is not None else ALL
            if key is None:
                continue
            groups.setdefault(key, []).append(person)

        for key, group in groups.items():
            accumulator = accumulators.setdefault(key, _Accumulator())
            _fold_assignment(
                accumulator,
                assignment,
                group,
                hours_type=hours_type,
                include_daily_details=include_daily_details,
            )

    return {
        key: _finalize(accumulator, duties=duties, unspecified_duty_name=unspecified_duty_name)
        for key, accumulator in accumulators.items()
    }


def aggregate_all(
    assignments: Iterable[ResolvedAssignment],
    *,
    duties: Mapping[str, DutyRecord],
    hours_type: HoursType,
    include_breaks_hourly: bool,
    include_daily_details: bool = True,
    person_filter: Callable[[PersonHours], bool] | None = None,
    unspecified_duty_name: str = UNSPECIFIED_DUTY_NAME,
) -> AggregationResult:
    partition: Partitioner | None = None
    if person_filter is not None:

        def _filtered(person: PersonHours) -> Hashable | None:
            return ALL if person_filter(person) else None

        partition = _filtered

    results = aggregate(
        assignments,
        duties=duties,
        hours_type=hours_type,
        include_breaks_hourly=include_breaks_hourly,
        include_daily_details=include_daily_details,
        partition=partition,
        unspecified_duty_name=unspecified_duty_name,
    )
    return results.get(ALL) or AggregationResult.empty()


def _group_by_duty(people: list[PersonHours]) -> dict[str, list[PersonHours]]:
    groups: dict[str, list[PersonHours]] = {}
    for person in people:
        groups.setdefault(person.duty_id, []).append(person)
    return groups


def _fold_assignment(
    accumulator: _Accumulator,
    assignment: ResolvedAssignment,
    people: list[PersonHours],
    *,
    hours_type: HoursType,
    include_daily_details: bool,
) -> None:
    task_type = assignment.task_type
    hourly = task_type.is_hourly_service
    by_duty = _group_by_duty(people)
    accumulator.assignment_ids.add(assignment.id)

    for duty_id, group in by_duty.items():
        duty_totals = accumulator.duties.setdefault(duty_id, _DutyTotals())
        if hourly:
            group_hours = sum(person.hours for person in group)
            duty_totals.hours += group_hours
            accumulator.totals.hours += group_hours
        else:
            credit = classify_people((person.hours for person in group), task_type.shift_hours)
            duty_totals.shifts += credit.shifts
            duty_totals.overtime_hours += credit.overtime_hours
            accumulator.totals.shifts += credit.shifts
            accumulator.totals.overtime_hours += credit.overtime_hours

    for person in people:
        credit = NO_CREDIT if hourly else classify(person.hours, task_type.shift_hours)
        entry = person.entry if hours_type == HoursType.ACTUAL else None
        accumulator.entries.append(
            PersonEntry(
                user_id=person.user_id,
                duty_id=person.duty_id,
                assignment_id=assignment.id,
                date=assignment.workday.date,
                event_id=assignment.workday.event_id,
                event_title=assignment.workday.event_title,
                task_type_id=task_type.id,
                task_type_name=task_type.name,
                is_hourly_service=hourly,
                start_time=(entry.start_time if entry and entry.start_time else assignment.start_time),
                end_time=(entry.end_time if entry and entry.end_time else assignment.end_time),
                hours=person.hours,
                shifts=credit.shifts,
                overtime_hours=credit.overtime_hours,
                notes=person.entry.notes if person.entry else None,
            )
        )

    if include_daily_details:
        _add_to_daily_tree(accumulator, assignment, people, by_duty, hours_type=hours_type)


def _display_window(
    assignment: ResolvedAssignment,
    people: list[PersonHours],
    *,
    hours_type: HoursType,
) -> tuple[str | None, str | None]:
    if hours_type != HoursType.ACTUAL:
        return assignment.start_time, assignment.end_time
    starts = [p.entry.start_time for p in people if p.entry is not None and p.entry.start_time]
    ends = [p.entry.end_time for p in people if p.entry is not None and p.entry.end_time]
    return (
        min(starts) if starts else assignment.start_time,
        max(ends) if ends else assignment.end_time,
    )


def _add_to_daily_tree(
    accumulator: _Accumulator,
    assignment: ResolvedAssignment,
    people: list[PersonHours],
    by_duty: dict[str, list[PersonHours]],
    *,
    hours_type: HoursType,
) -> None:
    workday = assignment.workday
    task_type = assignment.task_type
    day_key = (workday.date.isoformat(), workday.location_id or "", workday.event_id)
    day = accumulator.days.setdefault(day_key, _DayGroup(workday=workday))
    task_group = day.task_types.setdefault(task_type.id, _TaskTypeGroup(task_type=task_type))

    window_key = (assignment.start_time or "", assignment.end_time or "")
    window = task_group.windows.get(window_key)
    if window is None:
        # the first assignment seen for a window fixes its break info and shift credit
        credit = (
            NO_CREDIT
            if task_type.is_hourly_service
            else classify_people((person.hours for person in people), task_type.shift_hours)
        )
        start_time, end_time = _display_window(assignment, people, hours_type=hours_type)
        window = _Window(
            scheduled_start_time=assignment.start_time,
            scheduled_end_time=assignment.end_time,
            start_time=start_time,
            end_time=end_time,
            has_scheduled_break=assignment.has_scheduled_break,
            break_start=assignment.break_start,
            break_end=assignment.break_end,
            fixed_total_hours=sum(person.hours for person in people),
            shifts=credit.shifts,
            overtime_hours=credit.overtime_hours,
        )
        task_group.windows[window_key] = window

    window.number_of_people += len(people)
    for duty_id, group in by_duty.items():
        window_duty = window.duties.setdefault(duty_id, _WindowDuty())
        window_duty.number_of_people += len(group)
        window_duty.total_hours += sum(person.hours for person in group)

    for person in people:
        notes = (person.entry.notes or "").strip() if person.entry else ""
        if notes and notes not in window.notes:
            window.notes.append(notes)


def duty_label(duty_id: str, duties: Mapping[str, DutyRecord], unspecified_duty_name: str) -> tuple[str, str]:
    duty = duties.get(duty_id)
    if duty is None:
        return unspecified_duty_name, ""
    return duty.name, duty.code


def _finalize(
    accumulator: _Accumulator,
    *,
    duties: Mapping[str, DutyRecord],
    unspecified_duty_name: str,
) -> AggregationResult:
    summary: list[DutySummaryRead] = []
    for duty_id, totals in accumulator.duties.items():
        name, code = duty_label(duty_id, duties, unspecified_duty_name)
        summary.append(
            DutySummaryRead(
                duty_id=duty_id,
                duty_code=code,
                duty_name=name,
                hours=round_hours(totals.hours),
                shifts=totals.shifts,
                overtime_hours=round_hours(totals.overtime_hours),
            )
        )
    summary.sort(key=lambda item: (item.duty_code, item.duty_name, item.duty_id))

    daily_details = [
        _day_detail(accumulator.days[key], duties=duties, unspecified_duty_name=unspecified_duty_name)
        for key in sorted(accumulator.days)
    ]
    entries = sorted(
        accumulator.entries,
        key=lambda entry: (entry.date, entry.start_time or "", entry.event_title, entry.assignment_id, entry.user_id),
    )
    return AggregationResult(
        summary_by_duty=summary,
        totals=ReportTotals(
            hours=round_hours(accumulator.totals.hours),
            shifts=accumulator.totals.shifts,
            overtime_hours=round_hours(accumulator.totals.overtime_hours),
        ),
        daily_details=daily_details,
        entries=entries,
        assignment_count=len(accumulator.assignment_ids),
    )


def _day_detail(day: _DayGroup, *, duties: Mapping[str, DutyRecord], unspecified_duty_name: str) -> DayDetailRead:
    task_types: list[TaskTypeDetailRead] = []
    for group in day.task_types.values():
        windows = [
            _window_detail(group.windows[key], group.task_type, duties=duties, unspecified_duty_name=unspecified_duty_name)
            for key in sorted(group.windows)
        ]
        task_types.append(
            TaskTypeDetailRead(
                task_type_id=group.task_type.id,
                task_type_name=group.task_type.name,
                is_hourly_service=group.task_type.is_hourly_service,
                shift_hours=group.task_type.shift_hours,
                shift_windows=windows,
                total_hours=round_hours(sum(window.total_hours for window in windows)),
                shifts=sum(window.shifts for window in windows),
                overtime_hours=round_hours(sum(window.overtime_hours for window in windows)),
            )
        )
    task_types.sort(key=lambda item: (item.task_type_name, item.task_type_id))

    workday = day.workday
    return DayDetailRead(
        date=workday.date.isoformat(),
        location_id=workday.location_id,
        location_name=workday.location_name,
        event_id=workday.event_id,
        event_title=workday.event_title,
        task_types=task_types,
    )


def _window_detail(
    window: _Window,
    task_type: TaskTypeRecord,
    *,
    duties: Mapping[str, DutyRecord],
    unspecified_duty_name: str,
) -> ShiftWindowRead:
    breakdown: list[DutyBreakdownRead] = []
    for duty_id, window_duty in window.duties.items():
        name, code = duty_label(duty_id, duties, unspecified_duty_name)
        breakdown.append(
            DutyBreakdownRead(
                duty_id=duty_id,
                duty_code=code,
                duty_name=name,
                number_of_people=window_duty.number_of_people,
                total_hours=round_hours(window_duty.total_hours),
                hours_per_person=round_hours(window_duty.total_hours / window_duty.number_of_people),
            )
        )
    breakdown.sort(key=lambda item: (item.duty_code, item.duty_name, item.duty_id))

    if task_type.is_hourly_service:
        total_hours = sum(window_duty.total_hours for window_duty in window.duties.values())
    else:
        total_hours = window.fixed_total_hours

    return ShiftWindowRead(
        start_time=window.start_time,
        end_time=window.end_time,
        scheduled_start_time=window.scheduled_start_time,
        scheduled_end_time=window.scheduled_end_time,
        has_scheduled_break=window.has_scheduled_break,
        scheduled_break_start_time=window.break_start if window.has_scheduled_break else None,
        scheduled_break_end_time=window.break_end if window.has_scheduled_break else None,
        duties=breakdown,
        total_hours=round_hours(total_hours),
        number_of_people=window.number_of_people,
        shifts=window.shifts,
        overtime_hours=round_hours(window.overtime_hours),
        notes=list(window.notes),
    )


def combine_totals(results: Iterable[AggregationResult]) -> ReportTotals:
    hours = 0.0
    credit = NO_CREDIT
    for result in results:
        hours += result.totals.hours
        credit = credit + ShiftCredit(shifts=result.totals.shifts, overtime_hours=result.totals.overtime_hours)
    return ReportTotals(
        hours=round_hours(hours),
        shifts=credit.shifts,
        overtime_hours=round_hours(credit.overtime_hours),
    )
