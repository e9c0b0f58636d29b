from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any

from eventstaff.errors import bad_request, forbidden, not_found
from eventstaff.models import ClientType
from eventstaff.schemas import (
    ClientOption,
    ClientReportResponse,
    CompanyReportResponse,
    CompanySubReport,
    DayDetailRead,
    DutyDayDetailRead,
    DutyReportResponse,
    EmployeeEntryRead,
    EmployeeReportResponse,
    EmployeeSubReport,
    EventReportResponse,
    HoursType,
    TaskTypeTotalsRead,
    TimesheetDetailRead,
    TimesheetKind,
    TimesheetReportResponse,
    TimesheetSummaryRead,
)
from eventstaff.services.aggregation import (
    AggregationResult,
    PersonHours,
    aggregate,
    aggregate_all,
    combine_totals,
    duty_label,
    round_hours,
)
from eventstaff.services.report_repository import ClientRecord, ReportRepository, UserRecord
from eventstaff.services.report_scope import (
    ClientScope,
    CompanyScope,
    DutyScope,
    EmployeeScope,
    EventScope,
    ReportScope,
    ResolvedAssignment,
    ResolvedScope,
    TimesheetScope,
    resolve_assignments,
)
from eventstaff.settings import get_settings

logger = logging.getLogger("eventstaff.reports")


@dataclass(frozen=True)
class ReportOptions:
    start_date: date
    end_date: date
    hours_type: HoursType = HoursType.ACTUAL
    include_breaks_hourly: bool = True
    show_break_times: bool = True
    include_daily_details: bool = True

    def envelope(self) -> dict[str, Any]:
        return {
            "start_date": self.start_date,
            "end_date": self.end_date,
            "hours_type": self.hours_type,
            "include_breaks_hourly": self.include_breaks_hourly,
            "show_break_times": self.show_break_times,
        }


@dataclass
class _Tally:
    hours: float = 0.0
    shifts: int = 0


def client_display_name(client: ClientRecord) -> str:
    if client.type == ClientType.PRIVATO:
        name = f"{client.nome or ''} {client.cognome or ''}".strip()
    else:
        name = (client.ragione_sociale or "").strip()
    return name or client.code


def user_display_name(user: UserRecord) -> str:
    name = f"{user.name or ''} {user.cognome or ''}".strip()
    return name or user.code or user.id


def _aggregate_scope(
    resolved: ResolvedScope,
    options: ReportOptions,
    *,
    person_filter: Callable[[PersonHours], bool] | None = None,
) -> AggregationResult:
    return aggregate_all(
        resolved.assignments,
        duties=resolved.duties,
        hours_type=options.hours_type,
        include_breaks_hourly=options.include_breaks_hourly,
        include_daily_details=options.include_daily_details,
        person_filter=person_filter,
        unspecified_duty_name=get_settings().unspecified_duty_name,
    )


def _scope_filter(
    repository: ReportRepository,
    scope: ReportScope,
    resolved: ResolvedScope,
) -> Callable[[PersonHours], bool] | None:
    if isinstance(scope, DutyScope):
        return lambda person: person.duty_id == scope.duty_id
    if isinstance(scope, EmployeeScope) and scope.user_id is not None:
        return lambda person: person.user_id == scope.user_id
    if isinstance(scope, CompanyScope) and scope.company_id is not None:
        users = repository.find_users(resolved.people_ids())
        return lambda person: (
            person.user_id in users and users[person.user_id].company_id == scope.company_id
        )
    return None


def generate_report(
    repository: ReportRepository,
    scope: ReportScope,
    options: ReportOptions,
) -> AggregationResult:
    """Summary by duty, daily detail and totals for one scope and date range."""
    resolved = resolve_assignments(repository, scope, options.start_date, options.end_date)
    return _aggregate_scope(resolved, options, person_filter=_scope_filter(repository, scope, resolved))


def _log_generated(
    report_type: str,
    options: ReportOptions,
    started: float,
    *,
    scope_id: str | None,
    assignment_count: int,
) -> None:
    logger.info(
        "report_generated",
        extra={
            "report_type": report_type,
            "scope_id": scope_id,
            "hours_type": options.hours_type.value,
            "start_date": options.start_date.isoformat(),
            "end_date": options.end_date.isoformat(),
            "assignment_count": assignment_count,
            "latency_ms": round((time.perf_counter() - started) * 1000, 2),
        },
    )


def build_client_report(
    repository: ReportRepository,
    *,
    client_id: str,
    options: ReportOptions,
) -> ClientReportResponse:
    """Client report; an unknown client gets an empty report with no name."""
    started = time.perf_counter()
    client = repository.get_client(client_id)
    if client is None:
        result = AggregationResult.empty()
    else:
        result = generate_report(repository, ClientScope(client_id=client_id), options)
    _log_generated("cliente", options, started, scope_id=client_id, assignment_count=result.assignment_count)
    return ClientReportResponse(
        **options.envelope(),
        client_id=client_id,
        client_name=client_display_name(client) if client else None,
        total_hours=result.total_hours,
        totals=result.totals,
        summary_by_duty=result.summary_by_duty,
        daily_details=result.daily_details,
    )


def build_event_report(
    repository: ReportRepository,
    *,
    event_id: str,
    options: ReportOptions,
    client_id: str | None = None,
) -> EventReportResponse:
    started = time.perf_counter()
    event = repository.get_event(event_id)
    if event is None:
        raise not_found("Event not found.")

    location = repository.get_location(event.location_id) if event.location_id else None
    known_clients = repository.find_clients(event.client_ids)
    clients = [
        ClientOption(
            id=listed_id,
            name=client_display_name(known_clients[listed_id]) if listed_id in known_clients else listed_id,
        )
        for listed_id in dict.fromkeys(event.client_ids)
    ]

    result = generate_report(repository, EventScope(event_id=event_id, client_id=client_id), options)
    _log_generated("evento", options, started, scope_id=event_id, assignment_count=result.assignment_count)
    return EventReportResponse(
        **options.envelope(),
        event_id=event.id,
        event_title=event.title,
        location_id=event.location_id,
        location_name=location.name if location else None,
        client_id=client_id,
        clients=clients,
        total_hours=result.total_hours,
        totals=result.totals,
        summary_by_duty=result.summary_by_duty,
        daily_details=result.daily_details,
    )


def _duty_daily_details(daily_details: list[DayDetailRead]) -> list[DutyDayDetailRead]:
    return [
        DutyDayDetailRead(
            date=day.date,
            location_id=day.location_id,
            location_name=day.location_name,
            event_id=day.event_id,
            event_title=day.event_title,
            task_types=[
                TaskTypeTotalsRead(
                    task_type_id=task_type.task_type_id,
                    task_type_name=task_type.task_type_name,
                    is_hourly_service=task_type.is_hourly_service,
                    total_hours=task_type.total_hours,
                    shifts=task_type.shifts,
                    overtime_hours=task_type.overtime_hours,
                    number_of_people=sum(window.number_of_people for window in task_type.shift_windows),
                )
                for task_type in day.task_types
            ],
        )
        for day in daily_details
    ]


def build_duty_report(
    repository: ReportRepository,
    *,
    duty_id: str,
    options: ReportOptions,
    client_id: str | None = None,
    location_id: str | None = None,
) -> DutyReportResponse:
    started = time.perf_counter()
    duty = repository.get_duty(duty_id)
    if duty is None:
        raise not_found("Duty not found.")

    client = repository.get_client(client_id) if client_id else None
    location = repository.get_location(location_id) if location_id else None

    scope = DutyScope(duty_id=duty_id, client_id=client_id, location_id=location_id)
    result = generate_report(repository, scope, options)
    _log_generated("mansione", options, started, scope_id=duty_id, assignment_count=result.assignment_count)
    return DutyReportResponse(
        **options.envelope(),
        duty_id=duty.id,
        duty_code=duty.code,
        duty_name=duty.name,
        client_id=client_id,
        client_name=client_display_name(client) if client else None,
        location_id=location_id,
        location_name=location.name if location else None,
        total_hours=result.total_hours,
        totals=result.totals,
        summary_by_duty=result.summary_by_duty,
        daily_details=_duty_daily_details(result.daily_details),
    )


def build_company_report(
    repository: ReportRepository,
    *,
    options: ReportOptions,
    company_id: str | None = None,
) -> CompanyReportResponse:
    started = time.perf_counter()
    companies = repository.list_companies(company_id)
    resolved = (
        resolve_assignments(repository, CompanyScope(company_id=company_id), options.start_date, options.end_date)
        if companies
        else ResolvedScope(assignments=[], duties={})
    )
    users = repository.find_users(resolved.people_ids())
    wanted = {company.id for company in companies}

    def by_company(person: PersonHours) -> str | None:
        user = users.get(person.user_id)
        if user is None or user.company_id not in wanted:
            return None
        return user.company_id

    results = aggregate(
        resolved.assignments,
        duties=resolved.duties,
        hours_type=options.hours_type,
        include_breaks_hourly=options.include_breaks_hourly,
        include_daily_details=options.include_daily_details,
        partition=by_company,
        unspecified_duty_name=get_settings().unspecified_duty_name,
    )

    sub_reports: list[CompanySubReport] = []
    for company in companies:
        result = results.get(company.id) or AggregationResult.empty()
        sub_reports.append(
            CompanySubReport(
                company_id=company.id,
                company_code=company.code,
                company_name=company.ragione_sociale,
                total_hours=result.totals.hours,
                total_shifts=result.totals.shifts,
                total_overtime_hours=result.totals.overtime_hours,
                summary_by_duty=result.summary_by_duty,
                daily_details=result.daily_details if options.include_daily_details else None,
            )
        )

    _log_generated(
        "azienda",
        options,
        started,
        scope_id=company_id,
        assignment_count=sum(result.assignment_count for result in results.values()),
    )
    return CompanyReportResponse(
        **options.envelope(),
        company_id=company_id,
        include_daily_details=options.include_daily_details,
        totals=combine_totals(results.values()),
        companies=sub_reports,
    )


def build_employee_report(
    repository: ReportRepository,
    *,
    options: ReportOptions,
    user_id: str | None = None,
    restrict_company_id: str | None = None,
) -> EmployeeReportResponse:
    """Per-employee totals and chronological entries.

    ``restrict_company_id`` limits the report to one company's staff; asking for a user
    outside it is refused.
    """
    started = time.perf_counter()
    if user_id is not None and restrict_company_id is not None:
        target = repository.get_user(user_id)
        if target is None or target.company_id != restrict_company_id:
            raise forbidden("User belongs to another company.")

    resolved = resolve_assignments(repository, EmployeeScope(user_id=user_id), options.start_date, options.end_date)
    users = repository.find_users([user_id] if user_id is not None else resolved.people_ids())

    def by_user(person: PersonHours) -> str | None:
        if user_id is not None and person.user_id != user_id:
            return None
        user = users.get(person.user_id)
        if user is None:
            return None
        if restrict_company_id is not None and user.company_id != restrict_company_id:
            return None
        return person.user_id

    results = aggregate(
        resolved.assignments,
        duties=resolved.duties,
        hours_type=options.hours_type,
        include_breaks_hourly=options.include_breaks_hourly,
        include_daily_details=options.include_daily_details,
        partition=by_user,
        unspecified_duty_name=get_settings().unspecified_duty_name,
    )

    unspecified = get_settings().unspecified_duty_name
    employees: list[EmployeeSubReport] = []
    for employee_id, result in results.items():
        user = users[employee_id]
        entries = [
            EmployeeEntryRead(
                date=entry.date.isoformat(),
                event_id=entry.event_id,
                event_title=entry.event_title,
                task_type_id=entry.task_type_id,
                task_type_name=entry.task_type_name,
                is_hourly_service=entry.is_hourly_service,
                duty_id=entry.duty_id,
                duty_name=duty_label(entry.duty_id, resolved.duties, unspecified)[0],
                start_time=entry.start_time,
                end_time=entry.end_time,
                hours=round_hours(entry.hours),
                shifts=entry.shifts,
                overtime_hours=round_hours(entry.overtime_hours),
                notes=entry.notes,
            )
            for entry in result.entries
        ]
        employees.append(
            EmployeeSubReport(
                user_id=user.id,
                user_name=user_display_name(user),
                user_code=user.code,
                company_id=user.company_id,
                total_hours=result.totals.hours,
                total_shifts=result.totals.shifts,
                total_overtime_hours=result.totals.overtime_hours,
                has_only_shift_services=bool(entries) and not any(entry.is_hourly_service for entry in entries),
                entries=entries,
                daily_details=result.daily_details if options.include_daily_details else None,
            )
        )
    employees.sort(key=lambda item: (item.user_name.lower(), item.user_id))

    _log_generated(
        "dipendente",
        options,
        started,
        scope_id=user_id,
        assignment_count=sum(result.assignment_count for result in results.values()),
    )
    return EmployeeReportResponse(
        **options.envelope(),
        user_id=user_id,
        include_daily_details=options.include_daily_details,
        totals=combine_totals(results.values()),
        employees=employees,
    )


def build_timesheet_report(
    repository: ReportRepository,
    *,
    kind: TimesheetKind,
    event_id: str | None = None,
    client_id: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    user_ids: Sequence[str] = (),
    restrict_company_id: str | None = None,
) -> TimesheetReportResponse:
    """Per-person timesheet of recorded hours for an event, a client or a period.

    Everybody on an assignment (its direct user and the assigned users) gets one row and
    one shift, with the hours of their time entry or zero when nothing was recorded.
    """
    started = time.perf_counter()
    if kind == TimesheetKind.EVENT and not event_id:
        raise bad_request("eventId is required for type 'event'.")
    if kind == TimesheetKind.CLIENT and not client_id:
        raise bad_request("clientId is required for type 'client'.")
    if kind == TimesheetKind.DATE_RANGE and (start_date is None or end_date is None):
        raise bad_request("startDate and endDate are required for type 'date-range'.")
    if start_date is not None and end_date is not None and start_date > end_date:
        raise bad_request("startDate must be on or before endDate.")

    scope = TimesheetScope(
        event_id=event_id if kind == TimesheetKind.EVENT else None,
        client_id=client_id if kind == TimesheetKind.CLIENT else None,
    )
    resolved = resolve_assignments(repository, scope, start_date, end_date)
    wanted = set(user_ids)

    staffed: list[tuple[ResolvedAssignment, list[str]]] = []
    for assignment in resolved.assignments:
        direct = [assignment.user_id] if assignment.user_id else []
        people = list(dict.fromkeys([*direct, *assignment.scheduled_people]))
        if wanted:
            people = [person_id for person_id in people if person_id in wanted]
        if people:
            staffed.append((assignment, people))

    users = repository.find_users(person_id for _, people in staffed for person_id in people)
    clients = repository.find_clients(assignment.client_id for assignment, _ in staffed if assignment.client_id)

    details: list[TimesheetDetailRead] = []
    per_user: dict[str, _Tally] = {}
    for assignment, people in staffed:
        entries = {entry.user_id: entry for entry in assignment.time_entries}
        client = clients.get(assignment.client_id) if assignment.client_id else None
        for person_id in people:
            user = users.get(person_id)
            if user is None:
                continue
            if restrict_company_id is not None and user.company_id != restrict_company_id:
                continue
            entry = entries.get(person_id)
            hours = entry.hours_worked if entry is not None else 0.0
            details.append(
                TimesheetDetailRead(
                    date=assignment.workday.date.isoformat(),
                    user_id=user.id,
                    user_name=user_display_name(user),
                    user_code=user.code,
                    event_id=assignment.workday.event_id,
                    event_title=assignment.workday.event_title,
                    client_id=assignment.client_id,
                    client_name=client_display_name(client) if client else None,
                    assignment_id=assignment.id,
                    task_type_name=assignment.task_type.name,
                    scheduled_start_time=assignment.start_time,
                    scheduled_end_time=assignment.end_time,
                    actual_start_time=entry.start_time if entry else None,
                    actual_end_time=entry.end_time if entry else None,
                    hours_worked=round_hours(hours),
                    notes=entry.notes if entry else None,
                )
            )
            tally = per_user.setdefault(person_id, _Tally())
            tally.hours += hours
            tally.shifts += 1

    details.sort(
        key=lambda row: (row.date, row.user_code or "", row.scheduled_start_time or "", row.assignment_id)
    )
    summary = [
        TimesheetSummaryRead(
            user_id=person_id,
            user_name=user_display_name(users[person_id]),
            user_code=users[person_id].code,
            total_hours=round_hours(tally.hours),
            shifts_count=tally.shifts,
        )
        for person_id, tally in per_user.items()
    ]
    summary.sort(key=lambda item: (item.user_name.lower(), item.user_id))

    logger.info(
        "report_generated",
        extra={
            "report_type": "timesheet",
            "timesheet_type": kind.value,
            "scope_id": event_id or client_id,
            "start_date": start_date.isoformat() if start_date else None,
            "end_date": end_date.isoformat() if end_date else None,
            "assignment_count": len(staffed),
            "latency_ms": round((time.perf_counter() - started) * 1000, 2),
        },
    )
    return TimesheetReportResponse(
        type=kind,
        event_id=scope.event_id,
        client_id=scope.client_id,
        start_date=start_date,
        end_date=end_date,
        user_ids=list(user_ids),
        total_hours=round_hours(sum(tally.hours for tally in per_user.values())),
        summary=summary,
        details=details,
    )
