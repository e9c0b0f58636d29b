from __future__ import annotations

from collections.abc import Collection, Iterable
from dataclasses import dataclass
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from eventstaff.models import (
    Assignment,
    Client,
    ClientType,
    Company,
    Duty,
    Event,
    Location,
    TaskType,
    TaskTypeKind,
    User,
    Workday,
)
from eventstaff.services.embedded_json import parse_id_list


@dataclass(frozen=True, slots=True)
class ClientRecord:
    id: str
    code: str
    type: ClientType
    ragione_sociale: str | None = None
    nome: str | None = None
    cognome: str | None = None


@dataclass(frozen=True, slots=True)
class LocationRecord:
    id: str
    name: str
    city: str | None = None


@dataclass(frozen=True, slots=True)
class EventRecord:
    id: str
    title: str
    client_ids: tuple[str, ...] = ()
    location_id: str | None = None


@dataclass(frozen=True, slots=True)
class CompanyRecord:
    id: str
    ragione_sociale: str
    code: str | None = None


@dataclass(frozen=True, slots=True)
class UserRecord:
    id: str
    code: str | None = None
    name: str | None = None
    cognome: str | None = None
    company_id: str | None = None


@dataclass(frozen=True, slots=True)
class DutyRecord:
    id: str
    code: str
    name: str


@dataclass(frozen=True, slots=True)
class TaskTypeRecord:
    id: str
    name: str
    is_hourly_service: bool = True
    shift_hours: float | None = None


@dataclass(frozen=True, slots=True)
class WorkdayRecord:
    id: str
    date: date
    event_id: str
    event_title: str
    location_id: str | None = None
    location_name: str | None = None


@dataclass(frozen=True, slots=True)
class TimeEntryRecord:
    id: str
    user_id: str
    date: date
    hours_worked: float
    start_time: str | None = None
    end_time: str | None = None
    notes: str | None = None


@dataclass(frozen=True, slots=True)
class AssignmentRecord:
    id: str
    workday_id: str
    task_type_id: str
    client_id: str | None = None
    user_id: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    has_scheduled_break: bool = False
    break_start: str | None = None
    break_end: str | None = None
    scheduled_breaks_json: str | None = None
    assigned_users_json: str | None = None
    personnel_requests_json: str | None = None
    time_entries: tuple[TimeEntryRecord, ...] = ()


def location_label(name: str | None, city: str | None) -> str | None:
    if not name:
        return None
    if city:
        return f"{name} ({city})"
    return name


class ReportRepository:
    """Read-only views over the scheduling tables, returned as plain records."""

    def __init__(self, db: Session):
        self.db = db

    def get_client(self, client_id: str) -> ClientRecord | None:
        client = self.db.get(Client, client_id)
        return _client_record(client) if client is not None else None

    def find_clients(self, client_ids: Iterable[str]) -> dict[str, ClientRecord]:
        ids = sorted(set(client_ids))
        if not ids:
            return {}
        rows = self.db.scalars(select(Client).where(Client.id.in_(ids))).all()
        return {row.id: _client_record(row) for row in rows}

    def get_event(self, event_id: str) -> EventRecord | None:
        event = self.db.get(Event, event_id)
        if event is None:
            return None
        return EventRecord(
            id=event.id,
            title=event.title,
            client_ids=tuple(parse_id_list(event.client_ids, field="client_ids", owner_id=event.id)),
            location_id=event.location_id,
        )

    def get_location(self, location_id: str) -> LocationRecord | None:
        location = self.db.get(Location, location_id)
        if location is None:
            return None
        return LocationRecord(id=location.id, name=location.name, city=location.city)

    def get_duty(self, duty_id: str) -> DutyRecord | None:
        return self.find_duties([duty_id]).get(duty_id)

    def get_user(self, user_id: str) -> UserRecord | None:
        return self.find_users([user_id]).get(user_id)

    def find_users(self, user_ids: Iterable[str]) -> dict[str, UserRecord]:
        ids = sorted(set(user_ids))
        if not ids:
            return {}
        rows = self.db.scalars(select(User).where(User.id.in_(ids))).all()
        return {
            row.id: UserRecord(
                id=row.id,
                code=row.code,
                name=row.name,
                cognome=row.cognome,
                company_id=row.company_id,
            )
            for row in rows
        }

    def list_companies(self, company_id: str | None = None) -> list[CompanyRecord]:
        stmt = select(Company).order_by(Company.ragione_sociale, Company.id)
        if company_id is not None:
            stmt = stmt.where(Company.id == company_id)
        return [
            CompanyRecord(id=row.id, ragione_sociale=row.ragione_sociale, code=row.code)
            for row in self.db.scalars(stmt).all()
        ]

    def find_event_ids(self, *, client_id: str) -> list[str]:
        # LIKE narrows the candidates, the decoded list decides
        rows = self.db.execute(
            select(Event.id, Event.client_ids)
            .where(Event.client_ids.contains(client_id))
            .order_by(Event.id)
        ).all()
        return [
            event_id
            for event_id, raw_ids in rows
            if client_id in parse_id_list(raw_ids, field="client_ids", owner_id=event_id)
        ]

    def find_workdays(
        self,
        event_ids: Collection[str] | None,
        start_date: date | None,
        end_date: date | None,
        *,
        location_id: str | None = None,
    ) -> list[WorkdayRecord]:
        if event_ids is not None and not event_ids:
            return []

        effective_location_id = func.coalesce(Workday.location_id, Event.location_id)
        stmt = (
            select(
                Workday.id,
                Workday.work_date,
                Workday.event_id,
                Event.title,
                effective_location_id,
                Location.name,
                Location.city,
            )
            .join(Event, Event.id == Workday.event_id)
            .outerjoin(Location, Location.id == effective_location_id)
            .order_by(Workday.work_date, Workday.id)
        )
        if start_date is not None:
            stmt = stmt.where(Workday.work_date >= start_date)
        if end_date is not None:
            stmt = stmt.where(Workday.work_date <= end_date)
        if event_ids is not None:
            stmt = stmt.where(Workday.event_id.in_(sorted(event_ids)))
        if location_id is not None:
            stmt = stmt.where(effective_location_id == location_id)

        return [
            WorkdayRecord(
                id=workday_id,
                date=work_date,
                event_id=event_id,
                event_title=title,
                location_id=loc_id,
                location_name=location_label(loc_name, loc_city),
            )
            for workday_id, work_date, event_id, title, loc_id, loc_name, loc_city in self.db.execute(stmt).all()
        ]

    def find_assignments(
        self,
        workday_ids: Collection[str],
        *,
        client_id: str | None = None,
    ) -> list[AssignmentRecord]:
        if not workday_ids:
            return []
        stmt = (
            select(Assignment)
            .join(TaskType, TaskType.id == Assignment.task_type_id)
            .where(
                Assignment.workday_id.in_(sorted(workday_ids)),
                TaskType.type == TaskTypeKind.SHIFT,
            )
            .options(selectinload(Assignment.time_entries))
            .order_by(Assignment.workday_id, Assignment.start_time, Assignment.id)
        )
        if client_id is not None:
            stmt = stmt.where(Assignment.client_id == client_id)
        return [_assignment_record(row) for row in self.db.scalars(stmt).all()]

    def find_duties(self, duty_ids: Iterable[str]) -> dict[str, DutyRecord]:
        ids = sorted({duty_id for duty_id in duty_ids if duty_id})
        if not ids:
            return {}
        rows = self.db.scalars(select(Duty).where(Duty.id.in_(ids))).all()
        return {row.id: DutyRecord(id=row.id, code=row.code, name=row.name) for row in rows}

    def find_task_types(self, task_type_ids: Iterable[str]) -> dict[str, TaskTypeRecord]:
        ids = sorted(set(task_type_ids))
        if not ids:
            return {}
        rows = self.db.scalars(select(TaskType).where(TaskType.id.in_(ids))).all()
        return {
            row.id: TaskTypeRecord(
                id=row.id,
                name=row.name,
                is_hourly_service=row.is_hourly_service,
                shift_hours=row.shift_hours,
            )
            for row in rows
        }


def _client_record(client: Client) -> ClientRecord:
    return ClientRecord(
        id=client.id,
        code=client.code,
        type=client.type,
        ragione_sociale=client.ragione_sociale,
        nome=client.nome,
        cognome=client.cognome,
    )


def _assignment_record(assignment: Assignment) -> AssignmentRecord:
    return AssignmentRecord(
        id=assignment.id,
        workday_id=assignment.workday_id,
        task_type_id=assignment.task_type_id,
        client_id=assignment.client_id,
        user_id=assignment.user_id,
        start_time=assignment.start_time,
        end_time=assignment.end_time,
        has_scheduled_break=assignment.has_scheduled_break,
        break_start=assignment.scheduled_break_start_time,
        break_end=assignment.scheduled_break_end_time,
        scheduled_breaks_json=assignment.scheduled_breaks,
        assigned_users_json=assignment.assigned_users,
        personnel_requests_json=assignment.personnel_requests,
        time_entries=tuple(
            TimeEntryRecord(
                id=entry.id,
                user_id=entry.user_id,
                date=entry.entry_date,
                hours_worked=float(entry.hours_worked or 0),
                start_time=entry.start_time,
                end_time=entry.end_time,
                notes=entry.notes,
            )
            for entry in assignment.time_entries
        ),
    )
