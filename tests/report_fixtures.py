from __future__ import annotations

import json
from collections.abc import Generator, Iterable
from datetime import date

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from eventstaff.db import Base
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
    TimeEntry,
    User,
    UserRole,
    Workday,
)
from eventstaff.services.report_repository import TaskTypeRecord, TimeEntryRecord, WorkdayRecord
from eventstaff.services.report_scope import ResolvedAssignment
from eventstaff.services.time_math import break_hours

HOURLY = TaskTypeRecord(id="tt-hourly", name="Vigilanza", is_hourly_service=True, shift_hours=None)
TURN = TaskTypeRecord(id="tt-turn", name="Portierato", is_hourly_service=False, shift_hours=8)

WORKDAY = WorkdayRecord(
    id="wd-1",
    date=date(2026, 3, 2),
    event_id="ev-1",
    event_title="Fiera del Mobile",
    location_id="loc-1",
    location_name="Rho Fiera (Milano)",
)


def entry(
    user_id: str,
    hours: float,
    *,
    start: str | None = None,
    end: str | None = None,
    notes: str | None = None,
    day: date = WORKDAY.date,
) -> TimeEntryRecord:
    return TimeEntryRecord(
        id=f"te-{user_id}-{hours}",
        user_id=user_id,
        date=day,
        hours_worked=hours,
        start_time=start,
        end_time=end,
        notes=notes,
    )


def resolved(
    assignment_id: str = "as-1",
    *,
    task_type: TaskTypeRecord = HOURLY,
    workday: WorkdayRecord = WORKDAY,
    start: str | None = "09:00",
    end: str | None = "17:00",
    entries: Iterable[TimeEntryRecord] = (),
    duties: dict[str, str] | None = None,
    people: Iterable[str] = (),
    break_window: tuple[str, str] | None = None,
) -> ResolvedAssignment:
    entries = tuple(entries)
    people = tuple(people) or tuple(item.user_id for item in entries)
    return ResolvedAssignment(
        id=assignment_id,
        workday=workday,
        task_type=task_type,
        start_time=start,
        end_time=end,
        has_scheduled_break=break_window is not None,
        break_start=break_window[0] if break_window else None,
        break_end=break_window[1] if break_window else None,
        break_hours=break_hours(break_window is not None, *(break_window or (None, None))),
        user_duties=duties or {},
        scheduled_people=people,
        time_entries=entries,
    )


def make_session() -> Session:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()


def override_get_db(db: Session):
    def _override() -> Generator[Session, None, None]:
        yield db

    return _override


class ScheduleBuilder:
    """Inserts scheduling rows with readable defaults."""

    def __init__(self, db: Session):
        self.db = db

    def _add(self, obj):  # type: ignore[no-untyped-def]
        self.db.add(obj)
        self.db.flush()
        return obj

    def company(self, ragione_sociale: str, *, code: str | None = None) -> Company:
        return self._add(Company(ragione_sociale=ragione_sociale, code=code))

    def client(
        self,
        code: str,
        *,
        ragione_sociale: str | None = None,
        nome: str | None = None,
        cognome: str | None = None,
        private: bool = False,
    ) -> Client:
        return self._add(
            Client(
                code=code,
                type=ClientType.PRIVATO if private else ClientType.AZIENDA,
                ragione_sociale=ragione_sociale,
                nome=nome,
                cognome=cognome,
            )
        )

    def location(self, name: str, *, city: str | None = None) -> Location:
        return self._add(Location(name=name, city=city))

    def event(
        self,
        title: str,
        *,
        clients: Iterable[Client] = (),
        location: Location | None = None,
        raw_client_ids: str | None = None,
    ) -> Event:
        client_ids = raw_client_ids if raw_client_ids is not None else json.dumps([item.id for item in clients])
        return self._add(Event(title=title, client_ids=client_ids, location_id=location.id if location else None))

    def workday(self, event: Event, day: date, *, location: Location | None = None) -> Workday:
        return self._add(Workday(event_id=event.id, work_date=day, location_id=location.id if location else None))

    def task_type(
        self,
        name: str,
        *,
        hourly: bool = True,
        shift_hours: float | None = None,
        kind: TaskTypeKind = TaskTypeKind.SHIFT,
    ) -> TaskType:
        return self._add(TaskType(name=name, type=kind, is_hourly_service=hourly, shift_hours=shift_hours))

    def duty(self, code: str, name: str) -> Duty:
        return self._add(Duty(code=code, name=name))

    def user(
        self,
        code: str,
        *,
        name: str | None = None,
        cognome: str | None = None,
        company: Company | None = None,
        role: UserRole = UserRole.USER,
    ) -> User:
        return self._add(
            User(
                code=code,
                name=name,
                cognome=cognome,
                role=role,
                company_id=company.id if company else None,
            )
        )

    def assignment(
        self,
        workday: Workday,
        task_type: TaskType,
        *,
        start: str | None = "09:00",
        end: str | None = "17:00",
        assigned: Iterable[tuple[User, Duty | None]] = (),
        personnel_requests: Iterable[Duty] = (),
        client: Client | None = None,
        user: User | None = None,
        break_window: tuple[str, str] | None = None,
        raw_assigned_users: str | None = None,
    ) -> Assignment:
        assigned = list(assigned)
        requests = list(personnel_requests)
        assigned_json = raw_assigned_users
        if assigned_json is None and assigned:
            assigned_json = json.dumps(
                [{"userId": person.id, "dutyId": duty.id if duty else None} for person, duty in assigned]
            )
        return self._add(
            Assignment(
                workday_id=workday.id,
                task_type_id=task_type.id,
                client_id=client.id if client else None,
                user_id=user.id if user else None,
                start_time=start,
                end_time=end,
                has_scheduled_break=break_window is not None,
                scheduled_break_start_time=break_window[0] if break_window else None,
                scheduled_break_end_time=break_window[1] if break_window else None,
                assigned_users=assigned_json,
                personnel_requests=(
                    json.dumps([{"dutyId": duty.id, "quantity": 1} for duty in requests]) if requests else None
                ),
            )
        )

    def time_entry(
        self,
        assignment: Assignment,
        user: User,
        hours: float,
        *,
        start: str | None = None,
        end: str | None = None,
        notes: str | None = None,
    ) -> TimeEntry:
        workday = self.db.get(Workday, assignment.workday_id)
        return self._add(
            TimeEntry(
                assignment_id=assignment.id,
                user_id=user.id,
                entry_date=workday.work_date,
                hours_worked=hours,
                start_time=start,
                end_time=end,
                notes=notes,
            )
        )

    def commit(self) -> None:
        self.db.commit()
        self.db.expire_all()
