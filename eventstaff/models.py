from __future__ import annotations

import enum
from datetime import date, datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
    true,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eventstaff.db import Base


def _new_id() -> str:
    return str(uuid4())


class ClientType(str, enum.Enum):
    PRIVATO = "PRIVATO"
    AZIENDA = "AZIENDA"


class TaskTypeKind(str, enum.Enum):
    SHIFT = "SHIFT"
    ACTIVITY = "ACTIVITY"


class UserRole(str, enum.Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    RESPONSABILE = "RESPONSABILE"
    USER = "USER"


class AuditActorType(str, enum.Enum):
    USER = "USER"
    SYSTEM = "SYSTEM"


class Company(Base):
    __tablename__ = "companies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    code: Mapped[str | None] = mapped_column(String(64), nullable=True, unique=True)
    ragione_sociale: Mapped[str] = mapped_column(String(255), nullable=False)

    users: Mapped[list[User]] = relationship(back_populates="company")


class Client(Base):
    __tablename__ = "clients"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    code: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    type: Mapped[ClientType] = mapped_column(
        Enum(ClientType, name="client_type"),
        nullable=False,
        default=ClientType.AZIENDA,
    )
    ragione_sociale: Mapped[str | None] = mapped_column(String(255), nullable=True)
    nome: Mapped[str | None] = mapped_column(String(255), nullable=True)
    cognome: Mapped[str | None] = mapped_column(String(255), nullable=True)


class Location(Base):
    __tablename__ = "locations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str | None] = mapped_column(String(255), nullable=True)


class Event(Base):
    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    # JSON-encoded list of client ids
    client_ids: Mapped[str | None] = mapped_column(Text, nullable=True)
    location_id: Mapped[str | None] = mapped_column(
        ForeignKey("locations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    location: Mapped[Location | None] = relationship()
    workdays: Mapped[list[Workday]] = relationship(back_populates="event")


class Workday(Base):
    __tablename__ = "workdays"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    event_id: Mapped[str] = mapped_column(ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    work_date: Mapped[date] = mapped_column("date", Date, nullable=False, index=True)
    location_id: Mapped[str | None] = mapped_column(
        ForeignKey("locations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    event: Mapped[Event] = relationship(back_populates="workdays")
    location: Mapped[Location | None] = relationship()
    assignments: Mapped[list[Assignment]] = relationship(back_populates="workday")


class TaskType(Base):
    __tablename__ = "task_types"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[TaskTypeKind] = mapped_column(
        Enum(TaskTypeKind, name="task_type_kind"),
        nullable=False,
        default=TaskTypeKind.SHIFT,
    )
    is_hourly_service: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    shift_hours: Mapped[float | None] = mapped_column(Float, nullable=True)


class Duty(Base):
    __tablename__ = "duties"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    code: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    code: Mapped[str | None] = mapped_column(String(64), nullable=True, unique=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    cognome: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role"),
        nullable=False,
        default=UserRole.USER,
    )
    company_id: Mapped[str | None] = mapped_column(
        ForeignKey("companies.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())

    company: Mapped[Company | None] = relationship(back_populates="users")


class Assignment(Base):
    __tablename__ = "assignments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    workday_id: Mapped[str] = mapped_column(ForeignKey("workdays.id", ondelete="CASCADE"), nullable=False, index=True)
    task_type_id: Mapped[str] = mapped_column(ForeignKey("task_types.id", ondelete="RESTRICT"), nullable=False)
    client_id: Mapped[str | None] = mapped_column(
        ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    user_id: Mapped[str | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    start_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    end_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    has_scheduled_break: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    scheduled_break_start_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    scheduled_break_end_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    # JSON-encoded [{"start": "HH:MM", "end": "HH:MM"}]
    scheduled_breaks: Mapped[str | None] = mapped_column(Text, nullable=True)
    # JSON-encoded [{"userId": ..., "dutyId": ...}]
    assigned_users: Mapped[str | None] = mapped_column(Text, nullable=True)
    # JSON-encoded [{"dutyId": ..., "quantity": ...}]
    personnel_requests: Mapped[str | None] = mapped_column(Text, nullable=True)

    workday: Mapped[Workday] = relationship(back_populates="assignments")
    task_type: Mapped[TaskType] = relationship()
    time_entries: Mapped[list[TimeEntry]] = relationship(
        back_populates="assignment",
        order_by="TimeEntry.id",
    )


class TimeEntry(Base):
    __tablename__ = "time_entries"
    __table_args__ = (UniqueConstraint("assignment_id", "user_id", name="uq_time_entries_assignment_user"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    assignment_id: Mapped[str] = mapped_column(
        ForeignKey("assignments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    entry_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    hours_worked: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    start_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    end_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    has_taken_break: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    actual_break_start_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    actual_break_end_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    assignment: Mapped[Assignment] = relationship(back_populates="time_entries")


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ts_utc: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        index=True,
    )
    actor_type: Mapped[AuditActorType] = mapped_column(
        Enum(AuditActorType, name="audit_actor_type"),
        nullable=False,
    )
    actor_id: Mapped[str] = mapped_column(String(255), nullable=False)
    action: Mapped[str] = mapped_column(String(255), nullable=False)
    entity_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    entity_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    ip_hash: Mapped[str | None] = mapped_column(String(128), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    details: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        default=dict,
    )
