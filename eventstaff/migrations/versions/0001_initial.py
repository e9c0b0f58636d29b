"""Initial scheduling and reporting schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-01 00:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

client_type = postgresql.ENUM("PRIVATO", "AZIENDA", name="client_type", create_type=False)
task_type_kind = postgresql.ENUM("SHIFT", "ACTIVITY", name="task_type_kind", create_type=False)
user_role = postgresql.ENUM(
    "SUPER_ADMIN",
    "ADMIN",
    "RESPONSABILE",
    "USER",
    name="user_role",
    create_type=False,
)
audit_actor_type = postgresql.ENUM("USER", "SYSTEM", name="audit_actor_type", create_type=False)


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in (client_type, task_type_kind, user_role, audit_actor_type):
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        "companies",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=64), nullable=True),
        sa.Column("ragione_sociale", sa.String(length=255), nullable=False),
        sa.UniqueConstraint("code", name="uq_companies_code"),
    )

    op.create_table(
        "clients",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("type", client_type, nullable=False),
        sa.Column("ragione_sociale", sa.String(length=255), nullable=True),
        sa.Column("nome", sa.String(length=255), nullable=True),
        sa.Column("cognome", sa.String(length=255), nullable=True),
        sa.UniqueConstraint("code", name="uq_clients_code"),
    )

    op.create_table(
        "locations",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=64), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("city", sa.String(length=255), nullable=True),
    )

    op.create_table(
        "events",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("client_ids", sa.Text(), nullable=True),
        sa.Column("location_id", sa.String(length=36), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.ForeignKeyConstraint(["location_id"], ["locations.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_events_location_id", "events", ["location_id"])

    op.create_table(
        "workdays",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("event_id", sa.String(length=36), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("location_id", sa.String(length=36), nullable=True),
        sa.ForeignKeyConstraint(["event_id"], ["events.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["location_id"], ["locations.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_workdays_event_id", "workdays", ["event_id"])
    op.create_index("ix_workdays_date", "workdays", ["date"])
    op.create_index("ix_workdays_location_id", "workdays", ["location_id"])

    op.create_table(
        "task_types",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", task_type_kind, nullable=False),
        sa.Column("is_hourly_service", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("shift_hours", sa.Float(), nullable=True),
    )

    op.create_table(
        "duties",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.UniqueConstraint("code", name="uq_duties_code"),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=64), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("cognome", sa.String(length=255), nullable=True),
        sa.Column("role", user_role, nullable=False),
        sa.Column("company_id", sa.String(length=36), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("code", name="uq_users_code"),
    )
    op.create_index("ix_users_company_id", "users", ["company_id"])

    op.create_table(
        "assignments",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("workday_id", sa.String(length=36), nullable=False),
        sa.Column("task_type_id", sa.String(length=36), nullable=False),
        sa.Column("client_id", sa.String(length=36), nullable=True),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        sa.Column("start_time", sa.String(length=5), nullable=True),
        sa.Column("end_time", sa.String(length=5), nullable=True),
        sa.Column("has_scheduled_break", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("scheduled_break_start_time", sa.String(length=5), nullable=True),
        sa.Column("scheduled_break_end_time", sa.String(length=5), nullable=True),
        sa.Column("scheduled_breaks", sa.Text(), nullable=True),
        sa.Column("assigned_users", sa.Text(), nullable=True),
        sa.Column("personnel_requests", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["workday_id"], ["workdays.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["task_type_id"], ["task_types.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_assignments_workday_id", "assignments", ["workday_id"])
    op.create_index("ix_assignments_client_id", "assignments", ["client_id"])
    op.create_index("ix_assignments_user_id", "assignments", ["user_id"])

    op.create_table(
        "time_entries",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("assignment_id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("hours_worked", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("start_time", sa.String(length=5), nullable=True),
        sa.Column("end_time", sa.String(length=5), nullable=True),
        sa.Column("has_taken_break", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("actual_break_start_time", sa.String(length=5), nullable=True),
        sa.Column("actual_break_end_time", sa.String(length=5), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["assignment_id"], ["assignments.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("assignment_id", "user_id", name="uq_time_entries_assignment_user"),
    )
    op.create_index("ix_time_entries_assignment_id", "time_entries", ["assignment_id"])
    op.create_index("ix_time_entries_user_id", "time_entries", ["user_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("ts_utc", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("actor_type", audit_actor_type, nullable=False),
        sa.Column("actor_id", sa.String(length=255), nullable=False),
        sa.Column("action", sa.String(length=255), nullable=False),
        sa.Column("entity_type", sa.String(length=255), nullable=True),
        sa.Column("entity_id", sa.String(length=255), nullable=True),
        sa.Column("ip_hash", sa.String(length=128), nullable=True),
        sa.Column("user_agent", sa.String(length=1024), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("details", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
    )
    op.create_index("ix_audit_logs_ts_utc", "audit_logs", ["ts_utc"])


def downgrade() -> None:
    op.drop_index("ix_audit_logs_ts_utc", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index("ix_time_entries_user_id", table_name="time_entries")
    op.drop_index("ix_time_entries_assignment_id", table_name="time_entries")
    op.drop_table("time_entries")
    op.drop_index("ix_assignments_user_id", table_name="assignments")
    op.drop_index("ix_assignments_client_id", table_name="assignments")
    op.drop_index("ix_assignments_workday_id", table_name="assignments")
    op.drop_table("assignments")
    op.drop_index("ix_users_company_id", table_name="users")
    op.drop_table("users")
    op.drop_table("duties")
    op.drop_table("task_types")
    op.drop_index("ix_workdays_location_id", table_name="workdays")
    op.drop_index("ix_workdays_date", table_name="workdays")
    op.drop_index("ix_workdays_event_id", table_name="workdays")
    op.drop_table("workdays")
    op.drop_index("ix_events_location_id", table_name="events")
    op.drop_table("events")
    op.drop_table("locations")
    op.drop_table("clients")
    op.drop_table("companies")

    bind = op.get_bind()
    for enum_type in (audit_actor_type, user_role, task_type_kind, client_type):
        enum_type.drop(bind, checkfirst=True)
