from __future__ import annotations

import enum
from datetime import date

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class HoursType(str, enum.Enum):
    ACTUAL = "actual"
    SCHEDULED = "scheduled"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReportTotals(CamelModel):
    hours: float = 0.0
    shifts: int = 0
    overtime_hours: float = 0.0


class DutySummaryRead(CamelModel):
    duty_id: str
    duty_code: str
    duty_name: str
    hours: float
    shifts: int
    overtime_hours: float


class DutyBreakdownRead(CamelModel):
    duty_id: str
    duty_code: str
    duty_name: str
    number_of_people: int
    total_hours: float
    hours_per_person: float


class ShiftWindowRead(CamelModel):
    start_time: str | None
    end_time: str | None
    scheduled_start_time: str | None
    scheduled_end_time: str | None
    has_scheduled_break: bool
    scheduled_break_start_time: str | None = None
    scheduled_break_end_time: str | None = None
    duties: list[DutyBreakdownRead]
    total_hours: float
    number_of_people: int
    shifts: int = 0
    overtime_hours: float = 0.0
    notes: list[str] = []


class TaskTypeDetailRead(CamelModel):
    task_type_id: str
    task_type_name: str
    is_hourly_service: bool
    shift_hours: float | None = None
    shift_windows: list[ShiftWindowRead]
    total_hours: float
    shifts: int = 0
    overtime_hours: float = 0.0


class DayDetailRead(CamelModel):
    date: str
    location_id: str | None
    location_name: str | None
    event_id: str
    event_title: str
    task_types: list[TaskTypeDetailRead]


class TaskTypeTotalsRead(CamelModel):
    task_type_id: str
    task_type_name: str
    is_hourly_service: bool
    total_hours: float
    shifts: int
    overtime_hours: float
    number_of_people: int


class DutyDayDetailRead(CamelModel):
    date: str
    location_id: str | None
    location_name: str | None
    event_id: str
    event_title: str
    task_types: list[TaskTypeTotalsRead]


class ReportEnvelope(CamelModel):
    start_date: date
    end_date: date
    hours_type: HoursType
    include_breaks_hourly: bool
    show_break_times: bool


class ClientReportResponse(ReportEnvelope):
    client_id: str
    client_name: str | None
    total_hours: float
    totals: ReportTotals
    summary_by_duty: list[DutySummaryRead]
    daily_details: list[DayDetailRead]


class ClientOption(CamelModel):
    id: str
    name: str


class EventReportResponse(ReportEnvelope):
    event_id: str
    event_title: str
    location_id: str | None
    location_name: str | None
    client_id: str | None = None
    clients: list[ClientOption]
    total_hours: float
    totals: ReportTotals
    summary_by_duty: list[DutySummaryRead]
    daily_details: list[DayDetailRead]


class DutyReportResponse(ReportEnvelope):
    duty_id: str
    duty_code: str
    duty_name: str
    client_id: str | None = None
    client_name: str | None = None
    location_id: str | None = None
    location_name: str | None = None
    total_hours: float
    totals: ReportTotals
    summary_by_duty: list[DutySummaryRead]
    daily_details: list[DutyDayDetailRead]


class CompanySubReport(CamelModel):
    company_id: str
    company_code: str | None
    company_name: str
    total_hours: float
    total_shifts: int
    total_overtime_hours: float
    summary_by_duty: list[DutySummaryRead]
    daily_details: list[DayDetailRead] | None = None


class CompanyReportResponse(ReportEnvelope):
    company_id: str | None = None
    include_daily_details: bool
    totals: ReportTotals
    companies: list[CompanySubReport]


class EmployeeEntryRead(CamelModel):
    date: str
    event_id: str
    event_title: str
    task_type_id: str
    task_type_name: str
    is_hourly_service: bool
    duty_id: str
    duty_name: str
    start_time: str | None
    end_time: str | None
    hours: float
    shifts: int
    overtime_hours: float
    notes: str | None = None


class EmployeeSubReport(CamelModel):
    user_id: str
    user_name: str
    user_code: str | None
    company_id: str | None
    total_hours: float
    total_shifts: int
    total_overtime_hours: float
    has_only_shift_services: bool
    entries: list[EmployeeEntryRead]
    daily_details: list[DayDetailRead] | None = None


class EmployeeReportResponse(ReportEnvelope):
    user_id: str | None = None
    include_daily_details: bool
    totals: ReportTotals
    employees: list[EmployeeSubReport]


class TimesheetKind(str, enum.Enum):
    EVENT = "event"
    DATE_RANGE = "date-range"
    CLIENT = "client"


class TimesheetSummaryRead(CamelModel):
    user_id: str
    user_name: str
    user_code: str | None
    total_hours: float
    shifts_count: int


class TimesheetDetailRead(CamelModel):
    date: str
    user_id: str
    user_name: str
    user_code: str | None
    event_id: str
    event_title: str
    client_id: str | None = None
    client_name: str | None = None
    assignment_id: str
    task_type_name: str
    scheduled_start_time: str | None
    scheduled_end_time: str | None
    actual_start_time: str | None = None
    actual_end_time: str | None = None
    hours_worked: float
    notes: str | None = None


class TimesheetReportResponse(CamelModel):
    type: TimesheetKind
    event_id: str | None = None
    client_id: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    user_ids: list[str] = []
    total_hours: float
    summary: list[TimesheetSummaryRead]
    details: list[TimesheetDetailRead]
