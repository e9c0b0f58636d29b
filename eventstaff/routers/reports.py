from dataclasses import replace
from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from eventstaff.audit import log_audit
from eventstaff.db import get_db
from eventstaff.errors import bad_request, forbidden
from eventstaff.models import AuditActorType, UserRole
from eventstaff.schemas import (
    ClientReportResponse,
    CompanyReportResponse,
    DutyReportResponse,
    EmployeeReportResponse,
    EventReportResponse,
    HoursType,
    ReportEnvelope,
    TimesheetKind,
    TimesheetReportResponse,
)
from eventstaff.security import COMPANY_REPORT_ROLES, REPORT_ADMIN_ROLES, claims_role, require_roles
from eventstaff.services.report_exports import (
    XLSX_MEDIA_TYPE,
    ReportType,
    build_report_xlsx_bytes,
    export_filename,
)
from eventstaff.services.report_repository import ReportRepository
from eventstaff.services.reports import (
    ReportOptions,
    build_client_report,
    build_company_report,
    build_duty_report,
    build_employee_report,
    build_event_report,
    build_timesheet_report,
)

router = APIRouter(tags=["reports"])


def report_options(
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    hours_type: HoursType = Query(HoursType.ACTUAL, alias="hoursType"),
    include_breaks_hourly: bool = Query(True, alias="includeBreaksHourly"),
    show_break_times: bool = Query(True, alias="showBreakTimes"),
) -> ReportOptions:
    if start_date > end_date:
        raise bad_request("startDate must be on or before endDate.")
    return ReportOptions(
        start_date=start_date,
        end_date=end_date,
        hours_type=hours_type,
        include_breaks_hourly=include_breaks_hourly,
        show_break_times=show_break_times,
    )


def _supervisor_company_id(claims: dict[str, Any]) -> str | None:
    """Company a RESPONSABILE is confined to; ``None`` for administrators."""
    if claims_role(claims) != UserRole.RESPONSABILE:
        return None
    company_id = claims.get("company_id")
    if not isinstance(company_id, str) or not company_id:
        raise forbidden("No company is associated with this account.")
    return company_id


def _client_report(db: Session, client_id: str, options: ReportOptions) -> ClientReportResponse:
    return build_client_report(ReportRepository(db), client_id=client_id, options=options)


def _event_report(db: Session, event_id: str, client_id: str | None, options: ReportOptions) -> EventReportResponse:
    return build_event_report(ReportRepository(db), event_id=event_id, client_id=client_id, options=options)


def _duty_report(
    db: Session,
    duty_id: str,
    client_id: str | None,
    location_id: str | None,
    options: ReportOptions,
) -> DutyReportResponse:
    return build_duty_report(
        ReportRepository(db),
        duty_id=duty_id,
        client_id=client_id,
        location_id=location_id,
        options=options,
    )


def _company_report(
    db: Session,
    claims: dict[str, Any],
    company_id: str | None,
    include_daily_details: bool,
    options: ReportOptions,
) -> CompanyReportResponse:
    supervisor_company_id = _supervisor_company_id(claims)
    options = replace(options, include_daily_details=include_daily_details)
    if supervisor_company_id is not None:
        company_id = supervisor_company_id
        options = replace(options, include_breaks_hourly=True, show_break_times=True)
    return build_company_report(ReportRepository(db), company_id=company_id, options=options)


def _employee_report(
    db: Session,
    claims: dict[str, Any],
    user_id: str | None,
    include_daily_details: bool,
    options: ReportOptions,
) -> EmployeeReportResponse:
    return build_employee_report(
        ReportRepository(db),
        user_id=user_id,
        restrict_company_id=_supervisor_company_id(claims),
        options=replace(options, include_daily_details=include_daily_details),
    )


def _xlsx_response(
    request: Request,
    db: Session,
    claims: dict[str, Any],
    *,
    report_type: ReportType,
    report: ReportEnvelope,
    entity_id: str | None,
) -> Response:
    payload = build_report_xlsx_bytes(report_type, report)
    filename = export_filename(report_type, report)
    log_audit(
        db,
        actor_type=AuditActorType.USER,
        actor_id=str(claims.get("sub")),
        action="REPORT_EXPORT_XLSX",
        success=True,
        entity_type=report_type,
        entity_id=entity_id,
        ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
        details={
            "filename": filename,
            "start_date": report.start_date.isoformat(),
            "end_date": report.end_date.isoformat(),
            "hours_type": report.hours_type.value,
        },
        request_id=getattr(request.state, "request_id", None),
    )
    return Response(
        content=payload,
        media_type=XLSX_MEDIA_TYPE,
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
        },
    )


@router.get(
    "/api/reports/cliente",
    response_model=ClientReportResponse,
    dependencies=[Depends(require_roles(*REPORT_ADMIN_ROLES))],
)
def get_client_report(
    client_id: str = Query(..., alias="clientId", min_length=1),
    options: ReportOptions = Depends(report_options),
    db: Session = Depends(get_db),
) -> ClientReportResponse:
    return _client_report(db, client_id, options)


@router.get("/api/reports/cliente/export.xlsx")
def export_client_report(
    request: Request,
    client_id: str = Query(..., alias="clientId", min_length=1),
    options: ReportOptions = Depends(report_options),
    claims: dict[str, Any] = Depends(require_roles(*REPORT_ADMIN_ROLES)),
    db: Session = Depends(get_db),
) -> Response:
    report = _client_report(db, client_id, options)
    return _xlsx_response(request, db, claims, report_type="cliente", report=report, entity_id=client_id)


@router.get(
    "/api/reports/evento",
    response_model=EventReportResponse,
    dependencies=[Depends(require_roles(*REPORT_ADMIN_ROLES))],
)
def get_event_report(
    event_id: str = Query(..., alias="eventId", min_length=1),
    client_id: str | None = Query(default=None, alias="clientId"),
    options: ReportOptions = Depends(report_options),
    db: Session = Depends(get_db),
) -> EventReportResponse:
    return _event_report(db, event_id, client_id or None, options)


@router.get("/api/reports/evento/export.xlsx")
def export_event_report(
    request: Request,
    event_id: str = Query(..., alias="eventId", min_length=1),
    client_id: str | None = Query(default=None, alias="clientId"),
    options: ReportOptions = Depends(report_options),
    claims: dict[str, Any] = Depends(require_roles(*REPORT_ADMIN_ROLES)),
    db: Session = Depends(get_db),
) -> Response:
    report = _event_report(db, event_id, client_id or None, options)
    return _xlsx_response(request, db, claims, report_type="evento", report=report, entity_id=event_id)


@router.get(
    "/api/reports/mansione",
    response_model=DutyReportResponse,
    dependencies=[Depends(require_roles(*REPORT_ADMIN_ROLES))],
)
def get_duty_report(
    duty_id: str = Query(..., alias="dutyId", min_length=1),
    client_id: str | None = Query(default=None, alias="clientId"),
    location_id: str | None = Query(default=None, alias="locationId"),
    options: ReportOptions = Depends(report_options),
    db: Session = Depends(get_db),
) -> DutyReportResponse:
    return _duty_report(db, duty_id, client_id or None, location_id or None, options)


@router.get("/api/reports/mansione/export.xlsx")
def export_duty_report(
    request: Request,
    duty_id: str = Query(..., alias="dutyId", min_length=1),
    client_id: str | None = Query(default=None, alias="clientId"),
    location_id: str | None = Query(default=None, alias="locationId"),
    options: ReportOptions = Depends(report_options),
    claims: dict[str, Any] = Depends(require_roles(*REPORT_ADMIN_ROLES)),
    db: Session = Depends(get_db),
) -> Response:
    report = _duty_report(db, duty_id, client_id or None, location_id or None, options)
    return _xlsx_response(request, db, claims, report_type="mansione", report=report, entity_id=duty_id)


@router.get("/api/reports/azienda", response_model=CompanyReportResponse)
def get_company_report(
    company_id: str | None = Query(default=None, alias="companyId"),
    include_daily_details: bool = Query(False, alias="includeDailyDetails"),
    options: ReportOptions = Depends(report_options),
    claims: dict[str, Any] = Depends(require_roles(*COMPANY_REPORT_ROLES)),
    db: Session = Depends(get_db),
) -> CompanyReportResponse:
    return _company_report(db, claims, company_id or None, include_daily_details, options)


@router.get("/api/reports/azienda/export.xlsx")
def export_company_report(
    request: Request,
    company_id: str | None = Query(default=None, alias="companyId"),
    include_daily_details: bool = Query(False, alias="includeDailyDetails"),
    options: ReportOptions = Depends(report_options),
    claims: dict[str, Any] = Depends(require_roles(*COMPANY_REPORT_ROLES)),
    db: Session = Depends(get_db),
) -> Response:
    report = _company_report(db, claims, company_id or None, include_daily_details, options)
    return _xlsx_response(request, db, claims, report_type="azienda", report=report, entity_id=report.company_id)


@router.get("/api/reports/dipendente", response_model=EmployeeReportResponse)
def get_employee_report(
    user_id: str | None = Query(default=None, alias="userId"),
    include_daily_details: bool = Query(False, alias="includeDailyDetails"),
    options: ReportOptions = Depends(report_options),
    claims: dict[str, Any] = Depends(require_roles(*COMPANY_REPORT_ROLES)),
    db: Session = Depends(get_db),
) -> EmployeeReportResponse:
    return _employee_report(db, claims, user_id or None, include_daily_details, options)


@router.get("/api/reports/dipendente/export.xlsx")
def export_employee_report(
    request: Request,
    user_id: str | None = Query(default=None, alias="userId"),
    include_daily_details: bool = Query(False, alias="includeDailyDetails"),
    options: ReportOptions = Depends(report_options),
    claims: dict[str, Any] = Depends(require_roles(*COMPANY_REPORT_ROLES)),
    db: Session = Depends(get_db),
) -> Response:
    report = _employee_report(db, claims, user_id or None, include_daily_details, options)
    return _xlsx_response(request, db, claims, report_type="dipendente", report=report, entity_id=user_id)


def _split_ids(raw: str | None) -> list[str]:
    if not raw:
        return []
    return list(dict.fromkeys(part.strip() for part in raw.split(",") if part.strip()))


@router.get("/api/reports", response_model=TimesheetReportResponse)
def get_timesheet_report(
    kind: TimesheetKind = Query(..., alias="type"),
    event_id: str | None = Query(default=None, alias="eventId"),
    client_id: str | None = Query(default=None, alias="clientId"),
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
    user_ids: str | None = Query(default=None, alias="userIds"),
    claims: dict[str, Any] = Depends(require_roles(*COMPANY_REPORT_ROLES)),
    db: Session = Depends(get_db),
) -> TimesheetReportResponse:
    return build_timesheet_report(
        ReportRepository(db),
        kind=kind,
        event_id=event_id or None,
        client_id=client_id or None,
        start_date=start_date,
        end_date=end_date,
        user_ids=_split_ids(user_ids),
        restrict_company_id=_supervisor_company_id(claims),
    )
