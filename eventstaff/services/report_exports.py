from __future__ import annotations

import re
import unicodedata
from datetime import date
from io import BytesIO
from typing import Literal

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from eventstaff.schemas import (
    ClientReportResponse,
    CompanyReportResponse,
    DayDetailRead,
    DutyReportResponse,
    DutySummaryRead,
    EmployeeReportResponse,
    EventReportResponse,
    ReportEnvelope,
    ShiftWindowRead,
    TaskTypeDetailRead,
)

ReportType = Literal["cliente", "evento", "mansione", "azienda", "dipendente"]

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

SUMMARY_HEADERS = ["Codice", "Tipologia Turno", "Ore", "Turni Totali", "Straordinari"]

HEADER_FILL = PatternFill(fill_type="solid", fgColor="0B4F73")
SECTION_FILL = PatternFill(fill_type="solid", fgColor="DCEBF3")
META_LABEL_FILL = PatternFill(fill_type="solid", fgColor="EAF4F9")
META_VALUE_FILL = PatternFill(fill_type="solid", fgColor="F8FCFF")
TOTAL_FILL = PatternFill(fill_type="solid", fgColor="E9F1F7")

HEADER_FONT = Font(bold=True, color="FFFFFF")
BOLD_FONT = Font(bold=True, color="0F172A")
TITLE_FONT = Font(bold=True, color="0B4F73", size=14)
MUTED_FONT = Font(color="334155")

THIN_SIDE = Side(style="thin", color="D5E2EC")
THIN_BORDER = Border(left=THIN_SIDE, right=THIN_SIDE, top=THIN_SIDE, bottom=THIN_SIDE)


def slugify(name: str) -> str:
    normalized = unicodedata.normalize("NFD", name)
    ascii_only = "".join(char for char in normalized if not unicodedata.combining(char))
    return re.sub(r"[^a-z0-9]+", "", ascii_only.lower()) or "report"


def format_hours(hours: float) -> str:
    whole = int(hours)
    minutes = round((hours - whole) * 60)
    if minutes == 60:
        whole, minutes = whole + 1, 0
    return f"{whole}h {minutes}m"


def format_date(value: date | str) -> str:
    if isinstance(value, str):
        value = date.fromisoformat(value)
    return value.strftime("%d/%m/%Y")


def _period(report: ReportEnvelope) -> str:
    return f"{format_date(report.start_date)} - {format_date(report.end_date)}"


def _time_range(start: str | None, end: str | None) -> str:
    return f"{start or '-'} - {end or '-'}"


def _style_header(ws: Worksheet, row: int) -> None:
    for cell in ws[row]:
        if cell.value is None:
            continue
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        cell.border = THIN_BORDER


def _style_body_row(ws: Worksheet, row: int, *, fill: PatternFill | None = None, bold: bool = False) -> None:
    for cell in ws[row]:
        if cell.value is None:
            continue
        cell.border = THIN_BORDER
        if fill is not None:
            cell.fill = fill
        if bold:
            cell.font = BOLD_FONT


def _section(ws: Worksheet, text: str) -> None:
    ws.append([])
    ws.append([text])
    cell = ws.cell(row=ws.max_row, column=1)
    cell.font = BOLD_FONT
    cell.fill = SECTION_FILL


def _table(ws: Worksheet, headers: list[str], rows: list[list[object]]) -> None:
    ws.append(headers)
    _style_header(ws, ws.max_row)
    for values in rows:
        ws.append(values)
        _style_body_row(ws, ws.max_row)


def _write_title(ws: Worksheet, title: str, metadata: list[tuple[str, str]]) -> None:
    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=8)
    cell = ws.cell(row=1, column=1, value=title)
    cell.font = TITLE_FONT
    cell.alignment = Alignment(horizontal="left", vertical="center")
    for offset, (label, value) in enumerate(metadata, start=2):
        label_cell = ws.cell(row=offset, column=1, value=label)
        value_cell = ws.cell(row=offset, column=2, value=value)
        label_cell.font = BOLD_FONT
        label_cell.fill = META_LABEL_FILL
        label_cell.border = THIN_BORDER
        value_cell.font = MUTED_FONT
        value_cell.fill = META_VALUE_FILL
        value_cell.border = THIN_BORDER


def _auto_width(ws: Worksheet) -> None:
    for column_cells in ws.iter_cols(min_row=1, max_row=ws.max_row, min_col=1, max_col=ws.max_column):
        max_len = 0
        col_letter = get_column_letter(column_cells[0].column)
        for cell in column_cells:
            if cell.coordinate in ws.merged_cells:
                continue
            value = "" if cell.value is None else str(cell.value)
            max_len = max(max_len, len(value))
        ws.column_dimensions[col_letter].width = min(max_len + 2, 45)


def _summary_rows(summary: list[DutySummaryRead]) -> list[list[object]]:
    return [
        [
            item.duty_code,
            item.duty_name,
            format_hours(item.hours) if item.hours > 0 else "",
            item.shifts or "",
            format_hours(item.overtime_hours) if item.overtime_hours > 0 else "",
        ]
        for item in summary
    ]


def _hours_or_shifts(task_type: TaskTypeDetailRead, window: ShiftWindowRead) -> str:
    if task_type.is_hourly_service:
        return format_hours(window.total_hours)
    return f"{window.shifts} turni"


def _break_label(window: ShiftWindowRead) -> str:
    if not window.has_scheduled_break:
        return ""
    return _time_range(window.scheduled_break_start_time, window.scheduled_break_end_time)


def _daily_rows(
    daily_details: list[DayDetailRead],
    *,
    show_break_times: bool,
    with_place: bool = True,
    prefix: list[object] | None = None,
) -> list[list[object]]:
    rows: list[list[object]] = []
    for day in daily_details:
        for task_type in day.task_types:
            for window in task_type.shift_windows:
                row: list[object] = list(prefix or [])
                row.append(format_date(day.date))
                if with_place:
                    row.extend([day.location_name or "", day.event_title])
                row.extend(
                    [
                        task_type.task_type_name,
                        _time_range(window.start_time, window.end_time),
                    ]
                )
                if show_break_times:
                    row.append(_break_label(window))
                row.extend(
                    [
                        window.number_of_people,
                        _hours_or_shifts(task_type, window),
                        format_hours(window.overtime_hours) if window.overtime_hours > 0 else "",
                    ]
                )
                rows.append(row)
    return rows


def _daily_headers(*, show_break_times: bool, with_place: bool = True, prefix: list[str] | None = None) -> list[str]:
    headers = list(prefix or [])
    headers.append("Data")
    if with_place:
        headers.extend(["Location", "Evento"])
    headers.extend(["Tipologia", "Orario"])
    if show_break_times:
        headers.append("Pausa")
    headers.extend(["Persone", "Ore/Turni", "Straordinari"])
    return headers


def _write_client(ws: Worksheet, report: ClientReportResponse) -> None:
    _write_title(
        ws,
        "Report per Cliente",
        [("Cliente", report.client_name or report.client_id), ("Periodo", _period(report))],
    )
    if report.summary_by_duty:
        _section(ws, "Riepilogo per Tipologia Turno")
        _table(ws, SUMMARY_HEADERS, _summary_rows(report.summary_by_duty))
    if report.daily_details:
        _section(ws, "Dettaglio Giornaliero")
        _table(
            ws,
            _daily_headers(show_break_times=report.show_break_times),
            _daily_rows(report.daily_details, show_break_times=report.show_break_times),
        )


def _write_event(ws: Worksheet, report: EventReportResponse) -> None:
    _write_title(
        ws,
        "Report per Evento",
        [
            ("Evento", report.event_title),
            ("Location", report.location_name or ""),
            ("Periodo", _period(report)),
        ],
    )
    if report.summary_by_duty:
        _section(ws, "Riepilogo per Tipologia Turno")
        _table(ws, SUMMARY_HEADERS, _summary_rows(report.summary_by_duty))
    if report.daily_details:
        _section(ws, "Dettaglio Giornaliero")
        _table(
            ws,
            _daily_headers(show_break_times=report.show_break_times, with_place=False),
            _daily_rows(report.daily_details, show_break_times=report.show_break_times, with_place=False),
        )


def _write_duty(ws: Worksheet, report: DutyReportResponse) -> None:
    _write_title(
        ws,
        "Report per Mansione",
        [
            ("Mansione", f"{report.duty_code} - {report.duty_name}"),
            ("Cliente", report.client_name or ""),
            ("Location", report.location_name or report.location_id or ""),
            ("Periodo", _period(report)),
        ],
    )
    rows: list[list[object]] = []
    for day in report.daily_details:
        for task_type in day.task_types:
            rows.append(
                [
                    format_date(day.date),
                    task_type.task_type_name,
                    format_hours(task_type.total_hours) if task_type.is_hourly_service else f"{task_type.shifts} turni",
                    format_hours(task_type.overtime_hours) if task_type.overtime_hours > 0 else "",
                ]
            )
    if rows:
        _section(ws, "Dettaglio Giornaliero")
        _table(ws, ["Data", "Tipologia", "Ore/Turni", "Straordinari"], rows)
    ws.append([])
    ws.append(["Totale", "", format_hours(report.totals.hours), report.totals.shifts])
    _style_body_row(ws, ws.max_row, fill=TOTAL_FILL, bold=True)


def _write_company(ws: Worksheet, report: CompanyReportResponse) -> None:
    _write_title(ws, "Report per Azienda", [("Periodo", _period(report))])
    _section(ws, "Riepilogo Aziende")
    _table(
        ws,
        ["Azienda", "Ore Totali", "Turni Totali", "Straordinari"],
        [
            [
                company.company_name,
                format_hours(company.total_hours),
                company.total_shifts,
                format_hours(company.total_overtime_hours),
            ]
            for company in report.companies
        ],
    )
    daily_rows: list[list[object]] = []
    for company in report.companies:
        daily_rows.extend(
            _daily_rows(
                company.daily_details or [],
                show_break_times=report.show_break_times,
                with_place=False,
                prefix=[company.company_name],
            )
        )
    if daily_rows:
        _section(ws, "Dettaglio Giornaliero")
        _table(
            ws,
            _daily_headers(show_break_times=report.show_break_times, with_place=False, prefix=["Azienda"]),
            daily_rows,
        )


def _write_employees(ws: Worksheet, report: EmployeeReportResponse) -> None:
    _write_title(ws, "Report per Dipendente", [("Periodo", _period(report))])
    _section(ws, "Riepilogo Dipendenti")
    _table(
        ws,
        ["Codice", "Nome", "Ore Totali", "Turni Totali", "Straordinari"],
        [
            [
                employee.user_code or "",
                employee.user_name,
                "-" if employee.has_only_shift_services else format_hours(employee.total_hours),
                employee.total_shifts,
                format_hours(employee.total_overtime_hours),
            ]
            for employee in report.employees
        ],
    )

    for employee in report.employees:
        if not employee.entries:
            continue
        _section(ws, f"Dettaglio Turni - {employee.user_name}")
        _table(
            ws,
            ["Data", "Evento", "Orari", "Ore", "Turni", "Straordinari", "Note"],
            [
                [
                    format_date(entry.date),
                    entry.event_title,
                    _time_range(entry.start_time, entry.end_time),
                    "-" if employee.has_only_shift_services else format_hours(entry.hours),
                    entry.shifts if not entry.is_hourly_service else "-",
                    format_hours(entry.overtime_hours) if entry.overtime_hours > 0 else "",
                    entry.notes or "",
                ]
                for entry in employee.entries
            ],
        )
        ws.append(
            [
                "Totale",
                "",
                "",
                "-" if employee.has_only_shift_services else format_hours(employee.total_hours),
                employee.total_shifts,
                format_hours(employee.total_overtime_hours),
                "",
            ]
        )
        _style_body_row(ws, ws.max_row, fill=TOTAL_FILL, bold=True)


def _entity_slug(report_type: ReportType, report: ReportEnvelope) -> str:
    if isinstance(report, ClientReportResponse):
        return slugify(report.client_name or report.client_id)
    if isinstance(report, EventReportResponse):
        return slugify(report.event_title or "evento")
    if isinstance(report, DutyReportResponse):
        return slugify(f"{report.duty_code} {report.duty_name}".strip() or "mansione")
    if isinstance(report, CompanyReportResponse):
        if len(report.companies) == 1:
            return slugify(report.companies[0].company_name)
        return "tutte"
    if isinstance(report, EmployeeReportResponse):
        if len(report.employees) == 1:
            return slugify(report.employees[0].user_name)
        return "tutti"
    return report_type


def export_filename(report_type: ReportType, report: ReportEnvelope) -> str:
    period = f"{format_date(report.start_date).replace('/', '-')}_{format_date(report.end_date).replace('/', '-')}"
    return f"report-{report_type}-{_entity_slug(report_type, report)}-{period}.xlsx"


def build_report_workbook(report_type: ReportType, report: ReportEnvelope) -> Workbook:
    wb = Workbook()
    ws = wb.active
    ws.title = "Report"

    if isinstance(report, ClientReportResponse):
        _write_client(ws, report)
    elif isinstance(report, EventReportResponse):
        _write_event(ws, report)
    elif isinstance(report, DutyReportResponse):
        _write_duty(ws, report)
    elif isinstance(report, CompanyReportResponse):
        _write_company(ws, report)
    elif isinstance(report, EmployeeReportResponse):
        _write_employees(ws, report)
    else:
        raise ValueError(f"Unsupported report for export: {report_type}")

    ws.freeze_panes = "A2"
    _auto_width(ws)
    return wb


def build_report_xlsx_bytes(report_type: ReportType, report: ReportEnvelope) -> bytes:
    output = BytesIO()
    build_report_workbook(report_type, report).save(output)
    return output.getvalue()
