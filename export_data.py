"""Export a month's timesheet summaries to an Excel workbook."""

from __future__ import annotations

import re
from datetime import date
from pathlib import Path

import openpyxl
from openpyxl.styles import Alignment, Border, Font, Side
from openpyxl.utils import get_column_letter

from aggregation import company_total_hours
from models import MonthlyTimesheetSummary

THIN_BORDER = Border(
    left=Side(style='thin'),
    right=Side(style='thin'),
    top=Side(style='thin'),
    bottom=Side(style='thin'),
)

HEADER_FONT = Font(name='Calibri', size=11, bold=True)
TITLE_FONT = Font(name='Calibri', size=12, bold=True)
CENTER_ALIGN = Alignment(horizontal='center', vertical='center')
HOURS_FORMAT = '0.0#'
DATE_FORMAT = 'ddd dd mmm yyyy'

SUMMARY_SHEET = "Summary"
SUMMARY_HEADERS = ["Employee", "Employee ID", "Days", "Total hours", "Avg hours/day"]
DETAIL_HEADERS = ["Date", "Hours", "Work description"]

# Characters Excel does not allow in sheet titles
_INVALID_TITLE = re.compile(r"[\[\]:*?/\\]")


def sheet_title(name: str, taken: set[str]) -> str:
    """Make a unique, valid (<= 31 chars) sheet title from an employee name."""
    base = _INVALID_TITLE.sub("_", name).strip() or "Employee"
    base = base[:31]
    title = base
    n = 2
    while title.lower() in taken:
        suffix = f" ({n})"
        title = base[:31 - len(suffix)] + suffix
        n += 1
    taken.add(title.lower())
    return title


def _write_header(ws, row: int, headers: list[str]) -> None:
    for col, header in enumerate(headers, start=1):
        cell = ws.cell(row=row, column=col, value=header)
        cell.font = HEADER_FONT
        cell.alignment = CENTER_ALIGN
        cell.border = THIN_BORDER


def export_month(
    summaries: list[MonthlyTimesheetSummary],
    year: int,
    month: int,
    output_path: str | Path,
) -> Path:
    """Write the roll-up and one sheet per employee; returns the path written."""
    output_path = Path(output_path)
    month_name = date(year, month, 1).strftime("%B %Y")

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = SUMMARY_SHEET

    ws.cell(row=1, column=1, value=f"Employee timesheets - {month_name}").font = TITLE_FONT
    _write_header(ws, 3, SUMMARY_HEADERS)

    row = 4
    for summary in summaries:
        values = [
            summary.employee_name,
            summary.employee_id,
            summary.day_count,
            float(summary.total_hours),
            float(summary.average_hours),
        ]
        for col, value in enumerate(values, start=1):
            cell = ws.cell(row=row, column=col, value=value)
            cell.border = THIN_BORDER
            if col >= 4:
                cell.number_format = HOURS_FORMAT
        row += 1

    total_cell = ws.cell(row=row, column=4, value=float(company_total_hours(summaries)))
    total_cell.font = HEADER_FONT
    total_cell.number_format = HOURS_FORMAT
    ws.cell(row=row, column=1, value="Total").font = HEADER_FONT

    for col, width in enumerate([28, 24, 8, 12, 14], start=1):
        ws.column_dimensions[get_column_letter(col)].width = width

    taken = {SUMMARY_SHEET.lower()}
    for summary in summaries:
        detail = wb.create_sheet(sheet_title(summary.employee_name, taken))
        detail.cell(row=1, column=1, value=f"{summary.employee_name} - {month_name}").font = TITLE_FONT
        _write_header(detail, 3, DETAIL_HEADERS)
        for i, entry in enumerate(summary.entries, start=4):
            date_cell = detail.cell(row=i, column=1, value=entry.date)
            date_cell.number_format = DATE_FORMAT
            hours_cell = detail.cell(row=i, column=2, value=float(entry.hours_worked))
            hours_cell.number_format = HOURS_FORMAT
            detail.cell(row=i, column=3, value=entry.work_description)
        detail.column_dimensions["A"].width = 18
        detail.column_dimensions["B"].width = 8
        detail.column_dimensions["C"].width = 60

    output_path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(output_path)
    return output_path
