"""Monthly totals for one employee and the roll-up across employees."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from models import MonthlyTimesheetSummary, TimesheetEntry


def summarize_employee_month(entries: Iterable[TimesheetEntry]) -> Decimal:
    """Exact sum of hours worked. Order of entries does not matter."""
    return sum((entry.hours_worked for entry in entries), Decimal("0"))


def summarize_all_employees(
    entries: Iterable[TimesheetEntry], month: int, year: int
) -> list[MonthlyTimesheetSummary]:
    """Group entries by employee into per-employee monthly summaries.

    Each summary's entries are sorted by date. Summaries are sorted by
    employee name (case-sensitive), then employee id.
    """
    groups: dict[str, list[TimesheetEntry]] = {}
    for entry in entries:
        groups.setdefault(entry.employee_id, []).append(entry)

    summaries = []
    for employee_id, group in groups.items():
        group.sort(key=lambda e: (e.date, e.id or ""))
        summaries.append(MonthlyTimesheetSummary(
            employee_id=employee_id,
            employee_name=group[0].employee_name,
            month=month,
            year=year,
            total_hours=summarize_employee_month(group),
            entries=group,
        ))

    summaries.sort(key=lambda s: (s.employee_name, s.employee_id))
    return summaries


def company_total_hours(summaries: Iterable[MonthlyTimesheetSummary]) -> Decimal:
    return sum((s.total_hours for s in summaries), Decimal("0"))
