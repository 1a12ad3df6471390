from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal


@dataclass
class TimesheetEntry:
    employee_id: str
    employee_name: str
    date: date
    work_description: str
    hours_worked: Decimal
    id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def day_of_week(self) -> str:
        return self.date.strftime("%a")

    def same_record(self, other: TimesheetEntry) -> bool:
        """Compare on every field except the system-assigned timestamps."""
        return (
            self.id == other.id
            and self.employee_id == other.employee_id
            and self.employee_name == other.employee_name
            and self.date == other.date
            and self.work_description == other.work_description
            and self.hours_worked == other.hours_worked
        )


@dataclass
class CalendarDayCell:
    """One position in a month grid. Padding cells have no date."""

    date: date | None = None
    entry: TimesheetEntry | None = None
    is_today: bool = False
    is_future: bool = False
    holiday: str | None = None

    @property
    def is_blank(self) -> bool:
        return self.date is None

    @property
    def has_entry(self) -> bool:
        return self.entry is not None

    @property
    def day(self) -> int | None:
        return self.date.day if self.date else None


@dataclass
class MonthlyTimesheetSummary:
    employee_id: str
    employee_name: str
    month: int
    year: int
    total_hours: Decimal = Decimal("0")
    entries: list[TimesheetEntry] = field(default_factory=list)

    @property
    def day_count(self) -> int:
        return len(self.entries)

    @property
    def average_hours(self) -> Decimal:
        """Average hours per logged day, to two places."""
        if not self.entries:
            return Decimal("0")
        return (self.total_hours / self.day_count).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )


@dataclass(frozen=True)
class Scope:
    """What a session tracks: one employee's month, or everyone's (employee_id=None)."""

    employee_id: str | None
    year: int
    month: int

    @property
    def is_all_employees(self) -> bool:
        return self.employee_id is None

    def covers(self, employee_id: str, d: date) -> bool:
        if d.year != self.year or d.month != self.month:
            return False
        return self.employee_id is None or employee_id == self.employee_id

    def contains(self, entry: TimesheetEntry) -> bool:
        return self.covers(entry.employee_id, entry.date)

    def with_period(self, year: int, month: int) -> Scope:
        return Scope(self.employee_id, year, month)

    def with_employee(self, employee_id: str | None) -> Scope:
        return Scope(employee_id, self.year, self.month)


@dataclass
class Config:
    first_weekday: int = 6  # 0=Monday .. 6=Sunday
    default_hours: Decimal = Decimal("8")
    holiday_country: str = "IN"
    holiday_subdiv: str | None = None
