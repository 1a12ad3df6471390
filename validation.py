"""Field rules for timesheet entries."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from errors import ValidationError
from models import TimesheetEntry

MAX_HOURS = Decimal("24")
HOURS_STEP = Decimal("0.5")


def to_hours(value) -> Decimal:
    """Coerce int/float/str/Decimal hours to Decimal. Floats go through str()."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or value is None:
        raise ValidationError("Hours worked is required")
    try:
        return Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"Invalid hours value: {value!r}") from None


def parse_hours(text: str) -> Decimal:
    """Parse hours typed by the user, e.g. '7.5' or '7,5'."""
    text = text.strip().replace(",", ".").rstrip("hH").strip()
    if not text:
        raise ValidationError("Hours worked is required")
    hours = to_hours(text)
    validate_hours(hours)
    return hours


def validate_hours(hours: Decimal) -> None:
    if not hours.is_finite():
        raise ValidationError("Hours must be a number")
    if hours <= 0:
        raise ValidationError("Hours must be more than 0")
    if hours > MAX_HOURS:
        raise ValidationError(f"Hours cannot exceed {MAX_HOURS}")
    if hours % HOURS_STEP != 0:
        raise ValidationError(f"Hours must be in steps of {HOURS_STEP}")


def validate_description(description: str | None) -> str:
    """Return the trimmed description, or raise if empty."""
    if description is None or not description.strip():
        raise ValidationError("Work description is required")
    return description.strip()


def validate_entry_date(entry_date, today: date) -> None:
    # datetime is a date subclass; a time of day would invite timezone shifts
    if isinstance(entry_date, datetime) or not isinstance(entry_date, date):
        raise ValidationError("Date must be a calendar date")
    if entry_date > today:
        raise ValidationError("Cannot log hours for a future date")


def validate_identity(employee_id: str | None, employee_name: str | None) -> None:
    if not employee_id or not employee_id.strip():
        raise ValidationError("Employee id is required")
    if not employee_name or not employee_name.strip():
        raise ValidationError("Employee name is required")


def validate_fields(entry: TimesheetEntry) -> None:
    """Check the fields every stored entry must satisfy (no clock involved)."""
    validate_identity(entry.employee_id, entry.employee_name)
    if isinstance(entry.date, datetime) or not isinstance(entry.date, date):
        raise ValidationError("Date must be a calendar date")
    validate_description(entry.work_description)
    if not isinstance(entry.hours_worked, Decimal):
        raise ValidationError("Hours worked must be a decimal value")
    validate_hours(entry.hours_worked)
