"""Calendar helpers: month arithmetic, the month grid, and public holidays."""

from __future__ import annotations

from calendar import day_abbr, monthrange
from datetime import date, timedelta
from typing import Callable

from models import CalendarDayCell, TimesheetEntry

WEEK_LENGTH = 7


def days_in_month(year: int, month: int) -> int:
    return monthrange(year, month)[1]


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a calendar month."""
    return date(year, month, 1), date(year, month, days_in_month(year, month))


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move (year, month) by delta months, crossing year boundaries."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def weekday_index(d: date, first_weekday: int = 6) -> int:
    """Column of d in a week starting on first_weekday (0=Monday .. 6=Sunday)."""
    return (d.weekday() - first_weekday) % WEEK_LENGTH


def weekday_names(first_weekday: int = 6) -> list[str]:
    return [day_abbr[(first_weekday + i) % WEEK_LENGTH] for i in range(WEEK_LENGTH)]


def build_month_grid(
    year: int,
    month: int,
    today: date | None = None,
    first_weekday: int = 6,
    lookup: Callable[[date], TimesheetEntry | None] | None = None,
    holidays: dict[date, str] | None = None,
) -> list[CalendarDayCell]:
    """Build the day cells for a month, led by blank cells for week alignment.

    The grid holds weekday_index(day 1) blank cells followed by one cell per
    day. Trailing cells are not padded.
    """
    today = today or date.today()
    first_day, last_day = month_bounds(year, month)

    cells = [CalendarDayCell() for _ in range(weekday_index(first_day, first_weekday))]

    current = first_day
    while current <= last_day:
        cells.append(CalendarDayCell(
            date=current,
            entry=lookup(current) if lookup else None,
            is_today=current == today,
            is_future=current > today,
            holiday=holidays.get(current) if holidays else None,
        ))
        current += timedelta(days=1)

    return cells


def get_weeks_in_month(cells: list[CalendarDayCell]) -> list[list[CalendarDayCell]]:
    """Split a month grid into rows of seven, padding the last row."""
    weeks = []
    for start in range(0, len(cells), WEEK_LENGTH):
        week = cells[start:start + WEEK_LENGTH]
        week += [CalendarDayCell() for _ in range(WEEK_LENGTH - len(week))]
        weeks.append(week)
    return weeks


def get_public_holidays(year: int, month: int, country: str, subdiv: str | None = None) -> dict[date, str]:
    """Public holidays falling in a month, keyed by date."""
    import holidays

    start, end = month_bounds(year, month)
    try:
        country_holidays = holidays.country_holidays(country, subdiv=subdiv, years=year)
    except NotImplementedError:
        # Unsupported country code; the calendar simply shows no holidays
        return {}
    return {d: name for d, name in country_holidays.items() if start <= d <= end}


def format_hours(hours) -> str:
    """Render hours without trailing zeros, e.g. 8 -> '8h', 6.50 -> '6.5h'."""
    return f"{float(hours):g}h"
