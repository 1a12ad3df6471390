"""Custom widgets for the timesheet application."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from textual.widgets import Static
from rich.text import Text

from models import CalendarDayCell
from utils import format_hours

DESCRIPTION_WIDTH = 12


def format_day_cell(cell: CalendarDayCell) -> Text:
    """Render a calendar cell: day number, then hours and description if logged."""
    text = Text()
    if cell.is_blank:
        return text

    day_style = "bold reverse" if cell.is_today else ("dim" if cell.is_future else "bold")
    text.append(f"{cell.day:>2}", style=day_style)
    if cell.holiday:
        text.append(" ★", style="magenta")

    if cell.entry:
        text.append(f"\n{format_hours(cell.entry.hours_worked)}", style="green")
        description = cell.entry.work_description
        if len(description) > DESCRIPTION_WIDTH:
            description = description[:DESCRIPTION_WIDTH - 1] + "…"
        text.append(f"\n{description}")
    elif cell.holiday:
        text.append(f"\n{cell.holiday[:DESCRIPTION_WIDTH]}", style="dim magenta")
    elif cell.is_future:
        text.append("\n-", style="dim")

    return text


class MonthHeader(Static):
    """Shows the view title on the left and month navigation on the right."""

    def __init__(self, year: int, month: int, heading: str = "MY TIMESHEET", **kwargs):
        super().__init__(**kwargs)
        self.year = year
        self.month = month
        self.heading = heading
        self.left_arrow_pos = 0
        self.right_arrow_pos = 0

    def update_display(self, subtitle: str = "", status: str = ""):
        month_name = date(self.year, self.month, 1).strftime("%B %Y")
        title = f"{self.heading}: {subtitle}" if subtitle else self.heading
        month_nav = f"◄ {month_name} ►"

        # Keep navigation ending at column 74, in line with the summary text
        target_end_col = 74
        nav_start = max(target_end_col - len(month_nav), len(title) + 2)

        self.left_arrow_pos = nav_start
        self.right_arrow_pos = nav_start + len(month_nav) - 1

        text = Text()
        text.append(title, style="bold")
        text.append(" " * (nav_start - len(title)))
        text.append(month_nav, style="bold")
        if status:
            text.append(f"  {status}", style="italic")

        self.update(text)

    def on_click(self, event) -> None:
        """Handle clicks on the arrows for month navigation."""
        click_col = event.x

        if self.left_arrow_pos <= click_col < self.left_arrow_pos + 2:
            self.app.action_prev_month()  # type: ignore[attr-defined]
        elif self.right_arrow_pos <= click_col < self.right_arrow_pos + 2:
            self.app.action_next_month()  # type: ignore[attr-defined]


class MonthSummary(Static):
    """Shows an employee's hours for the month."""

    def update_display(self, total: Decimal, days: int):
        average = float(total) / days if days else 0

        text = Text()
        text.append(f"{'Total':>20}  {float(total):>6g}h\n")
        text.append(f"{'Days logged':>20}  {days:>6}\n", style="dim" if days == 0 else "")
        text.append(f"{'Average':>20}  {round(average, 2):>6g}h/day", style="dim" if days == 0 else "")

        self.update(text)


class CompanySummary(Static):
    """Shows company-wide hours and active employees for the month."""

    def update_display(self, total: Decimal, active_employees: int, month_name: str):
        text = Text()
        text.append(f"{'Total company hours':>24}  {float(total):>8g}h   ({month_name})\n")
        text.append(f"{'Active employees':>24}  {active_employees:>8}", style="dim" if active_employees == 0 else "")

        self.update(text)
