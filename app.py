#!/usr/bin/env python3
"""Timesheet TUI application."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Awaitable

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.widgets import Static, Footer, DataTable
from rich.text import Text

import storage
from aggregation import company_total_hours
from errors import StoreUnavailableError, TimesheetError
from export_data import export_month
from models import CalendarDayCell, Scope
from screens import ConfirmDeleteScreen, EditEntryScreen
from session import MonthTimesheetSession, SessionState
from storage import EntryRepository, SqliteEntryRepository
from utils import format_hours, get_weeks_in_month, weekday_names
from widgets import CompanySummary, MonthHeader, MonthSummary, format_day_cell

logger = logging.getLogger(__name__)


class TimesheetDataTable(DataTable):
    """DataTable that turns left/right into month changes.

    In the admin view the keys always change month. In the calendar view
    they move the cursor, changing month only at the edge of a week.
    """

    def on_key(self, event) -> None:
        step = month_step(
            event.key,
            getattr(self.app, "view_mode", None),
            self.cursor_column,
            len(self.columns) - 1,
        )
        if step == 0:
            return
        if step < 0:
            self.app.action_prev_month()  # type: ignore[attr-defined]
        else:
            self.app.action_next_month()  # type: ignore[attr-defined]
        event.prevent_default()
        event.stop()


class TimesheetApp(App):
    """Monthly timesheet console: an employee's calendar, or the admin roll-up."""

    CSS = """
    Screen {
        background: $surface;
    }

    #month-header {
        height: auto;
        background: $primary;
        color: $text;
        padding: 0 1;
        text-style: bold;
    }

    #calendar-table {
        height: 1fr;
        margin: 1 2;
    }

    #admin-table {
        height: 1fr;
        margin: 1 2;
    }

    #detail-table {
        height: 1fr;
        margin: 0 2;
    }

    #month-summary, #company-summary {
        height: auto;
        padding: 1 2;
        color: $text;
    }

    #status-line {
        height: auto;
        padding: 0 2;
        color: $error;
    }

    .hidden {
        display: none;
    }

    DataTable > .datatable--cursor {
        background: $secondary;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("[", "prev_month", "◄ Month"),
        Binding("]", "next_month", "Month ►"),
        Binding("t", "goto_today", "Today"),
        Binding("e", "edit_day", "Add/Edit"),
        Binding("d", "delete_day", "Delete"),
        Binding("r", "reload", "Reload"),
        Binding("x", "export", "Export"),
    ]

    def __init__(
        self,
        employee_id: str = "",
        employee_name: str = "",
        admin: bool = False,
        repository: EntryRepository | None = None,
    ):
        super().__init__()
        storage.init_db()
        self.config = storage.get_config()

        self.view_mode = "admin" if admin else "calendar"
        self.employee_id = employee_id
        self.employee_name = employee_name

        today = date.today()
        scope = Scope(None if admin else employee_id, today.year, today.month)
        self.session = MonthTimesheetSession(repository or SqliteEntryRepository(), scope)

        # Calendar rows as last rendered, for mapping the cursor to a day
        self.weeks: list[list[CalendarDayCell]] = []
        self._pending_select: date | None = today

    def compose(self) -> ComposeResult:
        scope = self.session.scope
        heading = "EMPLOYEE TIMESHEETS" if self.view_mode == "admin" else "MY TIMESHEET"
        yield MonthHeader(scope.year, scope.month, heading=heading, id="month-header")
        yield Static(id="status-line", classes="hidden")
        if self.view_mode == "admin":
            yield CompanySummary(id="company-summary")
            yield Container(TimesheetDataTable(id="admin-table"))
            yield Container(TimesheetDataTable(id="detail-table"))
        else:
            yield Container(TimesheetDataTable(id="calendar-table"))
            yield MonthSummary(id="month-summary")
        yield Footer()

    def on_mount(self):
        if self.view_mode == "admin":
            self._setup_admin_tables()
        else:
            self._setup_calendar_table()
        self._refresh_display()
        self.action_reload()

    def _setup_calendar_table(self):
        table = self.query_one("#calendar-table", DataTable)
        table.cursor_type = "cell"
        for name in weekday_names(self.config.first_weekday):
            table.add_column(name, width=14)
        table.focus()

    def _setup_admin_tables(self):
        table = self.query_one("#admin-table", DataTable)
        table.cursor_type = "row"
        table.add_column("Employee", width=24)
        table.add_column("Days", width=6)
        table.add_column("Total", width=8)
        table.add_column("Avg/day", width=8)
        table.focus()

        detail = self.query_one("#detail-table", DataTable)
        detail.cursor_type = "row"
        detail.add_column("Date", width=12)
        detail.add_column("Hours", width=7)
        detail.add_column("Description", width=48)

    # --- Session plumbing ---

    def _run(self, action: Awaitable[None]) -> None:
        """Run a session call in a worker, refreshing the display when it settles."""
        self.run_worker(self._settle(action), group="session")

    async def _settle(self, action: Awaitable[None]) -> None:
        task = asyncio.ensure_future(action)
        # Let the call switch scope before showing it as loading
        await asyncio.sleep(0)
        self._refresh_display()
        try:
            await task
        except TimesheetError as exc:
            self._report_error(exc)
        self._refresh_display()

    def _report_error(self, exc: TimesheetError) -> None:
        severity = "error" if isinstance(exc, StoreUnavailableError) else "warning"
        self.notify(exc.user_message, severity=severity)

    # --- Display ---

    def _refresh_display(self):
        scope = self.session.scope
        header = self.query_one("#month-header", MonthHeader)
        header.year = scope.year
        header.month = scope.month
        status = "loading…" if self.session.is_loading else ""
        subtitle = "" if self.view_mode == "admin" else self.employee_name
        header.update_display(subtitle=subtitle, status=status)

        status_line = self.query_one("#status-line", Static)
        if self.session.state == SessionState.FAILED and self.session.error:
            status_line.update(Text(self.session.error.user_message))
            status_line.remove_class("hidden")
        else:
            status_line.add_class("hidden")

        if self.view_mode == "admin":
            self._refresh_admin_display()
        else:
            self._refresh_calendar_display()

    def _refresh_calendar_display(self):
        table = self.query_one("#calendar-table", DataTable)
        cursor = table.cursor_coordinate
        table.clear()

        self.weeks = get_weeks_in_month(self.session.calendar(self.config))
        for i, week in enumerate(self.weeks):
            table.add_row(*[format_day_cell(cell) for cell in week], key=str(i), height=3)

        if self._pending_select and self._select_date(self._pending_select):
            self._pending_select = None
        elif self.weeks:
            row = min(cursor.row, len(self.weeks) - 1)
            table.move_cursor(row=row, column=cursor.column)

        summary = self.query_one("#month-summary", MonthSummary)
        summary.update_display(self.session.total_hours(), len(self.session.entries))

    def _refresh_admin_display(self):
        scope = self.session.scope
        summaries = self.session.summaries()

        company = self.query_one("#company-summary", CompanySummary)
        company.update_display(
            company_total_hours(summaries),
            len(summaries),
            date(scope.year, scope.month, 1).strftime("%B %Y"),
        )

        table = self.query_one("#admin-table", DataTable)
        table.clear()
        for summary in summaries:
            table.add_row(
                summary.employee_name,
                str(summary.day_count),
                format_hours(summary.total_hours),
                format_hours(summary.average_hours),
                key=summary.employee_id,
            )
        self._show_employee_detail(summaries[0].employee_id if summaries else None)

    def _show_employee_detail(self, employee_id: str | None):
        detail = self.query_one("#detail-table", DataTable)
        detail.clear()
        if employee_id is None:
            return
        for summary in self.session.summaries():
            if summary.employee_id != employee_id:
                continue
            for entry in summary.entries:
                detail.add_row(
                    entry.date.strftime("%a %d %b"),
                    format_hours(entry.hours_worked),
                    entry.work_description,
                    key=entry.id,
                )

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        if event.data_table.id == "admin-table" and event.row_key is not None:
            self._show_employee_detail(str(event.row_key.value))

    def on_data_table_cell_selected(self, event: DataTable.CellSelected) -> None:
        if event.data_table.id == "calendar-table":
            self.action_edit_day()

    def _select_date(self, target: date) -> bool:
        """Move the calendar cursor to a date; False if it is not on screen."""
        for row, week in enumerate(self.weeks):
            for column, cell in enumerate(week):
                if cell.date == target:
                    self.query_one("#calendar-table", DataTable).move_cursor(row=row, column=column)
                    return True
        return False

    def _get_selected_cell(self) -> CalendarDayCell | None:
        if self.view_mode != "calendar" or not self.weeks:
            return None
        coordinate = self.query_one("#calendar-table", DataTable).cursor_coordinate
        if coordinate.row >= len(self.weeks):
            return None
        return self.weeks[coordinate.row][coordinate.column]

    # --- Actions ---

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool | None:
        if action in ("edit_day", "delete_day", "goto_today") and self.view_mode != "calendar":
            return False
        if action == "export" and self.view_mode != "admin":
            return False
        return True

    def action_reload(self):
        self._run(self.session.load())

    def action_prev_month(self):
        self._run(self.session.previous_month())

    def action_next_month(self):
        self._run(self.session.next_month())

    def action_goto_today(self):
        today = self.session.clock()
        self._pending_select = today
        if (today.year, today.month) == (self.session.scope.year, self.session.scope.month):
            self._select_date(today)
            self._pending_select = None
        else:
            self._run(self.session.goto_month(today))

    def action_edit_day(self):
        cell = self._get_selected_cell()
        if cell is None or cell.is_blank:
            return
        if cell.is_future:
            self.notify("Cannot log hours for a future date", severity="warning")
            return
        self.push_screen(
            EditEntryScreen(cell.date, cell.entry, self.config.default_hours),
            lambda result: self._on_edit_complete(cell, result),
        )

    def _on_edit_complete(self, cell: CalendarDayCell, result) -> None:
        if not result:
            return
        description, hours = result
        if cell.entry:
            updated = replace(cell.entry, work_description=description, hours_worked=hours)
            self._run(self._notify_after(self.session.update(updated), "Timesheet entry updated"))
        else:
            self._run(self._notify_after(
                self.session.create(self.employee_id, self.employee_name, cell.date, description, hours),
                "Timesheet entry added",
            ))

    def action_delete_day(self):
        cell = self._get_selected_cell()
        if cell is None or not cell.entry:
            self.notify("Nothing to delete", severity="warning")
            return
        entry = cell.entry

        def do_delete(confirmed: bool | None) -> None:
            if confirmed:
                self._run(self._notify_after(self.session.delete(entry.id), "Timesheet entry deleted"))

        self.push_screen(ConfirmDeleteScreen(entry), do_delete)

    async def _notify_after(self, action: Awaitable, message: str) -> None:
        await action
        self.notify(message)

    def action_export(self):
        if self.session.state != SessionState.READY:
            self.notify("Wait for the month to finish loading before exporting", severity="warning")
            return
        scope = self.session.scope
        path = export_dir() / f"timesheets-{scope.year}-{scope.month:02d}.xlsx"
        try:
            export_month(self.session.summaries(), scope.year, scope.month, path)
        except OSError as exc:
            logger.error("Export to %s failed: %s", path, exc)
            self.notify(f"Could not write {path}: {exc.strerror or exc}", severity="error")
            return
        logger.info("Exported %s to %s", scope, path)
        self.notify(f"Exported to {path}")


def month_step(key: str, view_mode: str | None, column: int, last_column: int) -> int:
    """Months to move for a left/right key press; 0 leaves it to the table."""
    if key not in ("left", "right") or view_mode not in ("admin", "calendar"):
        return 0
    if view_mode == "calendar":
        if key == "left" and column > 0:
            return 0
        if key == "right" and column < last_column:
            return 0
    return -1 if key == "left" else 1


def export_dir() -> Path:
    if env_dir := os.environ.get("TIMESHEET_EXPORT_DIR"):
        return Path(env_dir)
    return storage.DB_PATH.parent / "exports"


def configure_logging():
    """Log to a file; the terminal belongs to the UI."""
    log_path = os.environ.get("TIMESHEET_LOG") or str(storage.DB_PATH.parent / "timesheet.log")
    Path(log_path).parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=log_path,
        level=os.environ.get("TIMESHEET_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Monthly timesheet console")
    parser.add_argument("--employee-id", default=os.environ.get("TIMESHEET_EMPLOYEE_ID", ""))
    parser.add_argument("--employee-name", default=os.environ.get("TIMESHEET_EMPLOYEE_NAME", ""))
    parser.add_argument("--admin", action="store_true", help="show every employee's monthly summary")
    parser.add_argument("--db-info", action="store_true", help="print database details and exit")
    args = parser.parse_args(argv)
    if not args.admin and not args.db_info and not args.employee_id:
        parser.error("--employee-id (or TIMESHEET_EMPLOYEE_ID) is required unless --admin is given")
    if not args.employee_name:
        args.employee_name = args.employee_id
    return args


def main(argv: list[str] | None = None):
    args = parse_args(argv)
    if args.db_info:
        from datetime import datetime
        db_path = storage.DB_PATH
        print(f"Database: {db_path}")
        if db_path.exists():
            mtime = datetime.fromtimestamp(db_path.stat().st_mtime)
            size = db_path.stat().st_size
            print(f"Modified: {mtime.strftime('%Y-%m-%d %H:%M:%S')}")
            print(f"Size: {size:,} bytes")
        else:
            print("Status: Does not exist (will be created on first run)")
        return

    configure_logging()
    app = TimesheetApp(args.employee_id, args.employee_name, admin=args.admin)
    app.run()


if __name__ == "__main__":
    main()
