"""Tests for the app module."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from models import Scope
from session import SessionState


class TestParseArgs:
    """Tests for command-line parsing."""

    def test_employee(self):
        from app import parse_args

        args = parse_args(["--employee-id", "alice", "--employee-name", "Alice"])
        assert args.employee_id == "alice"
        assert args.employee_name == "Alice"
        assert not args.admin

    def test_name_defaults_to_id(self):
        from app import parse_args

        assert parse_args(["--employee-id", "alice"]).employee_name == "alice"

    def test_employee_from_environment(self, monkeypatch):
        from app import parse_args

        monkeypatch.setenv("TIMESHEET_EMPLOYEE_ID", "bob")
        monkeypatch.setenv("TIMESHEET_EMPLOYEE_NAME", "Bob")
        args = parse_args([])
        assert (args.employee_id, args.employee_name) == ("bob", "Bob")

    def test_admin_needs_no_employee(self, monkeypatch):
        from app import parse_args

        monkeypatch.delenv("TIMESHEET_EMPLOYEE_ID", raising=False)
        assert parse_args(["--admin"]).admin

    def test_employee_required(self, monkeypatch):
        """Without --admin an employee id is required."""
        from app import parse_args

        monkeypatch.delenv("TIMESHEET_EMPLOYEE_ID", raising=False)
        with pytest.raises(SystemExit):
            parse_args([])


class TestExportDir:
    """Tests for export_dir."""

    def test_from_environment(self, monkeypatch, tmp_path):
        from app import export_dir

        monkeypatch.setenv("TIMESHEET_EXPORT_DIR", str(tmp_path))
        assert export_dir() == tmp_path

    def test_next_to_database(self, monkeypatch, temp_database):
        from app import export_dir

        monkeypatch.delenv("TIMESHEET_EXPORT_DIR", raising=False)
        assert export_dir() == Path(temp_database.DB_PATH).parent / "exports"


class TestTimesheetApp:
    """Tests for TimesheetApp setup."""

    def test_employee_view(self, temp_database):
        """An employee app scopes its session to that employee."""
        from app import TimesheetApp

        with patch.object(TimesheetApp, 'run'):
            app = TimesheetApp("alice", "Alice")

            assert app.view_mode == "calendar"
            assert app.session.scope.employee_id == "alice"
            assert app.config == temp_database.get_config()

    def test_admin_view(self, temp_database):
        """The admin app covers all employees."""
        from app import TimesheetApp

        with patch.object(TimesheetApp, 'run'):
            app = TimesheetApp(admin=True)

            assert app.view_mode == "admin"
            assert app.session.scope.is_all_employees

    def test_check_action(self, temp_database):
        """Editing belongs to the calendar view and exporting to the admin view."""
        from app import TimesheetApp

        with patch.object(TimesheetApp, 'run'):
            employee = TimesheetApp("alice", "Alice")
            admin = TimesheetApp(admin=True)

            assert employee.check_action("edit_day", ())
            assert not employee.check_action("export", ())
            assert not admin.check_action("edit_day", ())
            assert not admin.check_action("delete_day", ())
            assert admin.check_action("export", ())
            assert admin.check_action("next_month", ())

    def test_custom_repository(self, temp_database):
        """A repository can be supplied in place of SQLite."""
        from app import TimesheetApp
        from conftest import FakeRepository

        repo = FakeRepository()
        with patch.object(TimesheetApp, 'run'):
            app = TimesheetApp("alice", "Alice", repository=repo)

            assert app.session.repository is repo
            assert isinstance(app.session.scope, Scope)


class TestMonthStep:
    """Tests for left/right month navigation."""

    def test_admin_view_always_changes_month(self):
        from app import month_step

        assert month_step("left", "admin", 0, 3) == -1
        assert month_step("right", "admin", 1, 3) == 1

    def test_calendar_moves_cursor_inside_week(self):
        """Inside a week the keys are left to the table."""
        from app import month_step

        assert month_step("left", "calendar", 3, 6) == 0
        assert month_step("right", "calendar", 3, 6) == 0

    def test_calendar_changes_month_at_week_edges(self):
        from app import month_step

        assert month_step("left", "calendar", 0, 6) == -1
        assert month_step("right", "calendar", 6, 6) == 1

    def test_other_keys_ignored(self):
        from app import month_step

        assert month_step("up", "calendar", 0, 6) == 0
        assert month_step("left", None, 0, 6) == 0


class TestExportAction:
    """Tests for exporting the month from the admin view."""

    def test_refuses_until_loaded(self, temp_database):
        """A month that has not finished loading is not exported."""
        from app import TimesheetApp

        with patch.object(TimesheetApp, 'run'):
            timesheet_app = TimesheetApp(admin=True)
            timesheet_app.notify = MagicMock()

            with patch("app.export_month") as export:
                timesheet_app.action_export()

            export.assert_not_called()
            assert timesheet_app.notify.call_args.kwargs["severity"] == "warning"

    def test_write_failure_is_reported(self, temp_database, monkeypatch, tmp_path):
        """An unwritable export directory becomes an error notification."""
        from app import TimesheetApp

        monkeypatch.setenv("TIMESHEET_EXPORT_DIR", str(tmp_path))
        with patch.object(TimesheetApp, 'run'):
            timesheet_app = TimesheetApp(admin=True)
            timesheet_app.session.state = SessionState.READY
            timesheet_app.notify = MagicMock()

            with patch("app.export_month", side_effect=PermissionError(13, "Permission denied")):
                timesheet_app.action_export()

            message = timesheet_app.notify.call_args.args[0]
            assert "Permission denied" in message
            assert timesheet_app.notify.call_args.kwargs["severity"] == "error"

    def test_exports_loaded_month(self, temp_database, monkeypatch, tmp_path):
        """A loaded month is written to the export directory."""
        from app import TimesheetApp

        monkeypatch.setenv("TIMESHEET_EXPORT_DIR", str(tmp_path))
        with patch.object(TimesheetApp, 'run'):
            timesheet_app = TimesheetApp(admin=True)
            timesheet_app.session.state = SessionState.READY
            timesheet_app.notify = MagicMock()

            timesheet_app.action_export()

            scope = timesheet_app.session.scope
            assert (tmp_path / f"timesheets-{scope.year}-{scope.month:02d}.xlsx").exists()
            assert timesheet_app.notify.call_args.args[0].startswith("Exported to")
