from __future__ import annotations

import asyncio
import logging
import os
import sqlite3
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Protocol

from errors import ConflictError, NotFoundError, StoreUnavailableError
from models import Config, TimesheetEntry
from utils import month_bounds
from validation import validate_fields

logger = logging.getLogger(__name__)


def _get_db_path() -> Path:
    """Get database path from environment variable or default location."""
    if env_path := os.environ.get("TIMESHEET_DB"):
        return Path(env_path)
    return Path(__file__).parent / "data" / "timesheet.db"


DB_PATH = _get_db_path()


def get_connection() -> sqlite3.Connection:
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    return conn


def init_db():
    """Create tables if they don't exist."""
    conn = get_connection()
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS timesheet_entries (
            id TEXT PRIMARY KEY,
            employee_id TEXT NOT NULL,
            employee_name TEXT NOT NULL,
            date TEXT NOT NULL,
            work_description TEXT NOT NULL,
            hours_worked TEXT NOT NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            UNIQUE(employee_id, date)
        );

        CREATE TABLE IF NOT EXISTS config (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_entries_date ON timesheet_entries(date);
        CREATE INDEX IF NOT EXISTS idx_entries_employee ON timesheet_entries(employee_id);
    """)
    conn.commit()
    conn.close()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _row_to_entry(row: sqlite3.Row) -> TimesheetEntry:
    return TimesheetEntry(
        id=row["id"],
        employee_id=row["employee_id"],
        employee_name=row["employee_name"],
        date=date.fromisoformat(row["date"]),
        work_description=row["work_description"],
        hours_worked=Decimal(row["hours_worked"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def insert_entry(entry: TimesheetEntry) -> TimesheetEntry:
    """Insert a new entry, assigning id and timestamps.

    Raises ConflictError if the employee already has an entry on that date.
    """
    created = TimesheetEntry(
        id=entry.id or str(uuid.uuid4()),
        employee_id=entry.employee_id,
        employee_name=entry.employee_name,
        date=entry.date,
        work_description=entry.work_description.strip(),
        hours_worked=entry.hours_worked,
        created_at=entry.created_at or _now(),
    )
    created.updated_at = entry.updated_at or created.created_at

    conn = get_connection()
    try:
        conn.execute("""
            INSERT INTO timesheet_entries
            (id, employee_id, employee_name, date, work_description, hours_worked, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            created.id,
            created.employee_id,
            created.employee_name,
            created.date.isoformat(),
            created.work_description,
            str(created.hours_worked),
            created.created_at.isoformat(),
            created.updated_at.isoformat(),
        ))
        conn.commit()
    except sqlite3.IntegrityError as exc:
        raise ConflictError(entry.employee_id, entry.date, {"cause": str(exc)}) from exc
    finally:
        conn.close()

    return created


def update_entry(entry: TimesheetEntry) -> TimesheetEntry:
    """Update description and hours of an existing entry.

    Owner and date never change once created.
    """
    conn = get_connection()
    try:
        cursor = conn.execute("""
            UPDATE timesheet_entries
            SET work_description = ?, hours_worked = ?, updated_at = ?
            WHERE id = ?
        """, (
            entry.work_description.strip(),
            str(entry.hours_worked),
            _now().isoformat(),
            entry.id,
        ))
        conn.commit()
        if cursor.rowcount == 0:
            raise NotFoundError(entry.id)
        row = conn.execute(
            "SELECT * FROM timesheet_entries WHERE id = ?", (entry.id,)
        ).fetchone()
    finally:
        conn.close()

    return _row_to_entry(row)


def delete_entry(entry_id: str) -> None:
    """Delete an entry by id. Raises NotFoundError if it does not exist."""
    conn = get_connection()
    try:
        cursor = conn.execute("DELETE FROM timesheet_entries WHERE id = ?", (entry_id,))
        conn.commit()
        deleted = cursor.rowcount
    finally:
        conn.close()

    if deleted == 0:
        raise NotFoundError(entry_id)


def get_entry(entry_id: str) -> TimesheetEntry | None:
    """Get a single entry by id."""
    conn = get_connection()
    row = conn.execute(
        "SELECT * FROM timesheet_entries WHERE id = ?", (entry_id,)
    ).fetchone()
    conn.close()
    return _row_to_entry(row) if row else None


def get_entry_for_date(employee_id: str, d: date) -> TimesheetEntry | None:
    """Get an employee's entry for one day."""
    conn = get_connection()
    row = conn.execute(
        "SELECT * FROM timesheet_entries WHERE employee_id = ? AND date = ?",
        (employee_id, d.isoformat()),
    ).fetchone()
    conn.close()
    return _row_to_entry(row) if row else None


def get_entries_for_employee(employee_id: str, start: date, end: date) -> list[TimesheetEntry]:
    """Get an employee's entries between two dates (inclusive), ordered by date."""
    conn = get_connection()
    rows = conn.execute(
        """
        SELECT * FROM timesheet_entries
        WHERE employee_id = ? AND date >= ? AND date <= ?
        ORDER BY date
        """,
        (employee_id, start.isoformat(), end.isoformat()),
    ).fetchall()
    conn.close()
    return [_row_to_entry(row) for row in rows]


def get_month_entries(year: int, month: int) -> list[TimesheetEntry]:
    """Get every employee's entries for a calendar month."""
    start, end = month_bounds(year, month)
    conn = get_connection()
    rows = conn.execute(
        """
        SELECT * FROM timesheet_entries
        WHERE date >= ? AND date <= ?
        ORDER BY date, employee_id
        """,
        (start.isoformat(), end.isoformat()),
    ).fetchall()
    conn.close()
    return [_row_to_entry(row) for row in rows]


def get_config() -> Config:
    """Load config from database."""
    conn = get_connection()
    rows = conn.execute("SELECT key, value FROM config").fetchall()
    conn.close()

    config = Config()
    for row in rows:
        if row["key"] == "first_weekday":
            config.first_weekday = int(row["value"])
        elif row["key"] == "default_hours":
            config.default_hours = Decimal(row["value"])
        elif row["key"] == "holiday_country":
            config.holiday_country = row["value"]
        elif row["key"] == "holiday_subdiv":
            config.holiday_subdiv = row["value"] or None

    return config


def save_config(config: Config):
    """Save config to database."""
    conn = get_connection()
    conn.execute("INSERT OR REPLACE INTO config (key, value) VALUES (?, ?)",
                 ("first_weekday", str(config.first_weekday)))
    conn.execute("INSERT OR REPLACE INTO config (key, value) VALUES (?, ?)",
                 ("default_hours", str(config.default_hours)))
    conn.execute("INSERT OR REPLACE INTO config (key, value) VALUES (?, ?)",
                 ("holiday_country", config.holiday_country))
    conn.execute("INSERT OR REPLACE INTO config (key, value) VALUES (?, ?)",
                 ("holiday_subdiv", config.holiday_subdiv or ""))
    conn.commit()
    conn.close()


# --- Repository ---


class EntryRepository(Protocol):
    """Durable store of timesheet entries, as consumed by a session."""

    async def create_entry(self, entry: TimesheetEntry) -> TimesheetEntry: ...

    async def update_entry(self, entry: TimesheetEntry) -> TimesheetEntry: ...

    async def delete_entry(self, entry_id: str) -> None: ...

    async def list_by_employee_and_range(
        self, employee_id: str, start: date, end: date
    ) -> list[TimesheetEntry]: ...

    async def list_all_in_month(self, month: int, year: int) -> list[TimesheetEntry]: ...


class SqliteEntryRepository:
    """Runs the SQLite functions above in a worker thread.

    Malformed entries raise ValidationError before touching the database,
    and any sqlite3 failure surfaces as StoreUnavailableError.
    """

    async def _call(self, func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except sqlite3.Error as exc:
            logger.error("Timesheet store failure in %s: %s", func.__name__, exc)
            raise StoreUnavailableError(str(exc), {"operation": func.__name__}) from exc

    async def create_entry(self, entry: TimesheetEntry) -> TimesheetEntry:
        validate_fields(entry)
        return await self._call(insert_entry, entry)

    async def update_entry(self, entry: TimesheetEntry) -> TimesheetEntry:
        validate_fields(entry)
        return await self._call(update_entry, entry)

    async def delete_entry(self, entry_id: str) -> None:
        await self._call(delete_entry, entry_id)

    async def list_by_employee_and_range(
        self, employee_id: str, start: date, end: date
    ) -> list[TimesheetEntry]:
        return await self._call(get_entries_for_employee, employee_id, start, end)

    async def list_all_in_month(self, month: int, year: int) -> list[TimesheetEntry]:
        return await self._call(get_month_entries, year, month)
