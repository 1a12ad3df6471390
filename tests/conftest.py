"""Shared fixtures for tests."""

from __future__ import annotations

import asyncio
import os
import tempfile
from dataclasses import replace
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Generator

import pytest

from errors import ConflictError, NotFoundError
from models import TimesheetEntry

# Set up test database before importing storage
_test_db_fd, _test_db_path = tempfile.mkstemp(suffix=".db")
os.environ["TIMESHEET_DB"] = _test_db_path


@pytest.fixture(scope="session", autouse=True)
def setup_test_db() -> Generator[Path, None, None]:
    """Point storage at a throwaway database for the whole session."""
    import storage

    storage.DB_PATH = Path(_test_db_path)
    storage.init_db()

    yield Path(_test_db_path)

    os.close(_test_db_fd)
    os.unlink(_test_db_path)


@pytest.fixture
def temp_database(tmp_path, monkeypatch):
    """Use a fresh, empty database for one test."""
    import storage

    monkeypatch.setattr(storage, "DB_PATH", tmp_path / "test_timesheet.db")
    storage.init_db()
    yield storage


def make_entry(
    day: date,
    hours: str = "8",
    employee_id: str = "alice",
    employee_name: str = "Alice",
    description: str = "Shop visits",
    entry_id: str | None = None,
    updated_at: datetime | None = None,
) -> TimesheetEntry:
    stamp = updated_at or datetime(2024, 1, 1, tzinfo=timezone.utc)
    return TimesheetEntry(
        id=entry_id or f"{employee_id}-{day.isoformat()}",
        employee_id=employee_id,
        employee_name=employee_name,
        date=day,
        work_description=description,
        hours_worked=Decimal(hours),
        created_at=stamp,
        updated_at=stamp,
    )


class FakeRepository:
    """In-memory repository whose list calls can be held back per month."""

    def __init__(self, entries=()):
        self.entries: dict[str, TimesheetEntry] = {e.id: e for e in entries}
        self.calls: list[str] = []
        self.gates: dict[int, asyncio.Event] = {}
        self.fail_with: Exception | None = None
        # Holds a create back after its row is stored
        self.write_gate: asyncio.Event | None = None
        self._next_id = 1

    @property
    def list_calls(self) -> int:
        return sum(1 for call in self.calls if call.startswith("list"))

    def _check_failure(self):
        if self.fail_with is not None:
            raise self.fail_with

    async def _hold(self, month: int):
        gate = self.gates.get(month)
        if gate is not None:
            await gate.wait()

    async def create_entry(self, entry: TimesheetEntry) -> TimesheetEntry:
        self.calls.append("create")
        self._check_failure()
        for existing in self.entries.values():
            if existing.employee_id == entry.employee_id and existing.date == entry.date:
                raise ConflictError(entry.employee_id, entry.date)
        now = datetime.now(timezone.utc)
        created = replace(entry, id=f"new-{self._next_id}", created_at=now, updated_at=now)
        self._next_id += 1
        self.entries[created.id] = created
        if self.write_gate is not None:
            await self.write_gate.wait()
        return created

    async def update_entry(self, entry: TimesheetEntry) -> TimesheetEntry:
        self.calls.append("update")
        self._check_failure()
        if entry.id not in self.entries:
            raise NotFoundError(entry.id)
        updated = replace(
            self.entries[entry.id],
            work_description=entry.work_description,
            hours_worked=entry.hours_worked,
            updated_at=datetime.now(timezone.utc),
        )
        self.entries[entry.id] = updated
        return updated

    async def delete_entry(self, entry_id: str) -> None:
        self.calls.append("delete")
        self._check_failure()
        if entry_id not in self.entries:
            raise NotFoundError(entry_id)
        del self.entries[entry_id]

    async def list_by_employee_and_range(self, employee_id, start, end):
        self.calls.append(f"list:{employee_id}:{start.month}")
        # Snapshot before waiting, like a query that read before a later write
        snapshot = sorted(
            (e for e in self.entries.values()
             if e.employee_id == employee_id and start <= e.date <= end),
            key=lambda e: e.date,
        )
        await self._hold(start.month)
        self._check_failure()
        return snapshot

    async def list_all_in_month(self, month, year):
        self.calls.append(f"list:all:{month}")
        snapshot = [e for e in self.entries.values() if (e.date.year, e.date.month) == (year, month)]
        await self._hold(month)
        self._check_failure()
        return snapshot


@pytest.fixture
def february_entries():
    """Alice's two February 2024 entries (8h and 6.5h)."""
    return [
        make_entry(date(2024, 2, 1), "8.0"),
        make_entry(date(2024, 2, 5), "6.5", description="Order follow-ups"),
    ]


@pytest.fixture
def march_entries():
    """Alice logs 20h over 3 days and Bob 15h over 2 days in March 2024."""
    return [
        make_entry(date(2024, 3, 4), "8"),
        make_entry(date(2024, 3, 5), "6"),
        make_entry(date(2024, 3, 6), "6"),
        make_entry(date(2024, 3, 7), "7.5", employee_id="bob", employee_name="Bob"),
        make_entry(date(2024, 3, 4), "7.5", employee_id="bob", employee_name="Bob"),
    ]


@pytest.fixture
def fixed_clock():
    return lambda: date(2024, 3, 20)


@pytest.fixture
def sample_config():
    from models import Config

    return Config(first_weekday=6, default_hours=Decimal("8"), holiday_country="IN")
