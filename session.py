"""Month timesheet session: the loaded entries for one scope and the edits made to them.

A session tracks a scope (one employee's month, or every employee's month),
loads the scope's entries from a repository and keeps them as the held set
that calendar grids and summaries are derived from.

Loads are de-duplicated per scope: asking for a scope that is already loading
joins the load in flight. A load whose scope is no longer current when it
finishes is discarded. Creates, updates and deletes are applied to the held
set only after the repository confirms them.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Awaitable, Callable, TypeVar

from aggregation import summarize_all_employees, summarize_employee_month
from entry_index import EntryIndex
from errors import (
    ConflictError,
    NotFoundError,
    StoreUnavailableError,
    TimesheetError,
    ValidationError,
)
from models import CalendarDayCell, Config, MonthlyTimesheetSummary, Scope, TimesheetEntry
from storage import EntryRepository
from utils import build_month_grid, get_public_holidays, month_bounds, shift_month
from validation import (
    to_hours,
    validate_description,
    validate_entry_date,
    validate_hours,
    validate_identity,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class MonthTimesheetSession:
    def __init__(
        self,
        repository: EntryRepository,
        scope: Scope,
        *,
        clock: Callable[[], date] | None = None,
    ):
        self.repository = repository
        self.clock = clock or date.today
        self.state = SessionState.IDLE
        self.error: TimesheetError | None = None

        self._scope = scope
        self._held_scope: Scope | None = None
        self._entries: list[TimesheetEntry] = []
        self._index: EntryIndex | None = None
        self._inflight: dict[Scope, asyncio.Task] = {}
        # Bumped on every confirmed write; a load that spans a write re-fetches
        self._revision = 0

    # --- Scope ---

    @property
    def scope(self) -> Scope:
        return self._scope

    @property
    def is_loading(self) -> bool:
        return self.state == SessionState.LOADING

    async def set_period(self, year: int, month: int) -> None:
        self._change_scope(self._scope.with_period(year, month))
        await self.load()

    async def set_employee(self, employee_id: str | None) -> None:
        self._change_scope(self._scope.with_employee(employee_id))
        await self.load()

    async def next_month(self) -> None:
        await self.set_period(*shift_month(self._scope.year, self._scope.month, 1))

    async def previous_month(self) -> None:
        await self.set_period(*shift_month(self._scope.year, self._scope.month, -1))

    async def goto_month(self, d: date) -> None:
        await self.set_period(d.year, d.month)

    def _change_scope(self, scope: Scope) -> None:
        if scope == self._scope:
            return
        logger.debug("Scope changed from %s to %s", self._scope, scope)
        self._scope = scope
        self._set_entries([], None)
        self.state = SessionState.IDLE
        self.error = None

    # --- Loading ---

    async def load(self) -> None:
        """Load the current scope, joining a load already in flight for it.

        Raises the load's error if it fails. The result is only applied if
        the scope is still current when the load finishes.
        """
        scope = self._scope
        task = self._inflight.get(scope)
        if task is None or task.done():
            task = asyncio.ensure_future(self._run_load(scope))
            self._inflight[scope] = task
            task.add_done_callback(lambda t: self._load_done(scope, t))
        else:
            logger.debug("Joining load in flight for %s", scope)

        self.state = SessionState.LOADING
        self.error = None
        # A cancelled caller must not abort a load others may be waiting on
        await asyncio.shield(task)

    async def _run_load(self, scope: Scope) -> None:
        logger.debug("Loading %s", scope)
        try:
            while True:
                revision = self._revision
                records = await self._fetch(scope)
                if revision == self._revision:
                    break
                logger.debug("Entries changed while loading %s, fetching again", scope)
        except TimesheetError as exc:
            if scope == self._scope:
                self._fail(exc)
            else:
                logger.debug("Discarding failed load for stale scope %s", scope)
            raise

        if scope != self._scope:
            logger.debug("Discarding stale load for %s", scope)
            return

        self._set_entries(records, scope)
        self.state = SessionState.READY
        self.error = None
        logger.debug("Loaded %d entries for %s", len(records), scope)

    async def _fetch(self, scope: Scope) -> list[TimesheetEntry]:
        if scope.is_all_employees:
            return list(await self._call(
                self.repository.list_all_in_month(scope.month, scope.year)
            ))
        start, end = month_bounds(scope.year, scope.month)
        return list(await self._call(
            self.repository.list_by_employee_and_range(scope.employee_id, start, end)
        ))

    def _load_done(self, scope: Scope, task: asyncio.Task) -> None:
        if self._inflight.get(scope) is task:
            del self._inflight[scope]
        # Mark the error retrieved; awaiting callers have already seen it
        if not task.cancelled():
            task.exception()

    # --- Writes ---

    async def create(
        self,
        employee_id: str,
        employee_name: str,
        entry_date: date,
        work_description: str,
        hours_worked,
    ) -> TimesheetEntry:
        """Validate and persist a new entry, then add it to the held set."""
        validate_identity(employee_id, employee_name)
        description = validate_description(work_description)
        hours = to_hours(hours_worked)
        validate_hours(hours)
        validate_entry_date(entry_date, self.clock())

        if not self._scope.is_all_employees and employee_id != self._scope.employee_id:
            raise ValidationError("Entries can only be logged by the employee who owns them")
        if self._covers(employee_id, entry_date) and self.index.get(employee_id, entry_date):
            raise ConflictError(employee_id, entry_date)

        entry = TimesheetEntry(
            employee_id=employee_id,
            employee_name=employee_name,
            date=entry_date,
            work_description=description,
            hours_worked=hours,
        )
        created = await self._write(self.repository.create_entry(entry))

        if self._held_scope and self._held_scope.contains(created):
            self._hold(created)
        logger.info("Created entry %s for %s on %s", created.id, created.employee_id, created.date)
        return created

    async def update(self, entry: TimesheetEntry) -> TimesheetEntry:
        """Persist new description/hours for an entry and replace it in the held set."""
        if not entry.id:
            raise ValidationError("Entry has no id; create it instead")

        original = self._find(entry.id)
        if original is not None and (
            original.date != entry.date
            or original.employee_id != entry.employee_id
            or original.employee_name != entry.employee_name
        ):
            raise ValidationError("Date and employee cannot be changed after an entry is created")
        if not self._scope.is_all_employees and entry.employee_id != self._scope.employee_id:
            raise ValidationError("Entries can only be changed by the employee who owns them")

        description = validate_description(entry.work_description)
        hours = to_hours(entry.hours_worked)
        validate_hours(hours)

        changed = replace(entry, work_description=description, hours_worked=hours)
        updated = await self._write(self.repository.update_entry(changed))

        if original is not None:
            self._set_entries(
                [updated if e.id == updated.id else e for e in self._entries], self._held_scope
            )
        elif self._held_scope and self._held_scope.contains(updated):
            self._hold(updated)
        logger.info("Updated entry %s", updated.id)
        return updated

    async def delete(self, entry_id: str) -> None:
        """Delete an entry and drop it from the held set."""
        if not entry_id:
            raise NotFoundError(entry_id)
        await self._write(self.repository.delete_entry(entry_id))
        self._set_entries([e for e in self._entries if e.id != entry_id], self._held_scope)
        logger.info("Deleted entry %s", entry_id)

    async def _write(self, awaitable: Awaitable[T]) -> T:
        try:
            result = await self._call(awaitable)
        except StoreUnavailableError as exc:
            self._fail(exc)
            raise
        self._revision += 1
        if self.state == SessionState.FAILED and self._held_scope == self._scope:
            self.state = SessionState.READY
            self.error = None
        return result

    async def _call(self, awaitable: Awaitable[T]) -> T:
        """Await a repository call, treating unexpected errors as store failures."""
        try:
            return await awaitable
        except TimesheetError:
            raise
        except Exception as exc:
            raise StoreUnavailableError(str(exc) or type(exc).__name__) from exc

    def _fail(self, exc: TimesheetError) -> None:
        logger.error("Timesheet session failed for %s: %s", self._scope, exc.message)
        self.state = SessionState.FAILED
        self.error = exc

    def clear_error(self) -> None:
        self.error = None
        if self.state == SessionState.FAILED:
            self.state = SessionState.READY if self._held_scope == self._scope else SessionState.IDLE

    # --- Held set and derived views ---

    def _set_entries(self, entries: list[TimesheetEntry], scope: Scope | None) -> None:
        self._entries = list(entries)
        self._held_scope = scope
        self._index = None

    def _hold(self, entry: TimesheetEntry) -> None:
        # A reload that ran during the write may already hold this record
        held = [e for e in self._entries if e.id != entry.id]
        self._set_entries([*held, entry], self._held_scope)

    def _find(self, entry_id: str) -> TimesheetEntry | None:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def _covers(self, employee_id: str, d: date) -> bool:
        return self._held_scope is not None and self._held_scope.covers(employee_id, d)

    @property
    def entries(self) -> list[TimesheetEntry]:
        return list(self._entries)

    @property
    def index(self) -> EntryIndex:
        if self._index is None:
            self._index = EntryIndex(self._entries)
        return self._index

    def entry_for(self, d: date, employee_id: str | None = None) -> TimesheetEntry | None:
        employee_id = employee_id or self._scope.employee_id
        if employee_id is None:
            return None
        return self.index.get(employee_id, d)

    def calendar(self, config: Config | None = None, with_holidays: bool = True) -> list[CalendarDayCell]:
        """Month grid for the current scope with the held entries bound to their days."""
        config = config or Config()
        scope = self._scope
        holidays = None
        if with_holidays:
            holidays = get_public_holidays(
                scope.year, scope.month, config.holiday_country, config.holiday_subdiv
            )
        lookup = None
        if scope.employee_id is not None and self._held_scope == scope:
            lookup = self.index.lookup_for(scope.employee_id)
        return build_month_grid(
            scope.year,
            scope.month,
            today=self.clock(),
            first_weekday=config.first_weekday,
            lookup=lookup,
            holidays=holidays,
        )

    def total_hours(self) -> Decimal:
        return summarize_employee_month(self._entries)

    def summaries(self) -> list[MonthlyTimesheetSummary]:
        return summarize_all_employees(self._entries, self._scope.month, self._scope.year)
