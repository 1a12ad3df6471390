"""Lookup of the entry logged on a calendar day."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Iterable

from models import TimesheetEntry

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _recency(entry: TimesheetEntry) -> tuple:
    stamp = entry.updated_at or entry.created_at
    if stamp is None:
        key = _EPOCH
    elif stamp.tzinfo is None:
        # Stored timestamps are UTC
        key = stamp.replace(tzinfo=timezone.utc)
    else:
        key = stamp.astimezone(timezone.utc)
    return key, entry.id or ""


class EntryIndex:
    """Maps (employee, day) to the entry logged for it.

    Two entries for the same employee and day violate the one-entry-per-day
    rule. Lookups then return the most recently updated one, and the clash
    is recorded in ``duplicates`` and logged as a warning.
    """

    def __init__(self, entries: Iterable[TimesheetEntry] = ()):
        self._by_key: dict[tuple[str, date], TimesheetEntry] = {}
        self.duplicates: dict[tuple[str, date], list[TimesheetEntry]] = {}

        for entry in entries:
            key = (entry.employee_id, entry.date)
            existing = self._by_key.get(key)
            if existing is None:
                self._by_key[key] = entry
                continue

            clash = self.duplicates.setdefault(key, [existing])
            clash.append(entry)
            if _recency(entry) > _recency(existing):
                self._by_key[key] = entry

        for (employee_id, day), clash in self.duplicates.items():
            logger.warning(
                "Integrity warning: %d entries for employee %s on %s (ids: %s)",
                len(clash), employee_id, day.isoformat(),
                ", ".join(str(e.id) for e in clash),
            )

    def __len__(self) -> int:
        return len(self._by_key)

    @property
    def has_duplicates(self) -> bool:
        return bool(self.duplicates)

    def get(self, employee_id: str, day: date) -> TimesheetEntry | None:
        if isinstance(day, datetime):
            day = day.date()
        return self._by_key.get((employee_id, day))

    def lookup_for(self, employee_id: str):
        """Return a date -> entry callable for one employee, for grid building."""
        return lambda day: self.get(employee_id, day)
