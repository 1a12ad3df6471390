#!/usr/bin/env python3
"""Import timesheet entries from a JSON export of the old store.

The file holds a list of records using the store's field names:
employeeId, employeeName, date, workDescription, hoursWorked and,
optionally, id, createdAt and updatedAt.
"""

import json
import logging
import sys
from datetime import date, datetime, timezone
from pathlib import Path

import storage
from errors import ConflictError, ValidationError
from models import TimesheetEntry
from validation import to_hours, validate_fields

logger = logging.getLogger(__name__)


def parse_date(val: str | None) -> date | None:
    """Parse the calendar day from '2024-02-01' or '2024-02-01T00:00:00.000Z'.

    Only the date part is used, so a stored midnight UTC never shifts a day.
    """
    if not val:
        return None
    try:
        return date.fromisoformat(str(val)[:10])
    except ValueError:
        return None


def parse_timestamp(val: str | None) -> datetime | None:
    """Parse an ISO timestamp, treating naive values as UTC."""
    if not val:
        return None
    try:
        parsed = datetime.fromisoformat(str(val).replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def record_to_entry(record: dict) -> TimesheetEntry:
    """Convert one JSON record; raises ValidationError if it is malformed."""
    entry_date = parse_date(record.get("date"))
    if entry_date is None:
        raise ValidationError(f"Invalid date: {record.get('date')!r}")

    entry = TimesheetEntry(
        id=record.get("id") or None,
        employee_id=str(record.get("employeeId") or ""),
        employee_name=str(record.get("employeeName") or ""),
        date=entry_date,
        work_description=str(record.get("workDescription") or ""),
        hours_worked=to_hours(record.get("hoursWorked")),
        created_at=parse_timestamp(record.get("createdAt")),
        updated_at=parse_timestamp(record.get("updatedAt")),
    )
    validate_fields(entry)
    return entry


def import_records(records: list[dict]) -> dict[str, int]:
    """Insert records, skipping duplicates and invalid ones. Returns counts."""
    counts = {"imported": 0, "duplicates": 0, "invalid": 0}

    for i, record in enumerate(records):
        try:
            entry = record_to_entry(record)
        except ValidationError as exc:
            logger.warning("Skipping record %d: %s", i, exc.message)
            counts["invalid"] += 1
            continue

        try:
            storage.insert_entry(entry)
        except ConflictError:
            logger.info("Skipping duplicate for %s on %s", entry.employee_id, entry.date)
            counts["duplicates"] += 1
            continue
        counts["imported"] += 1

    return counts


def main():
    if len(sys.argv) != 2:
        print("Usage: import_data.py <entries.json>")
        sys.exit(1)

    json_path = Path(sys.argv[1])
    with open(json_path) as f:
        records = json.load(f)

    storage.init_db()
    counts = import_records(records)

    print(f"Imported {counts['imported']} entries")
    if counts["duplicates"]:
        print(f"Skipped {counts['duplicates']} duplicates (employee already has an entry that day)")
    if counts["invalid"]:
        print(f"Skipped {counts['invalid']} invalid records")


if __name__ == "__main__":
    main()
