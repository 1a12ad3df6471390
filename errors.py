"""Error types raised by the timesheet engine and its repositories.

Every error carries a ``user_message`` suitable for showing in the console.
Input problems (validation, conflict) tell the user what to fix; store
problems tell them to try again later.
"""

from __future__ import annotations

from typing import Any


class TimesheetError(Exception):
    """Base class for timesheet errors."""

    retryable = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    @property
    def user_message(self) -> str:
        return self.message


class ValidationError(TimesheetError):
    """Raised when entry fields are malformed. Never reaches the repository."""

    @property
    def user_message(self) -> str:
        return f"Please fix your input: {self.message}"


class ConflictError(TimesheetError):
    """Raised when an entry already exists for the employee and date."""

    def __init__(self, employee_id: str, entry_date, details: dict[str, Any] | None = None):
        self.employee_id = employee_id
        self.entry_date = entry_date
        super().__init__(
            f"An entry already exists for {entry_date.strftime('%b %d, %Y')}",
            details,
        )

    @property
    def user_message(self) -> str:
        return f"{self.message}. Edit the existing entry instead."


class NotFoundError(TimesheetError):
    """Raised when an update or delete targets a missing entry id."""

    def __init__(self, entry_id: str | None, details: dict[str, Any] | None = None):
        self.entry_id = entry_id
        super().__init__(f"Entry {entry_id} was not found", details)

    @property
    def user_message(self) -> str:
        return f"{self.message}. It may have been deleted; reload the month."


class StoreUnavailableError(TimesheetError):
    """Raised when the backing store cannot be reached or fails."""

    retryable = True

    @property
    def user_message(self) -> str:
        return f"The timesheet store is unavailable ({self.message}). Please try again later."
