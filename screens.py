"""Modal screens for the timesheet application."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, Input, Label
from textual.screen import ModalScreen

from errors import ValidationError
from models import TimesheetEntry
from utils import format_hours
from validation import parse_hours, validate_description


class ConfirmDeleteScreen(ModalScreen[bool]):
    """Asks before deleting the entry for a day. Dismisses with True to delete."""

    CSS = """
    ConfirmDeleteScreen {
        align: center middle;
    }

    #delete-dialog {
        width: 56;
        height: auto;
        padding: 1 2;
        background: $surface;
        border: thick $error;
    }

    #delete-details {
        color: $text-muted;
        margin-top: 1;
    }

    #delete-buttons {
        width: 100%;
        height: auto;
        margin-top: 1;
    }

    #delete-buttons Button {
        width: 1fr;
        margin: 0 1;
    }
    """

    BINDINGS = [
        Binding("escape", "keep", "Keep"),
        Binding("y", "delete", "Delete"),
        Binding("n", "keep", "Keep"),
    ]

    def __init__(self, entry: TimesheetEntry):
        super().__init__()
        self.entry = entry

    @property
    def prompt(self) -> str:
        return f"Delete your entry for {self.entry.date.strftime('%a %b %d, %Y')}?"

    @property
    def details(self) -> str:
        return f"{format_hours(self.entry.hours_worked)}  {self.entry.work_description}"

    def compose(self) -> ComposeResult:
        with Vertical(id="delete-dialog"):
            yield Label(self.prompt)
            yield Label(self.details, id="delete-details")
            with Horizontal(id="delete-buttons"):
                yield Button("Delete (Y)", variant="error", id="delete")
                yield Button("Keep (N)", variant="default", id="keep")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "delete")

    def action_delete(self) -> None:
        self.dismiss(True)

    def action_keep(self) -> None:
        self.dismiss(False)


class EditEntryScreen(ModalScreen[tuple[str, Decimal] | None]):
    """Add or edit the entry for one day. Dismisses with (description, hours)."""

    CSS = """
    EditEntryScreen {
        align: center middle;
    }

    #edit-dialog {
        width: 70;
        height: auto;
        padding: 1 2;
        background: $surface;
        border: thick $primary;
    }

    #edit-title {
        width: 100%;
        text-align: center;
        text-style: bold;
        margin-bottom: 1;
    }

    .field-label {
        height: 1;
        color: $text-muted;
    }

    .field-row {
        width: 100%;
        height: auto;
        margin-bottom: 1;
    }

    #hours-group {
        width: 14;
        height: auto;
        margin-right: 1;
    }

    #description-group {
        width: 1fr;
        height: auto;
    }

    #edit-buttons {
        width: 100%;
        height: auto;
        margin-top: 1;
        align: center middle;
    }

    #edit-buttons Button {
        width: auto;
        min-width: 12;
        margin: 0 2;
    }
    """

    BINDINGS = [
        Binding("escape", "cancel", "Cancel"),
    ]

    FIELD_ORDER = ["hours", "description"]

    def __init__(self, entry_date: date, entry: TimesheetEntry | None = None, default_hours: Decimal = Decimal("8")):
        super().__init__()
        self.entry_date = entry_date
        self.entry = entry
        self.default_hours = default_hours

    @property
    def is_edit(self) -> bool:
        return self.entry is not None

    def compose(self) -> ComposeResult:
        verb = "Edit" if self.is_edit else "Add"
        hours = self.entry.hours_worked if self.entry else self.default_hours
        with Vertical(id="edit-dialog"):
            yield Label(f"{verb} entry for {self.entry_date.strftime('%a %b %d, %Y')}", id="edit-title")

            with Horizontal(classes="field-row"):
                with Vertical(id="hours-group"):
                    yield Label("Hours", classes="field-label")
                    yield Input(value=f"{float(hours):g}", placeholder="8", id="hours")
                with Vertical(id="description-group"):
                    yield Label("Work description", classes="field-label")
                    yield Input(
                        value=self.entry.work_description if self.entry else "",
                        placeholder="What did you work on?",
                        id="description",
                    )

            with Horizontal(id="edit-buttons"):
                yield Button("Save", variant="primary", id="save")
                yield Button("Cancel", variant="default", id="cancel")

    def on_mount(self) -> None:
        self.query_one("#description" if self.is_edit else "#hours", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        """Move to next field on Enter, or save if on last field."""
        current_id = event.input.id
        if current_id in self.FIELD_ORDER:
            current_idx = self.FIELD_ORDER.index(current_id)
            if current_idx < len(self.FIELD_ORDER) - 1:
                self.query_one(f"#{self.FIELD_ORDER[current_idx + 1]}", Input).focus()
            else:
                self._save_entry()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "cancel":
            self.dismiss(None)
        elif event.button.id == "save":
            self._save_entry()

    def action_cancel(self) -> None:
        self.dismiss(None)

    def validate_input(self, hours_text: str, description_text: str) -> tuple[str, Decimal]:
        """Check the typed values; raises ValidationError."""
        hours = parse_hours(hours_text)
        description = validate_description(description_text)
        return description, hours

    def _save_entry(self) -> None:
        try:
            result = self.validate_input(
                self.query_one("#hours", Input).value,
                self.query_one("#description", Input).value,
            )
        except ValidationError as exc:
            self.app.notify(exc.message, severity="warning")
            return
        self.dismiss(result)
