"""Per-screen state carried by the navigation state machine.

Each screen owns an immutable state value that only its own handler in
``machine`` inspects. A fresh value is created whenever the machine enters
a screen, so nothing survives from a previous visit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from termtable.models import ConnectionProfile, TabularResult, TestOutcome

NEW_CONNECTION = "New Connection"
JOIN_EXISTING = "Join Existing"
HOME_ITEMS: tuple[str, ...] = (NEW_CONNECTION, JOIN_EXISTING)

FORM_FIELDS: tuple[str, ...] = ("host", "port", "user", "password", "database", "name")
FORM_LABELS: dict[str, str] = {
    "host": "Host",
    "port": "Port",
    "user": "User",
    "password": "Pass",
    "database": "Database",
    "name": "Name",
}
REQUIRED_FIELDS: tuple[str, ...] = ("host", "port", "user", "database")
FIELD_CHAR_LIMIT = 64


class FormAction(str, Enum):
    """Buttons on the form's action row."""

    SUBMIT = "submit"
    TEST = "test"


class BrowserFocus(str, Enum):
    """Focus regions of the table browser."""

    TABLES = "tables"
    CONTENT = "content"


@dataclass(frozen=True, slots=True)
class HomeState:
    index: int = 0

    @property
    def selected(self) -> str:
        return HOME_ITEMS[self.index]


@dataclass(frozen=True, slots=True)
class ConnectionFormState:
    """Field values plus a focus index over the fields and the action row."""

    values: tuple[str, ...] = field(default_factory=lambda: ("",) * len(FORM_FIELDS))
    focus_index: int = 0
    action: FormAction = FormAction.SUBMIT
    test_status: TestOutcome = TestOutcome.NA
    error: str | None = None

    @property
    def on_action_row(self) -> bool:
        return self.focus_index == len(FORM_FIELDS)

    @property
    def focused_field(self) -> str | None:
        if self.on_action_row:
            return None
        return FORM_FIELDS[self.focus_index]

    def value(self, name: str) -> str:
        return self.values[FORM_FIELDS.index(name)]

    def missing_fields(self) -> tuple[str, ...]:
        return tuple(name for name in REQUIRED_FIELDS if not self.value(name).strip())

    def to_profile(self) -> ConnectionProfile:
        """Build the profile in focus; a blank name falls back to the database."""

        database = self.value("database").strip()
        return ConnectionProfile(
            name=self.value("name").strip() or database,
            host=self.value("host").strip(),
            port=self.value("port").strip(),
            database=database,
            user=self.value("user"),
            password=self.value("password"),
        )


@dataclass(frozen=True, slots=True)
class ConnectionPickerState:
    profiles: tuple[ConnectionProfile, ...] = ()
    index: int = 0
    error: str | None = None

    @property
    def selected(self) -> ConnectionProfile | None:
        if not self.profiles:
            return None
        return self.profiles[self.index]


@dataclass(frozen=True, slots=True)
class TableBrowserState:
    """Browser over one live profile; ``content_table`` names what ``content`` shows."""

    profile: ConnectionProfile
    tables: tuple[str, ...] = ()
    table_index: int = 0
    focus: BrowserFocus = BrowserFocus.TABLES
    content: TabularResult | None = None
    content_table: str | None = None
    row_offset: int = 0
    error: str | None = None

    @property
    def selected_table(self) -> str | None:
        if not self.tables:
            return None
        return self.tables[self.table_index]


ScreenState = HomeState | ConnectionFormState | ConnectionPickerState | TableBrowserState


__all__ = [
    "BrowserFocus",
    "ConnectionFormState",
    "ConnectionPickerState",
    "FIELD_CHAR_LIMIT",
    "FORM_FIELDS",
    "FORM_LABELS",
    "FormAction",
    "HOME_ITEMS",
    "HomeState",
    "JOIN_EXISTING",
    "NEW_CONNECTION",
    "REQUIRED_FIELDS",
    "ScreenState",
    "TableBrowserState",
]
