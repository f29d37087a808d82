"""Tests for the navigation state machine."""

from __future__ import annotations

import pytest

from termtable.errors import CredentialsMissingError, QueryConnectionError, QueryExecutionError, RegistryStorageError
from termtable.models import ConnectionProfile, ConnectionStatus, Credentials, TabularResult, TestOutcome
from termtable.navigation import (
    BrowserFocus,
    ConnectionFormState,
    ConnectionPickerState,
    ExitApp,
    FormAction,
    HomeState,
    KeyPress,
    NavigationStateMachine,
    PersistProfile,
    RememberConnection,
    TableBrowserState,
)
from termtable.navigation.screens import FIELD_CHAR_LIMIT, FORM_FIELDS
from termtable.registry import ConnectionRegistry


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class _RegistryStub:
    def __init__(
        self,
        profiles: list[ConnectionProfile] | None = None,
        credentials: dict[str, Credentials] | None = None,
    ) -> None:
        self.profiles = list(profiles or [])
        self.credentials = dict(credentials or {})
        self.deleted: list[str] = []
        self.list_error: Exception | None = None

    def list(self) -> list[ConnectionProfile]:
        if self.list_error is not None:
            raise self.list_error
        return list(self.profiles)

    def resolve_credentials(self, name: str) -> Credentials:
        try:
            return self.credentials[name]
        except KeyError:
            raise CredentialsMissingError(f"No credentials saved for '{name}'.") from None

    def delete(self, name: str) -> None:
        self.deleted.append(name)
        self.profiles = [profile for profile in self.profiles if profile.name != name]


class _ProberStub:
    def __init__(self, outcome: TestOutcome = TestOutcome.PASSED) -> None:
        self.outcome = outcome
        self.probed: list[ConnectionProfile] = []

    async def probe(self, profile: ConnectionProfile) -> TestOutcome:
        self.probed.append(profile)
        return self.outcome


class _IntrospectorStub:
    def __init__(self, tables: tuple[str, ...] = (), contents: dict[str, TabularResult] | None = None) -> None:
        self.tables = tables
        self.contents = dict(contents or {})
        self.failing: dict[str, Exception] = {}
        self.list_error: Exception | None = None
        self.seen_profiles: list[ConnectionProfile] = []

    async def list_tables(self, profile: ConnectionProfile) -> tuple[str, ...]:
        self.seen_profiles.append(profile)
        if self.list_error is not None:
            raise self.list_error
        return self.tables

    async def fetch_all(self, profile: ConnectionProfile, table_name: str) -> TabularResult:
        if table_name in self.failing:
            raise self.failing[table_name]
        return self.contents.get(table_name, TabularResult())


USERS = TabularResult(columns=("id", "name"), rows=(("1", "alice"), ("2", "bob")))
ORDERS = TabularResult(columns=("id",), rows=(("10",),))


def _machine(
    registry: object | None = None,
    prober: _ProberStub | None = None,
    introspector: _IntrospectorStub | None = None,
    **kwargs: object,
) -> NavigationStateMachine:
    return NavigationStateMachine(
        registry or _RegistryStub(),
        prober or _ProberStub(),
        introspector or _IntrospectorStub(),
        **kwargs,
    )


async def _press(machine: NavigationStateMachine, *keys: str) -> list[object]:
    effects: list[object] = []
    for key in keys:
        effects.extend(await machine.handle(KeyPress(key)))
    return effects


async def _type(machine: NavigationStateMachine, text: str) -> None:
    for character in text:
        await machine.handle(KeyPress(character, character))


async def _fill_form(machine: NavigationStateMachine, values: dict[str, str]) -> None:
    for name in FORM_FIELDS:
        await _type(machine, values.get(name, ""))
        await _press(machine, "tab")


FORM_VALUES = {
    "host": "localhost",
    "port": "5432",
    "user": "postgres",
    "password": "pw",
    "database": "app",
    "name": "local",
}


def test_machine_starts_on_home() -> None:
    machine = _machine()

    assert machine.state == HomeState()
    assert machine.profile_in_focus is None


@pytest.mark.anyio
async def test_home_enter_opens_empty_form() -> None:
    machine = _machine()

    await _press(machine, "enter")

    assert machine.state == ConnectionFormState()
    assert machine.state.focus_index == 0
    assert all(value == "" for value in machine.state.values)


@pytest.mark.anyio
async def test_home_selection_wraps() -> None:
    machine = _machine()

    await _press(machine, "up")

    assert machine.state == HomeState(index=1)
    await _press(machine, "down")
    assert machine.state == HomeState(index=0)


@pytest.mark.anyio
@pytest.mark.parametrize("key", ["q", "escape", "ctrl+c"])
async def test_home_quit_keys_exit(key: str) -> None:
    machine = _machine()

    effects = await _press(machine, key)

    assert effects == [ExitApp()]


@pytest.mark.anyio
async def test_ctrl_c_exits_from_any_screen() -> None:
    machine = _machine()
    await _press(machine, "enter")

    effects = await _press(machine, "ctrl+c")

    assert effects == [ExitApp()]
    assert isinstance(machine.state, ConnectionFormState)


@pytest.mark.anyio
async def test_form_focus_cycles_over_fields_and_action_row() -> None:
    machine = _machine()
    await _press(machine, "enter")

    await _press(machine, *["tab"] * len(FORM_FIELDS))
    assert machine.state.on_action_row

    await _press(machine, "down")
    assert machine.state.focus_index == 0

    await _press(machine, "up")
    assert machine.state.on_action_row

    await _press(machine, "shift+tab")
    assert machine.state.focused_field == "name"


@pytest.mark.anyio
async def test_form_typing_edits_focused_field_only() -> None:
    machine = _machine()
    await _press(machine, "enter", "tab")

    await _type(machine, "54321")
    await _press(machine, "backspace")

    assert machine.state.value("port") == "5432"
    assert machine.state.value("host") == ""


@pytest.mark.anyio
async def test_form_accepts_letters_used_as_shortcuts_elsewhere() -> None:
    machine = _machine()
    await _press(machine, "enter")

    await _type(machine, "qdr")

    assert machine.state.value("host") == "qdr"


@pytest.mark.anyio
async def test_form_fields_are_length_limited() -> None:
    machine = _machine()
    await _press(machine, "enter")

    await _type(machine, "x" * (FIELD_CHAR_LIMIT + 10))

    assert len(machine.state.value("host")) == FIELD_CHAR_LIMIT


@pytest.mark.anyio
async def test_form_escape_returns_home_and_discards_values() -> None:
    machine = _machine()
    await _press(machine, "enter")
    await _type(machine, "db")

    await _press(machine, "escape", "enter")

    assert machine.state == ConnectionFormState()


@pytest.mark.anyio
async def test_submit_with_missing_fields_stays_without_probing() -> None:
    prober = _ProberStub()
    machine = _machine(prober=prober)
    await _press(machine, "enter", *["tab"] * len(FORM_FIELDS))

    effects = await _press(machine, "enter")

    assert effects == []
    assert isinstance(machine.state, ConnectionFormState)
    assert machine.state.error == "Required: Host, Port, User, Database"
    assert prober.probed == []


@pytest.mark.anyio
async def test_submit_passed_opens_browser_and_requests_persist() -> None:
    introspector = _IntrospectorStub(tables=("users",), contents={"users": USERS})
    machine = _machine(introspector=introspector)
    await _press(machine, "enter")
    await _fill_form(machine, FORM_VALUES)

    effects = await _press(machine, "enter")

    state = machine.state
    assert isinstance(state, TableBrowserState)
    assert state.profile.name == "local"
    assert state.profile.status is ConnectionStatus.CONNECTED
    assert state.content == USERS
    assert state.content_table == "users"
    assert effects == [PersistProfile(effects[0].profile), RememberConnection("local")]
    persisted = effects[0].profile
    assert (persisted.host, persisted.port, persisted.user, persisted.password) == ("localhost", "5432", "postgres", "pw")
    assert machine.profile_in_focus == state.profile


@pytest.mark.anyio
async def test_submit_name_defaults_to_database() -> None:
    machine = _machine()
    await _press(machine, "enter")
    await _fill_form(machine, {**FORM_VALUES, "name": ""})

    effects = await _press(machine, "enter")

    assert effects[0].profile.name == "app"


@pytest.mark.anyio
async def test_submit_failed_probe_stays_on_form() -> None:
    machine = _machine(prober=_ProberStub(TestOutcome.FAILED))
    await _press(machine, "enter")
    await _fill_form(machine, FORM_VALUES)

    effects = await _press(machine, "enter")

    assert effects == []
    state = machine.state
    assert isinstance(state, ConnectionFormState)
    assert state.test_status is TestOutcome.FAILED
    assert state.error == "Connection failed."
    assert state.value("host") == "localhost"


@pytest.mark.anyio
async def test_test_action_probes_once_until_reset() -> None:
    prober = _ProberStub(TestOutcome.PASSED)
    machine = _machine(prober=prober)
    await _press(machine, "enter")
    await _fill_form(machine, FORM_VALUES)

    await _press(machine, "right")
    assert machine.state.action is FormAction.TEST

    effects = await _press(machine, "enter", "enter")

    assert effects == []
    assert isinstance(machine.state, ConnectionFormState)
    assert machine.state.test_status is TestOutcome.PASSED
    assert len(prober.probed) == 1

    await _press(machine, "left")
    assert machine.state.action is FormAction.SUBMIT
    assert machine.state.test_status is TestOutcome.NA


@pytest.mark.anyio
async def test_editing_resets_test_status() -> None:
    machine = _machine(prober=_ProberStub(TestOutcome.FAILED))
    await _press(machine, "enter")
    await _fill_form(machine, FORM_VALUES)
    await _press(machine, "right", "enter")
    assert machine.state.test_status is TestOutcome.FAILED

    await _press(machine, "tab")
    await _type(machine, "x")

    assert machine.state.test_status is TestOutcome.NA
    assert machine.state.error is None


@pytest.mark.anyio
async def test_picker_lists_saved_profiles_and_preselects_last() -> None:
    registry = _RegistryStub([ConnectionProfile(name="alpha"), ConnectionProfile(name="beta")])
    machine = _machine(registry, last_connection="beta")

    await _press(machine, "down", "enter")

    state = machine.state
    assert isinstance(state, ConnectionPickerState)
    assert [profile.name for profile in state.profiles] == ["alpha", "beta"]
    assert state.selected.name == "beta"


@pytest.mark.anyio
async def test_picker_missing_credentials_stays_with_error() -> None:
    introspector = _IntrospectorStub()
    machine = _machine(_RegistryStub([ConnectionProfile(name="orphan")]), introspector=introspector)

    await _press(machine, "down", "enter")
    effects = await _press(machine, "enter")

    assert effects == []
    assert isinstance(machine.state, ConnectionPickerState)
    assert "orphan" in (machine.state.error or "")
    assert introspector.seen_profiles == []


@pytest.mark.anyio
async def test_picker_enter_opens_browser_with_credentials() -> None:
    registry = _RegistryStub(
        [ConnectionProfile(name="local", host="db", port="5432", database="app")],
        {"local": Credentials(user="postgres", password="pw")},
    )
    introspector = _IntrospectorStub(tables=("orders", "users"), contents={"orders": ORDERS, "users": USERS})
    machine = _machine(registry, introspector=introspector)

    await _press(machine, "down", "enter")
    effects = await _press(machine, "enter")

    state = machine.state
    assert isinstance(state, TableBrowserState)
    assert effects == [RememberConnection("local")]
    assert introspector.seen_profiles[0].password == "pw"
    assert state.content_table == "orders"


@pytest.mark.anyio
async def test_picker_delete_removes_selected_profile() -> None:
    registry = _RegistryStub([ConnectionProfile(name="alpha"), ConnectionProfile(name="beta")])
    machine = _machine(registry)
    await _press(machine, "down", "enter", "down")

    await machine.handle(KeyPress("d", "d"))

    state = machine.state
    assert registry.deleted == ["beta"]
    assert [profile.name for profile in state.profiles] == ["alpha"]
    assert state.index == 0


@pytest.mark.anyio
async def test_picker_surfaces_listing_errors() -> None:
    registry = _RegistryStub()
    registry.list_error = RegistryStorageError("store locked", None)  # type: ignore[arg-type]
    machine = _machine(registry)

    await _press(machine, "down", "enter")

    assert isinstance(machine.state, ConnectionPickerState)
    assert machine.state.profiles == ()
    assert "store locked" in (machine.state.error or "")


@pytest.mark.anyio
async def test_picker_empty_ignores_enter_and_back_goes_home() -> None:
    machine = _machine()
    await _press(machine, "down", "enter")

    await _press(machine, "enter")
    assert isinstance(machine.state, ConnectionPickerState)

    await _press(machine, "q")
    assert machine.state == HomeState()


async def _open_browser(introspector: _IntrospectorStub) -> NavigationStateMachine:
    machine = _machine(introspector=introspector)
    await _press(machine, "enter")
    await _fill_form(machine, FORM_VALUES)
    await _press(machine, "enter")
    return machine


@pytest.mark.anyio
async def test_browser_moves_between_tables() -> None:
    introspector = _IntrospectorStub(tables=("orders", "users"), contents={"orders": ORDERS, "users": USERS})
    machine = await _open_browser(introspector)

    await _press(machine, "down")
    assert machine.state.content_table == "users"
    assert machine.state.content == USERS

    await _press(machine, "down")
    assert machine.state.table_index == 1

    await _press(machine, "up", "up")
    assert machine.state.content_table == "orders"


@pytest.mark.anyio
async def test_browser_failed_fetch_keeps_previous_content() -> None:
    introspector = _IntrospectorStub(tables=("orders", "users"), contents={"orders": ORDERS})
    introspector.failing["users"] = QueryExecutionError("permission denied")
    machine = await _open_browser(introspector)

    await _press(machine, "down")

    state = machine.state
    assert state.table_index == 1
    assert state.content == ORDERS
    assert state.content_table == "orders"
    assert state.error == "permission denied"
    assert state.profile.status is ConnectionStatus.CONNECTED


@pytest.mark.anyio
async def test_browser_connection_loss_marks_disconnected() -> None:
    introspector = _IntrospectorStub(tables=("orders", "users"), contents={"orders": ORDERS})
    introspector.failing["users"] = QueryConnectionError("server closed")
    machine = await _open_browser(introspector)

    await _press(machine, "down")

    assert machine.state.profile.status is ConnectionStatus.DISCONNECTED
    assert machine.state.content == ORDERS


@pytest.mark.anyio
async def test_browser_list_failure_still_opens_browser() -> None:
    introspector = _IntrospectorStub()
    introspector.list_error = QueryConnectionError("refused")
    machine = await _open_browser(introspector)

    state = machine.state
    assert isinstance(state, TableBrowserState)
    assert state.tables == ()
    assert state.profile.status is ConnectionStatus.DISCONNECTED
    assert state.error == "refused"


@pytest.mark.anyio
async def test_browser_focus_toggle_and_row_scroll() -> None:
    introspector = _IntrospectorStub(tables=("users",), contents={"users": USERS})
    machine = await _open_browser(introspector)

    await _press(machine, "right")
    assert machine.state.focus is BrowserFocus.CONTENT

    await _press(machine, "down", "down", "down")
    assert machine.state.row_offset == 1

    await _press(machine, "up", "up")
    assert machine.state.row_offset == 0

    await _press(machine, "left")
    assert machine.state.focus is BrowserFocus.TABLES


@pytest.mark.anyio
async def test_browser_back_keys_return_home() -> None:
    machine = await _open_browser(_IntrospectorStub(tables=("users",), contents={"users": USERS}))

    effects = await _press(machine, "q")

    assert effects == []
    assert machine.state == HomeState()
    assert machine.profile_in_focus is None


@pytest.mark.anyio
async def test_subscribe_receives_current_and_future_states() -> None:
    machine = _machine()
    seen: list[object] = []

    unsubscribe = machine.subscribe(seen.append)
    await _press(machine, "enter")
    unsubscribe()
    await _press(machine, "escape")

    assert seen == [HomeState(), ConnectionFormState()]


@pytest.mark.anyio
async def test_save_reopen_and_browse(registry: ConnectionRegistry) -> None:
    introspector = _IntrospectorStub(tables=("users",), contents={"users": USERS})
    machine = _machine(registry, introspector=introspector)
    await _press(machine, "enter")
    await _fill_form(machine, FORM_VALUES)

    effects = await _press(machine, "enter")
    for effect in effects:
        if isinstance(effect, PersistProfile):
            registry.save(effect.profile)
    await _press(machine, "q", "down", "enter")

    picker = machine.state
    assert isinstance(picker, ConnectionPickerState)
    assert [profile.name for profile in picker.profiles] == ["local"]
    assert picker.profiles[0].password == ""

    await _press(machine, "enter")

    state = machine.state
    assert isinstance(state, TableBrowserState)
    assert state.profile.user == "postgres"
    assert state.profile.password == "pw"
    assert state.content == USERS
    assert introspector.seen_profiles[-1].password == "pw"
