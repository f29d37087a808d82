"""Top-level controller routing key presses to the active screen."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Awaitable, Callable, Protocol, Sequence

from termtable.errors import QueryConnectionError, QueryError, RegistryError
from termtable.models import ConnectionProfile, ConnectionStatus, Credentials, TabularResult, TestOutcome

from .events import ExitApp, KeyPress, PersistProfile, RememberConnection, SideEffect
from .screens import (
    FIELD_CHAR_LIMIT,
    FORM_FIELDS,
    FORM_LABELS,
    HOME_ITEMS,
    NEW_CONNECTION,
    BrowserFocus,
    ConnectionFormState,
    ConnectionPickerState,
    FormAction,
    HomeState,
    ScreenState,
    TableBrowserState,
)

LOG = logging.getLogger(__name__)

StateListener = Callable[[ScreenState], None]
Transition = tuple[ScreenState, tuple[SideEffect, ...]]

_FORWARD_KEYS = {"tab", "down"}
_BACKWARD_KEYS = {"shift+tab", "up"}
_BACK_KEYS = {"q", "escape"}


class Registry(Protocol):
    def list(self) -> Sequence[ConnectionProfile]: ...

    def resolve_credentials(self, name: str) -> Credentials: ...

    def delete(self, name: str) -> None: ...


class Prober(Protocol):
    async def probe(self, profile: ConnectionProfile) -> TestOutcome: ...


class Introspector(Protocol):
    async def list_tables(self, profile: ConnectionProfile) -> tuple[str, ...]: ...

    async def fetch_all(self, profile: ConnectionProfile, table_name: str) -> TabularResult: ...


class NavigationStateMachine:
    """Holds the current screen and applies one key press at a time.

    Collaborator calls are awaited inside ``handle``, so an event is fully
    processed, transition included, before the caller can submit the next.
    Work the shell must carry out is returned as side effects rather than
    performed here.
    """

    def __init__(
        self,
        registry: Registry,
        prober: Prober,
        introspector: Introspector,
        *,
        last_connection: str | None = None,
    ) -> None:
        self._registry = registry
        self._prober = prober
        self._introspector = introspector
        self._last_connection = last_connection
        self._state: ScreenState = HomeState()
        self._listeners: set[StateListener] = set()
        self._handlers: dict[type, Callable[[ScreenState, KeyPress], Awaitable[Transition]]] = {
            HomeState: self._handle_home,
            ConnectionFormState: self._handle_form,
            ConnectionPickerState: self._handle_picker,
            TableBrowserState: self._handle_browser,
        }

    @property
    def state(self) -> ScreenState:
        """Current screen state."""

        return self._state

    @property
    def profile_in_focus(self) -> ConnectionProfile | None:
        """Profile currently open in the browser, if any."""

        if isinstance(self._state, TableBrowserState):
            return self._state.profile
        return None

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Subscribe to state changes; returns an unsubscribe handle."""

        self._listeners.add(listener)
        listener(self._state)

        def _unsubscribe() -> None:
            self._listeners.discard(listener)

        return _unsubscribe

    async def handle(self, event: KeyPress) -> tuple[SideEffect, ...]:
        """Apply ``event`` to the active screen and return requested side effects."""

        if event.key == "ctrl+c":
            return (ExitApp(),)
        handler = self._handlers[type(self._state)]
        previous = self._state
        self._state, effects = await handler(self._state, event)
        if type(previous) is not type(self._state):
            LOG.debug(
                "Screen transition",
                extra={"from": type(previous).__name__, "to": type(self._state).__name__},
            )
        for effect in effects:
            if isinstance(effect, RememberConnection):
                self._last_connection = effect.name
        self._notify()
        return effects

    async def _handle_home(self, state: HomeState, event: KeyPress) -> Transition:
        key = event.key
        if key in _BACK_KEYS:
            return state, (ExitApp(),)
        if key in {"up", "down"}:
            delta = -1 if key == "up" else 1
            return replace(state, index=(state.index + delta) % len(HOME_ITEMS)), ()
        if key == "enter":
            if state.selected == NEW_CONNECTION:
                return ConnectionFormState(), ()
            return self._open_picker(), ()
        return state, ()

    async def _handle_form(self, state: ConnectionFormState, event: KeyPress) -> Transition:
        key = event.key
        slots = len(FORM_FIELDS) + 1
        if key == "escape":
            return HomeState(), ()
        if key in _FORWARD_KEYS or (key == "enter" and not state.on_action_row):
            return replace(state, focus_index=(state.focus_index + 1) % slots), ()
        if key in _BACKWARD_KEYS:
            return replace(state, focus_index=(state.focus_index - 1) % slots), ()
        if key in {"left", "right"}:
            action = state.action
            if state.on_action_row:
                action = FormAction.TEST if action is FormAction.SUBMIT else FormAction.SUBMIT
            return replace(state, action=action, test_status=TestOutcome.NA, error=None), ()
        if key == "enter":
            return await self._run_form_action(state)
        if state.on_action_row:
            return state, ()
        if key == "backspace":
            return self._edit_field(state, lambda value: value[:-1]), ()
        if event.printable:
            character = event.character or ""
            return self._edit_field(state, lambda value: (value + character)[:FIELD_CHAR_LIMIT]), ()
        return state, ()

    async def _run_form_action(self, state: ConnectionFormState) -> Transition:
        missing = state.missing_fields()
        if missing:
            labels = ", ".join(FORM_LABELS[name] for name in missing)
            return replace(state, error=f"Required: {labels}"), ()
        profile = state.to_profile()
        if state.action is FormAction.TEST:
            if state.test_status is not TestOutcome.NA:
                return state, ()
            outcome = await self._prober.probe(profile)
            error = None if outcome is TestOutcome.PASSED else "Connection failed."
            return replace(state, test_status=outcome, error=error), ()
        outcome = await self._prober.probe(profile)
        if outcome is not TestOutcome.PASSED:
            LOG.info("Submit refused, probe failed", extra={"connection": profile.name})
            return replace(state, test_status=TestOutcome.FAILED, error="Connection failed."), ()
        probed = profile.with_outcome(outcome)
        browser = await self._open_browser(probed)
        return browser, (PersistProfile(probed), RememberConnection(probed.name))

    async def _handle_picker(self, state: ConnectionPickerState, event: KeyPress) -> Transition:
        key = event.key
        if key in _BACK_KEYS:
            return HomeState(), ()
        if key in {"up", "down"} and state.profiles:
            delta = -1 if key == "up" else 1
            return replace(state, index=(state.index + delta) % len(state.profiles)), ()
        selected = state.selected
        if selected is None:
            return state, ()
        if key == "d":
            try:
                self._registry.delete(selected.name)
            except RegistryError as exc:
                return replace(state, error=str(exc)), ()
            refreshed = self._open_picker(preferred=None)
            index = min(state.index, max(len(refreshed.profiles) - 1, 0))
            return replace(refreshed, index=index), ()
        if key == "enter":
            try:
                credentials = self._registry.resolve_credentials(selected.name)
            except RegistryError as exc:
                LOG.warning("Cannot open connection", extra={"connection": selected.name, "error": str(exc)})
                return replace(state, error=str(exc)), ()
            browser = await self._open_browser(selected.with_credentials(credentials))
            return browser, (RememberConnection(selected.name),)
        return state, ()

    async def _handle_browser(self, state: TableBrowserState, event: KeyPress) -> Transition:
        key = event.key
        if key in _BACK_KEYS:
            return HomeState(), ()
        if key in {"left", "right"}:
            focus = BrowserFocus.CONTENT if state.focus is BrowserFocus.TABLES else BrowserFocus.TABLES
            return replace(state, focus=focus), ()
        if key == "r" and state.tables:
            return await self._load_table(state, state.table_index), ()
        if key not in {"up", "down"}:
            return state, ()
        delta = -1 if key == "up" else 1
        if state.focus is BrowserFocus.CONTENT:
            rows = state.content.row_count if state.content else 0
            offset = min(max(state.row_offset + delta, 0), max(rows - 1, 0))
            return replace(state, row_offset=offset), ()
        if not state.tables:
            return state, ()
        index = min(max(state.table_index + delta, 0), len(state.tables) - 1)
        if index == state.table_index:
            return state, ()
        return await self._load_table(state, index), ()

    def _open_picker(self, preferred: str | None = None) -> ConnectionPickerState:
        try:
            profiles = tuple(self._registry.list())
        except RegistryError as exc:
            LOG.error("Could not list connections", extra={"error": str(exc)})
            return ConnectionPickerState(error=str(exc))
        target = preferred if preferred is not None else self._last_connection
        index = next((idx for idx, profile in enumerate(profiles) if profile.name == target), 0)
        return ConnectionPickerState(profiles=profiles, index=index)

    async def _open_browser(self, profile: ConnectionProfile) -> TableBrowserState:
        try:
            tables = await self._introspector.list_tables(profile)
        except QueryConnectionError as exc:
            return TableBrowserState(profile=profile.with_status(ConnectionStatus.DISCONNECTED), error=str(exc))
        except QueryError as exc:
            return TableBrowserState(profile=profile.with_status(ConnectionStatus.CONNECTED), error=str(exc))
        state = TableBrowserState(profile=profile.with_status(ConnectionStatus.CONNECTED), tables=tuple(tables))
        if state.tables:
            state = await self._load_table(state, 0)
        return state

    async def _load_table(self, state: TableBrowserState, index: int) -> TableBrowserState:
        table = state.tables[index]
        try:
            content = await self._introspector.fetch_all(state.profile, table)
        except QueryConnectionError as exc:
            profile = state.profile.with_status(ConnectionStatus.DISCONNECTED)
            return replace(state, profile=profile, table_index=index, error=str(exc))
        except QueryError as exc:
            return replace(state, table_index=index, error=str(exc))
        return replace(
            state,
            profile=state.profile.with_status(ConnectionStatus.CONNECTED),
            table_index=index,
            content=content,
            content_table=table,
            row_offset=0,
            error=None,
        )

    @staticmethod
    def _edit_field(state: ConnectionFormState, edit: Callable[[str], str]) -> ConnectionFormState:
        values = list(state.values)
        values[state.focus_index] = edit(values[state.focus_index])
        return replace(state, values=tuple(values), test_status=TestOutcome.NA, error=None)

    def _notify(self) -> None:
        for listener in tuple(self._listeners):
            listener(self._state)


__all__ = ["NavigationStateMachine", "StateListener"]
