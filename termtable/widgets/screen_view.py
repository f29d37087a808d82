"""Widget that renders whichever screen the state machine is on."""

from __future__ import annotations

from typing import Callable

from textual import events
from textual.widgets import Static

from termtable.config import Theme
from termtable.navigation import NavigationStateMachine, ScreenState
from termtable.render import render_screen


class ScreenView(Static):
    """Re-renders the active screen's view model on every state change."""

    DEFAULT_CSS = """
    ScreenView {
        height: 1fr;
        padding: 1 2;
    }
    """

    def __init__(self, machine: NavigationStateMachine, *, theme: Theme) -> None:
        super().__init__("", id="screen-view")
        self._machine = machine
        self._palette = theme
        self._last_state: ScreenState | None = None
        self._unsubscribe: Callable[[], None] | None = None

    async def on_mount(self) -> None:
        self._unsubscribe = self._machine.subscribe(self._handle_state)

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def on_resize(self, event: events.Resize) -> None:
        if self._last_state is not None:
            self._render_state(self._last_state)

    def _handle_state(self, state: ScreenState) -> None:
        self._last_state = state
        self._render_state(state)

    def _render_state(self, state: ScreenState) -> None:
        height = self.size.height or None
        self.update(render_screen(state, self._palette, height=height))


__all__ = ["ScreenView"]
