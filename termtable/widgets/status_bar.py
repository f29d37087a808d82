"""Status bar widget that mirrors the navigation state."""

from __future__ import annotations

from typing import Callable

from rich.text import Text
from textual.widgets import Static

from termtable.navigation import NavigationStateMachine, ScreenState
from termtable.render import describe_state


class StatusBar(Static):
    """Compact status strip rendered above Textual's footer."""

    DEFAULT_CSS = """
    StatusBar {
        height: 1;
        padding: 0 1;
        background: $surface-darken-3;
        color: $text;
    }
    """

    def __init__(self, machine: NavigationStateMachine) -> None:
        super().__init__("", id="status-bar")
        self._machine = machine
        self._unsubscribe: Callable[[], None] | None = None

    async def on_mount(self) -> None:
        self._unsubscribe = self._machine.subscribe(self._handle_state)

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def _handle_state(self, state: ScreenState) -> None:
        self.update(Text(describe_state(state)))


__all__ = ["StatusBar"]
