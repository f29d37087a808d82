"""Screen navigation state machine."""

from __future__ import annotations

from .events import ExitApp, KeyPress, PersistProfile, RememberConnection, SideEffect
from .machine import NavigationStateMachine, StateListener
from .screens import (
    BrowserFocus,
    ConnectionFormState,
    ConnectionPickerState,
    FormAction,
    HomeState,
    ScreenState,
    TableBrowserState,
)

__all__ = [
    "BrowserFocus",
    "ConnectionFormState",
    "ConnectionPickerState",
    "ExitApp",
    "FormAction",
    "HomeState",
    "KeyPress",
    "NavigationStateMachine",
    "PersistProfile",
    "RememberConnection",
    "ScreenState",
    "SideEffect",
    "StateListener",
    "TableBrowserState",
]
