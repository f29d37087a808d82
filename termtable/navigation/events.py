"""Input events and side effects exchanged with the navigation state machine."""

from __future__ import annotations

from dataclasses import dataclass

from termtable.models import ConnectionProfile


@dataclass(frozen=True, slots=True)
class KeyPress:
    """A single key from the terminal, named the way Textual names keys."""

    key: str
    character: str | None = None

    @property
    def printable(self) -> bool:
        return bool(self.character) and self.character.isprintable()


@dataclass(frozen=True, slots=True)
class ExitApp:
    """Terminate the process."""


@dataclass(frozen=True, slots=True)
class PersistProfile:
    """Save a freshly probed profile through the registry."""

    profile: ConnectionProfile


@dataclass(frozen=True, slots=True)
class RememberConnection:
    """Record the connection most recently opened in the browser."""

    name: str


SideEffect = ExitApp | PersistProfile | RememberConnection


__all__ = ["ExitApp", "KeyPress", "PersistProfile", "RememberConnection", "SideEffect"]
