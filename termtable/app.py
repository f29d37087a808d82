"""Textual application entry point for termtable."""

from __future__ import annotations

import logging
import sys
from functools import partial

from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.widgets import Footer, Header

from .config import AppConfig, load_config, save_config
from .errors import RegistryError, StoreError
from .introspect import TableIntrospector
from .keychain import KeyringSecretStore
from .log import configure_logging
from .metadata_store import MetadataStore
from .models import ConnectionProfile
from .navigation import (
    ExitApp,
    KeyPress,
    NavigationStateMachine,
    PersistProfile,
    RememberConnection,
    SideEffect,
)
from .prober import ConnectivityProber
from .registry import ConnectionRegistry
from .widgets import ScreenView, StatusBar

LOG = logging.getLogger(__name__)

NAVIGATION_KEYS = ("up", "down", "left", "right", "tab", "shift+tab", "enter", "escape", "backspace")


def _load_app_config() -> AppConfig:
    """Load configuration with a small wrapper for future overrides."""

    return load_config()


def build_registry(config: AppConfig) -> ConnectionRegistry:
    """Open the stores; raises ``StoreError`` if the metadata file is unusable."""

    metadata_store = MetadataStore(config.resolved_metadata_path())
    return ConnectionRegistry(KeyringSecretStore(), metadata_store)


class TermtableApp(App[None]):
    """Terminal client for browsing tables behind saved connections."""

    TITLE = "TermTable"
    CSS = """
    Screen {
        layout: vertical;
    }
    #content {
        height: 1fr;
    }
    """

    BINDINGS = [Binding("ctrl+c", "route_key('ctrl+c')", "Quit", priority=True)] + [
        Binding(key, f"route_key('{key}')", show=False, priority=True) for key in NAVIGATION_KEYS
    ]

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        registry: ConnectionRegistry | None = None,
        prober: ConnectivityProber | None = None,
        introspector: TableIntrospector | None = None,
    ) -> None:
        super().__init__()
        self._app_config = config or _load_app_config()
        self._connection_registry = registry or build_registry(self._app_config)
        self._machine = NavigationStateMachine(
            self._connection_registry,
            prober or ConnectivityProber(connect_timeout=self._app_config.connect_timeout),
            introspector
            or TableIntrospector(
                connect_timeout=self._app_config.connect_timeout,
                row_limit=self._app_config.row_limit,
            ),
            last_connection=self._app_config.last_connection,
        )

    def compose(self) -> ComposeResult:
        """Compose the root layout."""

        yield Header(show_clock=True)
        yield Container(ScreenView(self._machine, theme=self._app_config.theme), id="content")
        yield StatusBar(self._machine)
        yield Footer()

    @property
    def machine(self) -> NavigationStateMachine:
        """Expose the state machine for tests."""

        return self._machine

    @property
    def app_config(self) -> AppConfig:
        return self._app_config

    async def action_route_key(self, key: str) -> None:
        await self.route_key_press(KeyPress(key))

    async def on_key(self, event: events.Key) -> None:
        if not event.is_printable or not event.character:
            return
        event.stop()
        await self.route_key_press(KeyPress(event.key, event.character))

    async def route_key_press(self, press: KeyPress) -> None:
        """Feed one key press to the state machine and run its side effects."""

        effects = await self._machine.handle(press)
        for effect in effects:
            self.apply_effect(effect)

    def apply_effect(self, effect: SideEffect) -> None:
        if isinstance(effect, ExitApp):
            self.exit()
        elif isinstance(effect, PersistProfile):
            self.run_worker(
                partial(self.persist_profile, effect.profile),
                name=f"persist:{effect.profile.name}",
                group="persist",
                thread=True,
                exit_on_error=False,
            )
        elif isinstance(effect, RememberConnection):
            self.remember_connection(effect.name)

    def persist_profile(self, profile: ConnectionProfile) -> bool:
        """Save ``profile``; runs on a worker thread."""

        try:
            self._connection_registry.save(profile)
        except RegistryError as exc:
            LOG.exception("Failed to save connection", extra={"connection": profile.name})
            self._notify_from_worker(f"Could not save '{profile.name}': {exc}", severity="error")
            return False
        self._notify_from_worker(f"Saved connection '{profile.name}'.", severity="information")
        return True

    def remember_connection(self, name: str) -> None:
        """Persist the most recently opened connection name."""

        if self._app_config.last_connection == name:
            return
        self._app_config = self._app_config.with_last_connection(name)
        try:
            save_config(self._app_config)
        except OSError:
            LOG.exception("Failed to save config", extra={"last_connection": name})

    def _notify_from_worker(self, message: str, *, severity: str) -> None:
        if not self.is_running:
            LOG.info(message)
            return
        try:
            self.call_from_thread(self.notify, message, severity=severity, markup=False)
        except RuntimeError:
            self.notify(message, severity=severity, markup=False)


def main() -> None:
    """Invoke the Textual application."""

    config = _load_app_config()
    configure_logging(config)
    try:
        app = TermtableApp(config)
    except StoreError as exc:
        LOG.critical("Cannot open connection store", extra={"error": str(exc)})
        print(f"termtable: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
    app.run()


if __name__ == "__main__":
    main()
