"""Pure renderers turning screen state into Rich renderables."""

from __future__ import annotations

from rich import box
from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .config import Theme
from .models import ConnectionStatus, TestOutcome
from .navigation.screens import (
    FORM_FIELDS,
    FORM_LABELS,
    HOME_ITEMS,
    REQUIRED_FIELDS,
    BrowserFocus,
    ConnectionFormState,
    ConnectionPickerState,
    FormAction,
    HomeState,
    ScreenState,
    TableBrowserState,
)

DEFAULT_VISIBLE_ROWS = 50
_BROWSER_CHROME_LINES = 8


def render_screen(state: ScreenState, theme: Theme, *, height: int | None = None) -> RenderableType:
    """Render ``state`` for a viewport ``height`` lines tall (unbounded if None)."""

    if isinstance(state, ConnectionFormState):
        return _render_form(state, theme)
    if isinstance(state, ConnectionPickerState):
        return _render_picker(state, theme)
    if isinstance(state, TableBrowserState):
        return _render_browser(state, theme, height=height)
    return _render_home(state, theme)


def describe_state(state: ScreenState) -> str:
    """One-line summary used by the status bar."""

    if isinstance(state, ConnectionFormState):
        return "Screen: New connection"
    if isinstance(state, ConnectionPickerState):
        return f"Screen: Saved connections | Connections: {len(state.profiles)}"
    if isinstance(state, TableBrowserState):
        parts = [
            "Screen: Tables",
            f"Connection: {state.profile.name}",
            f"Status: {state.profile.status.value}",
            f"Tables: {len(state.tables)}",
        ]
        if state.content is not None and state.content_table:
            parts.append(f"Showing: {state.content_table} ({state.content.row_count} rows)")
        return " | ".join(parts)
    return "Screen: Home"


def _render_home(state: HomeState, theme: Theme) -> RenderableType:
    lines = [Text("Welcome to TermTable", style="bold"), Text("")]
    for idx, item in enumerate(HOME_ITEMS):
        label = f"{idx + 1}. {item}"
        if idx == state.index:
            lines.append(Text(f"> {label}", style=theme.accent))
        else:
            lines.append(Text(f"  {label}", style=theme.muted))
    lines.append(Text(""))
    lines.append(_help("up/down select · enter open · q quit", theme))
    return Group(*lines)


def _render_form(state: ConnectionFormState, theme: Theme) -> RenderableType:
    lines = [Text("New Connection", style="bold"), Text("")]
    for idx, name in enumerate(FORM_FIELDS):
        focused = idx == state.focus_index
        value = state.values[idx]
        style = theme.focused if focused else ""
        line = Text(f"{'>' if focused else ' '} {FORM_LABELS[name]:<9}", style=style if focused else theme.muted)
        if value:
            line.append("•" * len(value) if name == "password" else value, style=style)
        else:
            placeholder = FORM_LABELS[name] if name in REQUIRED_FIELDS else f"{FORM_LABELS[name]} (optional)"
            line.append(placeholder, style=f"{theme.muted} italic")
        if focused:
            line.append("▏", style=theme.focused)
        lines.append(line)
    lines.append(Text(""))
    lines.append(_buttons(state, theme))
    if state.error:
        lines.append(Text(state.error, style=theme.error))
    lines.append(Text(""))
    lines.append(_help("tab/up/down move · left/right switch action · enter run · esc back", theme))
    return Group(*lines)


def _buttons(state: ConnectionFormState, theme: Theme) -> Text:
    submit_style = theme.muted
    test_style = theme.muted
    if state.on_action_row:
        if state.action is FormAction.SUBMIT:
            submit_style = f"bold {theme.focused}"
        else:
            test_style = f"bold {theme.focused}"
    if state.test_status is TestOutcome.PASSED:
        test_style = f"bold {theme.success}"
    elif state.test_status is TestOutcome.FAILED:
        test_style = f"bold {theme.error}"
    buttons = Text()
    buttons.append("[ Submit ]", style=submit_style)
    buttons.append(" ")
    buttons.append("[ Test ]", style=test_style)
    return buttons


def _render_picker(state: ConnectionPickerState, theme: Theme) -> RenderableType:
    lines = [Text("Choose a connection", style="bold"), Text("")]
    if not state.profiles:
        lines.append(Text("No saved connections.", style=theme.muted))
    for idx, profile in enumerate(state.profiles):
        selected = idx == state.index
        line = Text(f"{'>' if selected else ' '} {idx + 1}. {profile.name}", style=theme.accent if selected else "")
        line.append(f"  {profile.host}:{profile.port}/{profile.database}", style=theme.muted)
        lines.append(line)
    if state.error:
        lines.append(Text(""))
        lines.append(Text(state.error, style=theme.error))
    lines.append(Text(""))
    lines.append(_help("up/down select · enter open · d delete · esc back", theme))
    return Group(*lines)


def _render_browser(state: TableBrowserState, theme: Theme, *, height: int | None) -> RenderableType:
    profile = state.profile
    header = Text(f"{profile.name} / {profile.database}  ", style="bold")
    header.append(profile.status.value, style=_status_style(profile.status, theme))

    table_lines = Text()
    if not state.tables:
        table_lines.append("No tables", style=theme.muted)
    for idx, name in enumerate(state.tables):
        if idx:
            table_lines.append("\n")
        table_lines.append(name, style=theme.accent if idx == state.table_index else theme.muted)
    tables_focused = state.focus is BrowserFocus.TABLES
    sidebar = Panel(
        table_lines,
        title="Tables",
        border_style=theme.focused if tables_focused else theme.muted,
        box=box.SQUARE,
    )
    content = Panel(
        _content_table(state, theme, height=height),
        title=Text(state.content_table or ""),
        border_style=theme.muted if tables_focused else theme.focused,
        box=box.SQUARE,
    )
    layout = Table.grid(padding=(0, 1), expand=True)
    layout.add_column(width=28)
    layout.add_column(ratio=1)
    layout.add_row(sidebar, content)

    parts: list[RenderableType] = [header, Text(""), layout]
    if state.error:
        parts.append(Text(state.error, style=theme.error))
    parts.append(_help("left/right switch pane · up/down move · r reload · q back", theme))
    return Group(*parts)


def _content_table(state: TableBrowserState, theme: Theme, *, height: int | None) -> RenderableType:
    result = state.content
    if result is None:
        return Text("Nothing to show.", style=theme.muted)
    if not result.columns:
        return Text("Table has no columns.", style=theme.muted)
    visible = DEFAULT_VISIBLE_ROWS if height is None else max(height - _BROWSER_CHROME_LINES, 1)
    table = Table(box=box.SIMPLE_HEAD, header_style="bold", expand=True)
    for column in result.columns:
        table.add_column(Text(column), overflow="ellipsis", no_wrap=True)
    for row in result.rows[state.row_offset : state.row_offset + visible]:
        table.add_row(*(Text(cell) for cell in row))
    if not result.rows:
        table.caption = "0 rows"
    elif state.row_offset or len(result.rows) > visible:
        last = min(state.row_offset + visible, len(result.rows))
        table.caption = f"rows {state.row_offset + 1}-{last} of {len(result.rows)}"
    return table


def _status_style(status: ConnectionStatus, theme: Theme) -> str:
    if status is ConnectionStatus.CONNECTED:
        return theme.success
    if status is ConnectionStatus.DISCONNECTED:
        return theme.error
    return theme.muted


def _help(message: str, theme: Theme) -> Text:
    return Text(message, style=f"{theme.muted} italic")


__all__ = ["describe_state", "render_screen"]
