"""App configuration loading helpers."""

from __future__ import annotations

from pathlib import Path

import tomllib

from pydantic import BaseModel, Field, ValidationError

CONFIG_DIR = Path.home() / ".config" / "termtable"
CONFIG_FILE = CONFIG_DIR / "config.toml"


class Theme(BaseModel):
    """Colours threaded into the renderers."""

    accent: str = "magenta"
    muted: str = "grey50"
    focused: str = "white"
    success: str = "green"
    error: str = "red"


class AppConfig(BaseModel):
    """Shape of the application configuration file."""

    theme: Theme = Field(default_factory=Theme)
    connect_timeout: float = 5.0
    row_limit: int = 1000
    metadata_path: Path | None = None
    log_level: str = "WARNING"
    log_file: Path | None = None
    last_connection: str | None = None

    def resolved_metadata_path(self) -> Path:
        return self.metadata_path or CONFIG_FILE.parent / "connections.db"

    def resolved_log_file(self) -> Path:
        return self.log_file or CONFIG_FILE.parent / "termtable.log"

    def with_last_connection(self, name: str) -> AppConfig:
        """Return a copy remembering the most recently opened connection."""

        return self.model_copy(update={"last_connection": name})

    def with_theme(self, **updates: object) -> AppConfig:
        """Return a copy with theme colours changed."""

        theme = self.theme.model_copy(update=updates)
        return self.model_copy(update={"theme": theme})


def load_config() -> AppConfig:
    """Load configuration from disk; fall back to defaults if missing."""

    try:
        data = _read_config_file()
    except FileNotFoundError:
        return AppConfig()
    except (tomllib.TOMLDecodeError, OSError):
        return AppConfig()
    try:
        return AppConfig(**data)
    except ValidationError:
        return AppConfig()


def save_config(config: AppConfig) -> None:
    """Persist configuration to disk."""

    CONFIG_FILE.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    lines: list[str] = [
        f"connect_timeout = {config.connect_timeout}",
        f"row_limit = {config.row_limit}",
        f'log_level = "{config.log_level}"',
    ]
    if config.metadata_path is not None:
        lines.append(f'metadata_path = "{_escape(str(config.metadata_path))}"')
    if config.log_file is not None:
        lines.append(f'log_file = "{_escape(str(config.log_file))}"')
    if config.last_connection:
        lines.append(f'last_connection = "{_escape(config.last_connection)}"')
    lines.append("")
    lines.append("[theme]")
    for key, value in config.theme.model_dump().items():
        lines.append(f'{key} = "{_escape(value)}"')
    CONFIG_FILE.write_text("\n".join(lines) + "\n")


def _read_config_file() -> dict[str, object]:
    with CONFIG_FILE.open("rb") as handle:
        raw = tomllib.load(handle)
    data: dict[str, object] = {}
    timeout = raw.get("connect_timeout")
    if isinstance(timeout, (int, float)) and not isinstance(timeout, bool) and timeout > 0:
        data["connect_timeout"] = float(timeout)
    row_limit = raw.get("row_limit")
    if isinstance(row_limit, int) and not isinstance(row_limit, bool) and row_limit > 0:
        data["row_limit"] = row_limit
    for key in ("metadata_path", "log_file"):
        value = raw.get(key)
        if isinstance(value, str) and value:
            data[key] = Path(value).expanduser()
    log_level = raw.get("log_level")
    if isinstance(log_level, str):
        data["log_level"] = log_level.upper()
    last_connection = raw.get("last_connection")
    if isinstance(last_connection, str):
        data["last_connection"] = last_connection
    theme = raw.get("theme")
    if isinstance(theme, dict):
        colours = {key: value for key, value in theme.items() if key in Theme.model_fields and isinstance(value, str)}
        data["theme"] = Theme(**colours)
    return data


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


__all__ = ["AppConfig", "CONFIG_FILE", "Theme", "load_config", "save_config"]
