"""Widget library for the Textual UI."""

from __future__ import annotations

from .screen_view import ScreenView
from .status_bar import StatusBar

__all__ = ["ScreenView", "StatusBar"]
