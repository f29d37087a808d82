"""File logging setup; the terminal itself belongs to Textual."""

from __future__ import annotations

import logging
from pathlib import Path

from .config import AppConfig

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_HANDLER_NAME = "termtable-file"


def configure_logging(config: AppConfig) -> Path | None:
    """Attach a single file handler to the ``termtable`` logger.

    Returns the log file path, or ``None`` when the file cannot be opened
    (logging then stays unconfigured rather than writing over the UI).
    """

    logger = logging.getLogger("termtable")
    level = logging.getLevelName(config.log_level.upper())
    logger.setLevel(level if isinstance(level, int) else logging.WARNING)
    for handler in list(logger.handlers):
        if handler.get_name() == _HANDLER_NAME:
            logger.removeHandler(handler)
            handler.close()
    path = config.resolved_log_file()
    try:
        path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        handler = logging.FileHandler(path, encoding="utf-8")
    except OSError:
        logger.addHandler(logging.NullHandler())
        return None
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return path


__all__ = ["LOG_FORMAT", "configure_logging"]
