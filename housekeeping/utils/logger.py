"""Logging setup for the scheduler packages."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from housekeeping.utils.config import get_settings


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
ROOT_LOGGER_NAME = "housekeeping"

_configured = False


def configure_logging(level: Optional[str] = None) -> None:
    """Attach handlers to the ``housekeeping`` logger tree once per process.

    Records always go to stdout. When ``HK_LOG_FILE`` is set they are also
    appended to that file.
    """
    global _configured
    if _configured:
        return

    settings = get_settings()
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel((level or settings.log_level).upper())

    formatter = logging.Formatter(LOG_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.log_file is not None:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(settings.log_file, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    # uvicorn installs its own root handlers; avoid printing every record twice.
    root.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)
