"""Process-wide logging setup for the chat server."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from huddle.config import get_settings

LOGGER_NAME = "huddle"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class LoggingConfig:
    """Configure the ``huddle`` logger hierarchy once per process."""

    _configured = False

    def __init__(self, level: Optional[str] = None) -> None:
        level_name = (level or get_settings().log_level or "INFO").upper()
        self.level = logging.getLevelName(level_name)
        if not isinstance(self.level, int):
            self.level = logging.INFO
        self._configure()

    def _configure(self) -> None:
        logger = logging.getLogger(LOGGER_NAME)
        logger.setLevel(self.level)
        if LoggingConfig._configured:
            return
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False
        LoggingConfig._configured = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the service logger, or a named child of it."""
    if not name:
        return logging.getLogger(LOGGER_NAME)
    if name.startswith(LOGGER_NAME):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")
