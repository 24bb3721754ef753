"""Logging configuration helpers for LinkSaver."""

from __future__ import annotations

import logging
import os
from typing import Final

_DEFAULT_FORMAT: Final[str] = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_ACCESS_FORMAT: Final[str] = "%(asctime)s %(message)s"
_DEFAULT_DATEFMT: Final[str] = "%Y-%m-%d %H:%M:%S"

# Loggers that get their own console handler instead of propagating to root.
_APP_LOGGER: Final[str] = "linksaver"
_ACCESS_LOGGER: Final[str] = "linksaver.access"
_UVICORN_ACCESS_LOGGER: Final[str] = "uvicorn.access"


def resolve_level(level_name: str | None, *, default: int = logging.INFO) -> int:
    """Translate a log level name or number into a logging level."""

    if not level_name:
        return default

    value = level_name.strip()
    if value.isdigit():
        return int(value)

    numeric = getattr(logging, value.upper(), None)
    if isinstance(numeric, int):
        return numeric

    return default


def _attach_console_handler(name: str, fmt: str, level: int) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt, _DEFAULT_DATEFMT))
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger


def configure_logging(*, debug: bool = False) -> None:
    """Route LinkSaver, request and SQL logs to the console.

    ``LOG_LEVEL`` overrides the level derived from ``debug``. Request logs
    stay at INFO or above so a quiet application log still shows traffic.
    SQL statements are only logged in debug mode.
    """

    default_level = logging.DEBUG if debug else logging.INFO
    level = resolve_level(os.getenv("LOG_LEVEL"), default=default_level)

    _attach_console_handler(_APP_LOGGER, _DEFAULT_FORMAT, level)

    access_level = max(level, logging.INFO)
    _attach_console_handler(_ACCESS_LOGGER, _ACCESS_FORMAT, access_level)
    # The app already writes its own access line per request.
    logging.getLogger(_UVICORN_ACCESS_LOGGER).setLevel(logging.WARNING)

    sql_level = logging.INFO if debug else logging.WARNING
    logging.getLogger("sqlalchemy.engine").setLevel(sql_level)
