"""Logging for ``ledger_import``.

All modules log through ``get_logger("ledger_import.<module>")``. Output is
off (a ``NullHandler`` on the package logger) until the CLI root callback
calls :func:`configure_logging` with the ``--log-level`` value.

The level comes from, in order: the explicit value, the
``LEDGER_IMPORT_LOG_LEVEL`` environment variable, then ``INFO``. At ``DEBUG``
the logger name is included in each line so parser and ledger chatter can be
told apart from pipeline progress.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PACKAGE_LOGGER = "ledger_import"
LOG_LEVEL_ENV = "LEDGER_IMPORT_LOG_LEVEL"

_FORMAT = "%(asctime)s %(levelname)s %(message)s"
_DEBUG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_HANDLER_NAME = "ledger_import.console"


def resolve_level(value: int | str | None = None) -> int:
    """Return the numeric level for ``value``, falling back to the env var.

    Raises ``ValueError`` for a name that is not a standard level, naming the
    source (option or environment variable) in the message.
    """

    source = "log level"
    if value is None:
        value = os.getenv(LOG_LEVEL_ENV, "").strip() or None
        source = LOG_LEVEL_ENV
    if value is None:
        return logging.INFO
    if isinstance(value, int):
        return value

    name = value.strip().upper()
    if name.isdigit():
        return int(name)
    level = logging.getLevelNamesMapping().get(name)
    if level is None:
        raise ValueError(f"invalid {source} {value!r}; use DEBUG, INFO, WARNING or ERROR")
    return level


def configure_logging(
    level: int | str | None = None,
    *,
    stream: IO[str] = sys.stderr,
) -> int:
    """Install the console handler on the package logger; return the level.

    Calling it again replaces the handler installed by the previous call, so
    the last configuration wins.
    """

    resolved = resolve_level(level)
    logger = logging.getLogger(PACKAGE_LOGGER)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler) or h.get_name() == _HANDLER_NAME:
            logger.removeHandler(h)

    handler = logging.StreamHandler(stream)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        logging.Formatter(_DEBUG_FORMAT if resolved <= logging.DEBUG else _FORMAT)
    )
    logger.addHandler(handler)
    logger.setLevel(resolved)
    logger.propagate = False
    return resolved


def get_logger(name: str) -> logging.Logger:
    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    if not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "resolve_level", "LOG_LEVEL_ENV"]
