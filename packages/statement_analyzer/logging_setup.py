"""Logging for the ``statement_analyzer`` package.

Library modules only ever call ``get_logger("statement_analyzer.<module>")``
and log short ``event:sub key=value`` messages. Entry points (the CLI, a host
application, tests) call :func:`configure_logging`, which owns the single
``StreamHandler`` on the package logger. Calling it again reconfigures that
handler in place, so a long-lived process can change level or format without
stacking handlers.

Level and format fall back to ``STATEMENT_ANALYZER_LOG_LEVEL`` and
``STATEMENT_ANALYZER_LOG_FORMAT`` (see :mod:`statement_analyzer.config`).
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

from .config import LOG_FORMAT_ENV, LOG_LEVEL_ENV

PACKAGE_LOGGER = "statement_analyzer"

# Named presets accepted wherever a format is; anything else is used verbatim.
LOG_FORMATS: dict[str, str] = {
    "default": "%(asctime)s %(name)s %(levelname)s %(message)s",
    "plain": "%(levelname)s %(message)s",
}

_handler: logging.StreamHandler | None = None


def resolve_level(level: int | str | None = None) -> int:
    """Turn ``level`` (or the env var when ``None``) into a ``logging`` level.

    Accepts ints, numeric strings and level names in any case. Raises
    ``ValueError`` for an unknown name so a typo on the command line is not
    silently read as INFO.
    """

    if level is None:
        level = os.getenv(LOG_LEVEL_ENV) or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = logging.getLevelNamesMapping().get(name)
    if numeric is None:
        raise ValueError(f"unknown log level: {level!r}")
    return numeric


def resolve_format(fmt: str | None = None) -> str:
    if fmt is None:
        fmt = os.getenv(LOG_FORMAT_ENV) or "default"
    return LOG_FORMATS.get(fmt.strip().lower(), fmt)


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> logging.Logger:
    """Install (or reconfigure) the package handler and return the package logger.

    Parameters
    ----------
    level:
        ``int`` or level name. ``None`` reads ``STATEMENT_ANALYZER_LOG_LEVEL``,
        then defaults to INFO.
    fmt:
        A preset from :data:`LOG_FORMATS` or a ``logging`` format string.
        ``None`` reads ``STATEMENT_ANALYZER_LOG_FORMAT``, then ``"default"``.
    stream:
        Handler output; the process ``sys.stderr`` at import time when omitted.
    """

    global _handler
    resolved = resolve_level(level)
    logger = logging.getLogger(PACKAGE_LOGGER)

    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    if _handler is None:
        _handler = logging.StreamHandler(stream)
        logger.addHandler(_handler)
    else:
        _handler.setStream(stream)

    _handler.setLevel(resolved)
    _handler.setFormatter(logging.Formatter(resolve_format(fmt)))
    logger.setLevel(resolved)
    # Avoid double emission via the root logger.
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name``; silent until :func:`configure_logging` runs."""

    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is None and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = [
    "LOG_FORMATS",
    "PACKAGE_LOGGER",
    "configure_logging",
    "get_logger",
    "resolve_format",
    "resolve_level",
]
