"""Logging for ``church_reports``.

Library modules log through ``get_logger("church_reports.<module>")`` and never
attach handlers of their own; until a host configures output, the package
logger only carries a ``NullHandler`` so embedding applications stay quiet.

The CLI calls :func:`configure_logging` with the level from
:class:`~church_reports.settings.ReportSettings` (``CHURCH_REPORTS_LOG_LEVEL``).
Configuring again swaps the package handler rather than stacking a second one.
"""

from __future__ import annotations

import logging
import sys
from typing import IO

PACKAGE_LOGGER = "church_reports"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_handler: logging.Handler | None = None


def level_from_name(name: str | None, default: int = logging.INFO) -> int:
    """Map a level name such as ``"debug"`` to its number; unknown names give ``default``."""

    if not name or not name.strip():
        return default
    return logging.getLevelNamesMapping().get(name.strip().upper(), default)


def configure_logging(level: int = logging.INFO, *, stream: IO[str] | None = None) -> logging.Handler:
    """Send package records at ``level`` or above to ``stream`` (stderr by default)."""

    global _handler
    logger = logging.getLogger(PACKAGE_LOGGER)
    for h in list(logger.handlers):
        if h is _handler or isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    _handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    _handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(_handler)
    logger.setLevel(level)
    # Records are handled here; the root logger would print them twice.
    logger.propagate = False
    return _handler


def get_logger(name: str) -> logging.Logger:
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if not package_logger.handlers:
        package_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["LOG_FORMAT", "PACKAGE_LOGGER", "configure_logging", "get_logger", "level_from_name"]
