"""Centralized logging helpers.

Structured DEBUG records carry their fields through ``extra=extra_context(...)``
so handlers can render them; callers guard expensive DEBUG calls with
``is_debug_enabled``.
"""
from __future__ import annotations

import logging
import os
import sys
import time
from typing import Any, Dict, Optional

from constants import Constants

_CONFIGURED = False

# Attributes every LogRecord already has; extra keys must not collide with them.
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime"}


def configure_logging(level: Optional[str] = None) -> None:
    """Install a stderr handler on the root logger once.

    The level comes from ``level``, then ``$UPGRADE_PATHS_LOG_LEVEL``, then INFO.
    """
    global _CONFIGURED  # pylint: disable=global-statement
    level_name = (level or os.environ.get(Constants.ENV_LOG_LEVEL) or "INFO").upper()
    level_value = getattr(logging, level_name, logging.INFO)
    if not isinstance(level_value, int):
        level_value = logging.INFO

    root = logging.getLogger()
    if not _CONFIGURED:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
        root.addHandler(handler)
        _CONFIGURED = True
    root.setLevel(level_value)


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records from ``logger`` would be emitted."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build an ``extra`` mapping, dropping None values and renaming reserved keys."""
    context: Dict[str, Any] = {}
    for key, value in fields.items():
        if value is None:
            continue
        if key in _RESERVED_ATTRS:
            key = f"ctx_{key}"
        context[key] = value
    return context


def safe_path(path: Optional[str]) -> Optional[str]:
    """Replace the user's home directory prefix with ``~`` for log output."""
    if not path:
        return path
    home = os.path.expanduser("~")
    if home and home != "~" and (path == home or path.startswith(home + os.sep)):
        return "~" + path[len(home):]
    return path


class Timer:
    """Context manager measuring wall-clock duration."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        self._end = None
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._end = time.perf_counter()

    def duration(self) -> float:
        """Elapsed seconds; still running timers report time so far."""
        end = self._end if self._end is not None else time.perf_counter()
        return end - self._start

    def duration_ms(self) -> int:
        return int(self.duration() * 1000)
