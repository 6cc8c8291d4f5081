"""
Notification sinks for throttle progress messages.

A sink receives the human-readable lines a waiting worker produces ("Sleeping
for 2 min", "Still sleeping, now only 40 sec remaining.", budget updates).
Job-scoped callers pass their own sink; everything else goes to logging.
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol

logger = logging.getLogger("ghratelimit.throttle")


class NotificationSink(Protocol):
    def emit(self, message: str) -> None: ...


class LoggingSink:
    """Forward messages to a `logging.Logger` at a fixed level."""

    def __init__(self, target: logging.Logger | None = None, level: int = logging.INFO):
        self._logger = target or logger
        self._level = level

    def emit(self, message: str) -> None:
        self._logger.log(self._level, message)


class ListSink:
    """Collect messages in memory (one per job / request)."""

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._lock = threading.Lock()

    @property
    def lines(self) -> list[str]:
        with self._lock:
            return list(self._lines)

    def emit(self, message: str) -> None:
        with self._lock:
            self._lines.append(message)
