"""
Time helpers for quota math and human-readable wait messages.

All instants are timezone-aware UTC datetimes. GitHub reports reset times as
epoch seconds, and mixing naive and aware datetimes is an easy way to get
silently wrong waits.
"""

from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone

_SECOND_MS = 1000
_MINUTE_MS = 60 * _SECOND_MS
_HOUR_MS = 60 * _MINUTE_MS
_DAY_MS = 24 * _HOUR_MS


def utcnow() -> datetime:
    """Return the current instant (reads `time.time()` so tests can patch it)."""
    return datetime.fromtimestamp(time.time(), tz=timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Ensure `dt` has tzinfo; naive values are treated as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def from_epoch_seconds(value: float | int | str) -> datetime:
    """Parse an epoch-seconds value (as sent by GitHub) into a UTC datetime."""
    return datetime.fromtimestamp(float(value), tz=timezone.utc)


def millis_between(start: datetime, end: datetime) -> int:
    """Return `end - start` in whole milliseconds (may be negative)."""
    return int((end - start) / timedelta(milliseconds=1))


def _two_units(big: int, big_label: str, small: int, small_label: str) -> str:
    text = f"{big} {big_label}"
    if big < 10:
        text += f" {small} {small_label}"
    return text


def format_time_span(millis: int | float) -> str:
    """Render a duration the way console logs read it ("2 min 5 sec", "40 ms").

    Negative durations are rendered as their absolute value; callers decide
    whether a past instant means "due now".
    """
    ms = abs(int(millis))
    days, ms = divmod(ms, _DAY_MS)
    hours, ms = divmod(ms, _HOUR_MS)
    minutes, ms = divmod(ms, _MINUTE_MS)
    seconds, ms = divmod(ms, _SECOND_MS)

    if days > 0:
        return _two_units(days, "day" if days == 1 else "days", hours, "hr")
    if hours > 0:
        return _two_units(hours, "hr", minutes, "min")
    if minutes > 0:
        return _two_units(minutes, "min", seconds, "sec")
    if seconds >= 10:
        return f"{seconds} sec"
    if seconds >= 1:
        return f"{seconds}.{ms // 100} sec"
    return f"{ms} ms"
