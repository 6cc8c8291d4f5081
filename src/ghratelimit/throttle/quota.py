"""
Quota math shared by the throttle strategies.

- buffer: quota we never want to spend, kept for unplanned over-use
- burst: extra slack the normalize strategy allows before throttling
- ideal: how much quota should remain right now if usage were spread evenly
  across the reset window
"""

from __future__ import annotations

from datetime import datetime, timedelta

# GitHub resets the core quota every hour.
RESET_WINDOW = timedelta(hours=1)

MIN_BUFFER = 15
BUFFER_DIVISOR = 20

# (upper limit bound exclusive, divisor, floor); the last step has no bound.
BURST_STEPS: tuple[tuple[int | None, int, int], ...] = (
    (1000, 10, 5),
    (None, 5, 200),
)


def calculate_buffer(limit: int) -> int:
    return max(MIN_BUFFER, int(limit) // BUFFER_DIVISOR)


def calculate_normalized_burst(limit: int) -> int:
    limit = int(limit)
    for bound, divisor, floor in BURST_STEPS:
        if bound is None or limit < bound:
            return max(floor, limit // divisor)
    raise AssertionError("BURST_STEPS must end with an unbounded step")


def reset_progress(now: datetime, reset_at: datetime) -> float:
    """Fraction of the reset window still ahead of `now` (0 once the reset is due)."""
    return max(0.0, (reset_at - now) / RESET_WINDOW)


def calculate_ideal(limit: int, now: datetime, reset_at: datetime) -> int:
    """Remaining quota the normalize strategy wants to see at `now`.

    Clamped to `[buffer, limit]`; collapses to `buffer` when `reset_at <= now`.
    """
    buffer = calculate_buffer(limit)
    burst = calculate_normalized_burst(limit)
    ideal = int((limit - buffer - burst) * reset_progress(now, reset_at)) + buffer
    return max(buffer, min(int(limit), ideal)) if limit >= buffer else int(limit)
