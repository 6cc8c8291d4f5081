"""
Shared jitter source.

Many workers waiting on the same reset should not all wake up and hit the API
in the same millisecond. One `Entropy` is shared by every checker of a registry;
draws are serialized with a lock because `random.Random` instances are shared
across threads here.
"""

from __future__ import annotations

import random
import threading


class Entropy:
    """Lock-protected wrapper around `random.Random` (seedable for tests)."""

    def __init__(self, seed: int | None = None, *, rng: random.Random | None = None):
        self._rng = rng if rng is not None else random.Random(seed)
        self._lock = threading.Lock()

    def jitter_ms(self, bound_ms: int) -> int:
        """Return a random number of milliseconds in `[0, bound_ms)`."""
        if bound_ms <= 0:
            return 0
        with self._lock:
            return self._rng.randrange(int(bound_ms))

    def factor(self, ratio: float) -> float:
        """Return a multiplier in `[1, 1 + ratio)` used to stretch sleep slices."""
        if ratio <= 0:
            return 1.0
        with self._lock:
            return 1.0 + self._rng.random() * ratio
