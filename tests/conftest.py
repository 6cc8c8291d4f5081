"""Pytest fixtures shared by the throttle tests."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from ghratelimit.config.settings import get_settings
from ghratelimit.github.endpoints import GITHUB_URL
from ghratelimit.throttle.config import GlobalThrottleConfig
from ghratelimit.throttle.entropy import Entropy
from ghratelimit.throttle.registry import CheckerRegistry, set_registry
from ghratelimit.throttle.snapshot import RateLimitSnapshot

T0 = 1_700_000_000.0


class FakeClock:
    """Deterministic wall clock; `sleep` advances time instead of blocking."""

    def __init__(self, start: float = T0):
        self.now = start
        self.sleeps: list[float] = []

    def time(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(float(seconds))
        self.now += float(seconds)

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def at(self, offset_seconds: float) -> datetime:
        return datetime.fromtimestamp(self.now + offset_seconds, tz=timezone.utc)


class FixedEntropy(Entropy):
    """No jitter at all, so sleep lengths are exact."""

    def jitter_ms(self, bound_ms: int) -> int:
        return 0

    def factor(self, ratio: float) -> float:
        return 1.0


def count_lines(sink, text: str) -> int:
    """How many lines emitted to a `ListSink` contain `text`."""
    return sum(1 for line in sink.lines if text in line)


class ScriptedSource:
    """Stands in for the GitHub client; returns the scripted snapshots in order (last one repeats)."""

    def __init__(self, items, api_url: str = GITHUB_URL):
        self._items = list(items)
        self.api_url = api_url
        self.calls = 0

    def get_rate_limit(self) -> RateLimitSnapshot:
        item = self._items[min(self.calls, len(self._items) - 1)]
        self.calls += 1
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def clock(monkeypatch):
    c = FakeClock()
    monkeypatch.setattr("ghratelimit.core.time.time.time", c.time)
    monkeypatch.setattr("ghratelimit.throttle.checker.time.sleep", c.sleep)
    return c


@pytest.fixture
def snapshot(clock):
    """Factory: `snapshot(limit, remaining, reset_in_seconds)` relative to the fake clock."""

    def _make(limit: int, remaining: int, reset_in: float) -> RateLimitSnapshot:
        return RateLimitSnapshot(
            limit=limit,
            remaining=remaining,
            reset_at=clock.at(reset_in),
            fetched_at=clock.at(0),
        )

    return _make


@pytest.fixture
def scripted_source():
    return ScriptedSource


@pytest.fixture
def fixed_entropy():
    return FixedEntropy()


@pytest.fixture
def make_registry():
    """Factory for registries with short, test-friendly windows and no jitter."""

    def _make(entropy: Entropy | None = None, **overrides) -> CheckerRegistry:
        values = {
            "expiration_window_ms": 20_000,
            "notification_interval_ms": 60_000,
            "jitter_ratio": 0.0,
        }
        values.update(overrides)
        return CheckerRegistry(GlobalThrottleConfig(**values), entropy=entropy or FixedEntropy())

    return _make


@pytest.fixture(autouse=True)
def _fresh_settings_and_registry():
    get_settings.cache_clear()
    set_registry(None)
    yield
    get_settings.cache_clear()
    set_registry(None)
