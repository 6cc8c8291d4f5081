import threading

import pytest

from ghratelimit.github.endpoints import GITHUB_URL
from ghratelimit.throttle.entropy import Entropy
from ghratelimit.throttle.errors import RateLimitFetchError, RateLimitWaitInterrupted
from ghratelimit.throttle.notify import ListSink
from ghratelimit.throttle.strategies import ApiRateLimitStrategy

from conftest import count_lines


def _on_over(registry, sink, **kwargs):
    return registry.configure(sink, GITHUB_URL, strategy=ApiRateLimitStrategy.THROTTLE_ON_OVER, **kwargs)


def test_fresh_snapshot_is_reused_until_the_cache_expires(clock, snapshot, scripted_source, make_registry):
    registry = make_registry()
    sink = ListSink()
    _on_over(registry, sink)
    source = scripted_source([snapshot(5000, 5000, 3600)])

    for _ in range(100):
        registry.check_api_rate_limit(source)
    assert source.calls == 1

    clock.advance(20)
    registry.check_api_rate_limit(source)
    assert source.calls == 2
    assert clock.sleeps == []
    assert sink.lines == []


def test_on_over_sleeps_then_rechecks_once_quota_is_refreshed(clock, snapshot, scripted_source, make_registry):
    registry = make_registry()
    sink = ListSink()
    _on_over(registry, sink)
    # Reset reported in the past: wait a short window, then refetch.
    source = scripted_source([snapshot(5000, 30, -10), snapshot(5000, 5000, 3600)])

    registry.check_api_rate_limit(source)

    assert source.calls == 2
    assert sum(clock.sleeps) >= 20
    assert count_lines(sink, "Sleeping for") == 1
    assert count_lines(sink, "(220 over buffer)") == 1
    assert count_lines(sink, "Still sleeping") >= 1
    assert count_lines(sink, "refreshed earlier than expected") == 1


def test_repeated_checks_of_one_snapshot_announce_the_wait_once(clock, snapshot, make_registry):
    registry = make_registry()
    sink = ListSink()
    checker = _on_over(registry, sink)
    snap = snapshot(5000, 0, 120)

    assert checker.check_rate_limit(snap) is True
    assert checker.check_rate_limit(snap, 1) is True
    assert checker.check_rate_limit(snap, 2) is True

    assert checker.snapshot is snap
    assert count_lines(sink, "Sleeping for") == 1
    assert count_lines(sink, "Still sleeping") == 2
    assert clock.sleeps[:2] == [60.0, 60.0]


def test_full_quota_proceeds_without_messages(clock, snapshot, make_registry):
    registry = make_registry()
    sink = ListSink()
    checker = _on_over(registry, sink)
    snap = snapshot(5000, 5000, 3600)

    for attempt in range(3):
        assert checker.check_rate_limit(snap, attempt) is False
    assert checker.waiting is False
    assert sink.lines == []


def test_stale_snapshots_are_ignored_while_the_cache_is_fresh(clock, snapshot, make_registry):
    checker = _on_over(make_registry(), ListSink())
    current = snapshot(5000, 4000, 600)
    checker.check_rate_limit(current)

    checker.check_rate_limit(snapshot(5000, 4500, 300))
    assert checker.snapshot is current

    checker.check_rate_limit(snapshot(5000, 4800, 600))
    assert checker.snapshot is current

    later = snapshot(5000, 4900, 900)
    checker.check_rate_limit(later)
    assert checker.snapshot is later


def test_any_snapshot_is_accepted_after_the_cache_expires(clock, snapshot, make_registry):
    checker = _on_over(make_registry(), ListSink())
    checker.check_rate_limit(snapshot(5000, 4000, 600))
    assert checker.is_expired() is False

    clock.advance(20)
    assert checker.is_expired() is True
    earlier = snapshot(5000, 4500, 100)
    checker.check_rate_limit(earlier)
    assert checker.snapshot is earlier


def test_fetch_failures_fail_open_and_are_reported_once(clock, scripted_source, make_registry):
    registry = make_registry()
    sink = ListSink()
    _on_over(registry, sink)
    source = scripted_source([RateLimitFetchError("boom")])

    for _ in range(3):
        registry.check_api_rate_limit(source)

    assert source.calls == 3
    assert clock.sleeps == []
    assert count_lines(sink, "proceeding without throttling") == 1


def test_fetch_failure_during_a_wait_keeps_waiting_until_the_known_reset(
    clock, snapshot, scripted_source, make_registry
):
    registry = make_registry()
    sink = ListSink()
    checker = _on_over(registry, sink)
    source = scripted_source([snapshot(5000, 0, 120), RateLimitFetchError("boom")])

    registry.check_api_rate_limit(source)

    # The cached reset is still ahead after the first slice, so the wait goes on.
    assert clock.sleeps == [60.0, 60.0]
    assert source.calls == 3
    assert checker.waiting is False
    assert count_lines(sink, "Unable to determine the GitHub API quota") == 1
    assert count_lines(sink, "waiting on the last known quota") == 1
    assert count_lines(sink, "Still sleeping") == 1


def test_fetch_failure_after_the_known_reset_fails_open(clock, snapshot, scripted_source, make_registry):
    registry = make_registry(notification_interval_ms=200_000)
    sink = ListSink()
    checker = _on_over(registry, sink)
    source = scripted_source([snapshot(5000, 0, 120), RateLimitFetchError("boom")])

    registry.check_api_rate_limit(source)

    assert clock.sleeps == [120.0]
    assert checker.waiting is False
    assert count_lines(sink, "proceeding without throttling") == 1


def test_sleep_slices_are_jittered_deterministically_per_seed(clock, snapshot, make_registry):
    def slices():
        registry = make_registry(entropy=Entropy(7), jitter_ratio=0.5)
        checker = _on_over(registry, ListSink())
        before = len(clock.sleeps)
        for attempt in range(3):
            assert checker.check_rate_limit(snapshot(5000, 0, 3600), attempt) is True
        return clock.sleeps[before:]

    first = slices()
    second = slices()

    assert len(first) == 3
    assert all(60.0 <= s < 90.0 for s in first)
    assert len(set(first)) > 1
    assert first == second


def test_cancel_event_interrupts_a_wait(clock, snapshot, scripted_source, make_registry):
    registry = make_registry()
    cancel = threading.Event()
    cancel.set()
    _on_over(registry, ListSink(), cancel_event=cancel)
    source = scripted_source([snapshot(5000, 0, 120)])

    with pytest.raises(RateLimitWaitInterrupted):
        registry.check_api_rate_limit(source)
    assert issubclass(RateLimitWaitInterrupted, InterruptedError)


def test_normalize_sleeps_until_the_ideal_catches_up(clock, snapshot, scripted_source, make_registry):
    registry = make_registry()
    sink = ListSink()
    registry.configure(sink, GITHUB_URL, strategy=ApiRateLimitStrategy.THROTTLE_FOR_NORMALIZE)
    source = scripted_source([snapshot(5000, 3900, 3600)])

    registry.check_api_rate_limit(source)

    assert sum(clock.sleeps) == pytest.approx(120, abs=0.01)
    assert max(clock.sleeps) == 60.0
    assert count_lines(sink, "(100 over budget)") == 1
    assert count_lines(sink, "under budget") == 1


def test_messages_without_a_sink_go_to_the_throttle_logger(clock, snapshot, make_registry, caplog):
    checker = _on_over(make_registry(), None)
    with caplog.at_level("INFO", logger="ghratelimit.throttle"):
        checker.check_rate_limit(snapshot(5000, 0, 30))
    assert any("Sleeping for" in record.getMessage() for record in caplog.records)
