from datetime import datetime, timedelta, timezone

import pytest

from ghratelimit.throttle.quota import (
    MIN_BUFFER,
    calculate_buffer,
    calculate_ideal,
    calculate_normalized_burst,
    reset_progress,
)

NOW = datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc)


def test_buffer_has_a_floor_and_never_decreases():
    previous = 0
    for limit in range(1, 20_000, 7):
        buffer = calculate_buffer(limit)
        assert buffer >= MIN_BUFFER
        assert buffer >= previous
        previous = buffer


@pytest.mark.parametrize(
    ("limit", "expected"),
    [(0, 15), (200, 15), (400, 20), (1000, 50), (5000, 250)],
)
def test_buffer_values(limit, expected):
    assert calculate_buffer(limit) == expected


@pytest.mark.parametrize(
    ("limit", "expected"),
    [(30, 5), (200, 20), (400, 40), (999, 99), (1000, 200), (5000, 1000)],
)
def test_burst_is_a_step_function_of_limit(limit, expected):
    assert calculate_normalized_burst(limit) == expected


@pytest.mark.parametrize(
    ("limit", "ideals"),
    [
        (1000, [50, 237, 425, 612]),
        (400, [20, 105, 190, 275]),
        (200, [15, 56, 97, 138]),
    ],
)
def test_ideal_spreads_quota_across_the_reset_window(limit, ideals):
    for i, expected in enumerate(ideals):
        reset_at = NOW + timedelta(minutes=15 * i)
        assert calculate_ideal(limit, NOW, reset_at) == expected


def test_ideal_collapses_to_buffer_once_reset_is_due():
    assert calculate_ideal(1000, NOW, NOW) == 50
    assert calculate_ideal(1000, NOW, NOW - timedelta(seconds=30)) == 50


def test_ideal_is_clamped_to_limit_for_far_away_resets():
    assert calculate_ideal(1000, NOW, NOW + timedelta(hours=2)) == 1000


def test_ideal_never_exceeds_a_limit_smaller_than_the_buffer():
    assert calculate_ideal(10, NOW, NOW + timedelta(minutes=30)) == 10


def test_reset_progress_is_never_negative():
    assert reset_progress(NOW, NOW - timedelta(minutes=5)) == 0.0
    assert reset_progress(NOW, NOW + timedelta(minutes=30)) == pytest.approx(0.5)
