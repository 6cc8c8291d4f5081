from datetime import datetime, timedelta, timezone

import pytest

from ghratelimit.core.time import ensure_utc, format_time_span, millis_between


@pytest.mark.parametrize(
    ("millis", "expected"),
    [
        (7, "7 ms"),
        (1500, "1.5 sec"),
        (15_000, "15 sec"),
        (65_000, "1 min 5 sec"),
        (12 * 60_000 + 30_000, "12 min"),
        (2 * 3_600_000 + 5 * 60_000, "2 hr 5 min"),
        (26 * 3_600_000, "1 day 2 hr"),
        (-65_000, "1 min 5 sec"),
    ],
)
def test_format_time_span(millis, expected):
    assert format_time_span(millis) == expected


def test_millis_between_is_signed():
    start = datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc)
    assert millis_between(start, start + timedelta(seconds=2)) == 2000
    assert millis_between(start + timedelta(seconds=2), start) == -2000


def test_ensure_utc_converts_other_zones():
    plus8 = timezone(timedelta(hours=8))
    value = ensure_utc(datetime(2026, 1, 5, 18, 0, tzinfo=plus8))
    assert value == datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc)
    assert value.utcoffset() == timedelta(0)
