"""
Quota report.

Summarizes one snapshot the way an operator wants to read it: the raw numbers,
the quota math, and what every strategy would decide right now. Used by the CLI
`status` command and the status API.
"""

from __future__ import annotations

from typing import Any

from ghratelimit.core.time import format_time_span, millis_between, utcnow
from ghratelimit.throttle.entropy import Entropy
from ghratelimit.throttle.quota import calculate_buffer, calculate_ideal, calculate_normalized_burst
from ghratelimit.throttle.snapshot import RateLimitSnapshot
from ghratelimit.throttle.strategies import ApiRateLimitStrategy, build_strategy


def describe_snapshot(snapshot: RateLimitSnapshot, *, expiration_window_ms: int) -> dict[str, Any]:
    now = utcnow()
    # Fixed seed: the report shows representative wait targets, not live jitter.
    entropy = Entropy(0)
    verdicts: dict[str, Any] = {}
    for kind in ApiRateLimitStrategy:
        decision = build_strategy(kind, entropy, expiration_window_ms).decide(snapshot, now)
        verdicts[kind.value] = {
            "proceed": decision.proceed,
            "wait_until": decision.wait_until.isoformat() if decision.wait_until else None,
            "budget_state": decision.budget_state,
        }
    return {
        "resource": snapshot.resource,
        "limit": snapshot.limit,
        "remaining": snapshot.remaining,
        "reset_at": snapshot.reset_at.isoformat(),
        "reset_in": format_time_span(max(0, millis_between(now, snapshot.reset_at))),
        "buffer": calculate_buffer(snapshot.limit),
        "burst": calculate_normalized_burst(snapshot.limit),
        "ideal": calculate_ideal(snapshot.limit, now, snapshot.reset_at),
        "verdicts": verdicts,
    }
