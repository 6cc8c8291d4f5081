"""
Throttle strategies.

Each strategy is a pure decision over one `RateLimitSnapshot`: proceed now, or
wait until some instant. Strategies never sleep and never fetch; the
`LocalChecker` owns the snapshot cache and the sleep loop.

- `NoThrottle`: never waits (and never fetches quota).
- `ThrottleOnOver`: reactive; waits for the reset once the buffer is burned.
- `ThrottleForNormalize`: proactive; spreads usage evenly across the reset window.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Literal

from ghratelimit.core.time import format_time_span, millis_between
from ghratelimit.throttle.entropy import Entropy
from ghratelimit.throttle.quota import (
    RESET_WINDOW,
    calculate_buffer,
    calculate_ideal,
    calculate_normalized_burst,
)
from ghratelimit.throttle.snapshot import RateLimitSnapshot

LIMITER_PREFIX = "GitHub API Limiter: "

# Jitter bound for waits that are not aligned with the reset itself.
NORMALIZE_JITTER_MS = 1000

BudgetState = Literal["under", "over"]


class ApiRateLimitStrategy(str, Enum):
    NO_THROTTLE = "NoThrottle"
    THROTTLE_ON_OVER = "ThrottleOnOver"
    THROTTLE_FOR_NORMALIZE = "ThrottleForNormalize"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES = {
    ApiRateLimitStrategy.NO_THROTTLE: "Throttle at/near rate limit disabled",
    ApiRateLimitStrategy.THROTTLE_ON_OVER: "Throttle at/near rate limit",
    ApiRateLimitStrategy.THROTTLE_FOR_NORMALIZE: "Normalize API requests",
}


@dataclass(frozen=True)
class ThrottleDecision:
    """Outcome of one strategy evaluation."""

    proceed: bool
    wait_until: datetime | None = None
    messages: tuple[str, ...] = ()
    budget_state: BudgetState | None = None

    @classmethod
    def go(cls, *messages: str, budget_state: BudgetState | None = None) -> "ThrottleDecision":
        return cls(proceed=True, messages=tuple(messages), budget_state=budget_state)


def _due_in(now: datetime, reset_at: datetime) -> str:
    millis = millis_between(now, reset_at)
    return "due now" if millis <= 0 else f"due in {format_time_span(millis)}"


class ThrottleStrategy:
    """Base class; subclasses implement `decide`."""

    kind: ApiRateLimitStrategy
    fetches_quota = True
    hint = ""

    def __init__(self, entropy: Entropy, expiration_window_ms: int):
        self._entropy = entropy
        self._expiration_window_ms = int(expiration_window_ms)

    def decide(self, snapshot: RateLimitSnapshot, now: datetime) -> ThrottleDecision:
        raise NotImplementedError

    def _jitter(self, bound_ms: int) -> timedelta:
        return timedelta(milliseconds=self._entropy.jitter_ms(bound_ms))

    def _after_reset(self, snapshot: RateLimitSnapshot, now: datetime) -> datetime:
        # A reset already in the past means "refresh needed now", never a negative wait.
        return max(snapshot.reset_at, now) + self._jitter(self._expiration_window_ms)


class NoThrottle(ThrottleStrategy):
    kind = ApiRateLimitStrategy.NO_THROTTLE
    fetches_quota = False

    def decide(self, snapshot: RateLimitSnapshot, now: datetime) -> ThrottleDecision:
        return ThrottleDecision.go()


class ThrottleOnOver(ThrottleStrategy):
    kind = ApiRateLimitStrategy.THROTTLE_ON_OVER
    hint = (
        "API requests are restricted only when near or above the GitHub rate limit. "
        "To evenly distribute GitHub API requests instead, set throttle.strategy "
        "to ThrottleForNormalize in the settings."
    )

    def decide(self, snapshot: RateLimitSnapshot, now: datetime) -> ThrottleDecision:
        buffer = calculate_buffer(snapshot.limit)
        if snapshot.remaining > buffer:
            return ThrottleDecision.go()

        wait_until = self._after_reset(snapshot, now)
        message = (
            f"{LIMITER_PREFIX}Current quota for GitHub API usage has {snapshot.remaining} remaining "
            f"({buffer - snapshot.remaining} over buffer). Next quota of {snapshot.limit} "
            f"{_due_in(now, snapshot.reset_at)}. "
            f"Sleeping for {format_time_span(millis_between(now, wait_until))}."
        )
        return ThrottleDecision(
            proceed=False,
            wait_until=wait_until,
            messages=(message, self.hint),
            budget_state="over",
        )


class ThrottleForNormalize(ThrottleStrategy):
    kind = ApiRateLimitStrategy.THROTTLE_FOR_NORMALIZE
    hint = (
        "API requests are being evenly distributed across the rate limit window. "
        "To restrict GitHub API requests only when near or above the rate limit instead, "
        "set throttle.strategy to ThrottleOnOver in the settings."
    )

    def decide(self, snapshot: RateLimitSnapshot, now: datetime) -> ThrottleDecision:
        limit = snapshot.limit
        remaining = snapshot.remaining
        buffer = calculate_buffer(limit)
        burst = calculate_normalized_burst(limit)
        ideal = calculate_ideal(limit, now, snapshot.reset_at)
        reset_millis = millis_between(now, snapshot.reset_at)
        reset_text = "due now" if reset_millis <= 0 else f"in {format_time_span(reset_millis)}"

        if remaining >= ideal:
            if remaining < ideal + buffer:
                return ThrottleDecision.go(
                    f"{LIMITER_PREFIX}Current quota for GitHub API usage has {remaining} remaining "
                    f"({remaining - ideal} under budget). Next quota of {limit} {reset_text}.",
                    budget_state="under",
                )
            return ThrottleDecision.go()

        over = ideal - remaining
        head = (
            f"{LIMITER_PREFIX}Current quota for GitHub API usage has {remaining} remaining "
            f"({over} over budget). Next quota of {limit} {reset_text}."
        )
        span = limit - buffer - burst
        if remaining < buffer or span <= 0:
            # The buffer is burned; nothing to do but wait for the reset.
            wait_until = self._after_reset(snapshot, now)
            if reset_millis <= 0:
                tail = f" Sleeping for {format_time_span(millis_between(now, wait_until))}."
            else:
                tail = " Sleeping until reset."
        else:
            # Sleep until the ideal drops to just below what is left, keeping 10% of the buffer to spend.
            target_fraction = (remaining - buffer * 1.1) / span
            wait_until = (
                snapshot.reset_at
                - max(timedelta(0), RESET_WINDOW * target_fraction)
                + self._jitter(NORMALIZE_JITTER_MS)
            )
            wait_until = max(wait_until, now)
            tail = f" Sleeping for {format_time_span(millis_between(now, wait_until))}."

        return ThrottleDecision(
            proceed=False,
            wait_until=wait_until,
            messages=(head + tail, self.hint),
            budget_state="over",
        )


_STRATEGIES: dict[ApiRateLimitStrategy, type[ThrottleStrategy]] = {
    ApiRateLimitStrategy.NO_THROTTLE: NoThrottle,
    ApiRateLimitStrategy.THROTTLE_ON_OVER: ThrottleOnOver,
    ApiRateLimitStrategy.THROTTLE_FOR_NORMALIZE: ThrottleForNormalize,
}


def build_strategy(
    kind: ApiRateLimitStrategy | str, entropy: Entropy, expiration_window_ms: int
) -> ThrottleStrategy:
    """Instantiate the strategy class for `kind` (accepts enum values or their names)."""
    return _STRATEGIES[ApiRateLimitStrategy(kind)](entropy, expiration_window_ms)
