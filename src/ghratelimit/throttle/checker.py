"""
Per-worker rate limit checker.

A `LocalChecker` belongs to exactly one worker thread. It owns:
- the last accepted `RateLimitSnapshot` and the instant that cache expires,
- the current wait target and what has already been announced,
- the sleep/notify loop.

Nothing here is shared between workers, so there are no locks: two workers near
the quota boundary may both proceed, each from its own view of the quota.

Cache rules:
- while the cache is fresh, a candidate whose reset is not strictly later than
  the cached one is ignored (stale or out-of-order responses),
- once the cache expires, the next candidate is accepted unconditionally.
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timedelta
from typing import Callable

from ghratelimit.core.time import format_time_span, millis_between, utcnow
from ghratelimit.throttle.entropy import Entropy
from ghratelimit.throttle.errors import RateLimitFetchError, RateLimitWaitInterrupted
from ghratelimit.throttle.notify import NotificationSink
from ghratelimit.throttle.snapshot import RateLimitSnapshot
from ghratelimit.throttle.strategies import LIMITER_PREFIX, BudgetState, ThrottleStrategy

logger = logging.getLogger(__name__)

SnapshotFetcher = Callable[[], RateLimitSnapshot]


class LocalChecker:
    """Throttle state machine for one worker (FRESH -> EXPIRED -> WAITING -> FRESH)."""

    def __init__(
        self,
        strategy: ThrottleStrategy,
        *,
        api_url: str,
        entropy: Entropy,
        sink: NotificationSink | None = None,
        expiration_window_ms: int = 65536,
        notification_interval_ms: int = 3 * 60 * 1000,
        jitter_ratio: float = 0.1,
        cancel_event: threading.Event | None = None,
    ):
        self._strategy = strategy
        self._api_url = api_url
        self._entropy = entropy
        self._sink = sink
        self._expiration_window = timedelta(milliseconds=expiration_window_ms)
        self._notification_interval = timedelta(milliseconds=notification_interval_ms)
        self._jitter_ratio = float(jitter_ratio)
        self._cancel_event = cancel_event

        self._snapshot: RateLimitSnapshot | None = None
        self._expires_at: datetime | None = None
        self._wait_until: datetime | None = None
        self._announced: RateLimitSnapshot | None = None
        self._budget_state: BudgetState | None = None
        self._fetch_failure_logged = False

    @property
    def strategy(self) -> ThrottleStrategy:
        return self._strategy

    @property
    def api_url(self) -> str:
        return self._api_url

    @property
    def snapshot(self) -> RateLimitSnapshot | None:
        return self._snapshot

    @property
    def expires_at(self) -> datetime | None:
        return self._expires_at

    @property
    def waiting(self) -> bool:
        return self._wait_until is not None

    def write_log(self, message: str) -> None:
        if self._sink is not None:
            self._sink.emit(message)
        else:
            logging.getLogger("ghratelimit.throttle").info(message)

    def is_expired(self, now: datetime | None = None) -> bool:
        if self._snapshot is None or self._expires_at is None:
            return True
        return (now or utcnow()) >= self._expires_at

    def _accept(self, candidate: RateLimitSnapshot, now: datetime) -> bool:
        cached = self._snapshot
        if cached is not None and not self.is_expired(now) and candidate.reset_at <= cached.reset_at:
            return False
        self._snapshot = candidate
        self._expires_at = now + self._expiration_window
        return True

    def _clear_wait(self) -> None:
        self._wait_until = None
        self._announced = None

    def check_rate_limit(self, candidate: RateLimitSnapshot, attempt: int = 0) -> bool:
        """Evaluate one candidate snapshot; True means "slept a slice, check again".

        Returns False once the caller may issue its API call.

        Raises:
            RateLimitWaitInterrupted: If the cancel event fires during a sleep.
        """
        now = utcnow()
        previous = self._snapshot
        accepted = self._accept(candidate, now)
        snapshot = self._snapshot
        assert snapshot is not None

        if accepted and attempt > 0 and self.waiting and previous is not None:
            if snapshot.remaining > previous.remaining or snapshot.reset_at > previous.reset_at:
                self.write_log(
                    f"{LIMITER_PREFIX}The GitHub API usage quota may have been refreshed "
                    "earlier than expected, rechecking..."
                )
                self._clear_wait()

        if self._wait_until is None or now >= self._wait_until:
            decision = self._strategy.decide(snapshot, now)
            if decision.proceed:
                if decision.messages and decision.budget_state != self._budget_state:
                    for message in decision.messages:
                        self.write_log(message)
                self._budget_state = decision.budget_state
                self._clear_wait()
                return False

            self._wait_until = decision.wait_until or now
            self._budget_state = decision.budget_state
            if self._announced is not snapshot:
                self._announced = snapshot
                for message in decision.messages:
                    self.write_log(message)
            else:
                # Same snapshot, same verdict: nothing new until the cache expires.
                assert self._expires_at is not None
                self._wait_until = max(self._wait_until, self._expires_at)
                self._still_sleeping(now)
        else:
            self._still_sleeping(now)

        self._sleep_slice(now)
        return True

    def _still_sleeping(self, now: datetime) -> None:
        assert self._wait_until is not None
        self.write_log(
            f"{LIMITER_PREFIX}Still sleeping, now only "
            f"{format_time_span(millis_between(now, self._wait_until))} remaining."
        )

    def _sleep_slice(self, now: datetime) -> None:
        assert self._wait_until is not None
        remaining = self._wait_until - now
        interval = self._notification_interval * self._entropy.factor(self._jitter_ratio)
        seconds = max(0.0, min(remaining, interval).total_seconds())
        logger.debug("Throttle sleeping %.3fs for %s", seconds, self._api_url)
        self._sleep(seconds)

    def _sleep(self, seconds: float) -> None:
        if self._cancel_event is None:
            if seconds > 0:
                time.sleep(seconds)
            return
        if self._cancel_event.wait(seconds):
            raise RateLimitWaitInterrupted(
                f"Rate limit wait for {self._api_url} was cancelled."
            )

    def check_api_rate_limit(self, fetch: SnapshotFetcher) -> None:
        """Block until the strategy allows the next API call.

        Reuses the cached snapshot while it is fresh and calls `fetch` otherwise.
        A fetch failure is treated as "quota unknown": proceed without waiting,
        unless a wait is under way and the cached snapshot has not reset yet, in
        which case the wait continues on the cached snapshot.
        """
        if not self._strategy.fetches_quota:
            return

        attempt = 0
        while True:
            if self.is_expired():
                try:
                    candidate = fetch()
                except RateLimitFetchError as exc:
                    if not self._can_wait_on_cache():
                        self._report_fetch_failure(exc, "proceeding without throttling")
                        self._clear_wait()
                        return
                    self._report_fetch_failure(exc, "waiting on the last known quota")
                    candidate = self._snapshot
            else:
                assert self._snapshot is not None
                candidate = self._snapshot
            if not self.check_rate_limit(candidate, attempt):
                return
            attempt += 1

    def _can_wait_on_cache(self) -> bool:
        return self.waiting and self._snapshot is not None and utcnow() < self._snapshot.reset_at

    def _report_fetch_failure(self, exc: Exception, action: str) -> None:
        if self._fetch_failure_logged:
            logger.debug("Rate limit fetch failed again for %s: %s", self._api_url, exc)
            return
        self._fetch_failure_logged = True
        self.write_log(
            f"{LIMITER_PREFIX}Unable to determine the GitHub API quota for {self._api_url} "
            f"({exc}); {action}."
        )
