"""
Checker registry: one `LocalChecker` per worker.

Workers are identified by an explicit handle. Without one, the checker is bound
to the calling thread through a `threading.local`, so it dies with the thread
and is never handed to a later thread. The registry lock only guards the
explicit-handle table and is never held while a checker sleeps.

Typical use, once per logical unit of work:

    configure_thread_local_checker(sink, client.api_url)
    ...
    check_api_rate_limit(client)   # before every quota-consuming request
"""

from __future__ import annotations

import logging
import threading
from typing import Hashable, Protocol

from ghratelimit.config.settings import get_settings
from ghratelimit.github.endpoints import normalize_api_uri
from ghratelimit.throttle.checker import LocalChecker
from ghratelimit.throttle.config import GlobalThrottleConfig
from ghratelimit.throttle.entropy import Entropy
from ghratelimit.throttle.notify import NotificationSink
from ghratelimit.throttle.snapshot import RateLimitSnapshot
from ghratelimit.throttle.strategies import ApiRateLimitStrategy, build_strategy

logger = logging.getLogger(__name__)


class RateLimitSource(Protocol):
    """What the registry needs from an API client."""

    @property
    def api_url(self) -> str: ...

    def get_rate_limit(self) -> RateLimitSnapshot: ...


class CheckerRegistry:
    def __init__(self, config: GlobalThrottleConfig, *, entropy: Entropy | None = None):
        self._config = config
        self._entropy = entropy if entropy is not None else Entropy(config.entropy_seed)
        self._checkers: dict[Hashable, LocalChecker] = {}
        self._local = threading.local()
        self._lock = threading.Lock()

    @property
    def config(self) -> GlobalThrottleConfig:
        return self._config

    @property
    def entropy(self) -> Entropy:
        return self._entropy

    def _lookup(self, worker: Hashable | None) -> LocalChecker | None:
        if worker is None:
            return getattr(self._local, "checker", None)
        with self._lock:
            return self._checkers.get(worker)

    def _bind(self, worker: Hashable | None, checker: LocalChecker | None) -> None:
        if worker is None:
            self._local.checker = checker
            return
        with self._lock:
            if checker is None:
                self._checkers.pop(worker, None)
            else:
                self._checkers[worker] = checker

    def _new_checker(
        self,
        kind: ApiRateLimitStrategy,
        api_url: str,
        sink: NotificationSink | None,
        cancel_event: threading.Event | None,
    ) -> LocalChecker:
        return LocalChecker(
            build_strategy(kind, self._entropy, self._config.expiration_window_ms),
            api_url=api_url,
            entropy=self._entropy,
            sink=sink,
            expiration_window_ms=self._config.expiration_window_ms,
            notification_interval_ms=self._config.notification_interval_ms,
            jitter_ratio=self._config.jitter_ratio,
            cancel_event=cancel_event,
        )

    def configure(
        self,
        sink: NotificationSink | None,
        api_url: str | None = None,
        *,
        worker: Hashable | None = None,
        strategy: ApiRateLimitStrategy | str | None = None,
        cancel_event: threading.Event | None = None,
    ) -> LocalChecker:
        """Bind a fresh checker for `worker`, discarding any previous binding and its cache.

        `strategy` pins the strategy explicitly; otherwise it comes from the configuration
        for `api_url`. NoThrottle is never honored for the public GitHub API unless an
        endpoint override says otherwise.
        """
        api_url = normalize_api_uri(api_url) or self._config.default_api_url
        kind = ApiRateLimitStrategy(strategy) if strategy is not None else self._config.strategy_for(api_url)

        substituted = (
            kind is ApiRateLimitStrategy.NO_THROTTLE
            and self._config.is_public_endpoint(api_url)
            and not self._config.has_override(api_url)
        )
        if substituted:
            kind = ApiRateLimitStrategy.THROTTLE_ON_OVER

        checker = self._new_checker(kind, api_url, sink, cancel_event)
        if substituted:
            checker.write_log(
                "GitHub throttling is disabled, which is not allowed for public GitHub usage, "
                "so ThrottleOnOver will be used instead. To configure a different rate limiting "
                "strategy, set throttle.strategy in the settings."
            )

        self._bind(worker, checker)
        logger.debug("Configured %s checker for %s", kind.value, api_url)
        return checker

    def current(self, worker: Hashable | None = None) -> LocalChecker:
        """Return the worker's checker, binding a ThrottleOnOver default if none was configured."""
        checker = self._lookup(worker)
        if checker is not None:
            return checker

        api_url = self._config.default_api_url
        checker = self.configure(
            None, api_url, worker=worker, strategy=ApiRateLimitStrategy.THROTTLE_ON_OVER
        )
        checker.write_log(
            "LocalChecker for rate limit was not set for this thread. "
            f"Configured using ThrottleOnOver with API URL '{api_url}'."
        )
        return checker

    def reset(self, worker: Hashable | None = None) -> None:
        self._bind(worker, None)

    def clear(self) -> None:
        """Drop every binding, including those of other live threads."""
        with self._lock:
            self._checkers.clear()
            self._local = threading.local()

    def check_api_rate_limit(self, source: RateLimitSource, worker: Hashable | None = None) -> None:
        """Run the calling worker's throttle gate against `source`."""
        self.current(worker).check_api_rate_limit(source.get_rate_limit)


_registry: CheckerRegistry | None = None
_registry_lock = threading.Lock()


def get_registry() -> CheckerRegistry:
    """Return the process-wide registry, building it from settings on first use."""
    global _registry
    with _registry_lock:
        if _registry is None:
            _registry = CheckerRegistry(GlobalThrottleConfig.from_settings(get_settings()))
        return _registry


def set_registry(registry: CheckerRegistry | None) -> None:
    """Replace (or drop, with None) the process-wide registry.

    Checkers bound by the previous registry are discarded with it.
    """
    global _registry
    with _registry_lock:
        previous, _registry = _registry, registry
    if previous is not None and previous is not registry:
        previous.clear()


def configure_thread_local_checker(
    sink: NotificationSink | None,
    api_url: str | None = None,
    *,
    cancel_event: threading.Event | None = None,
) -> LocalChecker:
    return get_registry().configure(sink, api_url, cancel_event=cancel_event)


def check_api_rate_limit(source: RateLimitSource) -> None:
    get_registry().check_api_rate_limit(source)


def reset_local_checker() -> None:
    get_registry().reset()
