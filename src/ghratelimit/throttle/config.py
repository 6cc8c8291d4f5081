"""
Read-only throttle configuration handed to the checker registry.

Built once from `Settings`; a checker keeps the strategy it was created with
for its whole lifetime, so changing the configuration means configuring fresh
checkers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from ghratelimit.config.settings import Settings
from ghratelimit.github.endpoints import GITHUB_URL, is_public_endpoint, normalize_api_uri
from ghratelimit.throttle.strategies import ApiRateLimitStrategy


@dataclass(frozen=True)
class GlobalThrottleConfig:
    strategy: ApiRateLimitStrategy = ApiRateLimitStrategy.THROTTLE_FOR_NORMALIZE
    endpoint_overrides: Mapping[str, ApiRateLimitStrategy] = field(default_factory=dict)
    default_api_url: str = GITHUB_URL
    expiration_window_ms: int = 65536
    notification_interval_ms: int = 3 * 60 * 1000
    jitter_ratio: float = 0.1
    entropy_seed: int | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "GlobalThrottleConfig":
        overrides = {
            endpoint.api_uri: endpoint.rate_limit_checker
            for endpoint in settings.github.endpoints
            if endpoint.rate_limit_checker is not None
        }
        throttle = settings.throttle
        return cls(
            strategy=throttle.strategy,
            endpoint_overrides=overrides,
            default_api_url=settings.github.api_url,
            expiration_window_ms=throttle.expiration_window_ms,
            notification_interval_ms=throttle.notification_interval_ms,
            jitter_ratio=throttle.jitter_ratio,
            entropy_seed=throttle.entropy_seed,
        )

    def has_override(self, api_url: str | None) -> bool:
        return normalize_api_uri(api_url) in self.endpoint_overrides

    def strategy_for(self, api_url: str | None) -> ApiRateLimitStrategy:
        """Strategy configured for `api_url`: per-endpoint override, else the global one."""
        return self.endpoint_overrides.get(normalize_api_uri(api_url) or "", self.strategy)

    def is_public_endpoint(self, api_url: str | None) -> bool:
        return is_public_endpoint(api_url)
