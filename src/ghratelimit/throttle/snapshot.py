"""
Rate limit snapshots.

A snapshot is the last `{limit, remaining, reset}` reported by GitHub for one
resource (`core`, `search`, `graphql`, ...). Only `core` is throttled.
Snapshots are immutable; a newer fetch supersedes an older one.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from ghratelimit.core.time import ensure_utc, from_epoch_seconds, utcnow

CORE_RESOURCE = "core"


@dataclass(frozen=True)
class RateLimitSnapshot:
    """One quota record as reported by the API."""

    limit: int
    remaining: int
    reset_at: datetime
    fetched_at: datetime
    resource: str = CORE_RESOURCE

    def __post_init__(self) -> None:
        if self.limit < 0:
            raise ValueError(f"limit must be >= 0, got {self.limit}")
        if self.remaining < 0:
            raise ValueError(f"remaining must be >= 0, got {self.remaining}")
        object.__setattr__(self, "reset_at", ensure_utc(self.reset_at))
        object.__setattr__(self, "fetched_at", ensure_utc(self.fetched_at))

    @property
    def is_core(self) -> bool:
        return self.resource == CORE_RESOURCE

    @classmethod
    def from_record(
        cls,
        record: Mapping[str, Any],
        *,
        resource: str = CORE_RESOURCE,
        fetched_at: datetime | None = None,
    ) -> "RateLimitSnapshot":
        """Build a snapshot from one `{"limit", "remaining", "reset"}` JSON record.

        Negative counts are clamped to 0.
        """
        try:
            limit = int(record["limit"])
            remaining = int(record["remaining"])
            reset_at = from_epoch_seconds(record["reset"])
        except (KeyError, TypeError, ValueError, OverflowError, OSError) as exc:
            raise ValueError(f"Malformed rate limit record for '{resource}': {record!r}") from exc
        return cls(
            limit=max(0, limit),
            remaining=max(0, remaining),
            reset_at=reset_at,
            fetched_at=fetched_at or utcnow(),
            resource=resource,
        )

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        *,
        resource: str = CORE_RESOURCE,
        fetched_at: datetime | None = None,
    ) -> "RateLimitSnapshot":
        """Parse the `GET /rate_limit` response body.

        Prefers `resources.<resource>`; falls back to the legacy top-level `rate`
        record, which always describes `core`.
        """
        if not isinstance(payload, Mapping):
            raise ValueError("Rate limit payload must be a JSON object.")
        resources = payload.get("resources")
        if isinstance(resources, Mapping) and isinstance(resources.get(resource), Mapping):
            return cls.from_record(resources[resource], resource=resource, fetched_at=fetched_at)
        rate = payload.get("rate")
        if resource == CORE_RESOURCE and isinstance(rate, Mapping):
            return cls.from_record(rate, resource=resource, fetched_at=fetched_at)
        raise ValueError(f"Rate limit payload has no '{resource}' record.")

    @classmethod
    def from_headers(
        cls, headers: Mapping[str, str], *, fetched_at: datetime | None = None
    ) -> "RateLimitSnapshot | None":
        """Parse `X-RateLimit-*` response headers; returns None when they are absent."""
        lowered = {str(k).lower(): v for k, v in headers.items()}
        keys = ("x-ratelimit-limit", "x-ratelimit-remaining", "x-ratelimit-reset")
        if not all(k in lowered for k in keys):
            return None
        resource = lowered.get("x-ratelimit-resource") or CORE_RESOURCE
        record = {
            "limit": lowered["x-ratelimit-limit"],
            "remaining": lowered["x-ratelimit-remaining"],
            "reset": lowered["x-ratelimit-reset"],
        }
        try:
            return cls.from_record(record, resource=resource, fetched_at=fetched_at)
        except ValueError:
            return None
