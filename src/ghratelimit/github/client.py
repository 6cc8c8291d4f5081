"""
GitHub REST client used by the throttle.

This module is responsible only for:
- fetching the quota snapshot (`GET /rate_limit`, which does not consume quota),
- issuing gated JSON GETs: the calling worker's checker runs before every request,
- remembering the `X-RateLimit-*` headers of the last response.

Discovery of repositories/branches/pull requests is out of scope here.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from ghratelimit.config.settings import Settings
from ghratelimit.core.http import get_json_response
from ghratelimit.github.endpoints import normalize_api_uri
from ghratelimit.throttle.errors import RateLimitFetchError
from ghratelimit.throttle.registry import CheckerRegistry, get_registry
from ghratelimit.throttle.snapshot import CORE_RESOURCE, RateLimitSnapshot

logger = logging.getLogger(__name__)


class GitHubClient:
    """Minimal GitHub API client with quota-aware request gating."""

    def __init__(
        self,
        settings: Settings,
        *,
        api_url: str | None = None,
        registry: CheckerRegistry | None = None,
    ):
        self._settings = settings
        self._api_url = normalize_api_uri(api_url) or settings.github.api_url
        self._registry = registry
        self._last_rate_limit: RateLimitSnapshot | None = None

    @property
    def api_url(self) -> str:
        return self._api_url

    @property
    def last_rate_limit(self) -> RateLimitSnapshot | None:
        """Snapshot parsed from the most recent response headers (None before any call)."""
        return self._last_rate_limit

    @property
    def registry(self) -> CheckerRegistry:
        return self._registry if self._registry is not None else get_registry()

    @staticmethod
    def _parse_retry_after_seconds(value: str | None) -> float | None:
        if not value:
            return None
        try:
            seconds = float(value)
        except ValueError:
            return None
        return seconds if seconds >= 0 else None

    def _headers(self) -> dict[str, str]:
        headers = {"X-GitHub-Api-Version": "2022-11-28"}
        token = self._settings.github.token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _url(self, path: str) -> str:
        return f"{self._api_url}/{path.lstrip('/')}"

    def get_rate_limit(self, resource: str = CORE_RESOURCE) -> RateLimitSnapshot:
        """Fetch the current quota snapshot for `resource`.

        Raises:
            RateLimitFetchError: On HTTP/transport errors or a malformed payload.
        """
        url = self._url("rate_limit")
        try:
            payload, _ = get_json_response(
                url,
                headers=self._headers(),
                timeout_seconds=self._settings.app.http_timeout_seconds,
            )
            return RateLimitSnapshot.from_payload(payload, resource=resource)
        except httpx.HTTPStatusError as exc:
            raise RateLimitFetchError(
                f"GET {url} failed with status={exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise RateLimitFetchError(f"GET {url} failed: {exc}") from exc
        except ValueError as exc:
            raise RateLimitFetchError(f"GET {url} returned an unusable payload: {exc}") from exc

    def get_json(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        """GET JSON after the throttle gate, with simple retry/backoff for 429/transient errors."""
        retry = self._settings.github.retry
        max_attempts = int(retry.max_attempts)
        base_delay_seconds = float(retry.base_delay_seconds)
        max_delay_seconds = float(retry.max_delay_seconds)
        url = self._url(path)

        for attempt in range(max_attempts + 1):
            self.registry.check_api_rate_limit(self)
            try:
                payload, headers = get_json_response(
                    url,
                    params=params,
                    headers=self._headers(),
                    timeout_seconds=self._settings.app.http_timeout_seconds,
                )
            except httpx.HTTPStatusError as exc:
                self._record_headers(exc.response.headers)
                status = exc.response.status_code
                if status not in {429, 500, 502, 503, 504} or attempt >= max_attempts:
                    raise
                delay = min(max_delay_seconds, base_delay_seconds * (2**attempt))
                retry_after = self._parse_retry_after_seconds(exc.response.headers.get("Retry-After"))
                if retry_after is not None:
                    delay = max(delay, retry_after)
                logger.warning(
                    "GitHub request failed with status=%s; retrying in %.2fs (attempt %s/%s)",
                    status,
                    delay,
                    attempt + 1,
                    max_attempts,
                )
                time.sleep(delay)
                continue
            except httpx.TransportError:
                if attempt >= max_attempts:
                    raise
                delay = min(max_delay_seconds, base_delay_seconds * (2**attempt))
                logger.warning(
                    "GitHub transport error; retrying in %.2fs (attempt %s/%s)",
                    delay,
                    attempt + 1,
                    max_attempts,
                )
                time.sleep(delay)
                continue

            self._record_headers(headers)
            return payload

        raise RuntimeError("GitHub request failed without an exception (unexpected).")

    def _record_headers(self, headers: httpx.Headers) -> None:
        snapshot = RateLimitSnapshot.from_headers(headers)
        if snapshot is not None:
            self._last_rate_limit = snapshot
