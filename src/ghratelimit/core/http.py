"""
HTTP helpers.

This module centralizes the minimal HTTP client logic used by the GitHub client.

Design goals:
- Small surface area (one GET that returns JSON plus response headers).
- Deterministic defaults (timeout + User-Agent + GitHub media type).
- Raise on non-2xx so callers can decide how to fail (the throttle fails open).
"""

from __future__ import annotations

from typing import Any

import httpx


DEFAULT_USER_AGENT = "ghratelimit/0.1.0 (+https://local)"
GITHUB_MEDIA_TYPE = "application/vnd.github+json"


def get_json_response(
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout_seconds: float = 15,
) -> tuple[Any, httpx.Headers]:
    """GET `url` and return `(decoded JSON, response headers)`.

    The headers are returned so callers can read `X-RateLimit-*` values.

    Raises:
        httpx.HTTPError: On transport errors or non-2xx status codes.
        ValueError: If the response body is not valid JSON.
    """
    request_headers = {"User-Agent": DEFAULT_USER_AGENT, "Accept": GITHUB_MEDIA_TYPE}
    if headers:
        request_headers.update(headers)

    with httpx.Client(timeout=timeout_seconds) as client:
        resp = client.get(url, params=params, headers=request_headers)
        resp.raise_for_status()
        return resp.json(), resp.headers
