"""
API routes (read-only).

Endpoints:
- GET `/api/throttle/strategies`: list strategy ids, display names and the configured one.
- GET `/api/throttle/config`: effective throttle configuration (token redacted).
- GET `/api/throttle/status`: current quota snapshot, quota math and per-strategy verdicts.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from ghratelimit.config.settings import get_settings
from ghratelimit.github.client import GitHubClient
from ghratelimit.throttle.config import GlobalThrottleConfig
from ghratelimit.throttle.errors import RateLimitFetchError
from ghratelimit.throttle.report import describe_snapshot
from ghratelimit.throttle.strategies import ApiRateLimitStrategy

router = APIRouter()


@router.get("/api/throttle/strategies")
def get_strategies() -> dict:
    """Return the selectable strategies (used by admin tooling)."""
    settings = get_settings()
    return {
        "selected": settings.throttle.strategy.value,
        "strategies": [
            {"id": kind.value, "display_name": kind.display_name} for kind in ApiRateLimitStrategy
        ],
    }


@router.get("/api/throttle/config")
def get_throttle_config() -> dict:
    """Return the effective throttle configuration (credentials removed)."""
    settings = get_settings()
    config = GlobalThrottleConfig.from_settings(settings)
    data = settings.model_dump(mode="json")
    data["github"].pop("token", None)
    return {
        "github": data["github"],
        "throttle": data["throttle"],
        "default_strategy": config.strategy_for(config.default_api_url).value,
        "public_endpoint": config.is_public_endpoint(config.default_api_url),
    }


@router.get("/api/throttle/status")
def get_throttle_status(api_url: str | None = None) -> dict:
    """Fetch the quota snapshot for `api_url` (default endpoint if omitted)."""
    settings = get_settings()
    client = GitHubClient(settings, api_url=api_url)
    try:
        snapshot = client.get_rate_limit()
    except RateLimitFetchError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return {
        "api_url": client.api_url,
        "snapshot": describe_snapshot(
            snapshot, expiration_window_ms=settings.throttle.expiration_window_ms
        ),
    }
