# src/ghratelimit/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/ghratelimit/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `GITHUB_TOKEN`, `GHRATELIMIT_STRATEGY`)
- an external YAML file via `GHRATELIMIT_CONFIG_PATH`

Design rule:
- Throttle tuning knobs live in YAML, not hard-coded in the checker.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from ghratelimit.core.env import load_dotenv_if_present
from ghratelimit.github.endpoints import GITHUB_URL, normalize_api_uri
from ghratelimit.throttle.strategies import ApiRateLimitStrategy


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `ghratelimit.config`."""
    text = resources.files("ghratelimit.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "ghratelimit"
    http_timeout_seconds: float = 15
    log_level: str = "INFO"


class EndpointSettings(BaseModel):
    """One configured GitHub server, optionally pinning its own throttle strategy."""

    api_uri: str
    name: str | None = None
    rate_limit_checker: ApiRateLimitStrategy | None = None

    @field_validator("api_uri")
    @classmethod
    def _normalize(cls, value: str) -> str:
        return normalize_api_uri(value) or ""


class RetrySettings(BaseModel):
    max_attempts: int = Field(2, ge=0)
    base_delay_seconds: float = Field(1.0, ge=0)
    max_delay_seconds: float = Field(30.0, ge=0)


class GitHubSettings(BaseModel):
    api_url: str = GITHUB_URL
    token: str | None = None
    endpoints: list[EndpointSettings] = Field(default_factory=list)
    retry: RetrySettings = Field(default_factory=RetrySettings)

    @field_validator("api_url")
    @classmethod
    def _normalize_api_url(cls, value: str) -> str:
        return normalize_api_uri(value) or GITHUB_URL

    @field_validator("endpoints")
    @classmethod
    def _drop_blank_and_duplicates(cls, endpoints: list[EndpointSettings]) -> list[EndpointSettings]:
        seen: set[str] = set()
        out: list[EndpointSettings] = []
        for endpoint in endpoints:
            if not endpoint.api_uri or endpoint.api_uri in seen:
                continue
            seen.add(endpoint.api_uri)
            out.append(endpoint)
        return out

    def find_endpoint(self, api_uri: str | None) -> EndpointSettings | None:
        """Return the configured endpoint matching `api_uri` (after normalization)."""
        key = normalize_api_uri(api_uri)
        for endpoint in self.endpoints:
            if endpoint.api_uri == key:
                return endpoint
        return None


class ThrottleSettings(BaseModel):
    strategy: ApiRateLimitStrategy = ApiRateLimitStrategy.THROTTLE_FOR_NORMALIZE
    # Bounds both the snapshot cache lifetime and the jitter added to reset-aligned waits.
    expiration_window_ms: int = Field(65536, gt=0)
    # 3 minutes without visible progress and people assume the process is dead.
    notification_interval_ms: int = Field(3 * 60 * 1000, gt=0)
    jitter_ratio: float = Field(0.1, ge=0, le=1)
    entropy_seed: int | None = None


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    github: GitHubSettings = Field(default_factory=GitHubSettings)
    throttle: ThrottleSettings = Field(default_factory=ThrottleSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small.
    """
    load_dotenv_if_present()
    data = dict(data)

    log_level = os.getenv("GHRATELIMIT_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    strategy = os.getenv("GHRATELIMIT_STRATEGY")
    if strategy:
        data.setdefault("throttle", {})["strategy"] = strategy

    api_url = os.getenv("GITHUB_API_URL")
    if api_url:
        data.setdefault("github", {})["api_url"] = api_url

    token = os.getenv("GITHUB_TOKEN")
    if token:
        data.setdefault("github", {})["token"] = token

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("GHRATELIMIT_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
