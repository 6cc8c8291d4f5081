"""
GitHub API endpoint identity.

Endpoints are compared by their normalized API url so that
`https://API.github.com:443/` and `https://api.github.com` are the same server.
"""

from __future__ import annotations

from urllib.parse import urlsplit, urlunsplit

GITHUB_URL = "https://api.github.com"

_DEFAULT_PORTS = {"http": 80, "https": 443}


def normalize_api_uri(api_uri: str | None) -> str | None:
    """Normalize an API url: lowercase host, drop default ports, strip trailing slash.

    Non-http(s) values are only stripped of a trailing slash.
    """
    if api_uri is None:
        return None
    value = api_uri.strip()
    try:
        parts = urlsplit(value)
        port = parts.port
    except ValueError:
        return value.rstrip("/")

    scheme = parts.scheme.lower()
    if scheme in _DEFAULT_PORTS and parts.hostname:
        host = parts.hostname.lower()
        if ":" in host:
            host = f"[{host}]"
        if port is not None and port != _DEFAULT_PORTS[scheme]:
            host = f"{host}:{port}"
        userinfo = parts.netloc.rpartition("@")[0]
        netloc = f"{userinfo}@{host}" if userinfo else host
        value = urlunsplit((scheme, netloc, parts.path, parts.query, parts.fragment))
    return value.rstrip("/")


def is_public_endpoint(api_uri: str | None) -> bool:
    """True for the multi-tenant public GitHub API shared by every installation."""
    return normalize_api_uri(api_uri) == GITHUB_URL
