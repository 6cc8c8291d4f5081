"""
ghratelimit CLI entrypoint.

This CLI is intended for inspecting the GitHub API quota and the throttle's view of it.
It delegates all decisions to `ghratelimit.throttle`.
"""

from __future__ import annotations

import argparse
import json
from typing import Any

from ghratelimit.config.settings import get_settings
from ghratelimit.core.logging import configure_logging
from ghratelimit.github.client import GitHubClient
from ghratelimit.throttle.config import GlobalThrottleConfig
from ghratelimit.throttle.errors import RateLimitFetchError
from ghratelimit.throttle.notify import LoggingSink
from ghratelimit.throttle.registry import CheckerRegistry
from ghratelimit.throttle.report import describe_snapshot
from ghratelimit.throttle.strategies import ApiRateLimitStrategy


def _cmd_strategies(_: argparse.Namespace) -> int:
    settings = get_settings()
    for kind in ApiRateLimitStrategy:
        marker = "*" if kind is settings.throttle.strategy else " "
        print(f"{marker} {kind.value:<22} {kind.display_name}")
    return 0


def _cmd_status(args: argparse.Namespace) -> int:
    settings = get_settings()
    client = GitHubClient(settings, api_url=args.api_url)
    try:
        snapshot = client.get_rate_limit()
    except RateLimitFetchError as exc:
        print(f"error: {exc}")
        return 1

    info = describe_snapshot(snapshot, expiration_window_ms=settings.throttle.expiration_window_ms)
    if args.json:
        print(json.dumps(info, ensure_ascii=False, indent=2))
        return 0

    print(f"API: {client.api_url}")
    print(
        f"{info['resource']}: {info['remaining']}/{info['limit']} remaining, reset in {info['reset_in']}"
    )
    print(f"  buffer={info['buffer']} burst={info['burst']} ideal={info['ideal']}")
    for name, verdict in info["verdicts"].items():
        status = "proceed" if verdict["proceed"] else f"wait until {verdict['wait_until']}"
        print(f"  - {name}: {status}")
    return 0


def _cmd_check(args: argparse.Namespace) -> int:
    settings = get_settings()
    registry = CheckerRegistry(GlobalThrottleConfig.from_settings(settings))
    client = GitHubClient(settings, api_url=args.api_url, registry=registry)
    registry.configure(LoggingSink(), client.api_url, strategy=args.strategy)
    registry.check_api_rate_limit(client)
    print(f"{client.api_url}: clear to proceed")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the ghratelimit CLI."""
    parser = argparse.ArgumentParser(prog="ghratelimit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level.")
    sub = parser.add_subparsers(dest="command", required=True)

    strat = sub.add_parser("strategies", help="List throttle strategies (* marks the configured one).")
    strat.set_defaults(func=_cmd_strategies)

    status = sub.add_parser("status", help="Show the current quota and each strategy's verdict.")
    status.add_argument("--api-url", type=str, default=None, help="Defaults to github.api_url.")
    status.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    status.set_defaults(func=_cmd_status)

    check = sub.add_parser("check", help="Run the throttle gate once (blocks while throttled).")
    check.add_argument("--api-url", type=str, default=None, help="Defaults to github.api_url.")
    check.add_argument(
        "--strategy",
        choices=[kind.value for kind in ApiRateLimitStrategy],
        default=None,
        help="Override the configured strategy for this run.",
    )
    check.set_defaults(func=_cmd_check)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m ghratelimit.cli`."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging("DEBUG" if args.verbose else None)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
