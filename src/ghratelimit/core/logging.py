"""
Logging configuration.

The packaged `logging.yaml` is applied with `dictConfig`; the level comes from
`app.log_level` (`GHRATELIMIT_LOG_LEVEL`) unless a caller passes one. Throttle
progress lines are emitted on the `ghratelimit.throttle` logger at INFO.
"""

from __future__ import annotations

import copy
import logging.config

from ghratelimit.config.settings import get_logging_config, get_settings


def configure_logging(level: str | None = None) -> None:
    """Apply the packaged logging config at `level` (default: the configured level)."""
    # get_logging_config() is cached; never mutate the shared dict.
    config = copy.deepcopy(get_logging_config())
    level = (level or get_settings().app.log_level).upper()

    config.setdefault("root", {})["level"] = level
    for handler in config.get("handlers", {}).values():
        handler["level"] = level
    if level == "DEBUG":
        # Let httpx request logs through.
        config.setdefault("loggers", {})["httpx"] = {"level": "DEBUG"}

    logging.config.dictConfig(config)
