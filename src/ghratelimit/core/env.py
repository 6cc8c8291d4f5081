"""
`.env` loading.

Developers often keep a `GITHUB_TOKEN` in a `.env` file next to their checkout,
while the CLI and the status API may be started from any subdirectory.
`GHRATELIMIT_ENV_FILE` points at an explicit file; otherwise the nearest `.env`
above the working directory is used.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)


def _locate_env_file() -> Path | None:
    explicit = os.getenv("GHRATELIMIT_ENV_FILE")
    if explicit:
        path = Path(explicit).expanduser().resolve()
        if not path.is_file():
            logger.warning("GHRATELIMIT_ENV_FILE=%s does not exist; ignoring it", path)
            return None
        return path

    found = find_dotenv(usecwd=True)
    return Path(found) if found else None


@lru_cache
def load_dotenv_if_present() -> Path | None:
    """Load the `.env` file once (cached); returns its path, or None if there is none.

    Values already set in the process environment always win.
    """
    path = _locate_env_file()
    if path is not None:
        load_dotenv(dotenv_path=path, override=False)
    return path
