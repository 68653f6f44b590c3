"""
Daemon Configuration — Parse LOOTER_* environment variables.

Minimal config (all optional):
    LOOTER_DB=db.json
    LOOTER_HOST=127.0.0.1
    LOOTER_PORT=8080

A .env file in the working directory is loaded first, so values there
apply unless the real environment already sets them.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_DB = "db.json"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080
DEFAULT_REQUEST_TIMEOUT = 30.0


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"{name}={raw!r} is not a number, using {default}")
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"{name}={raw!r} is not an integer, using {default}")
        return default


@dataclass
class Settings:
    """Process-level settings for the daemon."""

    db_path: Path = Path(DEFAULT_DB)
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    git_timeout: Optional[float] = None  # None = wait for git forever
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "Settings":
        """Parse settings from environment variables (and .env)."""
        env_file = env_file or Path.cwd() / ".env"
        if env_file.exists():
            load_dotenv(env_file)

        git_timeout = _env_float("LOOTER_GIT_TIMEOUT", None)
        if git_timeout is not None and git_timeout <= 0:
            git_timeout = None

        request_timeout = _env_float("LOOTER_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT)
        if request_timeout is None or request_timeout <= 0:
            request_timeout = DEFAULT_REQUEST_TIMEOUT

        return cls(
            db_path=Path(os.environ.get("LOOTER_DB", "").strip() or DEFAULT_DB),
            host=os.environ.get("LOOTER_HOST", "").strip() or DEFAULT_HOST,
            port=_env_int("LOOTER_PORT", DEFAULT_PORT),
            git_timeout=git_timeout,
            request_timeout=request_timeout,
        )
