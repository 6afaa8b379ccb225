"""
Runtime settings for the blueprint compiler.

Values come from the environment (or a local .env file) and fall back to
defaults that match the generated project layout.
"""

import logging
import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        parsed = int(raw)
    except ValueError:
        return default
    if parsed <= 0:
        return default
    return parsed


class Settings:
    """Settings for compilation runs and the HTTP surface"""

    # Worker pool bound for plugin generation inside one layer
    MAX_WORKERS: int = _int_from_env("DAPPFORGE_MAX_WORKERS", os.cpu_count() or 4)

    LOG_LEVEL: str = os.getenv("DAPPFORGE_LOG_LEVEL", "INFO").upper()

    # Base directories of the generated project
    FRONTEND_PATH: str = os.getenv("DAPPFORGE_FRONTEND_PATH", "apps/web")
    BACKEND_PATH: str = os.getenv("DAPPFORGE_BACKEND_PATH", "apps/api")
    CONTRACTS_PATH: str = os.getenv("DAPPFORGE_CONTRACTS_PATH", "contracts")

    CORS_ORIGIN_REGEX: Optional[str] = os.getenv(
        "DAPPFORGE_CORS_ORIGIN_REGEX",
        r"^http:\/\/localhost:\d+$|^http:\/\/127\.0\.0\.1:\d+$",
    )


settings = Settings()


def configure_logging(level: Optional[str] = None) -> None:
    """Set up root logging once for the API process or the CLI."""
    resolved = (level or settings.LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, resolved, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
