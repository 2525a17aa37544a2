"""
Runtime configuration from the process environment (and .env, if present).
"""

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def _env_number(key: str, default, cast):
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning(f"Invalid {key}={raw!r}; using default of {default}")
        return default


@dataclass(frozen=True)
class Settings:
    backend_url: str = ""
    backend_timeout: float = 30.0
    host: str = "0.0.0.0"
    port: int = 10000
    log_level: str = "INFO"


def load_settings() -> Settings:
    load_dotenv()
    return Settings(
        backend_url=os.getenv("STUDYOS_BACKEND_URL", "").strip(),
        backend_timeout=_env_number("STUDYOS_BACKEND_TIMEOUT", 30.0, float),
        host=os.getenv("HOST", "0.0.0.0"),
        port=_env_number("PORT", 10000, int),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
