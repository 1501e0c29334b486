"""
Service configuration read from environment variables.

Variables:
    SSFR_API_BASE_URL     — advisory service base URL
    SSFR_TIMEOUT_SECONDS  — per-layer wait ceiling (default 30)
    SSFR_QUERY_DATE       — date sent with every layer query (default 2024-07)
    ALLOWED_ORIGINS       — comma-separated CORS origins (default '*')
    PORT                  — API server port (default 3001)
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from src.ssfr.layers import DEFAULT_QUERY_DATE

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://webapi.nextgenagroadvisory.com"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_PORT = 3001


@dataclass
class AdvisoryConfig:
    """Settings for talking to the advisory service and serving requests."""
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    query_date: str = DEFAULT_QUERY_DATE
    date_overrides: Dict[str, str] = field(default_factory=dict)
    allowed_origins: List[str] = field(default_factory=lambda: ["*"])
    port: int = DEFAULT_PORT

    def __post_init__(self):
        self.base_url = self.base_url.rstrip("/")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "AdvisoryConfig":
        """Build a config from environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ

        origins = env.get("ALLOWED_ORIGINS", "")
        allowed = [o.strip() for o in origins.split(",") if o.strip()] or ["*"]

        return cls(
            base_url=env.get("SSFR_API_BASE_URL") or DEFAULT_BASE_URL,
            timeout=_read_number(env, "SSFR_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
            query_date=env.get("SSFR_QUERY_DATE") or DEFAULT_QUERY_DATE,
            allowed_origins=allowed,
            port=int(_read_number(env, "PORT", DEFAULT_PORT)),
        )


def _read_number(env, name: str, default: float) -> float:
    raw = env.get(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r; using %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%r; using %s", name, raw, default)
        return default
    return value
