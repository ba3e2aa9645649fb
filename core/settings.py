"""Application settings.

Reads configuration from environment variables, loading a project-level
.env file first when one exists.

Variables:
- FAKTUROWNIA_API_TOKEN: API token (required)
- FAKTUROWNIA_DOMAIN: account subdomain, e.g. "mycompany" (required)
- FAKTUROWNIA_TIMEOUT_SECONDS: per-attempt timeout (default: 30)
- FAKTUROWNIA_MAX_RETRIES: retries for 429 / 5xx / timeouts (default: 3)
- LOG_LEVEL: logging level name (default: INFO)
- LOG_JSON: "true" for JSON log lines (default: false)
- API_HOST / API_PORT: tool server bind address (default: 127.0.0.1:8000)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

ENV_PATH = Path(__file__).resolve().parents[1] / ".env"

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class AppSettings:
    """Process-wide configuration. Immutable once loaded."""
    api_token: str
    domain: str
    timeout_seconds: float = 30.0
    max_retries: int = 3
    log_level: str = "INFO"
    log_json: bool = False
    api_host: str = "127.0.0.1"
    api_port: int = 8000

    @property
    def log_level_value(self) -> int:
        level = logging.getLevelName(self.log_level.upper())
        return level if isinstance(level, int) else logging.INFO


def _parse_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _parse_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def load_settings(env: Optional[Mapping[str, str]] = None) -> AppSettings:
    """Build AppSettings from the environment.

    Args:
        env: Mapping to read instead of os.environ (the .env file is only
            loaded when reading the real environment)

    Raises:
        ValueError: If required variables are missing or malformed
    """
    if env is None:
        if ENV_PATH.exists():
            load_dotenv(ENV_PATH)
        env = os.environ

    api_token = env.get("FAKTUROWNIA_API_TOKEN", "").strip()
    domain = env.get("FAKTUROWNIA_DOMAIN", "").strip()

    missing = [
        name for name, value in (
            ("FAKTUROWNIA_API_TOKEN", api_token),
            ("FAKTUROWNIA_DOMAIN", domain),
        ) if not value
    ]
    if missing:
        raise ValueError(
            f"Required environment variables not set: {', '.join(missing)}"
        )

    timeout_seconds = _parse_float(env, "FAKTUROWNIA_TIMEOUT_SECONDS", 30.0)
    if timeout_seconds <= 0:
        raise ValueError("FAKTUROWNIA_TIMEOUT_SECONDS must be positive")

    max_retries = _parse_int(env, "FAKTUROWNIA_MAX_RETRIES", 3)
    if max_retries < 0:
        raise ValueError("FAKTUROWNIA_MAX_RETRIES must be >= 0")

    return AppSettings(
        api_token=api_token,
        domain=domain,
        timeout_seconds=timeout_seconds,
        max_retries=max_retries,
        log_level=env.get("LOG_LEVEL", "INFO"),
        log_json=env.get("LOG_JSON", "").strip().lower() in _TRUE_VALUES,
        api_host=env.get("API_HOST", "127.0.0.1"),
        api_port=_parse_int(env, "API_PORT", 8000),
    )
