"""Configuration utilities for environment-based settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv


def load_env(dotenv_path: Optional[str] = None) -> None:
    """Load environment variables from a .env file without overriding existing values."""
    path = Path(dotenv_path or ".env")
    load_dotenv(dotenv_path=str(path), override=False)


# Default HTTP timeout towards the bakery backend (seconds)
DEFAULT_HTTP_TIMEOUT = 15.0
DEFAULT_BACKEND_URL = "https://bakery-backend-production-6fc9.up.railway.app"

# Slip upload limits
MAX_SLIP_BYTES = 5 * 1024 * 1024
MIN_SLIP_BYTES = 10_000
QR_SCAN_MAX_SIDE = 4000


@dataclass(frozen=True)
class Settings:
    """Structured configuration values for the storefront."""

    backend_base_url: str = DEFAULT_BACKEND_URL
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    # only idempotent GETs are ever retried
    get_retries: int = 2
    retry_backoff: float = 0.5
    admin_email_domain: str = "@empbakery.com"
    promptpay_id: str = "0931253748"
    max_slip_bytes: int = MAX_SLIP_BYTES
    min_slip_bytes: int = MIN_SLIP_BYTES
    qr_scan_max_side: int = QR_SCAN_MAX_SIDE
    cors_origins: Tuple[str, ...] = field(default_factory=lambda: ("*",))

    @property
    def api_base_url(self) -> str:
        return self.backend_base_url.rstrip("/")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "")
    if not raw:
        return default
    try:
        parsed = float(raw)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    if not raw:
        return default
    try:
        parsed = int(raw)
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


@lru_cache(maxsize=1)
def get_settings(dotenv_path: Optional[str] = None) -> Settings:
    """Return cached settings, ensuring environment variables are loaded once."""
    load_env(dotenv_path)
    origins = os.getenv("BAKERY_CORS_ORIGINS", "*")
    return Settings(
        backend_base_url=os.getenv("BAKERY_BACKEND_URL", DEFAULT_BACKEND_URL),
        http_timeout=_env_float("BAKERY_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
        get_retries=_env_int("BAKERY_GET_RETRIES", 2),
        retry_backoff=_env_float("BAKERY_RETRY_BACKOFF", 0.5),
        admin_email_domain=os.getenv("BAKERY_ADMIN_DOMAIN", "@empbakery.com"),
        promptpay_id=os.getenv("BAKERY_PROMPTPAY_ID", "0931253748"),
        cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()) or ("*",),
    )


__all__ = [
    "MAX_SLIP_BYTES",
    "MIN_SLIP_BYTES",
    "QR_SCAN_MAX_SIDE",
    "Settings",
    "get_settings",
    "load_env",
]
