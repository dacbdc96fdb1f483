"""Centralized configuration for environment variables and external APIs.

This module is the single source of truth for configuration used across the
application. Import getters from here rather than calling os.getenv directly
in multiple places. Getters read the environment on every call so runtime
overrides (and tests) take effect without a reload.
"""

from __future__ import annotations

import logging
import os
from typing import Final

from dotenv import load_dotenv

# Load environment variables from .env if present
load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL: Final[str] = "http://localhost:5000/api"
DEFAULT_USER_AGENT: Final[str] = "NearbySearch/1.0"
DEFAULT_DEBOUNCE_MS: Final[int] = 300
DEFAULT_AUTOCOMPLETE_LIMIT: Final[int] = 8
DEFAULT_SETTLE_DELAY_MS: Final[int] = 1000
DEFAULT_CORS_ORIGINS: Final[list[str]] = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
]


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r; using %s", name, raw, default)
        return default
    if value < 0:
        logger.warning("Ignoring negative %s=%r; using %s", name, raw, default)
        return default
    return value


def get_api_base_url() -> str:
    """Base URL of the salon API (geocode, autocomplete, services, salons)."""
    value = os.getenv("NEARBY_API_BASE_URL", "").strip() or DEFAULT_API_BASE_URL
    return value.rstrip("/")


def get_api_user_agent() -> str:
    return os.getenv("NEARBY_USER_AGENT", "").strip() or DEFAULT_USER_AGENT


def get_suggestion_debounce_seconds() -> float:
    return _get_int("NEARBY_DEBOUNCE_MS", DEFAULT_DEBOUNCE_MS) / 1000.0


def get_autocomplete_limit() -> int:
    limit = _get_int("NEARBY_AUTOCOMPLETE_LIMIT", DEFAULT_AUTOCOMPLETE_LIMIT)
    return limit or DEFAULT_AUTOCOMPLETE_LIMIT


def get_location_settle_delay_seconds() -> float:
    return _get_int("NEARBY_SETTLE_DELAY_MS", DEFAULT_SETTLE_DELAY_MS) / 1000.0


def get_cors_origins() -> list[str]:
    raw = os.getenv("CORS_ALLOWED_ORIGINS", "")
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    return origins or list(DEFAULT_CORS_ORIGINS)


__all__ = [
    "DEFAULT_API_BASE_URL",
    "DEFAULT_USER_AGENT",
    "get_api_base_url",
    "get_api_user_agent",
    "get_autocomplete_limit",
    "get_cors_origins",
    "get_location_settle_delay_seconds",
    "get_suggestion_debounce_seconds",
]
