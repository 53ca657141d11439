"""Configuration management for the catalog sync engine.

This module provides centralized configuration loading from environment variables.
Required secrets are cached with lru_cache; tunables are re-read on every call so
that tests can monkeypatch the environment.

Environment Variables:
    DATABASE_URL: PostgreSQL connection URL (required for the catalog store)
    CLOUDFLARE_ACCOUNT_ID: Cloudflare account owning the Stream library (required)
    CLOUDFLARE_STREAM_API_TOKEN: Stream API bearer token (required)
    STREAM_API_BASE_URL: API root (default: https://api.cloudflare.com/client/v4)
    STREAM_RATE_LIMIT_PER_SECOND: Client-side request rate (default: 4)
    STREAM_PAGE_SIZE: Remote listing page size (default: 100)
    VERIFY_TIMEOUT_SECONDS: Default upload verification budget (default: 300)
    SWEEP_DELETE_DELAY_SECONDS: Spacing between stuck-asset deletes (default: 0.5)
    STUCK_MAX_AGE_HOURS: Default stuck upload threshold (default: 1)
    RECONCILE_INTERVAL_SECONDS: Scheduled reconciliation interval (default: 900)
    RECONCILE_AUTO_CREATE: Whether the scheduled pass creates missing rows (default: false)

Usage:
    from catalog_sync.config import get_database_url, get_stream_page_size

    db_url = get_database_url()  # Raises if DATABASE_URL not set
    page_size = get_stream_page_size()
"""

import os
from functools import lru_cache

import structlog

from catalog_sync.exceptions import ConfigurationError

log = structlog.get_logger(__name__)

DEFAULT_STREAM_API_BASE_URL = "https://api.cloudflare.com/client/v4"
DEFAULT_STREAM_RATE_LIMIT = 4  # Cloudflare: 1200 requests / 5 minutes per user
DEFAULT_STREAM_PAGE_SIZE = 100
DEFAULT_VERIFY_TIMEOUT_SECONDS = 300
DEFAULT_SWEEP_DELETE_DELAY_SECONDS = 0.5
DEFAULT_STUCK_MAX_AGE_HOURS = 1.0
DEFAULT_RECONCILE_INTERVAL_SECONDS = 900


def _get_int(name: str, default: int, minimum: int, maximum: int) -> int:
    """Read an integer env var, clamped to [minimum, maximum].

    Falls back to the default (with a warning) when the value does not parse.
    """
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        log.warning("invalid_config_value", name=name, value=raw, using_default=default)
        return default
    return max(minimum, min(maximum, value))


def _get_float(name: str, default: float, minimum: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        log.warning("invalid_config_value", name=name, value=raw, using_default=default)
        return default
    return max(minimum, value)


@lru_cache
def get_database_url() -> str:
    """Get database URL from environment.

    Converts postgresql:// to postgresql+asyncpg:// for async SQLAlchemy.

    Returns:
        Database URL with asyncpg driver.

    Raises:
        ConfigurationError: If DATABASE_URL not set.
    """
    url = os.getenv("DATABASE_URL")
    if not url:
        raise ConfigurationError("DATABASE_URL environment variable is required")

    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)

    return url


@lru_cache
def get_cloudflare_account_id() -> str:
    """Get the Cloudflare account id owning the Stream library.

    Raises:
        ConfigurationError: If CLOUDFLARE_ACCOUNT_ID not set.
    """
    account_id = os.getenv("CLOUDFLARE_ACCOUNT_ID")
    if not account_id:
        raise ConfigurationError("CLOUDFLARE_ACCOUNT_ID environment variable is required")
    return account_id


@lru_cache
def get_stream_api_token() -> str:
    """Get the Cloudflare Stream API token.

    Raises:
        ConfigurationError: If CLOUDFLARE_STREAM_API_TOKEN not set.
    """
    token = os.getenv("CLOUDFLARE_STREAM_API_TOKEN")
    if not token:
        raise ConfigurationError("CLOUDFLARE_STREAM_API_TOKEN environment variable is required")
    return token


def get_stream_api_base_url() -> str:
    """Get the Stream API root URL (without trailing slash)."""
    return os.getenv("STREAM_API_BASE_URL", DEFAULT_STREAM_API_BASE_URL).rstrip("/")


def get_stream_rate_limit() -> int:
    """Get the client-side Stream request rate in requests per second (1-20)."""
    return _get_int("STREAM_RATE_LIMIT_PER_SECOND", DEFAULT_STREAM_RATE_LIMIT, 1, 20)


def get_stream_page_size() -> int:
    """Get the remote listing page size (10-1000)."""
    return _get_int("STREAM_PAGE_SIZE", DEFAULT_STREAM_PAGE_SIZE, 10, 1000)


def get_verify_timeout_seconds() -> int:
    """Get the default upload verification timeout in seconds (1-3600)."""
    return _get_int("VERIFY_TIMEOUT_SECONDS", DEFAULT_VERIFY_TIMEOUT_SECONDS, 1, 3600)


def get_sweep_delete_delay_seconds() -> float:
    """Get the delay between consecutive stuck-asset deletes.

    Keeps the sweep under the Stream API rate limit.
    """
    return _get_float("SWEEP_DELETE_DELAY_SECONDS", DEFAULT_SWEEP_DELETE_DELAY_SECONDS, 0.0)


def get_stuck_max_age_hours() -> float:
    """Get the default age (hours) after which a pending upload counts as stuck."""
    return _get_float("STUCK_MAX_AGE_HOURS", DEFAULT_STUCK_MAX_AGE_HOURS, 0.01)


def get_reconcile_interval_seconds() -> int:
    """Get the scheduled reconciliation interval in seconds.

    Note:
        Clamps value between 60 seconds and 24 hours.
    """
    return _get_int(
        "RECONCILE_INTERVAL_SECONDS", DEFAULT_RECONCILE_INTERVAL_SECONDS, 60, 86400
    )


def get_reconcile_auto_create() -> bool:
    """Whether the scheduled reconciliation pass creates missing catalog rows."""
    return os.getenv("RECONCILE_AUTO_CREATE", "").lower() in ("1", "true", "yes")


def get_log_level() -> str:
    """Get the log level name (default: INFO)."""
    return os.getenv("LOG_LEVEL", "INFO").upper()


def get_log_json() -> bool:
    """Whether logs are rendered as JSON (default: true)."""
    return os.getenv("LOG_JSON", "true").lower() not in ("0", "false", "no")
