"""Tests for catalog_sync/config.py configuration module.

This module tests:
- Required secrets (DATABASE_URL, Stream credentials)
- Default value handling for tunables
- Clamping and invalid value fallback
"""

import pytest

from catalog_sync.config import (
    get_cloudflare_account_id,
    get_database_url,
    get_log_json,
    get_reconcile_auto_create,
    get_reconcile_interval_seconds,
    get_stream_api_base_url,
    get_stream_api_token,
    get_stream_page_size,
    get_stream_rate_limit,
    get_stuck_max_age_hours,
    get_sweep_delete_delay_seconds,
    get_verify_timeout_seconds,
)
from catalog_sync.exceptions import ConfigurationError


class TestGetDatabaseUrl:
    """Tests for get_database_url function."""

    def test_converts_postgresql_to_asyncpg(self, monkeypatch: pytest.MonkeyPatch):
        """[P0] Should rewrite postgresql:// for the asyncpg driver."""
        # GIVEN: A plain PostgreSQL URL
        monkeypatch.setenv("DATABASE_URL", "postgresql://user:pw@db:5432/catalog")

        # WHEN: Reading the URL
        result = get_database_url()

        # THEN: The asyncpg driver is selected
        assert result == "postgresql+asyncpg://user:pw@db:5432/catalog"

    def test_keeps_explicit_driver(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///catalog.db")

        assert get_database_url() == "sqlite+aiosqlite:///catalog.db"

    def test_raises_when_missing(self, monkeypatch: pytest.MonkeyPatch):
        """[P0] Should raise ConfigurationError when DATABASE_URL is not set."""
        monkeypatch.delenv("DATABASE_URL", raising=False)

        with pytest.raises(ConfigurationError, match="DATABASE_URL"):
            get_database_url()


class TestStreamCredentials:
    """Tests for Cloudflare Stream credential loading."""

    def test_returns_credentials(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("CLOUDFLARE_ACCOUNT_ID", "acc123")
        monkeypatch.setenv("CLOUDFLARE_STREAM_API_TOKEN", "token")

        assert get_cloudflare_account_id() == "acc123"
        assert get_stream_api_token() == "token"

    def test_missing_token_raises(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("CLOUDFLARE_STREAM_API_TOKEN", raising=False)

        with pytest.raises(ConfigurationError, match="CLOUDFLARE_STREAM_API_TOKEN"):
            get_stream_api_token()

    def test_base_url_strips_trailing_slash(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("STREAM_API_BASE_URL", "http://localhost:8787/client/v4/")

        assert get_stream_api_base_url() == "http://localhost:8787/client/v4"


class TestTunables:
    """Tests for numeric settings with defaults and clamping."""

    @pytest.mark.parametrize(
        "getter,expected",
        [
            (get_stream_rate_limit, 4),
            (get_stream_page_size, 100),
            (get_verify_timeout_seconds, 300),
            (get_sweep_delete_delay_seconds, 0.5),
            (get_stuck_max_age_hours, 1.0),
            (get_reconcile_interval_seconds, 900),
        ],
    )
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch, getter, expected):
        for name in (
            "STREAM_RATE_LIMIT_PER_SECOND",
            "STREAM_PAGE_SIZE",
            "VERIFY_TIMEOUT_SECONDS",
            "SWEEP_DELETE_DELAY_SECONDS",
            "STUCK_MAX_AGE_HOURS",
            "RECONCILE_INTERVAL_SECONDS",
        ):
            monkeypatch.delenv(name, raising=False)

        assert getter() == expected

    def test_values_are_clamped(self, monkeypatch: pytest.MonkeyPatch):
        """[P1] Out-of-range values are clamped to the allowed range."""
        monkeypatch.setenv("STREAM_PAGE_SIZE", "5000")
        monkeypatch.setenv("RECONCILE_INTERVAL_SECONDS", "5")
        monkeypatch.setenv("STREAM_RATE_LIMIT_PER_SECOND", "0")

        assert get_stream_page_size() == 1000
        assert get_reconcile_interval_seconds() == 60
        assert get_stream_rate_limit() == 1

    def test_invalid_value_falls_back_to_default(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("VERIFY_TIMEOUT_SECONDS", "five minutes")
        monkeypatch.setenv("STUCK_MAX_AGE_HOURS", "soon")

        assert get_verify_timeout_seconds() == 300
        assert get_stuck_max_age_hours() == 1.0

    @pytest.mark.parametrize("raw,expected", [("true", True), ("1", True), ("no", False), ("", False)])
    def test_reconcile_auto_create(self, monkeypatch: pytest.MonkeyPatch, raw, expected):
        monkeypatch.setenv("RECONCILE_AUTO_CREATE", raw)

        assert get_reconcile_auto_create() is expected

    def test_log_json_can_be_disabled(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("LOG_JSON", "false")

        assert get_log_json() is False
