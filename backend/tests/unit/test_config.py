"""
Unit Tests - Configuration
Tests for application settings and config.
"""
import pytest
from pydantic import ValidationError

from quote_gateway.config import PROVIDER_KEY_ENV, Settings


class TestSettings:
    """Tests for Settings configuration class."""

    def test_default_app_name(self):
        settings = Settings()
        assert settings.APP_NAME == "Smart Stock Trader Quote Gateway"

    def test_api_prefix(self):
        assert Settings().API_V1_PREFIX == "/api/v1"

    def test_gateway_defaults(self):
        settings = Settings()
        assert settings.QUOTE_CACHE_TTL_SECONDS == 300
        assert settings.PROVIDER_TIMEOUT_SECONDS == 10.0
        assert settings.CACHE_SWEEP_INTERVAL_SECONDS == 3600
        assert settings.MAX_PROVIDER_ATTEMPTS == 1
        assert settings.AUTO_DISABLE_THRESHOLD == 3
        assert settings.AUTO_DISABLE_MINUTES == 30
        assert settings.RATE_LIMIT_WINDOW_HOURS == 24

    def test_storage_backend_from_env(self):
        """conftest selects the file backend."""
        assert Settings().STORAGE_BACKEND == "file"

    def test_storage_backend_validated(self):
        with pytest.raises(ValidationError):
            Settings(STORAGE_BACKEND="mongodb")

    def test_storage_backend_case_insensitive(self):
        assert Settings(STORAGE_BACKEND="REDIS").STORAGE_BACKEND == "redis"


class TestRedisUrl:
    """Tests for Redis URL assembly."""

    def test_from_parts(self):
        settings = Settings(REDIS_URL="", REDIS_HOST="cache", REDIS_PORT=6380, REDIS_DB=2, REDIS_PASSWORD="")
        assert settings.redis_url == "redis://cache:6380/2"

    def test_with_password(self):
        settings = Settings(REDIS_URL="", REDIS_HOST="cache", REDIS_PASSWORD="s3cret")
        assert settings.redis_url.startswith("redis://:s3cret@cache:")

    def test_explicit_url_wins(self):
        settings = Settings(REDIS_URL="redis://elsewhere:1/0")
        assert settings.redis_url == "redis://elsewhere:1/0"


class TestCorsOrigins:
    """Tests for CORS origin parsing."""

    def test_comma_separated(self):
        settings = Settings(CORS_ORIGINS="http://a.local, http://b.local")
        assert settings.CORS_ORIGINS == ["http://a.local", "http://b.local"]

    def test_json_list(self):
        settings = Settings(CORS_ORIGINS='["http://a.local"]')
        assert settings.CORS_ORIGINS == ["http://a.local"]


class TestProviderKeys:
    """Tests for environment credentials."""

    def test_only_non_empty_keys(self, monkeypatch):
        for env_var in PROVIDER_KEY_ENV:
            monkeypatch.delenv(env_var, raising=False)
        monkeypatch.setenv("FINNHUB_API_KEY", "fh-key")
        monkeypatch.setenv("QUANDL_API_KEY", "ndl-key")

        keys = Settings(_env_file=None).provider_api_keys()

        assert keys == {"finnhub": "fh-key", "quandl": "ndl-key"}
