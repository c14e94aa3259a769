"""Tests for settings loading."""

import pytest
from pydantic import ValidationError

from backend.gateway.config import Settings, get_settings, reset_settings


@pytest.mark.unit
class TestSettings:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("RATE_LIMIT_BACKEND", raising=False)
        settings = Settings(_env_file=None)

        assert settings.rate_limit_backend == "memory"
        assert settings.rate_limit_sweep_interval_s == 600.0
        assert settings.trust_proxy_headers is True
        assert settings.is_production is False

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("RATE_LIMIT_BACKEND", "redis")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("ENVIRONMENT", "production")

        settings = Settings(_env_file=None)

        assert settings.rate_limit_backend == "redis"
        assert settings.log_level == "DEBUG"
        assert settings.is_production is True

    def test_rejects_unknown_backend(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, rate_limit_backend="memcached")

    def test_rejects_unknown_log_level(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="loud")

    def test_rejects_non_positive_sweep_interval(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, rate_limit_sweep_interval_s=0)

    def test_singleton(self):
        reset_settings()
        try:
            assert get_settings() is get_settings()
        finally:
            reset_settings()
