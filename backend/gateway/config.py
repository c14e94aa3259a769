"""Application configuration and settings."""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_BASE_DIR = Path(__file__).resolve().parents[2]
_ENV_FILE = _BASE_DIR / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE, env_file_encoding="utf-8", extra="ignore"
    )

    environment: Literal["development", "production", "test"] = Field(
        default="development",
        description="Deployment environment",
    )
    log_level: str = Field(default="INFO", description="Root log level")

    # CORS
    app_url: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origin for /api routes",
    )
    connect_src_extra: str = Field(
        default="",
        description="Extra space-separated origins for CSP connect-src",
    )

    # Rate limiting
    rate_limit_backend: Literal["memory", "redis"] = Field(
        default="memory",
        description="Where rate limit windows are stored",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    rate_limit_sweep_interval_s: float = Field(
        default=600.0,
        gt=0,
        description="Seconds between expired-window sweeps",
    )
    trust_proxy_headers: bool = Field(
        default=True,
        description="Derive client identifiers from X-Forwarded-For / X-Real-IP",
    )

    # Sessions
    session_cookie_name: str = Field(
        default="gateway.session_token",
        description="Cookie carrying the provider session token",
    )
    session_ttl_s: int = Field(
        default=60 * 60 * 24 * 30,
        gt=0,
        description="Session lifetime in seconds",
    )

    # Passwords
    password_min_length: int = Field(
        default=12, ge=8, description="Minimum password length"
    )

    @field_validator("log_level", mode="after")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        """Accept lowercase level names from the environment."""
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get application settings singleton."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
