"""Pytest configuration and fixtures for testing."""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from backend.gateway.auth.provider import InMemoryAuthProvider
from backend.gateway.auth.types import Role
from backend.gateway.config import Settings
from backend.gateway.main import create_app
from backend.gateway.rate_limit.core import RateLimiter
from tests.helpers import STRONG_PASSWORD, FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock: FakeClock) -> RateLimiter:
    return RateLimiter(clock=clock)


@pytest.fixture
def test_settings() -> Settings:
    """Settings isolated from the developer's environment."""
    return Settings(
        _env_file=None,
        environment="test",
        app_url="http://localhost:3000",
        rate_limit_backend="memory",
    )


@pytest.fixture
def provider(clock: FakeClock, test_settings: Settings) -> InMemoryAuthProvider:
    return InMemoryAuthProvider(
        clock=clock,
        cookie_name=test_settings.session_cookie_name,
        session_ttl=timedelta(seconds=test_settings.session_ttl_s),
        secure_cookies=False,
    )


@pytest.fixture
def app(test_settings: Settings, limiter: RateLimiter, provider: InMemoryAuthProvider):
    return create_app(settings=test_settings, limiter=limiter, provider=provider)


@pytest.fixture
def test_client(app):
    """Create test client; the context manager runs the app lifespan."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def admin_user(provider: InMemoryAuthProvider):
    return provider.create_user("admin@example.com", STRONG_PASSWORD, role=Role.ADMIN, name="Admin")


@pytest.fixture
def patient_user(provider: InMemoryAuthProvider):
    return provider.create_user("patient@example.com", STRONG_PASSWORD, role=Role.PATIENT, name="Pat")
