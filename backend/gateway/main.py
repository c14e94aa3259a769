"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request

from backend.gateway.api.admin import router as admin_router
from backend.gateway.api.auth import router as auth_router
from backend.gateway.api.health import get_health
from backend.gateway.auth.provider import InMemoryAuthProvider
from backend.gateway.auth.types import AuthProvider, RoleLookup
from backend.gateway.config import Settings, get_settings
from backend.gateway.logging_config import configure_logging
from backend.gateway.rate_limit.core import RateLimiter
from backend.gateway.rate_limit.identity import default_identifier_strategy
from backend.gateway.rate_limit.store import InMemoryRateLimitStore, RateLimitStore
from backend.gateway.rate_limit.sweeper import ExpirySweeper
from backend.gateway.rate_limit.types import RateLimits
from backend.gateway.security.gateway import AuthGateway
from backend.gateway.security.middleware import SecurityHeadersMiddleware

logger = logging.getLogger(__name__)


def build_rate_limit_store(settings: Settings) -> RateLimitStore:
    """Create the configured rate limit backend."""
    if settings.rate_limit_backend == "redis":
        from backend.gateway.rate_limit.redis_store import RedisRateLimitStore

        return RedisRateLimitStore()
    return InMemoryRateLimitStore()


def create_app(
    settings: Settings | None = None,
    limiter: RateLimiter | None = None,
    provider: AuthProvider | None = None,
    role_lookup: RoleLookup | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Overrides the environment-derived settings.
        limiter: Shared rate limiter; built from settings when omitted.
        provider: Authentication provider; the in-memory provider when omitted.
        role_lookup: Authoritative role source; defaults to the provider,
            which must then implement ``get_role``.

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    limiter = limiter or RateLimiter(store=build_rate_limit_store(settings))
    provider = provider or InMemoryAuthProvider()
    if role_lookup is None:
        role_lookup = provider  # type: ignore[assignment]

    sweeper = ExpirySweeper(limiter, interval_s=settings.rate_limit_sweep_interval_s)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "gateway_starting",
            extra={
                "environment": settings.environment,
                "rate_limit_backend": settings.rate_limit_backend,
            },
        )
        if settings.rate_limit_backend == "memory":
            # Limiter state is per process; multi-worker deployments need redis.
            logger.warning("rate_limit_state_in_process")
        sweeper.start()
        try:
            yield
        finally:
            await sweeper.stop()

    app = FastAPI(
        title="Telehealth Auth Gateway",
        description="Admission control in front of the authentication provider",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.rate_limiter = limiter
    app.state.sweeper = sweeper
    app.state.auth_provider = provider
    app.state.role_lookup = role_lookup
    app.state.auth_gateway = AuthGateway(
        provider.handle,
        limiter,
        config=RateLimits.AUTH,
        identifier_strategy=default_identifier_strategy(settings.trust_proxy_headers),
    )

    app.add_middleware(SecurityHeadersMiddleware, settings=settings)

    @app.get("/healthz")
    async def healthz(request: Request) -> dict[str, Any]:
        """Health check endpoint."""
        result = await get_health(request.app.state.rate_limiter)
        return result.model_dump()

    app.include_router(auth_router)
    app.include_router(admin_router)

    return app


def main() -> None:
    """Run the gateway with uvicorn."""
    import uvicorn

    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
