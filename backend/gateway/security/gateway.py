"""Admission-control gateway around the authentication provider's handlers.

Every request runs through an ordered chain of stages::

    identify -> rate_limit -> delegate -> annotate -> log

Each stage takes the request and a ``GatewayContext`` and returns the
updated context. A rejection in ``rate_limit`` sets the response on the
context; later stages see it and skip their work, so the provider handler is
never invoked for a rejected request.

OAuth callback paths (``/callback/`` anywhere in the path) bypass the
limiter entirely. Their attempt budget is spent at the identity provider's
login page, and a user cannot replay a third-party redirect by hand.
"""

import logging
import math
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from fastapi import status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import Response

from backend.gateway.rate_limit.core import RateLimiter
from backend.gateway.rate_limit.identity import (
    UNKNOWN_CLIENT,
    ForwardedHeaderIdentifier,
    IdentifierStrategy,
)
from backend.gateway.rate_limit.types import RateLimitConfig, RateLimitResult, RateLimits

logger = logging.getLogger(__name__)

CALLBACK_MARKER = "/callback/"
REJECTION_MESSAGE = "Too many attempts. Please try again later."

Handler = Callable[[Request], Awaitable[Response]]


@dataclass
class GatewayContext:
    """Per-request state threaded through the stage chain."""

    identifier: str = UNKNOWN_CLIENT
    path: str = ""
    method: str = ""
    is_callback: bool = False
    started_at: float = field(default_factory=time.perf_counter)
    admission: RateLimitResult | None = None
    rejected: bool = False
    response: Response | None = None

    @property
    def duration_ms(self) -> int:
        return int((time.perf_counter() - self.started_at) * 1000)


Stage = Callable[[Request, GatewayContext], Awaitable[GatewayContext]]


def is_callback_path(path: str) -> bool:
    """Whether a path is an OAuth provider redirect."""
    return CALLBACK_MARKER in path


def retry_after_seconds(reset_at: datetime, now: datetime) -> int:
    """Whole seconds until ``reset_at``, rounded up and at least 1."""
    return max(1, math.ceil((reset_at - now).total_seconds()))


def rate_limit_headers(config: RateLimitConfig, result: RateLimitResult) -> dict[str, str]:
    """The X-RateLimit-* headers describing a window."""
    return {
        "X-RateLimit-Limit": str(config.max_requests),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset_time_ms),
    }


def rejection_response(config: RateLimitConfig, result: RateLimitResult, now: datetime) -> JSONResponse:
    """Build the 429 returned when a client has spent its budget."""
    headers = rate_limit_headers(config, result)
    headers["X-RateLimit-Remaining"] = "0"
    headers["Retry-After"] = str(retry_after_seconds(result.reset_at, now))

    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "error": config.message or REJECTION_MESSAGE,
            "resetTime": result.reset_at.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        },
        headers=headers,
    )


class AuthGateway:
    """Wraps a provider handler with rate limiting, headers and logging.

    The wrapped gateway is itself a handler with the same shape, so it can be
    mounted wherever the bare handler would have been.
    """

    def __init__(
        self,
        handler: Handler,
        limiter: RateLimiter,
        config: RateLimitConfig = RateLimits.AUTH,
        identifier_strategy: IdentifierStrategy | None = None,
    ) -> None:
        self.handler = handler
        self.limiter = limiter
        self.config = config
        self.identifier_strategy = identifier_strategy or ForwardedHeaderIdentifier()
        self.stages: Sequence[Stage] = (
            self.identify,
            self.rate_limit,
            self.delegate,
            self.annotate,
            self.log,
        )

    async def __call__(self, request: Request) -> Response:
        context = GatewayContext()
        for stage in self.stages:
            context = await stage(request, context)

        if context.response is None:
            raise RuntimeError(f"Gateway produced no response for {context.method} {context.path}")
        return context.response

    async def identify(self, request: Request, context: GatewayContext) -> GatewayContext:
        context.identifier = self.identifier_strategy(request)
        context.path = request.url.path
        context.method = request.method
        context.is_callback = is_callback_path(context.path)
        return context

    async def rate_limit(self, request: Request, context: GatewayContext) -> GatewayContext:
        if context.is_callback:
            return context

        # Store backends may do network I/O; keep it off the event loop
        result = await run_in_threadpool(self.limiter.check, context.identifier, self.config)
        context.admission = result
        if not result.allowed:
            context.rejected = True
            context.response = rejection_response(self.config, result, self.limiter.now())
        return context

    async def delegate(self, request: Request, context: GatewayContext) -> GatewayContext:
        if context.rejected:
            return context

        try:
            context.response = await self.handler(request)
        except Exception as e:
            logger.error(
                "auth_handler_error",
                exc_info=True,
                extra={
                    "path": context.path,
                    "method": context.method,
                    "is_callback": context.is_callback,
                    "error": repr(e),
                },
            )
            raise
        return context

    async def annotate(self, request: Request, context: GatewayContext) -> GatewayContext:
        if context.rejected or context.is_callback or context.response is None:
            return context

        # Read-only re-query so the headers reflect the window as it stands now
        current = await run_in_threadpool(self.limiter.peek, context.identifier, self.config)
        context.response.headers.update(rate_limit_headers(self.config, current))
        return context

    async def log(self, request: Request, context: GatewayContext) -> GatewayContext:
        if context.rejected:
            logger.warning(
                "rate_limit_exceeded",
                extra={
                    "identifier": context.identifier,
                    "path": context.path,
                    "method": context.method,
                },
            )
            return context

        logger.info(
            "auth_request",
            extra={
                "method": context.method,
                "path": context.path,
                "status_code": context.response.status_code if context.response else None,
                "duration_ms": context.duration_ms,
            },
        )
        return context


def with_rate_limit(
    limiter: RateLimiter,
    config: RateLimitConfig = RateLimits.AUTH,
    identifier_strategy: IdentifierStrategy | None = None,
) -> Callable[[Handler], AuthGateway]:
    """Decorator form of ``AuthGateway``.

    Usage::

        @with_rate_limit(limiter)
        async def sign_in(request: Request) -> Response:
            ...
    """

    def decorator(handler: Handler) -> AuthGateway:
        return AuthGateway(handler, limiter, config, identifier_strategy)

    return decorator
