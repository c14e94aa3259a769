"""Security headers middleware."""

from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from backend.gateway.config import Settings, get_settings

API_PREFIX = "/api/"


def build_security_headers(settings: Settings) -> dict[str, str]:
    """Headers applied to every response."""
    connect_src = ["'self'", settings.app_url]
    if settings.connect_src_extra:
        connect_src.extend(settings.connect_src_extra.split())

    csp_directives = [
        "default-src 'self'",
        "script-src 'self'",
        "style-src 'self' 'unsafe-inline' https://fonts.googleapis.com",
        "font-src 'self' https://fonts.gstatic.com",
        "img-src 'self' data: https:",
        f"connect-src {' '.join(connect_src)}",
        "frame-ancestors 'none'",
    ]

    headers = {
        "X-Frame-Options": "DENY",
        "X-Content-Type-Options": "nosniff",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        # Video consultations need camera and microphone
        "Permissions-Policy": "camera=(self), microphone=(self), geolocation=(), interest-cohort=()",
        "X-XSS-Protection": "1; mode=block",
        "Content-Security-Policy": "; ".join(csp_directives),
    }

    # HSTS (only in production)
    if settings.is_production:
        headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

    return headers


def build_cors_headers(settings: Settings) -> dict[str, str]:
    """Credentialed CORS headers for API routes."""
    return {
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Origin": settings.app_url,
        "Access-Control-Allow-Methods": "GET,POST,PUT,DELETE,OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
    }


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses, and CORS headers to API routes.

    API preflight requests are answered here without reaching a route.
    """

    def __init__(self, app, settings: Settings | None = None):
        super().__init__(app)
        self.settings = settings or get_settings()
        self.security_headers = build_security_headers(self.settings)
        self.cors_headers = build_cors_headers(self.settings)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Add security headers to response."""
        is_api = request.url.path.startswith(API_PREFIX)

        if is_api and request.method == "OPTIONS":
            response = Response(status_code=200)
        else:
            response = await call_next(request)

        response.headers.update(self.security_headers)
        if is_api:
            response.headers.update(self.cors_headers)

        return response
