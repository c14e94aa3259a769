"""Admission control, security headers and role guards."""

from .gateway import AuthGateway, GatewayContext, is_callback_path, with_rate_limit
from .guard import (
    DenialReason,
    GuardDecision,
    GuardState,
    GuardStateError,
    Navigation,
    RoleGuard,
    login_path_for,
)
from .middleware import SecurityHeadersMiddleware

__all__ = [
    "AuthGateway",
    "GatewayContext",
    "is_callback_path",
    "with_rate_limit",
    "DenialReason",
    "GuardDecision",
    "GuardState",
    "GuardStateError",
    "Navigation",
    "RoleGuard",
    "login_path_for",
    "SecurityHeadersMiddleware",
]
