"""FastAPI dependencies for session and role checks on API routes."""

from collections.abc import Awaitable, Callable

from fastapi import HTTPException, Request, status

from backend.gateway.auth.types import AuthProvider, Role, RoleLookup
from backend.gateway.rate_limit.core import RateLimiter
from backend.gateway.security.guard import DenialReason, GuardDecision, RoleGuard

__all__ = [
    "get_auth_provider",
    "get_rate_limiter",
    "get_role_lookup",
    "require_role",
    "require_session",
]

# Denial reason -> (status code, error code, message)
_DENIALS: dict[DenialReason, tuple[int, str, str]] = {
    DenialReason.UNAUTHENTICATED: (
        status.HTTP_401_UNAUTHORIZED,
        "AUTHENTICATION_REQUIRED",
        "Authentication required. Please log in.",
    ),
    DenialReason.UNAUTHORIZED: (
        status.HTTP_403_FORBIDDEN,
        "INSUFFICIENT_PERMISSIONS",
        "Insufficient permissions. You do not have access to this resource.",
    ),
    DenialReason.EMAIL_NOT_VERIFIED: (
        status.HTTP_403_FORBIDDEN,
        "EMAIL_VERIFICATION_REQUIRED",
        "Email verification required. Please verify your email.",
    ),
    DenialReason.VERIFICATION_FAILED: (
        status.HTTP_403_FORBIDDEN,
        "AUTHORIZATION_ERROR",
        "Authorization check failed",
    ),
}


def get_auth_provider(request: Request) -> AuthProvider:
    return request.app.state.auth_provider


def get_role_lookup(request: Request) -> RoleLookup:
    return request.app.state.role_lookup


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def _raise_for_denial(decision: GuardDecision) -> None:
    # A denial without a reason is still a denial
    reason = decision.reason or DenialReason.VERIFICATION_FAILED
    status_code, code, message = _DENIALS[reason]
    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    raise HTTPException(
        status_code=status_code,
        detail={"error": message, "code": code, "redirectTo": decision.redirect_to},
        headers=headers,
    )


def require_role(
    *roles: Role,
    require_email_verification: bool = False,
) -> Callable[[Request], Awaitable[GuardDecision]]:
    """Build a dependency that admits only sessions holding one of ``roles``.

    With no roles, any authenticated session passes.

    Usage::

        @router.get("/admin/thing")
        async def thing(decision: GuardDecision = Depends(require_role(Role.ADMIN))):
            ...
    """

    async def dependency(request: Request) -> GuardDecision:
        guard = RoleGuard(
            provider=get_auth_provider(request),
            role_lookup=get_role_lookup(request) if roles else None,
            allowed_roles=roles,
            require_email_verification=require_email_verification,
        )
        decision = await guard.authorize(request.headers)
        if not decision.granted:
            _raise_for_denial(decision)
        return decision

    return dependency


require_session = require_role()
