"""Admin endpoints: role verification and rate limit overrides."""

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from backend.gateway.auth.types import Role
from backend.gateway.rate_limit.core import RateLimiter
from backend.gateway.rate_limit.types import RateLimits, RateLimitStatus
from backend.gateway.security.dependencies import (
    get_auth_provider,
    get_rate_limiter,
    get_role_lookup,
    require_role,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/verify")
async def verify_admin(request: Request) -> JSONResponse:
    """Report whether the caller holds the admin role.

    The role comes from the role lookup, never from the session payload.
    Any lookup failure answers ``isAdmin: false``.
    """
    try:
        session = await get_auth_provider(request).get_session(request.headers)
        if session is None:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"isAdmin": False, "error": "Not authenticated"},
            )

        role = await get_role_lookup(request).get_role(session.user.id)
    except Exception:
        logger.exception("admin_verification_failed")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"isAdmin": False, "error": "Verification failed"},
        )

    if role is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"isAdmin": False, "error": "User not found"},
        )

    return JSONResponse(
        content={
            "isAdmin": role is Role.ADMIN,
            "userId": session.user.id,
            "email": session.user.email,
            "role": role.value,
        }
    )


@router.get(
    "/rate-limits/{identifier}",
    response_model=RateLimitStatus,
    dependencies=[Depends(require_role(Role.ADMIN))],
)
def get_rate_limit_status(
    identifier: str,
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> RateLimitStatus:
    """Current auth window for a client identifier.

    Declared sync so FastAPI runs the store access in its threadpool.
    """
    return limiter.status(identifier, RateLimits.AUTH)


@router.delete(
    "/rate-limits/{identifier}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_role(Role.ADMIN))],
)
def clear_rate_limit(
    identifier: str,
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> Response:
    """Reset a client's auth window, e.g. after a support request."""
    limiter.clear(identifier)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
