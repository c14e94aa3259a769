"""Authentication endpoints, served by the provider behind the gateway."""

from fastapi import APIRouter, Request, Response

__all__ = ["router"]

router = APIRouter(prefix="/api/auth", tags=["authentication"])


@router.api_route("/{path:path}", methods=["GET", "POST"])
async def auth_handler(path: str, request: Request) -> Response:
    """Forward every /api/auth request to the provider through the gateway."""
    return await request.app.state.auth_gateway(request)
