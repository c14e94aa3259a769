"""Types shared with the authentication provider boundary."""

from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from typing import Protocol

from pydantic import BaseModel
from starlette.requests import Request
from starlette.responses import Response


class Role(str, Enum):
    """Portal roles a user account can hold."""

    PATIENT = "patient"
    ADMIN = "admin"
    GP = "gp"
    SPECIALIST = "specialist"
    PHARMACY = "pharmacy"
    DIAGNOSTIC_CENTER = "diagnostic-center"


class SessionUser(BaseModel):
    """User attached to a session."""

    id: str
    email: str
    name: str = ""
    role: Role | None = None
    email_verified: bool = False


class SessionInfo(BaseModel):
    """Session record issued by the provider."""

    id: str
    user_id: str
    expires_at: datetime


class Session(BaseModel):
    """What the provider returns for an authenticated request."""

    user: SessionUser
    session: SessionInfo


class AuthProvider(Protocol):
    """Authentication provider the gateway fronts."""

    async def get_session(self, headers: Mapping[str, str]) -> Session | None:
        """Resolve the caller's session from request headers."""
        ...

    async def handle(self, request: Request) -> Response:
        """Serve a sign-in, sign-up, sign-out, session or callback request."""
        ...


class RoleLookup(Protocol):
    """Authoritative, server-side source of a user's role."""

    async def get_role(self, user_id: str) -> Role | None:
        """Return the user's current role, or None for an unknown user."""
        ...
