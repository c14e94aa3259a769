"""In-memory authentication provider for development and tests.

Serves the credential endpoints the gateway fronts under ``/api/auth``:

- ``POST /sign-up/email``
- ``POST /sign-in/email``
- ``POST /sign-out``
- ``GET /get-session``
- ``GET /callback/{provider}``

Sessions are opaque tokens carried in a cookie or a Bearer header. A real
deployment replaces this with its own provider implementing ``AuthProvider``
and ``RoleLookup``.
"""

import logging
import secrets
from collections.abc import Awaitable, Callable, Mapping
from datetime import timedelta
from uuid import uuid4

from fastapi import status
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, EmailStr, ValidationError
from starlette.requests import Request, cookie_parser
from starlette.responses import Response

from backend.gateway.auth.exceptions import (
    InvalidCredentialsError,
    PasswordPolicyError,
    UserAlreadyExistsError,
)
from backend.gateway.auth.passwords import (
    get_password_hasher,
    hash_password,
    needs_rehash,
    verify_password,
)
from backend.gateway.auth.types import Role, Session, SessionInfo, SessionUser
from backend.gateway.config import get_settings
from backend.gateway.rate_limit.core import Clock, utc_now

logger = logging.getLogger(__name__)

AUTH_PREFIX = "/api/auth"

# Roles that may be chosen at sign-up; admins are provisioned out of band.
SELF_SERVICE_ROLES = frozenset(role for role in Role if role is not Role.ADMIN)


class SignUpRequest(BaseModel):
    """Email sign-up payload."""
    email: EmailStr
    password: str
    name: str = ""
    role: Role = Role.PATIENT


class SignInRequest(BaseModel):
    """Email sign-in payload."""
    email: EmailStr
    password: str


class OAuthProfile(BaseModel):
    """Identity returned by an OAuth code exchange."""
    email: EmailStr
    name: str = ""
    email_verified: bool = True


OAuthExchange = Callable[[str, str], Awaitable[OAuthProfile]]


class UserRecord(BaseModel):
    """Stored account."""
    id: str
    email: str
    name: str
    role: Role
    password_hash: str | None = None
    email_verified: bool = False

    def to_session_user(self) -> SessionUser:
        return SessionUser(
            id=self.id,
            email=self.email,
            name=self.name,
            role=self.role,
            email_verified=self.email_verified,
        )


def _error(message: str, code: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, "code": code})


class InMemoryAuthProvider:
    """Credential and session store held in process memory."""

    def __init__(
        self,
        clock: Clock = utc_now,
        oauth_exchange: OAuthExchange | None = None,
        cookie_name: str | None = None,
        session_ttl: timedelta | None = None,
        secure_cookies: bool | None = None,
    ) -> None:
        settings = get_settings()
        self._clock = clock
        self._oauth_exchange = oauth_exchange
        self.cookie_name = cookie_name or settings.session_cookie_name
        self.session_ttl = session_ttl or timedelta(seconds=settings.session_ttl_s)
        self.secure_cookies = settings.is_production if secure_cookies is None else secure_cookies

        self._users: dict[str, UserRecord] = {}  # email -> record
        self._sessions: dict[str, SessionInfo] = {}  # token -> session

    # Account management

    def create_user(
        self,
        email: str,
        password: str | None,
        role: Role = Role.PATIENT,
        name: str = "",
        email_verified: bool = False,
    ) -> UserRecord:
        """Register an account.

        Raises:
            UserAlreadyExistsError: If the email is already registered
            PasswordPolicyError: If the password fails the policy
        """
        key = email.lower()
        if key in self._users:
            raise UserAlreadyExistsError(f"User already exists: {email}")

        record = UserRecord(
            id=str(uuid4()),
            email=key,
            name=name,
            role=role,
            password_hash=hash_password(password) if password is not None else None,
            email_verified=email_verified,
        )
        self._users[key] = record
        return record

    def authenticate(self, email: str, password: str) -> UserRecord:
        """Check credentials.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password
        """
        record = self._users.get(email.lower())
        # Same error either way so callers cannot probe for registered emails
        if record is None or record.password_hash is None:
            raise InvalidCredentialsError("Invalid email or password")
        if not verify_password(password, record.password_hash):
            raise InvalidCredentialsError("Invalid email or password")

        # Upgrade hashes made with older Argon2 parameters while the password is at hand
        if needs_rehash(record.password_hash):
            record.password_hash = get_password_hasher().hash(password)
            logger.info("password_rehashed", extra={"user_id": record.id})
        return record

    def create_session(self, record: UserRecord) -> str:
        """Issue a session token for an account."""
        token = secrets.token_urlsafe(32)
        self._sessions[token] = SessionInfo(
            id=str(uuid4()),
            user_id=record.id,
            expires_at=self._clock() + self.session_ttl,
        )
        return token

    def revoke_session(self, token: str) -> None:
        self._sessions.pop(token, None)

    def _user_by_id(self, user_id: str) -> UserRecord | None:
        for record in self._users.values():
            if record.id == user_id:
                return record
        return None

    # AuthProvider / RoleLookup

    def _token_from_headers(self, headers: Mapping[str, str]) -> str | None:
        authorization = headers.get("authorization")
        if authorization and authorization.startswith("Bearer "):
            return authorization[7:].strip() or None

        cookie_header = headers.get("cookie")
        if not cookie_header:
            return None
        return cookie_parser(cookie_header).get(self.cookie_name) or None

    async def get_session(self, headers: Mapping[str, str]) -> Session | None:
        token = self._token_from_headers(headers)
        if token is None:
            return None

        info = self._sessions.get(token)
        if info is None:
            return None
        if info.expires_at <= self._clock():
            self._sessions.pop(token, None)
            return None

        record = self._user_by_id(info.user_id)
        if record is None:
            return None

        return Session(user=record.to_session_user(), session=info)

    async def get_role(self, user_id: str) -> Role | None:
        record = self._user_by_id(user_id)
        return record.role if record else None

    async def handle(self, request: Request) -> Response:
        path = request.url.path
        if path.startswith(AUTH_PREFIX):
            path = path[len(AUTH_PREFIX):]
        method = request.method.upper()

        if method == "POST" and path == "/sign-up/email":
            return await self._sign_up(request)
        if method == "POST" and path == "/sign-in/email":
            return await self._sign_in(request)
        if method == "POST" and path == "/sign-out":
            return self._sign_out(request)
        if method == "GET" and path == "/get-session":
            return await self._get_session(request)
        if method == "GET" and path.startswith("/callback/"):
            return await self._callback(request, path[len("/callback/"):])

        return _error("Not found", "NOT_FOUND", status.HTTP_404_NOT_FOUND)

    # Endpoint handlers

    async def _sign_up(self, request: Request) -> Response:
        try:
            payload = SignUpRequest.model_validate(await request.json())
        except (ValidationError, ValueError):
            return _error("Invalid sign-up payload", "VALIDATION_ERROR", status.HTTP_400_BAD_REQUEST)

        if payload.role not in SELF_SERVICE_ROLES:
            return _error("Role cannot be self-assigned", "INVALID_ROLE", status.HTTP_400_BAD_REQUEST)

        try:
            record = self.create_user(
                email=payload.email,
                password=payload.password,
                role=payload.role,
                name=payload.name,
            )
        except UserAlreadyExistsError:
            return _error("Email already registered", "USER_ALREADY_EXISTS", status.HTTP_409_CONFLICT)
        except PasswordPolicyError as e:
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"error": "Password does not meet requirements", "code": "WEAK_PASSWORD", "details": e.errors},
            )

        logger.info("auth_event", extra={"event": "signup", "user_id": record.id, "role": record.role.value})
        return self._session_response(record)

    async def _sign_in(self, request: Request) -> Response:
        try:
            payload = SignInRequest.model_validate(await request.json())
        except (ValidationError, ValueError):
            return _error("Invalid sign-in payload", "VALIDATION_ERROR", status.HTTP_400_BAD_REQUEST)

        try:
            record = self.authenticate(payload.email, payload.password)
        except InvalidCredentialsError as e:
            logger.info("auth_event", extra={"event": "failed"})
            return _error(str(e), "INVALID_EMAIL_OR_PASSWORD", status.HTTP_401_UNAUTHORIZED)

        logger.info("auth_event", extra={"event": "login", "user_id": record.id})
        return self._session_response(record)

    def _sign_out(self, request: Request) -> Response:
        token = self._token_from_headers(request.headers)
        if token is not None:
            info = self._sessions.get(token)
            self.revoke_session(token)
            if info is not None:
                logger.info("auth_event", extra={"event": "logout", "user_id": info.user_id})

        response = JSONResponse(content={"success": True})
        response.delete_cookie(self.cookie_name, path="/")
        return response

    async def _get_session(self, request: Request) -> Response:
        session = await self.get_session(request.headers)
        return JSONResponse(content=session.model_dump(mode="json") if session else None)

    async def _callback(self, request: Request, provider_id: str) -> Response:
        if self._oauth_exchange is None:
            return _error(
                f"OAuth provider not configured: {provider_id}",
                "PROVIDER_NOT_FOUND",
                status.HTTP_404_NOT_FOUND,
            )

        code = request.query_params.get("code")
        if not code:
            return _error("Missing authorization code", "MISSING_CODE", status.HTTP_400_BAD_REQUEST)

        profile = await self._oauth_exchange(provider_id, code)
        record = self._users.get(profile.email.lower())
        if record is None:
            record = self.create_user(
                email=profile.email,
                password=None,
                name=profile.name,
                email_verified=profile.email_verified,
            )
            logger.info("auth_event", extra={"event": "signup", "user_id": record.id, "provider": provider_id})
        else:
            logger.info("auth_event", extra={"event": "login", "user_id": record.id, "provider": provider_id})

        response = RedirectResponse(url="/", status_code=status.HTTP_302_FOUND)
        self._set_session_cookie(response, self.create_session(record))
        return response

    def _session_response(self, record: UserRecord) -> Response:
        token = self.create_session(record)
        response = JSONResponse(
            content={"token": token, "user": record.to_session_user().model_dump(mode="json")}
        )
        self._set_session_cookie(response, token)
        return response

    def _set_session_cookie(self, response: Response, token: str) -> None:
        response.set_cookie(
            self.cookie_name,
            token,
            max_age=int(self.session_ttl.total_seconds()),
            path="/",
            httponly=True,
            secure=self.secure_cookies,
            samesite="lax",
        )
