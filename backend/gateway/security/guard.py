"""Session and role guard for protected resources.

A guard check is one navigation through a small state machine::

    LOADING --no session---------------> DENIED (unauthenticated)
    LOADING --role lookup mismatch-----> DENIED (unauthorized)
    LOADING --lookup raised------------> DENIED (verification_failed)
    LOADING --session [+ role match]---> GRANTED

DENIED and GRANTED are terminal for that navigation. A new navigation starts
again at LOADING. Role checks always consult the server-side ``RoleLookup``;
the role carried on the session is never trusted for authorization. Every
failure path ends in DENIED.
"""

import logging
from collections.abc import Iterable, Mapping
from enum import Enum

from pydantic import BaseModel

from backend.gateway.auth.exceptions import RoleVerificationError
from backend.gateway.auth.types import AuthProvider, Role, RoleLookup, Session

logger = logging.getLogger(__name__)


class GuardState(str, Enum):
    LOADING = "loading"
    DENIED = "denied"
    GRANTED = "granted"


class DenialReason(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    UNAUTHORIZED = "unauthorized"
    EMAIL_NOT_VERIFIED = "email_not_verified"
    VERIFICATION_FAILED = "verification_failed"


class GuardStateError(RuntimeError):
    """Raised when a terminal navigation is asked to transition again."""


def login_path_for(role: Role | None) -> str:
    """Login page for a portal role."""
    if role is None:
        return "/auth/login"
    if role is Role.ADMIN:
        return "/admin/login"
    return f"/auth/{role.value}/login"


class GuardDecision(BaseModel):
    """Snapshot of a navigation's outcome."""

    state: GuardState
    reason: DenialReason | None = None
    redirect_to: str | None = None
    user_id: str | None = None
    role: Role | None = None

    @property
    def granted(self) -> bool:
        return self.state is GuardState.GRANTED


class Navigation:
    """One pass through the guard state machine."""

    def __init__(self) -> None:
        self.state = GuardState.LOADING
        self.reason: DenialReason | None = None
        self.redirect_to: str | None = None
        self.session: Session | None = None
        self.role: Role | None = None

    @property
    def terminal(self) -> bool:
        return self.state is not GuardState.LOADING

    def deny(self, reason: DenialReason, redirect_to: str) -> None:
        self._require_loading()
        self.state = GuardState.DENIED
        self.reason = reason
        self.redirect_to = redirect_to

    def grant(self, session: Session, role: Role | None) -> None:
        self._require_loading()
        self.state = GuardState.GRANTED
        self.session = session
        self.role = role

    def _require_loading(self) -> None:
        if self.terminal:
            raise GuardStateError(f"Navigation already resolved as {self.state.value}")

    def decision(self) -> GuardDecision:
        return GuardDecision(
            state=self.state,
            reason=self.reason,
            redirect_to=self.redirect_to,
            user_id=self.session.user.id if self.session else None,
            role=self.role,
        )


class RoleGuard:
    """Verifies a caller has a session and, optionally, an allowed role."""

    def __init__(
        self,
        provider: AuthProvider,
        role_lookup: RoleLookup | None = None,
        allowed_roles: Iterable[Role] = (),
        login_role: Role | None = None,
        require_email_verification: bool = False,
    ) -> None:
        """Initialize the guard.

        Args:
            provider: Resolves the caller's session from request headers.
            role_lookup: Authoritative role source; required with allowed_roles.
            allowed_roles: Roles that may pass. Empty means any authenticated user.
            login_role: Portal whose login page denied callers are sent to.
                Defaults to the first allowed role.
            require_email_verification: Deny sessions with an unverified email.
        """
        self.provider = provider
        self.role_lookup = role_lookup
        self.allowed_roles = tuple(allowed_roles)
        self.require_email_verification = require_email_verification

        if self.allowed_roles and role_lookup is None:
            raise ValueError("A role lookup is required when roles are restricted")

        if login_role is None and self.allowed_roles:
            login_role = self.allowed_roles[0]
        self.login_path = login_path_for(login_role)

    async def authorize(self, headers: Mapping[str, str]) -> GuardDecision:
        """Run a fresh navigation against the caller's headers."""
        navigation = Navigation()
        await self.resolve(navigation, headers)
        return navigation.decision()

    async def resolve(self, navigation: Navigation, headers: Mapping[str, str]) -> None:
        """Drive a LOADING navigation to DENIED or GRANTED."""
        try:
            session = await self.provider.get_session(headers)
        except Exception as e:
            logger.error("session_lookup_failed", extra={"error": repr(e)})
            navigation.deny(DenialReason.VERIFICATION_FAILED, self.login_path)
            return

        if session is None:
            logger.info("guard_denied", extra={"reason": DenialReason.UNAUTHENTICATED.value})
            navigation.deny(DenialReason.UNAUTHENTICATED, self.login_path)
            return

        user_id = session.user.id

        if self.require_email_verification and not session.user.email_verified:
            self._log_denial(DenialReason.EMAIL_NOT_VERIFIED, user_id, None)
            navigation.deny(DenialReason.EMAIL_NOT_VERIFIED, self.login_path)
            return

        if not self.allowed_roles:
            navigation.grant(session, session.user.role)
            return

        try:
            role = await self._lookup_role(user_id)
        except RoleVerificationError as e:
            logger.error(
                "role_verification_failed",
                extra={"user_id": user_id, "error": str(e)},
            )
            navigation.deny(DenialReason.VERIFICATION_FAILED, self.login_path)
            return

        if role not in self.allowed_roles:
            self._log_denial(DenialReason.UNAUTHORIZED, user_id, role)
            navigation.deny(DenialReason.UNAUTHORIZED, self.login_path)
            return

        navigation.grant(session, role)

    async def _lookup_role(self, user_id: str) -> Role | None:
        if self.role_lookup is None:
            raise RoleVerificationError("No role lookup configured")
        try:
            return await self.role_lookup.get_role(user_id)
        except RoleVerificationError:
            raise
        except Exception as e:
            raise RoleVerificationError(f"Role lookup failed for {user_id}: {e!r}") from e

    def _log_denial(self, reason: DenialReason, user_id: str, role: Role | None) -> None:
        logger.warning(
            "guard_denied",
            extra={
                "reason": reason.value,
                "user_id": user_id,
                "user_role": role.value if role else None,
                "allowed_roles": [r.value for r in self.allowed_roles],
            },
        )
