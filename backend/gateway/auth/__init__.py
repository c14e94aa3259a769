"""Authentication provider boundary and the in-memory development provider."""

from .exceptions import (
    AuthProviderError,
    InvalidCredentialsError,
    PasswordPolicyError,
    RoleVerificationError,
    UserAlreadyExistsError,
)
from .passwords import hash_password, validate_password, verify_password
from .provider import InMemoryAuthProvider, OAuthProfile
from .types import AuthProvider, Role, RoleLookup, Session, SessionInfo, SessionUser

__all__ = [
    "AuthProviderError",
    "InvalidCredentialsError",
    "PasswordPolicyError",
    "RoleVerificationError",
    "UserAlreadyExistsError",
    "hash_password",
    "validate_password",
    "verify_password",
    "InMemoryAuthProvider",
    "OAuthProfile",
    "AuthProvider",
    "Role",
    "RoleLookup",
    "Session",
    "SessionInfo",
    "SessionUser",
]
