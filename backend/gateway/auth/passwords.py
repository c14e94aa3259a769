"""Password hashing and verification using Argon2id."""

import re
from typing import Literal

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from pydantic import BaseModel

from backend.gateway.auth.exceptions import PasswordPolicyError
from backend.gateway.config import get_settings

MAX_PASSWORD_LENGTH = 128

_SPECIAL_CHARS = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")
_OTHER_CHARS = re.compile(r"[^A-Za-z0-9!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")
_REPEATED_CHARS = re.compile(r"(.)\1{5,}")

COMMON_PASSWORDS = frozenset({
    "password", "password123", "12345678", "qwerty", "abc123",
    "password1", "password12", "123456789", "letmein", "welcome",
    "admin", "admin123", "root", "user", "test", "test123",
})

PasswordStrength = Literal["weak", "medium", "strong", "very-strong"]


class PasswordValidationResult(BaseModel):
    """Outcome of checking a password against the policy."""

    is_valid: bool
    errors: list[str]
    strength: PasswordStrength


def get_password_hasher() -> PasswordHasher:
    """Get configured Argon2id password hasher.

    Returns:
        Configured PasswordHasher instance
    """
    return PasswordHasher(
        time_cost=3,        # 3 iterations
        memory_cost=65536,  # 64 MB
        parallelism=1,
        hash_len=32,
        salt_len=16,
        encoding="utf-8",
    )


def validate_password(password: str, min_length: int | None = None) -> PasswordValidationResult:
    """Check a password against the account password policy.

    Args:
        password: Plain text password
        min_length: Override for the configured minimum length

    Returns:
        PasswordValidationResult listing every violated rule and, for valid
        passwords, a strength label.
    """
    if min_length is None:
        min_length = get_settings().password_min_length

    errors: list[str] = []

    if len(password) < min_length:
        errors.append(f"Password must be at least {min_length} characters long")
    if len(password) > MAX_PASSWORD_LENGTH:
        errors.append(f"Password must not exceed {MAX_PASSWORD_LENGTH} characters")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        errors.append("Password must contain at least one number")
    if not _SPECIAL_CHARS.search(password):
        errors.append("Password must contain at least one special character (!@#$%^&*...)")
    if password.lower() in COMMON_PASSWORDS:
        errors.append("This password is too common. Please choose a different one")
    if _REPEATED_CHARS.search(password):
        errors.append("Password should not contain repeated characters")

    if errors:
        return PasswordValidationResult(is_valid=False, errors=errors, strength="weak")

    # Upper, lower, digit and special are guaranteed once the checks pass.
    score = 4 + sum([
        len(password) >= 12,
        len(password) >= 16,
        len(password) >= 20,
        bool(_OTHER_CHARS.search(password)),
    ])

    strength: PasswordStrength
    if score <= 4:
        strength = "weak"
    elif score == 5:
        strength = "medium"
    elif score == 6:
        strength = "strong"
    else:
        strength = "very-strong"

    return PasswordValidationResult(is_valid=True, errors=[], strength=strength)


def hash_password(password: str) -> str:
    """Hash password using Argon2id.

    Raises:
        PasswordPolicyError: If the password fails the policy
    """
    result = validate_password(password)
    if not result.is_valid:
        raise PasswordPolicyError(result.errors)

    return get_password_hasher().hash(password)


def verify_password(password: str, hash_string: str) -> bool:
    """Verify password against Argon2id hash.

    Returns:
        True if password matches hash, False otherwise
    """
    try:
        return get_password_hasher().verify(hash_string, password)
    except VerifyMismatchError:
        return False
    except (VerificationError, InvalidHashError):
        # Malformed or foreign hash
        return False


def needs_rehash(hash_string: str) -> bool:
    """Check if a stored hash was produced with outdated parameters."""
    try:
        return get_password_hasher().check_needs_rehash(hash_string)
    except InvalidHashError:
        return True
