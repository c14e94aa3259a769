"""Authentication provider exceptions."""


class AuthProviderError(Exception):
    """Base exception for authentication provider errors."""
    pass


class InvalidCredentialsError(AuthProviderError):
    """Raised when an email/password pair does not match an account."""
    pass


class UserAlreadyExistsError(AuthProviderError):
    """Raised when signing up with an email that is already registered."""
    pass


class PasswordPolicyError(AuthProviderError):
    """Raised when a password fails the password policy."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


class RoleVerificationError(AuthProviderError):
    """Raised when the authoritative role could not be read."""
    pass
