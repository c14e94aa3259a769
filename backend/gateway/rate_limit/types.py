"""Rate limiting types."""

from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field


def to_epoch_ms(moment: datetime) -> int:
    """Convert an aware datetime to integer epoch milliseconds."""
    return int(moment.timestamp() * 1000)


class RateLimitConfig(BaseModel):
    """Window length and admission ceiling for one class of endpoints."""

    model_config = ConfigDict(frozen=True)

    window_ms: int = Field(gt=0, description="Window length in milliseconds")
    max_requests: int = Field(gt=0, description="Requests admitted per window")
    block_duration_ms: int | None = Field(
        default=None,
        gt=0,
        description="Lockout applied once the ceiling is exceeded; None disables it",
    )
    message: str | None = Field(default=None, description="Rejection message override")

    @property
    def window(self) -> timedelta:
        return timedelta(milliseconds=self.window_ms)

    @property
    def block_duration(self) -> timedelta | None:
        if self.block_duration_ms is None:
            return None
        return timedelta(milliseconds=self.block_duration_ms)


class RateLimitEntry(BaseModel):
    """Stored window state for one identifier."""

    count: int = Field(ge=0, description="Admitted requests in the current window")
    reset_at: datetime = Field(description="When the current window resets")
    blocked_until: datetime | None = Field(default=None, description="End of an active lockout")

    def window_expired(self, now: datetime) -> bool:
        return self.reset_at < now

    def is_blocked(self, now: datetime) -> bool:
        return self.blocked_until is not None and self.blocked_until > now

    def is_expired(self, now: datetime) -> bool:
        """Whether the entry carries no state worth keeping."""
        if not self.window_expired(now):
            return False
        return self.blocked_until is None or self.blocked_until < now


class RateLimitResult(BaseModel):
    """Result of a rate limit check."""

    allowed: bool = Field(description="Whether the request is allowed")
    remaining: int = Field(ge=0, description="Number of requests remaining in window")
    reset_at: datetime = Field(description="When the window resets, or the lockout ends if one is active")

    @property
    def reset_time_ms(self) -> int:
        """Reset time as epoch milliseconds, the unit used in response headers."""
        return to_epoch_ms(self.reset_at)


class RateLimitStatus(BaseModel):
    """Read-only view of an identifier's window, for admin tooling."""

    exists: bool
    count: int | None = None
    remaining: int | None = None
    reset_at: datetime | None = None
    blocked_until: datetime | None = None


class RateLimits:
    """Predefined rate limit configurations.

    These values are a versioned contract; endpoints that need a different
    budget must define their own config rather than edit these.
    """

    # Auth endpoints (strict): 5 attempts per 15 minutes
    AUTH = RateLimitConfig(window_ms=15 * 60 * 1000, max_requests=5)

    # API endpoints (moderate)
    API = RateLimitConfig(window_ms=60 * 1000, max_requests=60)

    # General endpoints (permissive)
    GENERAL = RateLimitConfig(window_ms=60 * 1000, max_requests=100)

    # Sensitive operations: 10 per minute, then locked out for 5 minutes
    SENSITIVE = RateLimitConfig(
        window_ms=60 * 1000,
        max_requests=10,
        block_duration_ms=5 * 60 * 1000,
        message="Too many requests to sensitive endpoint. Please try again later.",
    )

    # Password reset and email verification: 3 per hour, then locked out for an hour
    EMAIL = RateLimitConfig(
        window_ms=60 * 60 * 1000,
        max_requests=3,
        block_duration_ms=60 * 60 * 1000,
        message="Too many email requests. Please try again in 1 hour.",
    )
