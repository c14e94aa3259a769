"""Per-client fixed-window rate limiting."""

from backend.gateway.rate_limit.core import Clock, RateLimiter, utc_now
from backend.gateway.rate_limit.identity import (
    UNKNOWN_CLIENT,
    ForwardedHeaderIdentifier,
    IdentifierStrategy,
    PeerAddressIdentifier,
    default_identifier_strategy,
)
from backend.gateway.rate_limit.store import InMemoryRateLimitStore, RateLimitStore
from backend.gateway.rate_limit.sweeper import ExpirySweeper
from backend.gateway.rate_limit.types import (
    RateLimitConfig,
    RateLimitEntry,
    RateLimitResult,
    RateLimits,
    RateLimitStatus,
)

__all__ = [
    "Clock",
    "RateLimiter",
    "utc_now",
    "UNKNOWN_CLIENT",
    "ForwardedHeaderIdentifier",
    "IdentifierStrategy",
    "PeerAddressIdentifier",
    "default_identifier_strategy",
    "InMemoryRateLimitStore",
    "RateLimitStore",
    "ExpirySweeper",
    "RateLimitConfig",
    "RateLimitEntry",
    "RateLimitResult",
    "RateLimits",
    "RateLimitStatus",
]
