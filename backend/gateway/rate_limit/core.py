"""Core rate limiting logic."""

import logging
import threading
from collections.abc import Callable
from datetime import UTC, datetime

from backend.gateway.rate_limit.store import InMemoryRateLimitStore, RateLimitStore
from backend.gateway.rate_limit.types import (
    RateLimitConfig,
    RateLimitEntry,
    RateLimitResult,
    RateLimitStatus,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(UTC)


class RateLimiter:
    """Fixed-window rate limiter keyed by client identifier.

    All requests inside a window share one reset boundary. A client that
    spends its budget at the end of one window and again at the start of the
    next can therefore get up to ``2 * max_requests`` through in a short
    span. That is a known limitation of the algorithm, not a defect.

    The read-modify-write on an entry is guarded by a lock so the limiter is
    safe to call from worker threads as well as the event loop.
    """

    def __init__(
        self,
        store: RateLimitStore | None = None,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize the rate limiter.

        Args:
            store: Window storage; defaults to a fresh in-memory store.
            clock: Returns the current aware datetime. Tests inject a fake.
        """
        self.store: RateLimitStore = store if store is not None else InMemoryRateLimitStore()
        self._clock = clock
        self._lock = threading.Lock()

    def now(self) -> datetime:
        return self._clock()

    def check(self, identifier: str, config: RateLimitConfig) -> RateLimitResult:
        """Check the rate limit and count the request if admitted.

        Args:
            identifier: Unique identifier (IP address, user ID, etc.).
            config: Window length and ceiling to enforce.

        Returns:
            RateLimitResult indicating if the request is allowed.
        """
        with self._lock:
            now = self._clock()
            entry = self.store.get(identifier)

            # An active lockout outlives the window; nothing is counted
            if entry is not None and entry.is_blocked(now):
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    reset_at=entry.blocked_until,
                )

            # No entry or expired window - start fresh
            if entry is None or entry.window_expired(now):
                reset_at = now + config.window
                self.store.put(identifier, RateLimitEntry(count=1, reset_at=reset_at))
                return RateLimitResult(
                    allowed=True,
                    remaining=config.max_requests - 1,
                    reset_at=reset_at,
                )

            if entry.count < config.max_requests:
                entry.count += 1
                self.store.put(identifier, entry)
                return RateLimitResult(
                    allowed=True,
                    remaining=config.max_requests - entry.count,
                    reset_at=entry.reset_at,
                )

            # Limit exceeded; the caller waits for the existing reset
            if config.block_duration is None:
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    reset_at=entry.reset_at,
                )

            entry.blocked_until = now + config.block_duration
            self.store.put(identifier, entry)
            logger.warning(
                "rate_limit_block_applied",
                extra={"identifier": identifier, "blocked_until": entry.blocked_until.isoformat()},
            )
            return RateLimitResult(
                allowed=False,
                remaining=0,
                reset_at=max(entry.reset_at, entry.blocked_until),
            )

    def peek(self, identifier: str, config: RateLimitConfig) -> RateLimitResult:
        """Report the current window without counting a request.

        An absent or expired entry reports a full budget whose window would
        start now.
        """
        now = self._clock()
        entry = self.store.get(identifier)

        if entry is not None and entry.is_blocked(now):
            return RateLimitResult(allowed=False, remaining=0, reset_at=entry.blocked_until)

        if entry is None or entry.window_expired(now):
            return RateLimitResult(
                allowed=True,
                remaining=config.max_requests,
                reset_at=now + config.window,
            )

        remaining = max(config.max_requests - entry.count, 0)
        return RateLimitResult(
            allowed=remaining > 0,
            remaining=remaining,
            reset_at=entry.reset_at,
        )

    def status(self, identifier: str, config: RateLimitConfig | None = None) -> RateLimitStatus:
        """Describe the stored window for an identifier."""
        now = self._clock()
        entry = self.store.get(identifier)
        if entry is None or entry.is_expired(now):
            return RateLimitStatus(exists=False)

        remaining = None
        if config is not None:
            remaining = 0 if entry.is_blocked(now) else max(config.max_requests - entry.count, 0)

        return RateLimitStatus(
            exists=True,
            count=entry.count,
            remaining=remaining,
            reset_at=entry.reset_at,
            blocked_until=entry.blocked_until if entry.is_blocked(now) else None,
        )

    def clear(self, identifier: str) -> None:
        """Forget an identifier's window (admin override)."""
        with self._lock:
            self.store.delete(identifier)
        logger.info("rate_limit_cleared", extra={"identifier": identifier})

    def sweep(self) -> int:
        """Delete every entry whose window has reset and whose lockout has ended.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            removed = self.store.purge_expired(self._clock())
        logger.debug("rate_limit_sweep", extra={"removed": removed})
        return removed
