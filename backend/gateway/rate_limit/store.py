"""Storage backends for rate limit windows."""

from datetime import datetime
from typing import Protocol

from backend.gateway.rate_limit.types import RateLimitEntry


class RateLimitStore(Protocol):
    """Protocol for rate limit window storage.

    Implementations only persist entries; window arithmetic lives in
    ``RateLimiter`` so every backend shares the same admission rules.
    """

    def get(self, identifier: str) -> RateLimitEntry | None:
        """Return the stored entry for an identifier, expired or not."""
        ...

    def put(self, identifier: str, entry: RateLimitEntry) -> None:
        """Create or replace the entry for an identifier."""
        ...

    def delete(self, identifier: str) -> None:
        """Remove an identifier's entry if present."""
        ...

    def purge_expired(self, now: datetime) -> int:
        """Delete entries whose window reset before ``now``.

        Returns:
            Number of entries removed.
        """
        ...

    def ping(self) -> bool:
        """Report whether the backend is reachable."""
        ...


class InMemoryRateLimitStore:
    """In-memory store keyed by identifier.

    State is per process and lost on restart. Multi-process deployments must
    use a shared store such as ``RedisRateLimitStore``.
    """

    def __init__(self) -> None:
        self._entries: dict[str, RateLimitEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._entries

    def get(self, identifier: str) -> RateLimitEntry | None:
        return self._entries.get(identifier)

    def put(self, identifier: str, entry: RateLimitEntry) -> None:
        self._entries[identifier] = entry

    def delete(self, identifier: str) -> None:
        self._entries.pop(identifier, None)

    def purge_expired(self, now: datetime) -> int:
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def ping(self) -> bool:
        return True
