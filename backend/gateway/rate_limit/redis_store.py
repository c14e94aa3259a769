"""Redis-backed rate limit window storage.

Shares window state between processes. Each identifier is a Redis hash
holding ``count``, ``reset_at_ms`` and, during a lockout, ``blocked_until_ms``.
Keys carry a PEXPIREAT at the later of the window reset and the lockout end,
so Redis drops expired windows itself and ``purge_expired`` has
nothing to do.

The read-modify-write in ``RateLimiter.check`` is serialized per process
only. Two processes hitting the same identifier at the same instant can both
observe the same count, so the ceiling may be exceeded by the number of
concurrent processes.
"""

from datetime import UTC, datetime

import redis

from backend.gateway.config import get_settings
from backend.gateway.rate_limit.types import RateLimitEntry, to_epoch_ms

KEY_PREFIX = "rate_limit"


def _from_epoch_ms(value: str) -> datetime:
    return datetime.fromtimestamp(int(value) / 1000, tz=UTC)


def get_redis_client() -> redis.Redis:
    """Get Redis client for rate limiting."""
    settings = get_settings()
    return redis.from_url(settings.redis_url, decode_responses=True)


class RedisRateLimitStore:
    """Rate limit store persisting windows in Redis."""

    def __init__(self, client: redis.Redis | None = None, prefix: str = KEY_PREFIX) -> None:
        self._client = client if client is not None else get_redis_client()
        self._prefix = prefix

    def _key(self, identifier: str) -> str:
        return f"{self._prefix}:{identifier}"

    def get(self, identifier: str) -> RateLimitEntry | None:
        pipe = self._client.pipeline()
        pipe.hget(self._key(identifier), "count")
        pipe.hget(self._key(identifier), "reset_at_ms")
        pipe.hget(self._key(identifier), "blocked_until_ms")
        count_str, reset_str, blocked_str = pipe.execute()

        if count_str is None or reset_str is None:
            return None

        return RateLimitEntry(
            count=int(count_str),
            reset_at=_from_epoch_ms(reset_str),
            blocked_until=_from_epoch_ms(blocked_str) if blocked_str else None,
        )

    def put(self, identifier: str, entry: RateLimitEntry) -> None:
        key = self._key(identifier)
        mapping = {"count": str(entry.count), "reset_at_ms": str(to_epoch_ms(entry.reset_at))}
        expire_at = entry.reset_at
        if entry.blocked_until is not None:
            mapping["blocked_until_ms"] = str(to_epoch_ms(entry.blocked_until))
            expire_at = max(expire_at, entry.blocked_until)

        pipe = self._client.pipeline()
        # Replace the whole hash so a lifted lockout does not linger
        pipe.delete(key)
        pipe.hset(key, mapping=mapping)
        pipe.pexpireat(key, to_epoch_ms(expire_at))
        pipe.execute()

    def delete(self, identifier: str) -> None:
        self._client.delete(self._key(identifier))

    def purge_expired(self, now: datetime) -> int:
        # Keys expire server-side at their reset time.
        return 0

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            return False
