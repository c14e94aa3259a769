"""Shared test helpers."""

from datetime import UTC, datetime, timedelta

from starlette.requests import Request

STRONG_PASSWORD = "Correct-Horse-42!"


class FakeClock:
    """Manually advanced clock for deterministic window tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2025, 6, 1, 12, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


def make_request(
    path: str = "/api/auth/sign-in/email",
    method: str = "POST",
    headers: dict[str, str] | None = None,
    client: tuple[str, int] | None = ("127.0.0.1", 50000),
) -> Request:
    """Build a bare Starlette request for handler-level tests."""
    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "raw_path": path.encode(),
        "query_string": b"",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
        "server": ("testserver", 80),
        "scheme": "http",
    }
    return Request(scope)
