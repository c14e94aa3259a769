"""Health check endpoint for infrastructure status."""

from typing import Literal

from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from backend.gateway.rate_limit.core import RateLimiter


class HealthStatus(BaseModel):
    """Health check response."""

    status: Literal["ok", "down"]
    checks: dict[str, Literal["ok", "down"]]


async def get_health(limiter: RateLimiter) -> HealthStatus:
    """
    Check health of the gateway's dependencies.

    Checks:
    - Rate limit store: pings the configured backend (always ok in memory)

    Returns:
        HealthStatus with overall status and individual check results
    """
    checks: dict[str, Literal["ok", "down"]] = {}

    try:
        reachable = await run_in_threadpool(limiter.store.ping)
        checks["rate_limit_store"] = "ok" if reachable else "down"
    except Exception:
        checks["rate_limit_store"] = "down"

    # Overall status - down if any check is down
    overall_status: Literal["ok", "down"] = (
        "ok" if all(status == "ok" for status in checks.values()) else "down"
    )

    return HealthStatus(status=overall_status, checks=checks)
