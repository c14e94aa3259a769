"""Background task that periodically purges expired rate limit windows."""

import asyncio
import contextlib
import logging

from starlette.concurrency import run_in_threadpool

from backend.gateway.rate_limit.core import RateLimiter

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """Runs ``RateLimiter.sweep`` on a fixed interval.

    The sweep only bounds memory. ``RateLimiter.check`` already treats an
    expired entry as absent, so a missed or late sweep never changes an
    admission decision.
    """

    def __init__(self, limiter: RateLimiter, interval_s: float = 600.0) -> None:
        if interval_s <= 0:
            raise ValueError("Sweep interval must be positive")
        self.limiter = limiter
        self.interval_s = interval_s
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the sweep loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="rate-limit-sweeper")

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to exit."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_s)
            try:
                await run_in_threadpool(self.limiter.sweep)
            except Exception:
                # Keep sweeping; a failing store must not kill the loop.
                logger.exception("rate_limit_sweep_failed")
