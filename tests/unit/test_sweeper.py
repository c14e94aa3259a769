"""Tests for the background expiry sweeper."""

import asyncio
from unittest.mock import MagicMock

import pytest

from backend.gateway.rate_limit.sweeper import ExpirySweeper
from backend.gateway.rate_limit.types import RateLimitConfig


@pytest.mark.unit
class TestExpirySweeper:

    def test_sweeps_periodically(self, limiter, clock):
        config = RateLimitConfig(window_ms=1_000, max_requests=1)
        limiter.check("stale", config)
        clock.advance(seconds=5)

        async def scenario():
            sweeper = ExpirySweeper(limiter, interval_s=0.01)
            sweeper.start()
            assert sweeper.running
            await asyncio.sleep(0.05)
            await sweeper.stop()
            assert not sweeper.running

        asyncio.run(scenario())

        assert "stale" not in limiter.store

    def test_store_errors_do_not_stop_the_loop(self):
        calls = []

        def sweep():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("redis down")
            return 0

        limiter = MagicMock()
        limiter.sweep.side_effect = sweep

        async def scenario():
            sweeper = ExpirySweeper(limiter, interval_s=0.005)
            sweeper.start()
            await asyncio.sleep(0.05)
            await sweeper.stop()

        asyncio.run(scenario())

        assert limiter.sweep.call_count >= 2

    def test_stop_without_start(self, limiter):
        asyncio.run(ExpirySweeper(limiter).stop())

    def test_rejects_non_positive_interval(self, limiter):
        with pytest.raises(ValueError):
            ExpirySweeper(limiter, interval_s=0)
