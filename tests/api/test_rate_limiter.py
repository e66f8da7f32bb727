"""
Tests for the token-bucket RateLimiter.
"""

from unittest.mock import AsyncMock, patch

import pytest

from spotiweb.api.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


class TestRateLimiter:

    def test_rejects_non_positive_rate(self):
        with pytest.raises(ValueError):
            RateLimiter(calls_per_second=0)

    def test_default_burst_is_twice_the_rate(self):
        assert RateLimiter(calls_per_second=5).burst_size == 10
        assert RateLimiter(calls_per_second=0.2).burst_size == 1

    @pytest.mark.asyncio
    async def test_burst_does_not_wait(self, clock):
        limiter = RateLimiter(calls_per_second=2, burst_size=3, clock=clock)

        with patch("spotiweb.api.rate_limiter.asyncio.sleep", new_callable=AsyncMock) as sleep:
            for _ in range(3):
                await limiter.wait_if_needed()

        sleep.assert_not_called()
        assert limiter.total_requests == 3

    @pytest.mark.asyncio
    async def test_waits_when_bucket_is_empty(self, clock):
        limiter = RateLimiter(calls_per_second=2, burst_size=1, clock=clock)

        with patch("spotiweb.api.rate_limiter.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await limiter.wait_if_needed()
            await limiter.wait_if_needed()

        sleep.assert_awaited_once_with(0.5)

    @pytest.mark.asyncio
    async def test_refills_over_time(self, clock):
        limiter = RateLimiter(calls_per_second=2, burst_size=1, clock=clock)

        with patch("spotiweb.api.rate_limiter.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await limiter.wait_if_needed()
            clock.now += 0.5
            await limiter.wait_if_needed()

        sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_usage_and_reset(self, clock):
        limiter = RateLimiter(calls_per_second=10, service_name="SpotifyWeb", clock=clock)
        await limiter.wait_if_needed()

        usage = limiter.get_current_usage()
        assert usage["service"] == "SpotifyWeb"
        assert usage["total_requests"] == 1
        assert usage["tokens_available"] == 19

        limiter.reset()
        assert limiter.get_current_usage()["total_requests"] == 0
        assert limiter.tokens == 20

    def test_for_spotify_web(self):
        limiter = RateLimiter.for_spotify_web(4)

        assert limiter.calls_per_second == 4
        assert limiter.service_name == "SpotifyWeb"
