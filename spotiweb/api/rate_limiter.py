"""
Rate Limiter

Token-bucket rate limiting shared by every request a client issues,
including token minting and secret registry calls.
"""

import asyncio
import time
from typing import Callable, Optional

import structlog

logger = structlog.get_logger(__name__)


class RateLimiter:
    """
    Token bucket rate limiter.

    The bucket starts full so that a burst of requests (token mint followed
    by the first catalog page) is not delayed, then refills continuously at
    ``calls_per_second``.
    """

    def __init__(
        self,
        calls_per_second: float = 10.0,
        burst_size: Optional[int] = None,
        service_name: str = "api",
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize rate limiter.

        Args:
            calls_per_second: Sustained request rate
            burst_size: Maximum burst size (defaults to calls_per_second * 2)
            service_name: Service name for logging
            clock: Monotonic clock, injectable for tests
        """
        if calls_per_second <= 0:
            raise ValueError("calls_per_second must be positive")

        self.calls_per_second = calls_per_second
        self.burst_size = burst_size or max(int(calls_per_second * 2), 1)
        self.service_name = service_name
        self._clock = clock

        self.tokens = float(self.burst_size)
        self.last_refill = self._clock()
        self.total_requests = 0
        self.lock = asyncio.Lock()

        self.logger = logger.bind(service=f"RateLimiter-{service_name}")
        self.logger.debug(
            "Rate limiter initialized",
            calls_per_second=calls_per_second,
            burst_size=self.burst_size
        )

    @classmethod
    def for_spotify_web(cls, calls_per_second: float = 10.0) -> "RateLimiter":
        """
        Create rate limiter configured for the Spotify web endpoints.

        Args:
            calls_per_second: Calls per second (default: 10.0)

        Returns:
            Configured rate limiter
        """
        return cls(calls_per_second=calls_per_second, service_name="SpotifyWeb")

    async def wait_if_needed(self) -> None:
        """
        Wait if necessary to respect the rate limit.

        Must be awaited before each outgoing request.
        """
        async with self.lock:
            wait_time = self._refill_and_get_wait()
            if wait_time > 0:
                self.logger.debug("Rate limit wait required", wait_time=wait_time)
                await asyncio.sleep(wait_time)
                self._refill_and_get_wait()

            self.tokens = max(self.tokens - 1, 0.0)
            self.total_requests += 1

    def _refill_and_get_wait(self) -> float:
        """Refill the bucket and return seconds until a token is available."""
        current_time = self._clock()
        elapsed = current_time - self.last_refill
        self.tokens = min(float(self.burst_size), self.tokens + elapsed * self.calls_per_second)
        self.last_refill = current_time

        if self.tokens >= 1:
            return 0.0
        return (1.0 - self.tokens) / self.calls_per_second

    def get_current_usage(self) -> dict:
        """
        Get current rate limit usage statistics.

        Returns:
            Dictionary with current usage information
        """
        return {
            "service": self.service_name,
            "tokens_available": self.tokens,
            "burst_capacity": self.burst_size,
            "calls_per_second_limit": self.calls_per_second,
            "total_requests": self.total_requests,
        }

    def reset(self) -> None:
        """Reset rate limiter state (useful for testing)."""
        self.tokens = float(self.burst_size)
        self.last_refill = self._clock()
        self.total_requests = 0
        self.logger.debug("Rate limiter reset")
