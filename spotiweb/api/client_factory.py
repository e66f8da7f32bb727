"""
API Client Factory

Standardized creation of configured Spotify web clients. Clients built from
configurations with the same rate limit share one rate limiter, so several
clients in one process stay within a single request budget.
"""

from typing import Any, Dict, Optional

import structlog

from ..models.config import ClientConfig
from .rate_limiter import RateLimiter
from .spotify_client import SpotifyWebClient

logger = structlog.get_logger(__name__)


class APIClientFactory:
    """Factory for creating configured Spotify web clients."""

    def __init__(self, config: Optional[ClientConfig] = None):
        """
        Initialize client factory.

        Args:
            config: Default configuration; read from the environment when omitted
        """
        self.config = config
        self.logger = logger.bind(service="APIClientFactory")

        # Shared across clients with the same calls_per_second
        self._rate_limiters: Dict[str, RateLimiter] = {}

    def _resolve_config(self, config: Optional[ClientConfig]) -> ClientConfig:
        if config is not None:
            return config
        if self.config is None:
            self.config = ClientConfig.from_env()
        return self.config

    def _get_rate_limiter(self, calls_per_second: float) -> RateLimiter:
        key = f"spotify_web_{calls_per_second}"
        if key not in self._rate_limiters:
            self._rate_limiters[key] = RateLimiter.for_spotify_web(calls_per_second)
        return self._rate_limiters[key]

    def create_spotify_web_client(
        self,
        config: Optional[ClientConfig] = None,
        **overrides
    ) -> SpotifyWebClient:
        """
        Create a configured client.

        Args:
            config: Configuration for this client (defaults to the factory's)
            **overrides: Field overrides applied on top of the configuration

        Returns:
            SpotifyWebClient; open it with ``async with`` before use
        """
        resolved = self._resolve_config(config)
        if overrides:
            resolved = resolved.model_copy(update=overrides)

        client = SpotifyWebClient.from_config(
            resolved,
            rate_limiter=self._get_rate_limiter(resolved.calls_per_second)
        )

        self.logger.info(
            "Spotify web client created",
            credential_mode=resolved.credential_mode.value,
            market=resolved.market,
            calls_per_second=resolved.calls_per_second
        )
        return client

    def get_rate_limiter_stats(self) -> Dict[str, Dict[str, Any]]:
        """Usage statistics for all shared rate limiters."""
        return {key: limiter.get_current_usage() for key, limiter in self._rate_limiters.items()}

    def reset_rate_limiters(self) -> None:
        """Reset all rate limiters (useful for testing)."""
        for limiter in self._rate_limiters.values():
            limiter.reset()
        self.logger.info("All rate limiters reset")


# Global factory instance for convenience
_global_factory: Optional[APIClientFactory] = None


def get_client_factory(config: Optional[ClientConfig] = None) -> APIClientFactory:
    """
    Get global client factory instance.

    Args:
        config: Configuration used when the factory is first created

    Returns:
        Global APIClientFactory instance
    """
    global _global_factory

    if _global_factory is None:
        _global_factory = APIClientFactory(config)

    return _global_factory


def reset_client_factory():
    """Reset global client factory (useful for testing)."""
    global _global_factory
    _global_factory = None


def create_spotify_web_client(config: Optional[ClientConfig] = None, **overrides) -> SpotifyWebClient:
    """Create a client using the global factory."""
    return get_client_factory().create_spotify_web_client(config, **overrides)
