"""
Secret Store

Caches the pool of TOTP signing secrets published by a third-party registry.
The registry rotates secrets without notice, so the pool is kept for a TTL,
single broken entries are evicted, and a stale pool is served when the
registry cannot be reached.
"""

import asyncio
import time
from typing import Callable, List, Optional

import structlog

from ..api.base_client import BaseAPIClient
from ..api.constants import SECRET_REGISTRY_URL, SECRET_TTL_SECONDS
from ..api.exceptions import NetworkError, SchemaError
from ..models.auth_models import Secret, parse_secret_registry

logger = structlog.get_logger(__name__)


class SecretStore:
    """
    TTL cache over the remote secret registry.

    The pool keeps registry order; callers consume it front to back.
    """

    def __init__(
        self,
        http: BaseAPIClient,
        registry_url: str = SECRET_REGISTRY_URL,
        ttl_seconds: float = SECRET_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize secret store.

        Args:
            http: Client used to reach the registry
            registry_url: JSON registry of ``{version, secret}`` entries
            ttl_seconds: Age after which the pool is refetched
            clock: Monotonic clock, injectable for tests
        """
        self.http = http
        self.registry_url = registry_url
        self.ttl_seconds = ttl_seconds
        self._clock = clock

        self._pool: Optional[List[Secret]] = None
        self._fetched_at: Optional[float] = None
        self._lock = asyncio.Lock()

        self.logger = logger.bind(component="SecretStore")

    @property
    def pool(self) -> Optional[List[Secret]]:
        """Cached pool (a copy), or None if nothing was fetched yet."""
        return list(self._pool) if self._pool is not None else None

    @property
    def age(self) -> Optional[float]:
        """Seconds since the last successful fetch."""
        if self._fetched_at is None:
            return None
        return self._clock() - self._fetched_at

    def is_fresh(self) -> bool:
        age = self.age
        return self._pool is not None and age is not None and age < self.ttl_seconds

    async def fetch(self) -> List[Secret]:
        """
        Retrieve and validate the registry.

        Returns:
            Secrets in registry order

        Raises:
            NetworkError: Registry unreachable or non-2xx
            SchemaError: Payload is not a non-empty array of valid entries
        """
        payload = await self.http.get_json(self.registry_url)
        secrets = parse_secret_registry(payload)
        self.logger.info(
            "Secret registry fetched",
            secret_count=len(secrets),
            versions=[secret.version for secret in secrets]
        )
        return secrets

    async def get(self) -> List[Secret]:
        """
        Return the cached pool, refetching it once the TTL has elapsed.

        A failed refetch falls back to the stale pool when one exists.
        """
        async with self._lock:
            if self.is_fresh():
                return list(self._pool)

            try:
                self._replace(await self.fetch())
            except (NetworkError, SchemaError) as e:
                if self._pool is None:
                    raise
                self.logger.warning(
                    "Secret registry refresh failed; serving stale pool",
                    error=str(e),
                    stale_age=self.age,
                    secret_count=len(self._pool)
                )
            return list(self._pool)

    async def force_refresh(self) -> List[Secret]:
        """Refetch the registry unconditionally and replace the pool."""
        async with self._lock:
            self._replace(await self.fetch())
            return list(self._pool)

    def evict(self, secret: Secret) -> None:
        """Remove one secret from the cached pool; the TTL is left untouched."""
        if not self._pool or secret not in self._pool:
            return
        self._pool.remove(secret)
        self.logger.info("Secret evicted", version=secret.version, remaining=len(self._pool))

    def _replace(self, secrets: List[Secret]) -> None:
        self._pool = list(secrets)
        self._fetched_at = self._clock()
