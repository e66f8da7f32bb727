"""
Token Cache

Holds the single current bearer token of a client and mints a replacement
once it expires. Concurrent callers that find the token expired share one
mint.
"""

import asyncio
from typing import Callable, Optional

import structlog

from ..models.auth_models import BearerToken, CredentialMode
from .token_minter import TokenMinter, current_time_ms

logger = structlog.get_logger(__name__)


class TokenCache:
    """Single-writer holder for one client's bearer token."""

    def __init__(
        self,
        minter: TokenMinter,
        mode: CredentialMode,
        clock_ms: Callable[[], int] = current_time_ms
    ):
        self.minter = minter
        self.mode = mode
        self._clock_ms = clock_ms
        self._token: Optional[BearerToken] = None
        self._lock = asyncio.Lock()
        self.mint_count = 0

        self.logger = logger.bind(component="TokenCache", mode=mode.value)

    @property
    def token(self) -> Optional[BearerToken]:
        return self._token

    def is_expired(self) -> bool:
        """True when no token was minted yet or ``now > expires_at``."""
        return self._token is None or self._token.is_expired(self._clock_ms())

    async def ensure_valid(self) -> BearerToken:
        """
        Return a valid token, minting one first if needed.

        Raises:
            AuthError: Minting failed
        """
        if not self.is_expired():
            return self._token

        async with self._lock:
            # Another caller may have minted while we waited for the lock
            if self.is_expired():
                self.logger.debug("Token expired or missing; minting")
                self._token = await self.minter.mint(self.mode)
                self.mint_count += 1
            return self._token

    def invalidate(self) -> None:
        """Drop the held token so the next call mints a fresh one."""
        self._token = None
