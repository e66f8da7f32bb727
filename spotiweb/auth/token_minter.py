"""
Token Minter

Mints bearer tokens in one of two ways:

- client credentials: a standard OAuth2 ``client_credentials`` grant
  against the accounts service, with no fallback;
- anonymous: the web-player flow, tried as an ordered list of strategies.
  The ``totp`` strategy signs a token request with one-time codes derived
  from the secret pool, evicting secrets that fail and forcing one registry
  refresh when the pool runs dry. The ``html`` strategy scrapes an inline
  token from the web-player page and only runs when the TOTP pipeline
  itself broke (registry, server time or markup unavailable), not when the
  pool was cleanly exhausted.
"""

import base64
import re
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import structlog

from ..api.base_client import BaseAPIClient
from ..api.constants import (
    ACCOUNTS_TOKEN_URL,
    SERVER_TIME_URL,
    TOTP_VERSION,
    USER_AGENT,
    WEB_PLAYER_HEADERS,
    WEB_PLAYER_URL,
    WEB_TOKEN_URL
)
from ..api.exceptions import AuthError, MarkupError, NetworkError, SchemaError, SpotiwebError
from ..models.auth_models import BearerToken, CredentialMode, Secret, TokenKind
from .secret_store import SecretStore
from .totp import derive_signing_key, generate_totp

logger = structlog.get_logger(__name__)

PLAYER_SCRIPT_RE = re.compile(r'<script[^>]+src="([^"]*web-player/web-player\.[^"]*\.js)"')
BUILD_VER_RE = re.compile(r'buildVer"?\s*:\s*"([^"]+)"')
BUILD_DATE_RE = re.compile(r'buildDate"?\s*:\s*"([^"]+)"')
INLINE_TOKEN_RE = re.compile(r'"accessToken"\s*:\s*"([^"]+)"')
INLINE_EXPIRY_RE = re.compile(r'"accessTokenExpirationTimestampMs"\s*:\s*(\d+)')


def current_time_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class BuildVersion:
    """Web-player build identifiers sent with the token request."""
    build_ver: str
    build_date: Optional[str] = None


@dataclass
class MintOutcome:
    """
    Result of one mint strategy.

    ``terminal`` marks a failure after which no further strategy may run.
    """
    strategy: str
    token: Optional[BearerToken] = None
    error: Optional[Exception] = None
    terminal: bool = False

    @property
    def ok(self) -> bool:
        return self.token is not None


class TokenMinter:
    """Produces BearerTokens for a client."""

    def __init__(
        self,
        http: BaseAPIClient,
        secret_store: SecretStore,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        scrape_build_version: bool = True,
        user_agent: str = USER_AGENT,
        clock_ms: Callable[[], int] = current_time_ms
    ):
        """
        Initialize token minter.

        Args:
            http: Client used for every token-related request
            secret_store: Source of TOTP secrets for the anonymous flow
            client_id: Application client ID (client-credentials mode)
            client_secret: Application client secret (client-credentials mode)
            scrape_build_version: Read buildVer from the web-player bundle;
                otherwise the selected secret's version is sent
            user_agent: User-Agent for web-player requests
            clock_ms: Wall clock in epoch milliseconds
        """
        self.http = http
        self.secret_store = secret_store
        self.client_id = client_id
        self.client_secret = client_secret
        self.scrape_build_version = scrape_build_version
        self.user_agent = user_agent
        self._clock_ms = clock_ms

        self.logger = logger.bind(component="TokenMinter")

    async def mint(self, mode: CredentialMode) -> BearerToken:
        """
        Mint a new token.

        Raises:
            AuthError: Every strategy for ``mode`` failed
        """
        if mode is CredentialMode.CLIENT_CREDENTIALS:
            return await self._mint_client_credentials()
        return await self._mint_anonymous()

    # Client credentials

    async def _mint_client_credentials(self) -> BearerToken:
        if not self.client_id or not self.client_secret:
            raise AuthError("Client credentials mode requires client_id and client_secret")

        authorization = base64.b64encode(
            f"{self.client_id}:{self.client_secret}".encode()
        ).decode()
        headers = {
            "Authorization": f"Basic {authorization}",
            "Content-Type": "application/x-www-form-urlencoded",
            "User-Agent": self.user_agent,
        }

        try:
            payload = await self.http.post_form(
                ACCOUNTS_TOKEN_URL,
                data={"grant_type": "client_credentials"},
                headers=headers
            )
            token = self.parse_client_credentials_token(payload, self._clock_ms())
        except (NetworkError, SchemaError) as e:
            self.logger.error("Client credentials grant failed", error=str(e))
            raise AuthError(f"Client credentials grant failed: {e}") from e

        self.logger.info("Client credentials token minted", expires_at_ms=token.expires_at_ms)
        return token

    @staticmethod
    def parse_client_credentials_token(payload: Any, now_ms: int) -> BearerToken:
        if not isinstance(payload, dict):
            raise SchemaError("Token response is not an object")
        access_token = payload.get("access_token")
        expires_in = payload.get("expires_in")
        if not isinstance(access_token, str) or not access_token:
            raise SchemaError("Token response has no access_token")
        if isinstance(expires_in, bool) or not isinstance(expires_in, (int, float)):
            raise SchemaError("Token response has no numeric expires_in")

        token_type = payload.get("token_type")
        return BearerToken(
            value=access_token,
            kind=TokenKind.CLIENT_CREDENTIALS,
            expires_at_ms=now_ms + int(expires_in * 1000),
            token_type=token_type if isinstance(token_type, str) and token_type else "Bearer"
        )

    # Anonymous web-player flow

    def _anonymous_strategies(self) -> List[Tuple[str, Callable[[], Awaitable[MintOutcome]]]]:
        return [
            ("totp", self._totp_strategy),
            ("html", self._html_strategy),
        ]

    async def _mint_anonymous(self) -> BearerToken:
        failures = []
        for name, strategy in self._anonymous_strategies():
            outcome = await strategy()
            if outcome.ok:
                self.logger.info(
                    "Anonymous token minted",
                    strategy=name,
                    expires_at_ms=outcome.token.expires_at_ms
                )
                return outcome.token

            failures.append(f"{name}: {outcome.error}")
            if outcome.terminal:
                break
            self.logger.warning("Mint strategy failed; trying next", strategy=name, error=str(outcome.error))

        self.logger.error("Anonymous token mint exhausted", failures=failures)
        raise AuthError("Anonymous token mint failed (" + "; ".join(failures) + ")")

    async def _totp_strategy(self) -> MintOutcome:
        try:
            return await self._rotate_secrets()
        except SpotiwebError as e:
            return MintOutcome(strategy="totp", error=e)

    async def _rotate_secrets(self) -> MintOutcome:
        """
        Try secrets front to back, evicting each one that fails.

        An empty pool triggers exactly one forced registry refresh; running
        dry again afterwards is terminal.
        """
        build = await self.fetch_build_version() if self.scrape_build_version else None
        pool = list(await self.secret_store.get())
        refreshed = False

        while True:
            if not pool:
                if refreshed:
                    return MintOutcome(
                        strategy="totp",
                        error=AuthError("Secret pool exhausted after forced refresh"),
                        terminal=True
                    )
                self.logger.warning("Secret pool exhausted; forcing registry refresh")
                pool = list(await self.secret_store.force_refresh())
                refreshed = True
                continue

            secret, pool = pool[0], pool[1:]
            outcome = await self._exchange(secret, build)
            if outcome.ok:
                return outcome
            self.secret_store.evict(secret)

    async def _exchange(self, secret: Secret, build: Optional[BuildVersion]) -> MintOutcome:
        """Sign a token request with one secret and exchange it."""
        key = derive_signing_key(secret)
        server_time = await self.fetch_server_time()
        client_time = self._clock_ms()
        params = self.build_token_params(secret, key, server_time, client_time, build)

        try:
            payload = await self.http.get_json(
                WEB_TOKEN_URL,
                params=params,
                headers=self._web_headers()
            )
            token = self.parse_web_token(payload)
        except (NetworkError, SchemaError) as e:
            self.logger.warning("Token exchange rejected", secret_version=secret.version, error=str(e))
            return MintOutcome(strategy="totp", error=e)

        return MintOutcome(strategy="totp", token=token)

    @staticmethod
    def build_token_params(
        secret: Secret,
        key: bytes,
        server_time_s: int,
        client_time_ms: int,
        build: Optional[BuildVersion] = None
    ) -> Dict[str, str]:
        """Query parameters for the web-player token endpoint."""
        params = {
            "reason": "init",
            "productType": "web-player",
            "sTime": str(server_time_s),
            "cTime": str(client_time_ms),
            "totp": generate_totp(key, client_time_ms),
            "totpServer": generate_totp(key, server_time_s * 1000),
            "totpVer": TOTP_VERSION,
        }
        if build is None:
            params["buildVer"] = str(secret.version)
        else:
            params["buildVer"] = build.build_ver
            if build.build_date:
                params["buildDate"] = build.build_date
        return params

    @staticmethod
    def parse_web_token(payload: Any) -> BearerToken:
        if not isinstance(payload, dict):
            raise SchemaError("Web token response is not an object")
        access_token = payload.get("accessToken")
        expires_at = payload.get("accessTokenExpirationTimestampMs")
        if not isinstance(access_token, str) or not access_token:
            raise SchemaError("Web token response has no accessToken")
        if isinstance(expires_at, bool) or not isinstance(expires_at, int):
            raise SchemaError("Web token response has no accessTokenExpirationTimestampMs")
        return BearerToken(value=access_token, kind=TokenKind.ANONYMOUS_WEB, expires_at_ms=expires_at)

    async def fetch_server_time(self) -> int:
        """Server clock in epoch seconds."""
        payload = await self.http.get_json(SERVER_TIME_URL, headers=self._web_headers())
        server_time = payload.get("serverTime") if isinstance(payload, dict) else None
        if isinstance(server_time, bool) or not isinstance(server_time, int):
            raise SchemaError("Server time response has no integer serverTime")
        return server_time

    async def fetch_build_version(self) -> BuildVersion:
        """
        Read buildVer/buildDate from the web-player bundle.

        Raises:
            MarkupError: The bundle script or its build fields cannot be found
        """
        html = await self.http.get_text(WEB_PLAYER_URL, headers={"User-Agent": self.user_agent})
        match = PLAYER_SCRIPT_RE.search(html)
        if not match:
            raise MarkupError("Could not find web-player script source")

        script = await self.http.get_text(
            match.group(1),
            headers={"Dnt": "1", "Referer": WEB_PLAYER_HEADERS["Referer"], "User-Agent": self.user_agent}
        )
        build_ver = BUILD_VER_RE.search(script)
        if not build_ver:
            raise MarkupError("Could not find buildVer in web-player script")
        build_date = BUILD_DATE_RE.search(script)

        return BuildVersion(
            build_ver=build_ver.group(1),
            build_date=build_date.group(1) if build_date else None
        )

    async def _html_strategy(self) -> MintOutcome:
        try:
            html = await self.http.get_text(WEB_PLAYER_URL, headers={"User-Agent": self.user_agent})
            token = self.parse_inline_token(html)
        except SpotiwebError as e:
            return MintOutcome(strategy="html", error=e)
        return MintOutcome(strategy="html", token=token)

    @staticmethod
    def parse_inline_token(html: str) -> BearerToken:
        """
        Extract the token the web-player page embeds for its own bootstrap.

        Raises:
            MarkupError: No inline token or expiry in the page
        """
        token = INLINE_TOKEN_RE.search(html)
        expiry = INLINE_EXPIRY_RE.search(html)
        if not token or not expiry:
            raise MarkupError("No inline access token in web-player page")
        return BearerToken(
            value=token.group(1),
            kind=TokenKind.ANONYMOUS_WEB,
            expires_at_ms=int(expiry.group(1))
        )

    def _web_headers(self) -> Dict[str, str]:
        return {**WEB_PLAYER_HEADERS, "User-Agent": self.user_agent}
