"""
Base API Client

Provides unified HTTP request handling, rate limiting, retries and error
handling for the Spotify web client and the token machinery behind it.
"""

import asyncio
import json
import random
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import aiohttp
import structlog

from .exceptions import NetworkError, SchemaError
from .rate_limiter import RateLimiter

logger = structlog.get_logger(__name__)


class BaseAPIClient(ABC):
    """
    Base HTTP client with unified request handling, rate limiting, and error handling.

    Owns a single ``aiohttp.ClientSession`` for its lifetime. Every call is
    bounded by ``timeout`` and retried up to ``retries`` times on timeouts,
    connection errors, 429 and 5xx responses. Other non-2xx responses raise
    ``NetworkError`` straight away.
    """

    def __init__(
        self,
        base_url: str,
        rate_limiter: Optional[RateLimiter] = None,
        timeout: float = 10,
        retries: int = 2,
        service_name: str = "api"
    ):
        """
        Initialize base API client.

        Args:
            base_url: Base URL for relative endpoints
            rate_limiter: Rate limiter instance for this client
            timeout: Request timeout in seconds
            retries: Retry attempts after the first try
            service_name: Service name for logging and identification
        """
        self.base_url = base_url.rstrip('/')
        self.rate_limiter = rate_limiter
        self.timeout = timeout
        self.retries = retries
        self.service_name = service_name
        self.session: Optional[aiohttp.ClientSession] = None

        self.logger = logger.bind(
            service=service_name,
            component="BaseAPIClient",
            base_url=base_url
        )

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def start(self) -> None:
        """Open the HTTP session if it is not open yet."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
            self.logger.debug("API client session started")

    async def close(self) -> None:
        """Close the HTTP session."""
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.debug("API client session closed")

    def _build_url(self, endpoint: str) -> str:
        """Resolve an endpoint against base_url; absolute URLs pass through."""
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        if not endpoint:
            return self.base_url
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    async def _make_request(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        data: Optional[Dict[str, Any]] = None,
        retries: Optional[int] = None,
        expect_json: bool = True
    ) -> Any:
        """
        Make rate-limited HTTP request with error handling and retries.

        Args:
            endpoint: Endpoint relative to base_url, or an absolute URL
            params: Query parameters (None values are dropped)
            method: HTTP method
            headers: Request headers
            data: Form body for POST requests
            retries: Retry attempts, defaults to the client setting
            expect_json: Parse the body as JSON instead of returning text

        Returns:
            Parsed JSON response data, or the body text

        Raises:
            NetworkError: Transport failure or non-2xx status
            SchemaError: Body is not valid JSON, or carries an API error
        """
        if not self.session:
            self.logger.error("Client not initialized")
            raise RuntimeError(
                f"{self.service_name} client not initialized. Use async context manager."
            )

        retries = self.retries if retries is None else retries
        url = self._build_url(endpoint)
        request_params = {k: str(v) for k, v in (params or {}).items() if v is not None}
        request_headers = dict(headers or {})

        request_context = {
            "method": method,
            "url": url,
            "param_count": len(request_params),
        }

        for attempt in range(retries + 1):
            if self.rate_limiter:
                await self.rate_limiter.wait_if_needed()

            try:
                self.logger.debug(
                    "Making API request",
                    attempt=attempt + 1,
                    max_attempts=retries + 1,
                    **request_context
                )

                async with self.session.request(
                    method=method,
                    url=url,
                    params=request_params or None,
                    data=data,
                    headers=request_headers
                ) as response:

                    if 200 <= response.status < 300:
                        body = await self._read_body(response, url)
                        self.logger.debug(
                            "API request successful",
                            url=url,
                            status=response.status,
                            response_size=len(body)
                        )
                        if not expect_json:
                            return body
                        return self._parse_body(body, url)

                    if response.status == 429 and attempt < retries:
                        wait_time = self._calculate_backoff_time(response, attempt)
                        self.logger.warning(
                            "Rate limited - backing off",
                            attempt=attempt + 1,
                            wait_time=wait_time,
                            url=url,
                            retry_after=response.headers.get('Retry-After')
                        )
                        await asyncio.sleep(wait_time)
                        continue

                    if response.status >= 500 and attempt < retries:
                        self.logger.warning(
                            f"{self.service_name} server error",
                            status=response.status,
                            url=url,
                            attempt=attempt + 1
                        )
                        await self._exponential_backoff(attempt)
                        continue

                    self.logger.warning(
                        f"{self.service_name} HTTP error",
                        status=response.status,
                        url=url,
                        attempt=attempt + 1
                    )
                    raise NetworkError(
                        f"{self.service_name} request failed with HTTP {response.status}",
                        status=response.status,
                        url=url
                    )

            except asyncio.TimeoutError as e:
                self.logger.warning(
                    "Request timeout",
                    attempt=attempt + 1,
                    url=url,
                    timeout=self.timeout
                )
                if attempt == retries:
                    raise NetworkError(
                        f"{self.service_name} request timed out after {retries + 1} attempts",
                        url=url
                    ) from e
                await self._exponential_backoff(attempt)

            except aiohttp.ClientError as e:
                self.logger.warning(
                    "HTTP client error",
                    error=str(e),
                    error_type=type(e).__name__,
                    attempt=attempt + 1,
                    url=url
                )
                if attempt == retries:
                    raise NetworkError(f"{self.service_name} client error: {e}", url=url) from e
                await self._exponential_backoff(attempt)

        # Only reachable when the final attempt was a retried 429/5xx
        raise NetworkError(
            f"{self.service_name} request failed after {retries + 1} attempts",
            url=url
        )

    async def _read_body(self, response: aiohttp.ClientResponse, url: str) -> str:
        """Decode a response body in its declared charset."""
        try:
            return await response.text()
        except (UnicodeDecodeError, LookupError) as e:
            self.logger.error(f"{self.service_name} undecodable response body", url=url, error=str(e))
            raise SchemaError(f"{self.service_name} returned an undecodable body from {url}") from e

    def _parse_body(self, body: str, url: str) -> Any:
        """Decode a JSON body and surface API errors carried inside it."""
        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            self.logger.error(f"{self.service_name} invalid JSON response", url=url, error=str(e))
            raise SchemaError(f"{self.service_name} returned invalid JSON from {url}") from e

        error_info = self._extract_api_error(data)
        if error_info:
            self.logger.error("API error in response body", error=error_info, url=url)
            raise SchemaError(f"{self.service_name} API error: {error_info}")
        return data

    @abstractmethod
    def _extract_api_error(self, data: Any) -> Optional[str]:
        """
        Extract API-specific error information from response data.

        Args:
            data: Parsed response data

        Returns:
            Error message if found, None otherwise
        """
        pass

    async def get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> Any:
        """GET a URL and return decoded JSON."""
        return await self._make_request(url, params=params, headers=headers)

    async def get_text(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> str:
        """GET a URL and return the raw body."""
        return await self._make_request(url, params=params, headers=headers, expect_json=False)

    async def post_form(
        self,
        url: str,
        data: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None
    ) -> Any:
        """POST a form-encoded body and return decoded JSON."""
        return await self._make_request(url, method="POST", data=data, headers=headers)

    def _calculate_backoff_time(self, response: aiohttp.ClientResponse, attempt: int) -> float:
        """
        Calculate backoff time for rate limiting.

        Args:
            response: HTTP response with rate limit information
            attempt: Current attempt number

        Returns:
            Wait time in seconds
        """
        retry_after = response.headers.get('Retry-After')
        if retry_after:
            try:
                return min(float(retry_after), 60.0)
            except ValueError:
                pass

        return min(2 ** attempt, 60)

    async def _exponential_backoff(self, attempt: int, base_delay: float = 1.0):
        """
        Exponential backoff with jitter.

        Args:
            attempt: Current attempt number (0-based)
            base_delay: Base delay in seconds
        """
        delay = base_delay * (2 ** attempt)
        jitter = random.uniform(0.1, 0.3) * delay
        total_delay = min(delay + jitter, 60.0)

        self.logger.debug(
            "Backing off before retry",
            attempt=attempt + 1,
            delay=total_delay
        )

        await asyncio.sleep(total_delay)

    def get_service_info(self) -> Dict[str, Any]:
        """
        Get service information for monitoring.

        Returns:
            Service configuration and status information
        """
        return {
            "service_name": self.service_name,
            "base_url": self.base_url,
            "timeout": self.timeout,
            "retries": self.retries,
            "session_active": self.session is not None,
            "rate_limiter_type": type(self.rate_limiter).__name__ if self.rate_limiter else None,
        }
