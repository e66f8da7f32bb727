"""
Tests for BaseAPIClient request handling.

The aiohttp session is replaced by a scripted fake; backoff sleeps are
patched out.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

from spotiweb.api.base_client import BaseAPIClient
from spotiweb.api.exceptions import NetworkError, SchemaError
from spotiweb.api.rate_limiter import RateLimiter
from spotiweb.api.spotify_client import SpotifyWebClient


class DummyClient(BaseAPIClient):
    def _extract_api_error(self, data):
        if isinstance(data, dict) and "error" in data:
            return str(data["error"])
        return None


class FakeResponse:
    def __init__(self, status=200, body="{}", headers=None):
        self.status = status
        self._body = body
        self.headers = headers or {}

    async def text(self):
        if isinstance(self._body, bytes):
            return self._body.decode("utf-8")
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Replays scripted responses (or raises scripted exceptions) per request."""

    def __init__(self, script):
        self.script = list(script)
        self.requests = []
        self.closed = False

    def request(self, **kwargs):
        self.requests.append(kwargs)
        step = self.script.pop(0)
        if isinstance(step, Exception):
            raise step
        return step

    async def close(self):
        self.closed = True


@pytest.fixture
def client():
    return DummyClient(base_url="https://api.test/v1/", retries=2, service_name="Dummy")


@pytest.fixture
def no_sleep():
    with patch("spotiweb.api.base_client.asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep


def install(client, *script):
    session = FakeSession(script)
    client.session = session
    return session


class TestBuildUrl:

    def test_relative_endpoint(self, client):
        assert client._build_url("search") == "https://api.test/v1/search"
        assert client._build_url("/tracks/1") == "https://api.test/v1/tracks/1"

    def test_absolute_url_passes_through(self, client):
        url = "https://api.test/v1/playlists/x/tracks?offset=100"
        assert client._build_url(url) == url


class TestMakeRequest:
    """Success, retry and error mapping."""

    @pytest.mark.asyncio
    async def test_requires_session(self, client):
        with pytest.raises(RuntimeError):
            await client._make_request("search")

    @pytest.mark.asyncio
    async def test_success_parses_json_and_drops_none_params(self, client):
        session = install(client, FakeResponse(body='{"ok": true}'))

        data = await client._make_request("search", params={"q": "x", "market": None, "limit": 5})

        assert data == {"ok": True}
        request = session.requests[0]
        assert request["method"] == "GET"
        assert request["url"] == "https://api.test/v1/search"
        assert request["params"] == {"q": "x", "limit": "5"}

    @pytest.mark.asyncio
    async def test_text_mode_returns_body(self, client):
        install(client, FakeResponse(body="<html></html>"))

        assert await client.get_text("https://open.test/") == "<html></html>"

    @pytest.mark.asyncio
    async def test_post_form_sends_body(self, client):
        session = install(client, FakeResponse(body='{"access_token": "t"}'))

        await client.post_form("https://accounts.test/token", data={"grant_type": "client_credentials"})

        assert session.requests[0]["method"] == "POST"
        assert session.requests[0]["data"] == {"grant_type": "client_credentials"}

    @pytest.mark.asyncio
    async def test_invalid_json_raises_schema_error(self, client):
        install(client, FakeResponse(body="not json"))

        with pytest.raises(SchemaError):
            await client._make_request("search")

    @pytest.mark.asyncio
    async def test_api_error_body_raises_schema_error(self, client):
        install(client, FakeResponse(body='{"error": "nope"}'))

        with pytest.raises(SchemaError):
            await client._make_request("search")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("expect_json", [True, False])
    async def test_undecodable_body_raises_schema_error(self, client, no_sleep, expect_json):
        session = install(client, FakeResponse(body=b'{"name": "\xff\xfe"}'))

        with pytest.raises(SchemaError) as exc_info:
            await client._make_request("tracks/x", expect_json=expect_json)

        assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)
        assert len(session.requests) == 1

    @pytest.mark.asyncio
    async def test_undecodable_track_body_yields_none(self, mock_token_cache):
        spotify = SpotifyWebClient(token_cache=mock_token_cache)
        install(spotify, FakeResponse(body=b'{"name": "\xff\xfe"}'))

        assert await spotify.get_track("x") is None

    @pytest.mark.asyncio
    async def test_client_error_status_is_not_retried(self, client, no_sleep):
        session = install(client, FakeResponse(status=404), FakeResponse())

        with pytest.raises(NetworkError) as exc_info:
            await client._make_request("tracks/x")

        assert exc_info.value.status == 404
        assert exc_info.value.url == "https://api.test/v1/tracks/x"
        assert len(session.requests) == 1
        no_sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_server_error_is_retried(self, client, no_sleep):
        session = install(client, FakeResponse(status=503), FakeResponse(status=502), FakeResponse(body="[1]"))

        assert await client._make_request("search") == [1]
        assert len(session.requests) == 3
        assert no_sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_rate_limit_honours_retry_after(self, client, no_sleep):
        install(client, FakeResponse(status=429, headers={"Retry-After": "3"}), FakeResponse(body="{}"))

        await client._make_request("search")

        no_sleep.assert_awaited_once_with(3.0)

    @pytest.mark.asyncio
    async def test_retries_exhausted_raise_with_last_status(self, client, no_sleep):
        session = install(client, *(FakeResponse(status=500) for _ in range(3)))

        with pytest.raises(NetworkError) as exc_info:
            await client._make_request("search")

        assert exc_info.value.status == 500
        assert len(session.requests) == 3

    @pytest.mark.asyncio
    async def test_timeouts_become_network_error(self, client, no_sleep):
        install(client, asyncio.TimeoutError(), asyncio.TimeoutError(), asyncio.TimeoutError())

        with pytest.raises(NetworkError, match="timed out"):
            await client._make_request("search")

    @pytest.mark.asyncio
    async def test_connection_error_then_success(self, client, no_sleep):
        install(client, aiohttp.ClientConnectionError("reset"), FakeResponse(body='{"a": 1}'))

        assert await client._make_request("search") == {"a": 1}

    @pytest.mark.asyncio
    async def test_rate_limiter_is_consulted_per_attempt(self, no_sleep):
        limiter = RateLimiter(calls_per_second=100)
        client = DummyClient(base_url="https://api.test", rate_limiter=limiter, retries=1)
        install(client, FakeResponse(status=500), FakeResponse(body="{}"))

        await client._make_request("x")

        assert limiter.total_requests == 2


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_context_manager_opens_and_closes_session(self, client):
        async with client:
            assert isinstance(client.session, aiohttp.ClientSession)
            assert client.get_service_info()["session_active"]

        assert client.session is None

    def test_backoff_time_without_retry_after(self, client):
        response = FakeResponse(status=429)

        assert client._calculate_backoff_time(response, 0) == 1
        assert client._calculate_backoff_time(response, 3) == 8
