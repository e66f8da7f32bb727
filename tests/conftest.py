"""
Shared fixtures for spotiweb tests.

Raw payload builders mirror the shapes the Spotify API returns.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from spotiweb.models.auth_models import BearerToken, Secret, TokenKind


@pytest.fixture
def make_raw_track():
    """Factory for raw track objects as returned by /tracks and search."""
    def _make(index=0, artists=True, name=None, images=True):
        raw = {
            "id": f"track{index}",
            "name": name if name is not None else f"Track {index}",
            "duration_ms": 180000 + index,
            "explicit": False,
            "external_urls": {"spotify": f"https://open.spotify.com/track/track{index}"},
            "artists": [{"id": f"artist{index}", "name": f"Artist {index}"}] if artists else [],
        }
        if images:
            raw["album"] = {"images": [{"url": f"https://i.scdn.co/image/{index}", "width": 640, "height": 640}]}
        return raw
    return _make


@pytest.fixture
def golden_secret():
    """Secret whose derived signing key is the RFC 6238 test key "12345678901234567890"."""
    return Secret(
        version=33,
        key_bytes=(8, 8, 8, 8, 8, 8, 8, 24, 24, 18, 18, 22, 22, 18, 18, 30, 30, 18, 18, 28)
    )


@pytest.fixture
def valid_token():
    return BearerToken(value="test-token", kind=TokenKind.ANONYMOUS_WEB, expires_at_ms=10 ** 13)


@pytest.fixture
def mock_token_cache(valid_token):
    """Token cache that always hands out a valid token."""
    cache = Mock()
    cache.ensure_valid = AsyncMock(return_value=valid_token)
    cache.invalidate = Mock()
    return cache
