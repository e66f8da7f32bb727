"""
spotiweb

Async client for the Spotify web-player API with self-minted tokens
(anonymous TOTP flow or client credentials) and cursor pagination.
"""

from .api import (
    AuthError,
    BaseAPIClient,
    MarkupError,
    NetworkError,
    RateLimiter,
    SchemaError,
    SpotiwebError,
    UnsupportedOperationError
)
from .api.client_factory import (
    APIClientFactory,
    create_spotify_web_client,
    get_client_factory,
    reset_client_factory
)
from .api.spotify_client import SpotifyWebClient
from .models import (
    AlbumRecord,
    BearerToken,
    ClientConfig,
    CredentialMode,
    PlaylistRecord,
    SearchHit,
    Secret,
    TokenKind,
    TrackRecord
)
from .utils import parse_spotify_url, setup_logging

__version__ = "0.1.0"

__all__ = [
    # Client
    "SpotifyWebClient",
    "APIClientFactory",
    "create_spotify_web_client",
    "get_client_factory",
    "reset_client_factory",
    "BaseAPIClient",
    "RateLimiter",

    # Models
    "AlbumRecord",
    "BearerToken",
    "ClientConfig",
    "CredentialMode",
    "PlaylistRecord",
    "SearchHit",
    "Secret",
    "TokenKind",
    "TrackRecord",

    # Errors
    "SpotiwebError",
    "NetworkError",
    "AuthError",
    "SchemaError",
    "MarkupError",
    "UnsupportedOperationError",

    # Utilities
    "parse_spotify_url",
    "setup_logging",
]
