"""
Models Module

Dataclass records for secrets, tokens and catalog items, plus the client
configuration model.
"""

from .auth_models import (
    BearerToken,
    CredentialMode,
    Secret,
    TokenKind,
    parse_secret_registry
)
from .catalog_models import (
    AlbumRecord,
    ArtistRef,
    ImageRef,
    Page,
    PlaylistRecord,
    SearchHit,
    TrackRecord,
    parse_search_hits,
    parse_track,
    parse_tracks,
    unwrap_playlist_items
)
from .config import ClientConfig

__all__ = [
    # Auth models
    "BearerToken",
    "CredentialMode",
    "Secret",
    "TokenKind",
    "parse_secret_registry",

    # Catalog models
    "AlbumRecord",
    "ArtistRef",
    "ImageRef",
    "Page",
    "PlaylistRecord",
    "SearchHit",
    "TrackRecord",
    "parse_search_hits",
    "parse_track",
    "parse_tracks",
    "unwrap_playlist_items",

    # Configuration
    "ClientConfig",
]
