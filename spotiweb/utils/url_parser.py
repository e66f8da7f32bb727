"""Helpers to turn Spotify links and URIs into catalog IDs."""

import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

SPOTIFY_URL_RE = re.compile(
    r"^(?:https://open\.spotify\.com/(?:intl-[a-zA-Z]{0,3}/)?(?:user/[A-Za-z0-9]+/)?|spotify:)"
    r"(album|playlist|track)(?:[/:])([A-Za-z0-9]+).*$"
)


@dataclass(frozen=True)
class SpotifyLink:
    kind: str  # "track", "playlist" or "album"
    id: str


def is_url(query: str) -> bool:
    try:
        return urlparse(query).scheme in ("http", "https")
    except ValueError:
        return False


def parse_spotify_url(query: str) -> Optional[SpotifyLink]:
    """
    Parse an open.spotify.com link or ``spotify:`` URI.

    >>> parse_spotify_url("spotify:track:4uLU6hMCjMI75M1A2tKUQC")
    SpotifyLink(kind='track', id='4uLU6hMCjMI75M1A2tKUQC')
    """
    match = SPOTIFY_URL_RE.match(query.strip())
    if not match:
        return None
    return SpotifyLink(kind=match.group(1), id=match.group(2))
