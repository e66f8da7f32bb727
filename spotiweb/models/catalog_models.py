"""
Catalog Models

Normalized track, playlist, album and search records built from raw Spotify
payloads. Raw objects are validated at the parse boundary: an entry without
a name, without artists, or without any way to link to it is dropped
(``None``), never surfaced.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import structlog

logger = structlog.get_logger(__name__)

OPEN_SPOTIFY_URL = "https://open.spotify.com"


@dataclass(frozen=True)
class ArtistRef:
    """Artist reference embedded in a track."""
    id: Optional[str]
    name: str


@dataclass(frozen=True)
class ImageRef:
    """Cover art entry."""
    url: str
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass
class TrackRecord:
    """A playable track."""
    id: Optional[str]
    name: str
    artists: List[ArtistRef]
    duration_ms: int = 0
    url: Optional[str] = None
    images: List[ImageRef] = field(default_factory=list)
    explicit: bool = False

    @property
    def artist(self) -> str:
        """Artist names joined for display."""
        return ", ".join(artist.name for artist in self.artists)

    @property
    def thumbnail(self) -> Optional[str]:
        return self.images[0].url if self.images else None


@dataclass
class SearchHit:
    """Flat search/recommendation result."""
    title: str
    duration_ms: int
    artist: str
    url: str
    thumbnail: Optional[str] = None

    @classmethod
    def from_track(cls, track: TrackRecord) -> "SearchHit":
        return cls(
            title=track.name,
            duration_ms=track.duration_ms,
            artist=track.artist,
            url=track.url,
            thumbnail=track.thumbnail
        )


@dataclass
class PlaylistRecord:
    """A playlist with every track that survived pagination and filtering."""
    id: str
    name: str
    author: Optional[str]
    url: str
    thumbnail: Optional[str] = None
    tracks: List[TrackRecord] = field(default_factory=list)


@dataclass
class AlbumRecord:
    """An album; its tracks carry the album's cover art."""
    id: str
    name: str
    author: str
    url: str
    thumbnail: Optional[str] = None
    tracks: List[TrackRecord] = field(default_factory=list)


@dataclass
class Page:
    """One page of a cursor-paginated collection."""
    items: List[Any]
    next_url: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Any) -> "Page":
        if not isinstance(raw, dict):
            return cls(items=[])
        items = raw.get("items")
        next_url = raw.get("next")
        return cls(
            items=list(items) if isinstance(items, list) else [],
            next_url=next_url if isinstance(next_url, str) and next_url else None
        )


def parse_images(raw: Any) -> List[ImageRef]:
    """Keep image entries that carry a URL."""
    if not isinstance(raw, list):
        return []
    images = []
    for entry in raw:
        if isinstance(entry, dict) and isinstance(entry.get("url"), str) and entry["url"]:
            images.append(ImageRef(
                url=entry["url"],
                width=entry.get("width"),
                height=entry.get("height")
            ))
    return images


def parse_artists(raw: Any) -> List[ArtistRef]:
    if not isinstance(raw, list):
        return []
    artists = []
    for entry in raw:
        if isinstance(entry, dict) and isinstance(entry.get("name"), str) and entry["name"]:
            artists.append(ArtistRef(id=entry.get("id"), name=entry["name"]))
    return artists


def external_url(raw: Dict[str, Any], kind: str, fallback_id: Optional[str]) -> Optional[str]:
    """
    Canonical open.spotify.com link, preferring the one the API supplies.

    Returns None when the payload has neither a link nor an id to build one from.
    """
    urls = raw.get("external_urls")
    if isinstance(urls, dict) and isinstance(urls.get("spotify"), str) and urls["spotify"]:
        return urls["spotify"]
    if not isinstance(fallback_id, str) or not fallback_id:
        return None
    return f"{OPEN_SPOTIFY_URL}/{kind}/{fallback_id}"


def parse_track(raw: Any, images: Optional[List[ImageRef]] = None) -> Optional[TrackRecord]:
    """
    Build a TrackRecord from a raw track object.

    Args:
        raw: Raw track payload
        images: Cover art to use instead of ``raw["album"]["images"]``;
            album track listings omit the album object

    Returns:
        TrackRecord, or None when the name, the artist list, or both the
        id and the external link are missing
    """
    if not isinstance(raw, dict):
        return None

    name = raw.get("name")
    artists = parse_artists(raw.get("artists"))
    if not isinstance(name, str) or not name.strip() or not artists:
        return None

    if images is None:
        album = raw.get("album")
        images = parse_images(album.get("images")) if isinstance(album, dict) else []

    duration = raw.get("duration_ms")
    track_id = raw.get("id")
    url = external_url(raw, "track", track_id)
    if url is None:
        return None

    return TrackRecord(
        id=track_id,
        name=name.strip(),
        artists=artists,
        duration_ms=duration if isinstance(duration, int) and not isinstance(duration, bool) else 0,
        url=url,
        images=list(images),
        explicit=bool(raw.get("explicit", False))
    )


def parse_tracks(raw_items: List[Any], images: Optional[List[ImageRef]] = None) -> List[TrackRecord]:
    """Parse raw tracks in order, dropping malformed entries."""
    tracks = []
    for raw in raw_items:
        track = parse_track(raw, images=images)
        if track is None:
            logger.debug("Dropping malformed track entry", entry_id=raw.get("id") if isinstance(raw, dict) else None)
            continue
        tracks.append(track)
    return tracks


def unwrap_playlist_items(raw_items: List[Any]) -> List[Any]:
    """Playlist pages nest each track under ``{"track": ...}``."""
    return [item.get("track") if isinstance(item, dict) else None for item in raw_items]


def parse_search_hits(raw_items: List[Any]) -> List[SearchHit]:
    return [SearchHit.from_track(track) for track in parse_tracks(raw_items)]
