"""
Tests for catalog models.

Validates parsing of raw Spotify payloads into normalized records:
- Track filtering (missing name or artists)
- Image and external URL handling
- Page cursors and playlist item unwrapping
"""

import pytest

from spotiweb.models.catalog_models import (
    ArtistRef,
    ImageRef,
    Page,
    SearchHit,
    TrackRecord,
    external_url,
    parse_images,
    parse_search_hits,
    parse_track,
    parse_tracks,
    unwrap_playlist_items
)


class TestParseTrack:
    """Boundary validation of raw track objects."""

    def test_full_track(self, make_raw_track):
        track = parse_track(make_raw_track(1))

        assert track.id == "track1"
        assert track.name == "Track 1"
        assert track.artists == [ArtistRef(id="artist1", name="Artist 1")]
        assert track.duration_ms == 180001
        assert track.url == "https://open.spotify.com/track/track1"
        assert track.thumbnail == "https://i.scdn.co/image/1"

    @pytest.mark.parametrize("raw", [
        None,
        "track",
        {"name": "No artists", "artists": []},
        {"name": "Nameless artists", "artists": [{"name": ""}]},
        {"artists": [{"name": "A"}]},
        {"name": "   ", "artists": [{"name": "A"}]},
    ])
    def test_invalid_tracks_are_rejected(self, raw):
        assert parse_track(raw) is None

    def test_explicit_images_override_album(self, make_raw_track):
        album_art = [ImageRef(url="https://i.scdn.co/image/album")]

        track = parse_track(make_raw_track(0), images=album_art)

        assert track.images == album_art

    def test_missing_fields_get_defaults(self):
        track = parse_track({"id": "x", "name": "Song", "artists": [{"name": "A"}], "duration_ms": "long"})

        assert track.duration_ms == 0
        assert track.images == []
        assert track.url == "https://open.spotify.com/track/x"
        assert track.thumbnail is None

    def test_track_without_id_or_link_is_rejected(self):
        assert parse_track({"name": "Song", "artists": [{"name": "A"}]}) is None

    def test_track_with_link_but_no_id_is_kept(self):
        track = parse_track({
            "name": "Local file",
            "artists": [{"name": "A"}],
            "external_urls": {"spotify": "https://open.spotify.com/local/a/b/song/1"},
        })

        assert track.id is None
        assert track.url == "https://open.spotify.com/local/a/b/song/1"
        assert parse_search_hits([{"name": "Song", "artists": [{"name": "A"}]}]) == []

    def test_artist_display_joins_names(self):
        track = TrackRecord(id="t", name="Duet", artists=[ArtistRef(None, "A"), ArtistRef(None, "B")])

        assert track.artist == "A, B"


class TestCollections:

    def test_parse_tracks_keeps_order_and_drops_invalid(self, make_raw_track):
        raws = [make_raw_track(0), make_raw_track(1, artists=False), None, make_raw_track(2)]

        tracks = parse_tracks(raws)

        assert [t.id for t in tracks] == ["track0", "track2"]

    def test_unwrap_playlist_items(self, make_raw_track):
        raw = make_raw_track(0)

        assert unwrap_playlist_items([{"track": raw}, {"track": None}, "junk"]) == [raw, None, None]

    def test_parse_search_hits(self, make_raw_track):
        hits = parse_search_hits([make_raw_track(4)])

        assert hits == [SearchHit(
            title="Track 4",
            duration_ms=180004,
            artist="Artist 4",
            url="https://open.spotify.com/track/track4",
            thumbnail="https://i.scdn.co/image/4"
        )]


class TestPage:

    def test_from_raw(self):
        page = Page.from_raw({"items": [1, 2], "next": "https://api.spotify.com/v1/x?offset=2"})

        assert page.items == [1, 2]
        assert page.next_url == "https://api.spotify.com/v1/x?offset=2"

    @pytest.mark.parametrize("raw", [None, [], {"items": None}, {"items": "x", "next": ""}])
    def test_malformed_pages_are_empty_and_final(self, raw):
        page = Page.from_raw(raw)

        assert page.items == []
        assert page.next_url is None


class TestHelpers:

    def test_parse_images_skips_entries_without_url(self):
        images = parse_images([{"url": "a", "width": 64, "height": 64}, {"width": 1}, "x", {"url": ""}])

        assert images == [ImageRef(url="a", width=64, height=64)]

    def test_external_url_prefers_api_link(self):
        raw = {"external_urls": {"spotify": "https://open.spotify.com/album/real"}}

        assert external_url(raw, "album", "fallback") == "https://open.spotify.com/album/real"
        assert external_url({}, "album", "fallback") == "https://open.spotify.com/album/fallback"

    def test_external_url_without_link_or_id(self):
        assert external_url({}, "track", None) is None
        assert external_url({"external_urls": {}}, "track", "") is None
