"""
Spotify Web Client

Authenticated, paginated access to the Spotify catalog using self-minted
tokens. Single-item lookups are best effort: a failed request or a
malformed payload yields ``None``. Only token exhaustion (``AuthError``)
and unsupported operations are raised to the caller.
"""

from typing import Any, Dict, List, Optional, Sequence

import structlog

from ..auth.secret_store import SecretStore
from ..auth.token_cache import TokenCache
from ..auth.token_minter import TokenMinter
from ..models.auth_models import CredentialMode
from ..models.catalog_models import (
    AlbumRecord,
    Page,
    PlaylistRecord,
    SearchHit,
    TrackRecord,
    external_url,
    parse_artists,
    parse_images,
    parse_search_hits,
    parse_track,
    parse_tracks,
    unwrap_playlist_items
)
from ..models.config import ClientConfig
from .base_client import BaseAPIClient
from .constants import API_BASE_URL, SECRET_REGISTRY_URL, SECRET_TTL_SECONDS, USER_AGENT, WEB_PLAYER_HEADERS
from .exceptions import NetworkError, SchemaError, UnsupportedOperationError
from .rate_limiter import RateLimiter

logger = structlog.get_logger(__name__)


class SpotifyWebClient(BaseAPIClient):
    """
    Spotify catalog client.

    The credential mode is fixed at construction: passing both ``client_id``
    and ``client_secret`` selects the client-credentials grant, anything
    else the anonymous web-player flow.
    """

    BASE_URL = API_BASE_URL

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        market: Optional[str] = None,
        rate_limiter: Optional[RateLimiter] = None,
        timeout: float = 10,
        retries: int = 2,
        secret_registry_url: str = SECRET_REGISTRY_URL,
        secret_ttl_seconds: float = SECRET_TTL_SECONDS,
        scrape_build_version: bool = True,
        user_agent: str = USER_AGENT,
        secret_store: Optional[SecretStore] = None,
        minter: Optional[TokenMinter] = None,
        token_cache: Optional[TokenCache] = None
    ):
        """
        Initialize Spotify web client.

        Args:
            client_id: Application client ID (optional)
            client_secret: Application client secret (optional)
            market: Storefront region code appended to catalog requests
            rate_limiter: Rate limiter instance (defaults to a web-player limiter)
            timeout: Per-request timeout in seconds
            retries: Retries after the first attempt of each request
            secret_registry_url: TOTP secret registry
            secret_ttl_seconds: Secret pool TTL
            scrape_build_version: Read buildVer from the web-player bundle
            user_agent: User-Agent for web-player requests
            secret_store: Replacement secret store
            minter: Replacement token minter
            token_cache: Replacement token cache
        """
        if rate_limiter is None:
            rate_limiter = RateLimiter.for_spotify_web()

        super().__init__(
            base_url=self.BASE_URL,
            rate_limiter=rate_limiter,
            timeout=timeout,
            retries=retries,
            service_name="SpotifyWeb"
        )

        self.market = market or None
        self.user_agent = user_agent
        self._credential_mode = (
            CredentialMode.CLIENT_CREDENTIALS
            if client_id and client_secret
            else CredentialMode.ANONYMOUS
        )

        self.secret_store = secret_store or SecretStore(
            self,
            registry_url=secret_registry_url,
            ttl_seconds=secret_ttl_seconds
        )
        self.minter = minter or TokenMinter(
            self,
            self.secret_store,
            client_id=client_id,
            client_secret=client_secret,
            scrape_build_version=scrape_build_version,
            user_agent=user_agent
        )
        self.token_cache = token_cache or TokenCache(self.minter, self._credential_mode)

        self.logger = self.logger.bind(component="SpotifyWebClient", mode=self._credential_mode.value)
        self.logger.info("Spotify web client initialized", market=self.market)

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        rate_limiter: Optional[RateLimiter] = None
    ) -> "SpotifyWebClient":
        return cls(
            client_id=config.client_id,
            client_secret=config.client_secret,
            market=config.market,
            rate_limiter=rate_limiter or RateLimiter.for_spotify_web(config.calls_per_second),
            timeout=config.request_timeout,
            retries=config.max_retries,
            secret_registry_url=config.secret_registry_url,
            secret_ttl_seconds=config.secret_ttl_seconds,
            scrape_build_version=config.scrape_build_version,
            user_agent=config.user_agent
        )

    @property
    def credential_mode(self) -> CredentialMode:
        return self._credential_mode

    @property
    def supports_recommendations(self) -> bool:
        """Recommendations are only served to anonymous web-player tokens."""
        return self._credential_mode is CredentialMode.ANONYMOUS

    def _extract_api_error(self, data: Any) -> Optional[str]:
        """
        Extract Spotify API error information from response data.

        Args:
            data: Parsed response data

        Returns:
            Error message if found, None otherwise
        """
        if isinstance(data, dict) and "error" in data:
            error_info = data["error"]
            if isinstance(error_info, dict):
                return error_info.get("message", f"Error {error_info.get('status', 'unknown')}")
            return str(error_info)
        return None

    async def _make_spotify_request(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Make authenticated request to the Spotify API.

        A 401 means the held token was revoked early; it is dropped and the
        request is sent once more with a freshly minted token.

        Raises:
            AuthError: No token could be minted
            NetworkError: Transport failure or non-2xx status
            SchemaError: Malformed response body
        """
        for attempt in range(2):
            token = await self.token_cache.ensure_valid()
            headers = {
                "Authorization": token.authorization_header,
                "Accept": "application/json",
                "User-Agent": self.user_agent,
                **WEB_PLAYER_HEADERS,
            }
            try:
                return await self._make_request(endpoint, params=params, headers=headers)
            except NetworkError as e:
                if e.status != 401 or attempt == 1:
                    raise
                self.logger.warning("Token rejected by API; minting a new one", endpoint=endpoint)
                self.token_cache.invalidate()

    def _market_params(self, **params) -> Dict[str, Any]:
        if self.market:
            params["market"] = self.market
        return params

    async def search(self, query: str, limit: int = 20) -> Optional[List[SearchHit]]:
        """
        Search for tracks.

        Args:
            query: Search query
            limit: Number of results

        Returns:
            Matching tracks (possibly empty), or None if the request failed
        """
        try:
            data = await self._make_spotify_request(
                "search",
                self._market_params(q=query, type="track", limit=limit)
            )
        except (NetworkError, SchemaError) as e:
            self.logger.error("Spotify search failed", query=query, error=str(e))
            return None

        tracks = data.get("tracks") if isinstance(data, dict) else None
        items = tracks.get("items") if isinstance(tracks, dict) else None
        if not isinstance(items, list):
            self.logger.error("Spotify search returned no track listing", query=query)
            return None

        hits = parse_search_hits(items)
        self.logger.info(
            "Spotify search completed",
            query=query,
            raw_count=len(items),
            results_count=len(hits)
        )
        return hits

    async def get_track(self, track_id: str) -> Optional[TrackRecord]:
        """
        Get track details by Spotify ID.

        Returns:
            TrackRecord, or None if unavailable or malformed
        """
        try:
            data = await self._make_spotify_request(f"tracks/{track_id}", self._market_params())
        except (NetworkError, SchemaError) as e:
            self.logger.error("Get Spotify track failed", track_id=track_id, error=str(e))
            return None

        track = parse_track(data)
        if track is None:
            self.logger.warning("Spotify track payload malformed", track_id=track_id)
        return track

    async def get_playlist(self, playlist_id: str) -> Optional[PlaylistRecord]:
        """
        Get a playlist with all of its tracks.

        Returns:
            PlaylistRecord, or None if unavailable, empty, or without valid tracks
        """
        try:
            data = await self._make_spotify_request(f"playlists/{playlist_id}", self._market_params())
        except (NetworkError, SchemaError) as e:
            self.logger.error("Get Spotify playlist failed", playlist_id=playlist_id, error=str(e))
            return None

        if not isinstance(data, dict) or not isinstance(data.get("name"), str) or not data["name"]:
            self.logger.warning("Spotify playlist payload malformed", playlist_id=playlist_id)
            return None

        first_page = Page.from_raw(data.get("tracks"))
        if not first_page.items:
            return None

        raw_items = await self._collect_pages(first_page, context=f"playlist:{playlist_id}")
        tracks = parse_tracks(unwrap_playlist_items(raw_items))
        if not tracks:
            return None

        owner = data.get("owner")
        images = parse_images(data.get("images"))
        return PlaylistRecord(
            id=data.get("id") or playlist_id,
            name=data["name"],
            author=owner.get("display_name") if isinstance(owner, dict) else None,
            url=external_url(data, "playlist", playlist_id),
            thumbnail=images[0].url if images else None,
            tracks=tracks
        )

    async def get_album(self, album_id: str) -> Optional[AlbumRecord]:
        """
        Get an album with all of its tracks.

        Album track listings carry no cover art, so every track gets the
        album's images.

        Returns:
            AlbumRecord, or None if unavailable, empty, artistless, or without valid tracks
        """
        try:
            data = await self._make_spotify_request(f"albums/{album_id}", self._market_params())
        except (NetworkError, SchemaError) as e:
            self.logger.error("Get Spotify album failed", album_id=album_id, error=str(e))
            return None

        if not isinstance(data, dict) or not isinstance(data.get("name"), str) or not data["name"]:
            self.logger.warning("Spotify album payload malformed", album_id=album_id)
            return None

        album_artists = parse_artists(data.get("artists"))
        if not album_artists:
            self.logger.warning("Spotify album has no artists", album_id=album_id)
            return None

        first_page = Page.from_raw(data.get("tracks"))
        if not first_page.items:
            return None

        images = parse_images(data.get("images"))
        raw_items = await self._collect_pages(first_page, context=f"album:{album_id}")
        tracks = parse_tracks(raw_items, images=images)
        if not tracks:
            return None

        return AlbumRecord(
            id=data.get("id") or album_id,
            name=data["name"],
            author=", ".join(artist.name for artist in album_artists),
            url=external_url(data, "album", album_id),
            thumbnail=images[0].url if images else None,
            tracks=tracks
        )

    async def get_recommendations(
        self,
        seed_ids: Sequence[str],
        limit: int = 100
    ) -> Optional[List[SearchHit]]:
        """
        Get recommendations seeded by track IDs.

        Raises:
            UnsupportedOperationError: In client-credentials mode, before any request

        Returns:
            Recommended tracks, or None if the request failed
        """
        if not self.supports_recommendations:
            raise UnsupportedOperationError(
                "get_recommendations is not supported in client-credentials mode"
            )
        if not seed_ids:
            return []

        try:
            data = await self._make_spotify_request(
                "recommendations",
                self._market_params(seed_tracks=",".join(seed_ids), limit=limit)
            )
        except (NetworkError, SchemaError) as e:
            self.logger.error("Get recommendations failed", seed_count=len(seed_ids), error=str(e))
            return None

        tracks = data.get("tracks") if isinstance(data, dict) else None
        if not isinstance(tracks, list):
            self.logger.error("Recommendations response has no track list")
            return None
        return parse_search_hits(tracks)

    async def _collect_pages(self, first_page: Page, context: str = "") -> List[Any]:
        """
        Follow ``next`` cursors sequentially, accumulating raw items in order.

        A failed page ends pagination; items gathered so far are kept.
        """
        items = list(first_page.items)
        next_url = first_page.next_url
        seen = set()
        page_number = 1

        while next_url and next_url not in seen:
            seen.add(next_url)
            page_number += 1
            try:
                raw = await self._make_spotify_request(next_url)
            except (NetworkError, SchemaError) as e:
                self.logger.warning(
                    "Pagination stopped early; keeping partial result",
                    context=context,
                    page=page_number,
                    items_so_far=len(items),
                    error=str(e)
                )
                break

            page = Page.from_raw(raw)
            items.extend(page.items)
            next_url = page.next_url

        self.logger.debug("Pagination finished", context=context, pages=page_number, items=len(items))
        return items
