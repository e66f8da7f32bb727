"""Logging setup and Spotify link helpers."""

from .logging_config import get_logger, setup_logging
from .url_parser import SpotifyLink, is_url, parse_spotify_url

__all__ = [
    "get_logger",
    "setup_logging",
    "SpotifyLink",
    "is_url",
    "parse_spotify_url",
]
