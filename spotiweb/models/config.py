"""
Client Configuration

Pydantic settings for a SpotifyWebClient, loadable from the environment
(and a ``.env`` file via python-dotenv).
"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from ..api.constants import SECRET_REGISTRY_URL, SECRET_TTL_SECONDS, USER_AGENT
from .auth_models import CredentialMode


class ClientConfig(BaseModel):
    """Configuration for one Spotify web client."""

    # Credentials; both set selects client-credentials mode
    client_id: Optional[str] = Field(default=None, description="Spotify application client ID")
    client_secret: Optional[str] = Field(default=None, description="Spotify application client secret")

    market: Optional[str] = Field(default=None, description="Storefront region code, e.g. 'US'")

    # Anonymous token flow
    secret_registry_url: str = Field(default=SECRET_REGISTRY_URL, description="TOTP secret registry URL")
    secret_ttl_seconds: float = Field(default=SECRET_TTL_SECONDS, gt=0, description="Secret pool TTL")
    scrape_build_version: bool = Field(
        default=True,
        description="Read buildVer from the web-player bundle instead of using the secret version"
    )
    user_agent: str = Field(default=USER_AGENT, description="User-Agent for web-player requests")

    # HTTP behaviour
    request_timeout: float = Field(default=10.0, gt=0, description="Per-request timeout in seconds")
    max_retries: int = Field(default=2, ge=0, description="Retries after the first attempt")
    calls_per_second: float = Field(default=10.0, gt=0, description="Client-side rate limit")

    @property
    def credential_mode(self) -> CredentialMode:
        if self.client_id and self.client_secret:
            return CredentialMode.CLIENT_CREDENTIALS
        return CredentialMode.ANONYMOUS

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None, **overrides) -> "ClientConfig":
        """
        Build a config from environment variables.

        Reads SPOTIFY_CLIENT_ID, SPOTIFY_CLIENT_SECRET, SPOTIFY_MARKET and the
        SPOTIWEB_* variables after loading ``.env``. Keyword overrides win.
        """
        load_dotenv(dotenv_path)

        env_values = {
            "client_id": os.getenv("SPOTIFY_CLIENT_ID"),
            "client_secret": os.getenv("SPOTIFY_CLIENT_SECRET"),
            "market": os.getenv("SPOTIFY_MARKET"),
            "secret_registry_url": os.getenv("SPOTIWEB_SECRET_REGISTRY_URL"),
            "secret_ttl_seconds": os.getenv("SPOTIWEB_SECRET_TTL_SECONDS"),
            "scrape_build_version": os.getenv("SPOTIWEB_SCRAPE_BUILD_VERSION"),
            "request_timeout": os.getenv("SPOTIWEB_REQUEST_TIMEOUT"),
            "max_retries": os.getenv("SPOTIWEB_MAX_RETRIES"),
            "calls_per_second": os.getenv("SPOTIWEB_CALLS_PER_SECOND"),
        }
        values = {key: value for key, value in env_values.items() if value not in (None, "")}
        values.update(overrides)
        return cls(**values)
