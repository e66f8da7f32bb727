"""
API Module

HTTP infrastructure shared by the token machinery and the catalog client:
base client, rate limiting, endpoints and the exception hierarchy.

The catalog client and factory live in ``spotiweb.api.spotify_client`` and
``spotiweb.api.client_factory``; they depend on ``spotiweb.auth``, which in
turn depends on the modules exported here.
"""

from .base_client import BaseAPIClient
from .exceptions import (
    AuthError,
    MarkupError,
    NetworkError,
    SchemaError,
    SpotiwebError,
    UnsupportedOperationError
)
from .rate_limiter import RateLimiter

__all__ = [
    # Base infrastructure
    "BaseAPIClient",
    "RateLimiter",

    # Exceptions
    "SpotiwebError",
    "NetworkError",
    "AuthError",
    "SchemaError",
    "MarkupError",
    "UnsupportedOperationError",
]
