"""
Spotiweb Exceptions

Exception hierarchy shared by the HTTP layer, the token machinery and the
catalog client.
"""

from typing import Optional


class SpotiwebError(Exception):
    """Base exception for all spotiweb errors."""
    pass


class NetworkError(SpotiwebError):
    """Raised when a transport call fails or returns a non-2xx status."""

    def __init__(self, message: str, status: Optional[int] = None, url: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.url = url


class AuthError(SpotiwebError):
    """Raised when every token acquisition strategy has been exhausted."""
    pass


class SchemaError(SpotiwebError):
    """Raised when a remote payload does not have the expected shape."""
    pass


class MarkupError(SchemaError):
    """Raised when required web-player markup cannot be located."""
    pass


class UnsupportedOperationError(SpotiwebError):
    """Raised when an operation is not available in the current credential mode."""
    pass
