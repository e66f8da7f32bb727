"""
Authentication Models

Secrets used to sign one-time codes, and the bearer tokens minted from them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Tuple

from ..api.exceptions import SchemaError


class CredentialMode(Enum):
    """How a client obtains its bearer token; fixed at construction."""
    ANONYMOUS = "anonymous"
    CLIENT_CREDENTIALS = "client_credentials"


class TokenKind(Enum):
    """Grant style a bearer token was minted with."""
    ANONYMOUS_WEB = "anonymous-web"
    CLIENT_CREDENTIALS = "client-credentials"


@dataclass(frozen=True)
class Secret:
    """One rotation of the web-player TOTP obfuscation scheme."""
    version: int
    key_bytes: Tuple[int, ...]

    @classmethod
    def from_raw(cls, raw: Any) -> "Secret":
        """
        Validate one registry entry of the form ``{"version": int, "secret": [int, ...]}``.

        Raises:
            SchemaError: If the entry does not have that shape
        """
        if not isinstance(raw, dict):
            raise SchemaError(f"Secret entry must be an object, got {type(raw).__name__}")

        version = raw.get("version")
        if isinstance(version, bool) or not isinstance(version, int) or version < 1:
            raise SchemaError(f"Secret version must be a positive integer, got {version!r}")

        key = raw.get("secret")
        if not isinstance(key, list) or not key:
            raise SchemaError(f"Secret {version} must carry a non-empty byte list")
        for value in key:
            if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 255:
                raise SchemaError(f"Secret {version} contains a non-byte value {value!r}")

        return cls(version=version, key_bytes=tuple(key))


def parse_secret_registry(payload: Any) -> List[Secret]:
    """
    Validate a whole registry payload.

    Raises:
        SchemaError: If the payload is not a non-empty array of valid entries
    """
    if not isinstance(payload, list) or not payload:
        raise SchemaError("Secret registry must be a non-empty JSON array")
    return [Secret.from_raw(entry) for entry in payload]


@dataclass(frozen=True)
class BearerToken:
    """An access token together with its absolute expiry (epoch milliseconds)."""
    value: str
    kind: TokenKind
    expires_at_ms: int
    token_type: str = "Bearer"

    def is_expired(self, now_ms: int) -> bool:
        """Expired strictly after ``expires_at_ms``."""
        return now_ms > self.expires_at_ms

    @property
    def authorization_header(self) -> str:
        return f"{self.token_type} {self.value}"

    def __repr__(self) -> str:
        return (
            f"BearerToken(kind={self.kind.value}, expires_at_ms={self.expires_at_ms}, "
            f"value=<{len(self.value)} chars>)"
        )

