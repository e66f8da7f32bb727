"""
Auth Module

Secret pool, TOTP derivation, token minting and token caching for the
Spotify web client.
"""

from .secret_store import SecretStore
from .token_cache import TokenCache
from .token_minter import BuildVersion, MintOutcome, TokenMinter
from .totp import derive_signing_key, derive_signing_key_hex, generate_totp

__all__ = [
    "SecretStore",
    "TokenCache",
    "TokenMinter",
    "BuildVersion",
    "MintOutcome",
    "derive_signing_key",
    "derive_signing_key_hex",
    "generate_totp",
]
