"""
Time-based one-time codes for the web-player token exchange.

Implements RFC 6238 (HMAC-SHA1, 30 second step, 6 digits) and the
obfuscation applied to registry secrets before they are used as TOTP keys.
"""

import hashlib
import hmac
import struct

from ..models.auth_models import Secret

TOTP_PERIOD_SECONDS = 30
TOTP_DIGITS = 6


def derive_signing_key_hex(secret: Secret) -> str:
    """
    Turn a registry secret into the hex-encoded TOTP signing key.

    Each byte is XORed with ``(i % version) + 9``; the resulting integers are
    written out as decimal text, concatenated, and the UTF-8 bytes of that
    text are hex-encoded.
    """
    transformed = [
        value ^ ((index % secret.version) + 9)
        for index, value in enumerate(secret.key_bytes)
    ]
    joined = "".join(str(value) for value in transformed)
    return joined.encode("utf-8").hex()


def derive_signing_key(secret: Secret) -> bytes:
    """Raw HMAC key for a secret."""
    return bytes.fromhex(derive_signing_key_hex(secret))


def generate_totp(
    key: bytes,
    timestamp_ms: int,
    period: int = TOTP_PERIOD_SECONDS,
    digits: int = TOTP_DIGITS
) -> str:
    """
    Generate a TOTP code for a millisecond timestamp.

    Args:
        key: HMAC-SHA1 key
        timestamp_ms: Unix time in milliseconds
        period: Time step in seconds
        digits: Code length

    Returns:
        Zero-padded numeric code
    """
    counter = int(timestamp_ms // 1000) // period
    digest = hmac.new(key, struct.pack(">Q", counter), hashlib.sha1).digest()

    offset = digest[-1] & 0x0F
    binary = struct.unpack(">I", digest[offset:offset + 4])[0] & 0x7FFFFFFF
    return str(binary % (10 ** digits)).zfill(digits)
