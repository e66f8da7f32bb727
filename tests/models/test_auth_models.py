"""
Tests for authentication models.
"""

import pytest

from spotiweb.api.exceptions import SchemaError
from spotiweb.models.auth_models import BearerToken, Secret, TokenKind, parse_secret_registry


class TestSecret:

    def test_from_raw(self):
        secret = Secret.from_raw({"version": 61, "secret": [44, 55, 47]})

        assert secret == Secret(version=61, key_bytes=(44, 55, 47))

    @pytest.mark.parametrize("raw", [
        [61, [1]],
        {"version": True, "secret": [1]},
        {"version": -1, "secret": [1]},
        {"version": 61, "secret": []},
        {"version": 61, "secret": [1, -2]},
        {"version": 61, "secret": [1.5]},
    ])
    def test_from_raw_rejects_invalid_entries(self, raw):
        with pytest.raises(SchemaError):
            Secret.from_raw(raw)

    def test_secrets_are_hashable_values(self):
        assert len({Secret(1, (1, 2)), Secret(1, (1, 2)), Secret(2, (1, 2))}) == 2

    def test_parse_secret_registry_preserves_order(self):
        secrets = parse_secret_registry([
            {"version": 9, "secret": [9]},
            {"version": 3, "secret": [3]},
        ])

        assert [s.version for s in secrets] == [9, 3]


class TestBearerToken:

    @pytest.fixture
    def token(self):
        return BearerToken(value="abc123", kind=TokenKind.CLIENT_CREDENTIALS, expires_at_ms=1000)

    def test_expiry_is_strict(self, token):
        assert not token.is_expired(999)
        assert not token.is_expired(1000)
        assert token.is_expired(1001)

    def test_authorization_header(self, token):
        assert token.authorization_header == "Bearer abc123"

    def test_repr_hides_value(self, token):
        assert "abc123" not in repr(token)
        assert "client-credentials" in repr(token)
