"""Upstream endpoints and fixed request values."""

API_BASE_URL = "https://api.spotify.com/v1"
WEB_PLAYER_URL = "https://open.spotify.com"

ACCOUNTS_TOKEN_URL = "https://accounts.spotify.com/api/token"
WEB_TOKEN_URL = "https://open.spotify.com/get_access_token"
SERVER_TIME_URL = "https://open.spotify.com/server-time"

SECRET_REGISTRY_URL = (
    "https://raw.githubusercontent.com/Thereallo1026/spotify-secrets/"
    "refs/heads/main/secrets/secrets.json"
)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/134.0.0.0 Safari/537.36"
)

# The catalog and token endpoints reject requests without these.
WEB_PLAYER_HEADERS = {
    "Referer": "https://open.spotify.com/",
    "Origin": "https://open.spotify.com",
}

TOTP_VERSION = "5"
SECRET_TTL_SECONDS = 30 * 60
