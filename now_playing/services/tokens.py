"""Access token acquisition for the streaming services."""

import time

import httpx
import jwt

from now_playing.config import Settings
from now_playing.logging_config import get_logger, log_with_context

SPOTIFY_TOKEN_ENDPOINT = "https://accounts.spotify.com/api/token"

APPLE_JWT_ALGORITHM = "ES256"
APPLE_TOKEN_TTL_SECONDS = 60 * 60

logger = get_logger(__name__)


async def acquire_spotify_token(client: httpx.AsyncClient, settings: Settings) -> str | None:
    """Exchange the configured refresh token for a Spotify access token.

    Args:
        client: Shared HTTP client from dependency injection.
        settings: Settings with the Spotify client credentials and refresh token.

    Returns:
        Access token string, or None if the exchange failed.
    """
    if not settings.spotify_configured:
        log_with_context(
            logger,
            "warning",
            "Spotify credentials not configured",
            event_type="spotify_token_unconfigured",
        )
        return None

    try:
        response = await client.post(
            SPOTIFY_TOKEN_ENDPOINT,
            auth=(settings.spotify_client_id, settings.spotify_client_secret),
            data={"grant_type": "refresh_token", "refresh_token": settings.spotify_refresh_token},
        )
        response.raise_for_status()
        return response.json()["access_token"]
    except httpx.HTTPError as e:
        log_with_context(
            logger,
            "error",
            "Spotify token refresh failed",
            error=str(e),
            error_type=type(e).__name__,
            event_type="spotify_token_error",
        )
    except (KeyError, TypeError, ValueError) as e:
        log_with_context(
            logger,
            "error",
            "Invalid Spotify token response",
            error=str(e),
            event_type="spotify_token_invalid",
        )
    return None


def generate_apple_developer_token(settings: Settings, issued_at: int | None = None) -> str | None:
    """Sign a short-lived Apple Music developer token.

    The token is an ES256 JWT with the key ID in the header, the team ID as
    issuer and a one hour lifetime.

    Args:
        settings: Settings with the Apple team ID, key ID and private key.
        issued_at: Unix time to issue the token at (defaults to now).

    Returns:
        Signed token, or None if signing failed.
    """
    if not (settings.apple_team_id and settings.apple_key_id and settings.apple_private_key):
        log_with_context(
            logger,
            "warning",
            "Apple Music signing credentials not configured",
            event_type="apple_token_unconfigured",
        )
        return None

    now = issued_at if issued_at is not None else int(time.time())
    payload = {
        "iss": settings.apple_team_id,
        "iat": now,
        "exp": now + APPLE_TOKEN_TTL_SECONDS,
    }
    try:
        return jwt.encode(
            payload,
            settings.apple_private_key,
            algorithm=APPLE_JWT_ALGORITHM,
            headers={"kid": settings.apple_key_id},
        )
    except (jwt.PyJWTError, ValueError, TypeError) as e:
        log_with_context(
            logger,
            "error",
            "Apple Music token generation failed",
            error=str(e),
            error_type=type(e).__name__,
            event_type="apple_token_error",
        )
        return None
