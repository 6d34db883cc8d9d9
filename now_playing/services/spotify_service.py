"""Spotify Web API source adapter."""

from datetime import UTC, datetime
from typing import Any

import httpx

from now_playing.config import Settings
from now_playing.exceptions import (
    MalformedResponseException,
    SourceException,
    TokenAcquisitionException,
    TransportException,
    UpstreamHttpException,
)
from now_playing.logging_config import get_logger, log_with_context
from now_playing.models import PlaybackSource, PlaybackState
from now_playing.services.tokens import acquire_spotify_token

SPOTIFY_NOW_PLAYING_ENDPOINT = "https://api.spotify.com/v1/me/player/currently-playing"
SPOTIFY_RECENT_ENDPOINT = "https://api.spotify.com/v1/me/player/recently-played"

HTTP_NO_CONTENT = 204

logger = get_logger(__name__)


def _format_track(track: dict[str, Any], is_playing: bool, observed_at: datetime | str) -> PlaybackState:
    """Normalize a Spotify track object."""
    album = track.get("album") or {}
    images = album.get("images") or []
    artists = ", ".join(artist["name"] for artist in track.get("artists") or [] if artist.get("name"))

    return PlaybackState(
        success=True,
        source=PlaybackSource.SPOTIFY,
        observed_at=observed_at,
        is_playing=is_playing,
        duration_ms=track.get("duration_ms"),
        title=track["name"],
        artist=artists or None,
        album=album.get("name"),
        album_art_url=images[0].get("url") if images else None,
        track_url=(track.get("external_urls") or {}).get("spotify"),
    )


class SpotifyAdapter:
    """Reads playback from Spotify, which exposes a live now-playing endpoint.

    When now-playing has no track, the most recently played track is
    reported instead (not playing, dated at its played_at time).
    """

    source = PlaybackSource.SPOTIFY

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    async def fetch(self, settings: Settings) -> PlaybackState:
        """Fetch Spotify playback state. Never raises.

        Args:
            settings: Settings with Spotify credentials

        Returns:
            PlaybackState; success=False with an error message on any failure.
        """
        try:
            return await self._fetch(settings)
        except SourceException as e:
            log_with_context(
                logger,
                "error",
                "Spotify fetch failed",
                error=e.message,
                error_code=e.code.value,
                event_type="spotify_fetch_error",
            )
            return PlaybackState.failure(e.message)

    async def _fetch(self, settings: Settings) -> PlaybackState:
        token = await self._require_token(settings)
        now_playing = await self._get_now_playing(token)
        if now_playing is not None:
            return now_playing

        log_with_context(
            logger,
            "info",
            "Now playing endpoint returned no track, trying recently played",
            event_type="spotify_fallback_recent",
        )
        token = await self._require_token(settings)
        return await self._get_recently_played(token)

    async def _require_token(self, settings: Settings) -> str:
        token = await acquire_spotify_token(self._client, settings)
        if not token:
            raise TokenAcquisitionException("Could not get access token for Spotify.")
        return token

    async def _get(self, url: str, token: str, params: dict[str, Any] | None = None) -> httpx.Response:
        try:
            response = await self._client.get(url, params=params, headers={"Authorization": f"Bearer {token}"})
        except httpx.HTTPError as e:
            raise TransportException(f"Failed to reach Spotify: {e}") from e

        if not response.is_success:
            raise UpstreamHttpException(
                f"Failed to fetch from Spotify. Status: {response.status_code} {response.reason_phrase}",
                upstream_status=response.status_code,
            )
        return response

    async def _get_now_playing(self, token: str) -> PlaybackState | None:
        """Current track, the idle state on 204, or None when no track is reported."""
        response = await self._get(SPOTIFY_NOW_PLAYING_ENDPOINT, token)

        if response.status_code == HTTP_NO_CONTENT:
            log_with_context(
                logger,
                "info",
                "Spotify: no track is currently playing",
                event_type="spotify_idle",
            )
            return PlaybackState.idle()

        data = _json_body(response)
        item = data.get("item")
        if not isinstance(item, dict) or not item.get("name"):
            return None

        timestamp_ms = data.get("timestamp")
        try:
            observed_at = datetime.fromtimestamp(timestamp_ms / 1000, UTC) if timestamp_ms else datetime.now(UTC)
            state = _format_track(item, bool(data.get("is_playing")), observed_at)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise MalformedResponseException(f"Unexpected now playing response from Spotify: {e}") from e

        log_with_context(
            logger,
            "info",
            "Spotify: currently playing",
            title=state.title,
            is_playing=state.is_playing,
            event_type="spotify_now_playing",
        )
        return state

    async def _get_recently_played(self, token: str) -> PlaybackState:
        response = await self._get(SPOTIFY_RECENT_ENDPOINT, token, params={"limit": 1})
        items = _json_body(response).get("items") or []
        if not isinstance(items, list):
            raise MalformedResponseException("Unexpected recently played response from Spotify: items is not a list")
        if not items:
            log_with_context(
                logger,
                "info",
                "Spotify: no recently played tracks",
                event_type="spotify_recent_empty",
            )
            return PlaybackState.idle()

        try:
            most_recent = items[0]
            state = _format_track(most_recent["track"], False, most_recent["played_at"])
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise MalformedResponseException(f"Unexpected recently played response from Spotify: {e}") from e

        log_with_context(
            logger,
            "info",
            "Spotify: recently played",
            title=state.title,
            event_type="spotify_recent",
        )
        return state


def _json_body(response: httpx.Response) -> dict[str, Any]:
    """Decode a JSON object body; an empty body decodes to {}."""
    if not response.content:
        return {}
    try:
        data = response.json()
    except ValueError as e:
        raise MalformedResponseException(f"Spotify returned invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedResponseException("Spotify returned an unexpected JSON document")
    return data
