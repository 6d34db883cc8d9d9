"""Apple Music API source adapter."""

from datetime import UTC, datetime
from typing import Any

import httpx

from now_playing.config import Settings
from now_playing.exceptions import (
    MalformedResponseException,
    SourceException,
    StoreException,
    TokenAcquisitionException,
    TransportException,
    UpstreamHttpException,
)
from now_playing.logging_config import get_logger, log_with_context
from now_playing.models import PlaybackSource, PlaybackState
from now_playing.protocols import KeyValueStore
from now_playing.services.liveness import resolve_liveness
from now_playing.services.tokens import generate_apple_developer_token

APPLE_RECENTLY_PLAYED_ENDPOINT = "https://api.music.apple.com/v1/me/recent/played/tracks"
APPLE_SONG_STATE_KEY = "last_apple_song"

ALBUM_IMAGE_WIDTH = "500"
ALBUM_IMAGE_HEIGHT = "500"

HTTP_NO_CONTENT = 204

logger = get_logger(__name__)


def _format_song(song: dict[str, Any], is_playing: bool, observed_at: datetime) -> PlaybackState:
    """Normalize an Apple Music song resource."""
    attributes = song["attributes"]
    artwork_url = (attributes.get("artwork") or {}).get("url")
    if artwork_url:
        artwork_url = artwork_url.replace("{w}", ALBUM_IMAGE_WIDTH).replace("{h}", ALBUM_IMAGE_HEIGHT)

    return PlaybackState(
        success=True,
        source=PlaybackSource.APPLE_MUSIC,
        observed_at=observed_at,
        is_playing=is_playing,
        duration_ms=attributes.get("durationInMillis"),
        title=attributes["name"],
        artist=attributes.get("artistName"),
        album=attributes.get("albumName"),
        album_art_url=artwork_url,
        track_url=attributes.get("url"),
    )


class AppleMusicAdapter:
    """Reads playback from Apple Music, which only exposes play history.

    Whether the last played song is still playing is inferred from the
    SourceMemory record kept in the state store.
    """

    source = PlaybackSource.APPLE_MUSIC

    def __init__(self, client: httpx.AsyncClient, state_store: KeyValueStore):
        self._client = client
        self._state_store = state_store

    async def fetch(self, settings: Settings, now: datetime | None = None) -> PlaybackState:
        """Fetch Apple Music playback state. Never raises.

        Args:
            settings: Settings with Apple Music credentials
            now: Time of the check (defaults to the current time)

        Returns:
            PlaybackState; success=False with an error message on any failure.
        """
        now = now or datetime.now(UTC)
        try:
            return await self._fetch(settings, now)
        except (SourceException, StoreException) as e:
            log_with_context(
                logger,
                "error",
                "Apple Music fetch failed",
                error=e.message,
                error_code=e.code.value,
                event_type="apple_fetch_error",
            )
            return PlaybackState.failure(e.message, now)

    async def _fetch(self, settings: Settings, now: datetime) -> PlaybackState:
        developer_token = generate_apple_developer_token(settings)
        if not developer_token:
            raise TokenAcquisitionException("Could not generate Apple Developer Token.")
        if not settings.apple_music_user_token:
            raise TokenAcquisitionException("Apple Music user token is not configured.")

        song = await self._get_last_played(developer_token, settings.apple_music_user_token)

        # Validate the whole resource before the liveness record is touched
        try:
            song_id = str(song["id"])
            draft = _format_song(song, False, now)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise MalformedResponseException(f"Unexpected song resource from Apple Music: {e}") from e
        if not song_id or not draft.title:
            raise MalformedResponseException("Unexpected song resource from Apple Music: missing id or name")

        decision = await resolve_liveness(self._state_store, APPLE_SONG_STATE_KEY, song_id, draft.duration_ms, now)
        state = draft.model_copy(update={"is_playing": decision.is_playing, "observed_at": decision.started_at})

        log_with_context(
            logger,
            "info",
            "Apple Music: last played song",
            title=state.title,
            is_playing=state.is_playing,
            event_type="apple_recent",
        )
        return state

    async def _get_last_played(self, developer_token: str, user_token: str) -> dict[str, Any]:
        try:
            response = await self._client.get(
                APPLE_RECENTLY_PLAYED_ENDPOINT,
                params={"limit": 1},
                headers={
                    "Authorization": f"Bearer {developer_token}",
                    "Music-User-Token": user_token,
                },
            )
        except httpx.HTTPError as e:
            raise TransportException(
                f"Failed to fetch from Apple Music. Is the User Token valid? ({e})",
            ) from e

        # 204 carries no body to read a song from
        if not response.is_success or response.status_code == HTTP_NO_CONTENT or not response.content:
            raise UpstreamHttpException(
                f"Failed to fetch from Apple Music. Status: {response.status_code} {response.reason_phrase}",
                upstream_status=response.status_code,
                details={"body": response.text[:500]},
            )

        try:
            data = response.json()["data"]
            return data[0]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise MalformedResponseException(f"Apple Music returned no recently played songs: {e}") from e
