"""Unit tests for the Apple Music adapter."""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import httpx
import jwt
import pytest

from now_playing.models import PlaybackSource
from now_playing.services import apple_music_service
from now_playing.services.apple_music_service import APPLE_SONG_STATE_KEY, AppleMusicAdapter

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def recent_response(http_response, apple_song):
    return http_response(200, json={"data": [apple_song]}, url=apple_music_service.APPLE_RECENTLY_PLAYED_ENDPOINT)


@pytest.fixture
def adapter(mock_http_client, state_store):
    return AppleMusicAdapter(mock_http_client, state_store)


@pytest.mark.asyncio
async def test_new_song_is_live(adapter, mock_http_client, mock_settings, state_store, recent_response):
    mock_http_client.get.return_value = recent_response

    state = await adapter.fetch(mock_settings, now=NOW)

    assert state.success is True
    assert state.is_playing is True
    assert state.source is PlaybackSource.APPLE_MUSIC
    assert state.observed_at == NOW
    assert state.title == "Apple Song"
    assert state.artist == "Apple Artist"
    assert state.album == "Apple Album"
    assert state.duration_ms == 200000
    assert state.track_url == "https://music.apple.com/song/am-song-1"
    assert await state_store.get(APPLE_SONG_STATE_KEY) == {
        "trackId": "am-song-1",
        "observedAt": "2024-01-01T12:00:00.000Z",
    }


@pytest.mark.asyncio
async def test_artwork_url_sized(adapter, mock_http_client, mock_settings, recent_response):
    mock_http_client.get.return_value = recent_response

    state = await adapter.fetch(mock_settings, now=NOW)

    assert state.album_art_url == "https://example.com/artwork/500x500bb.jpg"


@pytest.mark.asyncio
async def test_request_headers(adapter, mock_http_client, mock_settings, apple_private_key, recent_response):
    _, public_key = apple_private_key
    mock_http_client.get.return_value = recent_response

    await adapter.fetch(mock_settings, now=NOW)

    call = mock_http_client.get.call_args
    assert call.args[0] == apple_music_service.APPLE_RECENTLY_PLAYED_ENDPOINT
    assert call.kwargs["params"] == {"limit": 1}
    headers = call.kwargs["headers"]
    assert headers["Music-User-Token"] == "test-music-user-token"
    developer_token = headers["Authorization"].removeprefix("Bearer ")
    claims = jwt.decode(developer_token, public_key, algorithms=["ES256"])
    assert claims["iss"] == "TEAM123456"


@pytest.mark.asyncio
async def test_same_song_within_duration_still_live(adapter, mock_http_client, mock_settings, recent_response):
    mock_http_client.get.return_value = recent_response
    await adapter.fetch(mock_settings, now=NOW)

    state = await adapter.fetch(mock_settings, now=NOW + timedelta(seconds=100))

    assert state.is_playing is True
    # Reported as started when first observed
    assert state.observed_at == NOW


@pytest.mark.asyncio
async def test_same_song_past_duration_not_live(
    adapter, mock_http_client, mock_settings, state_store, recent_response
):
    mock_http_client.get.return_value = recent_response
    await adapter.fetch(mock_settings, now=NOW)

    state = await adapter.fetch(mock_settings, now=NOW + timedelta(seconds=201))

    assert state.success is True
    assert state.is_playing is False
    assert state.observed_at == NOW
    assert (await state_store.get(APPLE_SONG_STATE_KEY))["observedAt"] == "2024-01-01T12:00:00.000Z"


@pytest.mark.asyncio
async def test_different_song_resets_memory(
    adapter, mock_http_client, mock_settings, state_store, http_response, apple_song, recent_response
):
    mock_http_client.get.return_value = recent_response
    await adapter.fetch(mock_settings, now=NOW)

    next_song = {**apple_song, "id": "am-song-2"}
    later = NOW + timedelta(minutes=30)
    mock_http_client.get.return_value = http_response(200, json={"data": [next_song]})

    state = await adapter.fetch(mock_settings, now=later)

    assert state.is_playing is True
    assert state.observed_at == later
    assert (await state_store.get(APPLE_SONG_STATE_KEY))["trackId"] == "am-song-2"


@pytest.mark.asyncio
async def test_missing_duration_repeat_poll_is_stale(
    adapter, mock_http_client, mock_settings, http_response, apple_song
):
    del apple_song["attributes"]["durationInMillis"]
    mock_http_client.get.return_value = http_response(200, json={"data": [apple_song]})
    await adapter.fetch(mock_settings, now=NOW)

    state = await adapter.fetch(mock_settings, now=NOW + timedelta(seconds=1))

    assert state.success is True
    assert state.is_playing is False


@pytest.mark.asyncio
async def test_developer_token_failure(adapter, mock_http_client, mock_settings):
    settings = mock_settings.model_copy(update={"apple_private_key": "garbage"})

    state = await adapter.fetch(settings, now=NOW)

    assert state.success is False
    assert state.is_playing is False
    assert state.error == "Could not generate Apple Developer Token."
    assert state.observed_at == NOW
    mock_http_client.get.assert_not_called()


@pytest.mark.asyncio
async def test_missing_user_token(adapter, mock_http_client, mock_settings):
    settings = mock_settings.model_copy(update={"apple_music_user_token": ""})

    state = await adapter.fetch(settings, now=NOW)

    assert state.success is False
    assert state.error == "Apple Music user token is not configured."
    mock_http_client.get.assert_not_called()


@pytest.mark.asyncio
async def test_upstream_unauthorized(adapter, mock_http_client, mock_settings, state_store, http_response):
    mock_http_client.get.return_value = http_response(401, json={"errors": [{"status": "401"}]})

    state = await adapter.fetch(mock_settings, now=NOW)

    assert state.success is False
    assert state.error == "Failed to fetch from Apple Music. Status: 401 Unauthorized"
    assert await state_store.get(APPLE_SONG_STATE_KEY) is None


@pytest.mark.asyncio
async def test_no_content(adapter, mock_http_client, mock_settings, http_response):
    mock_http_client.get.return_value = http_response(204)

    state = await adapter.fetch(mock_settings, now=NOW)

    assert state.success is False
    assert "Status: 204" in state.error


@pytest.mark.asyncio
async def test_transport_error(adapter, mock_http_client, mock_settings):
    mock_http_client.get.side_effect = httpx.ConnectError("connection reset", request=MagicMock())

    state = await adapter.fetch(mock_settings, now=NOW)

    assert state.success is False
    assert state.error.startswith("Failed to fetch from Apple Music. Is the User Token valid?")


@pytest.mark.asyncio
async def test_empty_history(adapter, mock_http_client, mock_settings, http_response):
    mock_http_client.get.return_value = http_response(200, json={"data": []})

    state = await adapter.fetch(mock_settings, now=NOW)

    assert state.success is False
    assert "no recently played songs" in state.error


@pytest.mark.asyncio
async def test_corrupt_memory_treated_as_absent(
    adapter, mock_http_client, mock_settings, state_store, recent_response
):
    await state_store.put(APPLE_SONG_STATE_KEY, {"trackId": "", "observedAt": "yesterday"})
    mock_http_client.get.return_value = recent_response

    state = await adapter.fetch(mock_settings, now=NOW)

    assert state.is_playing is True
    assert (await state_store.get(APPLE_SONG_STATE_KEY))["trackId"] == "am-song-1"


@pytest.mark.asyncio
async def test_state_store_failure(mock_http_client, mock_settings, recent_response):
    from unittest.mock import AsyncMock

    from now_playing.exceptions import StoreException

    broken = AsyncMock()
    broken.get.side_effect = StoreException("Failed to read store apple_state")
    mock_http_client.get.return_value = recent_response

    state = await AppleMusicAdapter(mock_http_client, broken).fetch(mock_settings, now=NOW)

    assert state.success is False
    assert state.error == "Failed to read store apple_state"


@pytest.mark.asyncio
async def test_song_without_name_leaves_memory_untouched(
    adapter, mock_http_client, mock_settings, state_store, http_response, apple_song
):
    await state_store.put(APPLE_SONG_STATE_KEY, {"trackId": "am-song-0", "observedAt": "2024-01-01T11:00:00.000Z"})
    del apple_song["attributes"]["name"]
    mock_http_client.get.return_value = http_response(200, json={"data": [apple_song]})

    state = await adapter.fetch(mock_settings, now=NOW)

    assert state.success is False
    assert "Unexpected song resource" in state.error
    assert (await state_store.get(APPLE_SONG_STATE_KEY))["trackId"] == "am-song-0"


@pytest.mark.asyncio
async def test_negative_duration_rejected_before_memory_write(
    adapter, mock_http_client, mock_settings, state_store, http_response, apple_song
):
    apple_song["attributes"]["durationInMillis"] = -1
    mock_http_client.get.return_value = http_response(200, json={"data": [apple_song]})

    state = await adapter.fetch(mock_settings, now=NOW)

    assert state.success is False
    assert await state_store.get(APPLE_SONG_STATE_KEY) is None
