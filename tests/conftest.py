"""Pytest configuration and shared fixtures."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from fastapi.testclient import TestClient

from now_playing.config import Settings
from now_playing.models import PlaybackSource, PlaybackState
from now_playing.store import MemoryStore


@pytest.fixture(scope="session")
def apple_private_key():
    """Fresh P-256 key, as a (private PEM, public key) pair."""
    key = ec.generate_private_key(ec.SECP256R1())
    pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    return pem, key.public_key()


@pytest.fixture
def mock_settings(apple_private_key):
    """Settings instance with test values for both sources."""
    pem, _ = apple_private_key
    return Settings(
        _env_file=None,
        api_host="0.0.0.0",
        api_port=8000,
        spotify_client_id="test-spotify-client-id",
        spotify_client_secret="test-spotify-client-secret",
        spotify_refresh_token="test-refresh-token",
        apple_team_id="TEAM123456",
        apple_key_id="KEY1234567",
        apple_private_key=pem,
        apple_music_user_token="test-music-user-token",
    )


@pytest.fixture
def mock_http_client():
    """Mock httpx.AsyncClient for external API calls."""
    mock_client = AsyncMock(spec=httpx.AsyncClient)
    mock_client.get = AsyncMock()
    mock_client.post = AsyncMock()
    mock_client.aclose = AsyncMock()
    return mock_client


@pytest.fixture
def http_response():
    """Factory for real httpx.Response objects bound to a request."""

    def _make(status_code: int = 200, json=None, url: str = "https://api.example.com/", method: str = "GET"):
        return httpx.Response(status_code, json=json, request=httpx.Request(method, url))

    return _make


@pytest.fixture
def spotify_token_response(http_response):
    """Successful Spotify refresh-token exchange."""
    return http_response(
        200,
        json={"access_token": "spotify-access-token", "token_type": "Bearer", "expires_in": 3600},
        url="https://accounts.spotify.com/api/token",
        method="POST",
    )


@pytest.fixture
def spotify_track():
    """Spotify track object."""
    return {
        "id": "sp-track-1",
        "name": "Test Song",
        "artists": [{"name": "Test Artist"}, {"name": "Featured Artist"}],
        "album": {"name": "Test Album", "images": [{"url": "https://example.com/cover-640.jpg"}]},
        "duration_ms": 240000,
        "external_urls": {"spotify": "https://open.spotify.com/track/sp-track-1"},
    }


@pytest.fixture
def apple_song():
    """Apple Music song resource from the recently played endpoint."""
    return {
        "id": "am-song-1",
        "type": "songs",
        "attributes": {
            "name": "Apple Song",
            "artistName": "Apple Artist",
            "albumName": "Apple Album",
            "durationInMillis": 200000,
            "url": "https://music.apple.com/song/am-song-1",
            "artwork": {"url": "https://example.com/artwork/{w}x{h}bb.jpg", "width": 3000, "height": 3000},
        },
    }


@pytest.fixture
def result_store():
    return MemoryStore("result_cache")


@pytest.fixture
def state_store():
    return MemoryStore("apple_state")


class StaticAdapter:
    """Adapter returning a fixed state and counting calls."""

    def __init__(self, source: PlaybackSource, state: PlaybackState):
        self.source = source
        self.state = state
        self.calls = 0

    async def fetch(self, settings: Settings) -> PlaybackState:
        self.calls += 1
        return self.state


@pytest.fixture
def static_adapter():
    """Factory for StaticAdapter instances."""
    return StaticAdapter


@pytest.fixture
def playing_state():
    """A Spotify track that is playing."""
    return PlaybackState(
        success=True,
        is_playing=True,
        observed_at=datetime(2024, 1, 1, 12, 0, tzinfo=UTC),
        source=PlaybackSource.SPOTIFY,
        duration_ms=180000,
        title="Playing Song",
        artist="Playing Artist",
        album="Playing Album",
        album_art_url="https://example.com/playing.jpg",
        track_url="https://open.spotify.com/track/playing",
    )


@pytest.fixture
def test_client():
    """FastAPI test client with lifespan context."""
    from now_playing.main import app as fastapi_app
    from now_playing.routers import now_playing_router

    now_playing_router.limiter.reset()
    with TestClient(fastapi_app) as client:
        yield client
    fastapi_app.dependency_overrides.clear()
