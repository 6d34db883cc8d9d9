"""FastAPI dependencies for dependency injection."""

import httpx
from fastapi import Depends, Request

from now_playing.protocols import KeyValueStore
from now_playing.services.apple_music_service import AppleMusicAdapter
from now_playing.services.spotify_service import SpotifyAdapter


async def get_http_client(request: Request) -> httpx.AsyncClient:
    """
    Get the shared HTTP client from app state.

    Args:
        request: The FastAPI request object.

    Returns:
        The shared AsyncClient instance.

    Raises:
        RuntimeError: If HTTP client is not initialized.
    """
    client: httpx.AsyncClient | None = getattr(request.app.state, "http_client", None)

    if client is None:
        raise RuntimeError("HTTP client not initialized. This should never happen.")

    return client


async def get_result_store(request: Request) -> KeyValueStore:
    """Get the result cache store from app state."""
    store: KeyValueStore | None = getattr(request.app.state, "result_store", None)

    if store is None:
        raise RuntimeError("Result store not initialized.")

    return store


async def get_state_store(request: Request) -> KeyValueStore:
    """Get the source state store (Apple Music memory record) from app state."""
    store: KeyValueStore | None = getattr(request.app.state, "state_store", None)

    if store is None:
        raise RuntimeError("State store not initialized.")

    return store


async def get_spotify_adapter(client: httpx.AsyncClient = Depends(get_http_client)) -> SpotifyAdapter:
    """Build the Spotify adapter on the shared HTTP client."""
    return SpotifyAdapter(client)


async def get_apple_music_adapter(
    client: httpx.AsyncClient = Depends(get_http_client),
    state_store: KeyValueStore = Depends(get_state_store),
) -> AppleMusicAdapter:
    """Build the Apple Music adapter on the shared HTTP client and state store."""
    return AppleMusicAdapter(client, state_store)
