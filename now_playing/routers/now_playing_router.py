"""Now-playing endpoint."""

import json
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address

from now_playing.config import Settings, get_settings
from now_playing.dependencies import get_apple_music_adapter, get_result_store, get_spotify_adapter
from now_playing.models import PlaybackState
from now_playing.protocols import KeyValueStore, PlaybackAdapter
from now_playing.services.cache_policy import is_bypass_requested, should_cache
from now_playing.services.now_playing_service import (
    CacheStatus,
    clear_cached_result,
    compute_now_playing,
    read_cached_result,
    store_result,
)

router = APIRouter()
limiter = Limiter(key_func=get_remote_address)

NOW_PLAYING_RATE_LIMIT = "60/minute"


class PrettyJSONResponse(JSONResponse):
    """JSON response rendered with two-space indentation."""

    def render(self, content: Any) -> bytes:
        return json.dumps(content, indent=2, ensure_ascii=False).encode("utf-8")


def playback_response(state: PlaybackState, cache_status: CacheStatus) -> PrettyJSONResponse:
    """Serialize a playback state with the cache status and open CORS headers."""
    return PrettyJSONResponse(
        content=state.to_payload(),
        headers={
            "X-Cache-Status": cache_status.value,
            "Access-Control-Allow-Origin": "*",
        },
    )


@router.get(
    "/",
    summary="Get what is playing right now",
    description="""
    Returns the current playback state merged from Spotify and Apple Music.

    Always answers 200; check `success` and `error` to detect source failures.
    Pass `noCache=true` to delete the cached answer and fetch fresh data.

    **Rate Limited:** 60 requests/minute
    """,
    responses={
        200: {
            "description": "Playback state",
            "content": {
                "application/json": {
                    "example": {
                        "success": True,
                        "isPlaying": True,
                        "timeStamp": "2024-01-01T12:00:00.000Z",
                        "source": "Spotify",
                        "duration": 354000,
                        "title": "Bohemian Rhapsody",
                        "artist": "Queen",
                        "album": "A Night at the Opera",
                        "albumImageUrl": "https://i.scdn.co/image/example",
                        "songUrl": "https://open.spotify.com/track/example",
                    }
                }
            },
        },
    },
)
@limiter.limit(NOW_PLAYING_RATE_LIMIT)
async def get_now_playing(
    request: Request,
    background_tasks: BackgroundTasks,
    no_cache: str | None = Query(default=None, alias="noCache", description="'true' bypasses the cache"),
    settings: Settings = Depends(get_settings),
    result_store: KeyValueStore = Depends(get_result_store),
    spotify: PlaybackAdapter = Depends(get_spotify_adapter),
    apple_music: PlaybackAdapter = Depends(get_apple_music_adapter),
):
    """Get the merged now-playing state.

    Args:
        request: FastAPI request object
        background_tasks: Runs the cache write after the response is sent
        no_cache: 'true' to bypass and refresh the result cache
        settings: Settings with source credentials
        result_store: Result cache store
        spotify: Spotify adapter (priority source)
        apple_music: Apple Music adapter

    Returns:
        Pretty-printed PlaybackState JSON with X-Cache-Status header
    """
    if is_bypass_requested(no_cache):
        await clear_cached_result(result_store)
    else:
        cached = await read_cached_result(result_store)
        if cached is not None:
            return playback_response(cached, CacheStatus.HIT)

    state = await compute_now_playing(spotify, apple_music, settings)

    if should_cache(state):
        background_tasks.add_task(store_result, result_store, state)

    return playback_response(state, CacheStatus.MISS)
