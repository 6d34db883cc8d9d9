"""Health endpoints."""

import time
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from now_playing import __version__
from now_playing.config import Settings, get_settings
from now_playing.dependencies import get_result_store, get_state_store
from now_playing.exceptions import StoreException
from now_playing.models import HealthResponse, PlaybackSource, ReadinessChecks, ReadinessResponse
from now_playing.protocols import KeyValueStore

router = APIRouter(prefix="/health")

HEALTH_PROBE_KEY = "health:probe"


async def _check_store(store: KeyValueStore) -> str:
    try:
        await store.get(HEALTH_PROBE_KEY)
    except StoreException as e:
        return f"error: {e.message[:50]}"
    return "ok"


@router.get("", response_model=HealthResponse)
async def health_check():
    """Liveness probe for container healthchecks. Touches no dependency."""
    return HealthResponse(version=__version__)


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(
    request: Request,
    settings: Settings = Depends(get_settings),
    result_store: KeyValueStore = Depends(get_result_store),
    state_store: KeyValueStore = Depends(get_state_store),
):
    """Readiness probe.

    An unreadable store makes the service unready (503). Unconfigured sources
    are only reported: the endpoint keeps answering from the other source.
    """
    state = request.app.state
    checks = ReadinessChecks(
        http_client="ok" if getattr(state, "http_client", None) is not None else "error: not initialized",
        result_store=await _check_store(result_store),
        state_store=await _check_store(state_store),
    )
    startup_time = getattr(state, "startup_time", None)

    response = ReadinessResponse(
        status="healthy" if checks.all_ok else "unhealthy",
        version=__version__,
        timestamp=datetime.now(UTC),
        checks=checks,
        sources={
            PlaybackSource.SPOTIFY.value: settings.spotify_configured,
            PlaybackSource.APPLE_MUSIC.value: settings.apple_music_configured,
        },
        uptime_seconds=int(time.time() - startup_time) if startup_time is not None else None,
        request_count=getattr(state, "request_count", 0),
    )
    return JSONResponse(status_code=200 if checks.all_ok else 503, content=response.model_dump(mode="json"))
