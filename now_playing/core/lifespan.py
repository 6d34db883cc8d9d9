"""Application lifespan management."""

import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI

from now_playing import __version__
from now_playing.config import get_settings
from now_playing.logging_config import get_logger, log_with_context
from now_playing.middleware.redaction import redact_headers, redact_url
from now_playing.store import APPLE_STATE_NAMESPACE, RESULT_CACHE_NAMESPACE, create_store

logger = get_logger(__name__)

STARTED_AT_EXTENSION = "now_playing.started_at"


def _elapsed_ms(response: httpx.Response) -> int | None:
    started_at = response.request.extensions.get(STARTED_AT_EXTENSION)
    if started_at is None:
        return None
    return int((time.monotonic() - started_at) * 1000)


async def log_request(request: httpx.Request) -> None:
    """Log an outbound source API call without its credentials."""
    request.extensions[STARTED_AT_EXTENSION] = time.monotonic()
    log_with_context(
        logger,
        "info",
        "HTTP Request",
        method=request.method,
        url=redact_url(request.url),
        headers=redact_headers(request.headers),
        event_type="http_request",
    )


async def log_response(response: httpx.Response) -> None:
    """Log a source API response status and latency."""
    log_with_context(
        logger,
        "info",
        "HTTP Response",
        status_code=response.status_code,
        url=redact_url(response.request.url),
        elapsed_ms=_elapsed_ms(response),
        event_type="http_response",
    )


def create_http_client(read_timeout: float) -> httpx.AsyncClient:
    """Create the shared outbound HTTP client with connection pooling."""
    event_hooks: dict[str, list[Callable[..., Any]]] = {
        "request": [log_request],
        "response": [log_response],
    }
    return httpx.AsyncClient(
        timeout=httpx.Timeout(
            connect=5.0,  # Connection establishment timeout
            read=read_timeout,
            write=5.0,
            pool=5.0,
        ),
        limits=httpx.Limits(
            max_keepalive_connections=5,
            max_connections=10,
            keepalive_expiry=30.0,
        ),
        follow_redirects=True,
        event_hooks=event_hooks,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan - startup and shutdown events.

    Exceptions after yield are re-raised so cleanup still happens and the
    error is not swallowed.
    """
    settings = get_settings()
    app.state.startup_time = time.time()
    app.state.request_count = 0

    log_with_context(
        logger,
        "info",
        "Starting Now Playing application",
        version=__version__,
        store_backend=settings.store_backend,
        spotify_configured=settings.spotify_configured,
        apple_music_configured=settings.apple_music_configured,
        event_type="app_startup",
    )

    client = create_http_client(settings.http_timeout)
    app.state.http_client = client
    log_with_context(
        logger,
        "info",
        "HTTP client initialized successfully",
        event_type="http_client_ready",
    )

    app.state.result_store = create_store(RESULT_CACHE_NAMESPACE, settings)
    app.state.state_store = create_store(APPLE_STATE_NAMESPACE, settings)
    log_with_context(
        logger,
        "info",
        "Stores initialized",
        store_backend=settings.store_backend,
        event_type="stores_ready",
    )

    try:
        yield
    except Exception as e:
        log_with_context(
            logger,
            "error",
            "Application error during lifespan",
            error=str(e),
            error_type=type(e).__name__,
            event_type="app_error",
        )
        raise
    finally:
        log_with_context(
            logger,
            "info",
            "Shutting down Now Playing application",
            event_type="app_shutdown",
        )

        await client.aclose()
        log_with_context(
            logger,
            "info",
            "HTTP client closed",
            event_type="http_client_cleanup",
        )
