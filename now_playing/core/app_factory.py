"""Application factory."""

from fastapi import FastAPI

from now_playing import __version__
from now_playing.config import Settings, get_settings
from now_playing.core.lifespan import lifespan
from now_playing.core.middleware import setup_middleware
from now_playing.middleware.error_handlers import register_error_handlers
from now_playing.routers import health_router, now_playing_router

API_DESCRIPTION = """
What is playing right now, across Spotify and Apple Music.

`GET /` answers with one playback state. Spotify wins whenever it reports
active playback. Otherwise Apple Music, whose liveness is inferred from its
play history, or else whichever source played most recently.

Answers are cached for the length of the track (at most 10 minutes, 2 minutes
when the length is unknown). `?noCache=true` forces a fresh lookup and the
`X-Cache-Status` header reports `HIT` or `MISS`.
"""

OPENAPI_TAGS = [
    {"name": "now-playing", "description": "Merged playback state"},
    {"name": "health", "description": "Liveness and readiness probes"},
]


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI app with middleware, error handlers and routers.

    Args:
        settings: Settings to configure middleware with (defaults to get_settings())
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Now Playing API",
        description=API_DESCRIPTION,
        version=__version__,
        lifespan=lifespan,
        openapi_tags=OPENAPI_TAGS,
        license_info={"name": "MIT"},
    )

    setup_middleware(app, settings, now_playing_router.limiter)
    register_error_handlers(app)

    app.include_router(now_playing_router.router, tags=["now-playing"])
    app.include_router(health_router.router, tags=["health"])

    return app
