"""HTTP middleware: CORS, rate limiting and request accounting."""

import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter

from now_playing.config import Settings, get_cors_origins
from now_playing.logging_config import get_logger, log_with_context

logger = get_logger(__name__)


def setup_middleware(app: FastAPI, settings: Settings, limiter: Limiter) -> None:
    """Install CORS and request accounting, and attach the rate limiter.

    Limits are declared per route with @limiter.limit; app.state.limiter is
    the same instance so slowapi's handlers see the routes' limits.
    """
    origins = get_cors_origins(settings)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Cache-Status"],
    )
    log_with_context(logger, "info", "CORS configured", origins=origins, event_type="cors_config")

    app.state.limiter = limiter

    @app.middleware("http")
    async def track_requests(request: Request, call_next):
        """Count requests for /health/ready and log each one with its latency."""
        app.state.request_count = getattr(app.state, "request_count", 0) + 1
        started = time.perf_counter()
        response = await call_next(request)
        log_with_context(
            logger,
            "info",
            f"{request.method} {request.url.path} {response.status_code}",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            cache_status=response.headers.get("X-Cache-Status"),
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
            event_type="request_complete",
        )
        return response
