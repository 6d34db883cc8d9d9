"""Exception handlers returning structured JSON errors.

The now-playing endpoint converts source failures into PlaybackState values,
so these handlers only see store, rate-limit and programming errors.
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from now_playing.exceptions import ErrorCode, NowPlayingException
from now_playing.logging_config import get_logger, log_with_context
from now_playing.middleware.redaction import redact_url

logger = get_logger(__name__)


def error_response(
    status_code: int,
    code: ErrorCode,
    message: str,
    details: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build the {"error": {code, message, details?}} body."""
    error: dict[str, Any] = {"code": code.value, "message": message}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error}, headers=headers)


async def now_playing_exception_handler(request: Request, exc: NowPlayingException) -> JSONResponse:
    log_with_context(
        logger,
        "warning",
        "Request failed",
        error_code=exc.code.value,
        error_message=exc.message,
        status_code=exc.status_code,
        method=request.method,
        url=redact_url(str(request.url)),
        event_type="request_error",
    )
    return error_response(exc.status_code, exc.code, exc.message, exc.details)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Answer 429 with the limit that was hit."""
    log_with_context(
        logger,
        "warning",
        "Rate limit exceeded",
        limit=str(exc.detail),
        client=request.client.host if request.client else None,
        event_type="rate_limited",
    )
    return error_response(
        429,
        ErrorCode.RATE_LIMITED,
        f"Rate limit exceeded: {exc.detail}",
        headers={"Retry-After": "60", "Access-Control-Allow-Origin": "*"},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the traceback and answer 500 without internal details."""
    logger.error(
        "Unhandled exception",
        exc_info=exc,
        extra={
            "error_type": type(exc).__name__,
            "method": request.method,
            "url": redact_url(str(request.url)),
            "event_type": "unhandled_error",
        },
    )
    return error_response(500, ErrorCode.INTERNAL_ERROR, "Internal server error")


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(NowPlayingException, now_playing_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
