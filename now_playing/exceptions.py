"""Custom exceptions for Now Playing with proper HTTP status codes."""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for structured error responses."""

    # Generic errors
    NOW_PLAYING_ERROR = "NOW_PLAYING_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    RATE_LIMITED = "RATE_LIMITED"

    # Source errors
    SOURCE_ERROR = "SOURCE_ERROR"
    TOKEN_ACQUISITION_FAILED = "TOKEN_ACQUISITION_FAILED"
    UPSTREAM_HTTP_ERROR = "UPSTREAM_HTTP_ERROR"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"

    # Storage errors
    STORE_ERROR = "STORE_ERROR"


class NowPlayingException(Exception):
    """Base exception for now-playing errors with HTTP status code support.

    All custom exceptions should inherit from this class to ensure
    consistent error handling across the application.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.NOW_PLAYING_ERROR,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        """Initialize now-playing exception.

        Args:
            message: Human-readable error message
            code: Error code from ErrorCode enum
            status_code: HTTP status code (default 500)
            details: Additional error context/details
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class SourceException(NowPlayingException):
    """A streaming source could not produce a playback state.

    Raised inside the source adapters and converted to a failed
    PlaybackState at the adapter boundary.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.SOURCE_ERROR,
        status_code: int = 502,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, status_code, details)


class TokenAcquisitionException(SourceException):
    """Access token or developer token could not be obtained."""

    def __init__(self, message: str = "Could not acquire access token", details: dict[str, Any] | None = None):
        super().__init__(
            message,
            code=ErrorCode.TOKEN_ACQUISITION_FAILED,
            status_code=401,
            details=details,
        )


class UpstreamHttpException(SourceException):
    """Source API answered with a non-success status."""

    def __init__(self, message: str, upstream_status: int, details: dict[str, Any] | None = None):
        self.upstream_status = upstream_status
        super().__init__(
            message,
            code=ErrorCode.UPSTREAM_HTTP_ERROR,
            status_code=502,
            details={"upstream_status": upstream_status, **(details or {})},
        )


class TransportException(SourceException):
    """Network failure while talking to a source API."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message,
            code=ErrorCode.TRANSPORT_ERROR,
            status_code=503,
            details=details,
        )


class MalformedResponseException(SourceException):
    """Source API payload is missing expected fields."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message,
            code=ErrorCode.MALFORMED_RESPONSE,
            status_code=502,
            details=details,
        )


class StoreException(NowPlayingException):
    """Key-value store read or write failed."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message,
            code=ErrorCode.STORE_ERROR,
            status_code=503,
            details=details,
        )
