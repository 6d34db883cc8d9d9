"""Secret redaction for outbound request logging.

Spotify token exchanges and Apple Music requests carry credentials in query
strings, form bodies and headers; none of them may reach the log files.
"""

from collections.abc import Mapping

import httpx

REDACTED = "REDACTED"

SENSITIVE_PARAMS = frozenset(
    {
        "access_token",
        "client_secret",
        "code",
        "key",
        "password",
        "refresh_token",
        "secret",
        "token",
    }
)

SENSITIVE_HEADERS = frozenset({"authorization", "music-user-token", "cookie", "set-cookie"})


def redact_url(url: str | httpx.URL) -> str:
    """Return url with the values of sensitive query parameters masked."""
    url = httpx.URL(url)
    if not url.query:
        return str(url)

    params = [
        (name, REDACTED if name.lower() in SENSITIVE_PARAMS else value)
        for name, value in url.params.multi_items()
    ]
    return str(url.copy_with(params=params))


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Copy headers, masking credential-bearing ones."""
    return {name: REDACTED if name.lower() in SENSITIVE_HEADERS else value for name, value in headers.items()}
