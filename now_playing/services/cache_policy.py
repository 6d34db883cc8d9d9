"""Result cache policy: key, TTL and bypass rules."""

from now_playing.models import PlaybackState

RESULT_CACHE_KEY = "now_playing_result"

DEFAULT_CACHE_TTL = 120  # seconds, when the track duration is unknown
MAX_CACHE_TTL = 600  # seconds

NO_CACHE_VALUE = "true"


def ttl_for(state: PlaybackState) -> int:
    """Cache lifetime in seconds: the track length, capped at MAX_CACHE_TTL."""
    if state.duration_ms is None:
        return DEFAULT_CACHE_TTL
    return min(state.duration_ms // 1000, MAX_CACHE_TTL)


def should_cache(state: PlaybackState) -> bool:
    """Only successful answers are cached."""
    return state.success


def is_bypass_requested(no_cache: str | None) -> bool:
    """Whether the noCache query parameter asks to skip the cache."""
    return no_cache == NO_CACHE_VALUE
