"""Now-playing resolution: result cache lookup, concurrent source fetch and merge."""

import asyncio
from enum import Enum

from pydantic import ValidationError

from now_playing.config import Settings
from now_playing.exceptions import StoreException
from now_playing.logging_config import get_logger, log_with_context
from now_playing.models import PlaybackState
from now_playing.protocols import KeyValueStore, PlaybackAdapter
from now_playing.services.cache_policy import RESULT_CACHE_KEY, should_cache, ttl_for
from now_playing.services.reconciliation import merge

logger = get_logger(__name__)


class CacheStatus(str, Enum):
    """Value of the X-Cache-Status response header."""

    HIT = "HIT"
    MISS = "MISS"


async def read_cached_result(store: KeyValueStore) -> PlaybackState | None:
    """Return the cached answer, or None on a miss or unreadable entry."""
    try:
        raw = await store.get(RESULT_CACHE_KEY)
    except StoreException as e:
        log_with_context(
            logger,
            "warning",
            "Result cache read failed, treating as miss",
            error=e.message,
            event_type="result_cache_read_error",
        )
        return None

    if raw is None:
        return None

    try:
        return PlaybackState.model_validate(raw)
    except ValidationError as e:
        log_with_context(
            logger,
            "warning",
            "Discarding invalid cached result",
            error=str(e),
            event_type="result_cache_invalid",
        )
        return None


async def clear_cached_result(store: KeyValueStore) -> None:
    """Delete the cached answer so the next lookup recomputes it."""
    log_with_context(
        logger,
        "info",
        "Cache bypassed due to request parameter",
        event_type="result_cache_bypass",
    )
    try:
        await store.delete(RESULT_CACHE_KEY)
    except StoreException as e:
        log_with_context(
            logger,
            "warning",
            "Result cache delete failed",
            error=e.message,
            event_type="result_cache_delete_error",
        )


async def store_result(store: KeyValueStore, state: PlaybackState) -> None:
    """Cache a successful answer for as long as its track lasts.

    Runs after the response has been sent, so failures are only logged.
    """
    if not should_cache(state):
        return

    ttl_seconds = ttl_for(state)
    try:
        await store.put(RESULT_CACHE_KEY, state.to_payload(), ttl_seconds)
    except StoreException as e:
        log_with_context(
            logger,
            "error",
            "Result cache write failed",
            error=e.message,
            event_type="result_cache_write_error",
        )
        return

    log_with_context(
        logger,
        "debug",
        "Result cached",
        ttl_seconds=ttl_seconds,
        source=state.source.value if state.source else None,
        event_type="result_cache_write",
    )


async def compute_now_playing(
    primary: PlaybackAdapter,
    secondary: PlaybackAdapter,
    settings: Settings,
) -> PlaybackState:
    """Fetch both sources concurrently and merge them.

    Args:
        primary: Source that wins whenever it reports active playback
        secondary: The other source
        settings: Settings carrying both sources' credentials

    Returns:
        Merged PlaybackState
    """
    primary_state, secondary_state = await asyncio.gather(
        primary.fetch(settings),
        secondary.fetch(settings),
    )

    if not primary_state.success and not secondary_state.success:
        log_with_context(
            logger,
            "warning",
            "Both sources failed",
            primary_error=primary_state.error,
            secondary_error=secondary_state.error,
            event_type="all_sources_failed",
        )

    result = merge(primary_state, secondary_state)

    if result.is_playing:
        reason = "is playing"
    else:
        reason = "more recent"
        log_with_context(
            logger,
            "info",
            "Neither source is playing, comparing timestamps",
            primary_observed_at=primary_state.observed_at.isoformat(),
            secondary_observed_at=secondary_state.observed_at.isoformat(),
            event_type="now_playing_compare",
        )

    chosen = primary if result is primary_state else secondary
    log_with_context(
        logger,
        "info",
        f"Returning {chosen.source.value} data ({reason})",
        title=result.title,
        event_type="now_playing_resolved",
    )
    return result
