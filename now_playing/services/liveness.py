"""Liveness inference for sources that only report play history.

A history endpoint says which track was played last, not whether it is still
playing. Polling it repeatedly cannot tell "still listening to the same long
track" from "finished, nothing new started". The heuristic here keeps a small
SourceMemory record ({trackId, observedAt}) in the state store and treats a
track as live while the time since it was first observed is shorter than its
duration.

Known blind spots: a replay of the exact same track is indistinguishable from
the original play, and no correction is made for clock skew between this
host and the service.
"""

from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict, ValidationError

from now_playing.logging_config import get_logger, log_with_context
from now_playing.models import SourceMemory
from now_playing.protocols import KeyValueStore

logger = get_logger(__name__)


class LivenessDecision(BaseModel):
    """Outcome of one liveness check."""

    model_config = ConfigDict(frozen=True)

    is_playing: bool
    started_at: datetime
    memory: SourceMemory
    memory_changed: bool


def infer_liveness(
    current_track_id: str,
    duration_ms: int | None,
    now: datetime,
    memory: SourceMemory | None,
) -> LivenessDecision:
    """Decide whether the most recently played track is still playing.

    Args:
        current_track_id: ID of the latest track in the source's history
        duration_ms: Track duration; a missing duration gives a zero-length window
        now: Current wall-clock time
        memory: Previously stored observation, if any

    Returns:
        LivenessDecision. memory_changed is True only when the record must be
        written back (first observation or a different track).
    """
    if memory is None or memory.track_id != current_track_id:
        new_memory = SourceMemory(track_id=current_track_id, observed_at=now)
        return LivenessDecision(is_playing=True, started_at=now, memory=new_memory, memory_changed=True)

    window_start = now - timedelta(milliseconds=duration_ms or 0)
    return LivenessDecision(
        is_playing=memory.observed_at > window_start,
        started_at=memory.observed_at,
        memory=memory,
        memory_changed=False,
    )


async def load_memory(store: KeyValueStore, key: str) -> SourceMemory | None:
    """Read the stored observation, treating an unreadable record as absent."""
    raw = await store.get(key)
    if raw is None:
        return None
    try:
        return SourceMemory.model_validate(raw)
    except ValidationError as e:
        log_with_context(
            logger,
            "warning",
            "Discarding invalid source memory",
            store_key=key,
            error=str(e),
            event_type="source_memory_invalid",
        )
        return None


async def resolve_liveness(
    store: KeyValueStore,
    key: str,
    current_track_id: str,
    duration_ms: int | None,
    now: datetime,
) -> LivenessDecision:
    """Load the memory record, infer liveness and persist a new observation.

    The record is only written when the track changed, so repeated polls of
    the same track leave the store untouched.
    """
    memory = await load_memory(store, key)
    decision = infer_liveness(current_track_id, duration_ms, now, memory)

    if decision.memory_changed:
        await store.put(key, decision.memory.to_payload())
        log_with_context(
            logger,
            "info",
            "New track detected, source memory updated",
            store_key=key,
            track_id=current_track_id,
            event_type="source_memory_updated",
        )
    else:
        log_with_context(
            logger,
            "debug",
            "Same track as last check",
            store_key=key,
            track_id=current_track_id,
            is_playing=decision.is_playing,
            first_seen=decision.started_at.isoformat(),
            event_type="source_memory_reused",
        )

    return decision
