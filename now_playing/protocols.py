"""Protocol definitions for dependency injection."""

from typing import Any, Protocol

from now_playing.config import Settings
from now_playing.models import PlaybackSource, PlaybackState


class KeyValueStore(Protocol):
    """Protocol for the external key-value stores.

    Used for both the result cache and the per-source state record, each in
    its own namespace.
    """

    async def get(self, key: str) -> Any | None: ...

    async def put(self, key: str, value: Any, ttl_seconds: int | None = None) -> None: ...

    async def delete(self, key: str) -> None: ...


class PlaybackAdapter(Protocol):
    """Protocol for streaming source adapters.

    Implementations normalize their service's response into a PlaybackState
    and never raise: every failure is reported as a failed state.
    """

    source: PlaybackSource

    async def fetch(self, settings: Settings) -> PlaybackState:
        """Fetch the current playback state.

        Args:
            settings: Application settings carrying the source credentials

        Returns:
            PlaybackState for this source
        """
        ...
