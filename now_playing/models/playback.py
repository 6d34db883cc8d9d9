"""Pydantic models for playback state exchanged between sources, cache and API."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

# Fields that only make sense for a successfully resolved track
DESCRIPTIVE_FIELDS = ("source", "duration_ms", "title", "artist", "album", "album_art_url", "track_url")


def utc_now() -> datetime:
    """Current wall-clock time as an aware UTC datetime."""
    return datetime.now(UTC)


def coerce_timestamp(value: Any) -> datetime:
    """Parse a timestamp, falling back to the epoch when absent or unparseable."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return EPOCH
    else:
        return EPOCH

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def format_timestamp(value: datetime) -> str:
    """ISO 8601 in UTC with millisecond precision and a Z suffix."""
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class PlaybackSource(str, Enum):
    """Streaming services that can report playback."""

    SPOTIFY = "Spotify"
    APPLE_MUSIC = "Apple Music"


class PlaybackState(BaseModel):
    """Normalized playback state of one source, or the merged answer.

    Field aliases are the JSON names served to clients and stored in the
    result cache.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    success: bool
    is_playing: bool = Field(default=False, alias="isPlaying")
    observed_at: datetime = Field(default=EPOCH, alias="timeStamp")
    source: PlaybackSource | None = None
    duration_ms: int | None = Field(default=None, alias="duration", ge=0)
    title: str | None = None
    artist: str | None = None
    album: str | None = None
    album_art_url: str | None = Field(default=None, alias="albumImageUrl")
    track_url: str | None = Field(default=None, alias="songUrl")
    error: str | None = None

    @field_validator("observed_at", mode="before")
    @classmethod
    def parse_observed_at(cls, v: Any) -> datetime:
        return coerce_timestamp(v)

    @field_serializer("observed_at")
    def serialize_observed_at(self, v: datetime) -> str:
        return format_timestamp(v)

    @model_validator(mode="after")
    def check_invariants(self) -> "PlaybackState":
        """A failed state carries no track data; a playing state always has a title."""
        if not self.success:
            if self.is_playing:
                raise ValueError("a failed playback state cannot be playing")
            present = [name for name in DESCRIPTIVE_FIELDS if getattr(self, name) is not None]
            if present:
                raise ValueError(f"a failed playback state cannot carry {', '.join(present)}")
        if self.is_playing and not self.title:
            raise ValueError("a playing track must have a title")
        return self

    @classmethod
    def failure(cls, error: str, now: datetime | None = None) -> "PlaybackState":
        """Build the failed state reported when a source cannot be read."""
        return cls(success=False, is_playing=False, observed_at=now or utc_now(), error=error)

    @classmethod
    def idle(cls) -> "PlaybackState":
        """Build the 'nothing is playing' state, dated at the epoch."""
        return cls(success=True, is_playing=False, observed_at=EPOCH)

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict using wire names, absent fields omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SourceMemory(BaseModel):
    """Last track observed from a history-only source and when it was first seen."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    track_id: str = Field(alias="trackId", min_length=1)
    observed_at: datetime = Field(alias="observedAt")

    @field_validator("observed_at", mode="after")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        return v if v.tzinfo else v.replace(tzinfo=UTC)

    @field_serializer("observed_at")
    def serialize_observed_at(self, v: datetime) -> str:
        return format_timestamp(v)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
