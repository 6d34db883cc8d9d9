"""Now Playing models"""

from now_playing.models.base_models import HealthResponse, ReadinessChecks, ReadinessResponse
from now_playing.models.playback import EPOCH, PlaybackSource, PlaybackState, SourceMemory

__all__ = [
    "HealthResponse",
    "ReadinessChecks",
    "ReadinessResponse",
    "EPOCH",
    "PlaybackSource",
    "PlaybackState",
    "SourceMemory",
]
