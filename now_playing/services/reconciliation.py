"""Merging of the two source states into one now-playing answer."""

from now_playing.models import PlaybackState


def merge(primary: PlaybackState, secondary: PlaybackState) -> PlaybackState:
    """Pick the state to report from the primary and secondary source.

    Priority, in order:
    1. primary if it is playing (it wins even when secondary is playing too)
    2. secondary if it is playing
    3. whichever was observed more recently, primary on a tie

    Failed states take part like any other: their observed_at decides step 3.
    Argument order matters; the caller passes Spotify as primary.
    """
    if primary.is_playing:
        return primary
    if secondary.is_playing:
        return secondary
    return primary if primary.observed_at >= secondary.observed_at else secondary
