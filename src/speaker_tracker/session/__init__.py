"""Session status and per-speaker speaking time."""

from speaker_tracker.session.aggregator import (
    SessionAggregator,
    SessionStatus,
    Speaker,
    SpeakerChange,
    SpeakerStats,
    format_duration,
)

__all__ = [
    "SessionAggregator",
    "SessionStatus",
    "Speaker",
    "SpeakerChange",
    "SpeakerStats",
    "format_duration",
]
