"""Speaker tracker - frame features, voice activity, online speaker clustering, talk time."""

from speaker_tracker.config import TrackerConfig
from speaker_tracker.errors import ConfigurationError, InvalidInput, SpeakerTrackerError
from speaker_tracker.pipeline import FrameResult, SpeakerTrackingPipeline

__all__ = [
    "ConfigurationError",
    "FrameResult",
    "InvalidInput",
    "SpeakerTrackerError",
    "SpeakerTrackingPipeline",
    "TrackerConfig",
]
