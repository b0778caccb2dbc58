"""Voice activity detection over frame features."""

from speaker_tracker.vad.voice_activity import (
    VoiceActivityDetector,
    VoiceActivityEvent,
    detect_voice_activity,
)

__all__ = ["VoiceActivityDetector", "VoiceActivityEvent", "detect_voice_activity"]
