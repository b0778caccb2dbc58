"""Volume-first voice activity detection.

Permissive on purpose: anything loud is voice, and quiet frames pass when
they still look like speech. The speaker clusterer filters further.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from speaker_tracker.audio.features import FeatureVector

DEFAULT_SILENCE_THRESHOLD = 0.008

# Above this RMS a frame is voiced regardless of pitch or spectrum
LOUD_VOLUME = 0.02

# Voice-shaped cues for quiet frames (Hz, exclusive bounds)
VOICE_PITCH_MIN_HZ = 50.0
VOICE_PITCH_MAX_HZ = 600.0
VOICE_CENTROID_MIN_HZ = 100.0


def detect_voice_activity(
    features: FeatureVector,
    silence_threshold: float = DEFAULT_SILENCE_THRESHOLD,
) -> bool:
    """True if the frame should be treated as speech."""
    if features.volume > LOUD_VOLUME:
        return True
    has_pitch = VOICE_PITCH_MIN_HZ < features.pitch < VOICE_PITCH_MAX_HZ
    has_frequency_content = features.spectral_centroid > VOICE_CENTROID_MIN_HZ
    return features.volume > silence_threshold and (has_pitch or has_frequency_content)


@dataclass(frozen=True)
class VoiceActivityEvent:
    """Voice activity switched on or off."""

    is_active: bool
    timestamp: float
    features: Optional[FeatureVector] = None


class VoiceActivityDetector:
    """Voice activity decisions plus on/off transition tracking.

    Interface:
      vad = VoiceActivityDetector(silence_threshold=0.008)
      active = vad.is_voice_active(features)     # pure decision
      event = vad.update(features, now)          # event only when state flips
      vad.reset()
    """

    def __init__(self, silence_threshold: float = DEFAULT_SILENCE_THRESHOLD):
        if silence_threshold < 0:
            raise ValueError("silence_threshold must be >= 0")
        self.silence_threshold = silence_threshold
        self._active = False

    @property
    def active(self) -> bool:
        """Decision for the most recent frame passed to update()."""
        return self._active

    def is_voice_active(self, features: FeatureVector) -> bool:
        return detect_voice_activity(features, self.silence_threshold)

    def update(self, features: FeatureVector, now: float) -> Optional[VoiceActivityEvent]:
        """Decide for one frame; return an event if the decision changed."""
        active = self.is_voice_active(features)
        if active == self._active:
            return None
        self._active = active
        return VoiceActivityEvent(is_active=active, timestamp=now, features=features)

    def reset(self) -> None:
        self._active = False
