"""Speaker detection tunables, consolidated in one session configuration.

Defaults:
- VAD: silence threshold 0.008 RMS
- Debounce: 50 ms minimum speech before a silence closes an interval
- Clustering: change threshold 0.4, profiles trusted after 10 samples
- Speakers: 2 by default (the controller allows 2-5)
"""

from dataclasses import dataclass, replace

from speaker_tracker.errors import ConfigurationError


@dataclass(frozen=True)
class TrackerConfig:
    """Voice activity, clustering and aggregation configuration."""

    # Voice activity
    silence_threshold: float = 0.008

    # Aggregation (seconds)
    min_speech_duration: float = 0.05

    # Clustering
    speaker_change_threshold: float = 0.4
    profile_stable_samples: int = 10

    # Speaker cap
    max_speakers: int = 2
    min_speakers: int = 1

    def validate(self) -> "TrackerConfig":
        """Check every tunable; returns self so calls can be chained."""
        if self.min_speakers < 1:
            raise ConfigurationError("min_speakers must be >= 1")
        if self.max_speakers <= 0:
            raise ConfigurationError(f"max_speakers must be > 0, got {self.max_speakers}")
        if self.max_speakers < self.min_speakers:
            raise ConfigurationError(
                f"max_speakers must be >= {self.min_speakers}, got {self.max_speakers}"
            )
        if self.silence_threshold < 0:
            raise ConfigurationError("silence_threshold must be >= 0")
        if self.min_speech_duration < 0:
            raise ConfigurationError("min_speech_duration must be >= 0")
        if not 0.0 <= self.speaker_change_threshold <= 1.0:
            raise ConfigurationError("speaker_change_threshold must be in [0, 1]")
        if self.profile_stable_samples < 1:
            raise ConfigurationError("profile_stable_samples must be >= 1")
        return self

    def with_max_speakers(self, max_speakers: int) -> "TrackerConfig":
        """Copy with a different speaker cap, validated."""
        return replace(self, max_speakers=max_speakers).validate()
