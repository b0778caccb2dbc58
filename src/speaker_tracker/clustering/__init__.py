"""Online speaker clustering over voiced frames."""

from speaker_tracker.clustering.speaker_clusterer import (
    ClassifyResult,
    ProfileStats,
    SpeakerClusterer,
    SpeakerDetectorState,
    VoiceProfile,
    calculate_similarity,
    classify,
    detect_speaker,
)

__all__ = [
    "ClassifyResult",
    "ProfileStats",
    "SpeakerClusterer",
    "SpeakerDetectorState",
    "VoiceProfile",
    "calculate_similarity",
    "classify",
    "detect_speaker",
]
