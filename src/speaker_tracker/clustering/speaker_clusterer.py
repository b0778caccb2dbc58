"""Online speaker attribution from pitch and spectral centroid.

Greedy nearest-profile classifier with a hard speaker cap: each voiced frame
is matched against the running profile of every known speaker, assigned to
the best match or to a new speaker, and the chosen profile absorbs the frame
through an exponential moving average. Profiles are never merged, split or
re-clustered; an early wrong assignment stays in its profile.

The state is an explicit value: `classify(state, features)` returns the
decision and the next state, and never mutates its input.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterator, List, Optional, Tuple

from speaker_tracker.audio.features import FeatureVector
from speaker_tracker.config import TrackerConfig
from speaker_tracker.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Frames whose pitch falls outside this band (Hz, inclusive) cannot be attributed
PITCH_GATE_MIN_HZ = 60.0
PITCH_GATE_MAX_HZ = 400.0

# Acceptance windows for "same speaker": a difference of this size scores 0
PITCH_TOLERANCE_HZ = 150.0
CENTROID_TOLERANCE_HZ = 1000.0

PITCH_WEIGHT = 0.6
CENTROID_WEIGHT = 0.4

# Similarity reported for profiles that have not seen enough frames yet
UNSTABLE_SIMILARITY = 0.5

MAX_ALPHA = 0.1

NO_SPEAKER = -1


@dataclass(frozen=True)
class VoiceProfile:
    """Running acoustic fingerprint of one speaker."""

    speaker_id: int
    avg_pitch: float
    avg_spectral_centroid: float
    pitch_variance: float = 0.0
    samples: int = 0


@dataclass(frozen=True)
class ClassifyResult:
    """Attribution of one frame. speaker_id is -1 when nobody can be named."""

    speaker_id: int
    is_new: bool
    confidence: float


@dataclass(frozen=True)
class ProfileStats:
    speaker_id: int
    avg_pitch: float
    samples: int


@dataclass(frozen=True)
class SpeakerDetectorState:
    """Slot table of profiles indexed by speaker id, plus the last attribution."""

    max_speakers: int
    profiles: Tuple[Optional[VoiceProfile], ...]
    current_speaker_id: Optional[int] = None
    speaker_count: int = 0

    @classmethod
    def empty(cls, max_speakers: int) -> "SpeakerDetectorState":
        if max_speakers <= 0:
            raise ConfigurationError(f"max_speakers must be > 0, got {max_speakers}")
        return cls(max_speakers=max_speakers, profiles=(None,) * max_speakers)

    def profile(self, speaker_id: int) -> Optional[VoiceProfile]:
        if 0 <= speaker_id < self.max_speakers:
            return self.profiles[speaker_id]
        return None

    def iter_profiles(self) -> Iterator[VoiceProfile]:
        """Existing profiles in speaker id order."""
        return (p for p in self.profiles if p is not None)

    @property
    def is_full(self) -> bool:
        return self.speaker_count >= self.max_speakers


def calculate_similarity(
    features: FeatureVector,
    profile: VoiceProfile,
    stable_samples: int = 10,
) -> float:
    """Similarity in [0, 1] between a frame and a profile (1 = same voice)."""
    if profile.samples < stable_samples:
        return UNSTABLE_SIMILARITY

    pitch_diff = abs(features.pitch - profile.avg_pitch)
    pitch_similarity = max(0.0, 1 - pitch_diff / PITCH_TOLERANCE_HZ)

    centroid_diff = abs(features.spectral_centroid - profile.avg_spectral_centroid)
    centroid_similarity = max(0.0, 1 - centroid_diff / CENTROID_TOLERANCE_HZ)

    return PITCH_WEIGHT * pitch_similarity + CENTROID_WEIGHT * centroid_similarity


def create_profile(speaker_id: int, features: FeatureVector) -> VoiceProfile:
    return VoiceProfile(
        speaker_id=speaker_id,
        avg_pitch=features.pitch,
        avg_spectral_centroid=features.spectral_centroid,
        pitch_variance=0.0,
        samples=1,
    )


def update_profile(profile: VoiceProfile, features: FeatureVector) -> VoiceProfile:
    """Fold one frame into a profile.

    alpha = min(0.1, 1 / (samples + 1)): the first frames move the averages
    a lot, later ones only nudge them.
    """
    alpha = min(MAX_ALPHA, 1 / (profile.samples + 1))
    avg_pitch = profile.avg_pitch * (1 - alpha) + features.pitch * alpha
    avg_centroid = profile.avg_spectral_centroid * (1 - alpha) + features.spectral_centroid * alpha
    variance = profile.pitch_variance * (1 - alpha) + (features.pitch - avg_pitch) ** 2 * alpha
    return replace(
        profile,
        avg_pitch=avg_pitch,
        avg_spectral_centroid=avg_centroid,
        pitch_variance=variance,
        samples=profile.samples + 1,
    )


def _has_usable_pitch(features: FeatureVector) -> bool:
    return PITCH_GATE_MIN_HZ <= features.pitch <= PITCH_GATE_MAX_HZ


def detect_speaker(
    state: SpeakerDetectorState,
    features: FeatureVector,
    config: Optional[TrackerConfig] = None,
) -> ClassifyResult:
    """Decide which speaker a frame belongs to, without touching any profile."""
    config = config or TrackerConfig()
    if not _has_usable_pitch(features):
        current = state.current_speaker_id
        return ClassifyResult(
            speaker_id=NO_SPEAKER if current is None else current,
            is_new=False,
            confidence=0.0,
        )

    best_speaker_id = NO_SPEAKER
    best_similarity = 0.0
    for profile in state.iter_profiles():
        similarity = calculate_similarity(features, profile, config.profile_stable_samples)
        if similarity > best_similarity:
            best_similarity = similarity
            best_speaker_id = profile.speaker_id

    if best_similarity < config.speaker_change_threshold:
        if not state.is_full:
            return ClassifyResult(state.speaker_count, True, best_similarity)
        # At the cap: attribute to the closest voice, or speaker 0 if none scored
        logger.debug(
            "Speaker cap %d reached, best similarity %.3f; assigning speaker %d",
            state.max_speakers,
            best_similarity,
            max(best_speaker_id, 0),
        )
        return ClassifyResult(max(best_speaker_id, 0), False, best_similarity)

    return ClassifyResult(best_speaker_id, False, best_similarity)


def classify(
    state: SpeakerDetectorState,
    features: FeatureVector,
    config: Optional[TrackerConfig] = None,
) -> Tuple[ClassifyResult, SpeakerDetectorState]:
    """Attribute one voiced frame and return (decision, next state)."""
    result = detect_speaker(state, features, config)
    speaker_id = result.speaker_id
    if speaker_id < 0 or not _has_usable_pitch(features):
        return result, state

    profiles = list(state.profiles)
    if result.is_new:
        profiles[speaker_id] = create_profile(speaker_id, features)
        logger.debug(
            "New speaker %d (pitch %.1f Hz, centroid %.1f Hz)",
            speaker_id,
            features.pitch,
            features.spectral_centroid,
        )
    elif profiles[speaker_id] is not None:
        profiles[speaker_id] = update_profile(profiles[speaker_id], features)

    new_state = replace(
        state,
        profiles=tuple(profiles),
        current_speaker_id=speaker_id,
        speaker_count=state.speaker_count + 1 if result.is_new else state.speaker_count,
    )
    return result, new_state


def get_speaker_stats(state: SpeakerDetectorState) -> List[ProfileStats]:
    """Per-profile summary, ordered by speaker id."""
    return [ProfileStats(p.speaker_id, p.avg_pitch, p.samples) for p in state.iter_profiles()]


class SpeakerClusterer:
    """Owns one SpeakerDetectorState and threads it through classify().

    Interface:
      clusterer = SpeakerClusterer(TrackerConfig(max_speakers=3))
      result = clusterer.classify(features)   # ClassifyResult
      clusterer.reset()                       # forget every profile
    """

    def __init__(self, config: Optional[TrackerConfig] = None):
        self.config = (config or TrackerConfig()).validate()
        self._state = SpeakerDetectorState.empty(self.config.max_speakers)

    def classify(self, features: FeatureVector) -> ClassifyResult:
        result, self._state = classify(self._state, features, self.config)
        return result

    def reset(self) -> None:
        self._state = SpeakerDetectorState.empty(self.config.max_speakers)

    @property
    def state(self) -> SpeakerDetectorState:
        return self._state

    @property
    def profiles(self) -> List[VoiceProfile]:
        return list(self._state.iter_profiles())

    @property
    def speaker_count(self) -> int:
        return self._state.speaker_count

    @property
    def current_speaker_id(self) -> Optional[int]:
        return self._state.current_speaker_id

    def speaker_stats(self) -> List[ProfileStats]:
        return get_speaker_stats(self._state)
