"""Unit tests and toy example for volume-first voice activity detection."""

from __future__ import annotations

import unittest

import numpy as np

from speaker_tracker.audio.features import FeatureVector
from speaker_tracker.vad import VoiceActivityDetector, detect_voice_activity


def _features(volume: float, pitch: float = 0.0, centroid: float = 0.0) -> FeatureVector:
    return FeatureVector(volume=volume, pitch=pitch, spectral_centroid=centroid)


class TestDetectVoiceActivity(unittest.TestCase):
    """Tests for detect_voice_activity."""

    def test_loud_frames_always_voiced(self) -> None:
        """Above 0.02 RMS the decision ignores pitch and centroid."""
        rng = np.random.default_rng(11)
        for _ in range(200):
            volume = float(rng.uniform(0.0201, 1.0))
            pitch = float(rng.uniform(0, 5000))
            centroid = float(rng.uniform(0, 20000))
            self.assertTrue(detect_voice_activity(_features(volume, pitch, centroid)))

    def test_quiet_frame_with_voice_pitch(self) -> None:
        self.assertTrue(detect_voice_activity(_features(0.01, pitch=180.0)))

    def test_quiet_frame_with_spectral_content(self) -> None:
        self.assertTrue(detect_voice_activity(_features(0.01, centroid=150.0)))

    def test_quiet_frame_without_voice_cues(self) -> None:
        """Pitch outside (50, 600) and low centroid: silent."""
        self.assertFalse(detect_voice_activity(_features(0.01, pitch=700.0, centroid=80.0)))
        self.assertFalse(detect_voice_activity(_features(0.01, pitch=50.0, centroid=100.0)))

    def test_below_silence_threshold(self) -> None:
        self.assertFalse(detect_voice_activity(_features(0.005, pitch=180.0, centroid=900.0)))
        self.assertFalse(detect_voice_activity(_features(0.001)))

    def test_custom_threshold(self) -> None:
        features = _features(0.01, pitch=180.0)
        self.assertTrue(detect_voice_activity(features, silence_threshold=0.008))
        self.assertFalse(detect_voice_activity(features, silence_threshold=0.015))


class TestVoiceActivityDetector(unittest.TestCase):
    """Tests for transition tracking."""

    def test_events_only_on_transitions(self) -> None:
        vad = VoiceActivityDetector()
        loud, quiet = _features(0.05), _features(0.001)
        self.assertIsNone(vad.update(quiet, 0.0))
        on = vad.update(loud, 0.1)
        self.assertIsNotNone(on)
        self.assertTrue(on.is_active)
        self.assertEqual(on.timestamp, 0.1)
        self.assertIsNone(vad.update(loud, 0.2))
        off = vad.update(quiet, 0.3)
        self.assertFalse(off.is_active)
        self.assertFalse(vad.active)

    def test_reset(self) -> None:
        vad = VoiceActivityDetector()
        vad.update(_features(0.05), 0.0)
        vad.reset()
        self.assertFalse(vad.active)

    def test_negative_threshold(self) -> None:
        with self.assertRaises(ValueError):
            VoiceActivityDetector(silence_threshold=-0.1)


def run_toy_example() -> None:
    """Print VAD decisions for a few representative frames."""
    print("=== Toy example: voice activity ===\n")
    for volume, pitch, centroid in [(0.05, 0, 0), (0.01, 150, 0), (0.01, 0, 50), (0.001, 150, 900)]:
        active = detect_voice_activity(_features(volume, pitch, centroid))
        print(f"  volume={volume:.3f} pitch={pitch:5.1f} centroid={centroid:6.1f} -> {'voice' if active else 'silence'}")
    print("\nDone.")


if __name__ == "__main__":
    run_toy_example()
    print("\n--- Running unit tests ---")
    unittest.main(argv=[""], exit=False, verbosity=2)
