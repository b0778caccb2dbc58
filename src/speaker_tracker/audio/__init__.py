"""Audio frame sources and per-frame feature extraction."""

from speaker_tracker.audio.analyser import SpectrumAnalyser
from speaker_tracker.audio.collector import AudioCollector, iter_chunks
from speaker_tracker.audio.config import AudioConfig
from speaker_tracker.audio.features import FeatureExtractor, FeatureVector, RingBuffer

__all__ = [
    "AudioConfig",
    "AudioCollector",
    "FeatureExtractor",
    "FeatureVector",
    "RingBuffer",
    "SpectrumAnalyser",
    "iter_chunks",
]
