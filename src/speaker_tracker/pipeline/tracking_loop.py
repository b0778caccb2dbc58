"""Frame loop: audio -> spectrum -> features -> VAD -> clusterer -> aggregator -> observers.

Glue that wires the components and exposes the session controls
(start / pause / resume / stop / reset). One frame is fully processed
before the next is accepted; a single lock makes controls issued from
another thread (e.g. a signal handler) atomic with respect to frames.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Tuple

import numpy as np

from speaker_tracker.audio import AudioCollector, FeatureExtractor, SpectrumAnalyser
from speaker_tracker.audio.config import AudioConfig
from speaker_tracker.audio.features import FeatureVector, RingBuffer
from speaker_tracker.clustering import SpeakerClusterer, SpeakerDetectorState
from speaker_tracker.config import TrackerConfig
from speaker_tracker.errors import InvalidInput
from speaker_tracker.session import (
    SessionAggregator,
    SessionStatus,
    Speaker,
    SpeakerChange,
    SpeakerStats,
)
from speaker_tracker.vad import VoiceActivityDetector, VoiceActivityEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameResult:
    """Everything an observer needs after one processed frame."""

    timestamp: float
    features: FeatureVector
    voice_active: bool
    speaker_id: Optional[int]
    confidence: float
    is_new_speaker: bool
    speakers: Tuple[Speaker, ...]


FrameCallback = Callable[[FrameResult], None]
SpeakerChangeCallback = Callable[[SpeakerChange], None]
VoiceActivityCallback = Callable[[VoiceActivityEvent], None]
Clock = Callable[[], float]


class SpeakerTrackingPipeline:
    """Runs speaker tracking over a stream of audio frames.

    Components are injected so you can use real or synthetic audio and
    swap the feature extractor or spectrum analyser.

    Interface:
      pipeline = SpeakerTrackingPipeline(
          config=TrackerConfig(max_speakers=3),
          on_frame=...,
          on_speaker_change=...,
          on_voice_activity=...,
      )
      pipeline.start()
      pipeline.run()            # microphone; or run(audio_iterator=chunks)
      pipeline.stop()
      pipeline.speaker_stats()
    """

    def __init__(
        self,
        config: Optional[TrackerConfig] = None,
        audio_config: Optional[AudioConfig] = None,
        feature_extractor: Optional[FeatureExtractor] = None,
        spectrum_analyser: Optional[SpectrumAnalyser] = None,
        audio_collector: Optional[AudioCollector] = None,
        on_frame: Optional[FrameCallback] = None,
        on_speaker_change: Optional[SpeakerChangeCallback] = None,
        on_voice_activity: Optional[VoiceActivityCallback] = None,
        clock: Optional[Clock] = None,
    ):
        self.config = (config or TrackerConfig()).validate()
        self.audio_config = (audio_config or AudioConfig()).validate()
        self.feature_extractor = feature_extractor or FeatureExtractor(self.audio_config)
        self.spectrum_analyser = spectrum_analyser or SpectrumAnalyser(self.audio_config)
        self.audio_collector = audio_collector or AudioCollector(self.audio_config)
        self.on_frame = on_frame or (lambda r: None)
        self.on_speaker_change = on_speaker_change or (lambda c: None)
        self.on_voice_activity = on_voice_activity or (lambda e: None)
        self.clock = clock or time.monotonic

        self._lock = threading.Lock()
        self._clusterer = SpeakerClusterer(self.config)
        self._aggregator = SessionAggregator(self.config)
        self._vad = VoiceActivityDetector(self.config.silence_threshold)
        self._audio_ring: Optional[RingBuffer] = None
        self._last_features: Optional[FeatureVector] = None
        self._last_timestamp: Optional[float] = None
        self._stopped = False

    # -- session controls -----------------------------------------------

    def _now(self, now: Optional[float]) -> float:
        return self.clock() if now is None else now

    def _clear_frame_state(self) -> None:
        self._vad = VoiceActivityDetector(self.config.silence_threshold)
        self.spectrum_analyser.reset()
        if self._audio_ring is not None:
            self._audio_ring.clear()
        self._last_features = None
        self._last_timestamp = None

    def start(self, max_speakers: Optional[int] = None, now: Optional[float] = None) -> None:
        """Start a fresh session with an optional new speaker cap.

        Raises:
            ConfigurationError: invalid cap; the current session is untouched.
        """
        config = self.config if max_speakers is None else self.config.with_max_speakers(max_speakers)
        now = self._now(now)
        with self._lock:
            self.config = config
            self._clusterer = SpeakerClusterer(config)
            self._aggregator = SessionAggregator(config)
            self._clear_frame_state()
            self._aggregator.start(now)
            self._stopped = False
        logger.info("Tracking up to %d speakers", config.max_speakers)

    def pause(self, now: Optional[float] = None) -> None:
        now = self._now(now)
        with self._lock:
            self._aggregator.pause(now)
            self._vad.reset()

    def resume(self, now: Optional[float] = None) -> None:
        now = self._now(now)
        with self._lock:
            self._aggregator.resume(now)

    def stop(self, now: Optional[float] = None) -> None:
        """Finalize in-flight speaking time and signal the run loop to exit."""
        now = self._now(now)
        with self._lock:
            self._aggregator.stop(now)
            self._vad.reset()
            self._stopped = True

    def reset(self) -> None:
        """Drop every profile and roster entry in one step; status returns to idle."""
        with self._lock:
            self._clusterer = SpeakerClusterer(self.config)
            self._aggregator = SessionAggregator(self.config)
            self._clear_frame_state()
            self._stopped = True
        logger.info("Session reset")

    # -- frame processing -----------------------------------------------

    def process_frame(
        self,
        time_domain: np.ndarray,
        frequency_magnitudes: np.ndarray,
        now: Optional[float] = None,
    ) -> Optional[FrameResult]:
        """Process one frame. Returns None unless the session is running.

        Raises:
            InvalidInput: malformed buffers; no state is modified.
        """
        now = self._now(now)
        with self._lock:
            if self._aggregator.status is not SessionStatus.RUNNING:
                return None
            features = self.feature_extractor.extract(time_domain, frequency_magnitudes)
            result, voice_event, change = self._process(features, now)
        self._notify(result, voice_event, change)
        return result

    def process_features(
        self,
        features: FeatureVector,
        now: Optional[float] = None,
    ) -> Optional[FrameResult]:
        """Process an already extracted frame. Returns None unless running."""
        now = self._now(now)
        with self._lock:
            if self._aggregator.status is not SessionStatus.RUNNING:
                return None
            result, voice_event, change = self._process(features, now)
        self._notify(result, voice_event, change)
        return result

    def _process(
        self,
        features: FeatureVector,
        now: float,
    ) -> Tuple[FrameResult, Optional[VoiceActivityEvent], Optional[SpeakerChange]]:
        voice_event = self._vad.update(features, now)
        voice_active = self._vad.active

        speaker_id: Optional[int] = None
        confidence = 0.0
        is_new = False
        if voice_active:
            decision = self._clusterer.classify(features)
            confidence = decision.confidence
            is_new = decision.is_new
            if decision.speaker_id >= 0:
                speaker_id = decision.speaker_id

        change = self._aggregator.update(now, voice_active, speaker_id)
        self._last_features = features
        self._last_timestamp = now
        result = FrameResult(
            timestamp=now,
            features=features,
            voice_active=voice_active,
            speaker_id=self._aggregator.current_speaker_id,
            confidence=confidence,
            is_new_speaker=is_new,
            speakers=self._aggregator.speakers,
        )
        return result, voice_event, change

    def _notify(
        self,
        result: FrameResult,
        voice_event: Optional[VoiceActivityEvent],
        change: Optional[SpeakerChange],
    ) -> None:
        if voice_event is not None:
            self.on_voice_activity(voice_event)
        if change is not None:
            self.on_speaker_change(change)
        self.on_frame(result)

    # -- audio loop -----------------------------------------------------

    def _ensure_audio_ring(self) -> RingBuffer:
        if self._audio_ring is None:
            self._audio_ring = RingBuffer(size=self.audio_config.fft_size, dtype=np.float32)
        return self._audio_ring

    def _push_chunk(self, chunk: np.ndarray, now: float) -> Optional[FrameResult]:
        """Add a chunk to the frame buffer and process the newest full frame."""
        ring = self._ensure_audio_ring()
        ring.push(chunk)
        if not ring.is_full or self.status is not SessionStatus.RUNNING:
            return None
        frame = ring.get_all()
        try:
            magnitudes = self.spectrum_analyser.analyse(frame)
            return self.process_frame(frame, magnitudes, now)
        except InvalidInput as exc:
            logger.warning("Skipping frame at %.3f s: %s", now, exc)
            return None

    def _iter_timed_chunks(
        self,
        audio_iterator: Optional[Iterator[np.ndarray]],
        device: Optional[int],
    ) -> Iterator[Tuple[np.ndarray, float]]:
        """Yield (chunk, stream timestamp); stream time starts at the clock reading."""
        if audio_iterator is None:
            audio_iterator = self.audio_collector.record_stream(device=device)
        origin = self.clock()
        consumed = 0
        for chunk in audio_iterator:
            chunk = np.asarray(chunk, dtype=np.float32).reshape(-1)
            if chunk.size == 0:
                continue
            if not np.all(np.isfinite(chunk)):
                logger.warning("Dropping chunk with non-finite samples")
                continue
            consumed += chunk.size
            yield chunk, origin + consumed / self.audio_config.sample_rate

    def run(
        self,
        audio_iterator: Optional[Iterator[np.ndarray]] = None,
        device: Optional[int] = None,
    ) -> None:
        """Run the frame loop until stopped or the iterator is exhausted.

        Args:
            audio_iterator: Source of mono float32 chunks of any size. If None,
                use the microphone via audio_collector.record_stream().
            device: Microphone device index (ignored with audio_iterator).

        Errors from the audio source itself propagate unchanged.
        """
        self._stopped = False
        for chunk, now in self._iter_timed_chunks(audio_iterator, device):
            if self._stopped:
                break
            self._push_chunk(chunk, now)

    def run_for_n_frames(
        self,
        n: int,
        audio_iterator: Iterator[np.ndarray],
    ) -> List[FrameResult]:
        """Run until n frames were processed; used for tests. Returns the frame results."""
        self._stopped = False
        results: List[FrameResult] = []
        for chunk, now in self._iter_timed_chunks(audio_iterator, None):
            if len(results) >= n or self._stopped:
                break
            result = self._push_chunk(chunk, now)
            if result is not None:
                results.append(result)
        return results

    # -- views ----------------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        return self._aggregator.status

    @property
    def speakers(self) -> Tuple[Speaker, ...]:
        return self._aggregator.speakers

    @property
    def current_speaker_id(self) -> Optional[int]:
        return self._aggregator.current_speaker_id

    @property
    def is_voice_active(self) -> bool:
        return self._vad.active

    @property
    def last_features(self) -> Optional[FeatureVector]:
        return self._last_features

    @property
    def last_timestamp(self) -> Optional[float]:
        return self._last_timestamp

    @property
    def clusterer_state(self) -> SpeakerDetectorState:
        return self._clusterer.state

    def elapsed(self, now: Optional[float] = None) -> float:
        return self._aggregator.elapsed(self._now(now))

    def speaker_stats(self) -> List[SpeakerStats]:
        return self._aggregator.speaker_stats()
