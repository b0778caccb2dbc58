"""Per-speaker speaking time from the stream of attributed frames.

Speaking intervals open when a speaker takes over and close on hand-off,
on silence (only if longer than min_speech_duration), or on pause/stop.
Times are seconds on whatever clock the caller uses for `now`.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple

from speaker_tracker.config import TrackerConfig

logger = logging.getLogger(__name__)


class SessionStatus(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


@dataclass
class Speaker:
    """Roster entry; total_time never decreases during a session."""

    id: int
    total_time: float = 0.0
    is_active: bool = False
    last_active_time: Optional[float] = None

    @property
    def name(self) -> str:
        return f"Speaker {self.id + 1}"


@dataclass(frozen=True)
class SpeakerChange:
    """Attribution moved from one speaker to another (None = nobody)."""

    previous_speaker_id: Optional[int]
    current_speaker_id: Optional[int]
    timestamp: float


@dataclass(frozen=True)
class SpeakerStats:
    speaker_id: int
    total_time: float
    percentage: int


def format_duration(seconds: float) -> str:
    """MM:SS, or HH:MM:SS once an hour has passed."""
    total_seconds = int(max(seconds, 0.0))
    hours, rest = divmod(total_seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


class SessionAggregator:
    """Speaker roster plus the session status machine.

    Interface:
      aggregator = SessionAggregator(TrackerConfig())
      aggregator.start(now)
      change = aggregator.update(now, voice_active=True, speaker_id=0)
      aggregator.pause(now); aggregator.resume(now)
      aggregator.stop(now)
      aggregator.reset()
    """

    def __init__(self, config: Optional[TrackerConfig] = None):
        self.config = config or TrackerConfig()
        self._status = SessionStatus.IDLE
        self._speakers: Dict[int, Speaker] = {}
        self._current_speaker_id: Optional[int] = None
        self._last_speaking_time = 0.0
        self._start_time: Optional[float] = None
        self._end_time: Optional[float] = None
        self._run_started: Optional[float] = None
        self._accumulated = 0.0

    # -- controller -----------------------------------------------------

    def start(self, now: float) -> None:
        """Begin a fresh session: empty roster, status running."""
        self.reset()
        self._status = SessionStatus.RUNNING
        self._start_time = now
        self._run_started = now
        self._last_speaking_time = now
        logger.info("Session started")

    def pause(self, now: float) -> None:
        if self._status is not SessionStatus.RUNNING:
            logger.debug("pause ignored in status %s", self._status.value)
            return
        self._finalize(now)
        self._close_run(now)
        self._status = SessionStatus.PAUSED

    def resume(self, now: float) -> None:
        if self._status is not SessionStatus.PAUSED:
            logger.debug("resume ignored in status %s", self._status.value)
            return
        self._status = SessionStatus.RUNNING
        self._run_started = now
        self._last_speaking_time = now

    def stop(self, now: float) -> None:
        """Close the in-flight interval (no debounce) and keep the totals."""
        if self._status is SessionStatus.RUNNING:
            self._finalize(now)
            self._close_run(now)
        if self._status in (SessionStatus.RUNNING, SessionStatus.PAUSED):
            self._end_time = now
            logger.info("Session stopped after %s", format_duration(self._accumulated))
        self._status = SessionStatus.STOPPED

    def reset(self) -> None:
        """Discard everything and return to the initial idle state."""
        self._status = SessionStatus.IDLE
        self._speakers = {}
        self._current_speaker_id = None
        self._last_speaking_time = 0.0
        self._start_time = None
        self._end_time = None
        self._run_started = None
        self._accumulated = 0.0

    # -- frames ---------------------------------------------------------

    def update(
        self,
        now: float,
        voice_active: bool,
        speaker_id: Optional[int] = None,
    ) -> Optional[SpeakerChange]:
        """Account for one processed frame; returns a SpeakerChange on hand-off."""
        if self._status is not SessionStatus.RUNNING:
            return None

        if not voice_active:
            if self._current_speaker_id is not None:
                elapsed = now - self._last_speaking_time
                if elapsed > self.config.min_speech_duration:
                    self._add_time(self._current_speaker_id, elapsed)
                self._current_speaker_id = None
                self._last_speaking_time = now
            self._mark_active(None)
            return None

        if speaker_id is None or speaker_id < 0:
            return None

        if speaker_id not in self._speakers:
            self._speakers[speaker_id] = Speaker(id=speaker_id)

        change = None
        previous = self._current_speaker_id
        if previous != speaker_id:
            if previous is not None:
                self._add_time(previous, now - self._last_speaking_time)
            self._last_speaking_time = now
            self._current_speaker_id = speaker_id
            change = SpeakerChange(previous, speaker_id, now)
            logger.debug("Speaker change %s -> %s at %.3f", previous, speaker_id, now)

        self._mark_active(speaker_id)
        self._speakers[speaker_id].last_active_time = now
        return change

    # -- views ----------------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def current_speaker_id(self) -> Optional[int]:
        return self._current_speaker_id

    @property
    def speakers(self) -> Tuple[Speaker, ...]:
        """Snapshot of the roster, ordered by speaker id."""
        return tuple(replace(self._speakers[k]) for k in sorted(self._speakers))

    @property
    def start_time(self) -> Optional[float]:
        return self._start_time

    @property
    def end_time(self) -> Optional[float]:
        return self._end_time

    def elapsed(self, now: Optional[float] = None) -> float:
        """Session duration excluding pauses."""
        total = self._accumulated
        if self._status is SessionStatus.RUNNING and self._run_started is not None and now is not None:
            total += max(0.0, now - self._run_started)
        return total

    def total_speaking_time(self) -> float:
        return sum(s.total_time for s in self._speakers.values())

    def speaker_stats(self) -> List[SpeakerStats]:
        """Each speaker's share of the total speaking time, in whole percent."""
        total = self.total_speaking_time()
        stats = []
        for speaker in self.speakers:
            percentage = round(speaker.total_time / total * 100) if total > 0 else 0
            stats.append(SpeakerStats(speaker.id, speaker.total_time, percentage))
        return stats

    # -- internals ------------------------------------------------------

    def _add_time(self, speaker_id: int, elapsed: float) -> None:
        speaker = self._speakers.get(speaker_id)
        if speaker is not None:
            speaker.total_time += max(0.0, elapsed)

    def _mark_active(self, speaker_id: Optional[int]) -> None:
        for speaker in self._speakers.values():
            speaker.is_active = speaker.id == speaker_id

    def _finalize(self, now: float) -> None:
        if self._current_speaker_id is not None:
            self._add_time(self._current_speaker_id, now - self._last_speaking_time)
        self._current_speaker_id = None
        self._last_speaking_time = now
        self._mark_active(None)

    def _close_run(self, now: float) -> None:
        if self._run_started is not None:
            self._accumulated += max(0.0, now - self._run_started)
        self._run_started = None
