"""Unit tests and toy example for the session aggregator (speaking time + status)."""

from __future__ import annotations

import unittest

from speaker_tracker.config import TrackerConfig
from speaker_tracker.session import (
    SessionAggregator,
    SessionStatus,
    SpeakerChange,
    format_duration,
)


class TestSessionAggregator(unittest.TestCase):
    """Tests for SessionAggregator."""

    def setUp(self) -> None:
        self.agg = SessionAggregator(TrackerConfig(min_speech_duration=0.05))
        self.agg.start(0.0)

    def test_initial_state(self) -> None:
        fresh = SessionAggregator()
        self.assertEqual(fresh.status, SessionStatus.IDLE)
        self.assertEqual(fresh.speakers, ())
        self.assertIsNone(fresh.current_speaker_id)
        self.assertEqual(self.agg.status, SessionStatus.RUNNING)

    def test_first_voiced_frame_materializes_speaker(self) -> None:
        change = self.agg.update(0.5, True, 0)
        self.assertEqual(change, SpeakerChange(None, 0, 0.5))
        (speaker,) = self.agg.speakers
        self.assertEqual(speaker.id, 0)
        self.assertEqual(speaker.total_time, 0.0)
        self.assertTrue(speaker.is_active)
        self.assertEqual(speaker.last_active_time, 0.5)
        self.assertEqual(speaker.name, "Speaker 1")

    def test_same_speaker_continues_without_change(self) -> None:
        self.agg.update(0.0, True, 0)
        self.assertIsNone(self.agg.update(0.1, True, 0))
        self.assertEqual(self.agg.speakers[0].total_time, 0.0)

    def test_silence_closes_interval(self) -> None:
        self.agg.update(1.0, True, 0)
        self.agg.update(1.5, True, 0)
        self.assertIsNone(self.agg.update(2.0, False))
        speaker = self.agg.speakers[0]
        self.assertAlmostEqual(speaker.total_time, 1.0)
        self.assertFalse(speaker.is_active)
        self.assertIsNone(self.agg.current_speaker_id)

    def test_short_blip_is_debounced(self) -> None:
        """Intervals up to min_speech_duration are dropped on silence."""
        self.agg.update(1.0, True, 0)
        self.agg.update(1.03, False)
        speaker = self.agg.speakers[0]
        self.assertEqual(speaker.total_time, 0.0)
        self.assertFalse(speaker.is_active)

    def test_hand_off_is_not_debounced(self) -> None:
        self.agg.update(1.0, True, 0)
        change = self.agg.update(1.01, True, 1)
        self.assertEqual(change, SpeakerChange(0, 1, 1.01))
        s0, s1 = self.agg.speakers
        self.assertAlmostEqual(s0.total_time, 0.01)
        self.assertFalse(s0.is_active)
        self.assertTrue(s1.is_active)

    def test_unattributed_voice_changes_nothing(self) -> None:
        self.agg.update(1.0, True, 0)
        self.assertIsNone(self.agg.update(1.1, True, None))
        self.assertEqual(self.agg.current_speaker_id, 0)
        self.assertTrue(self.agg.speakers[0].is_active)

    def test_roster_sorted_by_id(self) -> None:
        self.agg.update(0.0, True, 2)
        self.agg.update(0.1, True, 0)
        self.assertEqual([s.id for s in self.agg.speakers], [0, 2])

    def test_snapshots_are_copies(self) -> None:
        self.agg.update(0.0, True, 0)
        snapshot = self.agg.speakers[0]
        snapshot.total_time = 99.0
        self.assertEqual(self.agg.speakers[0].total_time, 0.0)

    def test_total_time_never_decreases_with_clock_skew(self) -> None:
        self.agg.update(5.0, True, 0)
        self.agg.update(4.0, True, 1)
        self.assertEqual(self.agg.speakers[0].total_time, 0.0)

    def test_stop_finalizes_without_debounce(self) -> None:
        self.agg.update(1.0, True, 0)
        self.agg.stop(1.02)
        self.assertEqual(self.agg.status, SessionStatus.STOPPED)
        self.assertAlmostEqual(self.agg.speakers[0].total_time, 0.02)
        self.assertFalse(self.agg.speakers[0].is_active)
        self.assertEqual(self.agg.end_time, 1.02)

    def test_frames_ignored_unless_running(self) -> None:
        self.agg.stop(1.0)
        self.assertIsNone(self.agg.update(2.0, True, 0))
        self.assertEqual(self.agg.speakers, ())

    def test_pause_and_resume(self) -> None:
        self.agg.update(0.0, True, 0)
        self.agg.pause(2.0)
        self.assertEqual(self.agg.status, SessionStatus.PAUSED)
        self.assertAlmostEqual(self.agg.speakers[0].total_time, 2.0)
        self.assertIsNone(self.agg.update(3.0, True, 0))
        self.agg.resume(10.0)
        self.agg.update(10.0, True, 0)
        self.agg.stop(11.0)
        self.assertAlmostEqual(self.agg.speakers[0].total_time, 3.0)
        self.assertAlmostEqual(self.agg.elapsed(20.0), 3.0)

    def test_elapsed_while_running(self) -> None:
        self.assertAlmostEqual(self.agg.elapsed(4.5), 4.5)

    def test_start_clears_roster(self) -> None:
        self.agg.update(0.0, True, 0)
        self.agg.stop(1.0)
        self.agg.start(2.0)
        self.assertEqual(self.agg.speakers, ())
        self.assertEqual(self.agg.start_time, 2.0)

    def test_reset_idempotent(self) -> None:
        self.agg.update(0.0, True, 0)
        self.agg.update(1.0, True, 1)
        self.agg.reset()
        once = (self.agg.status, self.agg.speakers, self.agg.current_speaker_id, self.agg.elapsed(5.0))
        self.agg.reset()
        twice = (self.agg.status, self.agg.speakers, self.agg.current_speaker_id, self.agg.elapsed(5.0))
        self.assertEqual(once, twice)
        self.assertEqual(once, (SessionStatus.IDLE, (), None, 0.0))

    def test_conservation(self) -> None:
        """Speaking time plus silence equals session time."""
        dt = 1 / 60
        silence = 0.0
        pattern = [0] * 90 + [None] * 30 + [1] * 60 + [None] * 5 + [0] * 40
        for i, speaker in enumerate(pattern):
            if speaker is None:
                silence += dt
                self.agg.update(i * dt, False)
            else:
                self.agg.update(i * dt, True, speaker)
        end = len(pattern) * dt
        self.agg.stop(end)
        self.assertAlmostEqual(
            self.agg.total_speaking_time() + silence,
            self.agg.elapsed(end),
            delta=TrackerConfig().min_speech_duration,
        )

    def test_speaker_stats(self) -> None:
        self.agg.update(0.0, True, 0)
        self.agg.update(3.0, True, 1)
        self.agg.stop(4.0)
        stats = self.agg.speaker_stats()
        self.assertEqual([(s.speaker_id, s.percentage) for s in stats], [(0, 75), (1, 25)])

    def test_speaker_stats_without_speech(self) -> None:
        self.agg.update(0.0, True, 0)
        self.agg.update(0.01, False)
        self.assertEqual(self.agg.speaker_stats()[0].percentage, 0)


class TestFormatDuration(unittest.TestCase):
    def test_minutes_and_hours(self) -> None:
        self.assertEqual(format_duration(0), "00:00")
        self.assertEqual(format_duration(75.9), "01:15")
        self.assertEqual(format_duration(3725), "01:02:05")
        self.assertEqual(format_duration(-3), "00:00")


def run_toy_example() -> None:
    """Two speakers alternate with a pause; print the roster."""
    print("=== Toy example: session aggregator ===\n")
    agg = SessionAggregator()
    agg.start(0.0)
    timeline = [(0.0, True, 0), (2.0, True, 1), (3.5, False, None), (4.0, True, 0), (6.0, False, None)]
    for now, voiced, speaker in timeline:
        change = agg.update(now, voiced, speaker)
        if change:
            print(f"  {now:4.1f}s change {change.previous_speaker_id} -> {change.current_speaker_id}")
    agg.stop(6.0)
    for s in agg.speaker_stats():
        print(f"  Speaker {s.speaker_id + 1}: {format_duration(s.total_time)} ({s.percentage}%)")
    print("\nDone.")


if __name__ == "__main__":
    run_toy_example()
    print("\n--- Running unit tests ---")
    unittest.main(argv=[""], exit=False, verbosity=2)
