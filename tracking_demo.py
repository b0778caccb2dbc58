"""Run the speaker tracking pipeline on synthetic voices or a WAV file.

Usage:
  python tracking_demo.py                       # Two synthetic voices with a pause
  python tracking_demo.py --speakers 3          # Three synthetic voices, cap of 3
  python tracking_demo.py --file talk.wav       # Audio from file (44.1 kHz)
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent / "src"))

import numpy as np

from speaker_tracker.audio import AudioCollector, iter_chunks
from speaker_tracker.audio.config import AudioConfig
from speaker_tracker.config import TrackerConfig
from speaker_tracker.pipeline import SpeakerTrackingPipeline
from speaker_tracker.session import format_duration

# Synthetic "voices": fundamental (Hz) plus a couple of harmonics
VOICES = [110.0, 210.0, 330.0]


def make_voice(f0, seconds, sample_rate, amplitude=0.2):
    """Harmonic tone with a slow amplitude wobble."""
    t = np.arange(int(seconds * sample_rate)) / sample_rate
    tone = sum(np.sin(2 * np.pi * f0 * k * t) / k for k in (1, 2, 3))
    envelope = 0.8 + 0.2 * np.sin(2 * np.pi * 3.0 * t)
    return (amplitude * envelope * tone / 1.5).astype(np.float32)


def make_conversation(n_speakers, sample_rate, turn_sec=2.0, pause_sec=0.4):
    parts = []
    for f0 in (VOICES[:n_speakers] * 2):
        parts.append(make_voice(f0, turn_sec, sample_rate))
        parts.append(np.zeros(int(pause_sec * sample_rate), dtype=np.float32))
    return np.concatenate(parts)


def main(n_speakers=2, wav_path=None):
    audio_config = AudioConfig()
    collector = AudioCollector(audio_config)

    def on_speaker_change(change):
        previous = "-" if change.previous_speaker_id is None else change.previous_speaker_id + 1
        print(f"[{format_duration(pipeline.elapsed(change.timestamp))}] Speaker {previous} -> Speaker {change.current_speaker_id + 1}")

    pipeline = SpeakerTrackingPipeline(
        config=TrackerConfig(max_speakers=n_speakers),
        audio_config=audio_config,
        audio_collector=collector,
        on_speaker_change=on_speaker_change,
    )

    if wav_path:
        wav_path = Path(wav_path)
        if not wav_path.exists():
            print(f"File not found: {wav_path}")
            sys.exit(1)
        audio = collector.read_wav(wav_path)
        audio_source = "file"
    else:
        audio = make_conversation(n_speakers, audio_config.sample_rate)
        audio_source = "synthetic"

    print(f"Tracking up to {n_speakers} speakers ({audio_source} audio, {len(audio) / audio_config.sample_rate:.1f}s)...\n")
    pipeline.start()
    pipeline.run(iter_chunks(audio, audio_config.chunk_samples))
    pipeline.stop(now=pipeline.last_timestamp)

    print()
    for s in pipeline.speaker_stats():
        print(f"Speaker {s.speaker_id + 1}: {format_duration(s.total_time)} ({s.percentage}%)")
    print("\nDone.")


if __name__ == "__main__":
    args = sys.argv[1:]
    n_speakers = 2
    wav_path = None
    if "--speakers" in args:
        idx = args.index("--speakers")
        if idx + 1 < len(args):
            n_speakers = max(1, min(len(VOICES), int(args[idx + 1])))
    if "--file" in args:
        idx = args.index("--file")
        if idx + 1 < len(args):
            wav_path = args[idx + 1]
    main(n_speakers=n_speakers, wav_path=wav_path)
