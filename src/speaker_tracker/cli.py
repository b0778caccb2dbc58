"""CLI for live or file-based speaker tracking."""

import argparse
import logging
import sys
import threading
from pathlib import Path

from speaker_tracker.audio import AudioCollector, iter_chunks
from speaker_tracker.audio.collector import SOURCE_ERRORS
from speaker_tracker.audio.config import AudioConfig
from speaker_tracker.config import TrackerConfig
from speaker_tracker.errors import ConfigurationError, InvalidInput
from speaker_tracker.pipeline import SpeakerTrackingPipeline
from speaker_tracker.session import SpeakerChange, format_duration

MIN_SPEAKERS = 2
MAX_SPEAKERS = 5


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Track who is speaking and for how long (mono audio, anonymous speakers)"
    )
    parser.add_argument(
        "--max-speakers",
        type=int,
        default=2,
        choices=range(MIN_SPEAKERS, MAX_SPEAKERS + 1),
        help="Maximum number of speakers to tell apart (default: 2)",
    )
    parser.add_argument(
        "--file",
        "-f",
        type=Path,
        default=None,
        help="Analyse a WAV file instead of the microphone",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Stop live tracking after this many seconds (default: until Ctrl-C)",
    )
    parser.add_argument(
        "--device",
        type=int,
        default=None,
        help="Input device index (list with --list-devices)",
    )
    parser.add_argument(
        "--list-devices",
        action="store_true",
        help="List available audio input devices and exit",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log clustering decisions",
    )
    return parser


def print_summary(pipeline: SpeakerTrackingPipeline) -> None:
    stats = pipeline.speaker_stats()
    if not stats:
        print("No speakers detected.")
        return
    print(f"{'Speaker':<12}{'Time':>8}{'Share':>8}")
    for s in stats:
        print(f"{'Speaker ' + str(s.speaker_id + 1):<12}{format_duration(s.total_time):>8}{s.percentage:>7}%")


def main() -> None:
    args = build_parser().parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.list_devices:
        try:
            import sounddevice as sd
            print(sd.query_devices())
        except SOURCE_ERRORS as exc:
            print(f"sounddevice unavailable: {exc}", file=sys.stderr)
            sys.exit(1)
        return

    audio_config = AudioConfig()
    collector = AudioCollector(audio_config)

    def on_speaker_change(change: SpeakerChange) -> None:
        elapsed = format_duration(pipeline.elapsed(change.timestamp))
        previous = "-" if change.previous_speaker_id is None else change.previous_speaker_id + 1
        print(f"[{elapsed}] Speaker {previous} -> Speaker {change.current_speaker_id + 1}")

    pipeline = SpeakerTrackingPipeline(
        config=TrackerConfig(),
        audio_config=audio_config,
        audio_collector=collector,
        on_speaker_change=on_speaker_change,
    )

    try:
        pipeline.start(max_speakers=args.max_speakers)
    except ConfigurationError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        sys.exit(2)

    try:
        if args.file is not None:
            if not args.file.exists():
                print(f"File not found: {args.file}", file=sys.stderr)
                sys.exit(1)
            audio = collector.read_wav(args.file)
            print(f"Analysing {args.file} ({len(audio) / audio_config.sample_rate:.1f}s)...")
            pipeline.run(iter_chunks(audio, audio_config.chunk_samples))
            pipeline.stop(now=pipeline.last_timestamp)
        else:
            if args.duration is not None:
                timer = threading.Timer(args.duration, pipeline.stop)
                timer.daemon = True
                timer.start()
            print(f"Listening (max {args.max_speakers} speakers, Ctrl-C to stop)...")
            try:
                pipeline.run(device=args.device)
            except KeyboardInterrupt:
                pass
            pipeline.stop()
    except SOURCE_ERRORS + (InvalidInput,) as exc:
        print(f"Audio source failed: {exc}", file=sys.stderr)
        sys.exit(1)

    print_summary(pipeline)


if __name__ == "__main__":
    main()
