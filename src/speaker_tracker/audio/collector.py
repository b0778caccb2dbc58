"""Mono audio sources: live microphone chunks and WAV files."""

import queue
from pathlib import Path
from typing import Iterator, Optional, Union

import numpy as np

try:
    import sounddevice as sd
except (ImportError, OSError):
    sd = None  # type: ignore

from speaker_tracker.audio.config import AudioConfig
from speaker_tracker.errors import InvalidInput

# Failures of the capture backend itself (missing library, device errors)
SOURCE_ERRORS = (ImportError, OSError) + ((sd.PortAudioError,) if sd is not None else ())


def iter_chunks(audio: np.ndarray, chunk_samples: int) -> Iterator[np.ndarray]:
    """Slice audio into consecutive float32 chunks (last one may be shorter)."""
    for i in range(0, len(audio), chunk_samples):
        chunk = audio[i : i + chunk_samples]
        if len(chunk) > 0:
            yield chunk.astype(np.float32)


class AudioCollector:
    """Delivers mono float32 audio at the configured sample rate."""

    def __init__(self, config: Optional[AudioConfig] = None):
        self.config = config or AudioConfig()

    def record_stream(
        self,
        chunk_duration_sec: Optional[float] = None,
        device: Optional[int] = None,
    ) -> Iterator[np.ndarray]:
        """Stream microphone chunks continuously.

        Args:
            chunk_duration_sec: Duration of each chunk; defaults to one frame
                period (1 / frame_rate_hz).
            device: Input device index (None = default).

        Yields:
            Mono float32 chunks, shape (n_samples,), values in [-1, 1].
        """
        if sd is None:
            raise ImportError("sounddevice is required for recording. pip install sounddevice")

        if chunk_duration_sec is None:
            chunk_samples = self.config.chunk_samples
        else:
            chunk_samples = int(chunk_duration_sec * self.config.sample_rate)
        q: queue.Queue[np.ndarray] = queue.Queue()

        def callback(indata: np.ndarray, _frames: int, _time: object, _status: object) -> None:
            q.put(indata.copy().reshape(-1))

        with sd.InputStream(
            samplerate=self.config.sample_rate,
            channels=self.config.channels,
            dtype=self.config.dtype,
            blocksize=chunk_samples,
            device=device,
            callback=callback,
        ):
            while True:
                yield q.get()

    def read_wav(self, filepath: Union[str, Path]) -> np.ndarray:
        """Load a WAV file as mono float32 in [-1, 1].

        Raises:
            InvalidInput: the file's sample rate differs from the configured one.
        """
        import scipy.io.wavfile as wavfile

        sr, audio = wavfile.read(str(filepath))
        if sr != self.config.sample_rate:
            raise InvalidInput(
                f"Expected {self.config.sample_rate} Hz, got {sr} Hz. Resample the file."
            )
        if audio.dtype == np.int16:
            audio = audio.astype(np.float32) / 32768.0
        elif audio.dtype == np.int32:
            audio = audio.astype(np.float32) / 2147483648.0
        elif audio.dtype == np.uint8:
            audio = (audio.astype(np.float32) - 128.0) / 128.0
        if audio.ndim > 1:
            audio = audio.mean(axis=1)
        return audio.astype(np.float32)
