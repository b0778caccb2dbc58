"""Per-frame feature extraction: RMS, pitch, spectral centroid, ZCR, Mel bands."""

from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np
from scipy.signal import correlate

from speaker_tracker.audio.config import AudioConfig
from speaker_tracker.errors import InvalidInput


class RingBuffer:
    """Fixed-size ring buffer holding the most recent streaming samples."""

    def __init__(self, size: int, dtype: type = np.float32):
        self.size = size
        self.dtype = dtype
        self._data = np.zeros(size, dtype=dtype)
        self._write_idx = 0
        self._count = 0

    def __len__(self) -> int:
        return self._count

    @property
    def is_full(self) -> bool:
        return self._count == self.size

    def push(self, chunk: np.ndarray) -> None:
        """Append a chunk; older samples are overwritten."""
        n = len(chunk)
        if n >= self.size:
            self._data[:] = chunk[-self.size :].astype(self.dtype)
            self._write_idx = 0
            self._count = self.size
            return
        start = self._write_idx
        end = start + n
        if end <= self.size:
            self._data[start:end] = chunk.astype(self.dtype)
        else:
            head = self.size - start
            self._data[start:] = chunk[:head].astype(self.dtype)
            self._data[: end - self.size] = chunk[head:].astype(self.dtype)
        self._write_idx = end % self.size
        self._count = min(self._count + n, self.size)

    def get_all(self) -> np.ndarray:
        """Return buffered samples in chronological order."""
        if self._count == 0:
            return np.array([], dtype=self.dtype)
        if self._count < self.size:
            return self._data[: self._count].copy()
        return np.roll(self._data, -self._write_idx).copy()

    def clear(self) -> None:
        self._write_idx = 0
        self._count = 0


def _readonly(values: np.ndarray) -> np.ndarray:
    values.setflags(write=False)
    return values


def _empty_frame() -> np.ndarray:
    return _readonly(np.zeros(0, dtype=np.float32))


@dataclass(frozen=True)
class FeatureVector:
    """Acoustic features of one frame.

    frequency_magnitudes and waveform are raw copies kept for observers
    (diagnostics, visualization); they are not compared and not used by
    voice activity or clustering.
    """

    volume: float
    pitch: float
    spectral_centroid: float
    zero_crossing_rate: float = 0.0
    mel_bands: Tuple[float, ...] = ()
    frequency_magnitudes: np.ndarray = field(default_factory=_empty_frame, repr=False, compare=False)
    waveform: np.ndarray = field(default_factory=_empty_frame, repr=False, compare=False)


def _hz_to_mel(hz):
    return 2595 * np.log10(1 + hz / 700)


def _mel_to_hz(mel):
    return 700 * (10 ** (mel / 2595) - 1)


def _mel_band_filters(
    n_bands: int,
    n_bins: int,
    sample_rate: float,
    fmin: float = 20.0,
) -> np.ndarray:
    """Build the (n_bands, n_bins) triangular filter matrix.

    Band edges are uniform in Mel between fmin and Nyquist and land on
    floor(freq / bin_width); the last edge is clamped to the final bin.
    """
    fmax = sample_rate / 2
    bin_width = fmax / n_bins
    mel_points = np.linspace(_hz_to_mel(fmin), _hz_to_mel(fmax), n_bands + 2)
    bin_points = np.floor(_mel_to_hz(mel_points) / bin_width).astype(int)

    filters = np.zeros((n_bands, n_bins))
    for i in range(n_bands):
        left, center = bin_points[i], bin_points[i + 1]
        right = min(bin_points[i + 2], n_bins - 1)
        bins = np.arange(left, right + 1)
        rising = bins[bins < center]
        falling = bins[bins >= center]
        filters[i, rising] = (rising - left) / (center - left + 1)
        filters[i, falling] = (right - falling) / max(right - center + 1, 1)
    return filters


def calculate_rms(samples: np.ndarray) -> float:
    """Root-mean-square amplitude."""
    samples = np.asarray(samples, dtype=np.float64)
    if samples.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(samples))))


def calculate_zero_crossing_rate(samples: np.ndarray) -> float:
    """Fraction of consecutive sample pairs whose sign flips (0 counts as positive)."""
    samples = np.asarray(samples)
    if samples.size == 0:
        return 0.0
    non_negative = samples >= 0
    crossings = np.count_nonzero(non_negative[1:] != non_negative[:-1])
    return crossings / samples.size


def calculate_spectral_centroid(
    magnitudes: np.ndarray,
    sample_rate: float,
    fft_size: int,
) -> float:
    """Magnitude-weighted mean frequency in Hz; 0 for an empty spectrum."""
    magnitudes = np.asarray(magnitudes, dtype=np.float64)
    total = magnitudes.sum()
    if total <= 0:
        return 0.0
    frequencies = np.arange(magnitudes.size) * (sample_rate / fft_size)
    return float(np.dot(magnitudes, frequencies) / total)


def estimate_pitch(
    samples: np.ndarray,
    sample_rate: float,
    min_hz: float = 50.0,
    max_hz: float = 500.0,
) -> float:
    """Fundamental frequency by autocorrelation over voice-range lags.

    Lags run from floor(sr / max_hz) up to (not including) floor(sr / min_hz),
    bounded by the frame length. Returns 0 when no lag correlates positively.
    """
    samples = np.asarray(samples, dtype=np.float64)
    n = samples.size
    min_period = max(1, int(sample_rate // max_hz))
    max_period = min(int(sample_rate // min_hz), n)
    if min_period >= max_period:
        return 0.0

    # Index n - 1 + k holds sum(x[i] * x[i + k])
    autocorr = correlate(samples, samples, mode="full")[n - 1 :]
    candidates = autocorr[min_period:max_period]
    best = int(np.argmax(candidates))
    if candidates[best] <= 0:
        return 0.0
    return float(sample_rate / (min_period + best))


def calculate_mel_band_energies(
    magnitudes: np.ndarray,
    sample_rate: float,
    num_bands: int = 13,
    filters: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Triangular Mel band energies normalized to the frame's loudest band."""
    magnitudes = np.asarray(magnitudes, dtype=np.float64)
    if filters is None:
        filters = _mel_band_filters(num_bands, magnitudes.size, sample_rate)
    bands = filters @ magnitudes
    peak = bands.max() if bands.size else 0.0
    return bands / (peak if peak > 0 else 1.0)


class FeatureExtractor:
    """Turn one frame (time-domain samples + magnitude spectrum) into a FeatureVector."""

    def __init__(self, config: Optional[AudioConfig] = None):
        self.config = (config or AudioConfig()).validate()
        self._mel_filters = _mel_band_filters(
            self.config.n_mel_bands,
            self.config.frequency_bin_count,
            float(self.config.sample_rate),
            self.config.mel_fmin,
        )

    def _check_buffer(self, values: np.ndarray, expected: int, name: str) -> np.ndarray:
        buffer = np.asarray(values, dtype=np.float64)
        if buffer.ndim != 1:
            raise InvalidInput(f"{name} must be one-dimensional, got shape {buffer.shape}")
        if buffer.size == 0:
            raise InvalidInput(f"{name} is empty")
        if buffer.size != expected:
            raise InvalidInput(f"{name} has {buffer.size} values, expected {expected}")
        if not np.all(np.isfinite(buffer)):
            raise InvalidInput(f"{name} contains non-finite values")
        return buffer

    def extract(self, time_domain: np.ndarray, frequency_magnitudes: np.ndarray) -> FeatureVector:
        """Extract features from one frame.

        Args:
            time_domain: fft_size samples in [-1, 1].
            frequency_magnitudes: fft_size // 2 magnitudes (byte range 0-255).

        Raises:
            InvalidInput: wrong length, empty, non-finite or negative magnitudes.
        """
        cfg = self.config
        samples = self._check_buffer(time_domain, cfg.fft_size, "time_domain")
        magnitudes = self._check_buffer(
            frequency_magnitudes, cfg.frequency_bin_count, "frequency_magnitudes"
        )
        if np.any(magnitudes < 0):
            raise InvalidInput("frequency_magnitudes must be non-negative")

        mel_bands = calculate_mel_band_energies(
            magnitudes, cfg.sample_rate, cfg.n_mel_bands, filters=self._mel_filters
        )
        waveform = np.clip(np.floor((samples + 1) * 128), 0, 255).astype(np.uint8)
        return FeatureVector(
            volume=calculate_rms(samples),
            pitch=estimate_pitch(samples, cfg.sample_rate, cfg.pitch_min_hz, cfg.pitch_max_hz),
            spectral_centroid=calculate_spectral_centroid(magnitudes, cfg.sample_rate, cfg.fft_size),
            zero_crossing_rate=calculate_zero_crossing_rate(samples),
            mel_bands=tuple(float(b) for b in mel_bands),
            frequency_magnitudes=_readonly(magnitudes.astype(np.float32)),
            waveform=_readonly(waveform),
        )
