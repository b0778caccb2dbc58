"""Centralized audio frame and feature extraction configuration.

Frame standards:
- Audio: mono 44.1 kHz
- Frames: 2048 time-domain samples, 1024 magnitude bins in [0, 255]
- Spectrum: Blackman window, 0.8 temporal smoothing, -90..-10 dB byte range
- Features: 13 Mel bands from 20 Hz to Nyquist, pitch searched in 50-500 Hz
- Cadence: ~60 frames per second
"""

from dataclasses import dataclass

from speaker_tracker.errors import ConfigurationError

# Autocorrelation pitch search is quadratic in frame length
MIN_FFT_SIZE = 32
MAX_FFT_SIZE = 32_768


@dataclass(frozen=True)
class AudioConfig:
    """Frame source and feature extraction configuration."""

    # Recording
    sample_rate: int = 44_100
    channels: int = 1  # mono
    dtype: str = "float32"
    frame_rate_hz: float = 60.0

    # Spectrum
    fft_size: int = 2048
    smoothing_time_constant: float = 0.8
    min_decibels: float = -90.0
    max_decibels: float = -10.0

    # Mel bands
    n_mel_bands: int = 13
    mel_fmin: float = 20.0

    # Pitch search range (Hz)
    pitch_min_hz: float = 50.0
    pitch_max_hz: float = 500.0

    @property
    def frequency_bin_count(self) -> int:
        """Number of magnitude bins per frame."""
        return self.fft_size // 2

    @property
    def bin_width_hz(self) -> float:
        """Frequency spacing between magnitude bins."""
        return self.sample_rate / self.fft_size

    @property
    def min_period(self) -> int:
        """Shortest autocorrelation lag searched, in samples."""
        return max(1, int(self.sample_rate // self.pitch_max_hz))

    @property
    def max_period(self) -> int:
        """Longest autocorrelation lag searched (exclusive), in samples."""
        return int(self.sample_rate // self.pitch_min_hz)

    @property
    def chunk_samples(self) -> int:
        """Samples delivered between two frames at the configured cadence."""
        return max(1, int(self.sample_rate / self.frame_rate_hz))

    def validate(self) -> "AudioConfig":
        if self.sample_rate <= 0:
            raise ConfigurationError("sample_rate must be > 0")
        if self.channels != 1:
            raise ConfigurationError("only mono audio is supported")
        fft = self.fft_size
        if fft < MIN_FFT_SIZE or fft > MAX_FFT_SIZE or fft & (fft - 1):
            raise ConfigurationError(
                f"fft_size must be a power of two in [{MIN_FFT_SIZE}, {MAX_FFT_SIZE}], got {fft}"
            )
        if not 0.0 <= self.smoothing_time_constant < 1.0:
            raise ConfigurationError("smoothing_time_constant must be in [0, 1)")
        if self.min_decibels >= self.max_decibels:
            raise ConfigurationError("min_decibels must be below max_decibels")
        if self.n_mel_bands < 1:
            raise ConfigurationError("n_mel_bands must be >= 1")
        if not 0 < self.pitch_min_hz < self.pitch_max_hz:
            raise ConfigurationError("pitch range must satisfy 0 < pitch_min_hz < pitch_max_hz")
        if self.frame_rate_hz <= 0:
            raise ConfigurationError("frame_rate_hz must be > 0")
        return self
