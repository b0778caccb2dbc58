"""Byte-range magnitude spectrum for a time-domain frame.

Blackman window -> real FFT -> |X| / fft_size -> temporal smoothing ->
dB -> linear map of [min_decibels, max_decibels] onto [0, 255].
"""

from typing import Optional

import numpy as np
from scipy.fft import rfft
from scipy.signal import get_window

from speaker_tracker.audio.config import AudioConfig
from speaker_tracker.errors import InvalidInput


class SpectrumAnalyser:
    """Stateful analyser; smoothing carries over from one frame to the next.

    Interface:
      analyser = SpectrumAnalyser(AudioConfig())
      magnitudes = analyser.analyse(frame)   # frame: fft_size samples
      analyser.reset()                       # forget smoothing history
    """

    def __init__(self, config: Optional[AudioConfig] = None):
        self.config = (config or AudioConfig()).validate()
        self._window = get_window("blackman", self.config.fft_size)
        self._smoothed = np.zeros(self.config.frequency_bin_count)

    def analyse(self, samples: np.ndarray) -> np.ndarray:
        """Return frequency_bin_count magnitudes in [0, 255] (float32, integral values)."""
        cfg = self.config
        frame = np.asarray(samples, dtype=np.float64)
        if frame.shape != (cfg.fft_size,):
            raise InvalidInput(f"expected {cfg.fft_size} samples, got shape {frame.shape}")
        if not np.all(np.isfinite(frame)):
            raise InvalidInput("frame contains non-finite samples")

        spectrum = np.abs(rfft(frame * self._window))[: cfg.frequency_bin_count] / cfg.fft_size
        tau = cfg.smoothing_time_constant
        self._smoothed = tau * self._smoothed + (1 - tau) * spectrum

        with np.errstate(divide="ignore"):
            decibels = 20 * np.log10(self._smoothed)
        scale = 255 / (cfg.max_decibels - cfg.min_decibels)
        scaled = np.clip((decibels - cfg.min_decibels) * scale, 0, 255)
        return np.floor(scaled).astype(np.float32)

    def reset(self) -> None:
        self._smoothed = np.zeros(self.config.frequency_bin_count)
