"""
Log-mel spectral features for breathing classification.

This module accumulates conditioned audio and turns the most recent analysis
window into a log-mel spectrogram. The rule-based classifier does not use
these features for its decision yet; they are the input a learned model
would consume.
"""

import numpy as np
import scipy.signal as signal
import logging
from dataclasses import dataclass
from typing import Iterator, Optional

from processors.signal_utils import ArrayLike, as_signal, hz_to_mel, mel_to_hz
from utils.signal_buffer import RingBuffer, BufferConfig


@dataclass
class FeatureConfig:
    """
    Configuration for log-mel feature extraction.

    Attributes:
        sample_rate: Audio sampling frequency in Hz
        fft_size: FFT window length in samples (32 ms at 16 kHz)
        hop_size: Frame hop in samples (50% overlap)
        num_mel_bands: Number of triangular mel filters
        min_freq: Lowest filterbank frequency in Hz
        max_freq: Highest filterbank frequency in Hz
        window_duration: Analysis window length in seconds
        log_floor: Lower bound applied after log compression
    """
    sample_rate: float = 16000.0
    fft_size: int = 512
    hop_size: int = 256
    num_mel_bands: int = 64
    min_freq: float = 100.0
    max_freq: float = 800.0
    window_duration: float = 1.0
    log_floor: float = -10.0


class BreathingFeatureExtractor:
    """
    Rolling log-mel spectrogram extractor.

    Keeps up to two analysis windows of samples and computes features over
    the most recent window on demand.
    """

    def __init__(self, config: Optional[FeatureConfig] = None):
        """
        Initialize the feature extractor and build the mel filterbank.

        Args:
            config: Feature configuration (uses default if None)

        Raises:
            ValueError: If frame or frequency parameters are invalid
        """
        self.config = config or FeatureConfig()
        self._validate_config()

        self.window_samples = int(self.config.sample_rate * self.config.window_duration)
        self.buffer = RingBuffer(BufferConfig(capacity=self.window_samples * 2, dtype='float32'))

        self.hann_window = signal.get_window('hann', self.config.fft_size).astype(np.float32)
        self.mel_filterbank = self._create_mel_filterbank()

        logging.info(f"Feature extractor initialized: {self.config.num_mel_bands} mel bands, "
                     f"{self.config.min_freq:.0f}-{self.config.max_freq:.0f} Hz, "
                     f"window={self.window_samples} samples")

    def _validate_config(self) -> None:
        """Validate feature configuration parameters."""
        if self.config.fft_size <= 0 or self.config.hop_size <= 0:
            raise ValueError("FFT size and hop size must be positive")

        if self.config.num_mel_bands <= 0:
            raise ValueError("Number of mel bands must be positive")

        if not 0 <= self.config.min_freq < self.config.max_freq <= self.config.sample_rate / 2:
            raise ValueError("Mel range must satisfy 0 <= min_freq < max_freq <= Nyquist")

        if int(self.config.sample_rate * self.config.window_duration) < self.config.fft_size:
            raise ValueError("Analysis window must hold at least one FFT frame")

    def _create_mel_filterbank(self) -> np.ndarray:
        """
        Build triangular filters evenly spaced on the mel scale.

        Returns:
            Filterbank matrix of shape (num_mel_bands, fft_size // 2 + 1)
        """
        num_bands = self.config.num_mel_bands
        num_bins = self.config.fft_size // 2 + 1

        mel_min = hz_to_mel(self.config.min_freq)
        mel_max = hz_to_mel(self.config.max_freq)
        fractions = np.arange(num_bands + 2) / (num_bands + 1)
        hz_points = mel_to_hz(mel_min + fractions * (mel_max - mel_min))
        bin_points = (hz_points * self.config.fft_size / self.config.sample_rate).astype(int)

        filterbank = np.zeros((num_bands, num_bins), dtype=np.float32)

        for i in range(num_bands):
            left, center, right = bin_points[i], bin_points[i + 1], bin_points[i + 2]

            for fft_bin in range(left, center):
                filterbank[i, fft_bin] = (fft_bin - left) / (center - left)

            for fft_bin in range(center, right):
                filterbank[i, fft_bin] = (right - fft_bin) / (right - center)

        return filterbank

    @property
    def buffered_samples(self) -> int:
        return len(self.buffer)

    def add_samples(self, samples: ArrayLike) -> None:
        """
        Append conditioned samples, evicting the oldest overflow.

        Args:
            samples: Normalized audio chunk
        """
        self.buffer.extend(as_signal(samples))

    def extract_features(self) -> Optional[np.ndarray]:
        """
        Compute log-mel features over the most recent analysis window.

        Returns:
            Array of shape (num_frames, num_mel_bands), or None until a full
            window has been buffered
        """
        if len(self.buffer) < self.window_samples:
            return None

        samples = self.buffer.latest(self.window_samples)
        frames = list(self.iter_frames(samples))

        if not frames:
            return np.empty((0, self.config.num_mel_bands), dtype=np.float32)

        return np.stack(frames)

    def iter_frames(self, samples: ArrayLike) -> Iterator[np.ndarray]:
        """
        Yield one log-mel vector per analysis frame.

        Args:
            samples: Audio samples to analyse

        Yields:
            Log-compressed mel energies for each full frame
        """
        samples = as_signal(samples)
        fft_size = self.config.fft_size

        num_frames = (len(samples) - fft_size) // self.config.hop_size + 1
        for frame_index in range(max(0, num_frames)):
            start = frame_index * self.config.hop_size
            frame = samples[start:start + fft_size] * self.hann_window

            magnitude = np.abs(np.fft.rfft(frame, n=fft_size))
            mel_energies = self.mel_filterbank @ magnitude

            yield np.maximum(np.log(mel_energies + 1e-10), self.config.log_floor).astype(np.float32)

    def reset(self) -> None:
        self.buffer.clear()
