"""
Signal conditioning for acoustic breathing detection.

Each audio chunk is band-pass filtered to the breathing band, gain
normalized, and reduced to a smoothed non-negative envelope. The order
matters: envelope extraction assumes a roughly unit-scale rectified signal,
so gain normalization always runs first.
"""

import numpy as np
import logging
from dataclasses import dataclass
from typing import Optional

from processors.signal_utils import ArrayLike, as_signal, normalize_rms
from processors.breathing.digital_filter import (
    FilterKind,
    design_filter,
    process_filter,
    reset_filter
)


@dataclass
class ConditionerConfig:
    """
    Configuration for breathing signal conditioning.

    Attributes:
        sample_rate: Audio sampling frequency in Hz
        bandpass_low: Lower edge of the breathing band in Hz
        bandpass_high: Upper edge of the breathing band in Hz
        envelope_cutoff: Envelope smoothing cutoff in Hz
        agc_epsilon: RMS floor used by gain normalization
        clip_limit: Symmetric clipping bound after normalization
    """
    sample_rate: float = 16000.0
    bandpass_low: float = 80.0
    bandpass_high: float = 500.0
    envelope_cutoff: float = 2.5
    agc_epsilon: float = 1e-6
    clip_limit: float = 3.0


@dataclass
class ConditionedChunk:
    """
    Output of conditioning one chunk.

    Attributes:
        filtered: Band-passed samples
        normalized: Gain-normalized, clipped samples
        envelope: Smoothed non-negative envelope
    """
    filtered: np.ndarray
    normalized: np.ndarray
    envelope: np.ndarray


class SignalConditioner:
    """
    Band-pass, AGC and envelope stages of the breathing pipeline.

    Owns the band-pass and envelope filter states; they persist across
    chunks so the filters stream without edge transients.
    """

    def __init__(self, config: Optional[ConditionerConfig] = None):
        """
        Initialize the signal conditioner.

        Args:
            config: Conditioning configuration (uses default if None)

        Raises:
            ValueError: If filter parameters are invalid
        """
        self.config = config or ConditionerConfig()

        if self.config.clip_limit <= 0:
            raise ValueError("Clip limit must be positive")

        self.bandpass_state = design_filter(
            FilterKind.BANDPASS,
            self.config.sample_rate,
            low_cutoff=self.config.bandpass_low,
            high_cutoff=self.config.bandpass_high
        )
        self.envelope_state = design_filter(
            FilterKind.LOWPASS,
            self.config.sample_rate,
            cutoff=self.config.envelope_cutoff
        )

        logging.info(
            f"Signal conditioner initialized: {self.config.bandpass_low:.0f}-"
            f"{self.config.bandpass_high:.0f} Hz band, envelope {self.config.envelope_cutoff} Hz"
        )

    def apply_bandpass(self, data: ArrayLike) -> np.ndarray:
        """
        Isolate breathing frequencies.

        Args:
            data: Raw audio chunk

        Returns:
            Band-passed chunk of equal length
        """
        return process_filter(self.bandpass_state, data)

    def normalize_and_agc(self, data: ArrayLike) -> np.ndarray:
        """
        Scale chunk to unit RMS and clip to the configured limit.

        Args:
            data: Band-passed chunk

        Returns:
            Normalized chunk of equal length
        """
        return normalize_rms(as_signal(data), self.config.agc_epsilon, self.config.clip_limit)

    def compute_envelope(self, data: ArrayLike) -> np.ndarray:
        """
        Rectify and low-pass filter a chunk.

        Args:
            data: Normalized chunk

        Returns:
            Non-negative envelope of equal length
        """
        rectified = np.abs(as_signal(data))
        envelope = process_filter(self.envelope_state, rectified)
        # The biquad can undershoot slightly on sharp drops
        return np.maximum(envelope, 0.0)

    def condition(self, data: ArrayLike) -> ConditionedChunk:
        """
        Run bandpass, AGC and envelope in order on one chunk.

        Args:
            data: Raw audio chunk

        Returns:
            ConditionedChunk with all intermediate signals
        """
        data = as_signal(data)
        bad_samples = int(np.count_nonzero(~np.isfinite(data)))
        if bad_samples:
            logging.warning(f"Replacing {bad_samples} non-finite samples with zeros")

        filtered = self.apply_bandpass(data)
        normalized = self.normalize_and_agc(filtered)
        envelope = self.compute_envelope(normalized)

        return ConditionedChunk(filtered=filtered, normalized=normalized, envelope=envelope)

    def reset(self) -> None:
        """Clear both filter delay lines."""
        reset_filter(self.bandpass_state)
        reset_filter(self.envelope_state)
        logging.info("Signal conditioner filters reset")
