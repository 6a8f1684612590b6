"""
Adaptive breathing-activity gate.

Compares each chunk's mean envelope against a multiple of the median of
recent chunk means, so the gate calibrates itself to the ambient noise floor
instead of relying on a fixed global threshold.
"""

import numpy as np
import logging
from dataclasses import dataclass
from typing import Optional

from processors.signal_utils import ArrayLike, as_signal, upper_median
from utils.signal_buffer import RingBuffer, BufferConfig


@dataclass
class GateConfig:
    """
    Configuration for the activity gate.

    Attributes:
        history_size: Number of chunk means kept (~30 s at ~16 chunks/s)
        threshold_multiplier: Factor applied to the history median
        min_history: History length that must be exceeded before gating
    """
    history_size: int = 480
    threshold_multiplier: float = 1.5
    min_history: int = 10


class ActivityGate:
    """Self-calibrating detector of breathing activity in the envelope."""

    def __init__(self, config: Optional[GateConfig] = None):
        self.config = config or GateConfig()

        if self.config.threshold_multiplier <= 0:
            raise ValueError("Threshold multiplier must be positive")
        if self.config.min_history < 0:
            raise ValueError("Minimum history must not be negative")

        self.history = RingBuffer(BufferConfig(capacity=self.config.history_size))
        self.last_threshold: Optional[float] = None

        logging.info(f"Activity gate initialized: history={self.config.history_size}, "
                     f"multiplier={self.config.threshold_multiplier}")

    def detect_activity(self, envelope: ArrayLike) -> bool:
        """
        Decide whether the current envelope chunk contains breathing.

        Args:
            envelope: Envelope of the current chunk

        Returns:
            True if the chunk mean exceeds the adaptive threshold; False while
            the history is still warming up
        """
        envelope = as_signal(envelope)
        if len(envelope) == 0:
            return False

        current_mean = float(np.mean(envelope))
        self.history.append(current_mean)

        if len(self.history) <= self.config.min_history:
            logging.debug(f"Activity gate warming up ({len(self.history)}/{self.config.min_history})")
            return False

        self.last_threshold = upper_median(self.history.to_array()) * self.config.threshold_multiplier
        return current_mean > self.last_threshold

    def reset(self) -> None:
        self.history.clear()
        self.last_threshold = None
