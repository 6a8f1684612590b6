"""
Rule-based breathing state classifier.

Classifies each analysis window as inhale, exhale or none from the slope of
the envelope around its midpoint, then smooths the decision with hysteresis
so single-frame noise cannot flip the displayed state. The spectral features
are accepted so a learned model can replace the rule without changing the
call site.
"""

import numpy as np
import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from processors.signal_utils import ArrayLike, as_signal


class BreathingState(Enum):
    NONE = "none"
    INHALE = "inhale"
    EXHALE = "exhale"


@dataclass
class ClassifierConfig:
    """
    Configuration for the breathing classifier.

    Attributes:
        slope_threshold: Minimum absolute envelope slope per sample
        min_envelope_length: Envelope length that must be exceeded to classify
        max_half_window: Upper bound on the slope half-window in samples
        min_same_state_frames: Consecutive identical decisions needed to switch
        history_size: Length of the diagnostic raw-decision history
    """
    slope_threshold: float = 0.001
    min_envelope_length: int = 10
    max_half_window: int = 10
    min_same_state_frames: int = 3
    history_size: int = 5


class BreathingClassifier:
    """
    Envelope-slope classifier with hysteresis smoothing.
    """

    def __init__(self, config: Optional[ClassifierConfig] = None):
        self.config = config or ClassifierConfig()

        if self.config.min_same_state_frames < 1:
            raise ValueError("Hysteresis needs at least one confirming frame")

        self._initialize_state()

        logging.info(f"Breathing classifier initialized: slope threshold={self.config.slope_threshold}, "
                     f"hysteresis={self.config.min_same_state_frames} frames")

    def _initialize_state(self) -> None:
        self.current_state = BreathingState.NONE
        self.previous_raw_state: Optional[BreathingState] = None
        self.same_state_count = 0
        self.raw_history = deque(maxlen=self.config.history_size)

    @property
    def state_history(self) -> List[BreathingState]:
        """Recent raw decisions, oldest first."""
        return list(self.raw_history)

    def classify(self, features: Optional[np.ndarray], envelope: ArrayLike) -> BreathingState:
        """
        Classify the current window.

        Args:
            features: Log-mel features of the window (unused by the rule)
            envelope: Envelope of the current chunk

        Returns:
            Displayed breathing state after hysteresis
        """
        envelope = as_signal(envelope)
        if len(envelope) == 0:
            return BreathingState.NONE

        raw_state = self.classify_from_envelope(envelope)
        return self._apply_hysteresis(raw_state)

    def classify_from_envelope(self, envelope: np.ndarray) -> BreathingState:
        """
        Raw decision from the envelope slope around the midpoint.

        Args:
            envelope: Envelope samples

        Returns:
            INHALE for a rising slope, EXHALE for a falling one, else NONE
        """
        count = len(envelope)
        if count <= self.config.min_envelope_length:
            return BreathingState.NONE

        mid = count // 2
        half_window = min(self.config.max_half_window, count // 4)

        start = max(0, mid - half_window)
        end = min(count - 1, mid + half_window)
        if end <= start:
            return BreathingState.NONE

        slope = (float(envelope[end]) - float(envelope[start])) / (end - start)

        if slope > self.config.slope_threshold:
            return BreathingState.INHALE
        if slope < -self.config.slope_threshold:
            return BreathingState.EXHALE
        return BreathingState.NONE

    def _apply_hysteresis(self, raw_state: BreathingState) -> BreathingState:
        self.raw_history.append(raw_state)

        if raw_state == self.previous_raw_state:
            self.same_state_count += 1
        else:
            self.same_state_count = 1
        self.previous_raw_state = raw_state

        if self.same_state_count >= self.config.min_same_state_frames:
            if raw_state != self.current_state:
                logging.debug(f"Breathing state: {self.current_state.value} -> {raw_state.value}")
            self.current_state = raw_state

        return self.current_state

    def reset(self) -> None:
        self._initialize_state()
