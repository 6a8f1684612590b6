"""
Breathing rate tracking and event detection.

Consumes the classifier's state sequence once per pipeline tick. An
exhale-to-inhale transition marks a new breath; inter-breath intervals give
the rate, and the breath history drives apnea and deep-breath events.
"""

import numpy as np
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from processors.signal_utils import ArrayLike, as_signal, upper_median, clamp
from processors.breathing.classifier import BreathingState
from processors.breathing.events import BreathingEvent, BreathingRateMeasurement, EventType
from utils.signal_buffer import RingBuffer, BufferConfig


@dataclass
class TrackerConfig:
    """
    Configuration for rate tracking and event detection.

    Attributes:
        rate_window: Number of recent inhalations used for the rate
        amplitude_history_size: Number of inhalation amplitudes kept
        apnea_threshold: Seconds without inhalation before apnea fires
        apnea_debounce: Minimum seconds since the previous tick for apnea
        deep_breath_multiplier: Factor over the median amplitude for a deep breath
        deep_breath_min_history: Amplitudes needed before deep breaths are judged
        min_rate: Lower rate clamp in BPM
        max_rate: Upper rate clamp in BPM
    """
    rate_window: int = 5
    amplitude_history_size: int = 20
    apnea_threshold: float = 15.0
    apnea_debounce: float = 1.0
    deep_breath_multiplier: float = 1.5
    deep_breath_min_history: int = 5
    min_rate: float = 4.0
    max_rate: float = 60.0


@dataclass
class TrackerUpdate:
    """
    Notifications produced by one tracker tick.

    Attributes:
        events: Events emitted this tick, in emission order
        measurement: Rate measurement, if the rate was recomputed
    """
    events: List[BreathingEvent] = field(default_factory=list)
    measurement: Optional[BreathingRateMeasurement] = None


class BreathingRateTracker:
    """
    State-transition driven breathing rate and event tracker.
    """

    def __init__(self, config: Optional[TrackerConfig] = None):
        """
        Initialize the tracker.

        Args:
            config: Tracker configuration (uses default if None)

        Raises:
            ValueError: If rate limits or window sizes are invalid
        """
        self.config = config or TrackerConfig()
        self._validate_config()

        self.inhalation_timestamps = RingBuffer(BufferConfig(capacity=self.config.rate_window + 5))
        self.amplitude_history = RingBuffer(BufferConfig(capacity=self.config.amplitude_history_size))

        self._initialize_state()

        logging.info(f"Breathing rate tracker initialized: window={self.config.rate_window} breaths, "
                     f"apnea after {self.config.apnea_threshold:.1f}s")

    def _validate_config(self) -> None:
        if self.config.rate_window < 2:
            raise ValueError("Rate window must span at least two inhalations")

        if not 0 < self.config.min_rate < self.config.max_rate:
            raise ValueError("Rate limits must satisfy 0 < min_rate < max_rate")

        if self.config.apnea_threshold <= 0:
            raise ValueError("Apnea threshold must be positive")

    def _initialize_state(self) -> None:
        self.previous_state = BreathingState.NONE
        self.last_state_change_time: Optional[float] = None
        self.current_rate = 0.0
        self.current_instantaneous_rate = 0.0

    def update(self, state: BreathingState, envelope: ArrayLike, timestamp: float) -> TrackerUpdate:
        """
        Advance the tracker by one pipeline tick.

        Args:
            state: Classifier state for this tick
            envelope: Envelope of the current chunk
            timestamp: Tick time in seconds

        Returns:
            TrackerUpdate with any events and rate measurement
        """
        result = TrackerUpdate()
        previous_change_time = self.last_state_change_time

        if self.previous_state is BreathingState.EXHALE and state is BreathingState.INHALE:
            envelope = as_signal(envelope)
            amplitude = float(np.max(envelope)) if len(envelope) > 0 else 0.0
            result.events.extend(self._record_inhalation(timestamp, amplitude))

        if len(self.inhalation_timestamps) >= 2:
            result.measurement = self._update_breathing_rate(timestamp)

        apnea_event = self._check_for_apnea(timestamp, previous_change_time)
        if apnea_event:
            result.events.append(apnea_event)

        self.last_state_change_time = timestamp
        self.previous_state = state

        return result

    def track_inhalation(self, timestamp: float, amplitude: float = 0.0) -> TrackerUpdate:
        """
        Record a breath detected outside the state machine.

        Args:
            timestamp: Inhalation time in seconds
            amplitude: Peak envelope amplitude of the breath

        Returns:
            TrackerUpdate with the inhale (and deep-breath) events and rate
        """
        result = TrackerUpdate(events=self._record_inhalation(timestamp, amplitude))

        if len(self.inhalation_timestamps) >= 2:
            result.measurement = self._update_breathing_rate(timestamp)

        return result

    def _record_inhalation(self, timestamp: float, amplitude: float) -> List[BreathingEvent]:
        self.inhalation_timestamps.append(timestamp)
        self.amplitude_history.append(amplitude)

        events = [BreathingEvent(timestamp=timestamp, type=EventType.INHALE, amplitude=amplitude)]
        logging.debug(f"Inhalation at {timestamp:.2f}s (amplitude {amplitude:.3f})")

        deep_breath = self._check_for_deep_breath(timestamp, amplitude)
        if deep_breath:
            events.append(deep_breath)

        return events

    def _update_breathing_rate(self, timestamp: float) -> Optional[BreathingRateMeasurement]:
        """
        Recompute the rate from recent inter-breath intervals.

        Args:
            timestamp: Time of the measurement

        Returns:
            BreathingRateMeasurement, or None if no positive interval exists
        """
        recent = self.inhalation_timestamps.latest(self.config.rate_window)
        intervals = np.diff(recent)
        intervals = intervals[intervals > 0]

        if len(intervals) == 0:
            return None

        rates = 60.0 / intervals

        self.current_rate = clamp(upper_median(rates), self.config.min_rate, self.config.max_rate)
        self.current_instantaneous_rate = clamp(float(rates[-1]), self.config.min_rate, self.config.max_rate)

        measurement = BreathingRateMeasurement(
            timestamp=timestamp,
            instantaneous_rate=self.current_instantaneous_rate,
            smoothed_rate=self.current_rate,
            confidence=self._calculate_confidence(rates)
        )

        logging.info(f"Breathing Rate: {self.current_rate:.1f} BPM (confidence: {measurement.confidence:.2f})")
        return measurement

    def _calculate_confidence(self, rates: np.ndarray) -> float:
        """
        Confidence from interval coverage and rate consistency.

        Args:
            rates: Instantaneous rates of recent intervals

        Returns:
            Confidence score (0-1)
        """
        coverage = min(1.0, len(rates) / (self.config.rate_window - 1))

        mean_rate = float(np.mean(rates))
        if mean_rate <= 0:
            return 0.0
        consistency = clamp(1.0 - float(np.std(rates)) / mean_rate, 0.0, 1.0)

        return coverage * consistency

    def _check_for_apnea(self, timestamp: float,
                         previous_change_time: Optional[float]) -> Optional[BreathingEvent]:
        last_inhalation = self.inhalation_timestamps.last()
        if last_inhalation is None:
            return None

        time_since_inhalation = timestamp - last_inhalation
        if time_since_inhalation <= self.config.apnea_threshold:
            return None

        # At most one apnea per debounce interval of continued silence
        if previous_change_time is not None and timestamp - previous_change_time <= self.config.apnea_debounce:
            return None

        logging.info(f"Apnea detected: {time_since_inhalation:.1f}s without inhalation")
        return BreathingEvent(timestamp=timestamp, type=EventType.APNEA, duration=time_since_inhalation)

    def _check_for_deep_breath(self, timestamp: float, amplitude: float) -> Optional[BreathingEvent]:
        if len(self.amplitude_history) < self.config.deep_breath_min_history:
            return None

        median_amplitude = upper_median(self.amplitude_history.to_array())
        if amplitude <= median_amplitude * self.config.deep_breath_multiplier:
            return None

        logging.info(f"Deep breath detected: amplitude {amplitude:.3f} vs median {median_amplitude:.3f}")
        return BreathingEvent(timestamp=timestamp, type=EventType.DEEP_BREATH, amplitude=amplitude)

    def recent_inhalations(self, count: int) -> List[float]:
        """
        Get the most recent inhalation timestamps.

        Args:
            count: Number of timestamps to retrieve

        Returns:
            Up to `count` timestamps, oldest first
        """
        return self.inhalation_timestamps.latest(count).tolist()

    def reset(self) -> None:
        """Clear breath history and rate state."""
        self.inhalation_timestamps.clear()
        self.amplitude_history.clear()
        self._initialize_state()
        logging.info("Breathing rate tracker reset")
