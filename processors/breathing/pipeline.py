"""
Breathing detection pipeline.

Coordinates the conditioning, gating, feature, classification and tracking
components for one audio chunk at a time. Every stage carries streaming
state, so chunks must be processed sequentially in arrival order.
"""

import time
import numpy as np
import logging
from dataclasses import dataclass, field, replace
from typing import List, Optional

from processors.signal_utils import ArrayLike, as_signal
from processors.breathing.signal_conditioner import SignalConditioner, ConditionerConfig
from processors.breathing.activity_gate import ActivityGate, GateConfig
from processors.breathing.feature_extractor import BreathingFeatureExtractor, FeatureConfig
from processors.breathing.classifier import BreathingClassifier, BreathingState, ClassifierConfig
from processors.breathing.rate_tracker import BreathingRateTracker, TrackerConfig
from processors.breathing.events import BreathingEvent, BreathingRateMeasurement


@dataclass
class PipelineConfig:
    """
    Configuration for the full breathing pipeline.

    The sample rate is propagated to the conditioner and feature extractor
    so both always agree with the audio source.
    """
    sample_rate: float = 16000.0
    conditioner: ConditionerConfig = field(default_factory=ConditionerConfig)
    gate: GateConfig = field(default_factory=GateConfig)
    features: FeatureConfig = field(default_factory=FeatureConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    tracker: TrackerConfig = field(default_factory=TrackerConfig)


@dataclass
class PipelineOutput:
    """
    Result of processing one chunk.

    Attributes:
        timestamp: Time assigned to the chunk in seconds
        state: Breathing state to display
        active: Whether the activity gate found breathing
        features_ready: Whether a full feature window was classified
        envelope_mean: Mean envelope of the chunk
        events: Events emitted for this chunk
        measurement: Rate measurement, if the rate was recomputed
    """
    timestamp: float
    state: BreathingState = BreathingState.NONE
    active: bool = False
    features_ready: bool = False
    envelope_mean: float = 0.0
    events: List[BreathingEvent] = field(default_factory=list)
    measurement: Optional[BreathingRateMeasurement] = None


class BreathingPipeline:
    """
    Real-time acoustic breathing processor.

    Turns raw mono audio chunks into breathing states, rate measurements and
    events. Notifications are returned from `process_chunk` rather than
    pushed through callbacks.
    """

    def __init__(self, config: Optional[PipelineConfig] = None):
        """
        Initialize the pipeline and all of its components.

        Args:
            config: Pipeline configuration (uses default if None)

        Raises:
            ValueError: If any component configuration is invalid
        """
        config = config or PipelineConfig()

        if config.sample_rate <= 0:
            raise ValueError("Sampling frequency must be positive")

        # Sub-configs are copied; the caller's objects keep their own rate
        self.config = replace(
            config,
            conditioner=replace(config.conditioner, sample_rate=config.sample_rate),
            features=replace(config.features, sample_rate=config.sample_rate)
        )

        self._initialize_components()

        self.chunk_count = 0
        self.current_state = BreathingState.NONE

        logging.info(f"Breathing pipeline initialized at {self.config.sample_rate:.0f} Hz")

    def _initialize_components(self) -> None:
        self.conditioner = SignalConditioner(self.config.conditioner)
        self.activity_gate = ActivityGate(self.config.gate)
        self.feature_extractor = BreathingFeatureExtractor(self.config.features)
        self.classifier = BreathingClassifier(self.config.classifier)
        self.rate_tracker = BreathingRateTracker(self.config.tracker)

    def process_chunk(self, samples: ArrayLike, timestamp: Optional[float] = None) -> PipelineOutput:
        """
        Process one chunk of raw audio.

        Args:
            samples: Mono float samples at the configured sample rate
            timestamp: Chunk time in seconds (defaults to the current time)

        Returns:
            PipelineOutput with the state and any rate/event notifications
        """
        if timestamp is None:
            timestamp = time.time()

        samples = as_signal(samples)
        output = PipelineOutput(timestamp=timestamp)
        self.chunk_count += 1

        # Steps 1-3: band-pass, AGC, envelope
        conditioned = self.conditioner.condition(samples)
        if len(conditioned.envelope) > 0:
            output.envelope_mean = float(np.mean(conditioned.envelope))

        # Step 4: activity gate
        output.active = self.activity_gate.detect_activity(conditioned.envelope)
        if not output.active:
            self.current_state = BreathingState.NONE
            return output

        # Step 5: spectral features
        self.feature_extractor.add_samples(conditioned.normalized)
        features = self.feature_extractor.extract_features()
        if features is None:
            logging.debug(f"Feature window filling: {self.feature_extractor.buffered_samples} samples")
            self.current_state = BreathingState.NONE
            return output

        # Steps 6-7: classification and tracking
        output.features_ready = True
        output.state = self.classifier.classify(features, conditioned.envelope)
        self.current_state = output.state

        update = self.rate_tracker.update(output.state, conditioned.envelope, timestamp)
        output.events = update.events
        output.measurement = update.measurement

        for event in output.events:
            logging.debug(f"Breathing event: {event.type.value} at {event.timestamp:.2f}s")

        return output

    @property
    def current_rate(self) -> float:
        return self.rate_tracker.current_rate

    def reset(self) -> None:
        """Clear all filter state and histories."""
        self.conditioner.reset()
        self.activity_gate.reset()
        self.feature_extractor.reset()
        self.classifier.reset()
        self.rate_tracker.reset()
        self.chunk_count = 0
        self.current_state = BreathingState.NONE
        logging.info("Breathing pipeline reset")

    def get_pipeline_statistics(self) -> dict:
        """
        Get diagnostic statistics of all stages.

        Returns:
            Dictionary containing pipeline statistics
        """
        return {
            'chunk_count': self.chunk_count,
            'current_state': self.current_state.value,
            'current_rate': self.rate_tracker.current_rate,
            'gate_history_size': len(self.activity_gate.history),
            'gate_threshold': self.activity_gate.last_threshold,
            'buffered_samples': self.feature_extractor.buffered_samples,
            'inhalation_count': len(self.rate_tracker.inhalation_timestamps)
        }
