"""
Processors package for acoustic breathing monitoring.

This package contains signal processing modules for:
- Streaming IIR filtering and signal conditioning
- Breathing activity gating
- Log-mel spectral feature extraction
- Breathing state classification
- Breathing rate and event tracking
- Pipeline orchestration and threaded streaming
"""

from processors.breathing.digital_filter import FilterKind, FilterState, design_filter, process_filter
from processors.breathing.signal_conditioner import SignalConditioner, ConditionerConfig, ConditionedChunk
from processors.breathing.activity_gate import ActivityGate, GateConfig
from processors.breathing.feature_extractor import BreathingFeatureExtractor, FeatureConfig
from processors.breathing.classifier import BreathingClassifier, BreathingState, ClassifierConfig
from processors.breathing.rate_tracker import BreathingRateTracker, TrackerConfig, TrackerUpdate
from processors.breathing.events import BreathingEvent, BreathingRateMeasurement, BreathingSession, EventType
from processors.breathing.pipeline import BreathingPipeline, PipelineConfig, PipelineOutput
from processors.breathing.monitor import BreathingMonitor, MonitorConfig

__all__ = [
    'FilterKind',
    'FilterState',
    'design_filter',
    'process_filter',
    'SignalConditioner',
    'ConditionerConfig',
    'ConditionedChunk',
    'ActivityGate',
    'GateConfig',
    'BreathingFeatureExtractor',
    'FeatureConfig',
    'BreathingClassifier',
    'BreathingState',
    'ClassifierConfig',
    'BreathingRateTracker',
    'TrackerConfig',
    'TrackerUpdate',
    'BreathingEvent',
    'BreathingRateMeasurement',
    'BreathingSession',
    'EventType',
    'BreathingPipeline',
    'PipelineConfig',
    'PipelineOutput',
    'BreathingMonitor',
    'MonitorConfig'
]
