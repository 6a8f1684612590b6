"""
Pipeline sequencing from raw chunks to states, rates and events
"""

import numpy as np
import pytest

from processors.breathing.classifier import BreathingState
from processors.breathing.events import EventType
from processors.breathing.feature_extractor import FeatureConfig
from processors.breathing.pipeline import BreathingPipeline, PipelineConfig
from processors.breathing.signal_conditioner import ConditionerConfig
from tests.signals import make_tone

CHUNK = 1024


@pytest.fixture
def pipeline():
    return BreathingPipeline()


def force_gate(pipeline, active):
    pipeline.activity_gate.detect_activity = lambda envelope: active


class TestGating:

    def test_silence_is_inactive(self, pipeline):
        for i in range(20):
            output = pipeline.process_chunk(np.zeros(CHUNK, dtype=np.float32), timestamp=i * 0.064)
            assert output.state is BreathingState.NONE
            assert output.active is False

    def test_warm_up_chunks_are_inactive(self, pipeline, rng):
        outputs = [pipeline.process_chunk(rng.standard_normal(CHUNK) * (i + 1), timestamp=float(i))
                   for i in range(10)]
        assert not any(o.active for o in outputs)

    def test_inactive_chunks_are_not_buffered(self, pipeline, rng):
        force_gate(pipeline, False)
        for i in range(20):
            pipeline.process_chunk(rng.standard_normal(CHUNK), timestamp=float(i))

        assert pipeline.feature_extractor.buffered_samples == 0

    def test_tone_after_silence_opens_gate(self, pipeline):
        for i in range(30):
            pipeline.process_chunk(np.zeros(CHUNK, dtype=np.float32), timestamp=i * 0.064)

        tone = make_tone(200.0, CHUNK * 16)
        outputs = [pipeline.process_chunk(tone[i * CHUNK:(i + 1) * CHUNK], timestamp=(30 + i) * 0.064)
                   for i in range(16)]

        assert all(o.active for o in outputs)
        assert not any(o.features_ready for o in outputs[:15])
        assert outputs[15].features_ready


class TestClassificationAndTracking:

    def test_features_ready_once_window_filled(self, pipeline, rng):
        force_gate(pipeline, True)
        outputs = [pipeline.process_chunk(rng.standard_normal(CHUNK), timestamp=float(i)) for i in range(16)]

        assert [o.features_ready for o in outputs] == [False] * 15 + [True]
        assert outputs[-1].state in set(BreathingState)

    def test_transition_reaches_tracker(self, pipeline, rng):
        force_gate(pipeline, True)
        script = iter([BreathingState.EXHALE, BreathingState.INHALE, BreathingState.EXHALE, BreathingState.INHALE])
        pipeline.classifier.classify = lambda features, envelope: next(script)

        pipeline.feature_extractor.add_samples(np.zeros(16000, dtype=np.float32))
        outputs = [pipeline.process_chunk(rng.standard_normal(CHUNK), timestamp=t) for t in [0.0, 1.0, 3.0, 5.0]]

        assert [o.state for o in outputs] == [
            BreathingState.EXHALE, BreathingState.INHALE, BreathingState.EXHALE, BreathingState.INHALE
        ]
        assert [e.type for e in outputs[1].events] == [EventType.INHALE]
        assert outputs[1].measurement is None
        assert outputs[3].measurement.smoothed_rate == pytest.approx(15.0)
        assert pipeline.current_rate == pytest.approx(15.0)

    def test_inhale_amplitude_is_envelope_peak(self, pipeline, rng):
        force_gate(pipeline, True)
        script = iter([BreathingState.EXHALE, BreathingState.INHALE])
        pipeline.classifier.classify = lambda features, envelope: next(script)
        pipeline.feature_extractor.add_samples(np.zeros(16000, dtype=np.float32))

        pipeline.process_chunk(rng.standard_normal(CHUNK), timestamp=0.0)
        chunk = rng.standard_normal(CHUNK)
        output = pipeline.process_chunk(chunk, timestamp=1.0)

        assert output.events[0].amplitude >= output.envelope_mean
        assert output.events[0].amplitude >= 0.0

    def test_apnea_after_gated_silence(self, pipeline, rng):
        gate_open = {'value': True}
        pipeline.activity_gate.detect_activity = lambda envelope: gate_open['value']
        script = iter([BreathingState.EXHALE, BreathingState.INHALE, BreathingState.NONE, BreathingState.NONE])
        pipeline.classifier.classify = lambda features, envelope: next(script)
        pipeline.feature_extractor.add_samples(np.zeros(16000, dtype=np.float32))

        pipeline.process_chunk(rng.standard_normal(CHUNK), timestamp=0.0)
        pipeline.process_chunk(rng.standard_normal(CHUNK), timestamp=1.0)

        gate_open['value'] = False
        silent = [pipeline.process_chunk(np.zeros(CHUNK, dtype=np.float32), timestamp=t)
                  for t in np.arange(2.0, 20.0, 0.5)]
        assert all(o.events == [] for o in silent)

        gate_open['value'] = True
        resumed = pipeline.process_chunk(rng.standard_normal(CHUNK), timestamp=20.0)
        following = pipeline.process_chunk(rng.standard_normal(CHUNK), timestamp=20.064)

        assert [e.type for e in resumed.events] == [EventType.APNEA]
        assert resumed.events[0].duration == pytest.approx(19.0)
        assert following.events == []


class TestInputHandling:

    def test_empty_chunk(self, pipeline):
        output = pipeline.process_chunk(np.array([], dtype=np.float32), timestamp=0.0)

        assert output.state is BreathingState.NONE
        assert output.active is False
        assert output.envelope_mean == 0.0

    def test_rejects_multichannel_input(self, pipeline):
        with pytest.raises(ValueError):
            pipeline.process_chunk(np.zeros((2, CHUNK), dtype=np.float32))

    def test_default_timestamp(self, pipeline):
        output = pipeline.process_chunk(np.zeros(CHUNK, dtype=np.float32))
        assert output.timestamp > 0.0

    def test_sample_rate_propagates(self):
        pipeline = BreathingPipeline(PipelineConfig(sample_rate=8000.0))

        assert pipeline.conditioner.config.sample_rate == 8000.0
        assert pipeline.feature_extractor.window_samples == 8000

    def test_shared_sub_configs_are_not_mutated(self):
        conditioner = ConditionerConfig()
        features = FeatureConfig()

        BreathingPipeline(PipelineConfig(sample_rate=8000.0, conditioner=conditioner, features=features))
        other = BreathingPipeline(PipelineConfig(conditioner=conditioner, features=features))

        assert conditioner.sample_rate == 16000.0
        assert features.sample_rate == 16000.0
        assert other.feature_extractor.window_samples == 16000


class TestReset:

    def test_reset_clears_all_stages(self, pipeline, rng):
        force_gate(pipeline, True)
        for i in range(20):
            pipeline.process_chunk(rng.standard_normal(CHUNK), timestamp=float(i))
        pipeline.rate_tracker.track_inhalation(0.0)

        pipeline.reset()
        stats = pipeline.get_pipeline_statistics()

        assert stats['chunk_count'] == 0
        assert stats['buffered_samples'] == 0
        assert stats['gate_history_size'] == 0
        assert stats['inhalation_count'] == 0
        assert stats['current_state'] == 'none'
