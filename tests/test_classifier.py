"""
Envelope-slope classification and hysteresis
"""

import numpy as np
import pytest

from processors.breathing.classifier import BreathingClassifier, BreathingState, ClassifierConfig

RISING = np.linspace(0.1, 0.5, 40).astype(np.float32)
FALLING = RISING[::-1].copy()
FLAT = np.full(40, 0.2, dtype=np.float32)
FEATURES = np.zeros((61, 64), dtype=np.float32)


@pytest.fixture
def classifier():
    return BreathingClassifier()


class TestRawDecision:

    def test_rising_envelope_is_inhale(self, classifier):
        assert classifier.classify_from_envelope(RISING) is BreathingState.INHALE

    def test_falling_envelope_is_exhale(self, classifier):
        assert classifier.classify_from_envelope(FALLING) is BreathingState.EXHALE

    def test_flat_envelope_is_none(self, classifier):
        assert classifier.classify_from_envelope(FLAT) is BreathingState.NONE

    def test_short_envelope_is_none(self, classifier):
        short = np.array([0.1, 0.2, 0.3, 0.4, 0.5], dtype=np.float32)
        assert classifier.classify_from_envelope(short) is BreathingState.NONE
        assert classifier.classify_from_envelope(np.linspace(0, 1, 10)) is BreathingState.NONE

    def test_slope_below_threshold_is_none(self, classifier):
        gentle = np.linspace(0.2, 0.2 + 0.0005 * 39, 40).astype(np.float32)
        assert classifier.classify_from_envelope(gentle) is BreathingState.NONE


class TestHysteresis:

    def test_rising_envelope_converges_after_three_frames(self, classifier):
        states = [classifier.classify(FEATURES, RISING) for _ in range(4)]

        assert states == [
            BreathingState.NONE,
            BreathingState.NONE,
            BreathingState.INHALE,
            BreathingState.INHALE,
        ]

    def test_single_opposing_frame_does_not_flip(self, classifier):
        for _ in range(10):
            classifier.classify(FEATURES, RISING)

        assert classifier.classify(FEATURES, FALLING) is BreathingState.INHALE
        assert classifier.classify(FEATURES, RISING) is BreathingState.INHALE

    def test_sustained_opposing_frames_switch_state(self, classifier):
        for _ in range(5):
            classifier.classify(FEATURES, RISING)

        states = [classifier.classify(FEATURES, FALLING) for _ in range(3)]
        assert states == [BreathingState.INHALE, BreathingState.INHALE, BreathingState.EXHALE]

    def test_empty_envelope_bypasses_hysteresis(self, classifier):
        for _ in range(3):
            classifier.classify(FEATURES, RISING)

        assert classifier.classify(FEATURES, np.array([], dtype=np.float32)) is BreathingState.NONE
        assert classifier.current_state is BreathingState.INHALE
        assert classifier.classify(FEATURES, RISING) is BreathingState.INHALE

    def test_features_do_not_affect_decision(self, classifier):
        noisy_features = np.random.default_rng(0).standard_normal((61, 64))
        states = [classifier.classify(noisy_features, RISING) for _ in range(3)]
        assert states[-1] is BreathingState.INHALE

    def test_state_history_is_bounded(self, classifier):
        for _ in range(4):
            classifier.classify(FEATURES, RISING)
        for _ in range(3):
            classifier.classify(FEATURES, FALLING)

        assert classifier.state_history == [BreathingState.INHALE, BreathingState.INHALE] + [BreathingState.EXHALE] * 3

    def test_custom_hysteresis_length(self):
        classifier = BreathingClassifier(ClassifierConfig(min_same_state_frames=1))
        assert classifier.classify(FEATURES, FALLING) is BreathingState.EXHALE

    def test_reset(self, classifier):
        for _ in range(3):
            classifier.classify(FEATURES, RISING)
        classifier.reset()

        assert classifier.current_state is BreathingState.NONE
        assert classifier.state_history == []
        assert classifier.classify(FEATURES, RISING) is BreathingState.NONE
