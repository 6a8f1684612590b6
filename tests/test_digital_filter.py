"""
Streaming biquad design and processing
"""

import math

import numpy as np
import pytest

from processors.breathing.digital_filter import (
    FilterKind,
    design_filter,
    process_filter,
    reset_filter
)


def reference_filter(b, a, x):
    """Sample-by-sample DF-II transposed recursion."""
    state = [0.0] * max(len(a), len(b))
    out = []
    for sample in x:
        y = b[0] * sample + state[0]
        for j in range(1, len(b)):
            state[j - 1] = b[j] * sample - a[j] * y + state[j]
        out.append(y)
    return np.array(out)


class TestFilterDesign:

    def test_lowpass_requires_cutoff(self, sample_rate):
        with pytest.raises(ValueError, match="Cutoff frequency required"):
            design_filter(FilterKind.LOWPASS, sample_rate)

    def test_highpass_requires_cutoff(self, sample_rate):
        with pytest.raises(ValueError):
            design_filter(FilterKind.HIGHPASS, sample_rate)

    def test_bandpass_requires_both_cutoffs(self, sample_rate):
        with pytest.raises(ValueError, match="Low and high cutoff"):
            design_filter(FilterKind.BANDPASS, sample_rate, low_cutoff=80.0)

    def test_rejects_cutoff_above_nyquist(self, sample_rate):
        with pytest.raises(ValueError):
            design_filter(FilterKind.BANDPASS, sample_rate, low_cutoff=80.0, high_cutoff=9000.0)

    def test_rejects_non_positive_sample_rate(self):
        with pytest.raises(ValueError):
            design_filter(FilterKind.LOWPASS, 0.0, cutoff=2.5)

    def test_lowpass_coefficients(self, sample_rate):
        state = design_filter(FilterKind.LOWPASS, sample_rate, cutoff=2.5)

        omega = math.tan(math.pi * 2.5 / sample_rate)
        k = 1.0 / (1.0 + math.sqrt(2.0) * omega + omega ** 2)
        np.testing.assert_allclose(state.b, [k * omega ** 2, 2 * k * omega ** 2, k * omega ** 2])
        np.testing.assert_allclose(
            state.a, [1.0, 2 * k * (omega ** 2 - 1), k * (1 - math.sqrt(2.0) * omega + omega ** 2)]
        )
        assert len(state.delay) == 3

    def test_lowpass_has_unit_dc_gain(self, sample_rate):
        state = design_filter(FilterKind.LOWPASS, sample_rate, cutoff=2.5)
        assert np.sum(state.b) / np.sum(state.a) == pytest.approx(1.0, rel=1e-6)

    def test_highpass_blocks_dc(self, sample_rate):
        state = design_filter(FilterKind.HIGHPASS, sample_rate, cutoff=100.0)
        assert np.sum(state.b) == pytest.approx(0.0, abs=1e-12)

    def test_bandpass_coefficients(self, sample_rate):
        state = design_filter(FilterKind.BANDPASS, sample_rate, low_cutoff=80.0, high_cutoff=500.0)

        omega = math.tan(math.pi * math.sqrt(80.0 * 500.0) / sample_rate)
        bw = math.tan(math.pi * 420.0 / sample_rate)
        k = 1.0 / (1.0 + bw + omega ** 2)
        np.testing.assert_allclose(state.b, [k * bw, 0.0, -k * bw])
        np.testing.assert_allclose(state.a, [1.0, 2 * k * (omega ** 2 - 1), k * (1 - bw + omega ** 2)])


class TestFilterProcessing:

    @pytest.fixture
    def lowpass(self, sample_rate):
        return design_filter(FilterKind.LOWPASS, sample_rate, cutoff=500.0)

    def test_empty_input(self, lowpass):
        output = process_filter(lowpass, np.array([], dtype=np.float32))
        assert len(output) == 0
        np.testing.assert_array_equal(lowpass.delay, 0.0)

    def test_single_sample(self, lowpass):
        output = process_filter(lowpass, [1.0])
        assert len(output) == 1
        assert output[0] == pytest.approx(lowpass.b[0], rel=1e-5)

    def test_matches_reference_recursion(self, lowpass, rng):
        x = rng.standard_normal(64)
        expected = reference_filter(lowpass.b, lowpass.a, x)

        np.testing.assert_allclose(process_filter(lowpass, x), expected, rtol=1e-4, atol=1e-5)

    def test_streams_across_chunks(self, sample_rate, rng):
        x = rng.standard_normal(1000).astype(np.float32)
        whole = design_filter(FilterKind.BANDPASS, sample_rate, low_cutoff=80.0, high_cutoff=500.0)
        chunked = design_filter(FilterKind.BANDPASS, sample_rate, low_cutoff=80.0, high_cutoff=500.0)

        expected = process_filter(whole, x)
        pieces = [process_filter(chunked, x[i:i + 37]) for i in range(0, len(x), 37)]

        np.testing.assert_allclose(np.concatenate(pieces), expected, rtol=1e-5, atol=1e-6)

    def test_output_dtype_and_length(self, lowpass, rng):
        output = process_filter(lowpass, rng.standard_normal(513))
        assert output.dtype == np.float32
        assert len(output) == 513

    def test_reset_zeroes_delay_line(self, lowpass):
        process_filter(lowpass, np.ones(10))
        assert np.any(lowpass.delay != 0.0)

        reset_filter(lowpass)
        np.testing.assert_array_equal(lowpass.delay, 0.0)


class TestNonFiniteSamples:

    def test_nan_is_treated_as_silence(self):
        state = design_filter(FilterKind.LOWPASS, 16000.0, cutoff=100.0)
        clean_state = design_filter(FilterKind.LOWPASS, 16000.0, cutoff=100.0)
        x = np.ones(32, dtype=np.float32)
        x[5] = np.nan
        expected = x.copy()
        expected[5] = 0.0

        output = process_filter(state, x)

        np.testing.assert_allclose(output, process_filter(clean_state, expected), rtol=1e-6)
        assert np.all(np.isfinite(state.delay))
