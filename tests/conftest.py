"""
Pytest configuration for breathing pipeline tests
"""

import os
import sys

import numpy as np
import pytest

# Add repository root to path to import processors and utils
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from tests.signals import SAMPLE_RATE, make_tone


@pytest.fixture
def sample_rate():
    return SAMPLE_RATE


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def two_tone():
    """Breathing-band tone plus an out-of-band tone."""
    return make_tone(200.0, 1024) + make_tone(5000.0, 1024, amplitude=0.5)
