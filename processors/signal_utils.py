"""
Signal processing utilities for acoustic breathing analysis.

This module contains common numeric helpers shared by the breathing
processors: RMS gain normalization, median baselines and mel-scale
conversions.
"""

import numpy as np
from typing import Sequence, Union

ArrayLike = Union[Sequence[float], np.ndarray]


def as_signal(data: ArrayLike) -> np.ndarray:
    """
    Coerce input samples to a 1-D float32 array.

    Args:
        data: Input samples

    Returns:
        Samples as contiguous float32 array

    Raises:
        ValueError: If input is not one-dimensional
    """
    signal_array = np.asarray(data, dtype=np.float32)

    if signal_array.ndim == 0:
        signal_array = signal_array.reshape(1)
    if signal_array.ndim != 1:
        raise ValueError(f"Expected mono samples, got array with shape {signal_array.shape}")

    return np.ascontiguousarray(signal_array)


def replace_non_finite(signal_data: np.ndarray) -> np.ndarray:
    """Zero out NaN and infinite samples so they cannot reach filter state."""
    if np.all(np.isfinite(signal_data)):
        return signal_data
    return np.nan_to_num(signal_data, nan=0.0, posinf=0.0, neginf=0.0)


def compute_rms(signal_data: np.ndarray) -> float:
    """
    Calculate root-mean-square amplitude.

    Args:
        signal_data: Input signal data

    Returns:
        RMS value (0.0 for empty input)
    """
    if len(signal_data) == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(signal_data, dtype=np.float64))))


def normalize_rms(signal_data: np.ndarray, epsilon: float = 1e-6,
                  clip_limit: float = 3.0) -> np.ndarray:
    """
    Scale signal to unit RMS and hard-clip the result.

    Args:
        signal_data: Input signal data
        epsilon: Floor applied to the RMS before division
        clip_limit: Symmetric clipping bound

    Returns:
        Normalized signal with values in [-clip_limit, clip_limit]
    """
    if len(signal_data) == 0:
        return signal_data

    signal_data = replace_non_finite(signal_data)
    gain = 1.0 / max(compute_rms(signal_data), epsilon)
    normalized = signal_data.astype(np.float64) * gain

    return np.clip(normalized, -clip_limit, clip_limit).astype(np.float32)


def upper_median(values: ArrayLike) -> float:
    """
    Median taken as the element at index n // 2 of the sorted values.

    For even counts this is the upper of the two middle values, which keeps
    baselines on an observed value rather than an interpolated one.

    Args:
        values: Non-empty sequence of values

    Returns:
        Upper median

    Raises:
        ValueError: If values is empty
    """
    values_array = np.asarray(values, dtype=np.float64)
    if values_array.size == 0:
        raise ValueError("Cannot take the median of an empty sequence")

    sorted_values = np.sort(values_array)
    return float(sorted_values[len(sorted_values) // 2])


def hz_to_mel(hz: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """Convert frequency in Hz to the mel scale."""
    return 2595.0 * np.log10(1.0 + np.asarray(hz) / 700.0)


def mel_to_hz(mel: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """Convert mel-scale value back to Hz."""
    return 700.0 * (np.power(10.0, np.asarray(mel) / 2595.0) - 1.0)


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))
