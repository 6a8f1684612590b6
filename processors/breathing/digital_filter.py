"""
Streaming second-order IIR filters for breathing audio.

Filters are plain state records designed once from a filter kind and
cutoff(s) and then run chunk by chunk through `process_filter`, which carries
the Direct-Form-II-transposed delay line across calls.
"""

import math
import numpy as np
import scipy.signal as signal
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from processors.signal_utils import ArrayLike, as_signal, replace_non_finite


class FilterKind(Enum):
    LOWPASS = "lowpass"
    HIGHPASS = "highpass"
    BANDPASS = "bandpass"


@dataclass
class FilterState:
    """
    Coefficients and delay line of one logical filter.

    Attributes:
        kind: Filter kind the coefficients were designed for
        b: Numerator (feedforward) coefficients
        a: Denominator (feedback) coefficients, a[0] == 1
        delay: Delay line of length max(len(a), len(b))
    """
    kind: FilterKind
    b: np.ndarray
    a: np.ndarray
    delay: np.ndarray


def _lowpass_highpass_denominator(omega: float) -> tuple:
    omega2 = omega * omega
    sqrt2 = math.sqrt(2.0)
    k = 1.0 / (1.0 + sqrt2 * omega + omega2)
    a = [1.0, 2.0 * k * (omega2 - 1.0), k * (1.0 - sqrt2 * omega + omega2)]
    return k, omega2, a


def design_lowpass(sample_rate: float, cutoff: float) -> tuple:
    """
    Second-order Butterworth low-pass via bilinear transform.

    Args:
        sample_rate: Sampling frequency in Hz
        cutoff: Cutoff frequency in Hz

    Returns:
        Tuple of (b, a) coefficient lists
    """
    omega = math.tan(math.pi * cutoff / sample_rate)
    k, omega2, a = _lowpass_highpass_denominator(omega)
    b = [k * omega2, 2.0 * k * omega2, k * omega2]
    return b, a


def design_highpass(sample_rate: float, cutoff: float) -> tuple:
    """
    Second-order Butterworth high-pass via bilinear transform.

    Args:
        sample_rate: Sampling frequency in Hz
        cutoff: Cutoff frequency in Hz

    Returns:
        Tuple of (b, a) coefficient lists
    """
    omega = math.tan(math.pi * cutoff / sample_rate)
    k, _, a = _lowpass_highpass_denominator(omega)
    b = [k, -2.0 * k, k]
    return b, a


def design_bandpass(sample_rate: float, low_cutoff: float, high_cutoff: float) -> tuple:
    """
    Single biquad band-pass from the geometric center and bandwidth.

    This is a center/bandwidth approximation rather than a cascaded
    higher-order design; downstream thresholds are tuned against it.

    Args:
        sample_rate: Sampling frequency in Hz
        low_cutoff: Lower edge in Hz
        high_cutoff: Upper edge in Hz

    Returns:
        Tuple of (b, a) coefficient lists
    """
    center_freq = math.sqrt(low_cutoff * high_cutoff)
    bandwidth = high_cutoff - low_cutoff

    omega = math.tan(math.pi * center_freq / sample_rate)
    bw = math.tan(math.pi * bandwidth / sample_rate)
    omega2 = omega * omega

    k = 1.0 / (1.0 + bw + omega2)

    b = [k * bw, 0.0, -k * bw]
    a = [1.0, 2.0 * k * (omega2 - 1.0), k * (1.0 - bw + omega2)]
    return b, a


def design_filter(kind: FilterKind, sample_rate: float,
                  cutoff: Optional[float] = None,
                  low_cutoff: Optional[float] = None,
                  high_cutoff: Optional[float] = None) -> FilterState:
    """
    Design a streaming filter and allocate its delay line.

    Args:
        kind: Filter kind
        sample_rate: Sampling frequency in Hz
        cutoff: Cutoff for low-pass / high-pass filters
        low_cutoff: Lower edge for band-pass filters
        high_cutoff: Upper edge for band-pass filters

    Returns:
        Freshly initialized FilterState

    Raises:
        ValueError: If a required cutoff is missing or parameters are invalid
    """
    if sample_rate <= 0:
        raise ValueError("Sampling frequency must be positive")

    nyquist = sample_rate / 2

    if kind in (FilterKind.LOWPASS, FilterKind.HIGHPASS):
        if cutoff is None:
            raise ValueError(f"Cutoff frequency required for {kind.value} filter")
        if not 0 < cutoff < nyquist:
            raise ValueError("Cutoff must be between 0 and the Nyquist frequency")

        if kind is FilterKind.LOWPASS:
            b, a = design_lowpass(sample_rate, cutoff)
        else:
            b, a = design_highpass(sample_rate, cutoff)

    elif kind is FilterKind.BANDPASS:
        if low_cutoff is None or high_cutoff is None:
            raise ValueError("Low and high cutoff frequencies required for bandpass filter")
        if low_cutoff <= 0 or low_cutoff >= high_cutoff:
            raise ValueError("Low cutoff must be positive and less than high cutoff")
        if high_cutoff >= nyquist:
            raise ValueError("High cutoff must be less than Nyquist frequency")

        b, a = design_bandpass(sample_rate, low_cutoff, high_cutoff)

    else:
        raise ValueError(f"Unsupported filter kind: {kind}")

    state = FilterState(
        kind=kind,
        b=np.asarray(b, dtype=np.float64),
        a=np.asarray(a, dtype=np.float64),
        delay=np.zeros(max(len(a), len(b)), dtype=np.float64)
    )

    logging.debug(f"Designed {kind.value} filter: b={state.b}, a={state.a}")
    return state


def process_filter(state: FilterState, data: ArrayLike) -> np.ndarray:
    """
    Run one chunk through the filter, updating its delay line in place.

    Per sample: y = b0*x + s0, then s[j-1] = b[j]*x - a[j]*y + s[j].

    Args:
        state: Filter state, owned exclusively by the caller
        data: Input chunk

    Returns:
        Filtered chunk of equal length (float32)
    """
    x = replace_non_finite(as_signal(data))
    if len(x) == 0:
        return x

    # lfilter's zi omits the trailing delay slot, which is always zero
    y, zf = signal.lfilter(state.b, state.a, x.astype(np.float64), zi=state.delay[:-1])
    state.delay[:-1] = zf

    return y.astype(np.float32)


def reset_filter(state: FilterState) -> None:
    """Zero the delay line of a filter."""
    state.delay[:] = 0.0
