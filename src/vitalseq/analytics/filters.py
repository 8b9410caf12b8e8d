"""Second-order Butterworth biquads and zero-phase (forward-backward) filtering.

Every downstream pipeline filters through this module:
  - Bilinear-transform low-pass / high-pass coefficient design
  - Direct-form-II biquad recursion with zeroed state per pass
  - Bandpass cascade (high-pass at the low cut, then low-pass at the high cut)
  - ``filtfilt``: cascade forward, reverse, cascade again, reverse back

The recursion is written out sample by sample rather than delegated to
``scipy.signal.lfilter`` so that outputs are bit-identical to previously
exported data.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

SQRT2 = math.sqrt(2.0)


@dataclass(frozen=True)
class BiquadCoeffs:
    """One biquad stage: ``y = (b0 + b1 z^-1 + b2 z^-2) / (1 + a1 z^-1 + a2 z^-2)``."""

    b0: float
    b1: float
    b2: float
    a1: float
    a2: float

    @property
    def dc_gain(self) -> float:
        """Gain at 0 Hz: (b0 + b1 + b2) / (1 + a1 + a2)."""
        den = 1.0 + self.a1 + self.a2
        if den == 0.0:
            return math.inf
        return (self.b0 + self.b1 + self.b2) / den


# ---------------------------------------------------------------------------
# Coefficient design
# ---------------------------------------------------------------------------


def _prewarp(fs: float, fc: float) -> tuple[float, float, float]:
    """Return ``(wc, wc^2, norm)`` for a cut-off ``fc`` at sampling rate ``fs``."""
    if fs <= 0:
        raise ValueError(f"sampling rate must be positive, got {fs}")
    if not (0.0 < fc < fs / 2.0):
        raise ValueError(f"cut-off {fc} Hz must lie in (0, {fs / 2.0}) Hz")
    wc = math.tan(math.pi * fc / fs)
    wc2 = wc * wc
    norm = 1.0 / (1.0 + SQRT2 * wc + wc2)
    return wc, wc2, norm


def butterworth_lowpass(fs: float, fc: float) -> BiquadCoeffs:
    """2nd-order Butterworth low-pass biquad (unity DC gain)."""
    wc, wc2, norm = _prewarp(fs, fc)
    return BiquadCoeffs(
        b0=wc2 * norm,
        b1=2.0 * wc2 * norm,
        b2=wc2 * norm,
        a1=2.0 * (wc2 - 1.0) * norm,
        a2=(1.0 - SQRT2 * wc + wc2) * norm,
    )


def butterworth_highpass(fs: float, fc: float) -> BiquadCoeffs:
    """2nd-order Butterworth high-pass biquad (zero DC gain)."""
    wc, wc2, norm = _prewarp(fs, fc)
    return BiquadCoeffs(
        b0=norm,
        b1=-2.0 * norm,
        b2=norm,
        a1=2.0 * (wc2 - 1.0) * norm,
        a2=(1.0 - SQRT2 * wc + wc2) * norm,
    )


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------


def apply_biquad(data: Sequence[float], c: BiquadCoeffs) -> np.ndarray:
    """Run one direct-form-II biquad pass over *data* starting from zero state."""
    out = np.empty(len(data), dtype=np.float64)
    w1 = 0.0
    w2 = 0.0
    for i, x in enumerate(np.asarray(data, dtype=np.float64).tolist()):
        w0 = x - c.a1 * w1 - c.a2 * w2
        out[i] = c.b0 * w0 + c.b1 * w1 + c.b2 * w2
        w2 = w1
        w1 = w0
    return out


def bandpass(
    data: Sequence[float],
    fs: float,
    low_hz: float,
    high_hz: float,
) -> np.ndarray:
    """Single forward pass of the high-pass -> low-pass cascade."""
    hp = butterworth_highpass(fs, low_hz)
    lp = butterworth_lowpass(fs, high_hz)
    return apply_biquad(apply_biquad(data, hp), lp)


def filtfilt(
    data: Sequence[float],
    fs: float,
    low_hz: float,
    high_hz: float,
) -> np.ndarray:
    """Zero-phase bandpass: cascade forward, reverse, cascade again, reverse.

    Needs the whole buffer in memory; it is not usable on a live stream.

    Args:
        data: Raw samples.
        fs: Sampling rate in Hz.
        low_hz: High-pass cut-off (lower band edge).
        high_hz: Low-pass cut-off (upper band edge).

    Returns:
        Filtered samples, same length as *data*.
    """
    if len(data) == 0:
        return np.empty(0, dtype=np.float64)
    hp = butterworth_highpass(fs, low_hz)
    lp = butterworth_lowpass(fs, high_hz)

    result = apply_biquad(apply_biquad(data, hp), lp)[::-1]
    result = apply_biquad(apply_biquad(result, hp), lp)[::-1]
    return np.ascontiguousarray(result)
