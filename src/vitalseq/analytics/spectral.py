"""Frequency-domain HRV (LF / HF band power) from NN intervals.

The orchestrator treats this as a pluggable collaborator: anything callable
as ``analyzer(nn_ms) -> SpectralPower`` can be supplied. The default,
:func:`welch_band_power`, follows the usual recipe:

1. Place each NN value at its cumulative beat time and interpolate the
   series onto a uniform 4 Hz grid.
2. Remove the mean.
3. Welch PSD (Hann window, up to 128-sample segments, 50% overlap).
4. Sum PSD * df inside the LF and HF bands.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence

import numpy as np
from scipy import signal as sig

INTERP_FS = 4.0  # Hz
LF_BAND = (0.04, 0.15)
HF_BAND = (0.15, 0.40)
MAX_SEGMENT = 128
MIN_NN = 4
MIN_UNIFORM_SAMPLES = 8


@dataclass(frozen=True)
class SpectralPower:
    """LF / HF powers in ms² and their ratio."""

    lf_power_ms2: float = 0.0
    hf_power_ms2: float = 0.0
    lf_hf_ratio: float = 0.0
    total_power_ms2: float = 0.0

    def __repr__(self) -> str:
        return (
            f"SpectralPower(lf={self.lf_power_ms2:.1f}, hf={self.hf_power_ms2:.1f}, "
            f"ratio={self.lf_hf_ratio:.2f})"
        )


SpectralAnalyzer = Callable[[Sequence[float]], SpectralPower]


def _interpolate_nn(nn_ms: Sequence[float], fs: float = INTERP_FS) -> np.ndarray:
    """Resample NN intervals (ms) to a uniform grid, mean removed."""
    nn = np.asarray(nn_ms, dtype=np.float64)
    # value nn[i] belongs to the end of beat i
    t_beats = np.cumsum(nn) / 1000.0
    n_samples = int(t_beats[-1] * fs)
    if n_samples < 2:
        return np.empty(0, dtype=np.float64)

    t_uniform = np.arange(n_samples) / fs
    uniform = np.interp(t_uniform, t_beats, nn)
    return uniform - np.mean(uniform)


def _band_power(freqs: np.ndarray, psd: np.ndarray, band: tuple[float, float]) -> float:
    df = freqs[1] - freqs[0] if len(freqs) > 1 else 1.0
    mask = (freqs >= band[0]) & (freqs <= band[1])
    return float(np.sum(psd[mask]) * df)


def welch_band_power(nn_ms: Sequence[float]) -> SpectralPower:
    """LF / HF band power of an NN interval series.

    Returns zeros when there are fewer than 4 intervals or the interpolated
    series is shorter than 8 samples.
    """
    if len(nn_ms) < MIN_NN:
        return SpectralPower()

    uniform = _interpolate_nn(nn_ms)
    if len(uniform) < MIN_UNIFORM_SAMPLES:
        return SpectralPower()

    nperseg = min(len(uniform), MAX_SEGMENT)
    freqs, psd = sig.welch(
        uniform,
        fs=INTERP_FS,
        window="hann",
        nperseg=nperseg,
        noverlap=nperseg // 2,
        detrend=False,
    )

    lf = _band_power(freqs, psd, LF_BAND)
    hf = _band_power(freqs, psd, HF_BAND)
    return SpectralPower(
        lf_power_ms2=lf,
        hf_power_ms2=hf,
        lf_hf_ratio=lf / hf if hf > 0 else 0.0,
        total_power_ms2=lf + hf,
    )
