"""Acceleration pipeline: magnitude statistics, step count and cadence.

Step detection runs the gait band (0.5-4 Hz) of the acceleration magnitude
through the same zero-phase filter and rolling-mean peak detector used for
the pulse signal, with a 0.4 s window and a minimum peak amplitude that
rejects sensor noise while the wearer is still.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from vitalseq.analytics.filters import filtfilt
from vitalseq.analytics.peaks import find_peaks
from vitalseq.decoders.samples import AccelSample

MIN_SAMPLES = 10
ACCEL_SAMPLE_RATE_HZ = 25.0

# Gait band (Hz)
STEP_LOW_HZ = 0.5
STEP_HIGH_HZ = 4.0

STEP_WINDOW_SEC = 0.4
STEP_MIN_AMPLITUDE = 0.15  # m/s², walking > 0.5, sitting noise < 0.05


@dataclass(frozen=True)
class AccelResult:
    """Acceleration features for one sequence window."""

    sample_count: int
    duration_seconds: float
    x_mean: float
    y_mean: float
    z_mean: float
    x_var: float
    y_var: float
    z_var: float
    mag_mean: float
    mag_var: float
    mag_peak: float
    total_steps: int
    cadence_spm: float

    def __repr__(self) -> str:
        return (
            f"AccelResult(steps={self.total_steps}, "
            f"cadence={self.cadence_spm:.1f}spm, "
            f"mag={self.mag_mean:.2f}±{self.mag_var:.4f})"
        )


def count_steps(
    magnitude: Sequence[float],
    sample_rate_hz: float = ACCEL_SAMPLE_RATE_HZ,
    min_amplitude: float = STEP_MIN_AMPLITUDE,
) -> int:
    """Count gait peaks in an acceleration-magnitude series."""
    if len(magnitude) < MIN_SAMPLES:
        return 0
    mag = np.asarray(magnitude, dtype=np.float64)
    # centre on the mean so the gravity offset does not ring through the high-pass
    filtered = filtfilt(mag - np.mean(mag), sample_rate_hz, STEP_LOW_HZ, STEP_HIGH_HZ)
    peaks = find_peaks(
        filtered,
        sample_rate_hz,
        window_sec=STEP_WINDOW_SEC,
        min_height=min_amplitude,
    )
    return len(peaks)


def cadence(steps: int, duration_seconds: float) -> float:
    """Steps per minute; 0 for an empty or zero-length window."""
    if duration_seconds <= 0:
        return 0.0
    return steps / duration_seconds * 60.0


def process_accel(
    samples: Sequence[AccelSample],
    sample_rate_hz: float = ACCEL_SAMPLE_RATE_HZ,
    min_amplitude: float = STEP_MIN_AMPLITUDE,
) -> AccelResult | None:
    """Compute acceleration features for a timestamp-sorted window.

    Args:
        samples: Acceleration samples in m/s², sorted by timestamp.
        sample_rate_hz: Nominal accelerometer rate (for filter design).
        min_amplitude: Minimum filtered magnitude for a peak to count as a step.

    Returns:
        None with fewer than 10 samples.
    """
    if len(samples) < MIN_SAMPLES:
        return None

    xyz = np.asarray([(s.x, s.y, s.z) for s in samples], dtype=np.float64)
    magnitudes = np.sqrt(np.sum(xyz ** 2, axis=1))
    means = np.mean(xyz, axis=0)
    variances = np.var(xyz, axis=0)

    duration = (samples[-1].timestamp - samples[0].timestamp) / 1000.0
    steps = count_steps(magnitudes, sample_rate_hz, min_amplitude)

    return AccelResult(
        sample_count=len(samples),
        duration_seconds=duration,
        x_mean=float(means[0]),
        y_mean=float(means[1]),
        z_mean=float(means[2]),
        x_var=float(variances[0]),
        y_var=float(variances[1]),
        z_var=float(variances[2]),
        mag_mean=float(np.mean(magnitudes)),
        mag_var=float(np.var(magnitudes)),
        mag_peak=float(np.max(magnitudes)),
        total_steps=steps,
        cadence_spm=cadence(steps, duration),
    )
