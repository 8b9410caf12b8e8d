"""SpO2 estimation from red/IR pulse channels (ratio of ratios).

Two estimators share the empirical calibration curve
``SpO2 = 110 - 25 * R`` with ``R = (AC_red / DC_red) / (AC_ir / DC_ir)``:

- :func:`estimate_spo2` -- one value over a whole window, AC = standard
  deviation and DC = mean of each channel.
- :func:`per_beat_spo2` -- one value per detected cardiac cycle, AC =
  peak-to-trough of the bandpassed segment and DC = mean of the raw segment;
  summarised as mean / min / std for the feature vector.

Both need device-specific calibration before the numbers mean anything
clinically.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from vitalseq.analytics.filters import filtfilt
from vitalseq.analytics.pulse import HIGH_CUTOFF_HZ, LOW_CUTOFF_HZ

MIN_SAMPLES = 100

# Window estimate is clamped to this range
SPO2_FLOOR = 70.0
SPO2_CEIL = 100.0

# Per-beat estimates use a wider floor
PER_BEAT_FLOOR = 50.0
MIN_BEAT_SAMPLES = 3

# Perfusion index (%) quality cut points
PI_POOR = 0.3
PI_FAIR = 1.0
PI_GOOD = 5.0


# ---------------------------------------------------------------------------
# Core estimation
# ---------------------------------------------------------------------------


def estimate_spo2_from_ratio(
    r: float,
    floor: float = SPO2_FLOOR,
    ceil: float = SPO2_CEIL,
) -> float:
    """Estimate SpO2% from the red/IR ratio of ratios, clamped to [floor, ceil]."""
    spo2 = 110.0 - 25.0 * r
    return max(floor, min(ceil, spo2))


def perfusion_quality(perfusion_index: float) -> str:
    """Map a perfusion index (%) to a four-level quality label."""
    if perfusion_index < PI_POOR:
        return "Poor"
    if perfusion_index < PI_FAIR:
        return "Fair"
    if perfusion_index < PI_GOOD:
        return "Good"
    return "Excellent"


@dataclass(frozen=True)
class SpO2Result:
    """Window-level SpO2 estimate."""

    spo2_pct: float
    perfusion_index: float  # IR AC/DC * 100
    ratio_of_ratios: float
    quality: str
    needs_calibration: bool = True

    def __repr__(self) -> str:
        return (
            f"SpO2Result({self.spo2_pct:.1f}%, R={self.ratio_of_ratios:.3f}, "
            f"PI={self.perfusion_index:.2f}% [{self.quality}])"
        )


def estimate_spo2(
    red_values: Sequence[float],
    ir_values: Sequence[float],
) -> SpO2Result | None:
    """Estimate SpO2 over a window of red and IR samples.

    Unequal lengths are truncated to the shorter channel; no timestamp
    alignment is attempted.

    Returns:
        None when either channel has fewer than 100 samples or a zero DC
        level (the ratio cannot be computed).
    """
    if len(red_values) < MIN_SAMPLES or len(ir_values) < MIN_SAMPLES:
        return None

    n = min(len(red_values), len(ir_values))
    red = np.asarray(red_values[:n], dtype=np.float64)
    ir = np.asarray(ir_values[:n], dtype=np.float64)

    red_dc = float(np.mean(red))
    ir_dc = float(np.mean(ir))
    if red_dc == 0.0 or ir_dc == 0.0:
        return None

    red_ac = float(np.std(red))
    ir_ac = float(np.std(ir))
    if ir_ac == 0.0:
        return None

    r = (red_ac / red_dc) / (ir_ac / ir_dc)
    perfusion_index = ir_ac / ir_dc * 100.0

    return SpO2Result(
        spo2_pct=estimate_spo2_from_ratio(r),
        perfusion_index=perfusion_index,
        ratio_of_ratios=r,
        quality=perfusion_quality(perfusion_index),
    )


# ---------------------------------------------------------------------------
# Per-beat aggregation
# ---------------------------------------------------------------------------


def per_beat_spo2(
    red_values: Sequence[float],
    ir_values: Sequence[float],
    peaks: Sequence[int],
    sample_rate_hz: float,
) -> tuple[float, float, float]:
    """SpO2 mean / min / std over the cardiac cycles between *peaks*.

    Returns ``(0.0, 0.0, 0.0)`` when fewer than two peaks are given, either
    channel is all zeros, or no cycle yields a usable ratio.
    """
    if len(peaks) < 2:
        return 0.0, 0.0, 0.0

    n = min(len(red_values), len(ir_values))
    red = np.asarray(red_values[:n], dtype=np.float64)
    ir = np.asarray(ir_values[:n], dtype=np.float64)
    if not np.any(red) or not np.any(ir):
        return 0.0, 0.0, 0.0

    red_f = filtfilt(red, sample_rate_hz, LOW_CUTOFF_HZ, HIGH_CUTOFF_HZ)
    ir_f = filtfilt(ir, sample_rate_hz, LOW_CUTOFF_HZ, HIGH_CUTOFF_HZ)

    readings: list[float] = []
    for start, end in zip(peaks[:-1], peaks[1:]):
        end = min(end, n)
        if end - start < MIN_BEAT_SAMPLES:
            continue
        ir_ac = float(np.max(ir_f[start:end]) - np.min(ir_f[start:end]))
        red_ac = float(np.max(red_f[start:end]) - np.min(red_f[start:end]))
        ir_dc = float(np.mean(ir[start:end]))
        red_dc = float(np.mean(red[start:end]))
        if ir_dc == 0.0 or red_dc == 0.0 or ir_ac == 0.0:
            continue
        r = (red_ac / red_dc) / (ir_ac / ir_dc)
        readings.append(estimate_spo2_from_ratio(r, floor=PER_BEAT_FLOOR))

    if not readings:
        return 0.0, 0.0, 0.0

    arr = np.asarray(readings, dtype=np.float64)
    std = float(np.std(arr)) if len(arr) > 1 else 0.0
    return float(np.mean(arr)), float(np.min(arr)), std
