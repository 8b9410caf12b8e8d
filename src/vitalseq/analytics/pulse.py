"""Optical pulse (PPG) pipeline: heart rate, HRV and per-sequence pulse features.

All three entry points share the same front end:
  1. Zero-phase bandpass 0.5-4 Hz (:func:`vitalseq.analytics.filters.filtfilt`)
  2. Rolling-mean peak detection (:mod:`vitalseq.analytics.peaks`)
  3. Inter-beat intervals from the peak timestamps

and differ in the interval validation and the statistics they derive.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from vitalseq.analytics.filters import filtfilt
from vitalseq.analytics.peaks import find_peaks
from vitalseq.analytics.spectral import SpectralPower
from vitalseq.exceptions import SampleOrderError

# Pulse band (Hz)
LOW_CUTOFF_HZ = 0.5
HIGH_CUTOFF_HZ = 4.0

# Peak detection
ROLLING_MEAN_WINDOW_SEC = 0.75
MIN_PEAK_DISTANCE_SEC = 0.4

# Heart-rate path: minimum data and IBI plausibility (30-200 BPM)
HR_MIN_SECONDS = 2.0
IBI_MIN_MS = 300.0
IBI_MAX_MS = 2000.0

# HRV path: minimum data, NN window (40-180 BPM) and second-pass deviation
HRV_MIN_SECONDS = 3.0
NN_MIN_MS = 333.0
NN_MAX_MS = 1500.0
NN_DEVIATION_FACTOR = 0.30


# ---------------------------------------------------------------------------
# Result records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HeartRateResult:
    """Average heart rate over one window."""

    bpm: float
    confidence: float  # 0-100, from IBI dispersion
    peak_count: int
    mean_ibi_ms: float
    ibi_std_ms: float

    def __repr__(self) -> str:
        return f"HeartRateResult({self.bpm:.1f} bpm, conf={self.confidence:.0f})"


@dataclass(frozen=True)
class HrvResult:
    """Time-domain HRV for one sequence.

    Zero-filled (but still present) when fewer than two NN intervals survive.
    """

    sequence_id: str
    duration_seconds: float
    total_samples: int
    peaks_detected: int
    nn_intervals_used: int
    mean_nn_ms: float = 0.0
    mean_hr_bpm: float = 0.0
    sdnn_ms: float = 0.0
    rmssd_ms: float = 0.0
    pnn20_pct: float = 0.0
    pnn50_pct: float = 0.0
    sdsd_ms: float = 0.0
    nn_intervals: tuple[float, ...] = ()

    def __repr__(self) -> str:
        return (
            f"HrvResult({self.sequence_id}: hr={self.mean_hr_bpm:.1f}, "
            f"sdnn={self.sdnn_ms:.2f}, rmssd={self.rmssd_ms:.2f}, "
            f"nn={self.nn_intervals_used}/{self.peaks_detected})"
        )


@dataclass(frozen=True)
class PulseFeatures:
    """Pulse sub-record of the exported feature vector."""

    mean_hr_bpm: float = 0.0
    hr_std_bpm: float = 0.0
    hr_min_bpm: float = 0.0
    hr_max_bpm: float = 0.0
    hr_range_bpm: float = 0.0
    hr_slope_bpm_per_s: float = 0.0
    nn_quality_ratio: float = 0.0
    sdnn_ms: float = 0.0
    rmssd_ms: float = 0.0
    pnn50_pct: float = 0.0
    mean_nn_ms: float = 0.0
    cv_nn: float = 0.0
    spectral: SpectralPower = field(default_factory=SpectralPower)
    spo2_mean_pct: float = 0.0
    spo2_min_pct: float = 0.0
    spo2_std_pct: float = 0.0


# ---------------------------------------------------------------------------
# Shared front end
# ---------------------------------------------------------------------------


def _check_lengths(values: Sequence, timestamps: Sequence) -> None:
    if len(values) != len(timestamps):
        raise SampleOrderError(
            f"{len(values)} pulse values but {len(timestamps)} timestamps"
        )


def pulse_peaks(values: Sequence[float], sample_rate_hz: float) -> tuple[np.ndarray, list[int]]:
    """Bandpass the pulse channel and locate its beats.

    Returns:
        ``(filtered_signal, peak_indices)``.
    """
    filtered = filtfilt(values, sample_rate_hz, LOW_CUTOFF_HZ, HIGH_CUTOFF_HZ)
    peaks = find_peaks(
        filtered,
        sample_rate_hz,
        window_sec=ROLLING_MEAN_WINDOW_SEC,
        min_distance_sec=MIN_PEAK_DISTANCE_SEC,
    )
    return filtered, peaks


def intervals_from_peaks(peaks: Sequence[int], timestamps: Sequence[int]) -> list[float]:
    """Millisecond intervals between consecutive peak timestamps."""
    return [
        float(timestamps[peaks[i]] - timestamps[peaks[i - 1]])
        for i in range(1, len(peaks))
    ]


def validate_nn_intervals(raw_nn_ms: Sequence[float]) -> list[float]:
    """Two-pass NN validation.

    First keep intervals inside [NN_MIN_MS, NN_MAX_MS]; then drop those more
    than ``NN_DEVIATION_FACTOR`` away from the mean of the first pass.
    """
    in_range = [nn for nn in raw_nn_ms if NN_MIN_MS <= nn <= NN_MAX_MS]
    if not in_range:
        return []
    mean = sum(in_range) / len(in_range)
    lower = mean * (1.0 - NN_DEVIATION_FACTOR)
    upper = mean * (1.0 + NN_DEVIATION_FACTOR)
    return [nn for nn in in_range if lower <= nn <= upper]


# ---------------------------------------------------------------------------
# Heart-rate path
# ---------------------------------------------------------------------------


def calculate_heart_rate(
    values: Sequence[float],
    timestamps: Sequence[int],
    sample_rate_hz: float = 100.0,
) -> HeartRateResult | None:
    """Average heart rate from a pulse window.

    Returns None for under ~2 s of data, fewer than two beats, or when no
    inter-beat interval falls in the 30-200 BPM range.
    """
    _check_lengths(values, timestamps)
    if len(values) < int(HR_MIN_SECONDS * sample_rate_hz):
        return None

    _, peaks = pulse_peaks(values, sample_rate_hz)
    if len(peaks) < 2:
        return None

    ibis = [ibi for ibi in intervals_from_peaks(peaks, timestamps) if IBI_MIN_MS <= ibi <= IBI_MAX_MS]
    if not ibis:
        return None

    arr = np.asarray(ibis, dtype=np.float64)
    mean_ibi = float(np.mean(arr))
    ibi_std = float(np.std(arr))
    confidence = max(0.0, min(100.0, 100.0 - ibi_std / mean_ibi * 100.0))

    return HeartRateResult(
        bpm=60000.0 / mean_ibi,
        confidence=confidence,
        peak_count=len(peaks),
        mean_ibi_ms=mean_ibi,
        ibi_std_ms=ibi_std,
    )


# ---------------------------------------------------------------------------
# HRV path
# ---------------------------------------------------------------------------


def hrv_from_nn(
    nn_ms: Sequence[float],
    sequence_id: str = "",
    duration_seconds: float = 0.0,
    total_samples: int = 0,
    peaks_detected: int = 0,
) -> HrvResult:
    """Time-domain HRV statistics over already-validated NN intervals."""
    base = dict(
        sequence_id=sequence_id,
        duration_seconds=duration_seconds,
        total_samples=total_samples,
        peaks_detected=peaks_detected,
        nn_intervals_used=len(nn_ms),
        nn_intervals=tuple(float(v) for v in nn_ms),
    )
    if len(nn_ms) < 2:
        return HrvResult(**base)

    arr = np.asarray(nn_ms, dtype=np.float64)
    mean_nn = float(np.mean(arr))
    diffs = np.diff(arr)
    abs_diffs = np.abs(diffs)

    return HrvResult(
        **base,
        mean_nn_ms=mean_nn,
        mean_hr_bpm=60000.0 / mean_nn,
        sdnn_ms=float(np.std(arr)),
        rmssd_ms=float(np.sqrt(np.mean(diffs ** 2))),
        pnn20_pct=float(np.sum(abs_diffs > 20.0)) * 100.0 / len(diffs),
        pnn50_pct=float(np.sum(abs_diffs > 50.0)) * 100.0 / len(diffs),
        sdsd_ms=float(np.std(diffs)),
    )


def calculate_hrv(
    values: Sequence[float],
    timestamps: Sequence[int],
    sample_rate_hz: float = 100.0,
    sequence_id: str = "",
) -> HrvResult | None:
    """HRV for one pulse window.

    Returns None below ~3 s of data; otherwise always returns a record
    (zero-filled when fewer than two NN intervals are valid).
    """
    _check_lengths(values, timestamps)
    n = len(values)
    if n < int(HRV_MIN_SECONDS * sample_rate_hz):
        return None

    _, peaks = pulse_peaks(values, sample_rate_hz)
    nn = validate_nn_intervals(intervals_from_peaks(peaks, timestamps))
    duration = (timestamps[-1] - timestamps[0]) / 1000.0 if n > 1 else 0.0

    return hrv_from_nn(
        nn,
        sequence_id=sequence_id,
        duration_seconds=duration,
        total_samples=n,
        peaks_detected=len(peaks),
    )


# ---------------------------------------------------------------------------
# Feature-vector pulse sub-record
# ---------------------------------------------------------------------------


def _slope(x: np.ndarray, y: np.ndarray) -> float:
    """Least-squares slope of y against x (0 when undefined)."""
    if len(x) < 2:
        return 0.0
    if np.ptp(x) == 0.0:
        return 0.0
    return float(np.polyfit(x, y, 1)[0])


def pulse_features(
    nn_ms: Sequence[float],
    peaks_detected: int,
    spectral: SpectralPower | None = None,
    spo2: tuple[float, float, float] | None = None,
) -> PulseFeatures:
    """Build the pulse sub-record from validated NN intervals.

    Args:
        nn_ms: Validated NN intervals (ms).
        peaks_detected: Peak count before validation (for the quality ratio).
        spectral: Frequency-domain powers, if a spectral collaborator ran.
        spo2: ``(mean, min, std)`` per-beat SpO2, if computed.
    """
    spectral = spectral or SpectralPower()
    spo2_mean, spo2_min, spo2_std = spo2 or (0.0, 0.0, 0.0)

    if len(nn_ms) < 2:
        return PulseFeatures(
            spectral=spectral,
            spo2_mean_pct=spo2_mean,
            spo2_min_pct=spo2_min,
            spo2_std_pct=spo2_std,
        )

    nn = np.asarray(nn_ms, dtype=np.float64)
    mean_nn = float(np.mean(nn))
    sdnn = float(np.std(nn))
    diffs = np.diff(nn)

    inst_hr = 60000.0 / nn
    cumulative_s = np.cumsum(nn / 1000.0)
    hr_min = float(np.min(inst_hr))
    hr_max = float(np.max(inst_hr))

    return PulseFeatures(
        mean_hr_bpm=float(np.mean(inst_hr)),
        hr_std_bpm=float(np.std(inst_hr)),
        hr_min_bpm=hr_min,
        hr_max_bpm=hr_max,
        hr_range_bpm=hr_max - hr_min,
        hr_slope_bpm_per_s=_slope(cumulative_s, inst_hr),
        nn_quality_ratio=len(nn) / (peaks_detected - 1) if peaks_detected > 1 else 0.0,
        sdnn_ms=sdnn,
        rmssd_ms=float(np.sqrt(np.mean(diffs ** 2))),
        pnn50_pct=float(np.sum(np.abs(diffs) > 50.0)) * 100.0 / len(diffs),
        mean_nn_ms=mean_nn,
        cv_nn=sdnn / mean_nn if mean_nn > 0 else 0.0,
        spectral=spectral,
        spo2_mean_pct=spo2_mean,
        spo2_min_pct=spo2_min,
        spo2_std_pct=spo2_std,
    )

