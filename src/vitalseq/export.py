"""CSV sinks for feature vectors.

Column order and number formatting match files already exported by the
phone app, so rows from both can be concatenated. Writers append; the
header is written only when the file is new or empty.
"""

from __future__ import annotations

import csv
import datetime
import threading
from pathlib import Path

from vitalseq import config
from vitalseq.analytics.summary import FeatureVector

logger = config.get_logger()

FEATURES_FILE = "features.csv"

FEATURE_COLUMNS = [
    "timestamp", "sequence_id",
    "mean_hr_bpm", "hr_std_bpm", "hr_min_bpm", "hr_max_bpm", "hr_range_bpm",
    "hr_slope_bpm_per_s", "nn_quality_ratio",
    "sdnn_ms", "rmssd_ms", "pnn50_pct", "mean_nn_ms", "cv_nn",
    "lf_power_ms2", "hf_power_ms2", "lf_hf_ratio", "total_power_ms2",
    "spo2_mean_pct", "spo2_min_pct", "spo2_std_pct",
    "accel_x_mean", "accel_y_mean", "accel_z_mean",
    "accel_x_var", "accel_y_var", "accel_z_var",
    "accel_mag_mean", "accel_mag_var", "accel_peak",
    "skin_temp_obj", "skin_temp_delta", "skin_temp_ambient",
    "total_steps", "cadence_spm",
    "activity_label", "fatigue_level", "rpe_raw",
]

SLEEP_STRESS_COLUMNS = [
    "timestamp", "sequence_id", "duration_seconds", "total_ppg_samples",
    "peaks_detected", "nn_intervals_used",
    "mean_hr_bpm", "sdnn_ms", "rmssd_ms", "pnn20_pct", "pnn50_pct", "sdsd_ms",
    "total_steps", "cadence_spm", "mean_accel_mag", "accel_variance", "peak_accel_mag",
    "stress_score", "stress_level", "sleep_state", "sleep_confidence",
]


def fmt1(value: float) -> str:
    return f"{value:.1f}"


def fmt2(value: float) -> str:
    return f"{value:.2f}"


def fmt4(value: float) -> str:
    return f"{value:.4f}"


def feature_row(fv: FeatureVector) -> list[str]:
    """Render one feature vector in ``FEATURE_COLUMNS`` order."""
    p = fv.pulse
    s = p.spectral
    a = fv.accel
    accel_part = (
        [a.x_mean, a.y_mean, a.z_mean, a.x_var, a.y_var, a.z_var, a.mag_mean, a.mag_var, a.mag_peak]
        if a is not None
        else [0.0] * 9
    )
    return [
        str(fv.timestamp),
        fv.sequence_id,
        *(fmt4(v) for v in (
            p.mean_hr_bpm, p.hr_std_bpm, p.hr_min_bpm, p.hr_max_bpm, p.hr_range_bpm,
            p.hr_slope_bpm_per_s, p.nn_quality_ratio,
            p.sdnn_ms, p.rmssd_ms, p.pnn50_pct, p.mean_nn_ms, p.cv_nn,
            s.lf_power_ms2, s.hf_power_ms2, s.lf_hf_ratio, s.total_power_ms2,
            p.spo2_mean_pct, p.spo2_min_pct, p.spo2_std_pct,
        )),
        *(fmt4(v) for v in accel_part),
        fmt4(fv.skin_temp.object_mean),
        fmt4(fv.skin_temp.object_delta),
        fmt4(fv.skin_temp.ambient_mean),
        str(fv.total_steps),
        fmt4(fv.cadence_spm),
        fv.activity_label,
        fv.fatigue_level,
        str(fv.rpe_raw) if fv.rpe_raw is not None and fv.rpe_raw >= 0 else "",
    ]


def sleep_stress_row(fv: FeatureVector) -> list[str] | None:
    """Render the HRV/fusion summary of *fv*; None when no stress was scored."""
    hrv, stress, sleep = fv.hrv, fv.stress, fv.sleep
    if hrv is None or stress is None or sleep is None:
        return None
    a = fv.accel
    accel_part = (
        [str(a.total_steps), fmt1(a.cadence_spm), fmt2(a.mag_mean), fmt4(a.mag_var), fmt2(a.mag_peak)]
        if a is not None
        else [""] * 5
    )
    return [
        str(fv.timestamp),
        hrv.sequence_id,
        fmt1(hrv.duration_seconds),
        str(hrv.total_samples),
        str(hrv.peaks_detected),
        str(hrv.nn_intervals_used),
        fmt1(hrv.mean_hr_bpm),
        fmt2(hrv.sdnn_ms),
        fmt2(hrv.rmssd_ms),
        fmt1(hrv.pnn20_pct),
        fmt1(hrv.pnn50_pct),
        fmt2(hrv.sdsd_ms),
        *accel_part,
        str(stress.score),
        stress.level.value,
        sleep.state.value,
        fmt2(sleep.confidence),
    ]


class _CsvAppender:
    """Append rows to one CSV file, writing the header first if needed."""

    def __init__(self, header: list[str]) -> None:
        self.header = header
        self._lock = threading.Lock()

    def append(self, path: Path, row: list[str]) -> None:
        with self._lock:
            path.parent.mkdir(parents=True, exist_ok=True)
            needs_header = not path.exists() or path.stat().st_size == 0
            with open(path, "a", newline="") as f:
                writer = csv.writer(f, lineterminator="\n")
                if needs_header:
                    writer.writerow(self.header)
                writer.writerow(row)


class FeatureCsvWriter:
    """Sink appending every feature vector to ``features.csv``."""

    def __init__(self, output_dir: str | Path) -> None:
        self.path = Path(output_dir) / FEATURES_FILE
        self._out = _CsvAppender(FEATURE_COLUMNS)

    def __call__(self, fv: FeatureVector) -> None:
        self._out.append(self.path, feature_row(fv))
        logger.debug("Feature vector %s written to %s", fv.sequence_id, self.path)


class SleepStressCsvWriter:
    """Sink appending HRV, stress and sleep to ``SleepStress_data_<date>.csv``.

    Vectors without a stress score (fewer than two valid NN intervals) are
    skipped.
    """

    def __init__(self, output_dir: str | Path) -> None:
        self.output_dir = Path(output_dir)
        self._out = _CsvAppender(SLEEP_STRESS_COLUMNS)

    def path_for(self, day: datetime.date | None = None) -> Path:
        day = day or datetime.date.today()
        return self.output_dir / f"SleepStress_data_{day.isoformat()}.csv"

    def __call__(self, fv: FeatureVector) -> None:
        row = sleep_stress_row(fv)
        if row is None:
            logger.debug("No stress/sleep result for %s, nothing to write", fv.sequence_id)
            return
        path = self.path_for()
        self._out.append(path, row)
        logger.debug(
            "Sleep/stress written for %s: stress=%d(%s) sleep=%s(%.2f)",
            fv.sequence_id, fv.stress.score, fv.stress.level.value,
            fv.sleep.state.value, fv.sleep.confidence,
        )
