"""Signal processing and metric derivation for wearable sensor sequences.

Modules:
    filters   -- Butterworth biquad design and zero-phase filtering
    peaks     -- Rolling-mean region-of-interest peak detection
    pulse     -- Heart rate, HRV and per-sequence pulse features
    spo2      -- SpO2 from red/IR ratio-of-ratios (window and per-beat)
    spectral  -- LF/HF power of the NN series
    activity  -- Acceleration statistics, steps and cadence
    stress    -- Composite stress score
    sleep     -- Stateful sleep-state classifier
    summary   -- Per-sequence feature vector
"""

from vitalseq.analytics.filters import (
    BiquadCoeffs,
    butterworth_lowpass,
    butterworth_highpass,
    bandpass,
    filtfilt,
)
from vitalseq.analytics.peaks import rolling_mean, detect_peaks, find_peaks
from vitalseq.analytics.pulse import (
    calculate_heart_rate,
    calculate_hrv,
    hrv_from_nn,
    pulse_features,
    HeartRateResult,
    HrvResult,
    PulseFeatures,
)
from vitalseq.analytics.spo2 import estimate_spo2, estimate_spo2_from_ratio, per_beat_spo2, SpO2Result
from vitalseq.analytics.spectral import welch_band_power, SpectralPower
from vitalseq.analytics.activity import process_accel, count_steps, AccelResult
from vitalseq.analytics.stress import compute_stress, StressLevel, StressResult
from vitalseq.analytics.sleep import SleepDetector, SleepState, SleepResult
from vitalseq.analytics.summary import build_feature_vector, fatigue_bucket, FeatureVector

__all__ = [
    # filters
    "BiquadCoeffs",
    "butterworth_lowpass",
    "butterworth_highpass",
    "bandpass",
    "filtfilt",
    # peaks
    "rolling_mean",
    "detect_peaks",
    "find_peaks",
    # pulse
    "calculate_heart_rate",
    "calculate_hrv",
    "hrv_from_nn",
    "pulse_features",
    "HeartRateResult",
    "HrvResult",
    "PulseFeatures",
    # spo2
    "estimate_spo2",
    "estimate_spo2_from_ratio",
    "per_beat_spo2",
    "SpO2Result",
    # spectral
    "welch_band_power",
    "SpectralPower",
    # activity
    "process_accel",
    "count_steps",
    "AccelResult",
    # stress
    "compute_stress",
    "StressLevel",
    "StressResult",
    # sleep
    "SleepDetector",
    "SleepState",
    "SleepResult",
    # summary
    "build_feature_vector",
    "fatigue_bucket",
    "FeatureVector",
]
