"""Per-sequence feature vector.

Pulls the pulse, acceleration and skin-temperature sub-results of one
sequence into a single :class:`FeatureVector`, the unit handed to export
and broadcast sinks. The fusion outputs (HRV, stress, sleep) ride along but
are not part of the fixed export columns.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Sequence

import numpy as np

from vitalseq.analytics.activity import AccelResult
from vitalseq.analytics.pulse import HrvResult, PulseFeatures
from vitalseq.analytics.sleep import SleepResult
from vitalseq.analytics.stress import StressResult
from vitalseq.decoders.samples import SkinTempSample

# Exertion rating (0-10) -> fatigue bucket, upper bounds inclusive
FATIGUE_BUCKETS = (
    (2, "0"),
    (4, "1"),
    (7, "2"),
    (10, "3"),
)


def fatigue_bucket(rating: int | None) -> str:
    """Coarse fatigue bucket for an exertion rating; empty when unset."""
    if rating is None or rating < 0:
        return ""
    for upper, bucket in FATIGUE_BUCKETS:
        if rating <= upper:
            return bucket
    return FATIGUE_BUCKETS[-1][1]


@dataclass(frozen=True)
class SkinTempFeatures:
    """Skin-temperature sub-record (zeros when no readings)."""

    object_mean: float = 0.0
    object_delta: float = 0.0  # last - first object temperature
    ambient_mean: float = 0.0


def skin_temp_features(samples: Sequence[SkinTempSample]) -> SkinTempFeatures:
    """Summarise timestamp-sorted skin-temperature readings."""
    if not samples:
        return SkinTempFeatures()
    obj = np.asarray([s.object_temp for s in samples], dtype=np.float64)
    amb = np.asarray([s.ambient_temp for s in samples], dtype=np.float64)
    return SkinTempFeatures(
        object_mean=float(np.mean(obj)),
        object_delta=float(obj[-1] - obj[0]),
        ambient_mean=float(np.mean(amb)),
    )


@dataclass(frozen=True)
class FeatureVector:
    """Everything derived from one completed sequence."""

    timestamp: int  # wall clock, ms
    sequence_id: str
    pulse: PulseFeatures = field(default_factory=PulseFeatures)
    accel: AccelResult | None = None
    skin_temp: SkinTempFeatures = field(default_factory=SkinTempFeatures)
    activity_label: str = ""
    fatigue_level: str = ""
    rpe_raw: int | None = None

    # fusion outputs
    hrv: HrvResult | None = None
    stress: StressResult | None = None
    sleep: SleepResult | None = None

    @property
    def total_steps(self) -> int:
        return self.accel.total_steps if self.accel is not None else 0

    @property
    def cadence_spm(self) -> float:
        return self.accel.cadence_spm if self.accel is not None else 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dict (JSON-friendly)."""
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def __repr__(self) -> str:
        return (
            f"FeatureVector({self.sequence_id}: "
            f"hr={self.pulse.mean_hr_bpm:.1f}, "
            f"rmssd={self.pulse.rmssd_ms:.1f}, "
            f"steps={self.total_steps}, "
            f"fatigue={self.fatigue_level or '-'})"
        )


def build_feature_vector(
    sequence_id: str,
    timestamp: int,
    pulse: PulseFeatures,
    accel: AccelResult | None = None,
    skin_temp: SkinTempFeatures | None = None,
    activity_label: str = "",
    rpe: int | None = None,
    hrv: HrvResult | None = None,
    stress: StressResult | None = None,
    sleep: SleepResult | None = None,
) -> FeatureVector:
    """Assemble a feature vector from individual sub-results.

    Args:
        sequence_id: Sequence identifier.
        timestamp: Wall-clock assembly time (ms).
        pulse: Pulse sub-record.
        accel: Acceleration result, if enough samples were present.
        skin_temp: Skin-temperature sub-record (zeros if omitted).
        activity_label: Label supplied with the batches.
        rpe: Most recent exertion rating (0-10), or None if unset.
        hrv: Sequence HRV record.
        stress: Stress score.
        sleep: Sleep classifier output.
    """
    return FeatureVector(
        timestamp=timestamp,
        sequence_id=sequence_id,
        pulse=pulse,
        accel=accel,
        skin_temp=skin_temp or SkinTempFeatures(),
        activity_label=activity_label,
        fatigue_level=fatigue_bucket(rpe),
        rpe_raw=rpe,
        hrv=hrv,
        stress=stress,
        sleep=sleep,
    )
