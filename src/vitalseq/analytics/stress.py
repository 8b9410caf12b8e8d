"""Composite stress score (0-100) from time-domain HRV.

Three channels are normalised linearly onto [0, 1] and clamped:

- RMSSD over [20, 60] ms, inverted (low RMSSD -> high stress), weight 0.50
- SDNN over [30, 80] ms, inverted, weight 0.25
- mean HR over [60, 100] bpm, direct, weight 0.25

The weighted sum is truncated to an integer and bucketed at 25/50/75
(upper bound inclusive).
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum


class StressLevel(str, Enum):
    """Coarse stress bucket."""

    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    VERY_HIGH = "VERY_HIGH"


RMSSD_LOW = 20.0
RMSSD_HIGH = 60.0
SDNN_LOW = 30.0
SDNN_HIGH = 80.0
HR_LOW = 60.0
HR_HIGH = 100.0

RMSSD_WEIGHT = 0.50
SDNN_WEIGHT = 0.25
HR_WEIGHT = 0.25

# Upper bounds (inclusive) of each level
LEVEL_CUTS = (
    (25, StressLevel.LOW),
    (50, StressLevel.MODERATE),
    (75, StressLevel.HIGH),
)


@dataclass(frozen=True)
class StressResult:
    """Stress score with the inputs it was derived from."""

    score: int  # 0 relaxed .. 100 highly stressed
    level: StressLevel
    rmssd: float
    sdnn: float
    hr: float
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))

    def __repr__(self) -> str:
        return f"StressResult({self.score} {self.level.value})"


def normalize(value: float, low: float, high: float) -> float:
    """Map *value* linearly from [low, high] onto [0, 1], clamped."""
    return max(0.0, min(1.0, (value - low) / (high - low)))


def stress_level(score: int) -> StressLevel:
    """Bucket a 0-100 score."""
    for upper, level in LEVEL_CUTS:
        if score <= upper:
            return level
    return StressLevel.VERY_HIGH


def compute_stress(rmssd: float, sdnn: float, mean_hr: float) -> StressResult:
    """Score stress from RMSSD (ms), SDNN (ms) and mean heart rate (bpm)."""
    rmssd_score = (1.0 - normalize(rmssd, RMSSD_LOW, RMSSD_HIGH)) * 100.0
    sdnn_score = (1.0 - normalize(sdnn, SDNN_LOW, SDNN_HIGH)) * 100.0
    hr_score = normalize(mean_hr, HR_LOW, HR_HIGH) * 100.0

    composite = rmssd_score * RMSSD_WEIGHT + sdnn_score * SDNN_WEIGHT + hr_score * HR_WEIGHT
    score = max(0, min(100, int(composite)))

    return StressResult(
        score=score,
        level=stress_level(score),
        rmssd=rmssd,
        sdnn=sdnn,
        hr=mean_hr,
    )
