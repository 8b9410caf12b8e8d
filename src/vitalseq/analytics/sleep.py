"""Stateful sleep-state classifier fusing motion and heart rate.

Primary signal is accelerometer variance (low motion -> sleep). Once a
baseline heart rate exists (mean of the first three readings since the last
reset), a drop below that baseline can deepen, but never lighten, a
motion-derived sleep state. Each combined state goes into a five-slot
history; the reported state is the majority of that history and confidence
is the share of the history agreeing with it.

Without acceleration data the classifier reports UNKNOWN with zero
confidence rather than guessing from heart rate alone.
"""

from __future__ import annotations

import threading
import time
from collections import Counter, deque
from dataclasses import dataclass, field
from enum import Enum


class SleepState(str, Enum):
    """Sleep state label."""

    AWAKE = "AWAKE"
    LIGHT_SLEEP = "LIGHT_SLEEP"
    DEEP_SLEEP = "DEEP_SLEEP"
    UNKNOWN = "UNKNOWN"


# Sleep depth used when combining candidates
DEPTH = {
    SleepState.AWAKE: 0,
    SleepState.LIGHT_SLEEP: 1,
    SleepState.DEEP_SLEEP: 2,
}

BUFFER_SIZE = 5

# Accel variance thresholds (m/s²)²
DEEP_SLEEP_VARIANCE = 0.001
LIGHT_SLEEP_VARIANCE = 0.01

BASELINE_READINGS = 3
DEEP_SLEEP_HR_DROP = 0.15  # 15% below baseline
LIGHT_SLEEP_HR_DROP = 0.08


@dataclass(frozen=True)
class SleepResult:
    """One classifier output."""

    state: SleepState
    confidence: float  # 0-1
    hr: float
    accel_variance: float  # -1 when no acceleration data was available
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))

    def __repr__(self) -> str:
        return f"SleepResult({self.state.value}, conf={self.confidence:.2f})"


def accel_sleep_state(accel_variance: float) -> SleepState:
    """Candidate state from motion alone."""
    if accel_variance < DEEP_SLEEP_VARIANCE:
        return SleepState.DEEP_SLEEP
    if accel_variance < LIGHT_SLEEP_VARIANCE:
        return SleepState.LIGHT_SLEEP
    return SleepState.AWAKE


def hr_sleep_state(hr: float, baseline_hr: float) -> SleepState:
    """Candidate state from the heart-rate drop against *baseline_hr*."""
    ratio = hr / baseline_hr
    if ratio < 1.0 - DEEP_SLEEP_HR_DROP:
        return SleepState.DEEP_SLEEP
    if ratio < 1.0 - LIGHT_SLEEP_HR_DROP:
        return SleepState.LIGHT_SLEEP
    return SleepState.AWAKE


def combine_states(accel_state: SleepState, hr_state: SleepState | None) -> SleepState:
    """Motion is primary; heart rate may only deepen a non-awake state."""
    if hr_state is not None and accel_state != SleepState.AWAKE:
        return hr_state if DEPTH[hr_state] > DEPTH[accel_state] else accel_state
    return accel_state


class SleepDetector:
    """Rolling sleep-state classifier.

    Safe to share between worker threads: every update and reset runs
    under one lock, and reset clears history and baseline together.
    """

    def __init__(self, buffer_size: int = BUFFER_SIZE) -> None:
        self._lock = threading.Lock()
        self._recent: deque[SleepState] = deque(maxlen=buffer_size)
        self._hr_readings: list[float] = []
        self._baseline_hr: float | None = None

    @property
    def baseline_hr(self) -> float | None:
        return self._baseline_hr

    @property
    def history(self) -> list[SleepState]:
        with self._lock:
            return list(self._recent)

    def update(self, accel_variance: float, hr: float, rmssd: float = 0.0) -> SleepResult:
        """Classify one window.

        Args:
            accel_variance: Variance of the acceleration magnitude.
            hr: Mean heart rate of the window (bpm).
            rmssd: RMSSD of the window (ms); carried for callers, unused
                by the current rule set.
        """
        with self._lock:
            if self._baseline_hr is None:
                self._hr_readings.append(hr)
                if len(self._hr_readings) >= BASELINE_READINGS:
                    self._baseline_hr = sum(self._hr_readings) / len(self._hr_readings)

            accel_state = accel_sleep_state(accel_variance)
            hr_state = None
            if self._baseline_hr is not None and self._baseline_hr > 0:
                hr_state = hr_sleep_state(hr, self._baseline_hr)

            self._recent.append(combine_states(accel_state, hr_state))
            state = self._majority()
            agreement = sum(1 for s in self._recent if s == state)
            confidence = agreement / len(self._recent)

        return SleepResult(
            state=state,
            confidence=confidence,
            hr=hr,
            accel_variance=accel_variance,
        )

    def update_without_accel(self, hr: float, rmssd: float = 0.0) -> SleepResult:
        """No motion data: report UNKNOWN, leave history and baseline untouched."""
        return SleepResult(
            state=SleepState.UNKNOWN,
            confidence=0.0,
            hr=hr,
            accel_variance=-1.0,
        )

    def reset(self) -> None:
        """Forget history and baseline together."""
        with self._lock:
            self._recent.clear()
            self._hr_readings.clear()
            self._baseline_hr = None

    def _majority(self) -> SleepState:
        if not self._recent:
            return SleepState.UNKNOWN
        # ties go to the state seen first in the buffer
        return Counter(self._recent).most_common(1)[0][0]
