"""Immutable timestamped sensor samples handed over by the ingestion layer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Channel(str, Enum):
    """Sensor channel a batch of samples belongs to."""

    PULSE = "PPG"
    ACCEL = "Accelerometer"
    SKIN_TEMP = "SkinTemp"


@dataclass(frozen=True)
class PulseSample:
    """One optical pulse reading (all three LED channels)."""

    timestamp: int  # ms
    green: int
    ir: int = 0
    red: int = 0


@dataclass(frozen=True)
class AccelSample:
    """One tri-axis accelerometer reading."""

    timestamp: int  # ms
    x: float  # m/s²
    y: float
    z: float

    @property
    def magnitude(self) -> float:
        return (self.x ** 2 + self.y ** 2 + self.z ** 2) ** 0.5

    def __repr__(self) -> str:
        return f"Accel(t={self.timestamp}, x={self.x:.3f}, y={self.y:.3f}, z={self.z:.3f})"


@dataclass(frozen=True)
class SkinTempSample:
    """One skin-temperature reading."""

    timestamp: int  # ms
    object_temp: float  # °C
    ambient_temp: float  # °C
