"""Shared fixtures and helpers for the vitalseq test suite."""

from __future__ import annotations

import json
import math
from pathlib import Path

import numpy as np
import pytest

from vitalseq.accumulator import CompletedSequence
from vitalseq.decoders.samples import AccelSample, PulseSample, SkinTempSample


# ---------------------------------------------------------------------------
# Synthetic signal helpers
# ---------------------------------------------------------------------------


def sine_wave(
    freq_hz: float,
    seconds: float,
    fs: float,
    amplitude: float = 1.0,
    offset: float = 0.0,
) -> np.ndarray:
    """Pure sinusoid sampled at *fs*."""
    t = np.arange(int(seconds * fs)) / fs
    return offset + amplitude * np.sin(2 * np.pi * freq_hz * t)


def timestamps_ms(n: int, fs: float, start_ms: int = 1_700_000_000_000) -> list[int]:
    """Evenly spaced millisecond timestamps for *n* samples at *fs*."""
    step = 1000.0 / fs
    return [start_ms + int(round(i * step)) for i in range(n)]


def pulse_train(period: int, n: int, width: float = 3.0, first: int = 10) -> np.ndarray:
    """Gaussian bumps every *period* samples, starting at index *first*."""
    idx = np.arange(n)
    out = np.zeros(n)
    for center in range(first, n, period):
        out += np.exp(-0.5 * ((idx - center) / width) ** 2)
    return out


def make_pulse_samples(
    bpm: float = 72.0,
    seconds: float = 30.0,
    fs: float = 25.0,
    amplitude: float = 1000.0,
    ir_dc: float = 0.0,
    red_scale: float = 0.0,
    start_ms: int = 1_700_000_000_000,
) -> list[PulseSample]:
    """Pulse samples with a sinusoidal green channel at *bpm*.

    IR carries ``ir_dc + amplitude * sin``; red is ``red_scale * ir``.
    Both stay zero with the defaults.
    """
    wave = sine_wave(bpm / 60.0, seconds, fs, amplitude)
    ts = timestamps_ms(len(wave), fs, start_ms)
    samples = []
    for t, v in zip(ts, wave):
        ir = ir_dc + v if ir_dc else 0.0
        samples.append(PulseSample(
            timestamp=t,
            green=int(round(v)),
            ir=int(round(ir)),
            red=int(round(red_scale * ir)),
        ))
    return samples


def make_accel_samples(
    step_hz: float = 2.0,
    seconds: float = 30.0,
    fs: float = 25.0,
    amplitude: float = 2.0,
    start_ms: int = 1_700_000_000_000,
) -> list[AccelSample]:
    """Walking-like acceleration: gravity on z plus a vertical oscillation."""
    n = int(seconds * fs)
    ts = timestamps_ms(n, fs, start_ms)
    samples = []
    for i, t in enumerate(ts):
        bounce = amplitude * math.sin(2 * math.pi * step_hz * i / fs)
        samples.append(AccelSample(timestamp=t, x=0.1, y=0.2, z=9.81 + bounce))
    return samples


def make_still_accel(
    n: int = 250,
    fs: float = 25.0,
    start_ms: int = 1_700_000_000_000,
) -> list[AccelSample]:
    """Motionless wrist: constant gravity vector."""
    return [
        AccelSample(timestamp=t, x=0.0, y=0.0, z=9.81)
        for t in timestamps_ms(n, fs, start_ms)
    ]


def make_skin_temp(
    values: list[float],
    ambient: float = 24.0,
    start_ms: int = 1_700_000_000_000,
) -> list[SkinTempSample]:
    return [
        SkinTempSample(timestamp=start_ms + i * 1000, object_temp=v, ambient_temp=ambient)
        for i, v in enumerate(values)
    ]


def make_sequence(
    sequence_id: str = "seq-1",
    bpm: float = 72.0,
    seconds: float = 30.0,
    fs: float = 25.0,
    accel: list[AccelSample] | None = None,
    skin_temp: list[SkinTempSample] | None = None,
    activity_type: str = "",
) -> CompletedSequence:
    return CompletedSequence(
        sequence_id=sequence_id,
        total_batches=1,
        pulse=tuple(make_pulse_samples(bpm=bpm, seconds=seconds, fs=fs)),
        accel=tuple(accel or ()),
        skin_temp=tuple(skin_temp or ()),
        activity_type=activity_type,
    )


# ---------------------------------------------------------------------------
# Batch payload helpers
# ---------------------------------------------------------------------------


def pulse_entry(s: PulseSample) -> dict:
    return {"type": "PPG", "timestamp": s.timestamp, "green": s.green, "ir": s.ir, "red": s.red}


def make_batch_payload(
    sequence_id: str,
    batch_number: int,
    total_batches: int,
    data: list[dict],
    activity_type: str | None = None,
) -> dict:
    meta = {
        "sequence_id": sequence_id,
        "batch_number": batch_number,
        "total_batches": total_batches,
    }
    if activity_type is not None:
        meta["activity_type"] = activity_type
    return {"metadata": meta, "data": data}


def split_into_batches(
    sequence_id: str,
    entries: list[dict],
    total_batches: int,
    activity_type: str | None = None,
) -> list[dict]:
    """Split entries round-robin into *total_batches* payloads (numbered from 1)."""
    return [
        make_batch_payload(
            sequence_id,
            i + 1,
            total_batches,
            entries[i::total_batches],
            activity_type,
        )
        for i in range(total_batches)
    ]


def write_jsonl(path: Path, entries: list[dict]) -> Path:
    """Write a list of dicts as JSONL to the given path."""
    with open(path, "w") as f:
        for entry in entries:
            f.write(json.dumps(entry) + "\n")
    return path


@pytest.fixture
def capture_file(tmp_path: Path) -> Path:
    """Two-sequence capture: one 30 s walk in 3 batches, one 30 s rest in 2."""
    walk = [pulse_entry(s) for s in make_pulse_samples(bpm=90, seconds=30)]
    walk += [
        {"type": "Accelerometer", "timestamp": 1_700_000_000_000 + i * 40,
         "x": 0, "y": 0, "z": 4096 + int(800 * math.sin(2 * math.pi * 2.0 * i / 25))}
        for i in range(750)
    ]
    walk.append({"type": "SkinTemp", "timestamp": 1_700_000_000_000,
                 "object_temp": 33.0, "ambient_temp": 24.0})
    rest = [pulse_entry(s) for s in make_pulse_samples(bpm=60, seconds=30)]

    payloads = split_into_batches("walk", walk, 3, activity_type="walking")
    payloads += split_into_batches("rest", rest, 2)
    return write_jsonl(tmp_path / "capture.jsonl", payloads)
