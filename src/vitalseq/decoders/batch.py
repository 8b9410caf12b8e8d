"""Decoder for batch payloads sent by the watch.

A batch is a JSON object::

    {
      "metadata": {"sequence_id": "...", "batch_number": 1,
                   "total_batches": 3, "activity_type": "running"},
      "data": [
        {"type": "PPG", "timestamp": 1700000000000, "green": 1234, "ir": 0, "red": 0},
        {"type": "Accelerometer", "timestamp": ..., "x": 12, "y": -40, "z": 4096},
        {"type": "SkinTemp", "timestamp": ..., "object_temp": 33.1, "ambient_temp": 24.0}
      ]
    }

Accelerometer axes arrive as raw ADC counts and are scaled to m/s².
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from typing import Any, TYPE_CHECKING

from vitalseq.decoders.samples import AccelSample, Channel, PulseSample, SkinTempSample
from vitalseq.exceptions import BatchFormatError

if TYPE_CHECKING:
    from vitalseq.accumulator import SequenceBatchAccumulator

# Raw accelerometer ADC counts -> m/s² (±8 g range, 4096 counts per g)
RAW_TO_MS2 = 9.80665 / 4096.0


@dataclass
class SensorBatch:
    """One decoded batch, split by channel."""

    sequence_id: str
    batch_number: int
    total_batches: int
    activity_type: str = ""
    pulse: list[PulseSample] = field(default_factory=list)
    accel: list[AccelSample] = field(default_factory=list)
    skin_temp: list[SkinTempSample] = field(default_factory=list)

    @property
    def point_count(self) -> int:
        return len(self.pulse) + len(self.accel) + len(self.skin_temp)

    def __repr__(self) -> str:
        return (
            f"SensorBatch({self.sequence_id} {self.batch_number}/{self.total_batches}: "
            f"ppg={len(self.pulse)}, accel={len(self.accel)}, temp={len(self.skin_temp)})"
        )


def _float_or_nan(entry: dict[str, Any], key: str) -> float:
    value = entry.get(key)
    if value is None:
        return math.nan
    return float(value)


class BatchDecoder:
    """Decode watch batch payloads into typed samples."""

    SCALE_FACTOR = RAW_TO_MS2

    @staticmethod
    def can_decode(payload: dict[str, Any]) -> bool:
        """Check if this object looks like a batch payload."""
        return isinstance(payload.get("metadata"), dict) and isinstance(
            payload.get("data"), list
        )

    @staticmethod
    def decode(payload: dict[str, Any] | str | bytes, scale: float | None = None) -> SensorBatch:
        """Decode one batch payload.

        Args:
            payload: Parsed JSON object, or its JSON text.
            scale: Override the accelerometer raw-count -> m/s² factor.

        Raises:
            BatchFormatError: If metadata or required fields are missing, or a
                data entry is not an object or carries non-numeric values.
        """
        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload)
            except json.JSONDecodeError as e:
                raise BatchFormatError(f"Batch payload is not valid JSON: {e}") from e

        if not isinstance(payload, dict) or not BatchDecoder.can_decode(payload):
            raise BatchFormatError("Batch payload needs a 'metadata' object and a 'data' list")

        if scale is None:
            scale = BatchDecoder.SCALE_FACTOR

        meta = payload["metadata"]
        try:
            batch = SensorBatch(
                sequence_id=str(meta["sequence_id"]),
                batch_number=int(meta["batch_number"]),
                total_batches=int(meta["total_batches"]),
                activity_type=str(meta.get("activity_type") or ""),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise BatchFormatError(f"Batch metadata incomplete: {e!r}") from e

        for entry in payload["data"]:
            if not isinstance(entry, dict):
                raise BatchFormatError(f"{batch.sequence_id}: data entry is not an object: {entry!r}")
            kind = entry.get("type")
            try:
                ts = int(entry["timestamp"])
            except (KeyError, TypeError, ValueError) as e:
                raise BatchFormatError(
                    f"{batch.sequence_id}: entry without timestamp: {entry!r}"
                ) from e

            try:
                _decode_entry(batch, kind, ts, entry, scale)
            except (TypeError, ValueError) as e:
                raise BatchFormatError(
                    f"{batch.sequence_id}: bad {kind} entry {entry!r}: {e}"
                ) from e

        return batch


def _decode_entry(
    batch: SensorBatch, kind: Any, ts: int, entry: dict[str, Any], scale: float
) -> None:
    """Append one typed sample for *entry* to *batch*; unknown kinds are ignored."""
    if kind == Channel.PULSE.value:
        batch.pulse.append(PulseSample(
            timestamp=ts,
            green=int(entry.get("green", 0)),
            ir=int(entry.get("ir", 0)),
            red=int(entry.get("red", 0)),
        ))
    elif kind == Channel.ACCEL.value:
        batch.accel.append(AccelSample(
            timestamp=ts,
            x=float(entry.get("x", 0.0)) * scale,
            y=float(entry.get("y", 0.0)) * scale,
            z=float(entry.get("z", 0.0)) * scale,
        ))
    elif kind == Channel.SKIN_TEMP.value:
        obj = _float_or_nan(entry, "object_temp")
        amb = _float_or_nan(entry, "ambient_temp")
        if not math.isnan(obj) and not math.isnan(amb):
            batch.skin_temp.append(SkinTempSample(ts, obj, amb))


def ingest_batch(accumulator: SequenceBatchAccumulator, batch: SensorBatch) -> None:
    """Hand a decoded batch to the accumulator, then mark it received."""
    if batch.pulse:
        accumulator.add_samples(batch.sequence_id, Channel.PULSE, batch.total_batches, batch.pulse)
    if batch.accel:
        accumulator.add_samples(batch.sequence_id, Channel.ACCEL, batch.total_batches, batch.accel)
    if batch.skin_temp:
        accumulator.add_samples(
            batch.sequence_id, Channel.SKIN_TEMP, batch.total_batches, batch.skin_temp
        )
    if batch.activity_type:
        accumulator.set_activity_type(batch.sequence_id, batch.activity_type)
    accumulator.mark_batch_received(batch.sequence_id, batch.batch_number, batch.total_batches)
