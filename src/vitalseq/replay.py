"""Replay captured batch logs through the processor for offline analysis.

A capture is a ``.jsonl`` file with one batch payload per line (see
:mod:`vitalseq.decoders.batch`). Lines that are not valid JSON or not batch
payloads are skipped.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from vitalseq import config
from vitalseq.analytics.summary import FeatureVector
from vitalseq.decoders.batch import BatchDecoder, SensorBatch, ingest_batch
from vitalseq.exceptions import BatchFormatError, InvalidBatchError
from vitalseq.export import FeatureCsvWriter, SleepStressCsvWriter
from vitalseq.exertion import ExertionRating
from vitalseq.orchestrator import PPG_SAMPLE_RATE_HZ, SequenceProcessor
from vitalseq.analytics.activity import ACCEL_SAMPLE_RATE_HZ

logger = config.get_logger()

# One worker keeps the shared sleep classifier fed in completion order
REPLAY_WORKERS = 1


def read_batches(capture_path: str | Path, verbose: bool = False) -> Iterator[SensorBatch]:
    """Yield every decodable batch of a capture file, in file order."""
    path = Path(capture_path)
    with open(path) as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue

            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                if verbose:
                    logger.info("[line %d] Invalid JSON, skipping", line_num)
                continue

            if not isinstance(entry, dict) or not BatchDecoder.can_decode(entry):
                if verbose:
                    logger.info("[line %d] Not a batch payload, skipping", line_num)
                continue

            try:
                yield BatchDecoder.decode(entry)
            except BatchFormatError:
                if verbose:
                    logger.info("[line %d] Malformed batch, skipping", line_num)
                continue


@dataclass
class SequenceSummary:
    """Per-sequence counts gathered by :func:`inspect_file`."""

    sequence_id: str
    total_batches: int
    batches: set[int] = field(default_factory=set)
    pulse_samples: int = 0
    accel_samples: int = 0
    skin_temp_samples: int = 0
    activity_type: str = ""

    @property
    def complete(self) -> bool:
        return len(self.batches) >= self.total_batches

    def __repr__(self) -> str:
        status = "complete" if self.complete else "incomplete"
        return (
            f"{self.sequence_id}: {len(self.batches)}/{self.total_batches} batches ({status}), "
            f"ppg={self.pulse_samples}, accel={self.accel_samples}, "
            f"temp={self.skin_temp_samples}"
            + (f", activity={self.activity_type}" if self.activity_type else "")
        )


def inspect_file(capture_path: str | Path) -> dict[str, SequenceSummary]:
    """Count batches and samples per sequence without processing anything."""
    summaries: dict[str, SequenceSummary] = {}
    for batch in read_batches(capture_path):
        summary = summaries.setdefault(
            batch.sequence_id,
            SequenceSummary(batch.sequence_id, batch.total_batches),
        )
        summary.batches.add(batch.batch_number)
        summary.pulse_samples += len(batch.pulse)
        summary.accel_samples += len(batch.accel)
        summary.skin_temp_samples += len(batch.skin_temp)
        if batch.activity_type:
            summary.activity_type = batch.activity_type
    return summaries


def replay_file(
    capture_path: str | Path,
    output_dir: str | Path | None = None,
    ppg_sample_rate_hz: float = PPG_SAMPLE_RATE_HZ,
    accel_sample_rate_hz: float = ACCEL_SAMPLE_RATE_HZ,
    rpe: int | None = None,
    max_workers: int = REPLAY_WORKERS,
    verbose: bool = False,
) -> list[FeatureVector]:
    """Replay a ``.jsonl`` capture through a :class:`SequenceProcessor`.

    Args:
        capture_path: Path to the capture file.
        output_dir: If given, write ``features.csv`` and the sleep/stress CSV here.
        ppg_sample_rate_hz: Nominal pulse sampling rate of the capture.
        accel_sample_rate_hz: Nominal accelerometer sampling rate.
        rpe: Exertion rating to apply to every sequence.
        max_workers: Worker threads. With more than one, sequences reach the
            shared sleep classifier in whatever order workers finish, so sleep
            results are no longer repeatable between runs.
        verbose: Log skipped lines.

    Returns:
        Feature vectors, sorted by sequence id.

    Raises:
        FileNotFoundError: If the capture does not exist.
    """
    path = Path(capture_path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {capture_path}")

    vectors: list[FeatureVector] = []
    sinks = [vectors.append]
    if output_dir is not None:
        sinks += [FeatureCsvWriter(output_dir), SleepStressCsvWriter(output_dir)]

    exertion = ExertionRating()
    if rpe is not None:
        exertion.update(rpe)

    logger.info("Replaying %s", path.name)
    total = 0
    with SequenceProcessor(
        sinks=sinks,
        exertion=exertion,
        ppg_sample_rate_hz=ppg_sample_rate_hz,
        accel_sample_rate_hz=accel_sample_rate_hz,
        max_workers=max_workers,
    ) as proc:
        for batch in read_batches(path, verbose=verbose):
            total += 1
            try:
                ingest_batch(proc.accumulator, batch)
            except InvalidBatchError:
                continue

    logger.info("Summary: %d batches, %d feature vectors", total, len(vectors))
    return sorted(vectors, key=lambda fv: fv.sequence_id)
