"""Sequence orchestrator: completed sequence in, feature vector out.

The accumulator calls back on the producer thread that delivered the final
batch; :class:`SequenceProcessor` only submits the sequence to a worker pool
there, so sensor callbacks never wait on filtering or HRV math. Each worker
runs the pulse, acceleration and skin-temperature pipelines, fuses stress
and sleep, reads the current exertion rating and hands one
:class:`~vitalseq.analytics.summary.FeatureVector` to every sink.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Iterable

from vitalseq import config
from vitalseq.accumulator import CompletedSequence, SequenceBatchAccumulator
from vitalseq.analytics.activity import ACCEL_SAMPLE_RATE_HZ, process_accel
from vitalseq.analytics.pulse import (
    hrv_from_nn,
    intervals_from_peaks,
    pulse_features,
    pulse_peaks,
    validate_nn_intervals,
)
from vitalseq.analytics.sleep import SleepDetector
from vitalseq.analytics.spectral import SpectralAnalyzer, welch_band_power
from vitalseq.analytics.spo2 import per_beat_spo2
from vitalseq.analytics.stress import compute_stress
from vitalseq.analytics.summary import FeatureVector, build_feature_vector, skin_temp_features
from vitalseq.exertion import ExertionRating

logger = config.get_logger()

PPG_SAMPLE_RATE_HZ = 25.0
MIN_PULSE_SAMPLES = 10
DEFAULT_WORKERS = 2

Sink = Callable[[FeatureVector], None]
DroppedCallback = Callable[[str, str], None]


class SequenceProcessor:
    """Turn completed sequences into feature vectors on a worker pool.

    Args:
        sinks: Callables receiving each feature vector (CSV writers, UI...).
        exertion: Shared exertion-rating slot; a private one if omitted.
        ppg_sample_rate_hz: Nominal pulse sampling rate.
        accel_sample_rate_hz: Nominal accelerometer sampling rate.
        max_workers: Worker threads.
        sleep_detector: Sleep classifier shared across sequences of a session.
            It is updated in the order workers finish, so with more than one
            worker its history follows thread timing, not sequence order.
        spectral: Frequency-domain HRV callable; None leaves LF/HF at zero.
        on_dropped: Called with ``(sequence_id, reason)`` for every sequence
            that does not produce a feature vector.

    Example:
        >>> with SequenceProcessor(sinks=[print]) as proc:
        ...     ingest_batch(proc.accumulator, batch)
    """

    def __init__(
        self,
        sinks: Iterable[Sink] = (),
        exertion: ExertionRating | None = None,
        ppg_sample_rate_hz: float = PPG_SAMPLE_RATE_HZ,
        accel_sample_rate_hz: float = ACCEL_SAMPLE_RATE_HZ,
        max_workers: int = DEFAULT_WORKERS,
        sleep_detector: SleepDetector | None = None,
        spectral: SpectralAnalyzer | None = welch_band_power,
        on_dropped: DroppedCallback | None = None,
    ) -> None:
        self.sinks: list[Sink] = list(sinks)
        self.exertion = exertion or ExertionRating()
        self.ppg_sample_rate_hz = ppg_sample_rate_hz
        self.accel_sample_rate_hz = accel_sample_rate_hz
        self.sleep_detector = sleep_detector or SleepDetector()
        self._spectral = spectral
        self._on_dropped = on_dropped

        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="vitalseq")
        self._inflight: dict[Future, str] = {}
        self._lock = threading.Lock()
        self._closed = False
        self.processed = 0

        self.accumulator = SequenceBatchAccumulator(self._on_sequence_ready)

    # ------------------------------------------------------------------
    # Hand-off
    # ------------------------------------------------------------------

    def _on_sequence_ready(self, seq: CompletedSequence) -> None:
        with self._lock:
            if self._closed:
                closed = True
            else:
                closed = False
                future = self._executor.submit(self._run, seq)
                self._inflight[future] = seq.sequence_id
        if closed:
            logger.warning("Processor closed, dropping ready sequence %s", seq.sequence_id)
            self._report_dropped(seq.sequence_id, "processor closed")
            return
        future.add_done_callback(self._forget)

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._inflight.pop(future, None)

    def _run(self, seq: CompletedSequence) -> None:
        try:
            vector = self.process_sequence(seq)
        except Exception:
            logger.exception("Failed to process sequence %s", seq.sequence_id)
            self._report_dropped(seq.sequence_id, "processing failed")
            return
        if vector is None:
            return
        with self._lock:
            self.processed += 1
        self._emit(vector)

    def _emit(self, vector: FeatureVector) -> None:
        for sink in self.sinks:
            try:
                sink(vector)
            except Exception:
                logger.exception("Sink %r failed for %s", sink, vector.sequence_id)

    def _report_dropped(self, sequence_id: str, reason: str) -> None:
        if self._on_dropped is not None:
            self._on_dropped(sequence_id, reason)

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    def process_sequence(self, seq: CompletedSequence) -> FeatureVector | None:
        """Run every pipeline over one completed sequence.

        Synchronous; workers call it, and tests may call it directly.

        Returns:
            None (after logging and reporting the drop) when the sequence
            has fewer than ``MIN_PULSE_SAMPLES`` pulse samples.
        """
        sid = seq.sequence_id
        logger.debug("Processing sequence %s with %d PPG samples", sid, len(seq.pulse))

        if len(seq.pulse) < MIN_PULSE_SAMPLES:
            logger.warning("Too few PPG samples (%d) in %s, skipping", len(seq.pulse), sid)
            self._report_dropped(sid, "too few pulse samples")
            return None

        green = [s.green for s in seq.pulse]
        timestamps = [s.timestamp for s in seq.pulse]

        _, peaks = pulse_peaks(green, self.ppg_sample_rate_hz)
        nn = validate_nn_intervals(intervals_from_peaks(peaks, timestamps))
        hrv = hrv_from_nn(
            nn,
            sequence_id=sid,
            duration_seconds=(timestamps[-1] - timestamps[0]) / 1000.0,
            total_samples=len(seq.pulse),
            peaks_detected=len(peaks),
        )
        logger.debug("HRV for %s: %r", sid, hrv)

        spectral = self._spectral(nn) if self._spectral is not None and len(nn) >= 2 else None
        spo2 = per_beat_spo2(
            [s.red for s in seq.pulse],
            [s.ir for s in seq.pulse],
            peaks,
            self.ppg_sample_rate_hz,
        )
        pulse = pulse_features(nn, len(peaks), spectral=spectral, spo2=spo2)

        accel = process_accel(seq.accel, self.accel_sample_rate_hz)
        if accel is None:
            logger.debug("Too few accel samples (%d) in %s", len(seq.accel), sid)
        else:
            logger.debug("Accel for %s: %r", sid, accel)

        stress = sleep = None
        if hrv.nn_intervals_used >= 2:
            stress = compute_stress(hrv.rmssd_ms, hrv.sdnn_ms, hrv.mean_hr_bpm)
            if accel is not None:
                sleep = self.sleep_detector.update(accel.mag_var, hrv.mean_hr_bpm, hrv.rmssd_ms)
            else:
                sleep = self.sleep_detector.update_without_accel(hrv.mean_hr_bpm, hrv.rmssd_ms)

        return build_feature_vector(
            sequence_id=sid,
            timestamp=int(time.time() * 1000),
            pulse=pulse,
            accel=accel,
            skin_temp=skin_temp_features(seq.skin_temp),
            activity_label=seq.activity_type,
            rpe=self.exertion.value,
            hrv=hrv,
            stress=stress,
            sleep=sleep,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self, wait: bool = True, cancel_pending: bool = False) -> list[str]:
        """Stop accepting sequences and shut the worker pool down.

        Args:
            wait: Block until running sequences finish.
            cancel_pending: Cancel sequences queued but not yet started.

        Returns:
            Ids of every sequence dropped by the shutdown (cancelled ready
            sequences and incomplete accumulated ones).
        """
        with self._lock:
            if self._closed:
                return []
            self._closed = True
            inflight = list(self._inflight.items())

        dropped: list[str] = []
        if cancel_pending:
            for future, sid in inflight:
                if future.cancel():
                    logger.warning("Cancelled queued sequence %s", sid)
                    self._report_dropped(sid, "cancelled")
                    dropped.append(sid)

        self._executor.shutdown(wait=wait)

        for incomplete in self.accumulator.drain():
            logger.warning(
                "Abandoning incomplete sequence %s (%d/%d batches, %d PPG samples)",
                incomplete.sequence_id,
                incomplete.received_batches,
                incomplete.total_batches,
                incomplete.pulse_samples,
            )
            self._report_dropped(incomplete.sequence_id, "incomplete")
            dropped.append(incomplete.sequence_id)
        return dropped

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> SequenceProcessor:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

