"""Tests for vitalseq.orchestrator -- sequence processing and lifecycle."""

import threading

import pytest

from vitalseq.accumulator import CompletedSequence
from vitalseq.analytics.sleep import SleepDetector, SleepState
from vitalseq.analytics.spectral import SpectralPower
from vitalseq.decoders.samples import Channel
from vitalseq.exertion import ExertionRating
from vitalseq.orchestrator import SequenceProcessor
from tests.conftest import (
    make_accel_samples,
    make_pulse_samples,
    make_sequence,
    make_skin_temp,
    make_still_accel,
)


@pytest.fixture
def processor():
    proc = SequenceProcessor(spectral=None)
    yield proc
    proc.close()


class TestProcessSequence:
    def test_pulse_only(self, processor):
        fv = processor.process_sequence(make_sequence(bpm=72.0))
        assert fv is not None
        assert fv.sequence_id == "seq-1"
        assert fv.pulse.mean_hr_bpm == pytest.approx(72.0, abs=5.0)
        assert fv.accel is None
        assert fv.hrv.nn_intervals_used > 10
        assert fv.stress is not None
        assert fv.sleep.state == SleepState.UNKNOWN

    def test_with_accel_and_temp(self, processor):
        seq = make_sequence(
            accel=make_accel_samples(),
            skin_temp=make_skin_temp([33.0, 34.0]),
            activity_type="walking",
        )
        fv = processor.process_sequence(seq)
        assert fv.accel is not None
        assert fv.total_steps > 0
        assert fv.skin_temp.object_delta == pytest.approx(1.0)
        assert fv.activity_label == "walking"
        assert fv.sleep.state == SleepState.AWAKE

    def test_too_few_pulse_samples_dropped(self):
        dropped = []
        with SequenceProcessor(on_dropped=lambda sid, reason: dropped.append((sid, reason))) as proc:
            seq = CompletedSequence("short", 1, pulse=tuple(make_pulse_samples(seconds=0.3)))
            assert proc.process_sequence(seq) is None
        assert dropped == [("short", "too few pulse samples")]

    def test_exertion_read_at_assembly(self):
        rating = ExertionRating()
        with SequenceProcessor(exertion=rating, spectral=None) as proc:
            assert proc.process_sequence(make_sequence()).rpe_raw is None
            rating.update(9)
            fv = proc.process_sequence(make_sequence())
        assert fv.rpe_raw == 9
        assert fv.fatigue_level == "3"

    def test_spectral_collaborator_used(self):
        power = SpectralPower(lf_power_ms2=10.0, hf_power_ms2=5.0, lf_hf_ratio=2.0, total_power_ms2=15.0)
        with SequenceProcessor(spectral=lambda nn: power) as proc:
            fv = proc.process_sequence(make_sequence())
        assert fv.pulse.spectral == power

    def test_shared_sleep_detector(self):
        detector = SleepDetector()
        with SequenceProcessor(sleep_detector=detector, spectral=None) as proc:
            for i in range(5):
                proc.process_sequence(make_sequence(f"s{i}", accel=make_still_accel(n=750)))
        assert detector.history == [SleepState.DEEP_SLEEP] * 5


class TestWorkerPipeline:
    def test_batches_to_sinks(self):
        received = []
        done = threading.Event()

        def sink(fv):
            received.append(fv)
            done.set()

        with SequenceProcessor(sinks=[sink], spectral=None) as proc:
            samples = make_pulse_samples(seconds=20)
            half = len(samples) // 2
            proc.accumulator.add_samples("live", Channel.PULSE, 2, samples[half:])
            proc.accumulator.mark_batch_received("live", 2, 2)
            proc.accumulator.add_samples("live", Channel.PULSE, 2, samples[:half])
            proc.accumulator.mark_batch_received("live", 1, 2)
            assert done.wait(10)
        assert [fv.sequence_id for fv in received] == ["live"]
        assert proc.processed == 1

    def test_failing_sink_does_not_stop_others(self):
        received = []

        def bad_sink(fv):
            raise RuntimeError("disk full")

        with SequenceProcessor(sinks=[bad_sink, received.append], spectral=None) as proc:
            proc.accumulator.add_samples("x", Channel.PULSE, 1, make_pulse_samples(seconds=10))
            proc.accumulator.mark_batch_received("x", 1, 1)
        assert len(received) == 1

    def test_processing_error_reported(self, monkeypatch):
        dropped = []
        proc = SequenceProcessor(on_dropped=lambda sid, reason: dropped.append((sid, reason)))

        def boom(seq):
            raise ValueError("bad input")

        monkeypatch.setattr(proc, "process_sequence", boom)
        proc.accumulator.add_samples("err", Channel.PULSE, 1, make_pulse_samples(seconds=10))
        proc.accumulator.mark_batch_received("err", 1, 1)
        proc.close()
        assert dropped == [("err", "processing failed")]


class TestLifecycle:
    def test_close_reports_incomplete(self):
        dropped = []
        proc = SequenceProcessor(on_dropped=lambda sid, reason: dropped.append((sid, reason)))
        proc.accumulator.add_samples("partial", Channel.PULSE, 3, make_pulse_samples(seconds=5))
        proc.accumulator.mark_batch_received("partial", 1, 3)
        assert proc.close() == ["partial"]
        assert dropped == [("partial", "incomplete")]
        assert proc.closed

    def test_close_twice(self):
        proc = SequenceProcessor()
        proc.close()
        assert proc.close() == []

    def test_ready_after_close_dropped(self):
        dropped = []
        proc = SequenceProcessor(on_dropped=lambda sid, reason: dropped.append((sid, reason)))
        proc.close()
        proc.accumulator.add_samples("late", Channel.PULSE, 1, make_pulse_samples(seconds=5))
        proc.accumulator.mark_batch_received("late", 1, 1)
        assert dropped == [("late", "processor closed")]

    def test_cancel_pending(self):
        dropped = []
        started = threading.Event()
        gate = threading.Event()

        def slow_sink(fv):
            started.set()
            gate.wait(5)

        proc = SequenceProcessor(
            max_workers=1,
            sinks=[slow_sink],
            spectral=None,
            on_dropped=lambda sid, reason: dropped.append((sid, reason)),
        )
        for sid in ("a", "b", "c"):
            proc.accumulator.add_samples(sid, Channel.PULSE, 1, make_pulse_samples(seconds=5))
            proc.accumulator.mark_batch_received(sid, 1, 1)
        assert started.wait(5)

        threading.Timer(0.2, gate.set).start()
        cancelled = proc.close(cancel_pending=True)
        assert cancelled == ["b", "c"]
        assert dropped == [("b", "cancelled"), ("c", "cancelled")]
