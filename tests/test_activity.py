"""Tests for vitalseq.analytics.activity -- acceleration statistics and steps."""

import pytest

from vitalseq.analytics.activity import cadence, count_steps, process_accel
from vitalseq.decoders.samples import AccelSample
from tests.conftest import make_accel_samples, make_still_accel


class TestCadence:
    def test_steps_per_minute(self):
        assert cadence(60, 30.0) == pytest.approx(120.0)

    def test_zero_duration(self):
        assert cadence(5, 0.0) == 0.0


class TestCountSteps:
    def test_too_short(self):
        assert count_steps([9.8] * 9) == 0

    def test_still_wrist_has_no_steps(self):
        assert count_steps([9.81] * 250) == 0


class TestProcessAccel:
    def test_too_few_samples(self):
        assert process_accel(make_still_accel(n=9)) is None

    def test_walking(self):
        result = process_accel(make_accel_samples(step_hz=2.0, seconds=30))
        assert result is not None
        assert result.sample_count == 750
        assert result.duration_seconds == pytest.approx(29.96)
        assert 54 <= result.total_steps <= 64
        assert 108.0 <= result.cadence_spm <= 128.0

    def test_per_axis_statistics(self):
        result = process_accel(make_accel_samples(step_hz=2.0, seconds=30, amplitude=2.0))
        assert result.x_mean == pytest.approx(0.1)
        assert result.y_mean == pytest.approx(0.2)
        assert result.z_mean == pytest.approx(9.81, abs=0.01)
        assert result.x_var == pytest.approx(0.0)
        # variance of a sine is amplitude^2 / 2
        assert result.z_var == pytest.approx(2.0, rel=0.02)
        assert result.mag_peak == pytest.approx(11.81, abs=0.01)

    def test_still(self):
        result = process_accel(make_still_accel())
        assert result.total_steps == 0
        assert result.cadence_spm == 0.0
        assert result.mag_mean == pytest.approx(9.81)
        assert result.mag_var == pytest.approx(0.0)

    def test_zero_duration_window(self):
        samples = [AccelSample(timestamp=1000, x=0.0, y=0.0, z=9.81 + (i % 2)) for i in range(12)]
        result = process_accel(samples)
        assert result.duration_seconds == 0.0
        assert result.cadence_spm == 0.0
