"""Tests for vitalseq.analytics.sleep -- stateful sleep-state classifier."""

import threading

import pytest

from vitalseq.analytics.sleep import (
    SleepDetector,
    SleepState,
    accel_sleep_state,
    combine_states,
    hr_sleep_state,
)


class TestCandidates:
    @pytest.mark.parametrize("variance,state", [
        (0.0005, SleepState.DEEP_SLEEP),
        (0.005, SleepState.LIGHT_SLEEP),
        (0.01, SleepState.AWAKE),
        (1.0, SleepState.AWAKE),
    ])
    def test_accel(self, variance, state):
        assert accel_sleep_state(variance) == state

    @pytest.mark.parametrize("hr,state", [
        (80.0, SleepState.AWAKE),
        (74.0, SleepState.AWAKE),  # 7.5% drop
        (72.0, SleepState.LIGHT_SLEEP),
        (67.0, SleepState.DEEP_SLEEP),
    ])
    def test_hr(self, hr, state):
        assert hr_sleep_state(hr, baseline_hr=80.0) == state


class TestCombine:
    def test_awake_motion_wins(self):
        assert combine_states(SleepState.AWAKE, SleepState.DEEP_SLEEP) == SleepState.AWAKE

    def test_hr_deepens(self):
        assert combine_states(SleepState.LIGHT_SLEEP, SleepState.DEEP_SLEEP) == SleepState.DEEP_SLEEP

    def test_hr_never_lightens(self):
        assert combine_states(SleepState.DEEP_SLEEP, SleepState.AWAKE) == SleepState.DEEP_SLEEP

    def test_no_hr_state(self):
        assert combine_states(SleepState.LIGHT_SLEEP, None) == SleepState.LIGHT_SLEEP


class TestSleepDetector:
    def test_five_still_updates_deep_with_full_confidence(self):
        det = SleepDetector()
        result = None
        for _ in range(5):
            result = det.update(accel_variance=0.0001, hr=60.0)
        assert result.state == SleepState.DEEP_SLEEP
        assert result.confidence == 1.0

    def test_baseline_after_three_readings(self):
        det = SleepDetector()
        det.update(1.0, 70.0)
        det.update(1.0, 80.0)
        assert det.baseline_hr is None
        det.update(1.0, 90.0)
        assert det.baseline_hr == pytest.approx(80.0)

    def test_hr_drop_deepens_light_sleep(self):
        det = SleepDetector()
        for _ in range(3):
            det.update(0.005, 80.0)
        result = det.update(0.005, 60.0)
        assert det.history[-1] == SleepState.DEEP_SLEEP
        # history: LIGHT x3, DEEP -> majority LIGHT at 3/4
        assert result.state == SleepState.LIGHT_SLEEP
        assert result.confidence == pytest.approx(0.75)

    def test_history_bounded(self):
        det = SleepDetector()
        for _ in range(4):
            det.update(1.0, 70.0)
        for _ in range(5):
            det.update(0.0001, 70.0)
        assert det.history == [SleepState.DEEP_SLEEP] * 5

    def test_majority_tie_goes_to_first_seen(self):
        det = SleepDetector(buffer_size=4)
        det.update(1.0, 70.0)
        det.update(1.0, 70.0)
        det.update(0.0001, 70.0)
        result = det.update(0.0001, 70.0)
        assert result.state == SleepState.AWAKE
        assert result.confidence == 0.5

    def test_without_accel_is_unknown(self):
        det = SleepDetector()
        det.update(0.0001, 60.0)
        result = det.update_without_accel(55.0)
        assert result.state == SleepState.UNKNOWN
        assert result.confidence == 0.0
        assert result.accel_variance == -1.0
        assert det.history == [SleepState.DEEP_SLEEP]

    def test_reset_clears_history_and_baseline(self):
        det = SleepDetector()
        for _ in range(3):
            det.update(0.0001, 60.0)
        det.reset()
        assert det.history == []
        assert det.baseline_hr is None

    def test_concurrent_updates(self):
        det = SleepDetector()

        def worker():
            for _ in range(200):
                det.update(0.0001, 60.0)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert det.history == [SleepState.DEEP_SLEEP] * 5
        assert det.baseline_hr == pytest.approx(60.0)
