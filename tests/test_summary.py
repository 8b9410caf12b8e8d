"""Tests for vitalseq.analytics.summary -- feature vector assembly."""

import json

import pytest

from vitalseq.analytics.activity import process_accel
from vitalseq.analytics.pulse import PulseFeatures
from vitalseq.analytics.summary import (
    FeatureVector,
    SkinTempFeatures,
    build_feature_vector,
    fatigue_bucket,
    skin_temp_features,
)
from tests.conftest import make_accel_samples, make_skin_temp


class TestFatigueBucket:
    @pytest.mark.parametrize("rating,bucket", [
        (0, "0"), (2, "0"),
        (3, "1"), (4, "1"),
        (5, "2"), (7, "2"),
        (8, "3"), (10, "3"),
    ])
    def test_buckets(self, rating, bucket):
        assert fatigue_bucket(rating) == bucket

    def test_unset(self):
        assert fatigue_bucket(None) == ""
        assert fatigue_bucket(-1) == ""


class TestSkinTemp:
    def test_empty(self):
        assert skin_temp_features([]) == SkinTempFeatures()

    def test_mean_delta_ambient(self):
        result = skin_temp_features(make_skin_temp([33.0, 33.5, 34.0], ambient=22.0))
        assert result.object_mean == pytest.approx(33.5)
        assert result.object_delta == pytest.approx(1.0)
        assert result.ambient_mean == pytest.approx(22.0)


class TestFeatureVector:
    def test_build_with_rating(self):
        fv = build_feature_vector("s1", 123, PulseFeatures(mean_hr_bpm=70.0), rpe=6, activity_label="run")
        assert fv.fatigue_level == "2"
        assert fv.rpe_raw == 6
        assert fv.activity_label == "run"
        assert fv.skin_temp == SkinTempFeatures()

    def test_without_accel(self):
        fv = build_feature_vector("s1", 123, PulseFeatures())
        assert fv.accel is None
        assert fv.total_steps == 0
        assert fv.cadence_spm == 0.0
        assert fv.fatigue_level == ""

    def test_steps_from_accel(self):
        accel = process_accel(make_accel_samples())
        fv = build_feature_vector("s1", 123, PulseFeatures(), accel=accel)
        assert fv.total_steps == accel.total_steps
        assert fv.cadence_spm == accel.cadence_spm

    def test_to_json(self):
        fv = build_feature_vector("s1", 123, PulseFeatures(mean_hr_bpm=70.0))
        data = json.loads(fv.to_json())
        assert data["sequence_id"] == "s1"
        assert data["pulse"]["mean_hr_bpm"] == 70.0
        assert data["pulse"]["spectral"]["lf_power_ms2"] == 0.0

    def test_repr(self):
        fv = FeatureVector(timestamp=0, sequence_id="abc")
        assert "abc" in repr(fv)
