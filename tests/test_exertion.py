"""Tests for vitalseq.exertion -- single-slot exertion rating."""

import pytest

from vitalseq.exertion import ExertionRating


class TestExertionRating:
    def test_unset_by_default(self):
        slot = ExertionRating()
        snap = slot.snapshot()
        assert snap.value is None
        assert snap.updated_at == 0

    def test_last_write_wins(self):
        slot = ExertionRating()
        slot.update(3, at=1000)
        slot.update(7, at=2000)
        assert slot.value == 7
        assert slot.snapshot().updated_at == 2000

    def test_out_of_range(self):
        slot = ExertionRating()
        with pytest.raises(ValueError):
            slot.update(11)
        with pytest.raises(ValueError):
            slot.update(-1)

    def test_reset(self):
        slot = ExertionRating()
        slot.update(5)
        slot.reset()
        assert slot.value is None
        assert slot.snapshot().updated_at > 0
