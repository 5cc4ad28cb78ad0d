"""Tests for progress aggregation."""

import pytest

from segcut.pipeline.tracking import (
    DIRECT_WEIGHTS,
    HYBRID_WEIGHTS,
    TOO_NARROW_WEIGHTS,
    BatchProgress,
    SegmentProgress,
    combine_progress,
)


class TestCombineProgress:
    def test_hybrid_weights(self):
        assert combine_progress(HYBRID_WEIGHTS, {"copy": 1.0, "encode": 1.0}) == pytest.approx(0.5)
        assert combine_progress(HYBRID_WEIGHTS, {"copy": 1.0, "encode": 1.0, "concat": 0.5}) == pytest.approx(0.75)

    def test_single_step_tables(self):
        assert combine_progress(DIRECT_WEIGHTS, {"cut": 0.3}) == pytest.approx(0.3)
        assert combine_progress(TOO_NARROW_WEIGHTS, {}) == 0.0

    def test_fractions_are_clamped(self):
        assert combine_progress(DIRECT_WEIGHTS, {"cut": 1.7}) == 1.0
        assert combine_progress(DIRECT_WEIGHTS, {"cut": -1.0}) == 0.0


class TestSegmentProgress:
    def test_never_decreases(self):
        values: list[float] = []
        progress = SegmentProgress(HYBRID_WEIGHTS, values.append)
        progress.update("copy", 0.8)
        progress.update("copy", 0.2)
        assert values == [pytest.approx(0.2), pytest.approx(0.2)]

    def test_capped_until_complete(self):
        values: list[float] = []
        progress = SegmentProgress(DIRECT_WEIGHTS, values.append)
        progress.step("cut")(1.0)
        assert values[-1] < 1.0
        progress.complete()
        assert values[-1] == 1.0

    def test_unknown_step(self):
        progress = SegmentProgress(DIRECT_WEIGHTS)
        with pytest.raises(KeyError):
            progress.update("encode", 0.5)

    def test_without_callback(self):
        progress = SegmentProgress(TOO_NARROW_WEIGHTS)
        progress.update("encode", 0.5)
        assert progress.value == pytest.approx(0.5)


class TestBatchProgress:
    def test_mean_of_segments(self):
        values: list[float] = []
        batch = BatchProgress(4, values.append)
        batch.segment(0)(1.0)
        batch.segment(1)(0.5)
        assert values == [0.25, 0.375]

    def test_empty_batch(self):
        assert BatchProgress(0).value == 1.0
