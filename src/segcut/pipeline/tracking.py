"""Progress aggregation across sub-steps and segments."""

from __future__ import annotations

from segcut.utils.ffmpeg import ProgressCallback

DIRECT_WEIGHTS = {"cut": 1.0}
TOO_NARROW_WEIGHTS = {"encode": 1.0}
# Copy and encode share the first half; the merge is the second half
HYBRID_WEIGHTS = {"copy": 0.25, "encode": 0.25, "concat": 0.5}

# Highest value reported before a segment has actually finished
PROGRESS_CEILING = 0.999


def combine_progress(weights: dict[str, float], progresses: dict[str, float]) -> float:
    """Weighted mean of sub-step fractions. Unknown steps are ignored."""
    total_weight = sum(weights.values())
    if total_weight <= 0:
        return 0.0
    done = sum(
        weight * min(max(progresses.get(step, 0.0), 0.0), 1.0)
        for step, weight in weights.items()
    )
    return done / total_weight


class SegmentProgress:
    """One segment's progress, folded from its sub-steps.

    Never decreases, and reaches 1.0 only through complete().
    """

    def __init__(self, weights: dict[str, float], on_progress: ProgressCallback | None = None):
        self.weights = weights
        self.on_progress = on_progress
        self.progresses: dict[str, float] = {}
        self.value = 0.0

    def update(self, step: str, fraction: float) -> None:
        if step not in self.weights:
            raise KeyError(f"Unknown progress step: {step}")
        self.progresses[step] = max(self.progresses.get(step, 0.0), fraction)
        combined = min(combine_progress(self.weights, self.progresses), PROGRESS_CEILING)
        self._report(max(self.value, combined))

    def step(self, step: str) -> ProgressCallback:
        """Callback reporting the fraction of one sub-step."""
        return lambda fraction: self.update(step, fraction)

    def complete(self) -> None:
        self._report(1.0)

    def _report(self, value: float) -> None:
        self.value = value
        if self.on_progress:
            self.on_progress(value)


class BatchProgress:
    """Overall progress of a batch: the mean of its segments' progress."""

    def __init__(self, segment_count: int, on_progress: ProgressCallback | None = None):
        self.segment_count = segment_count
        self.on_progress = on_progress
        self.segment_progresses: dict[int, float] = {}

    @property
    def value(self) -> float:
        if self.segment_count == 0:
            return 1.0
        return sum(self.segment_progresses.values()) / self.segment_count

    def update(self, index: int, fraction: float) -> None:
        self.segment_progresses[index] = fraction
        if self.on_progress:
            self.on_progress(self.value)

    def segment(self, index: int) -> ProgressCallback:
        return lambda fraction: self.update(index, fraction)
