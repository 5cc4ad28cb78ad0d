"""Export pipeline: per-segment orchestration and batch sequencing."""
