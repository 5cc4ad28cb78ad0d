"""Export data model: segments, stream selection, per-stream overrides."""

from __future__ import annotations

from collections.abc import Iterator
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

# Disposition value meaning "remove all disposition flags from this stream"
DELETE_DISPOSITION_VALUE = "clear"

BitstreamFilter = Literal["h264_mp4toannexb", "hevc_mp4toannexb"]


class Segment(BaseModel):
    """A half-open time range [start, end) in the source timeline, in seconds."""

    start: float
    end: float
    name: str | None = None

    @property
    def duration(self) -> float:
        return self.end - self.start


class Chapter(BaseModel):
    """A chapter marker, in seconds."""

    start: float
    end: float
    name: str | None = None


class FileStreams(BaseModel):
    """Streams to keep from one input file, in output order."""

    path: str
    stream_ids: list[int] = Field(default_factory=list)


class StreamParams(BaseModel):
    """User overrides for one stream of one input file."""

    disposition: str | None = None  # e.g. "default", "forced", or "clear"
    bitstream_filter: BitstreamFilter | None = None
    custom_tags: dict[str, str] | None = None


class ParamsByStreamId(BaseModel):
    """Stream overrides keyed by file path, then input stream index.

    An absent file or stream means "no override".
    """

    files: dict[str, dict[int, StreamParams]] = Field(default_factory=dict)

    def get(self, path: str, stream_id: int) -> StreamParams | None:
        return self.files.get(path, {}).get(stream_id)

    def set(self, path: str, stream_id: int, params: StreamParams) -> None:
        self.files.setdefault(path, {})[stream_id] = params

    def items(self) -> Iterator[tuple[str, int, StreamParams]]:
        for path, streams in self.files.items():
            for stream_id, params in streams.items():
                yield path, stream_id, params


class SmartCutParams(BaseModel):
    """Keyframe facts for the start of one segment."""

    lossless_cut_from: float
    segment_needs_smart_cut: bool
    video_codec: str | None = None  # encoder name, e.g. libx264
    video_bitrate: int | None = None  # bits per second
    video_stream_index: int | None = None
    video_timebase: int | None = None


class CutStatus(str, Enum):
    DONE = "done"
    SKIPPED = "skipped"


class ConcatResult(BaseModel):
    """Outcome of a concatenation."""

    status: CutStatus = CutStatus.DONE
    excluded_stream_ids: list[int] = Field(default_factory=list)

    @property
    def have_excluded_streams(self) -> bool:
        return len(self.excluded_stream_ids) > 0


class DeleteOutcome(BaseModel):
    """Result of deleting one file in a best-effort batch."""

    path: str
    ok: bool
    error: str | None = None


class SegmentRoute(str, Enum):
    DIRECT = "direct"  # lossless cut only
    TOO_NARROW = "too_narrow"  # whole segment sits before the next keyframe
    HYBRID = "hybrid"  # encode boundary, copy remainder, concat


class SegmentPlan(BaseModel):
    """How one segment will be exported."""

    route: SegmentRoute
    cut_from: float
    lossless_cut_from: float | None = None
    encode_cut_to: float | None = None
