"""Media facts read from FFprobe JSON output."""

from __future__ import annotations

from pydantic import BaseModel, Field


def _parse_number(value: str | int | float | None) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None  # ffprobe reports "N/A" for unknown values


def _parse_rational(value: str | None) -> float | None:
    if not value or "/" not in value:
        return _parse_number(value)
    num, den = value.split("/", 1)
    num_f, den_f = _parse_number(num), _parse_number(den)
    if not num_f or not den_f:
        return None
    return num_f / den_f


class ProbeStream(BaseModel):
    """A single stream as reported by ffprobe -show_streams."""

    index: int
    codec_type: str = ""  # video | audio | subtitle | data | attachment
    codec_name: str | None = None
    time_base: str | None = None
    r_frame_rate: str | None = None
    avg_frame_rate: str | None = None
    bit_rate: str | None = None
    disposition: dict[str, int] = Field(default_factory=dict)
    tags: dict[str, str] = Field(default_factory=dict)

    @property
    def is_real_video(self) -> bool:
        """Video stream that is not cover art."""
        return self.codec_type == "video" and not self.disposition.get("attached_pic")

    @property
    def bitrate(self) -> int | None:
        value = _parse_number(self.bit_rate)
        return int(value) if value else None

    @property
    def timebase(self) -> int | None:
        """Denominator of the stream time base, e.g. 90000 for 1/90000."""
        if not self.time_base or "/" not in self.time_base:
            return None
        value = _parse_number(self.time_base.split("/", 1)[1])
        return int(value) if value else None

    @property
    def fps(self) -> float | None:
        return _parse_rational(self.avg_frame_rate) or _parse_rational(self.r_frame_rate)


class ProbeFormat(BaseModel):
    """Container-level facts from ffprobe -show_format."""

    format_name: str = ""
    duration: str | None = None
    bit_rate: str | None = None
    tags: dict[str, str] = Field(default_factory=dict)


class FileMeta(BaseModel):
    """Everything the exporter needs to know about one input file."""

    streams: list[ProbeStream] = Field(default_factory=list)
    format: ProbeFormat = Field(default_factory=ProbeFormat)

    @property
    def duration(self) -> float | None:
        return _parse_number(self.format.duration)

    @property
    def bitrate(self) -> int | None:
        value = _parse_number(self.format.bit_rate)
        return int(value) if value else None

    @property
    def detected_fps(self) -> float | None:
        video = next((s for s in self.streams if s.is_real_video), None)
        return video.fps if video else None

    def get_stream(self, index: int) -> ProbeStream | None:
        return next((s for s in self.streams if s.index == index), None)
