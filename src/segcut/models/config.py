"""Export settings."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

AvoidNegativeTs = Literal["make_zero", "auto", "make_non_negative", "disabled"]


class ExportSettings(BaseModel):
    """Settings shared by every operation of one export run."""

    enable_overwrite_output: bool = False
    need_smart_cut: bool = False
    keyframe_cut: bool = True  # seek before input (fast) instead of after (accurate)
    avoid_negative_ts: AvoidNegativeTs | None = "make_zero"
    # None disables copying the file modification time to outputs
    treat_input_file_modified_time_as_start: bool | None = True
    treat_output_file_modified_time_as_start: bool | None = True
    output_playback_rate: float = Field(default=1.0, gt=0.0, le=100.0)
    cut_from_adjustment_frames: int = Field(default=0, ge=-30, le=30)
    smart_cut_custom_bitrate: int | None = Field(default=None, gt=0)  # kbps
    shortest_flag: bool = False
    ffmpeg_experimental: bool = False
    preserve_mov_data: bool = False
    mov_fast_start: bool = True
    preserve_metadata_on_merge: bool = False
    auto_delete_merged_segments: bool = True
    keyframe_tolerance: float = Field(default=0.01, ge=0.0, le=1.0)
    keyframe_search_windows: list[float] = Field(default_factory=lambda: [10.0, 60.0])
