"""Export job file: everything needed to run one export."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

from segcut.models.config import ExportSettings
from segcut.models.export import Chapter, FileStreams, ParamsByStreamId, Segment


class MergeOptions(BaseModel):
    """Merge exported segments into one file after cutting."""

    enabled: bool = False
    file_name: str | None = None  # defaults to <stem>-merged<ext>
    segments_to_chapters: bool = False


class ExportJob(BaseModel):
    """The job file, the single source of truth for one export run."""

    version: str = "1.0"
    input: str
    output_dir: str | None = None  # defaults to the input's directory
    out_format: str | None = None  # ffmpeg muxer name, defaults to the input's
    segments: list[Segment] = Field(default_factory=list)
    out_file_names: list[str] | None = None
    # Empty means every stream of the input file
    copy_file_streams: list[FileStreams] = Field(default_factory=list)
    custom_tags: dict[str, dict[str, str]] = Field(default_factory=dict)
    stream_params: ParamsByStreamId = Field(default_factory=ParamsByStreamId)
    chapters: list[Chapter] | None = None
    rotation: int | None = None
    merge: MergeOptions = Field(default_factory=MergeOptions)
    settings: ExportSettings = Field(default_factory=ExportSettings)

    def input_path(self, job_path: Path) -> Path:
        return (job_path.parent / self.input).resolve()
