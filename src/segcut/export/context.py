"""Per-run export context shared by every cutting step."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from segcut.models.config import ExportSettings
from segcut.models.export import ParamsByStreamId
from segcut.models.media import FileMeta
from segcut.utils.ffmpeg import get_ff_command_line
from segcut.utils.progress import log_command


@dataclass
class ExportContext:
    """The main input file, its facts, and the user's metadata decisions.

    Read-only for the duration of an export, apart from the command log.
    """

    file_path: Path
    settings: ExportSettings = field(default_factory=ExportSettings)
    out_format: str | None = None
    # Probe results keyed by input path, as used in FileStreams.path
    all_files_meta: dict[str, FileMeta] = field(default_factory=dict)
    custom_tags_by_file: dict[str, dict[str, str]] = field(default_factory=dict)
    params_by_stream_id: ParamsByStreamId = field(default_factory=ParamsByStreamId)
    rotation: int | None = None
    video_duration: float | None = None
    detected_fps: float | None = None
    command_log: list[str] = field(default_factory=list)

    @property
    def file_key(self) -> str:
        return str(self.file_path)

    def append_command_log(self, args: list[str], *, stdin_text: str | None = None) -> str:
        """Record an ffmpeg invocation. Concat lists are shown piped in via echo."""
        command_line = get_ff_command_line("ffmpeg", args)
        if stdin_text is not None:
            escaped = stdin_text.replace("\n", "\\n")
            command_line = f'echo -e "{escaped}" | {command_line}'
        self.command_log.append(command_line)
        log_command(command_line)
        return command_line
