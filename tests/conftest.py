"""Shared test fixtures."""

from pathlib import Path

import pytest

from segcut.export.context import ExportContext
from segcut.models.config import ExportSettings
from segcut.models.export import FileStreams
from segcut.models.media import FileMeta, ProbeFormat, ProbeStream
from segcut.utils.ffmpeg import FFmpegResult


def make_video_stream(index: int = 0, **overrides) -> ProbeStream:
    fields = dict(
        index=index,
        codec_type="video",
        codec_name="h264",
        time_base="1/12800",
        r_frame_rate="25/1",
        avg_frame_rate="25/1",
        bit_rate="2000000",
        disposition={"default": 1, "attached_pic": 0},
    )
    fields.update(overrides)
    return ProbeStream(**fields)


def make_audio_stream(index: int = 1, **overrides) -> ProbeStream:
    fields = dict(
        index=index,
        codec_type="audio",
        codec_name="aac",
        time_base="1/48000",
        bit_rate="128000",
        disposition={"default": 1},
    )
    fields.update(overrides)
    return ProbeStream(**fields)


def make_meta(streams: list[ProbeStream] | None = None, duration: str = "60.000000") -> FileMeta:
    return FileMeta(
        streams=streams if streams is not None else [make_video_stream(), make_audio_stream()],
        format=ProbeFormat(
            format_name="mov,mp4,m4a,3gp,3g2,mj2",
            duration=duration,
            bit_rate="2200000",
        ),
    )


def fake_ffmpeg(args, *, duration=None, on_progress=None, stdin_text=None):
    """Stands in for run_ffmpeg_with_progress: writes the output file."""
    Path(args[-1]).write_bytes(b"\x00")
    if on_progress:
        on_progress(0.5)
        on_progress(1.0)
    return FFmpegResult(cmd=["ffmpeg", *args], returncode=0, output="")


def fake_ffmpeg_concat(args, *, concat_txt, total_duration, on_progress=None):
    return fake_ffmpeg(args, duration=total_duration, on_progress=on_progress, stdin_text=concat_txt)


@pytest.fixture
def source_file(tmp_path: Path) -> Path:
    path = tmp_path / "src.mp4"
    path.write_bytes(b"\x00")
    return path


@pytest.fixture
def meta() -> FileMeta:
    return make_meta()


@pytest.fixture
def ctx(source_file: Path, meta: FileMeta) -> ExportContext:
    return ExportContext(
        file_path=source_file,
        settings=ExportSettings(),
        out_format="mp4",
        all_files_meta={str(source_file): meta},
        video_duration=60.0,
        detected_fps=25.0,
    )


@pytest.fixture
def all_streams(source_file: Path) -> list[FileStreams]:
    return [FileStreams(path=str(source_file), stream_ids=[0, 1])]
