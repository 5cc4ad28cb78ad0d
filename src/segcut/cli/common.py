"""Helpers shared by the segcut commands."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn, TimeElapsedColumn

from segcut.export.context import ExportContext
from segcut.models.config import ExportSettings
from segcut.models.export import FileStreams, ParamsByStreamId
from segcut.models.job import ExportJob
from segcut.models.media import FileMeta
from segcut.utils.ffmpeg import ProgressCallback
from segcut.utils.ffprobe import read_file_meta
from segcut.utils.io import read_yaml
from segcut.utils.paths import guess_out_format
from segcut.utils.progress import console, log_step


def load_job(job_path: Path) -> ExportJob:
    return ExportJob.model_validate(read_yaml(job_path))


def _resolve(base_dir: Path, path: str) -> str:
    return str((base_dir / path).resolve())


def build_context(
    file_path: Path,
    *,
    settings: ExportSettings,
    out_format: str | None = None,
    copy_file_streams: list[FileStreams] | None = None,
    custom_tags_by_file: dict[str, dict[str, str]] | None = None,
    params_by_stream_id: ParamsByStreamId | None = None,
    rotation: int | None = None,
) -> tuple[ExportContext, list[FileStreams]]:
    """Probe every input and assemble the export context.

    Without a stream selection every stream of *file_path* is kept.
    Returns the context and the effective stream selection.
    """
    log_step("Probe", file_path.name)
    meta = read_file_meta(file_path)
    file_key = str(file_path)

    if not copy_file_streams:
        copy_file_streams = [
            FileStreams(path=file_key, stream_ids=[s.index for s in meta.streams])
        ]

    all_files_meta: dict[str, FileMeta] = {file_key: meta}
    for fs in copy_file_streams:
        if fs.path not in all_files_meta:
            log_step("Probe", Path(fs.path).name)
            all_files_meta[fs.path] = read_file_meta(fs.path)

    ctx = ExportContext(
        file_path=file_path,
        settings=settings,
        out_format=out_format or guess_out_format(file_path, meta.format.format_name),
        all_files_meta=all_files_meta,
        custom_tags_by_file=custom_tags_by_file or {},
        params_by_stream_id=params_by_stream_id or ParamsByStreamId(),
        rotation=rotation,
        video_duration=meta.duration,
        detected_fps=meta.detected_fps,
    )
    return ctx, copy_file_streams


def build_job_context(job: ExportJob, job_path: Path) -> tuple[ExportContext, list[FileStreams]]:
    """build_context for a job file. Paths in the job are relative to it."""
    base_dir = job_path.parent
    file_path = job.input_path(job_path)

    params_by_stream_id = ParamsByStreamId()
    for path, stream_id, params in job.stream_params.items():
        params_by_stream_id.set(_resolve(base_dir, path), stream_id, params)

    return build_context(
        file_path,
        settings=job.settings,
        out_format=job.out_format,
        copy_file_streams=[
            FileStreams(path=_resolve(base_dir, fs.path), stream_ids=fs.stream_ids)
            for fs in job.copy_file_streams
        ],
        custom_tags_by_file={
            _resolve(base_dir, path): tags for path, tags in job.custom_tags.items()
        },
        params_by_stream_id=params_by_stream_id,
        rotation=job.rotation,
    )


@contextmanager
def progress_bar(description: str) -> Iterator[ProgressCallback]:
    """A rich progress bar on stderr, driven by a 0..1 callback."""
    with Progress(
        TextColumn("[bold cyan]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task(description, total=1.0)
        yield lambda fraction: progress.update(task, completed=fraction)
