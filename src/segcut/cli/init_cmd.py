"""segcut init: scaffold an export job file for one input."""

from __future__ import annotations

import os
from pathlib import Path

import click

from segcut.models.config import ExportSettings
from segcut.models.export import Segment
from segcut.models.job import ExportJob
from segcut.utils.ffmpeg import FFmpegError
from segcut.utils.ffprobe import read_file_meta
from segcut.utils.io import write_yaml
from segcut.utils.progress import log, log_error, log_success


@click.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--segment", "-s", "segments",
    multiple=True,
    nargs=2,
    type=float,
    help="Segment START END in seconds. Repeat for more segments.",
)
@click.option(
    "--names",
    multiple=True,
    help="Segment names (in the same order as --segment)",
)
@click.option("--smart-cut", is_flag=True, help="Enable smart cut for the job")
@click.option("--merge", is_flag=True, help="Merge the segments after export")
@click.option(
    "--output", "-o",
    default="segcut.yaml",
    type=click.Path(),
    help="Where to write the job file",
)
def init_cmd(
    input_file: str,
    segments: tuple[tuple[float, float], ...],
    names: tuple[str, ...],
    smart_cut: bool,
    merge: bool,
    output: str,
) -> None:
    """Write a job file for INPUT_FILE."""
    input_path = Path(input_file).resolve()
    job_path = Path(output).resolve()

    try:
        meta = read_file_meta(input_path)
    except (FFmpegError, OSError) as e:
        log_error(f"Cannot probe {input_path.name}: {e}")
        raise SystemExit(1)

    duration = meta.duration
    if not segments:
        if duration is None:
            log_error(f"{input_path.name} has no known duration, pass --segment")
            raise SystemExit(1)
        segments = ((0.0, duration),)

    job_segments = []
    for i, (start, end) in enumerate(segments):
        if end <= start:
            log_error(f"Segment {i + 1} ends before it starts: {start} {end}")
            raise SystemExit(1)
        name = names[i] if i < len(names) else None
        job_segments.append(Segment(start=start, end=end, name=name))

    job = ExportJob(
        input=os.path.relpath(input_path, job_path.parent),
        segments=job_segments,
        settings=ExportSettings(need_smart_cut=smart_cut),
    )
    job.merge.enabled = merge

    write_yaml(job_path, job.model_dump(mode="json", exclude_none=True))

    for stream in meta.streams:
        log(f"  #{stream.index} {stream.codec_type} {stream.codec_name or '?'}", style="dim")
    log_success(f"Job file: {job_path}")
    log_success(f"Segments: {len(job_segments)}")
    click.echo(f"\nNext: segcut export --job {job_path}")
