"""Batch export: every segment of a job, then the optional merge."""

from __future__ import annotations

from pathlib import Path

from segcut.export.chapters import chapters_metadata_file, create_chapters_from_segments
from segcut.export.concat import concat_files
from segcut.export.context import ExportContext
from segcut.export.cut import should_skip_existing_file
from segcut.models.export import Chapter, ConcatResult, CutStatus, FileStreams, Segment
from segcut.pipeline.segment import export_segment
from segcut.pipeline.tracking import BatchProgress
from segcut.utils.ffmpeg import ProgressCallback, log_output, run_ffmpeg_with_progress
from segcut.utils.ffprobe import read_file_meta
from segcut.utils.io import try_delete_files
from segcut.utils.paths import get_out_dir, get_out_file_extension, get_suffixed_out_path
from segcut.utils.progress import log_step, log_success
from segcut.utils.timestamps import transfer_timestamps


def cut_multiple(
    ctx: ExportContext,
    *,
    output_dir: Path,
    custom_out_dir: Path | None,
    segments: list[Segment],
    out_seg_file_names: list[str],
    copy_file_streams: list[FileStreams],
    chapters: list[Chapter] | None = None,
    on_progress: ProgressCallback | None = None,
) -> list[Path]:
    """Export segments one at a time, returning their paths in segment order.

    The first failure aborts the batch; segments already exported stay on
    disk. The chapters side-file lives for the whole batch.
    """
    if len(out_seg_file_names) != len(segments):
        raise ValueError(
            f"Got {len(out_seg_file_names)} file name(s) for {len(segments)} segment(s)"
        )

    progress = BatchProgress(len(segments), on_progress)
    out_files: list[Path] = []

    with chapters_metadata_file(output_dir, chapters) as chapters_path:
        for i, (segment, file_name) in enumerate(zip(segments, out_seg_file_names)):
            log_step("Export", f"Segment {i + 1}/{len(segments)}: {file_name}")
            out_path = export_segment(
                ctx,
                segment=segment,
                index=i,
                out_seg_file_name=file_name,
                output_dir=output_dir,
                custom_out_dir=custom_out_dir,
                copy_file_streams=copy_file_streams,
                chapters_path=chapters_path,
                chapters=chapters,
                on_progress=progress.segment(i),
            )
            out_files.append(out_path)

    log_success(f"Exported {len(out_files)} segment(s)")
    return out_files


def auto_concat_cut_segments(
    ctx: ExportContext,
    *,
    custom_out_dir: Path | None,
    segment_paths: list[Path],
    merged_out_file_path: Path,
    chapter_names: list[str | None] | None = None,
    on_progress: ProgressCallback | None = None,
) -> ConcatResult:
    """Merge exported segments into one file, one chapter per segment if named.

    With auto_delete_merged_segments the source segments are removed
    afterwards, best-effort.
    """
    if not segment_paths:
        raise ValueError("Nothing to merge")

    settings = ctx.settings
    if should_skip_existing_file(
        merged_out_file_path, enable_overwrite_output=settings.enable_overwrite_output
    ):
        return ConcatResult(status=CutStatus.SKIPPED)

    chapters = create_chapters_from_segments(segment_paths, chapter_names)

    # All segments share the first one's stream layout
    streams = read_file_meta(segment_paths[0]).streams

    result = concat_files(
        ctx,
        paths=segment_paths,
        out_path=merged_out_file_path,
        metadata_from_path=segment_paths[0],
        include_all_streams=True,
        streams=streams,
        out_dir=get_out_dir(custom_out_dir, ctx.file_path),
        chapters=chapters,
        on_progress=on_progress,
    )

    if settings.auto_delete_merged_segments:
        try_delete_files(segment_paths)

    log_success(f"Merged {len(segment_paths)} segment(s) into {merged_out_file_path.name}")
    return result


def fix_invalid_duration(
    ctx: ExportContext,
    *,
    file_format: str | None,
    custom_out_dir: Path | None = None,
    on_progress: ProgressCallback | None = None,
) -> Path:
    """Remux the input as-is, rewriting its container duration."""
    ext = get_out_file_extension(out_format=file_format, file_path=ctx.file_path)
    out_path = get_suffixed_out_path(custom_out_dir, ctx.file_path, f"reformatted{ext}")

    log_step("Remux", f"{ctx.file_path.name} -> {out_path.name}")

    ffmpeg_args = [
        "-i", str(ctx.file_path),
        "-map_metadata", "0",
        "-map", "0",
        "-ignore_unknown",
        "-c", "copy",
        *(["-f", file_format] if file_format else []),
        "-y", str(out_path),
    ]
    ctx.append_command_log(ffmpeg_args)

    result = run_ffmpeg_with_progress(
        ffmpeg_args,
        duration=ctx.video_duration,
        on_progress=on_progress,
    )
    log_output(result)

    transfer_timestamps(
        in_path=ctx.file_path,
        out_path=out_path,
        treat_output_file_modified_time_as_start=ctx.settings.treat_output_file_modified_time_as_start,
    )
    return out_path
