"""segcut export: cut every segment of a job file."""

from __future__ import annotations

import time
from pathlib import Path

import click

from segcut.cli.common import build_job_context, load_job, progress_bar
from segcut.export.errors import ExportError
from segcut.pipeline.batch import auto_concat_cut_segments, cut_multiple
from segcut.utils.ffmpeg import FFmpegError
from segcut.utils.paths import default_segment_file_names, get_out_file_extension
from segcut.utils.progress import log_error, log_warning, show_export_summary


@click.command()
@click.option(
    "--job", "-j",
    default="segcut.yaml",
    type=click.Path(),
    help="Path to the export job file",
)
@click.option("--overwrite/--no-overwrite", default=None, help="Overwrite existing outputs")
@click.option("--smart-cut/--no-smart-cut", default=None, help="Re-encode non-keyframe starts")
@click.option("--merge/--no-merge", default=None, help="Merge segments into one file afterwards")
def export_cmd(
    job: str,
    overwrite: bool | None,
    smart_cut: bool | None,
    merge: bool | None,
) -> None:
    """Export the segments of a job file."""
    job_path = Path(job).resolve()
    if not job_path.exists():
        log_error(f"Job file not found: {job_path}")
        raise SystemExit(1)

    start_time = time.time()
    try:
        export_job = load_job(job_path)
        if overwrite is not None:
            export_job.settings.enable_overwrite_output = overwrite
        if smart_cut is not None:
            export_job.settings.need_smart_cut = smart_cut
        if merge is not None:
            export_job.merge.enabled = merge

        if not export_job.segments:
            log_warning("Job has no segments, nothing to export")
            return

        ctx, copy_file_streams = build_job_context(export_job, job_path)
        custom_out_dir = (
            (job_path.parent / export_job.output_dir).resolve() if export_job.output_dir else None
        )
        output_dir = custom_out_dir or ctx.file_path.parent
        output_dir.mkdir(parents=True, exist_ok=True)

        ext = get_out_file_extension(
            out_format=ctx.out_format,
            file_path=ctx.file_path,
            is_custom_format_selected=export_job.out_format is not None,
        )
        out_file_names = export_job.out_file_names or default_segment_file_names(
            ctx.file_path, export_job.segments, ext
        )

        with progress_bar("Exporting") as on_progress:
            out_files = cut_multiple(
                ctx,
                output_dir=output_dir,
                custom_out_dir=custom_out_dir,
                segments=export_job.segments,
                out_seg_file_names=out_file_names,
                copy_file_streams=copy_file_streams,
                chapters=export_job.chapters,
                on_progress=on_progress,
            )

        details = {
            "Input": ctx.file_path.name,
            "Segments": len(out_files),
            "Smart cut": "on" if ctx.settings.need_smart_cut else "off",
            "Output": str(output_dir),
        }

        if export_job.merge.enabled and len(out_files) > 1:
            merged_name = export_job.merge.file_name or f"{ctx.file_path.stem}-merged{ext}"
            chapter_names = (
                [seg.name for seg in export_job.segments]
                if export_job.merge.segments_to_chapters
                else None
            )
            with progress_bar("Merging") as on_progress:
                result = auto_concat_cut_segments(
                    ctx,
                    custom_out_dir=custom_out_dir,
                    segment_paths=out_files,
                    merged_out_file_path=output_dir / merged_name,
                    chapter_names=chapter_names,
                    on_progress=on_progress,
                )
            details["Merged"] = f"{merged_name} ({result.status.value})"
    except (ExportError, FFmpegError, OSError, ValueError) as e:
        log_error(f"Export failed: {e}")
        raise SystemExit(1)

    show_export_summary("Export complete", time.time() - start_time, details)
