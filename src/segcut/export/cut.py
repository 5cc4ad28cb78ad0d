"""Lossless single-range cut of one logical file."""

from __future__ import annotations

from pathlib import Path

from segcut.export.args import (
    filter_copy_file_streams,
    get_avoid_negative_ts_args,
    get_chapters_input_args,
    get_container_flags,
    get_custom_tags_args,
    get_experimental_args,
    get_map_streams_args,
    get_playback_rate_args,
    get_rotation_args,
    get_stream_params_args,
    get_video_timescale_args,
)
from segcut.export.context import ExportContext
from segcut.export.errors import OutputNotWritableError
from segcut.models.export import CutStatus, FileStreams
from segcut.utils.ffmpeg import ProgressCallback, log_output, run_ffmpeg_with_progress
from segcut.utils.io import is_writable, path_exists
from segcut.utils.progress import log, log_step
from segcut.utils.timestamps import transfer_timestamps


def should_skip_existing_file(path: Path, *, enable_overwrite_output: bool) -> bool:
    """True when *path* exists and must not be overwritten.

    An existing but read-only file raises OutputNotWritableError up front;
    ffmpeg would otherwise fail later with a bare "Permission denied".
    """
    if not path_exists(path):
        return False
    if not is_writable(path):
        raise OutputNotWritableError(path)
    if not enable_overwrite_output:
        log(f"[dim]Not overwriting existing file {path}[/dim]", style="")
        return True
    return False


def get_frame_duration(fps: float | None) -> float:
    """Duration of one frame in seconds, 0 when the frame rate is unknown."""
    return 1 / fps if fps else 0.0


def is_cutting_start(cut_from: float | None) -> bool:
    return cut_from is not None and cut_from > 0


def is_cutting_end(cut_to: float | None, duration: float | None) -> bool:
    if cut_to is None:
        return False
    if duration is None or duration <= 0:
        return True
    return cut_to < duration


def lossless_cut_single(
    ctx: ExportContext,
    *,
    cut_from: float | None,
    cut_to: float | None,
    out_path: Path,
    copy_file_streams: list[FileStreams],
    keyframe_cut: bool,
    avoid_negative_ts: str | None,
    chapters_path: Path | None = None,
    video_timebase: int | None = None,
    on_progress: ProgressCallback | None = None,
) -> CutStatus:
    """Stream-copy [cut_from, cut_to) of the selected streams into out_path.

    cut_from=None cuts from the start and cut_to=None cuts to the end. A cut
    at exactly 0 or exactly the file duration emits no trim argument, so the
    file is only remuxed.
    """
    settings = ctx.settings
    out_format = ctx.out_format
    if should_skip_existing_file(out_path, enable_overwrite_output=settings.enable_overwrite_output):
        return CutStatus.SKIPPED

    frame_duration = get_frame_duration(ctx.detected_fps)

    cutting_start = is_cutting_start(cut_from)
    cutting_end = is_cutting_end(cut_to, ctx.video_duration)
    start = cut_from or 0.0
    start_adjusted = max(start + settings.cut_from_adjustment_frames * frame_duration, 0.0)
    end = cut_to if cut_to is not None else ctx.video_duration

    if cutting_start or cutting_end:
        from_desc = f"{start:.3f}s ({start_adjusted:.3f}s adjusted)" if cutting_start else "start"
        to_desc = f"{end:.3f}s" if cutting_end else "end"
        log_step("Cut", f"{out_path.name}: from {from_desc} to {to_desc}")

    cut_duration = None
    if end is not None:
        cut_duration = max(end - start_adjusted, 0.0)
        if ctx.detected_fps:
            cut_duration = max(cut_duration, frame_duration)

    cut_from_args = ["-ss", f"{start_adjusted:.5f}"] if cutting_start else []
    cut_to_args = ["-t", f"{cut_duration:.5f}"] if cutting_end else []

    filtered = filter_copy_file_streams(copy_file_streams)
    input_files_args = [arg for fs in filtered for arg in ("-i", fs.path)]

    if keyframe_cut:
        # Seek before the input: fast, snaps to the previous keyframe
        input_args = [
            *cut_from_args,
            *input_files_args,
            *cut_to_args,
            *get_avoid_negative_ts_args(avoid_negative_ts, cutting_start=cutting_start),
        ]
    else:
        input_args = [*input_files_args, *cut_from_args, *cut_to_args]

    chapters_input_index = len(filtered)

    ffmpeg_args = [
        *get_playback_rate_args(settings.output_playback_rate),
        *input_args,
        *get_chapters_input_args(chapters_path),
        *get_map_streams_args(
            copy_file_streams=filtered,
            all_files_meta=ctx.all_files_meta,
            out_format=out_format,
        ),
        "-map_metadata", "0",
        *(["-map_chapters", str(chapters_input_index)] if chapters_path else []),
        *(["-shortest"] if settings.shortest_flag else []),
        *get_container_flags(
            out_format,
            preserve_mov_data=settings.preserve_mov_data,
            mov_fast_start=settings.mov_fast_start,
        ),
        *get_custom_tags_args(ctx.custom_tags_by_file.get(ctx.file_key)),
        *get_stream_params_args(filtered, ctx.params_by_stream_id),
        "-ignore_unknown",
        *get_experimental_args(settings.ffmpeg_experimental),
        *get_rotation_args(ctx.rotation),
        *get_video_timescale_args(video_timebase),
        *(["-f", out_format] if out_format else []),
        "-y", str(out_path),
    ]

    ctx.append_command_log(ffmpeg_args)
    result = run_ffmpeg_with_progress(ffmpeg_args, duration=cut_duration, on_progress=on_progress)
    log_output(result)

    transfer_timestamps(
        in_path=ctx.file_path,
        out_path=out_path,
        cut_from=start,
        cut_to=end or 0.0,
        duration=ctx.video_duration,
        treat_input_file_modified_time_as_start=settings.treat_input_file_modified_time_as_start,
        treat_output_file_modified_time_as_start=settings.treat_output_file_modified_time_as_start,
    )
    return CutStatus.DONE
