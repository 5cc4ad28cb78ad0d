"""Merge already-exported files with the concat demuxer."""

from __future__ import annotations

from pathlib import Path

from segcut.export.args import (
    get_chapters_input_args,
    get_container_flags,
    get_experimental_args,
    get_map_streams_args,
    get_stream_ids_to_copy,
    get_video_timescale_args,
)
from segcut.export.chapters import chapters_metadata_file, name_chapters
from segcut.export.context import ExportContext
from segcut.export.cut import should_skip_existing_file
from segcut.models.export import Chapter, ConcatResult, CutStatus, FileStreams
from segcut.models.media import FileMeta, ProbeStream
from segcut.utils.ffmpeg import ProgressCallback, log_output, run_ffmpeg_concat
from segcut.utils.ffprobe import read_file_meta
from segcut.utils.paths import escape_concat_path, guess_out_format
from segcut.utils.progress import log_step, log_warning
from segcut.utils.timestamps import transfer_timestamps

# The concat list is read from stdin; "file,pipe,fd" lets it reference local files
CONCAT_INPUT_ARGS = ["-f", "concat", "-safe", "0", "-protocol_whitelist", "file,pipe,fd", "-i", "-"]


def build_concat_list(paths: list[Path]) -> str:
    """One ``file '<absolute path>'`` line per part."""
    return "\n".join(f"file {escape_concat_path(p)}" for p in paths)


def concat_files(
    ctx: ExportContext,
    *,
    paths: list[Path],
    out_path: Path,
    metadata_from_path: Path,
    include_all_streams: bool,
    streams: list[ProbeStream],
    out_dir: Path,
    chapters: list[Chapter] | None = None,
    video_timebase: int | None = None,
    on_progress: ProgressCallback | None = None,
) -> ConcatResult:
    """Join *paths* in order into out_path without re-encoding.

    Global metadata and chapters come from explicit extra inputs, never from
    input 0: the concat demuxer carries no usable metadata. Streams missing
    from any part are dropped and reported in the result.
    """
    settings = ctx.settings
    if should_skip_existing_file(out_path, enable_overwrite_output=settings.enable_overwrite_output):
        return ConcatResult(status=CutStatus.SKIPPED)

    log_step("Merge", f"Merging {len(paths)} file(s) into {out_path.name}")

    # Sequential on purpose, to keep the load on ffprobe down
    parts_meta = [read_file_meta(p) for p in paths]
    total_duration = sum(meta.duration or 0.0 for meta in parts_meta)

    out_format = ctx.out_format or guess_out_format(out_path)
    named_chapters = name_chapters(chapters) if chapters else None

    with chapters_metadata_file(out_dir, named_chapters) as chapters_path:
        inputs: list[list[str]] = [CONCAT_INPUT_ARGS]

        metadata_source_index = None
        if settings.preserve_metadata_on_merge:
            inputs.append(["-i", str(metadata_from_path)])
            metadata_source_index = len(inputs) - 1

        chapters_input_index = None
        if chapters_path:
            inputs.append(get_chapters_input_args(chapters_path))
            chapters_input_index = len(inputs) - 1

        stream_ids_to_copy, excluded_stream_ids = get_stream_ids_to_copy(
            streams,
            include_all_streams=include_all_streams,
            parts_streams=[meta.streams for meta in parts_meta],
        )
        source_key = str(metadata_from_path)
        map_streams_args = get_map_streams_args(
            copy_file_streams=[FileStreams(path=source_key, stream_ids=stream_ids_to_copy)],
            all_files_meta={source_key: FileMeta(streams=streams)},
            out_format=out_format,
            manually_copy_disposition=True,
        )

        ffmpeg_args = [
            *(arg for input_args in inputs for arg in input_args),
            *map_streams_args,
            *(["-map_metadata", str(metadata_source_index)] if metadata_source_index is not None else []),
            *(["-map_chapters", str(chapters_input_index)] if chapters_input_index is not None else []),
            *get_container_flags(
                out_format,
                preserve_mov_data=settings.preserve_mov_data,
                mov_fast_start=settings.mov_fast_start,
            ),
            "-ignore_unknown",
            *get_experimental_args(settings.ffmpeg_experimental),
            *get_video_timescale_args(video_timebase),
            *(["-f", out_format] if out_format else []),
            "-y", str(out_path),
        ]

        concat_txt = build_concat_list(paths)
        ctx.append_command_log(ffmpeg_args, stdin_text=concat_txt)

        result = run_ffmpeg_concat(
            ffmpeg_args,
            concat_txt=concat_txt,
            total_duration=total_duration,
            on_progress=on_progress,
        )
        log_output(result)

        transfer_timestamps(
            in_path=metadata_from_path,
            out_path=out_path,
            treat_output_file_modified_time_as_start=settings.treat_output_file_modified_time_as_start,
        )

    if excluded_stream_ids:
        log_warning(
            f"Streams {excluded_stream_ids} are not present in every part "
            f"and were left out of {out_path.name}"
        )
    return ConcatResult(status=CutStatus.DONE, excluded_stream_ids=excluded_stream_ids)
