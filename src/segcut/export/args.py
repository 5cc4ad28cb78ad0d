"""FFmpeg argument builders for stream mapping, metadata and container flags.

Everything here is pure. Unknown files or streams contribute no arguments
rather than raising.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from segcut.models.export import DELETE_DISPOSITION_VALUE, FileStreams, ParamsByStreamId
from segcut.models.media import FileMeta, ProbeStream

MOV_FAMILY_FORMATS = frozenset({"mp4", "mov", "ipod", "3gp", "3g2", "psp", "ismv", "f4v"})
MATROSKA_FAMILY_FORMATS = frozenset({"matroska", "webm"})

TEXT_SUBTITLE_CODECS = frozenset({"subrip", "srt", "ass", "ssa", "webvtt", "text"})

# (stream, output_index) -> replacement codec args, or None for the defaults
VideoArgsHook = Callable[[ProbeStream, int], list[str] | None]


def is_mov_family(out_format: str | None) -> bool:
    return out_format in MOV_FAMILY_FORMATS


def is_matroska_family(out_format: str | None) -> bool:
    return out_format in MATROSKA_FAMILY_FORMATS


def get_mov_flags(*, preserve_mov_data: bool, mov_fast_start: bool) -> list[str]:
    flags = []
    if preserve_mov_data:
        flags.append("use_metadata_tags")
    if mov_fast_start:
        flags.append("+faststart")
    return [arg for flag in flags for arg in ("-movflags", flag)]


def get_matroska_flags() -> list[str]:
    # Do not force subtitles to "default" unless they were default in the input
    return ["-default_mode", "infer_no_subs"]


def get_container_flags(
    out_format: str | None,
    *,
    preserve_mov_data: bool,
    mov_fast_start: bool,
) -> list[str]:
    """Muxer tuning flags for the output container family."""
    if is_mov_family(out_format):
        return get_mov_flags(preserve_mov_data=preserve_mov_data, mov_fast_start=mov_fast_start)
    if is_matroska_family(out_format):
        return get_matroska_flags()
    return []


def get_chapters_input_args(chapters_path: Path | str | None) -> list[str]:
    if not chapters_path:
        return []
    return ["-f", "ffmetadata", "-i", str(chapters_path)]


def get_experimental_args(ffmpeg_experimental: bool) -> list[str]:
    return ["-strict", "experimental"] if ffmpeg_experimental else []


def get_video_timescale_args(video_timebase: int | None) -> list[str]:
    if video_timebase is None:
        return []
    return ["-video_track_timescale", str(video_timebase)]


def get_playback_rate_args(output_playback_rate: float) -> list[str]:
    if output_playback_rate == 1:
        return []
    return ["-itsscale", str(1 / output_playback_rate)]


def get_rotation_args(rotation: int | None) -> list[str]:
    # The rotate tag stores the inverse of the display rotation
    if rotation is None:
        return []
    return ["-metadata:s:v:0", f"rotate={360 - rotation}"]


def get_avoid_negative_ts_args(mode: str | None, *, cutting_start: bool) -> list[str]:
    # Without a start seek this blanks the first frame in some players
    if not cutting_start or not mode:
        return []
    return ["-avoid_negative_ts", mode]


def get_custom_tags_args(tags: dict[str, str] | None) -> list[str]:
    """File-level -metadata key=value arguments."""
    args: list[str] = []
    for key, value in (tags or {}).items():
        args.extend(["-metadata", f"{key}={value}"])
    return args


def filter_copy_file_streams(copy_file_streams: list[FileStreams]) -> list[FileStreams]:
    """Drop input files that contribute no streams; they are not passed as inputs."""
    return [fs for fs in copy_file_streams if fs.stream_ids]


def map_input_stream_to_output_index(
    copy_file_streams: list[FileStreams],
    path: str,
    stream_id: int,
) -> int | None:
    """Output stream index ffmpeg will assign to (path, stream_id).

    *copy_file_streams* must already be filtered and in the order the inputs
    are passed to ffmpeg. Returns None for a removed file or unselected stream.
    """
    offset = 0
    for fs in copy_file_streams:
        if fs.path == path:
            if stream_id not in fs.stream_ids:
                return None
            return offset + fs.stream_ids.index(stream_id)
        offset += len(fs.stream_ids)
    return None


def get_disposition_flags(stream: ProbeStream) -> str:
    """Disposition of *stream* as an ffmpeg flag string, "0" when none are set."""
    flags = [name for name, value in stream.disposition.items() if value]
    return "+".join(flags) if flags else "0"


def get_codec_args(stream: ProbeStream | None, output_index: int, out_format: str | None) -> list[str]:
    """Stream copy, converting subtitles the output container cannot carry."""
    codec = "copy"
    if stream is not None and stream.codec_type == "subtitle":
        if is_mov_family(out_format) and stream.codec_name in TEXT_SUBTITLE_CODECS:
            codec = "mov_text"
        elif out_format == "matroska" and stream.codec_name == "mov_text":
            codec = "srt"
        elif out_format == "webm" and stream.codec_name in TEXT_SUBTITLE_CODECS | {"mov_text"}:
            codec = "webvtt"

    args = [f"-c:{output_index}", codec]
    if (
        stream is not None
        and is_mov_family(out_format)
        and stream.codec_type == "video"
        and stream.codec_name == "hevc"
    ):
        # Apple players refuse hev1-tagged HEVC
        args.extend([f"-tag:{output_index}", "hvc1"])
    return args


def get_map_streams_args(
    *,
    copy_file_streams: list[FileStreams],
    all_files_meta: dict[str, FileMeta],
    out_format: str | None,
    manually_copy_disposition: bool = False,
    start_index: int = 0,
    get_video_args: VideoArgsHook | None = None,
) -> list[str]:
    """-map and per-output-stream codec arguments.

    Input file N (after filtering) is ffmpeg input ``start_index + N``.
    """
    filtered = filter_copy_file_streams(copy_file_streams)
    args: list[str] = []

    for file_index, fs in enumerate(filtered):
        meta = all_files_meta.get(fs.path)
        for stream_id in fs.stream_ids:
            output_index = map_input_stream_to_output_index(filtered, fs.path, stream_id)
            if output_index is None:
                continue
            stream = meta.get_stream(stream_id) if meta else None

            args.extend(["-map", f"{start_index + file_index}:{stream_id}"])

            video_args = None
            if get_video_args is not None and stream is not None:
                video_args = get_video_args(stream, output_index)
            if video_args is None:
                video_args = get_codec_args(stream, output_index, out_format)
            args.extend(video_args)

            if manually_copy_disposition and stream is not None:
                args.extend([f"-disposition:{output_index}", get_disposition_flags(stream)])

    return args


def get_stream_params_args(
    copy_file_streams: list[FileStreams],
    params_by_stream_id: ParamsByStreamId,
) -> list[str]:
    """Disposition, bitstream filter and custom tag overrides per output stream."""
    args: list[str] = []
    for path, stream_id, params in params_by_stream_id.items():
        output_index = map_input_stream_to_output_index(copy_file_streams, path, stream_id)
        if output_index is None:
            continue

        if params.disposition is not None:
            disposition = "0" if params.disposition == DELETE_DISPOSITION_VALUE else params.disposition
            args.extend([f"-disposition:{output_index}", disposition])

        if params.bitstream_filter:
            args.extend([f"-bsf:{output_index}", params.bitstream_filter])

        for tag, value in (params.custom_tags or {}).items():
            args.extend([f"-metadata:s:{output_index}", f"{tag}={value}"])

    return args


def get_stream_ids_to_copy(
    streams: list[ProbeStream],
    *,
    include_all_streams: bool,
    parts_streams: list[list[ProbeStream]] | None = None,
) -> tuple[list[int], list[int]]:
    """Streams to carry through a merge, and those that had to be left out.

    Without *include_all_streams* the choice mimics ffmpeg's automatic
    selection. A stream is also left out when any part in *parts_streams*
    lacks a stream of the same type at the same index.
    """
    if include_all_streams:
        candidates = [s.index for s in streams]
    else:
        candidates = []
        for matches in (
            [s for s in streams if s.is_real_video],
            [s for s in streams if s.codec_type == "audio"],
            [s for s in streams if s.codec_type == "subtitle"],
        ):
            if matches:
                candidates.append(matches[0].index)

    by_index = {s.index: s for s in streams}

    def in_every_part(index: int) -> bool:
        codec_type = by_index[index].codec_type
        return all(
            any(p.index == index and p.codec_type == codec_type for p in part)
            for part in (parts_streams or [])
        )

    stream_ids_to_copy = [i for i in candidates if in_every_part(i)]
    excluded = [s.index for s in streams if s.index not in stream_ids_to_copy]
    return stream_ids_to_copy, excluded
