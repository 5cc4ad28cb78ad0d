"""Smart cut: keyframe facts, segment planning and boundary re-encoding."""

from __future__ import annotations

from bisect import bisect_left
from pathlib import Path

from segcut.export.args import (
    filter_copy_file_streams,
    get_experimental_args,
    get_map_streams_args,
    get_video_timescale_args,
)
from segcut.export.context import ExportContext
from segcut.export.cut import should_skip_existing_file
from segcut.export.errors import SmartCutImpossibleError
from segcut.models.export import (
    CutStatus,
    FileStreams,
    SegmentPlan,
    SegmentRoute,
    SmartCutParams,
)
from segcut.models.media import FileMeta, ProbeStream
from segcut.utils.ffmpeg import ProgressCallback, log_output, run_ffmpeg_with_progress
from segcut.utils.ffprobe import read_file_meta, read_keyframes
from segcut.utils.progress import log_step

# ffprobe codec_name → encoder able to produce a compatible stream
VIDEO_ENCODERS = {
    "h264": "libx264",
    "hevc": "libx265",
    "vp8": "libvpx",
    "vp9": "libvpx-vp9",
    "av1": "libsvtav1",
    "mpeg4": "mpeg4",
    "mpeg2video": "mpeg2video",
    "mpeg1video": "mpeg1video",
    "mjpeg": "mjpeg",
    "prores": "prores_ks",
    "dnxhd": "dnxhd",
}


def get_video_encoder(codec_name: str | None) -> str | None:
    return VIDEO_ENCODERS.get(codec_name or "")


def find_next_keyframe(keyframes: list[float], desired: float, tolerance: float = 0.0) -> float | None:
    """First keyframe at or after *desired*, allowing *tolerance* before it."""
    i = bisect_left(keyframes, desired - tolerance)
    return keyframes[i] if i < len(keyframes) else None


def get_smart_cut_params(
    *,
    path: Path,
    desired_cut_from: float,
    streams: list[ProbeStream],
    video_duration: float | None = None,
    tolerance: float = 0.01,
    search_windows: list[float] | tuple[float, ...] = (10.0, 60.0),
) -> SmartCutParams:
    """Find the keyframe-aligned cut point for *desired_cut_from*.

    Only the first real video stream is considered. Keyframes are searched in
    growing windows after the cut point; if none exists before the end of the
    file the aligned point is the file's duration.
    """
    video = next((s for s in streams if s.is_real_video), None)
    if video is None:
        # Audio-only: every packet is a keyframe
        return SmartCutParams(lossless_cut_from=desired_cut_from, segment_needs_smart_cut=False)

    next_keyframe = None
    for window in search_windows:
        keyframes = read_keyframes(
            path,
            stream_index=video.index,
            start=max(desired_cut_from - tolerance, 0.0),
            end=desired_cut_from + window,
        )
        next_keyframe = find_next_keyframe(keyframes, desired_cut_from, tolerance)
        if next_keyframe is not None:
            break

    if next_keyframe is None:
        next_keyframe = video_duration if video_duration is not None else float("inf")

    if next_keyframe <= desired_cut_from + tolerance:
        return SmartCutParams(
            lossless_cut_from=next_keyframe,
            segment_needs_smart_cut=False,
            video_stream_index=video.index,
        )

    bitrate = video.bitrate
    if bitrate is None:
        # Stream bitrate is often missing in Matroska; the container's is close enough
        bitrate = read_file_meta(path).bitrate

    return SmartCutParams(
        lossless_cut_from=next_keyframe,
        segment_needs_smart_cut=True,
        video_codec=get_video_encoder(video.codec_name),
        video_bitrate=bitrate,
        video_stream_index=video.index,
        video_timebase=video.timebase,
    )


def plan_segment(
    params: SmartCutParams,
    *,
    desired_cut_from: float,
    cut_to: float,
    frame_duration: float,
) -> SegmentPlan:
    """Decide how to export one segment from its keyframe facts."""
    if not params.segment_needs_smart_cut:
        return SegmentPlan(route=SegmentRoute.DIRECT, cut_from=desired_cut_from)

    lossless_cut_from = params.lossless_cut_from
    if lossless_cut_from >= cut_to:
        return SegmentPlan(
            route=SegmentRoute.TOO_NARROW,
            cut_from=desired_cut_from,
            lossless_cut_from=lossless_cut_from,
            encode_cut_to=cut_to,
        )

    # One frame short of the keyframe so the joined parts share no frame
    encode_cut_to = lossless_cut_from - frame_duration
    if encode_cut_to <= desired_cut_from:
        # Less than a frame to encode: the keyframe is the cut point
        return SegmentPlan(
            route=SegmentRoute.DIRECT,
            cut_from=lossless_cut_from,
            lossless_cut_from=lossless_cut_from,
        )

    return SegmentPlan(
        route=SegmentRoute.HYBRID,
        cut_from=desired_cut_from,
        lossless_cut_from=lossless_cut_from,
        encode_cut_to=encode_cut_to,
    )


def get_cut_encode_smart_part_args(
    *,
    file_path: Path,
    cut_from: float,
    cut_to: float,
    out_path: Path,
    out_format: str | None,
    video_codec: str,
    video_bitrate: int,
    video_stream_index: int,
    video_timebase: int,
    all_files_meta: dict[str, FileMeta],
    copy_file_streams: list[FileStreams],
    ffmpeg_experimental: bool,
) -> list[str]:
    """Arguments re-encoding only the smart-cut video stream of [cut_from, cut_to)."""

    def get_video_args(stream: ProbeStream, output_index: int) -> list[str] | None:
        if stream.index != video_stream_index:
            return None
        return [
            f"-c:{output_index}", video_codec,
            f"-b:{output_index}", str(video_bitrate),
        ]

    return [
        # Seeking before -i keeps long files fast
        "-ss", f"{cut_from:.5f}",
        "-i", str(file_path),
        # Without this the output starts with black frames once merged
        "-ss", "0",
        "-t", f"{max(cut_to - cut_from, 0.0):.5f}",
        *get_map_streams_args(
            copy_file_streams=filter_copy_file_streams(copy_file_streams),
            all_files_meta=all_files_meta,
            out_format=out_format,
            get_video_args=get_video_args,
        ),
        "-ignore_unknown",
        *get_video_timescale_args(video_timebase),
        *get_experimental_args(ffmpeg_experimental),
        *(["-f", out_format] if out_format else []),
        "-y", str(out_path),
    ]


def cut_encode_smart_part(
    ctx: ExportContext,
    *,
    params: SmartCutParams,
    cut_from: float,
    cut_to: float,
    out_path: Path,
    copy_file_streams: list[FileStreams],
    on_progress: ProgressCallback | None = None,
) -> CutStatus:
    """Re-encode the boundary span, matching the source's codec and bitrate."""
    settings = ctx.settings
    if should_skip_existing_file(out_path, enable_overwrite_output=settings.enable_overwrite_output):
        return CutStatus.SKIPPED

    video_bitrate = params.video_bitrate
    if settings.smart_cut_custom_bitrate is not None:
        video_bitrate = settings.smart_cut_custom_bitrate * 1000

    missing = [
        name
        for name, value in (
            ("codec", params.video_codec),
            ("bitrate", video_bitrate),
            ("stream index", params.video_stream_index),
            ("timebase", params.video_timebase),
        )
        if value is None
    ]
    if missing:
        raise SmartCutImpossibleError(
            f"Cannot smart cut {ctx.file_path.name}: unknown video {', '.join(missing)}"
        )

    log_step("Encode", f"{out_path.name}: {cut_from:.3f}s to {cut_to:.3f}s with {params.video_codec}")

    ffmpeg_args = get_cut_encode_smart_part_args(
        file_path=ctx.file_path,
        cut_from=cut_from,
        cut_to=cut_to,
        out_path=out_path,
        out_format=ctx.out_format,
        video_codec=params.video_codec,
        video_bitrate=video_bitrate,
        video_stream_index=params.video_stream_index,
        video_timebase=params.video_timebase,
        all_files_meta=ctx.all_files_meta,
        copy_file_streams=copy_file_streams,
        ffmpeg_experimental=settings.ffmpeg_experimental,
    )
    ctx.append_command_log(ffmpeg_args)

    result = run_ffmpeg_with_progress(
        ffmpeg_args,
        duration=max(cut_to - cut_from, 0.0),
        on_progress=on_progress,
    )
    log_output(result)
    return CutStatus.DONE
