"""Per-segment export: plain lossless cut, or smart cut when enabled."""

from __future__ import annotations

from pathlib import Path

from segcut.export.concat import concat_files
from segcut.export.context import ExportContext
from segcut.export.cut import get_frame_duration, lossless_cut_single, should_skip_existing_file
from segcut.export.errors import SmartCutImpossibleError
from segcut.export.smartcut import cut_encode_smart_part, get_smart_cut_params, plan_segment
from segcut.models.export import Chapter, FileStreams, Segment, SegmentRoute
from segcut.models.media import ProbeStream
from segcut.pipeline.tracking import (
    DIRECT_WEIGHTS,
    HYBRID_WEIGHTS,
    TOO_NARROW_WEIGHTS,
    SegmentProgress,
)
from segcut.utils.ffmpeg import ProgressCallback
from segcut.utils.ffprobe import read_file_meta
from segcut.utils.io import transient_files
from segcut.utils.paths import get_out_file_extension, get_suffixed_out_path, make_segment_out_path
from segcut.utils.progress import log_step


def streams_to_copy_from_main_file(
    ctx: ExportContext,
    copy_file_streams: list[FileStreams],
) -> list[ProbeStream]:
    """Selected streams of the main input file, in selection order."""
    meta = ctx.all_files_meta.get(ctx.file_key)
    selection = next((fs for fs in copy_file_streams if fs.path == ctx.file_key), None)
    if meta is None or selection is None:
        return []
    return [s for s in (meta.get_stream(i) for i in selection.stream_ids) if s is not None]


def export_segment(
    ctx: ExportContext,
    *,
    segment: Segment,
    index: int,
    out_seg_file_name: str,
    output_dir: Path,
    custom_out_dir: Path | None,
    copy_file_streams: list[FileStreams],
    chapters_path: Path | None = None,
    chapters: list[Chapter] | None = None,
    on_progress: ProgressCallback | None = None,
) -> Path:
    """Export one segment to its final path and return that path.

    With smart cut enabled a segment whose start is not on a keyframe is built
    from a re-encoded boundary clip and a lossless remainder; callers cannot
    tell it apart from a plain cut.
    """
    settings = ctx.settings
    desired_cut_from, cut_to = segment.start, segment.end
    out_path = make_segment_out_path(output_dir, out_seg_file_name)

    # Checked before probing so a skipped segment runs nothing
    if should_skip_existing_file(out_path, enable_overwrite_output=settings.enable_overwrite_output):
        SegmentProgress(DIRECT_WEIGHTS, on_progress).complete()
        return out_path

    if not settings.need_smart_cut:
        progress = SegmentProgress(DIRECT_WEIGHTS, on_progress)
        lossless_cut_single(
            ctx,
            cut_from=desired_cut_from,
            cut_to=cut_to,
            out_path=out_path,
            copy_file_streams=copy_file_streams,
            keyframe_cut=settings.keyframe_cut,
            avoid_negative_ts=settings.avoid_negative_ts,
            chapters_path=chapters_path,
            on_progress=progress.step("cut"),
        )
        progress.complete()
        return out_path

    # Smart cut only applies to the main file, not to externally added tracks
    main_streams = streams_to_copy_from_main_file(ctx, copy_file_streams)
    params = get_smart_cut_params(
        path=ctx.file_path,
        desired_cut_from=desired_cut_from,
        streams=main_streams,
        video_duration=ctx.video_duration,
        tolerance=settings.keyframe_tolerance,
        search_windows=settings.keyframe_search_windows,
    )
    if params.segment_needs_smart_cut and not ctx.detected_fps:
        raise SmartCutImpossibleError("Smart cut is not possible when the frame rate is unknown")

    plan = plan_segment(
        params,
        desired_cut_from=desired_cut_from,
        cut_to=cut_to,
        frame_duration=get_frame_duration(ctx.detected_fps),
    )

    if plan.route is SegmentRoute.DIRECT:
        progress = SegmentProgress(DIRECT_WEIGHTS, on_progress)
        lossless_cut_single(
            ctx,
            cut_from=plan.cut_from,
            cut_to=cut_to,
            out_path=out_path,
            copy_file_streams=copy_file_streams,
            keyframe_cut=False,
            avoid_negative_ts=settings.avoid_negative_ts,
            chapters_path=chapters_path,
            on_progress=progress.step("cut"),
        )
        progress.complete()
        return out_path

    log_step("Smart cut", f"Segment {index + 1} on video stream {params.video_stream_index}")

    # One video stream (the smart-cut one) and every non-video stream
    smart_copy_file_streams = [
        FileStreams(
            path=ctx.file_key,
            stream_ids=[
                s.index for s in main_streams
                if s.index == params.video_stream_index or s.codec_type != "video"
            ],
        )
    ]

    if plan.route is SegmentRoute.TOO_NARROW:
        log_step(
            "Smart cut",
            f"Segment lies between two keyframes, encoding all of "
            f"{desired_cut_from:.3f}s to {cut_to:.3f}s",
        )
        progress = SegmentProgress(TOO_NARROW_WEIGHTS, on_progress)
        cut_encode_smart_part(
            ctx,
            params=params,
            cut_from=desired_cut_from,
            cut_to=cut_to,
            out_path=out_path,
            copy_file_streams=smart_copy_file_streams,
            on_progress=progress.step("encode"),
        )
        progress.complete()
        return out_path

    progress = SegmentProgress(HYBRID_WEIGHTS, on_progress)
    ext = get_out_file_extension(out_format=ctx.out_format, file_path=ctx.file_path)
    remainder_path = get_suffixed_out_path(
        custom_out_dir, ctx.file_path, f"smartcut-segment-copy-{index}{ext}"
    )
    boundary_path = get_suffixed_out_path(
        custom_out_dir, ctx.file_path, f"smartcut-segment-encode-{index}{ext}"
    )

    # Concat order is always [boundary, remainder]
    with transient_files([boundary_path, remainder_path]):
        log_step("Smart cut", f"Copying {plan.lossless_cut_from:.3f}s to {cut_to:.3f}s")
        # Keyframe seek, and no -avoid_negative_ts, or the parts will not line up
        lossless_cut_single(
            ctx,
            cut_from=plan.lossless_cut_from,
            cut_to=cut_to,
            out_path=remainder_path,
            copy_file_streams=smart_copy_file_streams,
            keyframe_cut=True,
            avoid_negative_ts=None,
            chapters_path=chapters_path,
            video_timebase=params.video_timebase,
            on_progress=progress.step("copy"),
        )
        progress.update("copy", 1.0)

        # Output stream indexes may differ from the source's
        streams_after_cut = read_file_meta(remainder_path).streams

        cut_encode_smart_part(
            ctx,
            params=params,
            cut_from=desired_cut_from,
            cut_to=plan.encode_cut_to,
            out_path=boundary_path,
            copy_file_streams=smart_copy_file_streams,
            on_progress=progress.step("encode"),
        )
        progress.update("encode", 1.0)

        concat_files(
            ctx,
            paths=[boundary_path, remainder_path],
            out_path=out_path,
            metadata_from_path=remainder_path,
            include_all_streams=True,
            streams=streams_after_cut,
            out_dir=output_dir,
            chapters=chapters,
            video_timebase=params.video_timebase,
            on_progress=progress.step("concat"),
        )

    progress.complete()
    return out_path
