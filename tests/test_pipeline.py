"""Tests for per-segment export and batch sequencing."""

from pathlib import Path
from unittest.mock import patch

import pytest

from segcut.export.errors import OutputNotWritableError, SmartCutImpossibleError
from segcut.export.smartcut import get_smart_cut_params
from segcut.models.export import Chapter, CutStatus, FileStreams, Segment, SmartCutParams
from segcut.pipeline.batch import auto_concat_cut_segments, cut_multiple, fix_invalid_duration
from segcut.pipeline.segment import export_segment
from segcut.utils.ffmpeg import FFmpegError
from segcut.utils.io import try_delete_files
from tests.conftest import (
    fake_ffmpeg,
    fake_ffmpeg_concat,
    make_audio_stream,
    make_meta,
    make_video_stream,
)

HYBRID_PARAMS = SmartCutParams(
    lossless_cut_from=12.0,
    segment_needs_smart_cut=True,
    video_codec="libx264",
    video_bitrate=2_000_000,
    video_stream_index=0,
    video_timebase=12800,
)


@pytest.fixture
def engine():
    """Patch every ffmpeg/ffprobe call made while exporting a segment."""
    with patch("segcut.export.cut.run_ffmpeg_with_progress", side_effect=fake_ffmpeg) as cut_run, \
            patch("segcut.export.smartcut.run_ffmpeg_with_progress", side_effect=fake_ffmpeg) as encode_run, \
            patch("segcut.export.concat.run_ffmpeg_concat", side_effect=fake_ffmpeg_concat) as concat_run, \
            patch("segcut.export.concat.read_file_meta", return_value=make_meta(duration="4.0")), \
            patch("segcut.pipeline.segment.read_file_meta", return_value=make_meta(duration="8.0")), \
            patch("segcut.pipeline.segment.get_smart_cut_params") as smart_params:
        yield {
            "cut": cut_run,
            "encode": encode_run,
            "concat": concat_run,
            "smart_params": smart_params,
        }


def _export(ctx, all_streams, tmp_path, segment=None, progress=None):
    return export_segment(
        ctx,
        segment=segment or Segment(start=10.3, end=20.0),
        index=0,
        out_seg_file_name="seg.mp4",
        output_dir=tmp_path,
        custom_out_dir=None,
        copy_file_streams=all_streams,
        on_progress=progress.append if progress is not None else None,
    )


# ---------------------------------------------------------------------------
# export_segment
# ---------------------------------------------------------------------------

class TestExportSegmentWithoutSmartCut:
    def test_plain_lossless_cut(self, engine, ctx, all_streams, tmp_path):
        out = _export(ctx, all_streams, tmp_path)
        assert out == tmp_path / "seg.mp4"
        assert out.exists()

        engine["smart_params"].assert_not_called()
        engine["encode"].assert_not_called()
        args = engine["cut"].call_args.args[0]
        # keyframe_cut setting applies: seek before the input
        assert args[:2] == ["-ss", "10.30000"]


class TestExportSegmentWithSmartCut:
    @pytest.fixture(autouse=True)
    def smart_cut_on(self, ctx):
        ctx.settings.need_smart_cut = True

    def test_start_on_keyframe(self, engine, ctx, all_streams, tmp_path):
        engine["smart_params"].return_value = SmartCutParams(
            lossless_cut_from=10.3, segment_needs_smart_cut=False, video_stream_index=0
        )
        out = _export(ctx, all_streams, tmp_path)

        assert out.exists()
        engine["encode"].assert_not_called()
        engine["concat"].assert_not_called()
        args = engine["cut"].call_args.args[0]
        # Exact cut: input first, then the seek
        assert args[:4] == ["-i", str(ctx.file_path), "-ss", "10.30000"]

    def test_hybrid(self, engine, ctx, all_streams, tmp_path):
        engine["smart_params"].return_value = HYBRID_PARAMS
        progress: list[float] = []
        out = _export(ctx, all_streams, tmp_path, progress=progress)

        assert out == tmp_path / "seg.mp4"
        assert out.exists()

        copy_path = tmp_path / "src-smartcut-segment-copy-0.mp4"
        encode_path = tmp_path / "src-smartcut-segment-encode-0.mp4"
        # Intermediates are gone
        assert not copy_path.exists()
        assert not encode_path.exists()

        cut_args = engine["cut"].call_args.args[0]
        assert cut_args[:2] == ["-ss", "12.00000"]
        assert cut_args[-1] == str(copy_path)
        assert "-avoid_negative_ts" not in cut_args
        assert cut_args[cut_args.index("-video_track_timescale") + 1] == "12800"

        encode_args = engine["encode"].call_args.args[0]
        assert encode_args[:2] == ["-ss", "10.30000"]
        assert encode_args[encode_args.index("-t") + 1] == "1.66000"
        assert encode_args[-1] == str(encode_path)

        assert (engine["cut"].call_count, engine["encode"].call_count, engine["concat"].call_count) == (1, 1, 1)

        concat_txt = engine["concat"].call_args.kwargs["concat_txt"]
        lines = concat_txt.split("\n")
        assert "encode-0" in lines[0]
        assert "copy-0" in lines[1]

        assert progress == sorted(progress)
        assert progress[-1] == 1.0
        assert progress.count(1.0) == 1

    def test_hybrid_intermediates_removed_on_failure(self, engine, ctx, all_streams, tmp_path):
        engine["smart_params"].return_value = HYBRID_PARAMS
        engine["concat"].side_effect = FFmpegError(["ffmpeg"], 1, "Invalid data found")

        with pytest.raises(FFmpegError):
            _export(ctx, all_streams, tmp_path)

        assert not (tmp_path / "src-smartcut-segment-copy-0.mp4").exists()
        assert not (tmp_path / "src-smartcut-segment-encode-0.mp4").exists()

    def test_too_narrow(self, engine, ctx, all_streams, tmp_path):
        engine["smart_params"].return_value = HYBRID_PARAMS.model_copy(
            update={"lossless_cut_from": 25.0}
        )
        out = _export(ctx, all_streams, tmp_path)

        assert out.exists()
        engine["cut"].assert_not_called()
        engine["concat"].assert_not_called()
        encode_args = engine["encode"].call_args.args[0]
        assert encode_args[encode_args.index("-t") + 1] == "9.70000"
        assert encode_args[-1] == str(out)

    def test_unknown_fps(self, engine, ctx, all_streams, tmp_path):
        engine["smart_params"].return_value = HYBRID_PARAMS
        ctx.detected_fps = None

        with pytest.raises(SmartCutImpossibleError):
            _export(ctx, all_streams, tmp_path)
        engine["cut"].assert_not_called()
        engine["encode"].assert_not_called()

    @patch("segcut.export.smartcut.read_keyframes", return_value=[0.0, 4.0])
    def test_aligned_start_with_unknown_fps(self, _mock_keyframes, engine, ctx, all_streams, tmp_path):
        engine["smart_params"].side_effect = get_smart_cut_params
        ctx.settings.keyframe_tolerance = 0.0
        ctx.detected_fps = None

        out = _export(ctx, all_streams, tmp_path, segment=Segment(start=0.0, end=5.0))

        assert out.exists()
        assert engine["cut"].call_count == 1
        engine["encode"].assert_not_called()
        engine["concat"].assert_not_called()

    def test_only_smart_cut_video_stream_is_kept(self, engine, ctx, source_file, tmp_path, meta):
        meta.streams.append(meta.streams[0].model_copy(update={"index": 2}))
        engine["smart_params"].return_value = HYBRID_PARAMS
        _export(ctx, [FileStreams(path=str(source_file), stream_ids=[0, 1, 2])], tmp_path)

        cut_args = engine["cut"].call_args.args[0]
        assert "0:2" not in cut_args
        assert "0:1" in cut_args

    def test_existing_output_is_not_overwritten(self, engine, ctx, all_streams, tmp_path):
        engine["smart_params"].return_value = HYBRID_PARAMS
        (tmp_path / "seg.mp4").write_bytes(b"old")

        _export(ctx, all_streams, tmp_path)

        assert (tmp_path / "seg.mp4").read_bytes() == b"old"
        engine["smart_params"].assert_not_called()
        engine["cut"].assert_not_called()
        engine["encode"].assert_not_called()
        engine["concat"].assert_not_called()

    def test_read_only_output(self, engine, ctx, all_streams, tmp_path):
        engine["smart_params"].return_value = SmartCutParams(
            lossless_cut_from=10.3, segment_needs_smart_cut=False
        )
        (tmp_path / "seg.mp4").write_bytes(b"old")
        with patch("segcut.export.cut.is_writable", return_value=False):
            with pytest.raises(OutputNotWritableError):
                _export(ctx, all_streams, tmp_path)
        engine["smart_params"].assert_not_called()
        engine["cut"].assert_not_called()


# ---------------------------------------------------------------------------
# cut_multiple
# ---------------------------------------------------------------------------

class TestCutMultiple:
    def test_segments_in_order(self, engine, ctx, all_streams, tmp_path):
        progress: list[float] = []
        out_files = cut_multiple(
            ctx,
            output_dir=tmp_path,
            custom_out_dir=None,
            segments=[Segment(start=0, end=5), Segment(start=5, end=10)],
            out_seg_file_names=["a.mp4", "b.mp4"],
            copy_file_streams=all_streams,
            on_progress=progress.append,
        )
        assert out_files == [tmp_path / "a.mp4", tmp_path / "b.mp4"]
        assert progress == sorted(progress)
        assert progress[-1] == 1.0
        assert 0.5 in progress

    def test_file_name_count_mismatch(self, ctx, all_streams, tmp_path):
        with pytest.raises(ValueError):
            cut_multiple(
                ctx,
                output_dir=tmp_path,
                custom_out_dir=None,
                segments=[Segment(start=0, end=5)],
                out_seg_file_names=[],
                copy_file_streams=all_streams,
            )

    def test_chapters_file_deleted_once_on_failure(self, ctx, all_streams, tmp_path):
        failure = FFmpegError(["ffmpeg"], 1, "boom")
        with patch("segcut.pipeline.batch.export_segment", side_effect=[tmp_path / "a.mp4", failure]), \
                patch("segcut.export.chapters.try_delete_files", wraps=try_delete_files) as mock_delete:
            with pytest.raises(FFmpegError):
                cut_multiple(
                    ctx,
                    output_dir=tmp_path,
                    custom_out_dir=None,
                    segments=[Segment(start=0, end=5), Segment(start=5, end=10)],
                    out_seg_file_names=["a.mp4", "b.mp4"],
                    copy_file_streams=all_streams,
                    chapters=[Chapter(start=0, end=10, name="All")],
                )
        mock_delete.assert_called_once()
        assert list(tmp_path.glob("ffmetadata-*.txt")) == []

    def test_chapters_passed_to_every_segment(self, ctx, all_streams, tmp_path):
        with patch("segcut.pipeline.batch.export_segment") as mock_export:
            cut_multiple(
                ctx,
                output_dir=tmp_path,
                custom_out_dir=None,
                segments=[Segment(start=0, end=5), Segment(start=5, end=10)],
                out_seg_file_names=["a.mp4", "b.mp4"],
                copy_file_streams=all_streams,
                chapters=[Chapter(start=0, end=10)],
            )
        chapters_paths = {c.kwargs["chapters_path"] for c in mock_export.call_args_list}
        assert len(chapters_paths) == 1
        assert chapters_paths.pop().name.startswith("ffmetadata-")


# ---------------------------------------------------------------------------
# auto_concat_cut_segments / fix_invalid_duration
# ---------------------------------------------------------------------------

@patch("segcut.export.concat.run_ffmpeg_concat", side_effect=fake_ffmpeg_concat)
@patch("segcut.export.concat.read_file_meta", return_value=make_meta(duration="5.0"))
@patch("segcut.pipeline.batch.read_file_meta", return_value=make_meta(duration="5.0"))
class TestAutoConcat:
    @pytest.fixture
    def segment_paths(self, tmp_path: Path) -> list[Path]:
        paths = [tmp_path / "a.mp4", tmp_path / "b.mp4"]
        for p in paths:
            p.write_bytes(b"\x00")
        return paths

    def test_merge_and_delete_parts(self, _m1, _m2, mock_run, ctx, segment_paths, tmp_path):
        merged = tmp_path / "merged.mp4"
        result = auto_concat_cut_segments(
            ctx,
            custom_out_dir=None,
            segment_paths=segment_paths,
            merged_out_file_path=merged,
        )
        assert result.status is CutStatus.DONE
        assert merged.exists()
        assert not any(p.exists() for p in segment_paths)

    def test_keep_parts(self, _m1, _m2, mock_run, ctx, segment_paths, tmp_path):
        ctx.settings.auto_delete_merged_segments = False
        auto_concat_cut_segments(
            ctx,
            custom_out_dir=None,
            segment_paths=segment_paths,
            merged_out_file_path=tmp_path / "merged.mp4",
        )
        assert all(p.exists() for p in segment_paths)

    def test_chapter_per_segment(self, _m1, _m2, mock_run, ctx, segment_paths, tmp_path):
        with patch("segcut.export.chapters.get_duration", return_value=5.0):
            auto_concat_cut_segments(
                ctx,
                custom_out_dir=None,
                segment_paths=segment_paths,
                merged_out_file_path=tmp_path / "merged.mp4",
                chapter_names=["One", "Two"],
            )
        args = mock_run.call_args.args[0]
        assert "-map_chapters" in args

    def test_existing_merge_is_skipped(self, _m1, _m2, mock_run, ctx, segment_paths, tmp_path):
        merged = tmp_path / "merged.mp4"
        merged.write_bytes(b"old")
        result = auto_concat_cut_segments(
            ctx,
            custom_out_dir=None,
            segment_paths=segment_paths,
            merged_out_file_path=merged,
        )
        assert result.status is CutStatus.SKIPPED
        mock_run.assert_not_called()
        assert all(p.exists() for p in segment_paths)

    def test_keeps_every_audio_track(self, _m1, _m2, mock_run, ctx, segment_paths, tmp_path):
        two_audio = make_meta(
            [make_video_stream(0), make_audio_stream(1), make_audio_stream(2)], duration="5.0"
        )
        with patch("segcut.pipeline.batch.read_file_meta", return_value=two_audio), \
                patch("segcut.export.concat.read_file_meta", return_value=two_audio):
            result = auto_concat_cut_segments(
                ctx,
                custom_out_dir=None,
                segment_paths=segment_paths,
                merged_out_file_path=tmp_path / "merged.mp4",
            )
        args = mock_run.call_args.args[0]
        maps = [args[i + 1] for i, a in enumerate(args) if a == "-map"]
        assert maps == ["0:0", "0:1", "0:2"]
        assert result.excluded_stream_ids == []

    def test_stream_missing_from_a_part_is_left_out(self, _m1, _m2, mock_run, ctx, segment_paths, tmp_path):
        two_audio = make_meta(
            [make_video_stream(0), make_audio_stream(1), make_audio_stream(2)], duration="5.0"
        )
        one_audio = make_meta([make_video_stream(0), make_audio_stream(1)], duration="5.0")
        with patch("segcut.pipeline.batch.read_file_meta", return_value=two_audio), \
                patch("segcut.export.concat.read_file_meta", side_effect=[two_audio, one_audio]):
            result = auto_concat_cut_segments(
                ctx,
                custom_out_dir=None,
                segment_paths=segment_paths,
                merged_out_file_path=tmp_path / "merged.mp4",
            )
        args = mock_run.call_args.args[0]
        maps = [args[i + 1] for i, a in enumerate(args) if a == "-map"]
        assert maps == ["0:0", "0:1"]
        assert result.excluded_stream_ids == [2]


@patch("segcut.pipeline.batch.run_ffmpeg_with_progress", side_effect=fake_ffmpeg)
def test_fix_invalid_duration(mock_run, ctx, tmp_path):
    out = fix_invalid_duration(ctx, file_format="mp4")
    assert out == tmp_path / "src-reformatted.mp4"
    assert out.exists()
    assert mock_run.call_args.args[0] == [
        "-i", str(ctx.file_path),
        "-map_metadata", "0",
        "-map", "0",
        "-ignore_unknown",
        "-c", "copy",
        "-f", "mp4",
        "-y", str(out),
    ]
