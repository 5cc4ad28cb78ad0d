"""Chapter markers as a transient FFmetadata side-file."""

from __future__ import annotations

import math
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from segcut.models.export import Chapter
from segcut.utils.ffmpeg import FFmpegError
from segcut.utils.ffprobe import get_duration
from segcut.utils.io import try_delete_files, write_atomic
from segcut.utils.progress import log_step, log_warning


def format_ffmetadata(chapters: list[Chapter]) -> str:
    """Render chapters in FFmetadata format, times in whole milliseconds."""
    blocks = [
        "[CHAPTER]\n"
        "TIMEBASE=1/1000\n"
        f"START={math.floor(ch.start * 1000)}\n"
        f"END={math.floor(ch.end * 1000)}\n"
        f"title={_escape_value(ch.name or '')}"
        for ch in chapters
    ]
    return ";FFMETADATA1\n" + "\n\n".join(blocks) + "\n"


def _escape_value(value: str) -> str:
    # "=", ";", "#", "\" and newlines are special in FFmetadata values
    for char in ("\\", "=", ";", "#", "\n"):
        value = value.replace(char, "\\" + char)
    return value


def name_chapters(chapters: list[Chapter]) -> list[Chapter]:
    """Give unnamed chapters a "Chapter N" title."""
    return [
        ch if ch.name else ch.model_copy(update={"name": f"Chapter {i + 1}"})
        for i, ch in enumerate(chapters)
    ]


def write_chapters_ffmetadata(out_dir: Path, chapters: list[Chapter] | None) -> Path | None:
    """Write chapters to a new side-file in out_dir. None when there are none."""
    if not chapters:
        return None

    path = out_dir / f"ffmetadata-{time.time_ns() // 1_000_000}.txt"
    write_atomic(path, format_ffmetadata(chapters))
    log_step("Chapters", f"Wrote {len(chapters)} chapter(s) to {path.name}")
    return path


@contextmanager
def chapters_metadata_file(out_dir: Path, chapters: list[Chapter] | None) -> Iterator[Path | None]:
    """Scope a chapters side-file; it is deleted exactly once on exit."""
    path = write_chapters_ffmetadata(out_dir, chapters)
    try:
        yield path
    finally:
        if path is not None:
            try_delete_files([path])


def create_chapters_from_segments(
    segment_paths: list[Path],
    chapter_names: list[str | None] | None,
) -> list[Chapter] | None:
    """One back-to-back chapter per merged file, sized by its duration."""
    if chapter_names is None:
        return None

    try:
        durations = [get_duration(p) for p in segment_paths]
    except (FFmpegError, OSError, ValueError) as e:
        log_warning(f"Failed to create chapters from segments: {e}")
        return None

    chapters = []
    time_at = 0.0
    for i, duration in enumerate(durations):
        name = chapter_names[i] if i < len(chapter_names) else None
        chapters.append(Chapter(start=time_at, end=time_at + duration, name=name))
        time_at += duration
    return chapters
