"""Output path helpers."""

from __future__ import annotations

from pathlib import Path

from segcut.models.export import Segment

# ffmpeg muxer name → file extension
FORMAT_EXTENSIONS = {
    "mp4": ".mp4",
    "mov": ".mov",
    "ipod": ".m4a",
    "3gp": ".3gp",
    "3g2": ".3g2",
    "psp": ".mp4",
    "ismv": ".ismv",
    "f4v": ".f4v",
    "matroska": ".mkv",
    "webm": ".webm",
    "mpegts": ".ts",
    "avi": ".avi",
    "flv": ".flv",
    "mp3": ".mp3",
    "ogg": ".ogg",
    "flac": ".flac",
    "wav": ".wav",
    "adts": ".aac",
}

EXTENSION_FORMATS = {
    ".mp4": "mp4",
    ".m4v": "mp4",
    ".mov": "mov",
    ".m4a": "ipod",
    ".3gp": "3gp",
    ".mkv": "matroska",
    ".mka": "matroska",
    ".webm": "webm",
    ".ts": "mpegts",
    ".mts": "mpegts",
    ".m2ts": "mpegts",
    ".avi": "avi",
    ".flv": "flv",
    ".mp3": "mp3",
    ".ogg": "ogg",
    ".flac": "flac",
    ".wav": "wav",
    ".aac": "adts",
}


def get_out_dir(custom_out_dir: Path | str | None, file_path: Path | str) -> Path:
    """Custom output directory, or the input file's own directory."""
    if custom_out_dir:
        return Path(custom_out_dir)
    return Path(file_path).parent


def get_suffixed_out_path(
    custom_out_dir: Path | str | None,
    file_path: Path | str,
    name_suffix: str,
) -> Path:
    """<out dir>/<input stem>-<suffix>."""
    file_path = Path(file_path)
    return get_out_dir(custom_out_dir, file_path) / f"{file_path.stem}-{name_suffix}"


def guess_out_format(path: Path | str, format_name: str | None = None) -> str | None:
    """Pick an ffmpeg muxer for a file, preferring its extension."""
    fmt = EXTENSION_FORMATS.get(Path(path).suffix.lower())
    if fmt:
        return fmt
    if format_name:
        # ffprobe reports demuxer lists such as "mov,mp4,m4a,3gp,3g2,mj2"
        return format_name.split(",")[0]
    return None


def get_out_file_extension(
    *,
    out_format: str | None,
    file_path: Path | str,
    is_custom_format_selected: bool = True,
) -> str:
    """Extension for an output of *out_format*, or the input's own extension."""
    if is_custom_format_selected and out_format in FORMAT_EXTENSIONS:
        return FORMAT_EXTENSIONS[out_format]
    return Path(file_path).suffix


def default_segment_file_names(
    file_path: Path | str,
    segments: list[Segment],
    ext: str,
) -> list[str]:
    """<stem>-<start>-<end>[-<name>]<ext> for every segment."""
    stem = Path(file_path).stem
    names = []
    for seg in segments:
        suffix = f"-{_sanitize(seg.name)}" if seg.name else ""
        names.append(f"{stem}-{seg.start:.2f}-{seg.end:.2f}{suffix}{ext}")
    return names


def make_segment_out_path(output_dir: Path, file_name: str) -> Path:
    """Join a segment file name to the output dir, creating subdirectories.

    File names may contain slashes.
    """
    out_path = output_dir / file_name
    if out_path.parent != output_dir:
        out_path.parent.mkdir(parents=True, exist_ok=True)
    return out_path


def escape_concat_path(path: Path | str) -> str:
    """Quote an absolute path for an ffmpeg concat list entry."""
    resolved = str(Path(path).resolve())
    # "file:" prefix stops ffmpeg from parsing "pipe:" style names as protocols
    return "'file:" + resolved.replace("'", "'\\''") + "'"


def _sanitize(name: str) -> str:
    return "".join(c if c.isalnum() or c in "-_ ." else "_" for c in name).strip()
