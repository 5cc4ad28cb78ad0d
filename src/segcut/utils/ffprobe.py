"""FFprobe wrapper for stream layout, duration and keyframe lookup."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path

from segcut.models.media import FileMeta
from segcut.utils.ffmpeg import FFmpegError


def run_ffprobe(args: list[str]) -> str:
    """Run FFprobe and return its stdout."""
    cmd = ["ffprobe", "-v", "error", "-hide_banner"] + args
    result = subprocess.run(cmd, capture_output=True, text=True)
    if result.returncode != 0:
        raise FFmpegError(cmd, result.returncode, result.stderr)
    return result.stdout


def read_file_meta(path: Path | str) -> FileMeta:
    """Probe a media file for its streams and container format."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Media file not found: {path}")

    stdout = run_ffprobe([
        "-of", "json",
        "-show_format",
        "-show_streams",
        str(path),
    ])
    data = json.loads(stdout)
    return FileMeta(
        streams=data.get("streams", []),
        format=data.get("format", {}),
    )


def get_duration(path: Path | str) -> float:
    """Return the container duration in seconds."""
    stdout = run_ffprobe([
        "-of", "json",
        "-show_entries", "format=duration",
        str(path),
    ])
    data = json.loads(stdout)
    try:
        return float(data["format"]["duration"])
    except (KeyError, TypeError, ValueError):
        raise ValueError(f"Could not determine duration of: {path}") from None


def read_keyframes(
    path: Path | str,
    *,
    stream_index: int,
    start: float,
    end: float,
) -> list[float]:
    """Return sorted keyframe times of one stream within [start, end].

    Reads packets rather than frames so nothing has to be decoded. The probe
    seeks to the keyframe at or before *start*, so earlier keyframes are
    filtered out by the caller.
    """
    stdout = run_ffprobe([
        "-of", "json",
        "-select_streams", str(stream_index),
        "-read_intervals", f"{max(start, 0.0):.5f}%{end:.5f}",
        "-show_entries", "packet=pts_time,flags",
        str(path),
    ])
    data = json.loads(stdout)

    keyframes: list[float] = []
    for packet in data.get("packets", []):
        if "K" not in packet.get("flags", ""):
            continue
        try:
            keyframes.append(float(packet["pts_time"]))
        except (KeyError, TypeError, ValueError):
            continue  # pts_time is N/A for some packets
    keyframes.sort()
    return keyframes
