"""FFmpeg command runner with progress reporting."""

from __future__ import annotations

import re
import shlex
import subprocess
from collections.abc import Callable
from dataclasses import dataclass

from segcut.utils.progress import console

ProgressCallback = Callable[[float], None]

# Lines written by -progress pipe:1, e.g. "frame=120" or "progress=end"
_PROGRESS_LINE = re.compile(r"^[a-z][a-z0-9_]*=\S*$")
_OUT_TIME = re.compile(r"^(\d+):(\d{2}):(\d{2}(?:\.\d+)?)$")

OUTPUT_TAIL_LINES = 200


class FFmpegError(Exception):
    """Raised when an FFmpeg or FFprobe command fails."""

    def __init__(self, cmd: list[str], returncode: int, stderr: str):
        self.cmd = cmd
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"{cmd[0]} failed (rc={returncode}): {stderr[-500:]}")


@dataclass
class FFmpegResult:
    """Captured result of a finished FFmpeg run."""

    cmd: list[str]
    returncode: int
    output: str


def get_ff_command_line(cmd: str, args: list[str]) -> str:
    """Render a command as a copy-pasteable shell line."""
    return shlex.join([cmd, *args])


def parse_progress_time(line: str) -> float | None:
    """Return the output position in seconds from one -progress line."""
    key, sep, value = line.partition("=")
    if not sep:
        return None
    # out_time_ms is in microseconds too, despite the name
    if key in ("out_time_us", "out_time_ms"):
        try:
            return int(value) / 1_000_000
        except ValueError:
            return None
    if key == "out_time":
        m = _OUT_TIME.match(value)
        if m:
            h, mins, secs = m.groups()
            return int(h) * 3600 + int(mins) * 60 + float(secs)
    return None


def run_ffmpeg_with_progress(
    args: list[str],
    *,
    duration: float | None,
    on_progress: ProgressCallback | None = None,
    stdin_text: str | None = None,
) -> FFmpegResult:
    """Run FFmpeg, reporting progress as a fraction of *duration*.

    Progress is read from ``-progress pipe:1``; everything else FFmpeg prints is
    kept (last OUTPUT_TAIL_LINES lines) for logging and error reports.
    """
    cmd = ["ffmpeg", "-hide_banner", "-progress", "pipe:1", "-nostats"] + args
    output_tail: list[str] = []
    with subprocess.Popen(
        cmd,
        stdin=subprocess.PIPE if stdin_text is not None else subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        bufsize=1,
    ) as process:
        try:
            if stdin_text is not None:
                process.stdin.write(stdin_text)
                process.stdin.close()

            for raw_line in process.stdout:
                line = raw_line.rstrip()
                if not line:
                    continue

                seconds = parse_progress_time(line)
                if seconds is not None:
                    if on_progress and duration and duration > 0:
                        on_progress(min(max(seconds / duration, 0.0), 1.0))
                    continue
                if _PROGRESS_LINE.match(line):
                    continue

                output_tail.append(line)
                if len(output_tail) > OUTPUT_TAIL_LINES:
                    output_tail = output_tail[-OUTPUT_TAIL_LINES:]
        except BaseException:
            # Do not leave ffmpeg writing the output in the background
            process.kill()
            raise
        returncode = process.wait()

    output = "\n".join(output_tail)
    if returncode != 0:
        raise FFmpegError(cmd, returncode, output)
    return FFmpegResult(cmd=cmd, returncode=returncode, output=output)


def run_ffmpeg_concat(
    args: list[str],
    *,
    concat_txt: str,
    total_duration: float | None,
    on_progress: ProgressCallback | None = None,
) -> FFmpegResult:
    """Run a concat-demuxer merge, feeding the file list on stdin."""
    return run_ffmpeg_with_progress(
        args,
        duration=total_duration,
        on_progress=on_progress,
        stdin_text=concat_txt,
    )


def log_output(result: FFmpegResult) -> None:
    """Print captured FFmpeg output, dimmed."""
    if result.output:
        console.print(result.output, style="dim", highlight=False, markup=False)
