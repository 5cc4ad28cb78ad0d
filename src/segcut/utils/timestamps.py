"""Carry the source file's modification time over to exported files."""

from __future__ import annotations

import os
from pathlib import Path

from segcut.utils.progress import log_warning


def calculate_file_time(
    file_time: float,
    *,
    cut_from: float = 0.0,
    cut_to: float = 0.0,
    duration: float = 0.0,
    treat_input_file_modified_time_as_start: bool = True,
    treat_output_file_modified_time_as_start: bool = True,
) -> float:
    """Map the input file's timestamp onto the exported part's timeline.

    A modification time can mark either the start or the end of a recording,
    for the input and for the output independently.
    """
    input_start = treat_input_file_modified_time_as_start
    output_start = treat_output_file_modified_time_as_start

    if input_start and output_start:
        return file_time + cut_from
    if not input_start and not output_start:
        return file_time - duration + cut_to
    if input_start and not output_start:
        return file_time + cut_to
    return file_time - duration + cut_from


def transfer_timestamps(
    *,
    in_path: Path | str,
    out_path: Path | str,
    cut_from: float = 0.0,
    cut_to: float = 0.0,
    duration: float | None = None,
    treat_input_file_modified_time_as_start: bool | None = True,
    treat_output_file_modified_time_as_start: bool | None = True,
) -> None:
    """Set out_path's atime/mtime from in_path. Failures are only logged."""
    if treat_output_file_modified_time_as_start is None:
        return  # disabled

    def shift(file_time: float) -> float:
        return calculate_file_time(
            file_time,
            cut_from=cut_from,
            cut_to=cut_to,
            duration=duration or 0.0,
            treat_input_file_modified_time_as_start=treat_input_file_modified_time_as_start is not False,
            treat_output_file_modified_time_as_start=treat_output_file_modified_time_as_start,
        )

    try:
        st = os.stat(in_path)
        os.utime(out_path, (shift(st.st_atime), shift(st.st_mtime)))
    except OSError as e:
        log_warning(f"Failed to set modified time of {out_path}: {e}")
