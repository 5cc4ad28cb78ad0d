"""segcut remux: rewrite a file's container to fix a broken duration."""

from __future__ import annotations

from pathlib import Path

import click

from segcut.cli.common import build_context, progress_bar
from segcut.export.errors import ExportError
from segcut.models.config import ExportSettings
from segcut.pipeline.batch import fix_invalid_duration
from segcut.utils.ffmpeg import FFmpegError
from segcut.utils.progress import log_error, log_success


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--format", "file_format", default=None, help="ffmpeg muxer name for the output")
@click.option("--out-dir", default=None, type=click.Path(file_okay=False), help="Output directory")
def remux_cmd(file: str, file_format: str | None, out_dir: str | None) -> None:
    """Remux FILE with all streams copied as-is."""
    file_path = Path(file).resolve()
    try:
        ctx, _ = build_context(file_path, settings=ExportSettings(), out_format=file_format)
        with progress_bar("Remuxing") as on_progress:
            out_path = fix_invalid_duration(
                ctx,
                file_format=ctx.out_format,
                custom_out_dir=Path(out_dir).resolve() if out_dir else None,
                on_progress=on_progress,
            )
    except (ExportError, FFmpegError, OSError, ValueError) as e:
        log_error(f"Remux failed: {e}")
        raise SystemExit(1)

    log_success(f"Remuxed to {out_path}")
