"""segcut merge: join already-exported files without re-encoding."""

from __future__ import annotations

import time
from pathlib import Path

import click

from segcut.cli.common import build_context, progress_bar
from segcut.export.errors import ExportError
from segcut.models.config import ExportSettings
from segcut.pipeline.batch import auto_concat_cut_segments
from segcut.utils.ffmpeg import FFmpegError
from segcut.utils.progress import log_error, show_export_summary


@click.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", required=True, type=click.Path(), help="Merged output file")
@click.option(
    "--chapters/--no-chapters",
    default=False,
    help="Add one chapter per input file, named after it",
)
@click.option("--keep-parts/--delete-parts", default=True, help="Keep the input files afterwards")
@click.option("--preserve-metadata", is_flag=True, help="Copy global metadata from the first file")
@click.option("--overwrite", is_flag=True, help="Overwrite an existing output")
def merge_cmd(
    files: tuple[str, ...],
    output: str,
    chapters: bool,
    keep_parts: bool,
    preserve_metadata: bool,
    overwrite: bool,
) -> None:
    """Merge FILES, in the order given, into one file."""
    paths = [Path(f).resolve() for f in files]
    out_path = Path(output).resolve()

    settings = ExportSettings(
        enable_overwrite_output=overwrite,
        preserve_metadata_on_merge=preserve_metadata,
        auto_delete_merged_segments=not keep_parts,
    )

    start_time = time.time()
    try:
        ctx, _ = build_context(paths[0], settings=settings)
        # The output decides the muxer, not the first part
        ctx.out_format = None
        with progress_bar("Merging") as on_progress:
            result = auto_concat_cut_segments(
                ctx,
                custom_out_dir=out_path.parent,
                segment_paths=paths,
                merged_out_file_path=out_path,
                chapter_names=[p.stem for p in paths] if chapters else None,
                on_progress=on_progress,
            )
    except (ExportError, FFmpegError, OSError, ValueError) as e:
        log_error(f"Merge failed: {e}")
        raise SystemExit(1)

    show_export_summary("Merge complete", time.time() - start_time, {
        "Parts": len(paths),
        "Output": out_path.name,
        "Status": result.status.value,
        "Dropped streams": ", ".join(map(str, result.excluded_stream_ids)) or "none",
    })
