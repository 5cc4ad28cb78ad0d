"""Root CLI group for segcut."""

from __future__ import annotations

import click

from segcut import __version__


@click.group()
@click.version_option(version=__version__, prog_name="segcut")
def cli() -> None:
    """segcut: lossless segment export with smart cut."""


# Import and register subcommands
from segcut.cli.init_cmd import init_cmd  # noqa: E402
from segcut.cli.export_cmd import export_cmd  # noqa: E402
from segcut.cli.merge_cmd import merge_cmd  # noqa: E402
from segcut.cli.remux_cmd import remux_cmd  # noqa: E402

cli.add_command(init_cmd, "init")
cli.add_command(export_cmd, "export")
cli.add_command(merge_cmd, "merge")
cli.add_command(remux_cmd, "remux")
