"""tiddlysync pack-plugin: build a plugin JSON file from a manifest."""

from __future__ import annotations

from pathlib import Path

import typer

from tiddlysync.cli import _exitcodes as ec
from tiddlysync.cli._output import print_error, print_object
from tiddlysync.errors import TiddlySyncError
from tiddlysync.plugin import pack_plugin, write_plugin


def pack_plugin_cmd(
    manifest: Path = typer.Argument(..., help="Plugin manifest JSON"),
    output: Path = typer.Argument(..., help="Output plugin JSON file"),
) -> None:
    """Pack a manifest and its source files into an importable plugin tiddler."""
    from tiddlysync.cli import state

    try:
        plugin = pack_plugin(manifest.parent, manifest.name)
        write_plugin(plugin, output)
    except (OSError, TiddlySyncError) as e:
        print_error(str(e))
        raise typer.Exit(ec.USAGE_ERROR)

    print_object(
        {"plugin": plugin["title"], "output": str(output)},
        json_mode=state.json_output,
    )
