"""tiddlysync import: load tiddlers from a TiddlyWiki JSON export."""

from __future__ import annotations

import json
from typing import Any

import typer

from tiddlysync.cli import _exitcodes as ec
from tiddlysync.cli._output import print_error, print_object
from tiddlysync.cli._storage import open_configured_store, resolve_config
from tiddlysync.errors import TiddlySyncError
from tiddlysync.tiddler import Tiddler


def _load_documents(path: str) -> list[Any]:
    with open(path, encoding="utf-8") as f:
        value = json.load(f)
    return value if isinstance(value, list) else [value]


def import_cmd(
    input_path: str = typer.Option(..., "--input", help="JSON file: one tiddler or an array"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Validate without writing"),
) -> None:
    """Import tiddlers, bumping revisions of titles that already exist."""
    from tiddlysync.cli import state

    try:
        documents = _load_documents(input_path)
        tiddlers = [Tiddler.from_wire(d) for d in documents]
    except (OSError, json.JSONDecodeError, TiddlySyncError) as e:
        print_error(f"Cannot read {input_path}: {e}")
        raise typer.Exit(ec.USAGE_ERROR)

    if dry_run:
        print_object(
            {"input": input_path, "tiddlers": len(tiddlers), "status": "dry_run"},
            json_mode=state.json_output,
        )
        return

    config = resolve_config()
    store = open_configured_store(config)
    try:
        for tiddler in tiddlers:
            store.save(tiddler)
    except TiddlySyncError as e:
        print_error(str(e))
        raise typer.Exit(ec.DATABASE_ERROR)
    finally:
        store.close()
    print_object({"input": input_path, "tiddlers": len(tiddlers)}, json_mode=state.json_output)
