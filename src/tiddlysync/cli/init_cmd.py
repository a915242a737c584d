"""tiddlysync init: create and seed the tiddler database."""

from __future__ import annotations

import os

import typer

from tiddlysync.cli import _exitcodes as ec
from tiddlysync.cli._output import print_error, print_object
from tiddlysync.cli._storage import open_configured_store, resolve_config


def init_cmd(
    dry_run: bool = typer.Option(False, "--dry-run", help="Preview initialization only"),
) -> None:
    """Create the database and files directory, installing the built-in tiddlers."""
    from tiddlysync.cli import state

    config = resolve_config()
    db_path = config.server.db_path
    exists = os.path.exists(db_path)

    if dry_run:
        data = {
            "db_path": db_path,
            "files_dir": config.server.files_dir,
            "seed_files": config.server.seed_files,
            "status": "exists" if exists else "dry_run",
        }
        print_object(data, json_mode=state.json_output)
        return

    if exists:
        print_error(f"Database already exists: {db_path}")
        raise typer.Exit(ec.DATABASE_ERROR)

    store = open_configured_store(config)
    try:
        os.makedirs(config.server.files_dir, exist_ok=True)
        data = {
            "db_path": db_path,
            "files_dir": config.server.files_dir,
            "tiddlers": store.count(),
            "status": "initialized",
        }
    finally:
        store.close()
    print_object(data, json_mode=state.json_output)
