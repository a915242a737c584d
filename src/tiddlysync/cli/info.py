"""tiddlysync info: show store status."""

from __future__ import annotations

import os
from typing import Any

import typer

from tiddlysync.cli import _exitcodes as ec
from tiddlysync.cli._output import print_error, print_object
from tiddlysync.cli._storage import open_configured_store, resolve_config


def info_cmd() -> None:
    """Show the tiddler store location, size and S3 settings."""
    from tiddlysync.cli import state

    config = resolve_config()
    db_path = config.server.db_path
    if db_path != ":memory:" and not os.path.exists(db_path):
        print_error(f"Database not found: {db_path}")
        raise typer.Exit(ec.DATABASE_ERROR)

    store = open_configured_store(config)
    try:
        data: dict[str, Any] = {**store.storage_info(), "tiddlers": store.count()}
    finally:
        store.close()
    data["files_dir"] = config.server.files_dir
    data["s3_enabled"] = config.s3.enable
    if config.s3.enable:
        data["s3_bucket"] = config.s3.bucket_name
    data["auth"] = config.auth is not None

    if state.json_output:
        print_object(data, json_mode=True)
        return
    print(f"Database: {data['db_path']}")
    if "file_size_bytes" in data:
        print(f"File size: {int(data['file_size_bytes']):,} bytes")
    print(f"Tiddlers: {data['tiddlers']}")
    print(f"Files directory: {data['files_dir']}")
    print(f"S3: {'enabled (' + config.s3.bucket_name + ')' if config.s3.enable else 'disabled'}")
    print(f"Auth: {'basic' if data['auth'] else 'none'}")
