"""CLI helpers for config-aware store construction."""

from __future__ import annotations

import typer

from tiddlysync.cli import _exitcodes as ec
from tiddlysync.cli._output import print_error
from tiddlysync.config import TiddlySyncConfig, load_config
from tiddlysync.errors import TiddlySyncError
from tiddlysync.storage import TiddlerStore, open_store


def resolve_config() -> TiddlySyncConfig:
    """Load the config file selected on the command line, applying --db if given."""
    from tiddlysync.cli import state

    try:
        config = load_config(state.config)
    except TiddlySyncError as e:
        print_error(str(e))
        raise typer.Exit(ec.CONFIG_ERROR)
    if state.db is not None:
        config.server.db_path = state.db
    return config


def open_configured_store(config: TiddlySyncConfig) -> TiddlerStore:
    try:
        return open_store(config.server.db_path, config.server.seed_files)
    except TiddlySyncError as e:
        print_error(f"Cannot open tiddler store: {e}")
        raise typer.Exit(ec.DATABASE_ERROR)
