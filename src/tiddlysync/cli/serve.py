"""tiddlysync serve: run the wiki server."""

from __future__ import annotations

from typing import Optional

import typer
import uvicorn

from tiddlysync.cli import _exitcodes as ec
from tiddlysync.cli._output import print_error
from tiddlysync.cli._storage import open_configured_store, resolve_config
from tiddlysync.errors import TiddlySyncError


def serve_cmd(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default: [server].bind)"),
    port: Optional[int] = typer.Option(None, "--port", help="Port (default: [server].port)"),
) -> None:
    """Serve the wiki over HTTP."""
    from tiddlysync.cli import state
    from tiddlysync.web import create_app

    config = resolve_config()
    if host is not None:
        config.server.bind = host
    if port is not None:
        config.server.port = port

    store = open_configured_store(config)
    try:
        app = create_app(config, store=store)
    except TiddlySyncError as e:
        store.close()
        print_error(str(e))
        raise typer.Exit(ec.GENERAL_ERROR)

    try:
        uvicorn.run(
            app,
            host=config.server.bind,
            port=config.server.port,
            log_level=(state.log_level or "info").lower(),
        )
    finally:
        store.close()
