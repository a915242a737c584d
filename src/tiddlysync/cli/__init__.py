"""tiddlysync CLI: run the wiki server and manage its tiddler store."""

from __future__ import annotations

from typing import Optional

import typer

from tiddlysync.cli import export_cmd, import_cmd, info, init_cmd, plugin_cmd, serve

app = typer.Typer(
    name="tiddlysync",
    help="tiddlysync: TiddlyWiki sync server and store console.",
    no_args_is_help=True,
)


class _State:
    """Global CLI state shared across subcommands."""

    config: str | None = None
    db: str | None = None
    json_output: bool = False
    log_level: str | None = None


state = _State()


def _version_callback(value: bool) -> None:
    if value:
        from tiddlysync import __version__

        print(f"tiddlysync {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        envvar="TIDDLYSYNC_CONFIG",
        help="Config file path (default: config.toml)",
    ),
    db: Optional[str] = typer.Option(
        None, "--db", help="SQLite database path, overriding [server].db_path"
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output when supported"),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Log level (default: $TIDDLYSYNC_LOG or INFO)"
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version", is_eager=True, callback=_version_callback
    ),
) -> None:
    """Global options for all tiddlysync commands."""
    from tiddlysync.log import configure_logging

    state.config = config
    state.db = db
    state.json_output = json_output
    state.log_level = log_level
    configure_logging(log_level)
    if ctx.invoked_subcommand is None and not version:
        print(ctx.get_help())
        raise typer.Exit()


app.command(name="serve")(serve.serve_cmd)
app.command(name="init")(init_cmd.init_cmd)
app.command(name="info")(info.info_cmd)
app.command(name="export")(export_cmd.export_cmd)
app.command(name="import")(import_cmd.import_cmd)
app.command(name="pack-plugin")(plugin_cmd.pack_plugin_cmd)


def main() -> None:
    """Entry point for the tiddlysync CLI."""
    app()
