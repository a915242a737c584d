"""tiddlysync export: dump tiddlers as a TiddlyWiki JSON array."""

from __future__ import annotations

import json

import typer

from tiddlysync.cli._output import print_object
from tiddlysync.cli._storage import open_configured_store, resolve_config


def export_cmd(
    output: str = typer.Option(..., "--output", help="Output JSON file"),
    skinny: bool = typer.Option(False, "--skinny", help="Leave out tiddler bodies"),
) -> None:
    """Export all tiddlers in wire format, importable by TiddlyWiki."""
    from tiddlysync.cli import state

    config = resolve_config()
    store = open_configured_store(config)
    try:
        tiddlers = store.all()
    finally:
        store.close()

    documents = [t.as_skinny_document() if skinny else t.as_document() for t in tiddlers]
    documents.sort(key=lambda d: d["title"])
    with open(output, "w", encoding="utf-8") as f:
        json.dump(documents, f, indent=2, ensure_ascii=False)
        f.write("\n")

    print_object({"output": output, "tiddlers": len(documents)}, json_mode=state.json_output)
