"""Pack TiddlyWiki plugins from a manifest and the shadow tiddler sources it lists.

A manifest is a JSON object::

    {
      "title": "$:/plugins/custom/s3-uploader",
      "name": "S3 Uploader",
      "tiddlers": [
        {"title": "$:/plugins/custom/s3-uploader.js", "file": "s3-uploader.js",
         "type": "application/javascript", "module-type": "startup"}
      ]
    }

Each ``tiddlers`` entry names a source file relative to the manifest. Any other
keys on the entry become fields of that shadow tiddler.
"""

from __future__ import annotations

import json
import logging
import os
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

from tiddlysync.errors import ValidationError
from tiddlysync.tiddler import Tiddler

logger = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"
PLUGIN_TYPE = "application/json"
BUNDLED_PLUGINS = ("s3_uploader",)

_PLUGIN_DEFAULTS = {
    "name": "Custom Plugin",
    "description": "",
    "author": "tiddlysync",
    "version": "0.0.1",
    "plugin-type": "plugin",
}


def _read_manifest(source: Path | Traversable, manifest_name: str) -> dict[str, Any]:
    try:
        manifest = json.loads(source.joinpath(manifest_name).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ValidationError(f"Invalid plugin manifest {manifest_name}: {e}") from e
    if not isinstance(manifest, dict):
        raise ValidationError(f"Invalid plugin manifest {manifest_name}: expected a JSON object")
    if not isinstance(manifest.get("title"), str):
        raise ValidationError(f"Invalid plugin manifest {manifest_name}: missing title")
    if not isinstance(manifest.get("tiddlers"), list):
        raise ValidationError(f"Invalid plugin manifest {manifest_name}: missing tiddlers list")
    return manifest


def pack_plugin(
    source: Path | Traversable, manifest_name: str = MANIFEST_NAME
) -> dict[str, Any]:
    """Build a plugin tiddler from the manifest in ``source``.

    The plugin's ``text`` is the JSON string ``{"tiddlers": {title: fields}}``
    that TiddlyWiki unpacks into shadow tiddlers.
    """
    manifest = _read_manifest(source, manifest_name)
    shadows: dict[str, dict[str, Any]] = {}
    for entry in manifest["tiddlers"]:
        if not isinstance(entry, dict):
            raise ValidationError(f"Invalid plugin manifest {manifest_name}: bad tiddler entry")
        entry = dict(entry)
        title = entry.pop("title", None)
        filename = entry.pop("file", None)
        if not isinstance(title, str) or not isinstance(filename, str):
            raise ValidationError(
                f"Invalid plugin manifest {manifest_name}: every tiddler needs a title and a file"
            )
        try:
            text = source.joinpath(filename).read_text(encoding="utf-8")
        except OSError as e:
            raise ValidationError(f"Failed to read {filename}: {e}") from e
        logger.debug("packing %s -> %s", filename, title)
        shadows[title] = {"text": text, **entry}

    plugin: dict[str, Any] = {"title": manifest["title"]}
    for key, default in _PLUGIN_DEFAULTS.items():
        value = manifest.get(key)
        plugin[key] = value if isinstance(value, str) else default
    plugin["type"] = PLUGIN_TYPE
    plugin["text"] = json.dumps(
        {"tiddlers": shadows}, ensure_ascii=False, separators=(",", ":")
    )
    return plugin


def write_plugin(plugin: dict[str, Any], output: str | os.PathLike[str]) -> None:
    """Write a plugin as a one-element JSON array, the form TiddlyWiki imports."""
    with open(output, "w", encoding="utf-8") as f:
        json.dump([plugin], f, indent=2, ensure_ascii=False)
        f.write("\n")


def bundled_plugins() -> list[Tiddler]:
    """Plugins shipped with the package, installed on every new database."""
    root = resources.files("tiddlysync").joinpath("plugins")
    return [Tiddler.from_wire(pack_plugin(root.joinpath(name))) for name in BUNDLED_PLUGINS]
