"""Tests for plugin packing and the bundled uploader plugin."""

from __future__ import annotations

import json

import pytest

from tiddlysync.errors import ValidationError
from tiddlysync.plugin import bundled_plugins, pack_plugin, write_plugin
from tiddlysync.storage import load_seed_tiddler


@pytest.fixture
def plugin_dir(tmp_path):
    d = tmp_path / "plugin_dev"
    d.mkdir()
    (d / "main.js").write_text("exports.startup = function() {};\n", encoding="utf-8")
    (d / "readme.wiki").write_text("Hello ''world''", encoding="utf-8")
    manifest = {
        "title": "$:/plugins/me/demo",
        "name": "Demo",
        "version": "1.2.3",
        "tiddlers": [
            {
                "title": "$:/plugins/me/demo/main.js",
                "file": "main.js",
                "type": "application/javascript",
                "module-type": "startup",
            },
            {"title": "$:/plugins/me/demo/readme", "file": "readme.wiki"},
        ],
    }
    (d / "manifest.json").write_text(json.dumps(manifest), encoding="utf-8")
    return d


def test_pack_plugin_shape(plugin_dir):
    plugin = pack_plugin(plugin_dir)
    assert plugin["title"] == "$:/plugins/me/demo"
    assert plugin["name"] == "Demo"
    assert plugin["version"] == "1.2.3"
    assert plugin["description"] == ""
    assert plugin["plugin-type"] == "plugin"
    assert plugin["type"] == "application/json"

    shadows = json.loads(plugin["text"])["tiddlers"]
    assert set(shadows) == {"$:/plugins/me/demo/main.js", "$:/plugins/me/demo/readme"}
    main = shadows["$:/plugins/me/demo/main.js"]
    assert main["text"] == "exports.startup = function() {};\n"
    assert main["module-type"] == "startup"
    assert main["type"] == "application/javascript"
    assert "file" not in main
    assert shadows["$:/plugins/me/demo/readme"] == {"text": "Hello ''world''"}


def test_written_plugin_is_a_seed_file(plugin_dir, tmp_path):
    out = tmp_path / "demo.json"
    write_plugin(pack_plugin(plugin_dir), out)
    value = json.loads(out.read_text(encoding="utf-8"))
    assert isinstance(value, list) and len(value) == 1
    assert load_seed_tiddler(out).title == "$:/plugins/me/demo"


def test_missing_source_file(plugin_dir):
    (plugin_dir / "main.js").unlink()
    with pytest.raises(ValidationError, match="main.js"):
        pack_plugin(plugin_dir)


@pytest.mark.parametrize(
    "manifest",
    [
        [],
        {"tiddlers": []},
        {"title": "$:/plugins/x"},
        {"title": "$:/plugins/x", "tiddlers": [{"title": "no file"}]},
    ],
)
def test_bad_manifest(tmp_path, manifest):
    (tmp_path / "manifest.json").write_text(json.dumps(manifest), encoding="utf-8")
    with pytest.raises(ValidationError):
        pack_plugin(tmp_path)


def test_bundled_uploader_plugin():
    (uploader,) = bundled_plugins()
    assert uploader.title == "$:/plugins/custom/s3-uploader"
    shadows = json.loads(uploader.meta["text"])["tiddlers"]
    script = shadows["$:/plugins/custom/s3-uploader.js"]
    assert script["module-type"] == "startup"
    assert "/api/sign-upload" in script["text"]
    for marker in ("_file_storage", "_s3_key", "_s3_bucket", "upload_url", "public_url"):
        assert marker in script["text"]
    assert "$:/plugins/custom/s3-uploader/ui-modal" in shadows
