"""Tests for splicing tiddlers into the carrier page."""

from __future__ import annotations

import json

import pytest

from tiddlysync.errors import TemplateError
from tiddlysync.template import STORE_MARKER, WikiTemplate


def _store_array(html: str) -> list:
    start = html.index(STORE_MARKER) + len(STORE_MARKER)
    end = html.index("</script>", start)
    return json.loads(html[start:end])


def test_parse_splits_at_closing_bracket(template):
    assert template.prefix.endswith('{"title":"$:/core","text":"core"}\n')
    assert template.suffix.startswith("]</script>")


def test_render_appends_documents(template):
    html = template.render([{"title": "A", "text": "one"}, {"title": "B", "revision": "2"}])
    titles = [t["title"] for t in _store_array(html)]
    assert titles == ["$:/core", "A", "B"]
    assert html.endswith("</body></html>\n")


def test_render_without_documents_is_the_template(template):
    html = template.render([])
    assert _store_array(html) == [{"title": "$:/core", "text": "core"}]


def test_script_close_is_escaped(template):
    payload = "</script><script>alert(1)</script>"
    html = template.render([{"title": "evil", "text": payload}])
    start = html.index(STORE_MARKER) + len(STORE_MARKER)
    end = html.index("</script>", start)
    block = html[start:end]
    assert "</script>" not in block.lower()
    assert html[end:].startswith("</script>")
    docs = _store_array(html)
    assert docs[1]["text"] == payload


def test_mixed_case_script_close_is_escaped(template):
    html = template.render([{"title": "evil", "text": "</SCRIPT>x"}])
    assert "</SCRIPT>" not in html
    assert _store_array(html)[1]["text"] == "</SCRIPT>x"


def test_non_ascii_is_kept(template):
    html = template.render([{"title": "中文", "text": "é"}])
    assert "中文" in html
    assert _store_array(html)[1]["title"] == "中文"


@pytest.mark.parametrize(
    "html",
    [
        "<html><body>no store here</body></html>",
        f"<html>{STORE_MARKER}[{{}}]",
        f"<html>{STORE_MARKER}{{}}</script>",
    ],
)
def test_parse_rejects_broken_templates(html):
    with pytest.raises(TemplateError):
        WikiTemplate.parse(html)


def test_bundled_template_loads():
    t = WikiTemplate.load()
    html = t.render([{"title": "Mine", "text": "x"}])
    titles = [d["title"] for d in _store_array(html)]
    assert "Mine" in titles
    assert len(titles) > 1


def test_load_from_path(tmp_path, template):
    path = tmp_path / "empty.html"
    path.write_text(template.prefix + template.suffix, encoding="utf-8")
    assert WikiTemplate.load(path) == template


def test_load_missing_file(tmp_path):
    with pytest.raises(TemplateError):
        WikiTemplate.load(tmp_path / "missing.html")
