"""Tests for the wiki operations shared by HTTP and CLI."""

from __future__ import annotations

from datetime import datetime

import pytest

from tiddlysync.errors import ValidationError
from tiddlysync.wiki import Wiki, etag


@pytest.fixture
def wiki(store, template, files_dir):
    return Wiki(store, template, files_dir)


def test_etag():
    assert etag("T", 3) == "default/T/3:"
    assert etag("it's (fine)!", 0) == "default/it's%20(fine)!/0:"
    assert etag("ü/x?", 1) == "default/%C3%BC%2Fx%3F/1:"


def test_put_document_bumps(wiki):
    assert wiki.put_document("T", {"title": "T"}) == 0
    assert wiki.put_document("T", {"title": "T", "revision": "0"}) == 1
    assert wiki.get_document("T")["revision"] == "1"


def test_put_document_rejects_non_objects(wiki):
    with pytest.raises(ValidationError):
        wiki.put_document("T", ["not", "an", "object"])


def test_delete_returns_previous(wiki):
    wiki.put_document("T", {"title": "T", "text": "x"})
    deleted = wiki.delete("T")
    assert deleted is not None and deleted.meta["text"] == "x"
    assert wiki.delete("T") is None
    assert wiki.get_document("T") is None


def test_same_second_inbox_items_bump(wiki):
    now = datetime(2024, 5, 6, 7, 8, 9, 123000)
    first = wiki.add_inbox("one", now=now)
    second = wiki.add_inbox("two", now=now)
    assert first.title == second.title == "Inbox 2024-05-06 07:08:09"
    assert second.revision == 1
    assert wiki.get_document(first.title)["text"] == "two"


def test_render_includes_stored_tiddlers(wiki):
    wiki.put_document("Mine", {"title": "Mine", "text": "hello"})
    html = wiki.render()
    assert '"title":"Mine"' in html
    assert '"title":"$:/core"' in html


def test_invalid_binary_document_writes_no_file(wiki, files_dir):
    document = {"type": "image/png", "text": "iVBORw0KGgo="}
    with pytest.raises(ValidationError):
        wiki.put_document("untitled.png", document)
    assert list(files_dir.iterdir()) == []
