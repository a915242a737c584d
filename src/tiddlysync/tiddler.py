"""Tiddler record model and its wire-format codec.

A stored tiddler keeps the JSON object exactly as the client sent it.
Normalization to the TiddlyWeb wire shape happens on every read, so the
stored shape can change without a migration.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from tiddlysync.errors import ValidationError

DEFAULT_BAG = "default"
WIKITEXT_TYPE = "text/vnd.tiddlywiki"
INBOX_TAG = "Inbox"
# Largest value an SQLite INTEGER column holds.
MAX_REVISION = 2**63 - 1


def format_tags(value: Any) -> str | None:
    """Normalize a tag collection to TiddlyWiki's space-delimited string form.

    Returns None when the value is neither a list nor a string.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        parts = []
        for tag in value:
            if not isinstance(tag, str):
                continue
            parts.append(f"[[{tag}]]" if " " in tag else tag)
        return " ".join(parts)
    return None


def _parse_revision(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        raise ValidationError(f"revision should be a number (not {value!r})")
    if isinstance(value, str):
        if not (value.isascii() and value.isdigit()):
            raise ValidationError(f"couldn't parse a revision number from {value!r}")
        value = int(value)
    if not isinstance(value, int):
        raise ValidationError(f"revision should be a number (not {value!r})")
    if value < 0:
        raise ValidationError(f"revision should be a non-negative integer (not {value})")
    if value > MAX_REVISION:
        raise ValidationError(f"revision {value} is larger than the maximum {MAX_REVISION}")
    return value


def storage_field(meta: dict[str, Any], key: str) -> str | None:
    """Read a string field from the top level of meta, falling back to 'fields'."""
    value = meta.get(key)
    if not isinstance(value, str):
        nested = meta.get("fields")
        value = nested.get(key) if isinstance(nested, dict) else None
    return value if isinstance(value, str) else None


def canonical_uri(meta: dict[str, Any]) -> str | None:
    return storage_field(meta, "_canonical_uri")


@dataclass
class Tiddler:
    """A stored tiddler: title, revision, and the raw document it came from."""

    title: str
    revision: int = 0
    meta: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_wire(cls, value: Any) -> Tiddler:
        """Validate a wire document and wrap it as a record."""
        if not isinstance(value, dict):
            raise ValidationError("expected a JSON object for a tiddler")
        title = value.get("title")
        if not isinstance(title, str):
            raise ValidationError("title must be a string")
        revision = _parse_revision(value.get("revision"))
        return cls(title=title, revision=revision, meta=copy.deepcopy(value))

    def as_document(self) -> dict[str, Any]:
        """Return the TiddlyWeb wire shape of this tiddler."""
        doc = copy.deepcopy(self.meta)
        nested = doc.pop("fields", None)
        if isinstance(nested, dict):
            for key, value in nested.items():
                doc.setdefault(key, value)

        if "tags" in doc:
            tags = format_tags(doc["tags"])
            if tags is None:
                del doc["tags"]
            else:
                doc["tags"] = tags

        doc["title"] = self.title
        doc["revision"] = str(self.revision)
        doc.setdefault("bag", DEFAULT_BAG)
        return doc

    def as_skinny_document(self) -> dict[str, Any]:
        """Wire shape without the body, used for bulk listing."""
        doc = self.as_document()
        doc.pop("text", None)
        return doc


def tiddlywiki_timestamp(moment: datetime) -> str:
    """Format a datetime as TiddlyWiki's 17-digit YYYYMMDDHHMMSSmmm timestamp."""
    return moment.strftime("%Y%m%d%H%M%S") + f"{moment.microsecond // 1000:03d}"


def inbox_tiddler(text: str, tags: str | None = None, now: datetime | None = None) -> Tiddler:
    """Build a quick-capture tiddler for the inbox endpoint."""
    moment = now or datetime.now()
    timestamp = tiddlywiki_timestamp(moment)
    title = f"Inbox {moment.strftime('%Y-%m-%d %H:%M:%S')}"
    final_tags = f"{INBOX_TAG} {tags}" if tags else INBOX_TAG
    return Tiddler.from_wire(
        {
            "title": title,
            "text": text,
            "tags": final_tags,
            "created": timestamp,
            "modified": timestamp,
            "type": WIKITEXT_TYPE,
        }
    )
