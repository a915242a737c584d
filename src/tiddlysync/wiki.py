"""Wiki operations shared by the HTTP layer and the CLI."""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any
from urllib.parse import quote

from tiddlysync.cleanup import StorageCleaner
from tiddlysync.offload import offload_binary
from tiddlysync.storage import TiddlerStore
from tiddlysync.template import WikiTemplate
from tiddlysync.tiddler import DEFAULT_BAG, Tiddler, inbox_tiddler

logger = logging.getLogger(__name__)

# Characters encodeURIComponent leaves alone, besides the ones quote() always keeps.
_URI_COMPONENT_SAFE = "!~*'()"


def etag(title: str, revision: int) -> str:
    """Etag header value; the title is percent-encoded like encodeURIComponent."""
    return f"{DEFAULT_BAG}/{quote(title, safe=_URI_COMPONENT_SAFE)}/{revision}:"


class Wiki:
    """One wiki: the tiddler store, its files directory, and its carrier page."""

    def __init__(
        self,
        store: TiddlerStore,
        template: WikiTemplate,
        files_dir: str | os.PathLike[str],
        cleaner: StorageCleaner | None = None,
    ) -> None:
        self.store = store
        self.template = template
        self.files_dir = Path(files_dir)
        self.files_dir.mkdir(parents=True, exist_ok=True)
        self.cleaner = cleaner or StorageCleaner(self.files_dir)

    def render(self) -> str:
        return self.template.render([t.as_document() for t in self.store.all()])

    def skinny_documents(self) -> list[dict[str, Any]]:
        return [t.as_skinny_document() for t in self.store.all()]

    def get_document(self, title: str) -> dict[str, Any] | None:
        tiddler = self.store.get(title)
        return None if tiddler is None else tiddler.as_document()

    def put_document(self, title: str, document: Any) -> int:
        """Store a wire document sent for ``title`` and return its new revision."""
        tiddler = Tiddler.from_wire(document)
        offload_binary(tiddler.meta, title, self.files_dir)
        return self.store.save(tiddler)

    def delete(self, title: str) -> Tiddler | None:
        deleted = self.store.pop(title)
        logger.info("Deleted tiddler: %s", title)
        return deleted

    def add_inbox(self, text: str, tags: str | None = None, now: datetime | None = None) -> Tiddler:
        tiddler = inbox_tiddler(text, tags, now)
        self.store.save(tiddler)
        logger.info("Inbox captured: %s", tiddler.title)
        return tiddler
