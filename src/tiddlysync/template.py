"""Render the whole wiki into the TiddlyWiki carrier page."""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass
from importlib import resources
from typing import Any

from tiddlysync.errors import TemplateError

STORE_MARKER = '<script class="tiddlywiki-tiddler-store" type="application/json">'
SCRIPT_CLOSE = "</script>"
_SCRIPT_CLOSE_RE = re.compile(r"</(script)", re.IGNORECASE)


@dataclass(frozen=True)
class WikiTemplate:
    """Carrier page split at the closing bracket of its tiddler store array."""

    prefix: str
    suffix: str

    @classmethod
    def parse(cls, html: str) -> WikiTemplate:
        start = html.find(STORE_MARKER)
        if start < 0:
            raise TemplateError("Invalid wiki template: missing tiddler store script tag")
        end = html.find(SCRIPT_CLOSE, start + len(STORE_MARKER))
        if end < 0:
            raise TemplateError("Invalid wiki template: missing closing script tag")
        split = html.rfind("]", start + len(STORE_MARKER), end)
        if split < 0:
            raise TemplateError("Invalid wiki template: tiddler store is not a JSON array")
        return cls(prefix=html[:split], suffix=html[split:])

    @classmethod
    def load(cls, path: str | os.PathLike[str] | None = None) -> WikiTemplate:
        """Load a carrier page from ``path``, or the one bundled with the package."""
        try:
            if path is None:
                html = resources.files("tiddlysync").joinpath("assets/empty.html").read_text(
                    encoding="utf-8"
                )
            else:
                with open(path, encoding="utf-8") as f:
                    html = f.read()
        except OSError as e:
            raise TemplateError(f"Cannot read wiki template {path or 'empty.html'}: {e}") from e
        return cls.parse(html)

    def render(self, documents: list[dict[str, Any]]) -> str:
        """Splice documents into the store array.

        The store array in the template must already hold at least one tiddler.
        """
        if not documents:
            return self.prefix + self.suffix
        payload = json.dumps(documents, ensure_ascii=False, separators=(",", ":"))[1:-1]
        payload = _SCRIPT_CLOSE_RE.sub(r"<\\/\1", payload)
        return f"{self.prefix},{payload}{self.suffix}"
