"""Move inline binary tiddler payloads out of the database and onto disk."""

from __future__ import annotations

import base64
import binascii
import hashlib
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

FILES_URL_PREFIX = "/files/"

_BINARY_PREFIXES = ("image/", "video/", "audio/")

_MIME_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/svg+xml": "svg",
    "application/pdf": "pdf",
}


def is_binary_type(mime: Any) -> bool:
    if not isinstance(mime, str):
        return False
    return mime.startswith(_BINARY_PREFIXES) or mime == "application/pdf"


def extension_for(mime: str) -> str:
    return _MIME_EXTENSIONS.get(mime, "bin")


def offload_filename(title: str, mime: str) -> str:
    """Name of the backing file for a tiddler; keyed on the title, not the content."""
    digest = hashlib.sha256(title.encode("utf-8")).hexdigest()
    return f"{digest}.{extension_for(mime)}"


def decode_payload(text: str) -> bytes | None:
    """Decode a base64 body, with or without a data-URL header. None if it is not base64."""
    _, sep, rest = text.partition(",")
    encoded = rest if sep else text
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        return None


def offload_binary(
    document: dict[str, Any], title: str, files_dir: str | os.PathLike[str]
) -> bool:
    """Write a binary tiddler's body to the files directory and point the document at it.

    Returns True when the document was rewritten. Undecodable payloads and
    failed writes leave the document untouched so the body stays inline.
    """
    mime = document.get("type")
    if not is_binary_type(mime):
        return False
    text = document.get("text")
    if not isinstance(text, str) or not text:
        return False

    data = decode_payload(text)
    if data is None:
        logger.debug("Payload of '%s' is not base64; storing inline", title)
        return False

    filename = offload_filename(title, mime)
    file_path = Path(files_dir) / filename
    try:
        file_path.write_bytes(data)
    except OSError as e:
        logger.error("Failed to write file to disk: %s: %s", file_path, e)
        return False

    document["text"] = ""
    document["_canonical_uri"] = f"{FILES_URL_PREFIX}{filename}"
    document["_file_storage"] = "local"
    logger.info("Offloaded binary file for '%s' to %s", title, file_path)
    return True
