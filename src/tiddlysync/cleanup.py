"""Remove the backing file or object of a deleted tiddler."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from tiddlysync.errors import StorageError
from tiddlysync.objectstore import ObjectStore
from tiddlysync.offload import FILES_URL_PREFIX
from tiddlysync.tiddler import Tiddler, canonical_uri, storage_field

logger = logging.getLogger(__name__)


def _safe_local_name(uri: str) -> str | None:
    if not uri.startswith(FILES_URL_PREFIX):
        return None
    filename = uri[len(FILES_URL_PREFIX) :]
    if not filename or ".." in filename or "/" in filename or "\\" in filename:
        return None
    return filename


class StorageCleaner:
    """Best-effort deletion of the storage location a tiddler points at.

    Nothing here raises: every failure is logged and the backing file or
    object is left behind.
    """

    def __init__(
        self,
        files_dir: str | os.PathLike[str],
        object_store: ObjectStore | None = None,
        bucket: str = "",
        public_url_base: str = "",
    ) -> None:
        self.files_dir = Path(files_dir)
        self.object_store = object_store
        self.bucket = bucket
        self.public_url_base = public_url_base

    def clean(self, tiddler: Tiddler | None) -> str | None:
        """Delete what ``tiddler`` references. Returns "local", "s3", or None if nothing was removed."""
        if tiddler is None:
            return None
        meta = tiddler.meta
        uri = canonical_uri(meta)
        if uri is None:
            return None
        logger.debug("Found associated file URI for '%s': %s", tiddler.title, uri)

        storage = storage_field(meta, "_file_storage")
        if storage == "s3":
            key = storage_field(meta, "_s3_key")
            if key is None:
                logger.warning("Tiddler marked as S3 but missing _s3_key: %s", tiddler.title)
                return None
            bucket = storage_field(meta, "_s3_bucket") or self.bucket
            return self._delete_object(bucket, key, "self-described")

        if storage == "local":
            return self._delete_local(uri, "self-described")

        if uri.startswith(FILES_URL_PREFIX):
            return self._delete_local(uri, "legacy detection")
        if self.object_store is not None and self.public_url_base and uri.startswith(
            self.public_url_base
        ):
            key = uri[len(self.public_url_base) :].removeprefix("/")
            return self._delete_object(self.bucket, key, "legacy URI match")

        logger.debug("No cleanup rule matched '%s' (%s)", tiddler.title, uri)
        return None

    def _delete_object(self, bucket: str, key: str, reason: str) -> str | None:
        if self.object_store is None:
            logger.warning("Cannot delete S3 object %s/%s: S3 is not enabled", bucket, key)
            return None
        logger.info("Deleting S3 object (%s) -> bucket: %s, key: %s", reason, bucket, key)
        try:
            self.object_store.delete_object(bucket, key)
        except StorageError as e:
            logger.error("Failed to delete S3 object: %s", e)
            return None
        return "s3"

    def _delete_local(self, uri: str, reason: str) -> str | None:
        filename = _safe_local_name(uri)
        if filename is None:
            logger.warning("Refusing to delete local file outside the files directory: %s", uri)
            return None
        file_path = self.files_dir / filename
        try:
            file_path.unlink()
        except OSError as e:
            logger.error("Failed to delete local file %s: %s", file_path, e)
            return None
        logger.info("Deleted local file (%s): %s", reason, file_path)
        return "local"
