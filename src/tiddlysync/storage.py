"""SQLite-backed tiddler store."""

from __future__ import annotations

import json
import logging
import os
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from tiddlysync.errors import StorageError, ValidationError
from tiddlysync.plugin import bundled_plugins
from tiddlysync.tiddler import Tiddler

logger = logging.getLogger(__name__)

_PRAGMAS = """
    PRAGMA journal_mode = WAL;
    PRAGMA synchronous = FULL;
    PRAGMA busy_timeout = 5000;
    PRAGMA cache_size = -5000;
    PRAGMA temp_store = MEMORY;
    PRAGMA journal_size_limit = 33554432;
"""

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS tiddlers (
        title TEXT PRIMARY KEY,
        revision INTEGER NOT NULL DEFAULT 0,
        meta TEXT NOT NULL
    );
"""

PLUGIN_LIBRARY_TIDDLER: dict[str, Any] = {
    "title": "$:/config/CPL-Source",
    "tags": ["$:/tags/PluginLibrary"],
    "caption": "CPL Plugin Library",
    "url": "https://tiddly-gittly.github.io/TiddlyWiki-CPL/library/index.html",
    "type": "text/vnd.tiddlywiki",
}


def load_seed_tiddler(path: str | os.PathLike[str]) -> Tiddler:
    """Read a bundled plugin file: a tiddler object, or an array whose first item is one."""
    try:
        with open(path, encoding="utf-8") as f:
            value = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ValidationError(f"Invalid seed file {path}: {e}") from e
    if isinstance(value, list):
        if not value:
            raise ValidationError(f"Invalid seed file {path}: empty JSON array")
        value = value[0]
    return Tiddler.from_wire(value)


class TiddlerStore:
    """Title-keyed tiddler table behind a single connection and a single lock.

    Every method takes ``lock`` for its full duration. ``lock`` is reentrant,
    so callers that need several operations to appear atomic may hold it
    across the whole sequence.
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self.lock = threading.RLock()
        try:
            self._conn = sqlite3.connect(db_path, check_same_thread=False)
            self._create_tables()
        except sqlite3.Error as e:
            raise StorageError("open", f"Cannot open database {db_path}: {e}") from e

    def _create_tables(self) -> None:
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def close(self) -> None:
        with self.lock:
            self._conn.close()

    @contextmanager
    def _operation(self, operation: str) -> Iterator[sqlite3.Connection]:
        with self.lock:
            try:
                yield self._conn
            except (sqlite3.Error, json.JSONDecodeError, OverflowError) as e:
                self._rollback()
                raise StorageError(operation, str(e)) from e
            except BaseException:
                self._rollback()
                raise

    def _rollback(self) -> None:
        try:
            if self._conn.in_transaction:
                self._conn.rollback()
        except sqlite3.Error as e:
            logger.debug("rollback failed: %s", e)

    @staticmethod
    def _from_row(row: tuple[Any, ...]) -> Tiddler:
        title, revision, meta_json = row
        meta = json.loads(meta_json)
        if not isinstance(meta, dict):
            raise StorageError("decode", f"Stored tiddler '{title}' is not a JSON object")
        return Tiddler(title=title, revision=int(revision), meta=meta)

    def _select(self, title: str) -> Tiddler | None:
        row = self._conn.execute(
            "SELECT title, revision, meta FROM tiddlers WHERE title = ?",
            (title,),
        ).fetchone()
        return None if row is None else self._from_row(row)

    def _upsert(self, tiddler: Tiddler) -> None:
        self._conn.execute(
            "INSERT INTO tiddlers (title, revision, meta) VALUES (?, ?, ?) "
            "ON CONFLICT (title) DO UPDATE SET revision = excluded.revision, meta = excluded.meta",
            (tiddler.title, tiddler.revision, json.dumps(tiddler.meta)),
        )

    # --- Primitive operations ---

    def get(self, title: str) -> Tiddler | None:
        logger.debug("getting tiddler: %s", title)
        with self._operation(f"get '{title}'"):
            return self._select(title)

    def all(self) -> list[Tiddler]:
        logger.debug("retrieving all tiddlers")
        with self._operation("list") as conn:
            rows = conn.execute("SELECT title, revision, meta FROM tiddlers").fetchall()
            return [self._from_row(r) for r in rows]

    def count(self) -> int:
        with self._operation("count") as conn:
            return int(conn.execute("SELECT COUNT(*) FROM tiddlers").fetchone()[0])

    def put(self, tiddler: Tiddler) -> None:
        """Insert or replace a tiddler as given, without touching its revision."""
        logger.debug("putting tiddler: %s", tiddler.title)
        with self._operation(f"put '{tiddler.title}'") as conn:
            self._upsert(tiddler)
            conn.commit()

    def pop(self, title: str) -> Tiddler | None:
        """Delete a tiddler and return what was stored under its title, if anything."""
        logger.debug("popping tiddler: %s", title)
        with self._operation(f"pop '{title}'") as conn:
            conn.execute("BEGIN IMMEDIATE")
            existing = self._select(title)
            conn.execute("DELETE FROM tiddlers WHERE title = ?", (title,))
            conn.commit()
            return existing

    # --- Compound operations ---

    def save(self, tiddler: Tiddler) -> int:
        """Write a tiddler, bumping the revision if the title already exists.

        The read of the previous revision and the write of the new record run
        in one transaction under the store lock. Returns the stored revision.
        """
        with self._operation(f"save '{tiddler.title}'") as conn:
            conn.execute("BEGIN IMMEDIATE")
            previous = self._select(tiddler.title)
            if previous is not None:
                tiddler.revision = previous.revision + 1
            self._upsert(tiddler)
            conn.commit()
        logger.debug("saved tiddler %s at revision %d", tiddler.title, tiddler.revision)
        return tiddler.revision

    def initialize(self, seeds: list[Tiddler]) -> None:
        """Apply database pragmas and install the built-in tiddlers on a fresh database."""
        with self._operation("initialize") as conn:
            if self.db_path != ":memory:":
                conn.executescript(_PRAGMAS)
            for tiddler in seeds:
                logger.info("Installing tiddler: %s", tiddler.title)
                self._upsert(tiddler)
            conn.commit()

    def storage_info(self) -> dict[str, Any]:
        """Return store info for operator commands."""
        info: dict[str, Any] = {"backend": "sqlite", "db_path": self.db_path}
        if self.db_path != ":memory:" and os.path.exists(self.db_path):
            info["file_size_bytes"] = os.path.getsize(self.db_path)
        return info


def open_store(db_path: str, seed_files: list[str] | None = None) -> TiddlerStore:
    """Open the tiddler store, initializing and seeding it when the database is new."""
    is_new = db_path == ":memory:" or not os.path.exists(db_path)
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    store = TiddlerStore(db_path)
    if not is_new:
        logger.info("Using existing database %s", db_path)
        return store

    try:
        seeds = [Tiddler.from_wire(PLUGIN_LIBRARY_TIDDLER), *bundled_plugins()]
        seeds.extend(load_seed_tiddler(path) for path in seed_files or [])
        store.initialize(seeds)
    except Exception:
        store.close()
        raise
    logger.info("Database initialization completed: %s", db_path)
    return store
