"""Shared test fixtures for tiddlysync tests."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from tiddlysync.config import S3Config, ServerConfig, TiddlySyncConfig
from tiddlysync.errors import StorageError
from tiddlysync.storage import TiddlerStore
from tiddlysync.template import WikiTemplate
from tiddlysync.web import create_app

CARRIER_HTML = (
    "<!doctype html><html><head><title>Wiki</title></head><body>\n"
    '<script class="tiddlywiki-tiddler-store" type="application/json">[\n'
    '{"title":"$:/core","text":"core"}\n'
    "]</script>\n"
    '<script id="boot" type="text/javascript">boot()</script>\n'
    "</body></html>\n"
)


class FakeObjectStore:
    """In-memory stand-in for ObjectStore that records calls."""

    def __init__(self, bucket: str = "wiki", public_url_base: str = "https://cdn.example.com") -> None:
        self.bucket = bucket
        self.public_url_base = public_url_base
        self.deleted: list[tuple[str, str]] = []
        self.fail_deletes = False

    def delete_object(self, bucket: str, key: str) -> None:
        if self.fail_deletes:
            raise StorageError("delete_object", f"{bucket}/{key}: AccessDenied")
        self.deleted.append((bucket, key))

    def sign_upload(self, filename: str, content_type: str) -> dict[str, str]:
        key = f"tiddlers/{filename}"
        return {
            "upload_url": f"https://s3.example.com/{self.bucket}/{key}?signed=1",
            "public_url": f"{self.public_url_base}/{key}",
            "name": "fake",
            "key": key,
            "bucket": self.bucket,
            "region": "us-east-1",
        }


@pytest.fixture
def tmp_db(tmp_path):
    """Create a temporary SQLite database path."""
    return str(tmp_path / "tiddlers.db")


@pytest.fixture
def store(tmp_db):
    """Create a TiddlerStore with a temporary database."""
    s = TiddlerStore(tmp_db)
    yield s
    s.close()


@pytest.fixture
def files_dir(tmp_path):
    d = tmp_path / "files"
    d.mkdir()
    return d


@pytest.fixture
def template():
    return WikiTemplate.parse(CARRIER_HTML)


@pytest.fixture
def config(tmp_db, files_dir):
    return TiddlySyncConfig(
        server=ServerConfig(db_path=tmp_db, files_dir=str(files_dir)),
        s3=S3Config(bucket_name="wiki", public_url_base="https://cdn.example.com"),
    )


@pytest.fixture
def fake_object_store():
    return FakeObjectStore()


@pytest.fixture
def client(config, store, template):
    """HTTP client for an app without S3 or auth."""
    app = create_app(config, store=store, template=template)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def s3_client(config, store, template, fake_object_store):
    """HTTP client for an app with a fake object store."""
    app = create_app(config, store=store, template=template, object_store=fake_object_store)
    with TestClient(app) as c:
        yield c
