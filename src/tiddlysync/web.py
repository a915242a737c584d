"""FastAPI application speaking the TiddlyWeb protocol."""

from __future__ import annotations

import base64
import binascii
import json
import logging
import secrets
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import BackgroundTasks, FastAPI, HTTPException, Request
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, Response
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from tiddlysync import __version__
from tiddlysync.cleanup import StorageCleaner
from tiddlysync.config import AuthConfig, TiddlySyncConfig
from tiddlysync.errors import ResponseError, TiddlySyncError, ValidationError
from tiddlysync.objectstore import ObjectStore, open_object_store
from tiddlysync.storage import TiddlerStore, open_store
from tiddlysync.template import WikiTemplate
from tiddlysync.wiki import Wiki, etag

logger = logging.getLogger(__name__)

AUTH_REALM = 'Basic realm="TiddlyWiki Server"'
BODY_TOO_LARGE = "Request body too large"


class InboxRequest(BaseModel):
    text: str
    tags: str | None = None


def check_basic_auth(header: str | None, auth: AuthConfig) -> bool:
    """Check an Authorization header against the configured credentials."""
    if not header or not header.startswith("Basic "):
        return False
    try:
        decoded = base64.b64decode(header[len("Basic ") :], validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return False
    username, sep, password = decoded.partition(":")
    if not sep:
        return False
    return secrets.compare_digest(username, auth.username) and secrets.compare_digest(
        password, auth.password
    )


class BodyLimitMiddleware:
    """Reject request bodies over ``max_bytes``, declared or streamed."""

    def __init__(self, app: ASGIApp, max_bytes: int) -> None:
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        length = Headers(scope=scope).get("content-length")
        if length is not None and length.isdigit() and int(length) > self.max_bytes:
            response = PlainTextResponse(BODY_TOO_LARGE, status_code=413)
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    raise HTTPException(status_code=413, detail=BODY_TOO_LARGE)
            return message

        await self.app(scope, limited_receive, send)


def create_app(
    config: TiddlySyncConfig,
    *,
    store: TiddlerStore | None = None,
    template: WikiTemplate | None = None,
    object_store: ObjectStore | None = None,
) -> FastAPI:
    """Build the wiki server. Missing collaborators are created from ``config``."""
    owns_store = store is None
    if store is None:
        store = open_store(config.server.db_path, config.server.seed_files)
    if template is None:
        if config.server.template_path is None:
            logger.warning(
                "No [server].template_path configured; serving the bundled placeholder page, "
                "which has no TiddlyWiki core. Point template_path at a real empty.html."
            )
        template = WikiTemplate.load(config.server.template_path)
    if object_store is None and config.s3.enable:
        object_store = open_object_store(config.s3)

    cleaner = StorageCleaner(
        config.server.files_dir,
        object_store=object_store,
        bucket=config.s3.bucket_name,
        public_url_base=config.s3.public_url_base,
    )
    wiki = Wiki(store, template, config.server.files_dir, cleaner)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        if owns_store:
            store.close()

    app = FastAPI(
        title="tiddlysync",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )
    app.state.wiki = wiki
    app.state.object_store = object_store

    @app.exception_handler(TiddlySyncError)
    async def _tiddlysync_error(_request: Request, exc: TiddlySyncError) -> PlainTextResponse:
        logger.error("%s: %s", type(exc).__name__, exc.message)
        return PlainTextResponse(exc.message, status_code=500)

    auth = config.auth
    if auth is not None:

        @app.middleware("http")
        async def _basic_auth(request: Request, call_next: Any) -> Response:
            if check_basic_auth(request.headers.get("authorization"), auth):
                return await call_next(request)
            logger.warning("Unauthorized access attempt: %s %s", request.method, request.url.path)
            return Response(status_code=401, headers={"WWW-Authenticate": AUTH_REALM})

    app.add_middleware(BodyLimitMiddleware, max_bytes=config.server.max_body_bytes)
    app.add_middleware(GZipMiddleware, minimum_size=1024)

    # --- TiddlyWeb routes ---

    @app.get("/", response_class=HTMLResponse)
    def render_wiki() -> HTMLResponse:
        return HTMLResponse(wiki.render())

    @app.get("/status")
    def status() -> JSONResponse:
        return JSONResponse(config.status.as_dict())

    @app.get("/recipes/default/tiddlers.json")
    def all_tiddlers() -> JSONResponse:
        return JSONResponse(wiki.skinny_documents())

    @app.get("/recipes/default/tiddlers/{title:path}")
    def get_tiddler(title: str) -> Response:
        document = wiki.get_document(title)
        if document is None:
            return Response(status_code=404)
        try:
            body = json.dumps(document, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise ResponseError(f"error serializing tiddler: {e}") from e
        return Response(body, media_type="application/json")

    @app.put("/recipes/default/tiddlers/{title:path}")
    async def put_tiddler(title: str, request: Request) -> Response:
        try:
            document = json.loads(await request.body())
        except ValueError as e:
            raise ValidationError(f"request body is not valid JSON: {e}") from e
        revision = await run_in_threadpool(wiki.put_document, title, document)
        return Response(status_code=204, headers={"Etag": etag(title, revision)})

    @app.delete("/bags/default/tiddlers/{title:path}")
    @app.delete("/bags/efault/tiddlers/{title:path}")
    def delete_tiddler(title: str, background_tasks: BackgroundTasks) -> Response:
        deleted = wiki.delete(title)
        if deleted is not None:
            background_tasks.add_task(wiki.cleaner.clean, deleted)
        return Response(status_code=204)

    # --- Extensions ---

    @app.get("/api/sign-upload")
    def sign_upload(filename: str, content_type: str) -> JSONResponse:
        if object_store is None:
            raise ResponseError("S3 is not enabled in configuration")
        return JSONResponse(object_store.sign_upload(filename, content_type))

    @app.post("/api/inbox")
    def add_inbox_item(payload: InboxRequest) -> JSONResponse:
        tiddler = wiki.add_inbox(payload.text, payload.tags)
        return JSONResponse(
            {"status": "ok", "title": tiddler.title, "created": tiddler.meta["created"]}
        )

    app.mount("/files", StaticFiles(directory=str(wiki.files_dir)), name="files")
    return app
