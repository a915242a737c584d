"""S3-compatible object storage client used for direct uploads and cleanup."""

from __future__ import annotations

import hashlib
import logging
from typing import Any

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from tiddlysync.config import S3Config
from tiddlysync.errors import ResponseError, StorageError

logger = logging.getLogger(__name__)

UPLOAD_URL_TTL_S = 300
UPLOAD_KEY_PREFIX = "tiddlers"


def upload_key(filename: str) -> str:
    """Object key for a client upload: content-independent hash of the filename."""
    digest = hashlib.sha256(filename.encode("utf-8")).hexdigest()
    _, dot, ext = filename.rpartition(".")
    return f"{UPLOAD_KEY_PREFIX}/{digest}.{ext if dot else 'bin'}"


class ObjectStore:
    """Thin wrapper over a boto3 S3 client configured from ``[s3]``."""

    def __init__(self, config: S3Config, client: Any | None = None) -> None:
        self.name = config.name
        self.bucket = config.bucket_name
        self.public_url_base = config.public_url_base.rstrip("/")
        self.region = config.region
        if client is None:
            session = boto3.Session(
                aws_access_key_id=config.access_key or None,
                aws_secret_access_key=config.secret_key or None,
                region_name=config.region,
            )
            client = session.client(
                "s3",
                region_name=config.region,
                endpoint_url=config.endpoint or None,
                config=BotoConfig(
                    connect_timeout=config.request_timeout_s,
                    read_timeout=config.request_timeout_s,
                    retries={"max_attempts": 5, "mode": "standard"},
                    s3={"addressing_style": "path"},
                ),
            )
        self._s3 = client

    def presign_put(
        self, bucket: str, key: str, content_type: str, ttl: int = UPLOAD_URL_TTL_S
    ) -> str:
        try:
            return self._s3.generate_presigned_url(
                "put_object",
                Params={"Bucket": bucket, "Key": key, "ContentType": content_type},
                ExpiresIn=ttl,
            )
        except (BotoCoreError, ClientError) as e:
            raise ResponseError(f"S3 Presign failed: {e}") from e

    def delete_object(self, bucket: str, key: str) -> None:
        try:
            self._s3.delete_object(Bucket=bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise StorageError("delete_object", f"{bucket}/{key}: {e}") from e

    def sign_upload(self, filename: str, content_type: str) -> dict[str, str]:
        """Presign a direct client upload and describe where it will be served from."""
        key = upload_key(filename)
        upload_url = self.presign_put(self.bucket, key, content_type)
        return {
            "upload_url": upload_url,
            "public_url": f"{self.public_url_base}/{key}",
            "name": self.name,
            "key": key,
            "bucket": self.bucket,
            "region": self.region or "default",
        }


def open_object_store(config: S3Config) -> ObjectStore | None:
    if not config.enable:
        logger.warning("S3 integration is disabled in config")
        return None
    store = ObjectStore(config)
    logger.info("S3 client initialized for bucket: %s", config.bucket_name)
    return store
