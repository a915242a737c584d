"""Configuration for the tiddlysync server.

config.toml example:

    [server]
    bind = "127.0.0.1"
    port = 3000
    db_path = "data/tiddlers.db"
    files_dir = "data/files"
    # template_path = "empty.html"   # a real TiddlyWiki empty.html with the
    #                                # tiddlyweb plugin; the bundled default is a
    #                                # placeholder page without the TiddlyWiki core
    # seed_files = ["plugins/s3_uploader_plugin.json"]

    [s3]
    enable = false
    name = "minio"
    access_key = ""
    secret_key = ""
    endpoint = "http://127.0.0.1:9000"
    region = "us-east-1"
    bucket_name = "tiddlers"
    public_url_base = "http://127.0.0.1:9000/tiddlers"

    [status]
    username = "anonymous"

    [auth]              # omit the whole section to run without a password
    username = "me"
    password = "secret"
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from tiddlysync.errors import ConfigError

DEFAULT_CONFIG_PATH = "config.toml"
DEFAULT_TIDDLYWIKI_VERSION = "5.3.8"


@dataclass
class ServerConfig:
    bind: str = "127.0.0.1"
    port: int = 3000
    db_path: str = "data/tiddlers.db"
    files_dir: str = "data/files"
    template_path: str | None = None
    seed_files: list[str] = field(default_factory=list)
    max_body_bytes: int = 20 * 1024 * 1024


@dataclass
class S3Config:
    enable: bool = False
    name: str = ""
    access_key: str = ""
    secret_key: str = ""
    endpoint: str = ""
    region: str = "us-east-1"
    bucket_name: str = ""
    public_url_base: str = ""
    request_timeout_s: float = 10.0


@dataclass
class SpaceConfig:
    recipe: str = "default"


@dataclass
class StatusConfig:
    """Server identity reported on /status."""

    username: str = "anonymous"
    anonymous: bool = False
    read_only: bool = False
    space: SpaceConfig = field(default_factory=SpaceConfig)
    tiddlywiki_version: str = DEFAULT_TIDDLYWIKI_VERSION

    def as_dict(self) -> dict[str, Any]:
        return {
            "username": self.username,
            "anonymous": self.anonymous,
            "read_only": self.read_only,
            "space": {"recipe": self.space.recipe},
            "tiddlywiki_version": self.tiddlywiki_version,
        }


@dataclass
class AuthConfig:
    username: str
    password: str


@dataclass
class TiddlySyncConfig:
    """Top-level configuration for the tiddlysync server."""

    server: ServerConfig = field(default_factory=ServerConfig)
    s3: S3Config = field(default_factory=S3Config)
    status: StatusConfig = field(default_factory=StatusConfig)
    auth: AuthConfig | None = None


def _section(cls: type, data: Any, name: str) -> Any:
    if not isinstance(data, dict):
        raise ConfigError(f"[{name}] must be a table")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown key(s) in [{name}]: {', '.join(unknown)}")
    try:
        return cls(**data)
    except TypeError as e:
        raise ConfigError(f"Invalid [{name}] section: {e}") from e


def config_from_dict(data: dict[str, Any]) -> TiddlySyncConfig:
    """Build a config from an already-parsed TOML document."""
    config = TiddlySyncConfig()
    if "server" in data:
        config.server = _section(ServerConfig, data["server"], "server")
    if "s3" in data:
        config.s3 = _section(S3Config, data["s3"], "s3")
    if "status" in data:
        if not isinstance(data["status"], dict):
            raise ConfigError("[status] must be a table")
        raw_status = dict(data["status"])
        space = raw_status.pop("space", None)
        config.status = _section(StatusConfig, raw_status, "status")
        if space is not None:
            config.status.space = _section(SpaceConfig, space, "status.space")
    if data.get("auth") is not None:
        config.auth = _section(AuthConfig, data["auth"], "auth")
    return config


def _apply_env(config: TiddlySyncConfig) -> TiddlySyncConfig:
    """Overlay TIDDLYSYNC_* environment variables onto a loaded config."""
    env = os.environ
    server = config.server
    server.bind = env.get("TIDDLYSYNC_BIND", server.bind)
    if env.get("TIDDLYSYNC_PORT"):
        try:
            server.port = int(env["TIDDLYSYNC_PORT"])
        except ValueError as e:
            raise ConfigError(f"TIDDLYSYNC_PORT must be an integer: {e}") from e
    server.db_path = env.get("TIDDLYSYNC_DB", server.db_path)
    server.files_dir = env.get("TIDDLYSYNC_FILES_DIR", server.files_dir)

    s3 = config.s3
    s3.access_key = env.get("TIDDLYSYNC_S3_ACCESS_KEY", s3.access_key)
    s3.secret_key = env.get("TIDDLYSYNC_S3_SECRET_KEY", s3.secret_key)
    s3.endpoint = env.get("TIDDLYSYNC_S3_ENDPOINT", s3.endpoint)
    s3.region = env.get("TIDDLYSYNC_S3_REGION", s3.region)

    username = env.get("TIDDLYSYNC_AUTH_USERNAME")
    password = env.get("TIDDLYSYNC_AUTH_PASSWORD")
    if username and password:
        config.auth = AuthConfig(username=username, password=password)
    return config


def load_config(path: str | os.PathLike[str] | None = None) -> TiddlySyncConfig:
    """Load configuration from a TOML file, then apply environment overrides.

    A missing file is not an error: the defaults are used.
    """
    config_path = Path(path or DEFAULT_CONFIG_PATH)
    if not config_path.exists():
        return _apply_env(TiddlySyncConfig())
    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Failed to parse config file {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config file {config_path}: {e}") from e
    return _apply_env(config_from_dict(data))
