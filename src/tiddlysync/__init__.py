"""tiddlysync: TiddlyWiki sync server backed by SQLite and S3-compatible storage."""

__version__ = "0.1.0"

from tiddlysync.config import TiddlySyncConfig, load_config
from tiddlysync.errors import (
    ConfigError,
    ResponseError,
    StorageError,
    TemplateError,
    TiddlySyncError,
    ValidationError,
)
from tiddlysync.storage import TiddlerStore, open_store
from tiddlysync.template import WikiTemplate
from tiddlysync.tiddler import Tiddler, format_tags

__all__ = [
    "__version__",
    "Tiddler",
    "format_tags",
    "TiddlerStore",
    "open_store",
    "WikiTemplate",
    "TiddlySyncConfig",
    "load_config",
    "TiddlySyncError",
    "StorageError",
    "ValidationError",
    "ResponseError",
    "TemplateError",
    "ConfigError",
]
