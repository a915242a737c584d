"""Structured error types for tiddlysync."""

from __future__ import annotations


class TiddlySyncError(Exception):
    """Base error for all tiddlysync errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class StorageError(TiddlySyncError):
    """Raised when the tiddler database fails an operation."""

    def __init__(self, operation: str, detail: str) -> None:
        self.operation = operation
        self.detail = detail
        super().__init__(f"Storage error during {operation}: {detail}")


class ValidationError(TiddlySyncError):
    """Raised when an incoming tiddler document is malformed."""


class ResponseError(TiddlySyncError):
    """Raised when an outgoing response cannot be built."""


class TemplateError(TiddlySyncError):
    """Raised when the wiki carrier page has no usable tiddler store."""


class ConfigError(TiddlySyncError):
    """Raised when the configuration file cannot be loaded."""
