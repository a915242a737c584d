"""Process-wide logging setup."""

from __future__ import annotations

import logging
import os

LOG_ENV_VAR = "TIDDLYSYNC_LOG"
LOG_FORMAT = "%(asctime)s %(levelname)-5s %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging; ``level`` falls back to $TIDDLYSYNC_LOG, then INFO."""
    name = (level or os.environ.get(LOG_ENV_VAR) or "INFO").upper()
    logging.basicConfig(
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        level=getattr(logging, name, logging.INFO),
        force=True,
    )
