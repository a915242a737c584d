"""Shared fixtures for CLI tests."""

from __future__ import annotations

import pytest
from typer.testing import CliRunner

from tiddlysync.cli import app


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def cli_config(tmp_path, monkeypatch):
    """Write a config file that keeps the database and files under tmp_path."""
    for var in ("TIDDLYSYNC_CONFIG", "TIDDLYSYNC_DB", "TIDDLYSYNC_FILES_DIR"):
        monkeypatch.delenv(var, raising=False)
    path = tmp_path / "config.toml"
    path.write_text(
        "[server]\n"
        f"db_path = '{tmp_path / 'wiki.db'}'\n"
        f"files_dir = '{tmp_path / 'files'}'\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def cli_db(tmp_path):
    return tmp_path / "wiki.db"


@pytest.fixture
def invoke(runner, cli_config):
    """Invoke the CLI against the temporary config."""

    def _invoke(args: list[str]):
        args = ["--config", str(cli_config), "--log-level", "WARNING"] + args
        return runner.invoke(app, args, catch_exceptions=False)

    return _invoke


@pytest.fixture
def initialized_db(invoke, cli_db):
    result = invoke(["init"])
    assert result.exit_code == 0
    return cli_db
