# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskion.cli.bootstrap import create_initial_state
from taskion.core.state import AppState
from taskion.errors import ConfigurationError
from taskion.records.record_store import RecordStore

from .fakes import FakeRemoteAdapter


def _notion_not_configured():
    raise ConfigurationError("Notion is not configured (missing TASKION_NOTION_TOKEN).")


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the developer's environment / .env.
    """
    return SimpleNamespace(
        app_name="taskion-test",
        log_level="DEBUG",
        data_dir=tmp_path / "data",
        db_path=tmp_path / "data" / "taskion.sqlite3",
        sync_enabled=True,
        sync_interval_seconds=300,
        notion_config=_notion_not_configured,
    )


@pytest.fixture()
def store(tmp_path: Path) -> RecordStore:
    return RecordStore(tmp_path / "records.sqlite3")


@pytest.fixture()
def remote() -> FakeRemoteAdapter:
    return FakeRemoteAdapter()


@pytest.fixture()
def state(settings: SimpleNamespace, remote: FakeRemoteAdapter) -> AppState:
    """
    AppState wired with a fake remote.

    NOTE: We keep the real SQLite store here because its correctness is part of
    what we want to test.
    """
    return create_initial_state(settings=settings, remote=remote)
