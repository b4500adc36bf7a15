# tests/test_logging_setup.py

from __future__ import annotations

import logging

import pytest

from taskion.logging_setup import _ConsoleNoiseFilter


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


@pytest.mark.parametrize(
    ("name", "level", "shown"),
    [
        ("taskion.sync.sync_scheduler", logging.INFO, True),
        ("taskion.cli.main", logging.INFO, True),
        ("taskion.sync.sync_engine", logging.INFO, False),
        ("taskion.sync.sync_engine", logging.WARNING, True),
        ("taskion.remote.notion_client", logging.INFO, False),
        ("taskion.remote.notion_client", logging.WARNING, True),
        ("taskion.records.record_store", logging.INFO, False),
        ("httpx", logging.WARNING, False),
        ("httpx", logging.ERROR, True),
        ("py.warnings", logging.WARNING, False),
    ],
)
def test_console_filter_keeps_one_line_per_tick(name: str, level: int, shown: bool) -> None:
    assert _ConsoleNoiseFilter().filter(_record(name, level)) is shown
