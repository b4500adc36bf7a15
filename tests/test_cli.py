# tests/test_cli.py

from __future__ import annotations

import json

import pytest

from taskion.cli.main import _run, build_parser
from taskion.core.state import AppState
from taskion.records.record_models import RecordKind

from .fakes import FakeRemoteAdapter


def test_parser_requires_due_date_for_tasks() -> None:
    parser = build_parser()
    with pytest.raises(SystemExit):
        parser.parse_args(["add-task", "Essay"])

    args = parser.parse_args(["add-task", "Essay", "--due", "2025-10-01", "--course", "c1"])
    assert (args.title, args.due_date, args.course_id, args.status) == ("Essay", "2025-10-01", "c1", "Not started")


@pytest.mark.asyncio
async def test_add_course_then_sync(state: AppState, remote: FakeRemoteAdapter, capsys) -> None:
    parser = build_parser()

    rc = await _run(parser.parse_args(["add-course", "Geometry", "--period", "2", "--day", "Thursday"]), state)
    assert rc == 0
    created = json.loads(capsys.readouterr().out)
    assert created["title"] == "Geometry"
    assert created["sync_state"] == "pending"

    rc = await _run(parser.parse_args(["sync"]), state)
    assert rc == 0
    stats = json.loads(capsys.readouterr().out)
    assert stats["courses_pushed"] == 1
    assert created["id"] in remote.records[RecordKind.COURSES]
    assert remote.closed is True


@pytest.mark.asyncio
async def test_unknown_id_exits_with_error_code(state: AppState) -> None:
    args = build_parser().parse_args(["archive", "tasks", "missing"])
    assert await _run(args, state) == 2
