# tests/test_record_api.py

from __future__ import annotations

import pytest

from taskion.core.state import AppState
from taskion.errors import BadRequestError, NotFoundError
from taskion.records import record_api
from taskion.records.record_models import RecordKind, SyncState

from .fakes import FakeRemoteAdapter


def test_state_wiring(state: AppState, remote: FakeRemoteAdapter) -> None:
    assert state.remote is remote
    assert state.remote_enabled is True
    assert state.scheduler is not None
    assert state.store.ping() is True


def test_create_and_list(state: AppState) -> None:
    course = record_api.create_course(
        state, title="Operating Systems", semester="Fall", day_of_week="Wednesday", period=3, room="C-1"
    )
    record_api.create_task(state, course_id=course.id, title="Read chapter 1", due_date="2025-10-01")
    record_api.create_task(state, course_id="other", title="Unrelated", due_date="2025-10-02")

    assert [c.id for c in record_api.list_courses(state)] == [course.id]
    tasks = record_api.list_tasks(state, course_id=course.id)
    assert [t.title for t in tasks] == ["Read chapter 1"]
    assert len(record_api.list_tasks(state)) == 2

    with pytest.raises(BadRequestError):
        record_api.create_course(state, title="", semester="", day_of_week="", period=0)


def test_update_and_archive(state: AppState) -> None:
    task = record_api.create_task(state, course_id="c1", title="Essay", due_date="2025-10-01")

    done = record_api.update_task(state, task.id, status="Done", completed_at="2025-09-30")
    assert done.status == "Done"
    assert done.completed_at == "2025-09-30"

    record_api.archive_record(state, RecordKind.TASKS, task.id)
    assert record_api.list_tasks(state) == []
    assert [t.id for t in record_api.list_tasks(state, include_archived=True)] == [task.id]

    record_api.unarchive_record(state, RecordKind.TASKS, task.id)
    assert [t.id for t in record_api.list_tasks(state)] == [task.id]


def test_missing_ids_raise_not_found(state: AppState) -> None:
    with pytest.raises(NotFoundError) as exc_info:
        record_api.update_course(state, "missing", title="x")
    assert exc_info.value.record_id == "missing"

    with pytest.raises(NotFoundError):
        record_api.update_task(state, "missing", status="Done")
    with pytest.raises(NotFoundError):
        record_api.archive_record(state, RecordKind.COURSES, "missing")
    with pytest.raises(NotFoundError):
        record_api.unarchive_record(state, RecordKind.TASKS, "missing")


@pytest.mark.asyncio
async def test_trigger_sync_pushes_local_changes(state: AppState, remote: FakeRemoteAdapter) -> None:
    course = record_api.create_course(state, title="Physics", semester="Spring", day_of_week="Monday", period=1)

    stats = await record_api.trigger_sync(state)

    assert stats.courses.pushed == 1
    assert course.id in remote.records[RecordKind.COURSES]
    assert state.store.find_by_id(RecordKind.COURSES, course.id).sync_state == SyncState.SYNCED
