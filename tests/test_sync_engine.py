# tests/test_sync_engine.py

from __future__ import annotations

import asyncio

import pytest

from taskion.cli.bootstrap import create_initial_state
from taskion.errors import RemoteError, SyncInProgressError
from taskion.records.record_models import NewCourseRequest, RecordKind, SyncState
from taskion.records.record_store import RecordStore
from taskion.remote.offline import DisabledRemoteAdapter
from taskion.sync.sync_engine import SyncEngine, SyncStats, local_is_newer

from .fakes import FakeRemoteAdapter, make_course, make_task


@pytest.mark.asyncio
async def test_pending_records_are_pushed_once(store: RecordStore, remote: FakeRemoteAdapter) -> None:
    engine = SyncEngine(store, remote)
    course = store.insert(
        RecordKind.COURSES,
        NewCourseRequest(title="Algorithms", semester="Spring", day_of_week="Monday", period=1),
    )

    first = await engine.run_sync()
    assert first.courses.pushed == 1
    assert remote.pushed == [(RecordKind.COURSES, course.id)]

    stored = store.find_by_id(RecordKind.COURSES, course.id)
    assert stored.sync_state == SyncState.SYNCED
    assert stored.last_synced_at is not None

    second = await engine.run_sync()
    assert second.courses.pushed == 0
    assert second.tasks.pushed == 0
    assert len(remote.pushed) == 1


@pytest.mark.asyncio
async def test_run_syncs_courses_before_tasks(store: RecordStore, remote: FakeRemoteAdapter) -> None:
    engine = SyncEngine(store, remote)
    store.upsert(RecordKind.TASKS, make_task("t1", sync_state=SyncState.PENDING))
    store.upsert(RecordKind.COURSES, make_course("c1", sync_state=SyncState.PENDING))

    await engine.run_sync()

    assert remote.pushed == [(RecordKind.COURSES, "c1"), (RecordKind.TASKS, "t1")]
    assert remote.fetched == [RecordKind.COURSES, RecordKind.TASKS]


@pytest.mark.asyncio
async def test_pull_never_overwrites_pending_local(store: RecordStore, remote: FakeRemoteAdapter) -> None:
    engine = SyncEngine(store, remote)
    store.upsert(
        RecordKind.COURSES,
        make_course("c1", title="Local edit", updated_at="2025-01-01T00:00:00+00:00", sync_state=SyncState.PENDING),
    )
    remote.add(RecordKind.COURSES, make_course("c1", title="Remote edit", updated_at="2025-09-01T00:00:00+00:00"))

    stats = await engine.pull(RecordKind.COURSES)

    assert stats.skipped == 1
    assert stats.pulled == 0
    local = store.find_by_id(RecordKind.COURSES, "c1")
    assert local.title == "Local edit"
    assert local.sync_state == SyncState.PENDING


@pytest.mark.asyncio
async def test_pull_keeps_newer_local_copy(store: RecordStore, remote: FakeRemoteAdapter) -> None:
    engine = SyncEngine(store, remote)
    store.upsert(RecordKind.TASKS, make_task("t1", title="Local", updated_at="2025-06-01T12:00:00+00:00"))
    remote.add(RecordKind.TASKS, make_task("t1", title="Remote", updated_at="2025-06-01T11:00:00Z"))

    stats = await engine.pull(RecordKind.TASKS)

    assert stats.skipped == 1
    assert store.find_by_id(RecordKind.TASKS, "t1").title == "Local"


@pytest.mark.asyncio
async def test_pull_remote_wins_when_timestamp_is_unparsable(store: RecordStore, remote: FakeRemoteAdapter) -> None:
    engine = SyncEngine(store, remote)
    store.upsert(RecordKind.TASKS, make_task("t1", title="Local", updated_at="not-a-timestamp"))
    remote.add(RecordKind.TASKS, make_task("t1", title="Remote", updated_at="2020-01-01T00:00:00+00:00"))

    stats = await engine.pull(RecordKind.TASKS)

    assert stats.pulled == 1
    pulled = store.find_by_id(RecordKind.TASKS, "t1")
    assert pulled.title == "Remote"
    assert pulled.sync_state == SyncState.SYNCED


@pytest.mark.asyncio
async def test_pull_inserts_new_remote_records_as_synced(store: RecordStore, remote: FakeRemoteAdapter) -> None:
    engine = SyncEngine(store, remote)
    remote.add(RecordKind.COURSES, make_course("remote-only", title="Compilers"))

    stats = await engine.run_sync()

    assert stats.courses.pulled == 1
    course = store.find_by_id(RecordKind.COURSES, "remote-only")
    assert course.title == "Compilers"
    assert course.sync_state == SyncState.SYNCED
    assert course.last_synced_at is not None


@pytest.mark.asyncio
async def test_records_missing_upstream_are_archived(store: RecordStore, remote: FakeRemoteAdapter) -> None:
    engine = SyncEngine(store, remote)
    store.upsert(RecordKind.COURSES, make_course("kept"))
    store.upsert(RecordKind.COURSES, make_course("gone"))
    store.upsert(RecordKind.COURSES, make_course("local-edit", sync_state=SyncState.PENDING))
    remote.add(RecordKind.COURSES, make_course("kept"))

    stats = await engine.pull(RecordKind.COURSES)

    assert stats.archived == 1
    assert store.find_by_id(RecordKind.COURSES, "gone").is_archived is True
    assert store.find_by_id(RecordKind.COURSES, "kept").is_archived is False
    assert store.find_by_id(RecordKind.COURSES, "local-edit").is_archived is False


@pytest.mark.asyncio
async def test_reconciliation_can_be_disabled(store: RecordStore, remote: FakeRemoteAdapter) -> None:
    engine = SyncEngine(store, remote, reconcile_archives=False)
    store.upsert(RecordKind.COURSES, make_course("gone"))

    stats = await engine.pull(RecordKind.COURSES)

    assert stats.archived == 0
    assert store.find_by_id(RecordKind.COURSES, "gone").is_archived is False


@pytest.mark.asyncio
async def test_local_only_round_trip(settings) -> None:
    state = create_initial_state(settings=settings, remote=DisabledRemoteAdapter())
    assert state.remote_enabled is False

    course = state.store.insert(
        RecordKind.COURSES,
        NewCourseRequest(title="Statistics", semester="Fall", day_of_week="Friday", period=4),
    )

    stats = await state.engine.run_sync()

    assert stats.courses.pushed == 1
    stored = state.store.find_by_id(RecordKind.COURSES, course.id)
    assert stored.sync_state == SyncState.SYNCED
    assert stored.last_synced_at is not None
    assert stored.is_archived is False


@pytest.mark.asyncio
async def test_push_failure_aborts_run_and_keeps_progress(store: RecordStore, remote: FakeRemoteAdapter) -> None:
    engine = SyncEngine(store, remote)
    store.upsert(RecordKind.COURSES, make_course("a", updated_at="2025-03-01T00:00:00+00:00", sync_state=SyncState.PENDING))
    store.upsert(RecordKind.COURSES, make_course("b", updated_at="2025-01-01T00:00:00+00:00", sync_state=SyncState.PENDING))
    remote.fail_push_ids = {"b"}

    with pytest.raises(RemoteError):
        await engine.run_sync()

    assert store.find_by_id(RecordKind.COURSES, "a").sync_state == SyncState.SYNCED
    assert store.find_by_id(RecordKind.COURSES, "b").sync_state == SyncState.PENDING
    # The run stopped before any pull.
    assert remote.fetched == []
    assert engine.busy is False

    remote.fail_push_ids.clear()
    stats = await engine.run_sync()
    assert stats.courses.pushed == 1


@pytest.mark.asyncio
async def test_fetch_failure_propagates(store: RecordStore, remote: FakeRemoteAdapter) -> None:
    engine = SyncEngine(store, remote)
    remote.fail_fetch = True

    with pytest.raises(RemoteError) as exc_info:
        await engine.run_sync()
    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_overlapping_runs_are_rejected(store: RecordStore, remote: FakeRemoteAdapter) -> None:
    engine = SyncEngine(store, remote)
    remote.fetch_gate = asyncio.Event()

    first = asyncio.create_task(engine.run_sync())
    for _ in range(10):
        await asyncio.sleep(0)
        if engine.busy:
            break
    assert engine.busy is True

    with pytest.raises(SyncInProgressError):
        await engine.run_sync()

    remote.fetch_gate.set()
    stats = await first
    assert isinstance(stats, SyncStats)
    assert engine.busy is False


def test_local_is_newer_requires_both_timestamps() -> None:
    newer = make_task(updated_at="2025-05-01T10:00:00+02:00")
    older = make_task(updated_at="2025-05-01T07:59:59+00:00")
    naive = make_task(updated_at="2025-05-01T10:00:00")

    assert local_is_newer(newer, older) is True
    assert local_is_newer(older, newer) is False
    assert local_is_newer(naive, older) is False
    assert local_is_newer(newer, naive) is False


def test_stats_as_dict_is_flat() -> None:
    stats = SyncStats()
    stats.courses.pushed = 2
    stats.tasks.archived = 1

    out = stats.as_dict()
    assert out["courses_pushed"] == 2
    assert out["tasks_archived"] == 1
    assert set(out) == {
        f"{kind}_{field}"
        for kind in ("courses", "tasks")
        for field in ("pushed", "pulled", "skipped", "archived")
    }


@pytest.mark.asyncio
async def test_engines_sharing_a_database_do_not_push_twice(tmp_path, remote: FakeRemoteAdapter) -> None:
    db = tmp_path / "shared.sqlite3"
    serve_store, cli_store = RecordStore(db), RecordStore(db)
    serve_engine = SyncEngine(serve_store, remote)
    cli_engine = SyncEngine(cli_store, remote)
    course = serve_store.insert(
        RecordKind.COURSES,
        NewCourseRequest(title="Chemistry", semester="Fall", day_of_week="Monday", period=1),
    )

    remote.fetch_gate = asyncio.Event()
    first = asyncio.create_task(serve_engine.run_sync())
    for _ in range(10):
        await asyncio.sleep(0)
        if remote.pushed:
            break

    with pytest.raises(SyncInProgressError):
        await cli_engine.run_sync()

    remote.fetch_gate.set()
    await first
    assert remote.pushed == [(RecordKind.COURSES, course.id)]

    # Lease released: the other engine can run now and has nothing to push.
    stats = await cli_engine.run_sync()
    assert stats.courses.pushed == 0
    assert remote.pushed == [(RecordKind.COURSES, course.id)]


@pytest.mark.asyncio
async def test_concurrent_engines_push_each_record_once(tmp_path, remote: FakeRemoteAdapter) -> None:
    db = tmp_path / "shared.sqlite3"
    a, b = SyncEngine(RecordStore(db), remote), SyncEngine(RecordStore(db), remote)
    RecordStore(db).insert(
        RecordKind.COURSES,
        NewCourseRequest(title="Biology", semester="Fall", day_of_week="Friday", period=2),
    )

    results = await asyncio.gather(a.run_sync(), b.run_sync(), return_exceptions=True)

    assert len(remote.pushed) == 1
    for result in results:
        assert isinstance(result, (SyncStats, SyncInProgressError))


@pytest.mark.asyncio
async def test_failed_run_releases_lease(store: RecordStore, remote: FakeRemoteAdapter) -> None:
    engine = SyncEngine(store, remote)
    remote.fail_fetch = True

    with pytest.raises(RemoteError):
        await engine.run_sync()

    assert store.try_acquire_sync_lease("someone-else") is True
