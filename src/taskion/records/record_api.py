# src/taskion/records/record_api.py

from __future__ import annotations

import logging

from ..core.state import AppState
from ..errors import NotFoundError
from ..sync.sync_engine import SyncStats
from .record_models import (
    DEFAULT_TASK_STATUS,
    Course,
    NewCourseRequest,
    NewTaskRequest,
    RecordKind,
    Task,
)

logger = logging.getLogger(__name__)


def list_courses(state: AppState, *, include_archived: bool = False) -> list[Course]:
    store = state.store
    records = store.list_all(RecordKind.COURSES) if include_archived else store.list_active(RecordKind.COURSES)
    return [r for r in records if isinstance(r, Course)]


def list_tasks(
    state: AppState,
    *,
    include_archived: bool = False,
    course_id: str | None = None,
) -> list[Task]:
    store = state.store
    records = store.list_all(RecordKind.TASKS) if include_archived else store.list_active(RecordKind.TASKS)
    tasks = [r for r in records if isinstance(r, Task)]
    if course_id:
        tasks = [t for t in tasks if t.course_id == course_id]
    return tasks


def create_course(
    state: AppState,
    *,
    title: str,
    semester: str,
    day_of_week: str,
    period: int,
    room: str | None = None,
    instructor: str | None = None,
) -> Course:
    course = state.store.insert(
        RecordKind.COURSES,
        NewCourseRequest(
            title=title,
            semester=semester,
            day_of_week=day_of_week,
            period=period,
            room=room,
            instructor=instructor,
        ),
    )
    logger.info("Course created id=%s title=%s", course.id, course.title)
    return course  # type: ignore[return-value]


def create_task(
    state: AppState,
    *,
    course_id: str,
    title: str,
    due_date: str,
    status: str = DEFAULT_TASK_STATUS,
) -> Task:
    """
    Create a task.

    The course reference is stored as given; it is not checked against the
    courses table (a course may exist only remotely until the next pull).
    """
    task = state.store.insert(
        RecordKind.TASKS,
        NewTaskRequest(course_id=course_id, title=title, due_date=due_date, status=status),
    )
    logger.info("Task created id=%s course_id=%s", task.id, course_id)
    return task  # type: ignore[return-value]


def update_course(state: AppState, course_id: str, **fields) -> Course:
    course = state.store.update(RecordKind.COURSES, course_id, **fields)
    if course is None:
        raise NotFoundError(RecordKind.COURSES.value, course_id)
    return course  # type: ignore[return-value]


def update_task(state: AppState, task_id: str, **fields) -> Task:
    task = state.store.update(RecordKind.TASKS, task_id, **fields)
    if task is None:
        raise NotFoundError(RecordKind.TASKS.value, task_id)
    return task  # type: ignore[return-value]


def archive_record(state: AppState, kind: RecordKind, record_id: str) -> None:
    if not state.store.archive(kind, record_id):
        raise NotFoundError(RecordKind(kind).value, record_id)
    logger.info("Archived %s id=%s", RecordKind(kind).value, record_id)


def unarchive_record(state: AppState, kind: RecordKind, record_id: str) -> None:
    if not state.store.unarchive(kind, record_id):
        raise NotFoundError(RecordKind(kind).value, record_id)
    logger.info("Unarchived %s id=%s", RecordKind(kind).value, record_id)


async def trigger_sync(state: AppState) -> SyncStats:
    """Manual sync trigger. Raises SyncInProgressError if the scheduler is mid-run."""
    return await state.engine.run_sync()
