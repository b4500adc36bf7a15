# src/taskion/records/record_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class SyncState(StrEnum):
    """
    Per-record sync bookkeeping.

    Notes:
    - PENDING: local has changes the remote has not confirmed yet.
    - SYNCED: local matches what was last pushed or pulled.
    - Older databases may contain "conflict"; it reads back as PENDING so the
      record is pushed again on the next run.
    """

    PENDING = "pending"
    SYNCED = "synced"

    @classmethod
    def from_db(cls, raw: str | None) -> SyncState:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING


class RecordKind(StrEnum):
    """Synced collections. The value doubles as the SQLite table name."""

    COURSES = "courses"
    TASKS = "tasks"


# Courses first, so a task's course reference is more likely reconciled already.
SYNC_ORDER: tuple[RecordKind, ...] = (RecordKind.COURSES, RecordKind.TASKS)

DEFAULT_TASK_STATUS = "Not started"


@dataclass(slots=True)
class Course:
    id: str
    title: str
    semester: str
    day_of_week: str
    period: int

    room: str | None
    instructor: str | None

    is_archived: bool
    updated_at: str
    sync_state: SyncState
    last_synced_at: str | None = None


@dataclass(slots=True)
class Task:
    id: str
    course_id: str
    title: str
    due_date: str
    status: str

    completed_at: str | None

    is_archived: bool
    updated_at: str
    sync_state: SyncState
    last_synced_at: str | None = None


Record = Course | Task


@dataclass(slots=True, frozen=True)
class NewCourseRequest:
    title: str
    semester: str
    day_of_week: str
    period: int
    room: str | None = None
    instructor: str | None = None


@dataclass(slots=True, frozen=True)
class NewTaskRequest:
    course_id: str
    title: str
    due_date: str
    status: str = DEFAULT_TASK_STATUS


NewRecordRequest = NewCourseRequest | NewTaskRequest
