# src/taskion/records/record_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
import uuid
from dataclasses import asdict
from pathlib import Path
from typing import Any

from ..errors import BadRequestError
from ..timestamps import utc_now_iso
from .record_models import (
    Course,
    NewCourseRequest,
    NewRecordRequest,
    NewTaskRequest,
    Record,
    RecordKind,
    SyncState,
    Task,
)

logger = logging.getLogger(__name__)

# Columns written by upsert (everything except the key and the sync bookkeeping).
_CONTENT_COLUMNS: dict[RecordKind, tuple[str, ...]] = {
    RecordKind.COURSES: (
        "title",
        "semester",
        "day_of_week",
        "period",
        "room",
        "instructor",
        "is_archived",
        "updated_at",
    ),
    RecordKind.TASKS: (
        "course_id",
        "title",
        "due_date",
        "status",
        "completed_at",
        "is_archived",
        "updated_at",
    ),
}

# Columns a local edit may change.
_UPDATABLE_COLUMNS: dict[RecordKind, frozenset[str]] = {
    RecordKind.COURSES: frozenset({"title", "semester", "day_of_week", "period", "room", "instructor"}),
    RecordKind.TASKS: frozenset({"course_id", "title", "due_date", "status", "completed_at"}),
}

_SYNC_COLUMNS = ("sync_state", "last_synced_at")


class RecordStore:
    """
    SQLite store for courses and tasks.

    The schema is migration-safe the same way for both tables:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Sync bookkeeping rules:
    - insert / update / archive / unarchive -> sync_state = pending, updated_at = now
    - upsert never changes sync_state of an existing row (the sync engine stamps it)
    - mark_synced -> sync_state = synced, last_synced_at = given timestamp

    Thread-safety:
    - each method opens its own SQLite connection, so every call is atomic on
      its own and safe to interleave with request handling
    """

    def __init__(self, db_path: str | Path = "taskion.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info(
            "RecordStore ready db=%s courses=%s tasks=%s",
            self._db_path,
            self.count(RecordKind.COURSES),
            self.count(RecordKind.TASKS),
        )

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.DatabaseError):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS courses (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    semester TEXT NOT NULL DEFAULT '',
                    day_of_week TEXT NOT NULL DEFAULT '',
                    period INTEGER NOT NULL DEFAULT 0,
                    room TEXT,
                    instructor TEXT,
                    is_archived INTEGER NOT NULL DEFAULT 0,
                    updated_at TEXT NOT NULL,
                    sync_state TEXT NOT NULL DEFAULT 'pending',
                    last_synced_at TEXT
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    course_id TEXT NOT NULL DEFAULT '',
                    title TEXT NOT NULL,
                    due_date TEXT NOT NULL,
                    status TEXT NOT NULL,
                    completed_at TEXT,
                    is_archived INTEGER NOT NULL DEFAULT 0,
                    updated_at TEXT NOT NULL,
                    sync_state TEXT NOT NULL DEFAULT 'pending',
                    last_synced_at TEXT
                )
                """
            )

            # Migrations (safe): add missing columns.
            def add_cols(table: str, wanted: dict[str, str]) -> None:
                cur.execute(f"PRAGMA table_info({table})")
                cols = {row["name"] for row in cur.fetchall()}
                for name, decl in wanted.items():
                    if name in cols:
                        continue
                    cur.execute(f"ALTER TABLE {table} ADD COLUMN {name} {decl}")
                    logger.info("RecordStore migration: added column %s.%s", table, name)

            add_cols(
                "courses",
                {
                    "room": "TEXT",
                    "instructor": "TEXT",
                    "is_archived": "INTEGER NOT NULL DEFAULT 0",
                    "sync_state": "TEXT NOT NULL DEFAULT 'pending'",
                    "last_synced_at": "TEXT",
                },
            )
            add_cols(
                "tasks",
                {
                    "course_id": "TEXT NOT NULL DEFAULT ''",
                    "completed_at": "TEXT",
                    "is_archived": "INTEGER NOT NULL DEFAULT 0",
                    "sync_state": "TEXT NOT NULL DEFAULT 'pending'",
                    "last_synced_at": "TEXT",
                },
            )

            cur.execute("CREATE INDEX IF NOT EXISTS idx_courses_sync_state ON courses(sync_state)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_sync_state ON tasks(sync_state)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_course_id ON tasks(course_id)")

            # Single-row lease shared by every process using this database file.
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS sync_lease (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    owner TEXT NOT NULL,
                    expires_at REAL NOT NULL
                )
                """
            )

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _table(kind: RecordKind | str) -> RecordKind:
        # Normalizes str -> RecordKind; the enum value is the only thing ever
        # interpolated into SQL.
        try:
            return RecordKind(kind)
        except ValueError as e:
            raise BadRequestError(f"Unknown record kind: {kind!r}") from e

    @staticmethod
    def _row_to_record(kind: RecordKind, row: sqlite3.Row) -> Record:
        if kind is RecordKind.COURSES:
            return Course(
                id=str(row["id"]),
                title=str(row["title"] or ""),
                semester=str(row["semester"] or ""),
                day_of_week=str(row["day_of_week"] or ""),
                period=int(row["period"] or 0),
                room=row["room"],
                instructor=row["instructor"],
                is_archived=bool(row["is_archived"]),
                updated_at=str(row["updated_at"] or ""),
                sync_state=SyncState.from_db(row["sync_state"]),
                last_synced_at=row["last_synced_at"],
            )
        return Task(
            id=str(row["id"]),
            course_id=str(row["course_id"] or ""),
            title=str(row["title"] or ""),
            due_date=str(row["due_date"] or ""),
            status=str(row["status"] or ""),
            completed_at=row["completed_at"],
            is_archived=bool(row["is_archived"]),
            updated_at=str(row["updated_at"] or ""),
            sync_state=SyncState.from_db(row["sync_state"]),
            last_synced_at=row["last_synced_at"],
        )

    @staticmethod
    def _record_to_params(record: Record) -> dict[str, Any]:
        params = asdict(record)
        params["is_archived"] = 1 if record.is_archived else 0
        params["sync_state"] = SyncState(record.sync_state).value
        return params

    @staticmethod
    def _check_record_type(kind: RecordKind, record: Any) -> None:
        expected = Course if kind is RecordKind.COURSES else Task
        if not isinstance(record, expected):
            raise BadRequestError(
                f"Expected {expected.__name__} for kind={kind.value}, got {type(record).__name__}"
            )

    # ---- public API ----

    def ping(self) -> bool:
        conn = self._get_conn()
        try:
            conn.execute("SELECT 1").fetchone()
            return True
        finally:
            conn.close()

    def count(self, kind: RecordKind | str) -> int:
        table = self._table(kind)
        conn = self._get_conn()
        try:
            (n,) = conn.execute(f"SELECT COUNT(*) FROM {table.value}").fetchone()
            return int(n)
        finally:
            conn.close()

    def list_active(self, kind: RecordKind | str) -> list[Record]:
        """Non-archived records, most recently modified first."""
        return self._list(self._table(kind), include_archived=False)

    def list_all(self, kind: RecordKind | str) -> list[Record]:
        """All records including archived ones, most recently modified first."""
        return self._list(self._table(kind), include_archived=True)

    def _list(self, kind: RecordKind, *, include_archived: bool) -> list[Record]:
        where = "" if include_archived else "WHERE is_archived = 0"
        conn = self._get_conn()
        try:
            cur = conn.execute(f"SELECT * FROM {kind.value} {where} ORDER BY updated_at DESC")
            return [self._row_to_record(kind, r) for r in cur.fetchall()]
        finally:
            conn.close()

    def find_by_id(self, kind: RecordKind | str, record_id: str) -> Record | None:
        table = self._table(kind)
        conn = self._get_conn()
        try:
            row = conn.execute(f"SELECT * FROM {table.value} WHERE id = ?", (str(record_id),)).fetchone()
            return self._row_to_record(table, row) if row else None
        finally:
            conn.close()

    def insert(self, kind: RecordKind | str, request: NewRecordRequest) -> Record:
        """
        Create a record from a request.

        A fresh uuid4 id is generated; the record starts out pending so the next
        sync run pushes it.
        """
        table = self._table(kind)
        now = utc_now_iso()
        record_id = str(uuid.uuid4())

        record: Record
        if table is RecordKind.COURSES:
            if not isinstance(request, NewCourseRequest):
                raise BadRequestError("courses require a NewCourseRequest")
            if not request.title or not request.title.strip():
                raise BadRequestError("title is required")
            record = Course(
                id=record_id,
                title=request.title.strip(),
                semester=request.semester,
                day_of_week=request.day_of_week,
                period=int(request.period),
                room=request.room,
                instructor=request.instructor,
                is_archived=False,
                updated_at=now,
                sync_state=SyncState.PENDING,
                last_synced_at=None,
            )
        else:
            if not isinstance(request, NewTaskRequest):
                raise BadRequestError("tasks require a NewTaskRequest")
            if not request.title or not request.title.strip():
                raise BadRequestError("title is required")
            if not request.due_date or not request.due_date.strip():
                raise BadRequestError("due_date is required")
            record = Task(
                id=record_id,
                course_id=request.course_id,
                title=request.title.strip(),
                due_date=request.due_date.strip(),
                status=request.status,
                completed_at=None,
                is_archived=False,
                updated_at=now,
                sync_state=SyncState.PENDING,
                last_synced_at=None,
            )

        params = self._record_to_params(record)
        cols = ["id", *_CONTENT_COLUMNS[table], *_SYNC_COLUMNS]
        placeholders = ", ".join(f":{c}" for c in cols)

        conn = self._get_conn()
        try:
            conn.execute(
                f"INSERT INTO {table.value} ({', '.join(cols)}) VALUES ({placeholders})",
                params,
            )
            conn.commit()
        finally:
            conn.close()

        logger.debug("Record inserted kind=%s id=%s", table.value, record_id)
        return record

    def update(self, kind: RecordKind | str, record_id: str, **fields: Any) -> Record | None:
        """
        Merge the supplied fields into an existing record.

        Fields passed as None are treated as "not supplied". Returns the updated
        record, or None when the id does not exist.
        """
        table = self._table(kind)
        unknown = set(fields) - _UPDATABLE_COLUMNS[table]
        if unknown:
            raise BadRequestError(f"Unknown {table.value} fields: {', '.join(sorted(unknown))}")

        assignments: list[str] = []
        params: list[Any] = []
        for name, value in fields.items():
            if value is None:
                continue
            if name == "title" and not str(value).strip():
                raise BadRequestError("title must not be empty")
            assignments.append(f"{name} = ?")
            params.append(int(value) if name == "period" else value)

        assignments.append("updated_at = ?")
        params.append(utc_now_iso())
        assignments.append("sync_state = ?")
        params.append(SyncState.PENDING.value)
        params.append(str(record_id))

        conn = self._get_conn()
        try:
            cur = conn.execute(
                f"UPDATE {table.value} SET {', '.join(assignments)} WHERE id = ?",
                params,
            )
            conn.commit()
            if cur.rowcount != 1:
                return None
        finally:
            conn.close()

        return self.find_by_id(table, record_id)

    def archive(self, kind: RecordKind | str, record_id: str) -> bool:
        """Soft-delete. Returns False when the id does not exist."""
        return self._set_archived(self._table(kind), record_id, archived=True)

    def unarchive(self, kind: RecordKind | str, record_id: str) -> bool:
        return self._set_archived(self._table(kind), record_id, archived=False)

    def _set_archived(self, kind: RecordKind, record_id: str, *, archived: bool) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                f"""
                UPDATE {kind.value}
                SET is_archived = ?,
                    updated_at = ?,
                    sync_state = 'pending'
                WHERE id = ?
                """,
                (1 if archived else 0, utc_now_iso(), str(record_id)),
            )
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    def upsert(self, kind: RecordKind | str, record: Record) -> Record:
        """
        Insert the record, or overwrite every content column of the existing row.

        Used by the sync engine's pull phase only. The sync bookkeeping of an
        existing row is left alone; the caller stamps it with mark_synced().
        """
        table = self._table(kind)
        self._check_record_type(table, record)

        content = _CONTENT_COLUMNS[table]
        cols = ["id", *content, *_SYNC_COLUMNS]
        placeholders = ", ".join(f":{c}" for c in cols)
        updates = ", ".join(f"{c} = excluded.{c}" for c in content)

        conn = self._get_conn()
        try:
            conn.execute(
                f"""
                INSERT INTO {table.value} ({', '.join(cols)})
                VALUES ({placeholders})
                ON CONFLICT(id) DO UPDATE SET {updates}
                """,
                self._record_to_params(record),
            )
            conn.commit()
        finally:
            conn.close()

        stored = self.find_by_id(table, record.id)
        if stored is None:
            raise RuntimeError(f"upsert did not persist {table.value} id={record.id}")
        return stored

    def mark_synced(self, kind: RecordKind | str, record_id: str, timestamp: str) -> bool:
        table = self._table(kind)
        conn = self._get_conn()
        try:
            cur = conn.execute(
                f"UPDATE {table.value} SET sync_state = 'synced', last_synced_at = ? WHERE id = ?",
                (timestamp, str(record_id)),
            )
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    def mark_archived_upstream(self, kind: RecordKind | str, record_id: str) -> bool:
        """
        Archive a record that no longer exists remotely.

        Unlike archive(), updated_at and sync_state stay untouched: the record is
        already in the state the remote reports, there is nothing to push back.
        Pending rows are never touched; they carry edits the remote has not seen.
        """
        table = self._table(kind)
        conn = self._get_conn()
        try:
            cur = conn.execute(
                f"""
                UPDATE {table.value}
                SET is_archived = 1
                WHERE id = ? AND is_archived = 0 AND sync_state = 'synced'
                """,
                (str(record_id),),
            )
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    # ---- sync run lease ----

    def try_acquire_sync_lease(self, owner: str, *, ttl_seconds: float = 900.0) -> bool:
        """
        Take (or extend) the store-wide sync lease for owner.

        Returns False while another owner holds an unexpired lease. BEGIN IMMEDIATE
        takes SQLite's write lock up front, so the check-then-write is atomic across
        processes sharing the database file. An expired lease (crashed run) is taken over.
        """
        now = time.time()
        conn = self._get_conn()
        try:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute("SELECT owner, expires_at FROM sync_lease WHERE id = 1").fetchone()
            if row is not None and row["owner"] != owner and float(row["expires_at"]) > now:
                conn.rollback()
                return False
            conn.execute(
                """
                INSERT INTO sync_lease (id, owner, expires_at) VALUES (1, ?, ?)
                ON CONFLICT(id) DO UPDATE SET owner = excluded.owner, expires_at = excluded.expires_at
                """,
                (owner, now + float(ttl_seconds)),
            )
            conn.commit()
            return True
        finally:
            conn.close()

    def release_sync_lease(self, owner: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM sync_lease WHERE id = 1 AND owner = ?", (owner,))
            conn.commit()
        finally:
            conn.close()
