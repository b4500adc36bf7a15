# src/taskion/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the sync core.

The engine depends on Protocols instead of concrete implementations.
This keeps the storage and the remote service swappable and makes testing easier.
"""

from typing import Any, Protocol, Sequence

from ..records.record_models import NewRecordRequest, Record, RecordKind


class RecordRepo(Protocol):
    # Request-handling API
    def list_active(self, kind: RecordKind) -> list[Record]: ...
    def list_all(self, kind: RecordKind) -> list[Record]: ...
    def find_by_id(self, kind: RecordKind, record_id: str) -> Record | None: ...
    def insert(self, kind: RecordKind, request: NewRecordRequest) -> Record: ...
    def update(self, kind: RecordKind, record_id: str, **fields: Any) -> Record | None: ...
    def archive(self, kind: RecordKind, record_id: str) -> bool: ...
    def unarchive(self, kind: RecordKind, record_id: str) -> bool: ...

    # Sync engine API
    def upsert(self, kind: RecordKind, record: Record) -> Record: ...
    def mark_synced(self, kind: RecordKind, record_id: str, timestamp: str) -> bool: ...
    def mark_archived_upstream(self, kind: RecordKind, record_id: str) -> bool: ...

    # Cross-process run lease
    def try_acquire_sync_lease(self, owner: str, *, ttl_seconds: float = ...) -> bool: ...
    def release_sync_lease(self, owner: str) -> None: ...


class RemoteAdapter(Protocol):
    """
    Remote record service (Notion or a stand-in).

    fetch_all() returns records already translated into the domain model and
    stamped synced; records that fail translation are dropped by the adapter.
    Transport failures raise RemoteError.
    """

    async def fetch_all(self, kind: RecordKind) -> Sequence[Record]: ...
    async def push(self, kind: RecordKind, record: Record) -> None: ...
    async def aclose(self) -> None: ...
