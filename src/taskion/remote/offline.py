# src/taskion/remote/offline.py

from __future__ import annotations

from ..records.record_models import Record, RecordKind


class DisabledRemoteAdapter:
    """
    Remote adapter used when no Notion credentials are configured.

    Behavior:
    - fetch_all -> always empty
    - push -> accepted and discarded

    The sync engine runs unchanged against it, so local records still move
    pending -> synced and the rest of the app works local-only.
    """

    async def fetch_all(self, kind: RecordKind) -> list[Record]:
        return []

    async def push(self, kind: RecordKind, record: Record) -> None:
        return None

    async def aclose(self) -> None:
        return None
