# src/taskion/sync/sync_engine.py

from __future__ import annotations

"""
Sync engine.

One run reconciles every record kind, courses first, in three ordered phases:

1. push:   local records not yet synced -> remote, then mark_synced(now)
2. pull:   remote records -> local upsert, unless the local copy wins
3. archive reconciliation: local synced records missing remotely -> archived

Conflict policy during pull:
- local pending always wins ("pending is sticky")
- otherwise local wins when both last-modified timestamps parse and local is newer
- otherwise remote wins

A failure anywhere aborts the run. Records already pushed stay synced, so the
next run resumes where this one stopped.
"""

import asyncio
import logging
import os
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any

from ..core.ports import RecordRepo, RemoteAdapter
from ..errors import SyncInProgressError
from ..records.record_models import SYNC_ORDER, Record, RecordKind, SyncState
from ..timestamps import parse_timestamp, utc_now_iso

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class KindStats:
    pushed: int = 0
    pulled: int = 0
    skipped: int = 0
    archived: int = 0


@dataclass(slots=True)
class SyncStats:
    courses: KindStats = field(default_factory=KindStats)
    tasks: KindStats = field(default_factory=KindStats)

    def for_kind(self, kind: RecordKind) -> KindStats:
        return self.courses if kind is RecordKind.COURSES else self.tasks

    def as_dict(self) -> dict[str, Any]:
        """Flat shape: {"courses_pushed": .., "tasks_pulled": .., ...}."""
        out: dict[str, Any] = {}
        for kind in SYNC_ORDER:
            for key, value in asdict(self.for_kind(kind)).items():
                out[f"{kind.value}_{key}"] = value
        return out


def local_is_newer(local: Record, remote: Record) -> bool:
    """True only when both timestamps parse and the local one is strictly later."""
    local_ts = parse_timestamp(local.updated_at)
    remote_ts = parse_timestamp(remote.updated_at)
    if local_ts is None or remote_ts is None:
        return False
    return local_ts > remote_ts


class SyncEngine:
    """
    Push/pull/reconcile orchestrator.

    Runs are serialized: run_sync() raises SyncInProgressError instead of
    starting a second run while one is in flight. Two guards:
    - an asyncio.Lock for callers sharing this engine (manual trigger racing
      the scheduler, or a slow run overlapping the next tick)
    - a lease row in the store for other processes on the same database file
      (`taskion sync` while `taskion serve` runs). The lease is extended before
      each kind and expires after lease_seconds if its holder dies.

    reconcile_archives=False disables phase 3; the bootstrap uses it in
    local-only mode, where an empty remote says nothing about deletions.
    """

    def __init__(
        self,
        repo: RecordRepo,
        remote: RemoteAdapter,
        *,
        reconcile_archives: bool = True,
        kinds: tuple[RecordKind, ...] = SYNC_ORDER,
        lease_seconds: float = 900.0,
    ) -> None:
        self._repo = repo
        self._remote = remote
        self._reconcile_archives = reconcile_archives
        self._kinds = kinds
        self._lease_seconds = lease_seconds
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def _hold_lease(self, owner: str) -> None:
        if not self._repo.try_acquire_sync_lease(owner, ttl_seconds=self._lease_seconds):
            raise SyncInProgressError()

    async def run_sync(self) -> SyncStats:
        if self._lock.locked():
            raise SyncInProgressError()

        async with self._lock:
            owner = f"{os.getpid()}:{uuid.uuid4().hex}"
            self._hold_lease(owner)
            try:
                logger.info("Starting sync...")
                stats = SyncStats()
                for kind in self._kinds:
                    self._hold_lease(owner)
                    kind_stats = stats.for_kind(kind)
                    kind_stats.pushed = await self.push(kind)
                    await self.pull(kind, kind_stats)
                    logger.info(
                        "Synced %s: pushed=%d pulled=%d skipped=%d archived=%d",
                        kind.value,
                        kind_stats.pushed,
                        kind_stats.pulled,
                        kind_stats.skipped,
                        kind_stats.archived,
                    )
                logger.info("Sync completed: %s", stats.as_dict())
                return stats
            finally:
                self._repo.release_sync_lease(owner)

    async def push(self, kind: RecordKind) -> int:
        """Push phase for one kind. Returns the number of records pushed."""
        pushed = 0
        for record in self._repo.list_all(kind):
            if record.sync_state == SyncState.SYNCED:
                continue
            await self._remote.push(kind, record)
            self._repo.mark_synced(kind, record.id, utc_now_iso())
            pushed += 1
            logger.debug("Pushed %s id=%s", kind.value, record.id)
        return pushed

    async def pull(self, kind: RecordKind, stats: KindStats | None = None) -> KindStats:
        """
        Pull + archive reconciliation for one kind. Counts into stats (a new one if None).

        Only synced records absent upstream are archived; pending ones carry local
        edits the remote has not seen and are pushed on the next run instead.
        """
        stats = stats if stats is not None else KindStats()
        remote_records = await self._remote.fetch_all(kind)
        local_by_id = {r.id: r for r in self._repo.list_all(kind)}
        remote_ids: set[str] = set()

        for remote in remote_records:
            remote_ids.add(remote.id)
            existing = local_by_id.get(remote.id)

            if existing is not None:
                if existing.sync_state == SyncState.PENDING:
                    logger.warning("Skipping %s (local pending): %s", kind.value, remote.title)
                    stats.skipped += 1
                    continue
                if local_is_newer(existing, remote):
                    logger.warning(
                        "Skipping %s (local newer): %s local=%s remote=%s",
                        kind.value,
                        remote.title,
                        existing.updated_at,
                        remote.updated_at,
                    )
                    stats.skipped += 1
                    continue

            self._repo.upsert(kind, remote)
            self._repo.mark_synced(kind, remote.id, utc_now_iso())
            stats.pulled += 1

        if not self._reconcile_archives:
            return stats

        # Runs after pull so ids pulled just now count as present.
        for record in local_by_id.values():
            if record.id in remote_ids or record.is_archived:
                continue
            if record.sync_state != SyncState.SYNCED:
                continue
            if self._repo.mark_archived_upstream(kind, record.id):
                stats.archived += 1
                logger.info("Archived %s missing upstream: %s", kind.value, record.id)
        return stats
