# src/taskion/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..records.record_store import RecordStore
from ..sync.sync_engine import SyncEngine
from ..sync.sync_scheduler import SyncScheduler
from .ports import RemoteAdapter


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    store: RecordStore
    remote: RemoteAdapter
    engine: SyncEngine

    # False when the disabled adapter was substituted (local-only mode).
    remote_enabled: bool

    scheduler: SyncScheduler | None = None
