# src/taskion/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- picks the remote adapter once (Notion, or the disabled adapter when
  credentials are missing),
- wires store, adapter, engine and scheduler into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import RemoteAdapter
from ..core.state import AppState
from ..errors import ConfigurationError
from ..records.record_store import RecordStore
from ..remote.notion_client import NotionRemoteAdapter
from ..remote.offline import DisabledRemoteAdapter
from ..sync.sync_engine import SyncEngine
from ..sync.sync_scheduler import SyncScheduler

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def create_remote_adapter(settings) -> tuple[RemoteAdapter, bool]:
    """Return (adapter, enabled). Missing credentials are a warning, not an error."""
    try:
        config = settings.notion_config()
    except ConfigurationError as e:
        logger.warning("%s Falling back to local-only mode (remote sync disabled).", e)
        return DisabledRemoteAdapter(), False
    return NotionRemoteAdapter(config), True


def create_initial_state(*, settings=None, remote: RemoteAdapter | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings (and the remote adapter) injectable makes the app easier to
    test and avoids hidden global config reads. If settings is None, falls back
    to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    if remote is None:
        remote, remote_enabled = create_remote_adapter(settings)
    else:
        remote_enabled = not isinstance(remote, DisabledRemoteAdapter)

    store = RecordStore(settings.db_path)
    # With no real remote, an empty fetch says nothing about deletions.
    engine = SyncEngine(store, remote, reconcile_archives=remote_enabled)

    scheduler = None
    if settings.sync_enabled:
        scheduler = SyncScheduler(engine, interval_seconds=settings.sync_interval_seconds)

    return AppState(
        settings=settings,
        store=store,
        remote=remote,
        engine=engine,
        remote_enabled=remote_enabled,
        scheduler=scheduler,
    )


async def shutdown_state(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    if state.scheduler is not None:
        try:
            await state.scheduler.stop()
        except Exception:
            logger.exception("Failed to stop the sync scheduler.")

    try:
        await state.remote.aclose()
    except Exception:
        logger.debug("Remote adapter close failed.", exc_info=True)

    # RecordStore uses short-lived sqlite connections per call; close() is a no-op hook.
    state.store.close()
