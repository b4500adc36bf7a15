# src/taskion/sync/sync_scheduler.py

from __future__ import annotations

"""
Auto-sync scheduler.

A small polling loop that runs the sync engine every interval_seconds.
The first run happens one full interval after start (no sync at startup).
Failures are logged and the loop keeps going; only cancellation stops it.
"""

import asyncio
import logging
from collections.abc import Callable
from enum import Enum
from typing import Protocol

from ..errors import SyncInProgressError, TaskionError
from .sync_engine import SyncStats

logger = logging.getLogger(__name__)


class SyncRunner(Protocol):
    async def run_sync(self) -> SyncStats: ...


class SchedulerState(str, Enum):
    STOPPED = "stopped"
    WAITING = "waiting"
    RUNNING = "running"


async def run_sync_scheduler(
        engine: SyncRunner,
        *,
        interval_seconds: float = 300.0,
        on_state: Callable[[SchedulerState], None] | None = None,
) -> None:
    """
    Simple interval scheduler.

    Every interval_seconds:
    - wait (state: waiting)
    - run engine.run_sync() once for all record kinds (state: running)
    - log the stats, or the failure:
        * SyncInProgressError -> another run holds the lock; skip this tick
        * TaskionError (e.g. RemoteError) -> warning, retried next tick
        * anything else -> logged with traceback, retried next tick

    To stop the scheduler, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))

    def _set(state: SchedulerState) -> None:
        if on_state is not None:
            on_state(state)

    logger.info("Starting auto-sync scheduler (interval: %.1fs)", sleep_s)

    while True:
        _set(SchedulerState.WAITING)
        await asyncio.sleep(sleep_s)

        _set(SchedulerState.RUNNING)
        try:
            stats = await engine.run_sync()
            logger.info(
                "Auto-sync completed - Pushed: %d courses, %d tasks | Pulled: %d courses, %d tasks",
                stats.courses.pushed,
                stats.tasks.pushed,
                stats.courses.pulled,
                stats.tasks.pulled,
            )
        except SyncInProgressError:
            logger.info("Auto-sync skipped: another sync run is in progress")
        except TaskionError as e:
            logger.warning("Auto-sync failed (retryable=%s): %s", e.retryable, e)
        except Exception:
            logger.exception("Auto-sync failed")


class SyncScheduler:
    """
    Owns the background auto-sync task.

    Holds its own reference to the engine; started once at process init and
    stopped at shutdown. stop() cancels the task and waits for it, which is safe
    mid-run because sync progress is tracked per record.
    """

    def __init__(self, engine: SyncRunner, *, interval_seconds: float = 300.0) -> None:
        self._engine = engine
        self._interval_seconds = float(interval_seconds)
        self._task: asyncio.Task[None] | None = None
        self._state = SchedulerState.STOPPED

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _set_state(self, state: SchedulerState) -> None:
        self._state = state

    def start(self) -> None:
        """Spawn the loop on the running event loop. Calling it twice is a no-op."""
        if self.running:
            return
        self._task = asyncio.create_task(
            run_sync_scheduler(
                self._engine,
                interval_seconds=self._interval_seconds,
                on_state=self._set_state,
            ),
            name="taskion-auto-sync",
        )

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._state = SchedulerState.STOPPED
        logger.info("Auto-sync scheduler stopped")
