# src/taskion/errors.py

"""
Error taxonomy.

- NotFoundError: local lookup missed (request helpers only).
- BadRequestError: invalid input, or a remote page missing a required property.
- RemoteError: network failure / non-success response; safe to retry next tick.
- ConfigurationError: remote credentials missing; bootstrap falls back to local-only mode.
- SyncInProgressError: a sync run was requested while another one is running.
"""

from __future__ import annotations


class TaskionError(Exception):
    """Base class for all application errors."""

    retryable: bool = False


class NotFoundError(TaskionError):
    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class BadRequestError(TaskionError, ValueError):
    pass


class RemoteError(TaskionError):
    retryable = True

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConfigurationError(TaskionError):
    pass


class SyncInProgressError(TaskionError):
    retryable = True

    def __init__(self) -> None:
        super().__init__("A sync run is already in progress.")
