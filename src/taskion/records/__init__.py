"""
Record subsystem.

Components:
- record_models.py: data structures (Course, Task, SyncState, RecordKind)
- record_store.py: SQLite-backed storage + sync bookkeeping helpers
- record_api.py: small high-level helpers used by the CLI / request handlers
"""
