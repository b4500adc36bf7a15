"""
Sync subsystem.

Components:
- sync_engine.py: push -> pull -> archive reconciliation, per record kind
- sync_scheduler.py: background loop running the engine on a fixed interval
"""
