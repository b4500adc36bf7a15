"""
taskion: course and task tracker.

The local SQLite store is authoritative; a background sync engine keeps it
consistent with a Notion workspace (courses and tasks databases).
"""

__version__ = "0.1.0"
