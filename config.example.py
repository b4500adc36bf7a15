# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets; keep the Notion token in .env (gitignored).

Without the three Notion variables the app runs local-only: records are still
created, edited and marked synced, but nothing leaves the machine.
"""

ENV_VARS = {
    # App / logging
    "TASKION_APP_NAME": "App display name (default: taskion).",
    "TASKION_LOG_LEVEL": "Console logging level (default: INFO).",
    # Notion (legacy unprefixed names are accepted as fallbacks)
    "TASKION_NOTION_TOKEN": "Notion integration token (fallback: NOTION_TOKEN).",
    "TASKION_COURSES_DB_ID": "Notion database id holding courses (fallback: COURSES_DB_ID).",
    "TASKION_TASKS_DB_ID": "Notion database id holding tasks (fallback: TODOS_DB_ID).",
    "TASKION_NOTION_BASE_URL": "Notion API base URL (default: https://api.notion.com/v1).",
    "TASKION_NOTION_VERSION": "Notion-Version header (default: 2022-06-28).",
    "TASKION_NOTION_TIMEOUT_SECONDS": "HTTP timeout per request, min 1 (default: 30).",
    # Sync
    "TASKION_SYNC_ENABLED": "Run the auto-sync scheduler under `taskion serve` (default: true).",
    "TASKION_SYNC_INTERVAL_SECS": "Seconds between auto-sync runs (fallback: SYNC_INTERVAL_SECS, default: 300).",
    # Paths (gitignored)
    "TASKION_DATA_DIR": "Local data directory, also holds taskion.log (default: .local/taskion).",
    "TASKION_DB_PATH": "RecordStore SQLite path (default: <data_dir>/taskion.sqlite3).",
}
