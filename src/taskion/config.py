# src/taskion/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time: missing Notion credentials only mean
  local-only mode (see Settings.notion_config()).
- Accepts the legacy unprefixed names (NOTION_TOKEN, COURSES_DB_ID, TODOS_DB_ID,
  SYNC_INTERVAL_SECS) as fallbacks.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .errors import ConfigurationError

ENV_PREFIX = "TASKION"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _to_int(raw: str | None, default: int) -> int:
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _to_float(raw: str | None, default: float) -> float:
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class NotionConfig:
    api_token: str
    courses_db_id: str
    tasks_db_id: str
    base_url: str = "https://api.notion.com/v1"
    notion_version: str = "2022-06-28"
    timeout_seconds: float = 30.0


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path

    # ---- Notion ----
    notion_token: str | None
    notion_courses_db_id: str | None
    notion_tasks_db_id: str | None
    notion_base_url: str
    notion_version: str
    notion_timeout_seconds: float

    # ---- Sync ----
    sync_enabled: bool
    sync_interval_seconds: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskion")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskion"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "taskion.sqlite3")

        notion_token = _first_env(_k("NOTION_TOKEN"), "NOTION_TOKEN")
        notion_courses_db_id = _first_env(_k("COURSES_DB_ID"), "COURSES_DB_ID")
        notion_tasks_db_id = _first_env(_k("TASKS_DB_ID"), "TODOS_DB_ID")
        notion_base_url = _env(_k("NOTION_BASE_URL"), "https://api.notion.com/v1")
        notion_version = _env(_k("NOTION_VERSION"), "2022-06-28")
        notion_timeout_seconds = _to_float(os.getenv(_k("NOTION_TIMEOUT_SECONDS")), 30.0)

        sync_enabled = _env_bool(_k("SYNC_ENABLED"), True)
        sync_interval_seconds = _to_int(
            _first_env(_k("SYNC_INTERVAL_SECS"), "SYNC_INTERVAL_SECS"),
            300,
        )
        if sync_interval_seconds <= 0:
            sync_interval_seconds = 300

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            db_path=db_path,
            notion_token=(notion_token or "").strip() or None,
            notion_courses_db_id=(notion_courses_db_id or "").strip() or None,
            notion_tasks_db_id=(notion_tasks_db_id or "").strip() or None,
            notion_base_url=notion_base_url,
            notion_version=notion_version,
            notion_timeout_seconds=max(1.0, notion_timeout_seconds),
            sync_enabled=sync_enabled,
            sync_interval_seconds=sync_interval_seconds,
        )

    def notion_config(self) -> NotionConfig:
        """
        Build the Notion adapter config.

        Raises ConfigurationError naming every missing variable; the bootstrap turns
        that into a warning and local-only mode.
        """
        missing = [
            name
            for name, value in (
                (_k("NOTION_TOKEN"), self.notion_token),
                (_k("COURSES_DB_ID"), self.notion_courses_db_id),
                (_k("TASKS_DB_ID"), self.notion_tasks_db_id),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(f"Notion is not configured (missing {', '.join(missing)}).")

        return NotionConfig(
            api_token=str(self.notion_token),
            courses_db_id=str(self.notion_courses_db_id),
            tasks_db_id=str(self.notion_tasks_db_id),
            base_url=self.notion_base_url,
            notion_version=self.notion_version,
            timeout_seconds=self.notion_timeout_seconds,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
