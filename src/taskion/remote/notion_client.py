# src/taskion/remote/notion_client.py

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeVar

import httpx

from ..config import NotionConfig
from ..errors import BadRequestError, RemoteError
from ..records.record_models import DEFAULT_TASK_STATUS, Course, Record, RecordKind, SyncState, Task
from ..timestamps import local_today_iso, utc_now_iso
from .properties import (
    Page,
    checkbox_value,
    date_value,
    get_checkbox,
    get_date,
    get_multi_select,
    get_number,
    get_relation,
    get_select,
    get_status,
    get_text,
    multi_select_value,
    parse_page,
    relation_value,
    rich_text_value,
    select_value,
    status_value,
    title_value,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Single bounded page per query; larger databases are truncated (and logged).
PAGE_SIZE = 100

# Rich-text properties that mirror the local id on the remote page.
ID_PROPERTY: dict[RecordKind, str] = {
    RecordKind.COURSES: "course_id",
    RecordKind.TASKS: "task_id",
}


def _or_default(getter: Callable[[], T], default: T) -> T:
    try:
        return getter()
    except BadRequestError:
        return default


def _normalize_id(raw: str | None) -> str:
    # Notion accepts ids with or without dashes.
    return (raw or "").replace("-", "").lower()


def _required_title(page: Page, key: str) -> str:
    title = get_text(page, key).strip()
    if not title:
        raise BadRequestError(f"Missing property: {key}")
    return title


def _split_names(joined: str | None) -> list[str]:
    if not joined:
        return []
    return [s.strip() for s in joined.split(",") if s.strip()]


class NotionRemoteAdapter:
    """
    Live remote adapter backed by the Notion REST API.

    fetch_all(kind):
    - queries the kind's database (one page of PAGE_SIZE results)
    - translates every page into a Course/Task stamped synced
    - pages that fail translation are logged and skipped; they never abort the fetch

    push(kind, record):
    - finds the remote page whose id property (course_id / task_id) equals record.id
    - falls back to the page whose Notion id equals record.id (pages pulled
      without an id property keep their page id as local id)
    - PATCHes it when found, otherwise creates a new page in the kind's database

    Transport problems (connection errors, timeouts, non-2xx responses) raise RemoteError.
    """

    def __init__(self, config: NotionConfig, *, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(config.timeout_seconds, connect=min(5.0, config.timeout_seconds)),
        )
        # Notion page id -> local course id, learned from the latest course fetch.
        self._course_ids_by_page: dict[str, str] = {}

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ---- HTTP helpers ----

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._config.api_token}",
            "Notion-Version": self._config.notion_version,
            "Content-Type": "application/json",
        }

    def _url(self, path: str) -> str:
        return f"{self._config.base_url.rstrip('/')}/{path.lstrip('/')}"

    async def _request(self, method: str, path: str, body: dict[str, Any] | None = None) -> dict[str, Any]:
        try:
            response = await self._client.request(method, self._url(path), headers=self._headers(), json=body)
        except httpx.RequestError as e:
            raise RemoteError(f"Notion request failed ({method} {path}): {e.__class__.__name__}: {e}") from e

        if not response.is_success:
            raise RemoteError(
                f"Notion API error {response.status_code} ({method} {path}): {response.text[:500]}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise RemoteError(f"Notion returned invalid JSON ({method} {path})") from e

        if not isinstance(data, dict):
            raise RemoteError(f"Notion returned an unexpected payload ({method} {path})")
        return data

    def _database_id(self, kind: RecordKind) -> str:
        if kind is RecordKind.COURSES:
            return self._config.courses_db_id
        return self._config.tasks_db_id

    async def _query(self, database_id: str, *, page_size: int, filter_: dict[str, Any] | None = None) -> list[Any]:
        body: dict[str, Any] = {"page_size": page_size}
        if filter_ is not None:
            body["filter"] = filter_
        data = await self._request("POST", f"databases/{database_id}/query", body)
        if data.get("has_more") and filter_ is None:
            logger.warning(
                "Notion database %s has more than %d pages; only the first page is synced",
                database_id,
                page_size,
            )
        results = data.get("results")
        return results if isinstance(results, list) else []

    async def _find_page_id(self, database_id: str, property_name: str, value: str) -> str | None:
        results = await self._query(
            database_id,
            page_size=1,
            filter_={"property": property_name, "rich_text": {"equals": value}},
        )
        for raw in results:
            if isinstance(raw, dict) and raw.get("id"):
                return str(raw["id"])
        return None

    async def _page_in_database(self, page_id: str, database_id: str) -> bool:
        """
        True when page_id is a page of database_id.

        Records pulled from pages without a mirrored id carry the page id as their
        local id; push uses this to update that page instead of creating a copy.
        """
        try:
            data = await self._request("GET", f"pages/{page_id}")
        except RemoteError as e:
            # 400: not a page id at all, 404: unknown or not shared.
            if e.status_code in (400, 404):
                return False
            raise
        parent = data.get("parent")
        parent_db = parent.get("database_id") if isinstance(parent, dict) else None
        return _normalize_id(parent_db) == _normalize_id(database_id)

    # ---- translation: remote -> local ----

    def _course_from_page(self, page: Page, synced_at: str) -> Course:
        title = _required_title(page, "Name")

        semester = _or_default(lambda: ", ".join(get_multi_select(page, "Semester")), "")
        if not semester:
            semester = _or_default(lambda: get_select(page, "Semester"), "")

        period = 0
        number = get_number(page, "Period")
        if number is not None:
            period = int(number)
        else:
            names = _or_default(lambda: get_multi_select(page, "Period"), [])
            raw_period = names[0] if names else ""
            if not raw_period:
                raw_period = _or_default(lambda: get_select(page, "Period"), "")
            try:
                period = int(raw_period)
            except ValueError:
                period = 0

        instructor = _or_default(lambda: ", ".join(get_multi_select(page, "Instructor")), "")
        checkbox = get_checkbox(page, "is_archived")

        return Course(
            id=_or_default(lambda: get_text(page, ID_PROPERTY[RecordKind.COURSES]), "") or page.id,
            title=title,
            semester=semester,
            day_of_week=_or_default(lambda: get_select(page, "Day"), ""),
            period=period,
            room=_or_default(lambda: get_text(page, "Room"), "") or None,
            instructor=instructor or None,
            is_archived=page.archived or bool(checkbox),
            updated_at=page.last_edited_time,
            sync_state=SyncState.SYNCED,
            last_synced_at=synced_at,
        )

    def _task_from_page(self, page: Page, synced_at: str) -> Task:
        title = _required_title(page, "Title")

        relation = _or_default(lambda: get_relation(page, "Course"), "")
        course_id = self._course_ids_by_page.get(relation, relation)
        checkbox = get_checkbox(page, "is_archived")

        return Task(
            id=_or_default(lambda: get_text(page, ID_PROPERTY[RecordKind.TASKS]), "") or page.id,
            course_id=course_id,
            title=title,
            due_date=_or_default(lambda: get_date(page, "Due Date"), local_today_iso()),
            status=_or_default(lambda: get_status(page, "Status"), DEFAULT_TASK_STATUS),
            completed_at=_or_default(lambda: get_date(page, "completed_at"), "") or None,
            is_archived=page.archived or bool(checkbox),
            updated_at=page.last_edited_time,
            sync_state=SyncState.SYNCED,
            last_synced_at=synced_at,
        )

    async def fetch_all(self, kind: RecordKind) -> list[Record]:
        kind = RecordKind(kind)
        results = await self._query(self._database_id(kind), page_size=PAGE_SIZE)
        synced_at = utc_now_iso()

        records: list[Record] = []
        page_map: dict[str, str] = {}
        for raw in results:
            raw_id = raw.get("id") if isinstance(raw, dict) else None
            try:
                page = parse_page(raw)
                if kind is RecordKind.COURSES:
                    course = self._course_from_page(page, synced_at)
                    page_map[page.id] = course.id
                    records.append(course)
                else:
                    records.append(self._task_from_page(page, synced_at))
            except BadRequestError as e:
                logger.warning("Failed to parse %s from page %s: %s", kind.value, raw_id, e)

        if kind is RecordKind.COURSES:
            self._course_ids_by_page = page_map

        logger.debug("Fetched %d %s from Notion (%d pages)", len(records), kind.value, len(results))
        return records

    # ---- translation: local -> remote ----

    @staticmethod
    def _course_properties(course: Course) -> dict[str, Any]:
        props: dict[str, Any] = {
            "Name": title_value(course.title),
            "Semester": multi_select_value(_split_names(course.semester)),
            "is_archived": checkbox_value(course.is_archived),
            ID_PROPERTY[RecordKind.COURSES]: rich_text_value(course.id),
        }
        if course.day_of_week:
            props["Day"] = select_value(course.day_of_week)
        if course.period > 0:
            props["Period"] = multi_select_value([str(course.period)])
        if course.room:
            props["Room"] = rich_text_value(course.room)
        if course.instructor:
            props["Instructor"] = multi_select_value(_split_names(course.instructor))
        return props

    @staticmethod
    def _task_properties(task: Task) -> dict[str, Any]:
        props: dict[str, Any] = {
            "Title": title_value(task.title),
            "Due Date": date_value(task.due_date),
            "Status": status_value(task.status or DEFAULT_TASK_STATUS),
            "is_archived": checkbox_value(task.is_archived),
            ID_PROPERTY[RecordKind.TASKS]: rich_text_value(task.id),
        }
        if task.completed_at:
            props["completed_at"] = date_value(task.completed_at)
        return props

    async def _course_page_id(self, course_id: str) -> str | None:
        for page_id, local_id in self._course_ids_by_page.items():
            if local_id == course_id:
                return page_id
        return await self._find_page_id(self._config.courses_db_id, ID_PROPERTY[RecordKind.COURSES], course_id)

    async def push(self, kind: RecordKind, record: Record) -> None:
        kind = RecordKind(kind)
        if not record.title or not record.title.strip():
            raise BadRequestError(f"Cannot push {kind.value} {record.id}: title is empty")

        if kind is RecordKind.COURSES:
            if not isinstance(record, Course):
                raise BadRequestError(f"Expected Course, got {type(record).__name__}")
            properties = self._course_properties(record)
        else:
            if not isinstance(record, Task):
                raise BadRequestError(f"Expected Task, got {type(record).__name__}")
            properties = self._task_properties(record)
            if record.course_id:
                course_page = await self._course_page_id(record.course_id)
                if course_page is not None:
                    properties["Course"] = relation_value([course_page])
                else:
                    logger.debug(
                        "Course %s not found remotely; pushing task %s without relation",
                        record.course_id,
                        record.id,
                    )

        database_id = self._database_id(kind)
        page_id = await self._find_page_id(database_id, ID_PROPERTY[kind], record.id)
        if page_id is None and await self._page_in_database(record.id, database_id):
            # Pulled before its id property was set; the PATCH below backfills it.
            page_id = record.id

        if page_id is not None:
            await self._request("PATCH", f"pages/{page_id}", {"properties": properties})
            logger.info("Notion: updated %s id=%s page=%s", kind.value, record.id, page_id)
        else:
            await self._request(
                "POST",
                "pages",
                {"parent": {"database_id": database_id}, "properties": properties},
            )
            logger.info("Notion: created %s id=%s", kind.value, record.id)
