# src/taskion/remote/properties.py

from __future__ import annotations

"""
Notion page/property parsing.

Notion databases are loosely typed: every page carries a dict of properties,
each tagged with a "type". We parse them into one small dataclass per type,
with UnknownProperty as the catch-all, so new or unexpected property types
never break a fetch.

The get_* helpers raise BadRequestError when the property is absent or has a
different type; callers decide whether that is fatal (required fields) or
falls back to a default.
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from ..errors import BadRequestError

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class TitleProperty:
    text: str


@dataclass(slots=True, frozen=True)
class RichTextProperty:
    text: str


@dataclass(slots=True, frozen=True)
class NumberProperty:
    value: float | None


@dataclass(slots=True, frozen=True)
class SelectProperty:
    name: str | None


@dataclass(slots=True, frozen=True)
class StatusProperty:
    name: str | None


@dataclass(slots=True, frozen=True)
class MultiSelectProperty:
    names: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class DateProperty:
    start: str | None
    end: str | None = None


@dataclass(slots=True, frozen=True)
class CheckboxProperty:
    checked: bool


@dataclass(slots=True, frozen=True)
class RelationProperty:
    ids: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class UnknownProperty:
    type_name: str


RemoteProperty = (
    TitleProperty
    | RichTextProperty
    | NumberProperty
    | SelectProperty
    | StatusProperty
    | MultiSelectProperty
    | DateProperty
    | CheckboxProperty
    | RelationProperty
    | UnknownProperty
)


@dataclass(slots=True, frozen=True)
class Page:
    id: str
    last_edited_time: str
    archived: bool
    properties: dict[str, RemoteProperty] = field(default_factory=dict)


# ---- parsing ----


def _plain_text(items: Any) -> str:
    if not isinstance(items, list):
        raise TypeError("rich text must be a list")
    return "".join(str(i.get("plain_text", "")) for i in items if isinstance(i, Mapping))


def _option_name(option: Any) -> str | None:
    if option is None:
        return None
    if not isinstance(option, Mapping):
        raise TypeError("option must be an object")
    name = option.get("name")
    return str(name) if name is not None else None


def _option_names(options: Any) -> tuple[str, ...]:
    if not isinstance(options, list):
        raise TypeError("multi_select must be a list")
    return tuple(n for n in (_option_name(o) for o in options) if n)


def _date(raw: Any) -> DateProperty:
    if raw is None:
        return DateProperty(start=None)
    if not isinstance(raw, Mapping):
        raise TypeError("date must be an object")
    return DateProperty(start=raw.get("start"), end=raw.get("end"))


def _number(raw: Any) -> NumberProperty:
    if raw is None:
        return NumberProperty(value=None)
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise TypeError("number must be numeric")
    return NumberProperty(value=float(raw))


def _relation(raw: Any) -> RelationProperty:
    if not isinstance(raw, list):
        raise TypeError("relation must be a list")
    return RelationProperty(ids=tuple(str(r["id"]) for r in raw if isinstance(r, Mapping) and r.get("id")))


_PARSERS: dict[str, Callable[[Any], RemoteProperty]] = {
    "title": lambda v: TitleProperty(text=_plain_text(v)),
    "rich_text": lambda v: RichTextProperty(text=_plain_text(v)),
    "number": _number,
    "select": lambda v: SelectProperty(name=_option_name(v)),
    "status": lambda v: StatusProperty(name=_option_name(v)),
    "multi_select": lambda v: MultiSelectProperty(names=_option_names(v)),
    "date": _date,
    "checkbox": lambda v: CheckboxProperty(checked=bool(v)),
    "relation": _relation,
}


def parse_property(raw: Any) -> RemoteProperty:
    """
    Parse one property payload ({"type": "...", "<type>": value}).

    Never raises: unknown types and malformed payloads become UnknownProperty.
    """
    if not isinstance(raw, Mapping):
        return UnknownProperty(type_name="")

    type_name = str(raw.get("type") or "")
    parser = _PARSERS.get(type_name)
    if parser is None:
        return UnknownProperty(type_name=type_name)

    try:
        return parser(raw.get(type_name))
    except (TypeError, KeyError, ValueError):
        logger.debug("Malformed %s property payload; treating as unknown", type_name)
        return UnknownProperty(type_name=type_name)


def parse_page(raw: Any) -> Page:
    """Parse a page object from a database query. Raises BadRequestError if it has no id."""
    if not isinstance(raw, Mapping) or not raw.get("id"):
        raise BadRequestError("Remote page without id")

    props_raw = raw.get("properties") or {}
    properties: dict[str, RemoteProperty] = {}
    if isinstance(props_raw, Mapping):
        for name, value in props_raw.items():
            properties[str(name)] = parse_property(value)

    return Page(
        id=str(raw["id"]),
        last_edited_time=str(raw.get("last_edited_time") or ""),
        archived=bool(raw.get("archived", False) or raw.get("in_trash", False)),
        properties=properties,
    )


# ---- typed accessors ----


def get_text(page: Page, key: str) -> str:
    prop = page.properties.get(key)
    if isinstance(prop, (TitleProperty, RichTextProperty)):
        return prop.text
    raise BadRequestError(f"Missing property: {key}")


def get_select(page: Page, key: str) -> str:
    prop = page.properties.get(key)
    if isinstance(prop, SelectProperty) and prop.name is not None:
        return prop.name
    raise BadRequestError(f"Missing select property: {key}")


def get_status(page: Page, key: str) -> str:
    # Status columns are sometimes modelled as plain selects; accept both.
    prop = page.properties.get(key)
    if isinstance(prop, (StatusProperty, SelectProperty)) and prop.name is not None:
        return prop.name
    raise BadRequestError(f"Missing status property: {key}")


def get_multi_select(page: Page, key: str) -> list[str]:
    prop = page.properties.get(key)
    if isinstance(prop, MultiSelectProperty):
        return list(prop.names)
    raise BadRequestError(f"Missing multi_select property: {key}")


def get_date(page: Page, key: str) -> str:
    prop = page.properties.get(key)
    if isinstance(prop, DateProperty) and prop.start:
        return prop.start
    raise BadRequestError(f"Missing date property: {key}")


def get_relation(page: Page, key: str) -> str:
    prop = page.properties.get(key)
    if isinstance(prop, RelationProperty) and prop.ids:
        return prop.ids[0]
    raise BadRequestError(f"Missing relation property: {key}")


def get_number(page: Page, key: str) -> float | None:
    prop = page.properties.get(key)
    if isinstance(prop, NumberProperty):
        return prop.value
    return None


def get_checkbox(page: Page, key: str) -> bool | None:
    prop = page.properties.get(key)
    if isinstance(prop, CheckboxProperty):
        return prop.checked
    return None


# ---- payload builders (push direction) ----


def title_value(text: str) -> dict[str, Any]:
    return {"title": [{"text": {"content": text}}]}


def rich_text_value(text: str) -> dict[str, Any]:
    return {"rich_text": [{"text": {"content": text}}]}


def select_value(name: str) -> dict[str, Any]:
    return {"select": {"name": name}}


def status_value(name: str) -> dict[str, Any]:
    return {"status": {"name": name}}


def multi_select_value(names: list[str]) -> dict[str, Any]:
    return {"multi_select": [{"name": n} for n in names if n]}


def date_value(start: str | None) -> dict[str, Any]:
    return {"date": {"start": start} if start else None}


def checkbox_value(checked: bool) -> dict[str, Any]:
    return {"checkbox": bool(checked)}


def relation_value(page_ids: list[str]) -> dict[str, Any]:
    return {"relation": [{"id": pid} for pid in page_ids]}
