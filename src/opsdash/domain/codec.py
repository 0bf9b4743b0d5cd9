"""Wire form of domain records.

Records travel as flat JSON objects with camelCase keys. Decoding is
tolerant: absent keys take the dataclass default, numbers arriving as
strings are coerced, and nested arrays become tuples of their owned
record type. Encoding drops optional fields that are unset.
"""

from __future__ import annotations

import copy
import json
from collections.abc import Iterable, Mapping
from dataclasses import MISSING, fields
from typing import Any, TypeVar

from opsdash.domain.models import (
    Agent,
    BatchAdCost,
    BatchProject,
    Comment,
    ContentItem,
    Expense,
    Lead,
    Sale,
    Student,
    Task,
    TeamMember,
    Version,
)

R = TypeVar("R")

NESTED: dict[tuple[type, str], type] = {
    (Task, "comments"): Comment,
    (ContentItem, "comments"): Comment,
    (BatchProject, "students"): Student,
    (BatchProject, "ad_costs"): BatchAdCost,
}


def to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def encode(record: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    for f in fields(record):
        value = getattr(record, f.name)
        if value is None:
            continue
        if (type(record), f.name) in NESTED:
            value = [encode(item) for item in value]
        elif isinstance(value, dict):
            value = copy.deepcopy(value)
        payload[to_camel(f.name)] = value
    return payload


def decode(cls: type[R], data: Mapping[str, Any]) -> R:
    kwargs: dict[str, Any] = {}
    for f in fields(cls):
        key = to_camel(f.name)
        if key not in data:
            continue
        value = data[key]
        if value is None and f.default is not MISSING and f.default is not None:
            continue
        nested = NESTED.get((cls, f.name))
        if nested is not None:
            value = tuple(decode(nested, item) for item in (value or []) if isinstance(item, Mapping))
        elif f.default is not MISSING and isinstance(f.default, bool):
            value = bool(value)
        elif f.default is not MISSING and isinstance(f.default, int):
            value = _coerce_int(value)
        elif isinstance(value, dict):
            value = copy.deepcopy(value)
        elif value is not None and f.name == "id":
            value = str(value)
        kwargs[f.name] = value
    if "id" not in kwargs:
        kwargs["id"] = ""
    return cls(**kwargs)


def encode_all(records: Iterable[Any]) -> list[dict[str, Any]]:
    return [encode(record) for record in records]


def decode_all(cls: type[R], items: Iterable[Mapping[str, Any]] | None) -> list[R]:
    return [decode(cls, item) for item in items or [] if isinstance(item, Mapping)]


def fingerprint(payload: Any) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _coerce_int(value: Any) -> int:
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        return value
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


RECORD_TYPES: dict[str, type] = {
    "tasks": Task,
    "leads": Lead,
    "sales": Sale,
    "expenses": Expense,
    "content": ContentItem,
    "agents": Agent,
    "team_members": TeamMember,
    "versions": Version,
    "batch_projects": BatchProject,
}
