"""Archived point-in-time copies of every live collection.

A version's ``data`` holds wire-form copies, never references to live
records, so later edits cannot reach into history. Restoring decodes the
copy again and falls back to built-in defaults for anything an older
snapshot does not carry.
"""

from __future__ import annotations

import copy
from collections.abc import Callable
from typing import Any

from opsdash.domain import rules
from opsdash.domain.codec import RECORD_TYPES, decode_all, encode_all
from opsdash.domain.defaults import DEFAULT_MONTHLY_TARGET, INITIAL_AGENTS, INITIAL_TEAM
from opsdash.domain.models import Version
from opsdash.services.events import EventLogger
from opsdash.services.utils import new_id, utc_now_iso
from opsdash.store.state import AppState

SNAPSHOT_KEYS = {
    "tasks": "tasks",
    "leads": "leads",
    "sales": "sales",
    "expenses": "expenses",
    "content": "content",
    "agents": "agents",
    "team_members": "teamMembers",
    "batch_projects": "batchProjects",
}
TARGET_SNAPSHOT_KEY = "monthlyTarget"
# Collections emptied by the legacy save-and-clear flow.
WORKING_COLLECTIONS = ("tasks", "leads", "sales", "expenses", "content")
RESTORE_DEFAULTS = {"agents": INITIAL_AGENTS, "team_members": INITIAL_TEAM}


class VersionError(RuntimeError):
    pass


def create_snapshot(
    state: AppState,
    name: str,
    clear_live: bool = False,
    events: EventLogger | None = None,
) -> Version:
    name = rules.require(name, "name")
    data: dict[str, Any] = {
        key: copy.deepcopy(encode_all(state.get(collection)))
        for collection, key in SNAPSHOT_KEYS.items()
    }
    data[TARGET_SNAPSHOT_KEY] = state.monthly_target
    version = Version(id=new_id(), name=name, timestamp=utc_now_iso(), data=data)
    state.replace("versions", [version, *state.versions])
    if clear_live:
        for collection in WORKING_COLLECTIONS:
            state.replace(collection, [])
    if events is not None:
        events.log(
            event_type="snapshot_created",
            collection="versions",
            detail={"version_id": version.id, "cleared": clear_live},
        )
    return version


def restore(
    state: AppState,
    version_id: str,
    confirm: Callable[[str], bool],
    events: EventLogger | None = None,
) -> Version:
    version = rules.find(state.versions, version_id, "Version")
    if not isinstance(version.data, dict) or not version.data:
        raise VersionError(f"Version {version_id} has no snapshot data.")
    if not confirm(f'Overwrite all live data with "{version.name}"?'):
        raise VersionError("Restore cancelled.")

    data = copy.deepcopy(version.data)
    for collection, key in SNAPSHOT_KEYS.items():
        items = data.get(key)
        if items is None and collection in RESTORE_DEFAULTS:
            state.replace(collection, list(RESTORE_DEFAULTS[collection]))
        else:
            state.replace(collection, decode_all(RECORD_TYPES[collection], items))
    state.set_monthly_target(_target(data.get(TARGET_SNAPSHOT_KEY)))
    if events is not None:
        events.log(
            event_type="snapshot_restored", collection="versions", detail={"version_id": version.id}
        )
    return version


def delete_version(state: AppState, version_id: str) -> None:
    rules.find(state.versions, version_id, "Version")
    state.replace("versions", [v for v in state.versions if v.id != version_id])


def _target(value: Any) -> int:
    if isinstance(value, bool):
        return DEFAULT_MONTHLY_TARGET
    try:
        target = int(float(value))
    except (TypeError, ValueError):
        return DEFAULT_MONTHLY_TARGET
    return target or DEFAULT_MONTHLY_TARGET
