"""Keeps AppState in step with the remote backend.

Local mutations are written back as whole collections after a debounce
window, skipped entirely when the collection's fingerprint matches the
last successful write. Remote change notifications re-hydrate the store
unless they are echoes of this client's own writes.
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from collections import deque
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from typing import Any, Protocol

from opsdash.adapters.supabase.client import BackendError, ChangeNotification, SupabaseClient
from opsdash.config import BackendConfig, SyncConfig
from opsdash.domain.codec import RECORD_TYPES, decode_all, encode_all, fingerprint
from opsdash.domain.defaults import DEFAULT_MONTHLY_TARGET, INITIAL_AGENTS, INITIAL_TEAM
from opsdash.services.debounce import Debouncer, TimerFactory
from opsdash.services.events import EventLogger
from opsdash.services.utils import new_id
from opsdash.store.state import COLLECTIONS, TARGET_KEY, AppState

logger = logging.getLogger(__name__)

API_KEY_ENV = "OPSDASH_API_KEY"
OWN_WRITE_HISTORY = 64
ROSTER_DEFAULTS = {"agents": INITIAL_AGENTS, "team_members": INITIAL_TEAM}


class SyncError(RuntimeError):
    pass


class _BackendLike(Protocol):
    def select_all(self, table: str) -> list[dict[str, Any]]: ...

    def replace_all(self, table: str, records: list[dict[str, Any]], write_id: str) -> None: ...

    def get_config(self, key: str) -> Any | None: ...

    def set_config(self, key: str, value: Any, write_id: str | None = None) -> None: ...


def build_client(backend: BackendConfig) -> SupabaseClient:
    if backend.provider != "supabase":
        raise SyncError("Only the supabase backend provider is supported.")
    if not backend.url:
        raise SyncError("Workspace backend.url is required.")
    api_key = os.getenv(API_KEY_ENV)
    if not api_key:
        raise SyncError(f"{API_KEY_ENV} is not set.")
    return SupabaseClient(url=backend.url, api_key=api_key, config_table=backend.config_table)


class SyncAdapter:
    def __init__(
        self,
        client: _BackendLike,
        state: AppState,
        tables: dict[str, str] | None = None,
        sync: SyncConfig | None = None,
        default_target: int = DEFAULT_MONTHLY_TARGET,
        events: EventLogger | None = None,
        notify: Callable[[str], None] | None = None,
        timer_factory: TimerFactory = threading.Timer,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        sync = sync or SyncConfig()
        self.client = client
        self.state = state
        self.tables = {name: (tables or {}).get(name) or name for name in COLLECTIONS}
        self.echo_guard_seconds = sync.echo_guard_seconds
        self.default_target = default_target
        self.events = events
        self.notify = notify
        self._clock = clock
        self._debouncer = Debouncer(sync.debounce_seconds, timer_factory=timer_factory)
        self._lock = threading.Lock()
        self._fingerprints: dict[str, str] = {}
        self._own_write_ids: deque[str] = deque(maxlen=OWN_WRITE_HISTORY)
        self._in_flight = 0
        self._guard_until = 0.0
        self._started = False
        self._paused = False
        self._unsubscribe = state.subscribe(self._on_local_change)

    @property
    def is_syncing(self) -> bool:
        with self._lock:
            return self._in_flight > 0

    def start(self) -> bool:
        if self._started:
            return False
        self._started = True
        return self.hydrate()

    def hydrate(self) -> bool:
        try:
            with ThreadPoolExecutor(max_workers=len(COLLECTIONS) + 1) as pool:
                futures = {
                    name: pool.submit(self.client.select_all, self.tables[name])
                    for name in COLLECTIONS
                }
                target_future = pool.submit(self.client.get_config, TARGET_KEY)
                fetched = {name: future.result() for name, future in futures.items()}
                remote_target = target_future.result()
        except BackendError as exc:
            logger.warning("Hydrate failed: %s", exc)
            self._event("hydrate_failed", detail={"error": str(exc)})
            self._notice(f"Could not load data from the backend: {exc}")
            self._apply_defaults()
            return False

        decoded = {name: decode_all(RECORD_TYPES[name], fetched[name]) for name in COLLECTIONS}
        with self._lock:
            for name, records in decoded.items():
                self._fingerprints[name] = fingerprint(encode_all(records))
        target = _as_target(remote_target)
        if target is not None:
            with self._lock:
                self._fingerprints[TARGET_KEY] = fingerprint(target)

        for name, records in decoded.items():
            if not records and name in ROSTER_DEFAULTS:
                records = list(ROSTER_DEFAULTS[name])
            self.state.replace(name, records)
        self.state.set_monthly_target(target if target is not None else self.default_target)
        self._event(
            "hydrate", detail={name: len(records) for name, records in decoded.items()}
        )
        return True

    def persist(self, name: str, items: Any) -> bool:
        payload = items if name == TARGET_KEY else encode_all(items)
        digest = fingerprint(payload)
        with self._lock:
            unchanged = self._fingerprints.get(name) == digest
        if unchanged:
            # Drop any pending write of an intermediate value.
            self._debouncer.cancel(name)
            return False
        self._debouncer.call(name, lambda: self._write(name, payload, digest))
        return True

    def on_remote_change(self, notification: ChangeNotification) -> bool:
        with self._lock:
            own_echo = notification.write_id is not None and notification.write_id in self._own_write_ids
            busy = self._in_flight > 0 or self._clock() < self._guard_until
        if own_echo:
            reason = "own_write"
        elif busy or self._debouncer.pending():
            reason = "local_write_active"
        elif notification.table not in self._watched_tables():
            reason = "unwatched_table"
        else:
            reason = None
        if reason is not None:
            logger.debug("Ignoring %s on %s: %s", notification.event, notification.table, reason)
            self._event(
                "remote_change_ignored",
                collection=notification.table,
                detail={"event": notification.event, "reason": reason},
            )
            return False
        self._event(
            "remote_change_applied",
            collection=notification.table,
            detail={"event": notification.event},
        )
        return self.hydrate()

    def listen(self, lines: Iterable[str]) -> int:
        applied = 0
        for line in lines:
            line = line.strip()
            if not line:
                continue
            try:
                notification = ChangeNotification.from_payload(json.loads(line))
            except (json.JSONDecodeError, BackendError, AttributeError) as exc:
                logger.warning("Skipping malformed change notification: %s", exc)
                continue
            if self.on_remote_change(notification):
                applied += 1
        return applied

    def flush(self) -> None:
        self._debouncer.flush()

    def close(self) -> None:
        self._debouncer.cancel_all()
        self._unsubscribe()

    @contextmanager
    def paused(self):
        """Apply state changes without writing them back, then treat them as clean."""
        self._paused = True
        try:
            yield self
        finally:
            self._paused = False
            self._mark_clean()

    def _on_local_change(self, name: str, value: Any) -> None:
        if self._paused:
            return
        self.persist(name, value)

    def _write(self, name: str, payload: Any, digest: str) -> bool:
        write_id = new_id()
        with self._lock:
            self._in_flight += 1
            self._own_write_ids.append(write_id)
        try:
            if name == TARGET_KEY:
                self.client.set_config(TARGET_KEY, payload, write_id=write_id)
            else:
                self.client.replace_all(self.tables[name], payload, write_id=write_id)
        except BackendError as exc:
            logger.warning("Persist of %s failed: %s", name, exc)
            self._event("persist_failed", collection=name, detail={"error": str(exc)})
            self._notice(f"Could not save {name}; the next change will retry: {exc}")
            return False
        else:
            with self._lock:
                self._fingerprints[name] = digest
            count = 1 if name == TARGET_KEY else len(payload)
            self._event("persist", collection=name, detail={"records": count, "write_id": write_id})
            return True
        finally:
            with self._lock:
                self._in_flight -= 1
                self._guard_until = self._clock() + self.echo_guard_seconds

    def _apply_defaults(self) -> None:
        with self.paused():
            for name, defaults in ROSTER_DEFAULTS.items():
                if not self.state.get(name):
                    self.state.replace(name, list(defaults))

    def _mark_clean(self) -> None:
        with self._lock:
            for name in COLLECTIONS:
                self._fingerprints[name] = fingerprint(encode_all(self.state.get(name)))
            self._fingerprints[TARGET_KEY] = fingerprint(self.state.monthly_target)

    def _watched_tables(self) -> set[str]:
        return set(self.tables.values()) | {getattr(self.client, "config_table", "app_config")}

    def _event(self, event_type: str, collection: str | None = None, detail: dict | None = None) -> None:
        if self.events is not None:
            self.events.log(event_type=event_type, collection=collection, detail=detail)

    def _notice(self, message: str) -> None:
        if self.notify is not None:
            self.notify(message)


def _as_target(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        target = int(float(value))
    except (TypeError, ValueError):
        return None
    return target if target > 0 else None
