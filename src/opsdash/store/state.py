from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from opsdash.domain.codec import encode_all
from opsdash.domain.defaults import DEFAULT_MONTHLY_TARGET

COLLECTIONS = (
    "tasks",
    "leads",
    "sales",
    "expenses",
    "content",
    "agents",
    "team_members",
    "versions",
    "batch_projects",
)
TARGET_KEY = "monthly_target"

Listener = Callable[[str, Any], None]


class AppState:
    """In-memory copy of every collection plus the monthly target.

    The only mutation primitives are whole-collection replacement and
    setting the target. Subscribers are told the name and the new value
    after every mutation.
    """

    def __init__(self, monthly_target: int = DEFAULT_MONTHLY_TARGET) -> None:
        self._collections: dict[str, list[Any]] = {name: [] for name in COLLECTIONS}
        self._monthly_target = monthly_target
        self._listeners: list[Listener] = []

    def get(self, name: str) -> list[Any]:
        return list(self._collections[name])

    def replace(self, name: str, items: Iterable[Any]) -> None:
        if name not in self._collections:
            raise KeyError(f"Unknown collection: {name}")
        self._collections[name] = list(items)
        self._emit(name, self.get(name))

    @property
    def monthly_target(self) -> int:
        return self._monthly_target

    def set_monthly_target(self, value: int) -> None:
        self._monthly_target = int(value)
        self._emit(TARGET_KEY, self._monthly_target)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {name: encode_all(items) for name, items in self._collections.items()}
        payload[TARGET_KEY] = self._monthly_target
        return payload

    def _emit(self, name: str, value: Any) -> None:
        for listener in list(self._listeners):
            listener(name, value)

    @property
    def tasks(self) -> list[Any]:
        return self.get("tasks")

    @property
    def leads(self) -> list[Any]:
        return self.get("leads")

    @property
    def sales(self) -> list[Any]:
        return self.get("sales")

    @property
    def expenses(self) -> list[Any]:
        return self.get("expenses")

    @property
    def content(self) -> list[Any]:
        return self.get("content")

    @property
    def agents(self) -> list[Any]:
        return self.get("agents")

    @property
    def team_members(self) -> list[Any]:
        return self.get("team_members")

    @property
    def versions(self) -> list[Any]:
        return self.get("versions")

    @property
    def batch_projects(self) -> list[Any]:
        return self.get("batch_projects")
