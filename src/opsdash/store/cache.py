from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from opsdash.domain.codec import RECORD_TYPES, decode_all
from opsdash.domain.stages import Theme
from opsdash.store.state import TARGET_KEY, AppState


class LocalCache:
    """Small JSON key-value file kept next to the workspace config."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            return {}
        return data if isinstance(data, dict) else {}

    def write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2, sort_keys=True) + "\n", encoding="utf-8")

    def get_theme(self) -> str:
        theme = self.read().get("theme")
        if theme in {t.value for t in Theme}:
            return theme
        return Theme.DARK.value

    def set_theme(self, theme: str) -> None:
        data = self.read()
        data["theme"] = theme
        self.write(data)

    def save_state(self, state: AppState) -> None:
        data = self.read()
        data["collections"] = state.to_payload()
        self.write(data)

    def load_state(self, state: AppState) -> bool:
        collections = self.read().get("collections")
        if not isinstance(collections, dict):
            return False
        for name, cls in RECORD_TYPES.items():
            if name in collections:
                state.replace(name, decode_all(cls, collections[name]))
        target = collections.get(TARGET_KEY)
        if isinstance(target, int) and not isinstance(target, bool):
            state.set_monthly_target(target)
        return True
