from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from opsdash.domain.defaults import DEFAULT_MONTHLY_TARGET
from opsdash.domain.stages import ALL_SOURCES

WORKSPACES_DIR = Path("workspaces")
CURRENT_WORKSPACE_FILE = WORKSPACES_DIR / ".current"
WORKSPACE_FILENAME = "workspace.yaml"
DEFAULT_CACHE_PATH = "./cache.json"

DEFAULT_TABLES = {
    "tasks": "tasks",
    "leads": "leads",
    "sales": "sales",
    "expenses": "expenses",
    "content": "content",
    "agents": "agents",
    "team_members": "team_members",
    "versions": "versions",
    "batch_projects": "batch_projects",
}


@dataclass(frozen=True)
class BackendConfig:
    provider: str
    url: str | None
    tables: dict[str, str]
    config_table: str = "app_config"


@dataclass(frozen=True)
class SyncConfig:
    debounce_seconds: float = 1.2
    echo_guard_seconds: float = 0.5


@dataclass(frozen=True)
class ReportConfig:
    timezone: str = "Asia/Dhaka"
    product_name: str = "Learningmate"
    monthly_target: int = DEFAULT_MONTHLY_TARGET
    sources: frozenset[str] = field(default_factory=lambda: ALL_SOURCES)


@dataclass(frozen=True)
class WorkspaceConfig:
    name: str
    backend: BackendConfig
    sync: SyncConfig
    report: ReportConfig
    cache_path: Path
    path: Path


class WorkspaceError(RuntimeError):
    pass


def ensure_workspaces_dir() -> None:
    WORKSPACES_DIR.mkdir(parents=True, exist_ok=True)


def set_current_workspace(name: str) -> None:
    ensure_workspaces_dir()
    CURRENT_WORKSPACE_FILE.write_text(f"{name}\n", encoding="utf-8")


def get_current_workspace_name() -> str:
    if not CURRENT_WORKSPACE_FILE.exists():
        raise WorkspaceError("No active workspace. Run `opsdash workspace use <name>`.")
    return CURRENT_WORKSPACE_FILE.read_text(encoding="utf-8").strip()


def workspace_path(name: str) -> Path:
    return WORKSPACES_DIR / name


def workspace_config_path(name: str) -> Path:
    return workspace_path(name) / WORKSPACE_FILENAME


def load_workspace(name: str | None = None) -> WorkspaceConfig:
    if name is None:
        name = get_current_workspace_name()
    config_path = workspace_config_path(name)
    if not config_path.exists():
        raise WorkspaceError(f"Workspace config not found: {config_path}")
    data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise WorkspaceError("Workspace config must be a mapping.")
    return WorkspaceConfig(
        name=name,
        backend=_parse_backend(data.get("backend")),
        sync=_parse_sync(data.get("sync")),
        report=_parse_report(data.get("report")),
        cache_path=_resolve_cache_path((data.get("cache") or {}).get("path"), config_path),
        path=config_path.parent,
    )


def write_workspace_config(name: str, url: str | None) -> Path:
    ensure_workspaces_dir()
    ws_dir = workspace_path(name)
    ws_dir.mkdir(parents=True, exist_ok=True)
    config = {
        "workspace": name,
        "backend": {
            "provider": "supabase",
            "url": url,
            "tables": dict(DEFAULT_TABLES),
            "config_table": "app_config",
        },
        "sync": {"debounce_seconds": 1.2, "echo_guard_seconds": 0.5},
        "report": {
            "timezone": "Asia/Dhaka",
            "product_name": "Learningmate",
            "monthly_target": DEFAULT_MONTHLY_TARGET,
            "sources": sorted(ALL_SOURCES),
        },
        "cache": {"path": DEFAULT_CACHE_PATH},
    }
    config_path = workspace_config_path(name)
    config_path.write_text(yaml.safe_dump(config, sort_keys=False), encoding="utf-8")
    return config_path


def _parse_backend(backend_data: Any) -> BackendConfig:
    if backend_data is None:
        return BackendConfig(provider="supabase", url=None, tables=dict(DEFAULT_TABLES))
    if not isinstance(backend_data, dict):
        raise WorkspaceError("Invalid workspace backend configuration.")
    tables = backend_data.get("tables") or {}
    if not isinstance(tables, dict):
        raise WorkspaceError("Workspace backend.tables must be a mapping.")
    unknown = sorted(set(tables) - set(DEFAULT_TABLES))
    if unknown:
        raise WorkspaceError(f"Unknown backend tables: {', '.join(unknown)}")
    merged = {**DEFAULT_TABLES, **{key: value for key, value in tables.items() if value}}
    return BackendConfig(
        provider=backend_data.get("provider") or "",
        url=backend_data.get("url"),
        tables=merged,
        config_table=backend_data.get("config_table") or "app_config",
    )


def _parse_sync(sync_data: Any) -> SyncConfig:
    if sync_data is None:
        return SyncConfig()
    if not isinstance(sync_data, dict):
        raise WorkspaceError("Invalid workspace sync configuration.")
    defaults = SyncConfig()
    return SyncConfig(
        debounce_seconds=_non_negative(sync_data.get("debounce_seconds"), defaults.debounce_seconds, "sync.debounce_seconds"),
        echo_guard_seconds=_non_negative(
            sync_data.get("echo_guard_seconds"), defaults.echo_guard_seconds, "sync.echo_guard_seconds"
        ),
    )


def _parse_report(report_data: Any) -> ReportConfig:
    if report_data is None:
        return ReportConfig()
    if not isinstance(report_data, dict):
        raise WorkspaceError("Invalid workspace report configuration.")
    defaults = ReportConfig()
    timezone = report_data.get("timezone") or defaults.timezone
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise WorkspaceError(f"Unknown report.timezone: {timezone}") from exc
    target = report_data.get("monthly_target", defaults.monthly_target)
    if not isinstance(target, int) or isinstance(target, bool) or target < 0:
        raise WorkspaceError("Workspace report.monthly_target must be a non-negative integer.")
    sources = report_data.get("sources")
    if sources is None:
        parsed_sources = defaults.sources
    else:
        if not isinstance(sources, list) or not sources:
            raise WorkspaceError("Workspace report.sources must be a non-empty list.")
        unknown = sorted(set(sources) - ALL_SOURCES)
        if unknown:
            raise WorkspaceError(f"Unknown report sources: {', '.join(unknown)}")
        parsed_sources = frozenset(sources)
    return ReportConfig(
        timezone=timezone,
        product_name=report_data.get("product_name") or defaults.product_name,
        monthly_target=target,
        sources=parsed_sources,
    )


def _resolve_cache_path(raw: Any, config_path: Path) -> Path:
    if raw is None:
        raw = DEFAULT_CACHE_PATH
    if not isinstance(raw, str):
        raise WorkspaceError("Workspace cache.path must be a string.")
    raw_path = Path(raw)
    if raw_path.is_absolute():
        return raw_path
    workspace_dir = config_path.parent
    if raw_path.parts and raw_path.parts[0] == WORKSPACES_DIR.name:
        # Paths written from the repo root already include "workspaces/...".
        return (workspace_dir.parent.parent / raw_path).resolve()
    return (workspace_dir / raw_path).resolve()


def _non_negative(value: Any, default: float, field_name: str) -> float:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise WorkspaceError(f"Workspace {field_name} must be a non-negative number.")
    return float(value)
