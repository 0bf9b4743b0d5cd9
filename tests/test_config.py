from pathlib import Path

import pytest

from opsdash.config import (
    WORKSPACES_DIR,
    WorkspaceError,
    _resolve_cache_path,
    load_workspace,
    set_current_workspace,
    write_workspace_config,
)


def test_resolve_cache_path_relative(tmp_path: Path) -> None:
    ws_dir = tmp_path / WORKSPACES_DIR / "demo"
    ws_dir.mkdir(parents=True)
    config_path = ws_dir / "workspace.yaml"
    config_path.write_text("workspace: demo\ncache:\n  path: ./cache.json\n")

    resolved = _resolve_cache_path("./cache.json", config_path)
    assert resolved == (ws_dir / "cache.json").resolve()


def test_resolve_cache_path_repo_relative(tmp_path: Path) -> None:
    ws_dir = tmp_path / WORKSPACES_DIR / "demo"
    ws_dir.mkdir(parents=True)
    config_path = ws_dir / "workspace.yaml"
    config_path.write_text("workspace: demo\ncache:\n  path: workspaces/demo/cache.json\n")

    resolved = _resolve_cache_path("workspaces/demo/cache.json", config_path)
    assert resolved == (tmp_path / "workspaces" / "demo" / "cache.json").resolve()


def test_written_workspace_loads_with_defaults(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    write_workspace_config("demo", "https://example.supabase.co")
    set_current_workspace("demo")

    ws = load_workspace()
    assert ws.name == "demo"
    assert ws.backend.provider == "supabase"
    assert ws.backend.url == "https://example.supabase.co"
    assert ws.backend.tables["team_members"] == "team_members"
    assert ws.sync.debounce_seconds == 1.2
    assert ws.report.timezone == "Asia/Dhaka"
    assert ws.report.monthly_target == 500000
    assert "batch" in ws.report.sources
    assert ws.cache_path == (tmp_path / "workspaces" / "demo" / "cache.json").resolve()


def test_unknown_report_source_rejected(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    ws_dir = tmp_path / WORKSPACES_DIR / "demo"
    ws_dir.mkdir(parents=True)
    (ws_dir / "workspace.yaml").write_text("report:\n  sources: [call, billboard]\n")

    with pytest.raises(WorkspaceError, match="billboard"):
        load_workspace("demo")


def test_bad_timezone_rejected(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    ws_dir = tmp_path / WORKSPACES_DIR / "demo"
    ws_dir.mkdir(parents=True)
    (ws_dir / "workspace.yaml").write_text("report:\n  timezone: Mars/Olympus\n")

    with pytest.raises(WorkspaceError, match="timezone"):
        load_workspace("demo")


def test_missing_current_workspace(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    with pytest.raises(WorkspaceError):
        load_workspace()
