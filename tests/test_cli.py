import json
from pathlib import Path

from typer.testing import CliRunner

from opsdash import cli

from fakes import FakeClient

runner = CliRunner()


def _workspace(tmp_path: Path, monkeypatch) -> FakeClient:
    monkeypatch.chdir(tmp_path)
    client = FakeClient()
    monkeypatch.setattr(cli, "build_client", lambda backend: client)
    result = runner.invoke(cli.app, ["workspace", "add", "demo", "--url", "https://demo.supabase.co"])
    assert result.exit_code == 0
    return client


def test_sale_add_writes_collection_and_logs_events(tmp_path: Path, monkeypatch) -> None:
    client = _workspace(tmp_path, monkeypatch)

    result = runner.invoke(cli.app, ["sale", "add", "--amount", "1500", "--agent", "afrin", "--date", "2026-10-22"])
    assert result.exit_code == 0, result.output
    assert "Recorded sale" in result.output

    sales = client.tables["sales"]
    assert len(sales) == 1
    assert sales[0]["amount"] == 1500
    assert sales[0]["agentId"] == "afrin"

    events = [
        json.loads(line)
        for line in (tmp_path / "workspaces" / "demo" / "events.ndjson").read_text().splitlines()
    ]
    assert events[0]["event_type"] == "hydrate"
    assert any(e["event_type"] == "persist" and e["collection"] == "sales" for e in events)


def test_validation_error_exits_non_zero(tmp_path: Path, monkeypatch) -> None:
    client = _workspace(tmp_path, monkeypatch)
    result = runner.invoke(cli.app, ["sale", "add", "--amount", "0"])
    assert result.exit_code == 1
    assert "sales" not in client.tables


def test_offline_session_uses_cache_without_pushing(tmp_path: Path, monkeypatch) -> None:
    client = _workspace(tmp_path, monkeypatch)
    runner.invoke(cli.app, ["lead", "add", "Nadia"])
    client.fail_reads = True
    client.writes.clear()

    result = runner.invoke(cli.app, ["lead", "list"])
    assert result.exit_code == 0
    assert "Nadia" in result.output
    assert client.writes == []


def test_theme_is_stored_locally(tmp_path: Path, monkeypatch) -> None:
    _workspace(tmp_path, monkeypatch)
    assert runner.invoke(cli.app, ["theme"]).output.strip() == "dark"
    assert runner.invoke(cli.app, ["theme", "light"]).exit_code == 0
    assert runner.invoke(cli.app, ["theme"]).output.strip() == "light"
    assert runner.invoke(cli.app, ["theme", "neon"]).exit_code == 1
