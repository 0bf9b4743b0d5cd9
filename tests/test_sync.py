from opsdash.adapters.supabase.client import ChangeNotification
from opsdash.config import SyncConfig
from opsdash.domain.defaults import INITIAL_AGENTS, INITIAL_TEAM
from opsdash.domain.models import Sale
from opsdash.services.sync import SyncAdapter
from opsdash.store.state import AppState

from fakes import FakeClient, FakeClock, FakeTimer

REMOTE_SALE = {"id": "s1", "type": "call", "amount": 1000, "adCost": 200, "createdAt": "2026-10-01T12:00:00Z"}


def _adapter(client=None, notices=None, clock=None):
    FakeTimer.created = []
    state = AppState()
    adapter = SyncAdapter(
        client or FakeClient(),
        state,
        sync=SyncConfig(debounce_seconds=1.2, echo_guard_seconds=0.5),
        notify=(notices.append if notices is not None else None),
        timer_factory=FakeTimer,
        clock=clock or FakeClock(),
    )
    return adapter, state


def _live_timers():
    return [timer for timer in FakeTimer.created if not timer.cancelled]


def test_hydrate_loads_remote_without_writing_back() -> None:
    client = FakeClient(
        tables={"sales": [REMOTE_SALE], "agents": [{"id": "a1", "name": "Afrin"}], "team_members": [{"id": "t1"}]},
        target=750000,
    )
    adapter, state = _adapter(client)

    assert adapter.start() is True
    assert state.sales == [Sale(id="s1", amount=1000, ad_cost=200, created_at="2026-10-01T12:00:00Z")]
    assert state.monthly_target == 750000
    assert _live_timers() == []
    assert client.writes == []
    assert client.config_writes == []


def test_start_runs_once() -> None:
    client = FakeClient()
    adapter, _ = _adapter(client)
    adapter.start()
    reads = len(client.reads)
    assert adapter.start() is False
    assert len(client.reads) == reads


def test_empty_roster_gets_defaults() -> None:
    adapter, state = _adapter(FakeClient())
    adapter.start()
    assert state.agents == list(INITIAL_AGENTS)
    assert state.team_members == list(INITIAL_TEAM)
    assert state.monthly_target == 500000


def test_unchanged_collection_is_not_written() -> None:
    client = FakeClient(tables={"sales": [REMOTE_SALE]})
    adapter, state = _adapter(client)
    adapter.start()
    FakeTimer.created = []

    state.replace("sales", state.sales)
    assert _live_timers() == []


def test_rapid_changes_coalesce_into_one_write_of_latest_state() -> None:
    client = FakeClient(tables={"sales": [REMOTE_SALE]})
    adapter, state = _adapter(client)
    adapter.start()
    FakeTimer.created = []

    state.replace("sales", [*state.sales, Sale(id="s2", amount=10)])
    state.replace("sales", [*state.sales, Sale(id="s3", amount=20)])
    live = _live_timers()
    assert len(live) == 1
    assert live[0].delay == 1.2

    live[0].fire()
    assert len(client.writes) == 1
    table, records, _ = client.writes[0]
    assert table == "sales"
    assert [record["id"] for record in records] == ["s1", "s2", "s3"]


def test_superseded_timer_does_not_write() -> None:
    client = FakeClient()
    adapter, state = _adapter(client)
    adapter.start()
    adapter.flush()
    client.writes.clear()
    FakeTimer.created = []

    state.replace("sales", [Sale(id="s2", amount=10)])
    first = FakeTimer.created[0]
    state.replace("sales", [Sale(id="s3", amount=20)])
    first.function(*first.args)
    assert client.writes == []


def test_failed_write_notifies_and_retries_on_next_change() -> None:
    client = FakeClient()
    notices = []
    adapter, state = _adapter(client, notices)
    adapter.start()
    adapter.flush()
    client.fail_writes = True

    state.replace("sales", [Sale(id="s2", amount=10)])
    adapter.flush()
    assert all(table != "sales" for table, _, _ in client.writes)
    assert len(notices) == 1
    assert "sales" in notices[0]

    client.fail_writes = False
    state.replace("sales", [Sale(id="s2", amount=10)])
    adapter.flush()
    assert client.writes[-1][0] == "sales"


def test_target_persists_through_config_table() -> None:
    client = FakeClient(target=500000)
    adapter, state = _adapter(client)
    adapter.start()
    adapter.flush()

    state.set_monthly_target(650000)
    adapter.flush()
    key, value, write_id = client.config_writes[-1]
    assert key == "monthly_target"
    assert value == 650000
    assert write_id


def test_hydrate_failure_notifies_and_keeps_defaults_local() -> None:
    client = FakeClient()
    client.fail_reads = True
    notices = []
    adapter, state = _adapter(client, notices)

    assert adapter.start() is False
    assert len(notices) == 1
    assert state.agents == list(INITIAL_AGENTS)
    assert _live_timers() == []
    adapter.flush()
    assert client.writes == []


def test_own_write_echo_is_ignored() -> None:
    clock = FakeClock()
    client = FakeClient()
    adapter, state = _adapter(client, clock=clock)
    adapter.start()
    state.replace("sales", [Sale(id="s2", amount=10)])
    adapter.flush()
    write_id = client.writes[-1][2]
    clock.now += 10
    reads = len(client.reads)

    echo = ChangeNotification(table="sales", event="UPDATE", write_id=write_id)
    assert adapter.on_remote_change(echo) is False
    assert len(client.reads) == reads


def test_remote_change_ignored_while_local_write_is_recent() -> None:
    clock = FakeClock()
    client = FakeClient()
    adapter, state = _adapter(client, clock=clock)
    adapter.start()
    adapter.flush()
    state.replace("sales", [Sale(id="s2", amount=10)])
    foreign = ChangeNotification(table="sales", event="INSERT", write_id="someone-else")

    assert adapter.on_remote_change(foreign) is False

    adapter.flush()
    clock.now += 0.1
    assert adapter.on_remote_change(foreign) is False

    clock.now += 1
    client.tables["sales"] = [REMOTE_SALE]
    assert adapter.on_remote_change(foreign) is True
    assert [sale.id for sale in state.sales] == ["s1"]


def test_unwatched_table_is_ignored() -> None:
    clock = FakeClock()
    adapter, _ = _adapter(FakeClient(), clock=clock)
    adapter.start()
    adapter.flush()
    clock.now += 10
    assert adapter.on_remote_change(ChangeNotification(table="audit_log", event="INSERT")) is False


def test_listen_skips_malformed_lines() -> None:
    clock = FakeClock()
    client = FakeClient()
    adapter, state = _adapter(client, clock=clock)
    adapter.start()
    adapter.flush()
    clock.now += 10
    client.tables["sales"] = [REMOTE_SALE]

    lines = [
        "",
        "not json",
        '{"table": "sales"}',
        '{"table": "sales", "eventType": "INSERT", "new": {"id": "s1"}}',
    ]
    assert adapter.listen(lines) == 1
    assert [sale.id for sale in state.sales] == ["s1"]


def test_paused_changes_are_not_written() -> None:
    client = FakeClient()
    adapter, state = _adapter(client)
    adapter.start()
    adapter.flush()
    client.writes.clear()

    with adapter.paused():
        state.replace("sales", [Sale(id="cached", amount=5)])
    adapter.flush()
    assert client.writes == []
    assert adapter.is_syncing is False


def test_reverting_within_debounce_window_cancels_pending_write() -> None:
    client = FakeClient(tables={"sales": [REMOTE_SALE]})
    adapter, state = _adapter(client)
    adapter.start()
    adapter.flush()
    client.writes.clear()
    FakeTimer.created = []
    original = state.sales

    state.replace("sales", [*original, Sale(id="s2", amount=10)])
    state.replace("sales", original)
    for timer in FakeTimer.created:
        timer.fire()
    adapter.flush()

    assert client.writes == []
    assert [record["id"] for record in client.tables["sales"]] == ["s1"]
