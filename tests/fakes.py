import copy

from opsdash.adapters.supabase.client import BackendError


class FakeClient:
    config_table = "app_config"

    def __init__(self, tables=None, target=None) -> None:
        self.tables = tables or {}
        self.target = target
        self.reads = []
        self.writes = []
        self.config_writes = []
        self.fail_reads = False
        self.fail_writes = False

    def select_all(self, table):
        self.reads.append(table)
        if self.fail_reads:
            raise BackendError("offline")
        return copy.deepcopy(self.tables.get(table, []))

    def replace_all(self, table, records, write_id):
        if self.fail_writes:
            raise BackendError("write rejected", status_code=500)
        self.writes.append((table, copy.deepcopy(records), write_id))
        self.tables[table] = copy.deepcopy(records)

    def get_config(self, key):
        if self.fail_reads:
            raise BackendError("offline")
        return self.target

    def set_config(self, key, value, write_id=None):
        self.config_writes.append((key, value, write_id))
        self.target = value


class FakeTimer:
    created = []

    def __init__(self, delay, function, args=()) -> None:
        self.delay = delay
        self.function = function
        self.args = args
        self.daemon = False
        self.started = False
        self.cancelled = False
        FakeTimer.created.append(self)

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled:
            self.function(*self.args)


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now
