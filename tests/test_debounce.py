from opsdash.services.debounce import Debouncer


class FakeTimer:
    def __init__(self, delay, function, args=()) -> None:
        self.delay = delay
        self.function = function
        self.args = args
        self.daemon = False
        self.cancelled = False

    def start(self) -> None:
        pass

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        self.function(*self.args)


def test_only_last_action_per_key_runs() -> None:
    timers = []

    def factory(*args, **kwargs):
        timer = FakeTimer(*args, **kwargs)
        timers.append(timer)
        return timer

    calls = []
    debouncer = Debouncer(1.2, timer_factory=factory)
    debouncer.call("sales", lambda: calls.append("first"))
    debouncer.call("sales", lambda: calls.append("second"))
    debouncer.call("tasks", lambda: calls.append("tasks"))

    assert timers[0].cancelled is True
    assert timers[0].daemon is True
    timers[0].fire()
    timers[1].fire()
    assert calls == ["second"]
    assert debouncer.pending("sales") is False
    assert debouncer.pending() is True


def test_flush_runs_pending_now() -> None:
    calls = []
    debouncer = Debouncer(60, timer_factory=FakeTimer)
    debouncer.call("a", lambda: calls.append("a"))
    debouncer.call("b", lambda: calls.append("b"))
    debouncer.flush()
    assert calls == ["a", "b"]
    assert debouncer.pending() is False


def test_cancel_all_drops_pending() -> None:
    calls = []
    debouncer = Debouncer(60, timer_factory=FakeTimer)
    debouncer.call("a", lambda: calls.append("a"))
    debouncer.cancel_all()
    debouncer.flush()
    assert calls == []


def test_cancel_drops_one_key() -> None:
    timers = []

    def factory(*args, **kwargs):
        timer = FakeTimer(*args, **kwargs)
        timers.append(timer)
        return timer

    calls = []
    debouncer = Debouncer(1.0, timer_factory=factory)
    debouncer.call("sales", lambda: calls.append("sales"))
    debouncer.call("tasks", lambda: calls.append("tasks"))

    assert debouncer.cancel("sales") is True
    assert debouncer.cancel("sales") is False
    assert timers[0].cancelled is True
    timers[0].fire()
    debouncer.flush()
    assert calls == ["tasks"]
