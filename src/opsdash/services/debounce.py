from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any

TimerFactory = Callable[..., Any]


class Debouncer:
    """One cancel-and-restart timer per key.

    Scheduling a key that already has a pending timer replaces it, so only
    the last call inside the quiet period runs.
    """

    def __init__(self, delay: float, timer_factory: TimerFactory = threading.Timer) -> None:
        self.delay = delay
        self._timer_factory = timer_factory
        self._timers: dict[str, Any] = {}
        self._actions: dict[str, Callable[[], Any]] = {}
        self._lock = threading.Lock()

    def call(self, key: str, action: Callable[[], Any]) -> None:
        with self._lock:
            previous = self._timers.pop(key, None)
            if previous is not None:
                previous.cancel()
            timer = self._timer_factory(self.delay, self._fire, args=(key, action))
            timer.daemon = True
            self._timers[key] = timer
            self._actions[key] = action
        timer.start()

    def pending(self, key: str | None = None) -> bool:
        with self._lock:
            if key is None:
                return bool(self._timers)
            return key in self._timers

    def flush(self) -> None:
        with self._lock:
            due = list(self._actions.items())
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()
            self._actions.clear()
        for _, action in due:
            action()

    def cancel(self, key: str) -> bool:
        with self._lock:
            timer = self._timers.pop(key, None)
            self._actions.pop(key, None)
        if timer is None:
            return False
        timer.cancel()
        return True

    def cancel_all(self) -> None:
        with self._lock:
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()
            self._actions.clear()

    def _fire(self, key: str, action: Callable[[], Any]) -> None:
        with self._lock:
            if self._actions.get(key) is not action:
                return
            self._timers.pop(key, None)
            self._actions.pop(key, None)
        action()
