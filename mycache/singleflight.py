"""Suppression of duplicate concurrent calls for the same key."""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional


class _Call:
    def __init__(self) -> None:
        self.done = threading.Event()
        self.value: Any = None
        self.error: Optional[BaseException] = None

    def result(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.value


class CallGroup:
    """Ensures that concurrent calls for one key run ``fn`` only once.

    Callers arriving while a call is in flight wait for it and share its result
    (or its exception). Once the call finishes the key is forgotten, so later
    calls run ``fn`` again.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._calls: dict[str, _Call] = {}

    def do(self, key: str, fn: Callable[[], Any]) -> Any:
        """Run ``fn`` for ``key`` unless a call is already in flight; return its result."""
        with self._lock:
            call = self._calls.get(key)
            leader = call is None
            if leader:
                call = _Call()
                self._calls[key] = call

        if not leader:
            call.done.wait()
            return call.result()

        try:
            call.value = fn()
        except BaseException as exc:  # shared with every waiter
            call.error = exc
        finally:
            call.done.set()
            with self._lock:
                del self._calls[key]
        return call.result()