import threading
import time

import pytest

from mycache.singleflight import CallGroup


def test_single_call_returns_value():
    group = CallGroup()
    assert group.do("Tom", lambda: "630") == "630"


def test_sequential_calls_run_each_time():
    group = CallGroup()
    calls = []

    def fn():
        calls.append(1)
        return len(calls)

    assert group.do("k", fn) == 1
    assert group.do("k", fn) == 2
    assert len(calls) == 2


def test_exception_propagates():
    group = CallGroup()

    def fn():
        raise KeyError("missing")

    with pytest.raises(KeyError):
        group.do("k", fn)
    # The key is released after a failure.
    assert group.do("k", lambda: "ok") == "ok"


def test_concurrent_calls_are_deduplicated():
    group = CallGroup()
    started = threading.Event()
    release = threading.Event()
    counter = []
    results = []
    lock = threading.Lock()

    def fn():
        counter.append(1)
        started.set()
        release.wait(5)
        return "shared"

    def worker():
        value = group.do("Jack", fn)
        with lock:
            results.append(value)

    leader = threading.Thread(target=worker)
    leader.start()
    assert started.wait(5)
    followers = [threading.Thread(target=worker) for _ in range(4)]
    for t in followers:
        t.start()
    timer = threading.Timer(0.2, release.set)
    timer.start()

    own_value = group.do("Jack", fn)

    for t in [leader, *followers]:
        t.join(5)
    timer.join(5)

    assert own_value == "shared"
    assert len(counter) == 1
    assert results == ["shared"] * 5


def test_concurrent_waiters_share_exception():
    group = CallGroup()
    started = threading.Event()
    release = threading.Event()
    errors = []
    lock = threading.Lock()

    def fn():
        started.set()
        release.wait(5)
        raise ValueError("boom")

    def worker():
        try:
            group.do("k", fn)
        except ValueError as exc:
            with lock:
                errors.append(str(exc))

    leader = threading.Thread(target=worker)
    leader.start()
    assert started.wait(5)
    timer = threading.Timer(0.2, release.set)
    timer.start()

    with pytest.raises(ValueError, match="boom"):
        group.do("k", fn)

    leader.join(5)
    timer.join(5)
    assert errors == ["boom"]


def test_different_keys_run_independently():
    group = CallGroup()
    assert group.do("a", lambda: 1) == 1
    assert group.do("b", lambda: 2) == 2