import os

import pytest

from mycache.byteview import ByteView
from mycache.cache import Cache, CacheInfo, PersistenceDisabledError
from mycache.persistence import WriteSequence


@pytest.fixture
def write_sequence(tmp_path):
    ws = WriteSequence(tmp_path / "scores")
    yield ws
    ws.close()


def test_add_then_get_returns_value():
    cache = Cache(2 << 10)
    cache.add("Tom", ByteView(b"630"))
    assert cache.get("Tom") == ByteView(b"630")


def test_get_missing_key_returns_none():
    cache = Cache(2 << 10)
    assert cache.get("Jack") is None


def test_empty_key_is_ignored():
    cache = Cache(2 << 10)
    cache.add("", ByteView(b"630"))
    assert cache.info().keys_num == 0


def test_info_reports_capacity_and_count():
    cache = Cache(2 << 10)
    cache.add("Tom", ByteView(b"630"))
    cache.add("Jack", ByteView(b"1589"))
    info = cache.info()
    assert info.max_cache_bytes == 2 << 10
    assert info.keys_num == 2
    assert 0 < info.current_cache_bytes <= info.max_cache_bytes


def test_delete_restores_used_bytes():
    cache = Cache(2 << 10)
    before = cache.info()
    cache.add("Sam", ByteView(b"12567"))
    cache.delete("Sam")
    assert cache.info() == before
    assert cache.get("Sam") is None


def test_values_larger_than_capacity_are_not_stored():
    cache = Cache(4)
    cache.add("Sam", ByteView(b"12567"))
    assert cache.get("Sam") is None


def test_add_writes_through_when_persistence_enabled(write_sequence):
    cache = Cache(2 << 10, write_sequence, enable_persistence=True)
    cache.add("Tom", ByteView(b"630"))
    assert write_sequence.get("Tom") == b"630"


def test_add_does_not_persist_when_disabled(write_sequence):
    cache = Cache(2 << 10, write_sequence, enable_persistence=False)
    cache.add("Tom", ByteView(b"630"))
    assert write_sequence.keys() == []


def test_delete_removes_from_log(write_sequence):
    cache = Cache(2 << 10, write_sequence, enable_persistence=True)
    cache.add("Tom", ByteView(b"630"))
    cache.delete("Tom")
    with pytest.raises(KeyError):
        write_sequence.get("Tom")


def test_load_persisted_fills_cache(write_sequence):
    write_sequence.put("Tom", b"630")
    write_sequence.put("Jack", b"1589")
    cache = Cache(2 << 10, write_sequence)
    cache.load_persisted()
    assert cache.get("Tom") == ByteView(b"630")
    assert cache.get("Jack") == ByteView(b"1589")
    assert cache.info().keys_num == 2


def test_load_persisted_without_log_leaves_cache_empty():
    cache = Cache(2 << 10)
    cache.load_persisted()
    assert cache.info() == CacheInfo(0, 2 << 10, 0)


def test_backup_requires_persistence():
    cache = Cache(2 << 10)
    with pytest.raises(PersistenceDisabledError, match="persistence is not enabled"):
        cache.backup()


def test_backup_writes_copy_holding_live_keys(write_sequence, tmp_path):
    cache = Cache(2 << 10, write_sequence, enable_persistence=True)
    cache.add("Tom", ByteView(b"630"))
    cache.add("Sam", ByteView(b"12567"))
    cache.delete("Sam")
    path = cache.backup()
    assert os.path.exists(path)
    restored = WriteSequence(tmp_path / "restored", path)
    try:
        assert restored.keys() == ["Tom"]
        assert restored.get("Tom") == b"630"
    finally:
        restored.close()