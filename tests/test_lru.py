from mycache.lru import LRUCache


def test_get():
    lru = LRUCache(0, None)
    lru.add("key1", "1234")
    assert lru.get("key1") == "1234"
    assert lru.get("key2") is None


def test_remove_oldest_on_overflow():
    k1, k2, k3 = "key1", "key2", "k3"
    v1, v2, v3 = "value1", "value2", "v3"
    capacity = len(k1 + k2 + v1 + v2)
    lru = LRUCache(capacity, None)
    lru.add(k1, v1)
    lru.add(k2, v2)
    lru.add(k3, v3)
    assert lru.get(k1) is None
    assert len(lru) == 2
    assert lru.used_bytes <= lru.max_bytes


def test_on_evicted_called():
    evicted = []
    lru = LRUCache(10, lambda key, value: evicted.append(key))
    lru.add("key1", "123456")
    lru.add("k2", "k2")
    lru.add("k3", "k3")
    lru.add("k4", "k4")
    assert evicted == ["key1", "k2"]


def test_get_refreshes_recency():
    lru = LRUCache(len("a1b2c3"), None)
    lru.add("a", "1")
    lru.add("b", "2")
    lru.add("c", "3")
    assert lru.get("a") == "1"
    lru.add("d", "4")
    assert lru.get("b") is None
    assert lru.get("a") == "1"


def test_add_rejects_oversized_entry():
    lru = LRUCache(4, None)
    assert lru.add("key", "value") is False
    assert len(lru) == 0
    assert lru.used_bytes == 0


def test_update_existing_adjusts_size():
    lru = LRUCache(0, None)
    assert lru.add("key", "ab") is True
    lru.add("key", "abcdef")
    assert lru.get("key") == "abcdef"
    assert len(lru) == 1
    assert lru.used_bytes == len("key") + len("abcdef")


def test_remove_and_empty_key():
    evicted = []
    lru = LRUCache(0, lambda k, v: evicted.append((k, v)))
    lru.add("key", "val")
    lru.remove("")
    lru.remove("missing")
    assert len(lru) == 1
    lru.remove("key")
    assert len(lru) == 0
    assert lru.used_bytes == 0
    assert evicted == [("key", "val")]


def test_remove_oldest_on_empty_cache():
    lru = LRUCache(0, None)
    lru.remove_oldest()
    assert len(lru) == 0
    assert lru.used_bytes == 0