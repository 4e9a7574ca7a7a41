import zlib

from mycache.consistenthash import HashRing


def _int_hash(data: bytes) -> int:
    return int(data.decode())


def test_hashing_with_custom_hash():
    ring = HashRing(3, _int_hash)
    ring.add("6", "4", "2")
    cases = {"2": "2", "11": "2", "23": "4", "27": "2"}
    for key, node in cases.items():
        assert ring.get(key) == node

    ring.add("8")
    cases["27"] = "8"
    for key, node in cases.items():
        assert ring.get(key) == node


def test_empty_ring_returns_none():
    ring = HashRing(50)
    assert ring.get("Tom") is None


def test_default_hash_is_crc32():
    nodes = ["http://localhost:8001", "http://localhost:8002", "http://localhost:8003"]
    default_ring = HashRing(50)
    crc_ring = HashRing(50, zlib.crc32)
    default_ring.add(*nodes)
    crc_ring.add(*nodes)
    for key in ["Tom", "Jack", "Sam", "alpha", "beta"]:
        assert default_ring.get(key) == crc_ring.get(key)
        assert default_ring.get(key) in nodes


def test_single_node_owns_everything():
    ring = HashRing(5)
    ring.add("only")
    assert {ring.get(k) for k in ["a", "b", "c", "d"]} == {"only"}


def test_lookup_is_stable():
    ring = HashRing(10)
    ring.add("n1", "n2", "n3")
    first = [ring.get(str(i)) for i in range(20)]
    second = [ring.get(str(i)) for i in range(20)]
    assert first == second