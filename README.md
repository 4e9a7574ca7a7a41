# mycache

A small distributed key/value cache. Each node keeps a size-bounded LRU
cache per named group, fills misses through a loader function you supply,
and forwards keys that belong to other nodes over HTTP, choosing the owner
with a consistent-hash ring. Concurrent misses for the same key are
coalesced into a single load. Groups can optionally persist their entries
to an append-only data file that can be compacted and backed up.

No third-party libraries are needed at runtime. Messages are logged through
the standard `logging` module.

## Concepts

- **Group** (`mycache.group.Group`) – a named cache namespace with its own
  byte budget and loader. Create and register one with
  `new_group(conf, cache_bytes, getter)` and look it up later with
  `get_group(name)`, which returns `None` for an unknown name. Creating a
  group with a name already in use replaces the earlier one.
- **Getter** – a callable taking a key and returning the value as bytes;
  it is called on a cache miss and may raise if the key does not exist.
- **ByteView** (`mycache.byteview.ByteView`) – the immutable value returned
  from `Group.get`. Use `byte_slice()` for a copy of the bytes, `str()` for
  text and `len()` for its size.
- **HTTPPool** (`mycache.httppool.HTTPPool`) – a WSGI application that
  serves a node's groups and picks peers for keys owned elsewhere.

## Using a single node

```python
from mycache.group import Conf, new_group

DB = {"Tom": "630", "Jack": "1589", "Sam": "12567"}

def load(key):
    if key in DB:
        return DB[key].encode()
    raise KeyError(f"{key} not exist")

scores = new_group(Conf(name="scores"), 2 << 10, load)

print(str(scores.get("Tom")))   # "630", loaded through the getter
print(str(scores.get("Tom")))   # "630", now served from the cache
print(scores.cache_info())      # CacheInfo(current_cache_bytes=..., max_cache_bytes=2048, keys_num=1)
scores.delete("Tom")
```

`get` and `delete` raise `ValueError` for an empty key; an exception
raised by the getter is passed on to the caller. A `cache_bytes` of 0 means
no limit; otherwise the least recently used entries are evicted once keys
and values together exceed the budget.

## Running a cluster

Every node lists all node addresses, itself included. Keys are spread over
the nodes with a consistent-hash ring (50 virtual replicas per node); a node
that does not own a key asks the owner first and falls back to its own
getter if that request fails. Peers can be registered on a group only once.

```python
from mycache.httppool import HTTPPool

nodes = [
    "http://localhost:8001",
    "http://localhost:8002",
    "http://localhost:8003",
]

pool = HTTPPool("http://localhost:8001")
pool.set(*nodes)
scores.register_peers(pool)
pool.serve("localhost", 8001)
```

`HTTPPool` is a plain WSGI application, so it can also be mounted in any
WSGI server instead of calling `serve`. `HTTPPool.handle(method, path)`
answers a single request as a `(status, content_type, body)` tuple.

### HTTP endpoints

| Method | Path                                  | Effect                                             |
|--------|---------------------------------------|----------------------------------------------------|
| GET    | `/_mycache/<group>/<key>`             | Value for the key, as an encoded `KVResponse`      |
| DELETE | `/_mycache/<group>/<key>`             | Remove the key from the group                      |
| GET    | `/_mycache_internal/<group>`          | Key count, used bytes and budget (`InfoResponse`)  |
| POST   | `/_mycache_internal/<group>/backup`   | Compact and back up the group's data file          |

Unknown groups answer 404 and malformed paths 400; a path outside both
prefixes answers 500. A GET whose lookup fails still answers 200, with an
empty value. A backup of a group without persistence answers 500.

The response bodies use protocol-buffer encoding; `mycache.messages`
provides `Request`, `KVResponse` and `InfoResponse` with `encode()` and
`decode()`, raising `DecodeError` on malformed input.

## Persistence

Persistence is configured through `Conf`:

```python
conf = Conf(
    name="scores",
    enable_persistence=True,
    persistence_path="./persistence",
)
```

When `enable_persistence` is set and a `persistence_path` is given, every
value a group loads is appended to `<persistence_path>/<name>/append.data`
and deletions are recorded as tombstones. `Group.backup()` first compacts
the file to the live entries and then writes a copy named
`append.data.<milliseconds>` next to it, returning its path. Calling
`backup()` on a group without persistence raises
`PersistenceDisabledError`.

Setting `full_persistent_file` (together with `persistence_path`) starts
the group from an earlier data file: it is copied in as the group's data
file, an existing data file being kept aside as
`append.data.temp.<milliseconds>`, and its entries are loaded into the
cache on creation. The `load_persistent_file` and `incr_persistent_file`
fields are accepted but not used.

## Building blocks

The pieces are usable on their own:

- `mycache.lru.LRUCache` – byte-bounded LRU map with an eviction callback.
- `mycache.consistenthash.HashRing` – consistent-hash ring with virtual
  replicas (CRC-32 by default).
- `mycache.singleflight.CallGroup` – runs one call per key at a time and
  shares its result, or its exception, with concurrent callers.
- `mycache.cache.Cache` – thread-safe LRU cache with optional write-through
  to a `WriteSequence`.
- `mycache.persistence.WriteSequence` – append-only key/value log with an
  in-memory index, `merge()` and `backup()`.

## What it does not do

The package has no command-line program and no front-end API server: to run
a node, write a short script that creates the groups, configures an
`HTTPPool` and calls `serve`, as above. Loading from incremental data files
is not supported, and entries are not expired by time.