"""Named cache namespaces that load missing values locally or from peers."""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, runtime_checkable

from mycache.byteview import ByteView
from mycache.cache import Cache, CacheInfo
from mycache.messages import KVResponse, Request
from mycache.persistence import WriteSequence
from mycache.singleflight import CallGroup

logger = logging.getLogger(__name__)

Getter = Callable[[str], bytes]


@runtime_checkable
class PeerGetter(Protocol):
    """Fetches a value for a group and key from a remote node."""

    def get(self, request: Request) -> KVResponse:
        ...


@runtime_checkable
class PeerPicker(Protocol):
    """Chooses the remote node that owns a key."""

    def pick_peer(self, key: str) -> Optional[PeerGetter]:
        """Return the owning peer, or None if the key belongs to this node."""
        ...


@dataclass
class Conf:
    """Configuration of a group and its persistence."""

    name: str
    enable_persistence: bool = False
    persistence_path: str = ""
    load_persistent_file: bool = False
    full_persistent_file: str = ""
    incr_persistent_file: str = ""


class Group:
    """A cache namespace.

    Lookups try the local cache first; on a miss the key is loaded from the
    owning peer if there is one, falling back to the user's ``getter``.
    """

    def __init__(self, conf: Conf, cache_bytes: int, getter: Getter) -> None:
        if getter is None or not callable(getter):
            raise TypeError("nil Getter")
        if not conf.name:
            raise ValueError("name error")
        write_sequence: Optional[WriteSequence] = None
        if conf.persistence_path and (conf.enable_persistence or conf.full_persistent_file):
            write_sequence = WriteSequence(
                os.path.join(conf.persistence_path, conf.name), conf.full_persistent_file
            )
        self.name = conf.name
        self.full_persistent_file = conf.full_persistent_file
        self._getter = getter
        self._cache = Cache(cache_bytes, write_sequence, conf.enable_persistence)
        self._peers: Optional[PeerPicker] = None
        self._loader = CallGroup()
        if conf.full_persistent_file:
            self._cache.load_persisted()

    def register_peers(self, peers: PeerPicker) -> None:
        """Attach the peer picker; may be done only once."""
        if self._peers is not None:
            raise RuntimeError("RegisterPeerPicker called more than once")
        self._peers = peers

    def get(self, key: str) -> ByteView:
        """Return the value for ``key``, loading it on a cache miss."""
        if not key:
            raise ValueError("key is required")
        cached = self._cache.get(key)
        if cached is not None:
            logger.info("[myCache] hit")
            return cached
        return self._loader.do(key, lambda: self._load(key))

    def delete(self, key: str) -> None:
        """Remove ``key`` from this group's cache."""
        if not key:
            raise ValueError("key is required")
        try:
            self._cache.delete(key)
        except OSError as exc:
            logger.warning("failed to delete %r: %s", key, exc)

    def backup(self) -> str:
        """Compact and back up the persisted log; return the backup path."""
        return self._cache.backup()

    def cache_info(self) -> CacheInfo:
        return self._cache.info()

    def _load(self, key: str) -> ByteView:
        if self._peers is not None:
            peer = self._peers.pick_peer(key)
            if peer is not None:
                try:
                    return self._get_from_peer(peer, key)
                except Exception as exc:
                    logger.warning("[myCache] Failed to get from peer: %s", exc)
        return self._get_locally(key)

    def _get_locally(self, key: str) -> ByteView:
        value = ByteView(bytes(self._getter(key)))
        try:
            self._cache.add(key, value)
        except OSError as exc:
            logger.warning("failed to persist %r: %s", key, exc)
        return value

    def _get_from_peer(self, peer: PeerGetter, key: str) -> ByteView:
        response = peer.get(Request(group=self.name, key=key))
        return ByteView(response.value)


_registry_lock = threading.RLock()
_groups: dict[str, Group] = {}


def new_group(conf: Conf, cache_bytes: int, getter: Getter) -> Group:
    """Create a group and register it under its name, replacing any earlier one."""
    with _registry_lock:
        group = Group(conf, cache_bytes, getter)
        _groups[conf.name] = group
        return group


def get_group(name: str) -> Optional[Group]:
    """Return the registered group called ``name``, or None."""
    with _registry_lock:
        return _groups.get(name)