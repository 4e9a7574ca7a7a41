"""HTTP transport between cache nodes: a WSGI server and a peer client."""

from __future__ import annotations

import logging
import threading
import urllib.error
import urllib.request
from http import HTTPStatus
from typing import Iterable, Optional
from urllib.parse import quote
from wsgiref.simple_server import WSGIRequestHandler, make_server

from mycache.cache import PersistenceDisabledError
from mycache.consistenthash import HashRing
from mycache.group import get_group
from mycache.messages import DecodeError, InfoResponse, KVResponse, Request

logger = logging.getLogger(__name__)

DEFAULT_BASE_PATH = "/_mycache/"
INTERNAL_BASE_PATH = "/_mycache_internal/"
DEFAULT_REPLICAS = 50

_OCTET_STREAM = "application/octet-stream"
_TEXT_PLAIN = "text/plain; charset=utf-8"

# (status code, content type or "", body)
HandlerResult = tuple[int, str, bytes]


def _error(status: HTTPStatus, message: str) -> HandlerResult:
    return int(status), _TEXT_PLAIN, (message + "\n").encode("utf-8")


class HTTPGetter:
    """Fetches values from one remote node over HTTP."""

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url

    def get(self, request: Request) -> KVResponse:
        """Ask the remote node for ``request.key`` in ``request.group``."""
        url = f"{self.base_url}{quote(request.group, safe='')}/{quote(request.key, safe='')}"
        try:
            with urllib.request.urlopen(url) as response:
                body = response.read()
        except urllib.error.HTTPError as exc:
            raise RuntimeError(f"server returned: {exc.code} {exc.reason}") from exc
        try:
            return KVResponse.decode(body)
        except DecodeError as exc:
            raise DecodeError(f"decoding response body: {exc}") from exc


class _QuietHandler(WSGIRequestHandler):
    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        logger.debug(format, *args)


class HTTPPool:
    """A pool of HTTP peers: serves this node's groups and picks peers by key."""

    def __init__(self, self_url: str) -> None:
        self.self_url = self_url
        self.base_path = DEFAULT_BASE_PATH
        self._lock = threading.Lock()
        self._peers: Optional[HashRing] = None
        self._getters: dict[str, HTTPGetter] = {}

    def log(self, fmt: str, *args: object) -> None:
        """Log a message tagged with this server's address."""
        logger.info("[Server %s] %s", self.self_url, fmt % args if args else fmt)

    def set(self, *args: str) -> None:
        """Replace the set of peers (this node included) by their base URLs."""
        with self._lock:
            ring = HashRing(DEFAULT_REPLICAS)
            ring.add(*args)
            self._peers = ring
            self._getters = {peer: HTTPGetter(peer + self.base_path) for peer in args}

    def pick_peer(self, key: str) -> Optional[HTTPGetter]:
        """Return the getter of the remote node owning ``key``, or None if it is this node."""
        with self._lock:
            if self._peers is None:
                return None
            peer = self._peers.get(key)
            if peer and peer != self.self_url:
                self.log("Pick peer %s", peer)
                return self._getters[peer]
            return None

    def handle(self, method: str, path: str) -> HandlerResult:
        """Serve one request; return status, content type and body.

        Raises ValueError for a path outside this pool's prefixes.
        """
        if not path.startswith(self.base_path) and not path.startswith(INTERNAL_BASE_PATH):
            raise ValueError("HTTPPool serving unexpected path: " + path)
        self.log("%s %s", method, path)

        if path.startswith(INTERNAL_BASE_PATH):
            parts = path[len(INTERNAL_BASE_PATH):].split("/", 1)
            group_name = parts[0]
            if len(parts) == 1 and method == "GET":
                return self._serve_info(group_name)
            if len(parts) == 2 and parts[1] == "backup" and method == "POST":
                return self._serve_backup(group_name)
            return _error(HTTPStatus.BAD_REQUEST, "bad request")

        parts = path[len(self.base_path):].split("/", 1)
        if len(parts) != 2:
            return _error(HTTPStatus.BAD_REQUEST, "bad request")
        group_name, key = parts
        return self._serve_key(method, group_name, key)

    def _serve_key(self, method: str, group_name: str, key: str) -> HandlerResult:
        group = get_group(group_name)
        if group is None:
            return _error(HTTPStatus.NOT_FOUND, "no such group: " + group_name)
        if method == "GET":
            try:
                value = group.get(key).byte_slice()
            except Exception as exc:
                logger.warning("lookup of %r failed: %s", key, exc)
                value = b""
            return int(HTTPStatus.OK), _OCTET_STREAM, KVResponse(value=value).encode()
        if method == "DELETE":
            logger.info("delete key: %s", key)
            try:
                group.delete(key)
            except Exception as exc:
                return _error(HTTPStatus.INTERNAL_SERVER_ERROR, str(exc))
        return int(HTTPStatus.OK), "", b""

    def _serve_info(self, group_name: str) -> HandlerResult:
        group = get_group(group_name)
        if group is None:
            return _error(HTTPStatus.NOT_FOUND, "no such group: " + group_name)
        info = group.cache_info()
        body = InfoResponse(
            keys_num=info.keys_num,
            current_used_bytes=info.current_cache_bytes,
            max_used_bytes=info.max_cache_bytes,
        ).encode()
        logger.info("%s CacheInfo info: %s", group_name, info)
        return int(HTTPStatus.OK), _OCTET_STREAM, body

    def _serve_backup(self, group_name: str) -> HandlerResult:
        group = get_group(group_name)
        if group is None:
            return _error(HTTPStatus.NOT_FOUND, "no such group: " + group_name)
        try:
            group.backup()
        except (PersistenceDisabledError, OSError, EOFError) as exc:
            return _error(HTTPStatus.INTERNAL_SERVER_ERROR, str(exc))
        return int(HTTPStatus.OK), "", b""

    def __call__(self, environ: dict, start_response) -> Iterable[bytes]:
        method = environ.get("REQUEST_METHOD", "GET")
        raw_path = environ.get("PATH_INFO", "")
        path = raw_path.encode("latin-1").decode("utf-8", errors="replace")
        try:
            status, content_type, body = self.handle(method, path)
        except ValueError as exc:
            logger.error("%s", exc)
            status, content_type, body = _error(HTTPStatus.INTERNAL_SERVER_ERROR, str(exc))
        headers = [("Content-Length", str(len(body)))]
        if content_type:
            headers.append(("Content-Type", content_type))
        start_response(f"{status} {HTTPStatus(status).phrase}", headers)
        return [body]

    def serve(self, host: str, port: int) -> None:
        """Serve this pool over HTTP until interrupted."""
        with make_server(host, port, self, handler_class=_QuietHandler) as server:
            self.log("listening on %s:%d", host, port)
            server.serve_forever()