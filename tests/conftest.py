"""
Shared test fixtures for the mini_fetch test suite.

The servers here run on 127.0.0.1 in background threads, so the connection
core is exercised over real sockets without any network access.
"""

import socket
import socketserver
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Union

import pytest

from mini_fetch.http import tls


@dataclass
class RecordedRequest:
    """A request as received by a test server."""

    method: str
    target: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    raw: bytes = b""


def read_request_head(sock: socket.socket) -> bytes:
    """Read from ``sock`` until the end of the header block."""
    data = b""
    while b"\r\n\r\n" not in data:
        chunk = sock.recv(4096)
        if not chunk:
            break
        data += chunk
    return data


def parse_request(data: bytes, sock: socket.socket) -> RecordedRequest:
    head, _, body = data.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    method, target, _ = lines[0].split(" ", 2)
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()

    length = int(headers.get("content-length", "0"))
    while len(body) < length:
        chunk = sock.recv(4096)
        if not chunk:
            break
        body += chunk

    return RecordedRequest(method, target, headers, body, data)


def http_response(
    status: int = 200,
    reason: str = "OK",
    body: bytes = b"",
    headers: Optional[Dict[str, str]] = None,
) -> bytes:
    """Build a raw HTTP/1.1 response with a Content-Length."""
    lines = [f"HTTP/1.1 {status} {reason}"]
    for name, value in (headers or {}).items():
        lines.append(f"{name}: {value}")
    lines.append(f"Content-Length: {len(body)}")
    return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1") + body


Route = Union[bytes, Callable[[RecordedRequest, socket.socket], Optional[bytes]]]


class _ThreadingServer(socketserver.ThreadingTCPServer):
    daemon_threads = True
    allow_reuse_address = True
    block_on_close = False


class LoopbackHTTPServer:
    """
    Threaded HTTP server answering each request from a route table.

    A route is either raw response bytes or a callable receiving the recorded
    request and the client socket; a callable may write to the socket itself
    and return None.
    """

    def __init__(self) -> None:
        self.routes: Dict[str, Route] = {}
        self.requests: List[RecordedRequest] = []
        self.connections = 0
        self._lock = threading.Lock()

        owner = self

        class Handler(socketserver.BaseRequestHandler):
            def handle(self) -> None:
                with owner._lock:
                    owner.connections += 1
                data = read_request_head(self.request)
                if not data:
                    return
                recorded = parse_request(data, self.request)
                with owner._lock:
                    owner.requests.append(recorded)

                path = recorded.target.split("?", 1)[0]
                route = owner.routes.get(path, http_response(404, "Not Found", b"missing"))
                reply = route(recorded, self.request) if callable(route) else route
                if reply:
                    self.request.sendall(reply)

        self._server = _ThreadingServer(("127.0.0.1", 0), Handler)
        self.port = self._server.server_address[1]
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)

    @property
    def host(self) -> str:
        return f"127.0.0.1:{self.port}"

    def url(self, path: str = "/") -> str:
        return f"http://{self.host}{path}"

    @property
    def paths(self) -> List[str]:
        return [r.target for r in self.requests]

    def start(self) -> "LoopbackHTTPServer":
        self._thread.start()
        return self

    def stop(self) -> None:
        self._server.shutdown()
        self._server.server_close()


class LoopbackProxy:
    """
    Threaded CONNECT proxy.

    Replies to CONNECT with ``reply``; when the reply is a 200 it relays the
    connection to the requested target.
    """

    def __init__(self, reply: bytes = b"HTTP/1.1 200 Connection established\r\n\r\n") -> None:
        self.reply = reply
        self.connect_requests: List[RecordedRequest] = []

        owner = self

        class Handler(socketserver.BaseRequestHandler):
            def handle(self) -> None:
                data = read_request_head(self.request)
                if not data:
                    return
                recorded = parse_request(data, self.request)
                owner.connect_requests.append(recorded)
                self.request.sendall(owner.reply)
                if not owner.reply.startswith(b"HTTP/1.1 200"):
                    return

                host, _, port = recorded.target.rpartition(":")
                with socket.create_connection((host, int(port))) as upstream:
                    relay = threading.Thread(
                        target=_pipe, args=(upstream, self.request), daemon=True
                    )
                    relay.start()
                    _pipe(self.request, upstream)
                    relay.join(timeout=5)

        self._server = _ThreadingServer(("127.0.0.1", 0), Handler)
        self.port = self._server.server_address[1]
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)

    @property
    def url(self) -> str:
        return f"http://127.0.0.1:{self.port}"

    def start(self) -> "LoopbackProxy":
        self._thread.start()
        return self

    def stop(self) -> None:
        self._server.shutdown()
        self._server.server_close()


def _pipe(source: socket.socket, sink: socket.socket) -> None:
    try:
        while True:
            data = source.recv(4096)
            if not data:
                break
            sink.sendall(data)
        sink.shutdown(socket.SHUT_WR)
    except OSError:
        pass


@pytest.fixture
def http_server() -> Iterator[LoopbackHTTPServer]:
    """A running loopback HTTP server."""
    server = LoopbackHTTPServer().start()
    yield server
    server.stop()


@pytest.fixture
def origin_server() -> Iterator[LoopbackHTTPServer]:
    """A second loopback server, used as the origin behind a proxy."""
    server = LoopbackHTTPServer().start()
    yield server
    server.stop()


@pytest.fixture
def proxy_factory() -> Iterator[Callable[..., LoopbackProxy]]:
    """Start loopback proxies with a chosen CONNECT reply."""
    proxies: List[LoopbackProxy] = []

    def factory(reply: bytes = b"HTTP/1.1 200 Connection established\r\n\r\n") -> LoopbackProxy:
        proxy = LoopbackProxy(reply).start()
        proxies.append(proxy)
        return proxy

    yield factory
    for proxy in proxies:
        proxy.stop()


@pytest.fixture
def unused_port() -> int:
    """A local port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep MINI_FETCH_* variables and the TLS backend from leaking between tests."""
    monkeypatch.delenv("MINI_FETCH_TIMEOUT", raising=False)
    tls._reset_tls_backend()
    yield
    tls._reset_tls_backend()


class FakeStream:
    """HttpStream stand-in returning scripted chunks."""

    def __init__(self, chunks: List[bytes]) -> None:
        self.chunks = list(chunks)
        self.closed = False
        self.reads = 0

    def read(self, size: int = 8192) -> bytes:
        self.reads += 1
        if not self.chunks:
            return b""
        chunk = self.chunks.pop(0)
        if len(chunk) > size:
            self.chunks.insert(0, chunk[size:])
            chunk = chunk[:size]
        return chunk

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_stream() -> Callable[..., FakeStream]:
    """Build a FakeStream from raw byte chunks."""

    def factory(*chunks: bytes) -> FakeStream:
        return FakeStream(list(chunks))

    return factory
