"""
Connection orchestration for a single request.

A Connection takes one Request through every phase of an exchange:

    resolve + connect (directly, or through a proxy CONNECT tunnel)
        -> TLS handshake (https only)
        -> write the serialized request
        -> read the status line and headers
        -> follow the redirect, if any, with a fresh Connection

When the request has a timeout (its own, or MINI_FETCH_TIMEOUT), it becomes
one absolute deadline for the whole exchange. Each blocking call is bounded
by whatever is left of it, and a phase that would start after the deadline
fails with DeadlineExceededError instead. Without a timeout nothing is bounded.

Nothing is retried: the first failing phase ends the send, and the socket is
closed before the error propagates.
"""

from __future__ import annotations

import logging
import socket
from typing import Optional, Tuple

from ..config.loader import timeout_from_environment
from ..exceptions import AddressLookupError, ErrorHandler
from ..models.request import Request
from .hostnames import ensure_ascii_host, server_name, split_host
from .redirects import get_redirect
from .response import ResponseLazy
from .stream import HttpStream
from .timeouts import Deadline, calibrate_timeout
from .tls import TLSBackend, get_tls_backend
from .tunnel import open_tunnel

logger = logging.getLogger(__name__)


class Connection:
    """
    One attempt at sending a Request and receiving its response.

    A Connection owns its socket exclusively and can be sent only once;
    every redirect hop gets a new Connection.

    Attributes:
        request: The request to send
        timeout: Time budget in seconds, None for unbounded
    """

    def __init__(self, request: Request) -> None:
        self.request = request
        if request.timeout is not None:
            self.timeout: Optional[float] = request.timeout
        else:
            self.timeout = timeout_from_environment()
        self._used = False

    def send(self) -> ResponseLazy:
        """Send over plain TCP and follow redirects."""
        return handle_redirects(self, self._send_plain())

    def send_https(self, backend: Optional[TLSBackend] = None) -> ResponseLazy:
        """Send over TLS and follow redirects."""
        return handle_redirects(self, self._send_secured(backend), backend)

    def send_once(self, backend: Optional[TLSBackend] = None) -> ResponseLazy:
        """Send without following redirects, over TLS for https URLs."""
        if self.request.https:
            return self._send_secured(backend)
        return self._send_plain()

    def _begin(self) -> Tuple[bytes, Optional[float], Optional[Deadline]]:
        if self._used:
            raise RuntimeError("a Connection can only be sent once")
        self._used = True

        self.request.host = ensure_ascii_host(self.request.host)
        payload = self.request.as_bytes()
        deadline = Deadline.from_timeout(self.timeout)
        logger.debug(
            "Sending %s %s (timeout=%s)",
            self.request.method.value,
            self.request.url,
            self.timeout,
        )
        return payload, self.timeout, deadline

    def _send_plain(self) -> ResponseLazy:
        payload, timeout, deadline = self._begin()

        sock = self._connect(timeout, deadline)
        try:
            # Connecting may have used part of the budget
            timeout = calibrate_timeout(timeout, deadline)
            self._write(sock, payload, timeout)
        except BaseException:
            sock.close()
            raise

        stream = HttpStream.unsecured(sock, deadline, url=self.request.url)
        return self._read_response(stream)

    def _send_secured(self, backend: Optional[TLSBackend] = None) -> ResponseLazy:
        payload, timeout, deadline = self._begin()
        backend = backend or get_tls_backend()
        name = server_name(self.request.host)

        sock = self._connect(timeout, deadline)
        try:
            timeout = calibrate_timeout(timeout, deadline)
            tls = self._handshake(backend, name, sock, timeout)
        except BaseException:
            sock.close()
            raise

        try:
            timeout = calibrate_timeout(timeout, deadline, phase="the TLS handshake")
            self._write(tls, payload, timeout)
        except BaseException:
            tls.close()
            raise

        stream = HttpStream.secured(tls, deadline, url=self.request.url)
        return self._read_response(stream)

    def _connect(
        self, timeout: Optional[float], deadline: Optional[Deadline]
    ) -> socket.socket:
        proxy = self.request.proxy
        if proxy is not None:
            return open_tunnel(
                proxy,
                self.request.host,
                lambda address: self._tcp_connect(address, timeout, deadline),
                url=self.request.url,
                deadline=deadline,
            )
        return self._tcp_connect(self.request.host, timeout, deadline)

    def _tcp_connect(
        self, address: str, timeout: Optional[float], deadline: Optional[Deadline]
    ) -> socket.socket:
        hostname, port = split_host(address)
        target = (hostname.strip("[]"), int(port))
        url = self.request.url

        # Fails before any socket exists when the budget is already spent
        timeout = calibrate_timeout(timeout, deadline, phase="connection setup")

        try:
            candidates = socket.getaddrinfo(*target, type=socket.SOCK_STREAM)
        except OSError as e:
            raise ErrorHandler.handle_socket_error(e, url=url, phase="connect") from e
        if not candidates:
            raise AddressLookupError("failed to lookup address information", url=url)

        timeout = calibrate_timeout(timeout, deadline, phase="address lookup")
        family, socktype, proto, _, sockaddr = candidates[0]
        logger.debug("Connecting to %s (%s), timeout=%s", address, sockaddr[0], timeout)

        sock = socket.socket(family, socktype, proto)
        try:
            # None leaves the socket blocking
            sock.settimeout(timeout)
            sock.connect(sockaddr)
        except OSError as e:
            sock.close()
            raise ErrorHandler.handle_socket_error(
                e, url=url, phase="connect", timeout_value=timeout
            ) from e
        return sock

    def _handshake(
        self,
        backend: TLSBackend,
        name: str,
        sock: socket.socket,
        timeout: Optional[float],
    ) -> socket.socket:
        logger.debug("Negotiating TLS with %s", name)
        if timeout is not None:
            sock.settimeout(timeout)
        try:
            return backend.connect(name, sock)
        except OSError as e:
            raise ErrorHandler.handle_socket_error(
                e, url=self.request.url, phase="handshake", timeout_value=timeout
            ) from e

    def _write(
        self, sock: socket.socket, payload: bytes, timeout: Optional[float]
    ) -> None:
        # The peer can vanish mid-write; bound it by what is left of the budget
        if timeout is not None:
            sock.settimeout(timeout)
        try:
            sock.sendall(payload)
        except OSError as e:
            raise ErrorHandler.handle_socket_error(
                e, url=self.request.url, phase="write", timeout_value=timeout
            ) from e
        logger.debug("Wrote %d bytes to %s", len(payload), self.request.host)

    def _read_response(self, stream: HttpStream) -> ResponseLazy:
        try:
            return ResponseLazy.from_stream(
                stream, url=self.request.url, method=self.request.method
            )
        except BaseException:
            stream.close()
            raise


def handle_redirects(
    connection: Connection,
    response: ResponseLazy,
    backend: Optional[TLSBackend] = None,
) -> ResponseLazy:
    """
    Follow redirects until a final response arrives.

    Each hop is sent on a new Connection with its own time budget. The chain
    is bounded by the request's max_redirects and loop detection. https hops
    use ``backend`` when one is given, else the process-wide backend.
    """
    while True:
        try:
            next_request = get_redirect(
                connection.request,
                response.status_code,
                response.headers.get("location"),
            )
        except BaseException:
            response.close()
            raise

        if next_request is None:
            return response

        response.close()
        logger.info(
            "Following %d redirect: %s %s",
            response.status_code,
            next_request.method.value,
            next_request.url,
        )
        connection = Connection(next_request)
        response = connection.send_once(backend)
