"""
CONNECT tunnelling through an HTTP proxy.
"""

from __future__ import annotations

import logging
import socket
from typing import Callable, Optional

from ..exceptions import ErrorHandler
from ..models.proxy import Proxy
from .timeouts import Deadline, calibrate_timeout

logger = logging.getLogger(__name__)

PROXY_CHUNK_SIZE = 256


def _bound_by_deadline(
    sock: socket.socket, deadline: Optional[Deadline], phase: str
) -> None:
    if deadline is None:
        return
    sock.settimeout(calibrate_timeout(sock.gettimeout(), deadline, phase=phase))


def read_proxy_response(
    sock: socket.socket, deadline: Optional[Deadline] = None
) -> bytes:
    """
    Read the proxy's reply to CONNECT.

    Reads 256-byte chunks until one comes back short. A reply that is an exact
    multiple of the chunk size would leave this waiting for more data, so the
    loop also stops once the blank line ending the header block has arrived,
    or when the proxy closes the connection.

    With a deadline, each read is bounded by what is left of it.
    """
    response = bytearray()
    while True:
        _bound_by_deadline(sock, deadline, phase="the proxy handshake")
        chunk = sock.recv(PROXY_CHUNK_SIZE)
        response += chunk
        if len(chunk) < PROXY_CHUNK_SIZE or b"\r\n\r\n" in response:
            return bytes(response)


def open_tunnel(
    proxy: Proxy,
    target_host: str,
    connect: Callable[[str], socket.socket],
    url: Optional[str] = None,
    deadline: Optional[Deadline] = None,
) -> socket.socket:
    """
    Open a CONNECT tunnel to ``target_host`` through ``proxy``.

    Args:
        proxy: The proxy to go through
        target_host: The origin as ``host:port``
        connect: Opens a plain TCP connection to a ``host:port`` address
        url: The URL being requested, for error reporting
        deadline: The request deadline, None for unbounded

    Returns:
        The socket connected to the proxy, now relaying to the origin

    Raises:
        ProxyError: The proxy refused the tunnel; the socket is closed
        DeadlineExceededError: The budget ran out before the tunnel was up
        NetworkError: The proxy connection failed
    """
    logger.debug("Opening tunnel to %s through proxy %s", target_host, proxy.address)
    sock = connect(proxy.address)
    try:
        try:
            _bound_by_deadline(sock, deadline, phase="the proxy connection")
            sock.sendall(proxy.connect(target_host).encode("utf-8"))
            response = read_proxy_response(sock, deadline)
        except OSError as e:
            raise ErrorHandler.handle_socket_error(e, url=url, phase="tunnel") from e
        Proxy.verify_response(response)
    except BaseException:
        sock.close()
        raise

    logger.debug("Proxy %s accepted tunnel to %s", proxy.address, target_host)
    return sock
