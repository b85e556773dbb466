"""
Byte stream handed to the response reader.

HttpStream wraps either a plain socket (read through a buffered reader) or a
TLS-wrapped socket. Both variants enforce the request deadline on every read:
the socket timeout is reset to the remaining budget just before each blocking
call, and a read attempted after the deadline fails without touching the socket.
"""

from __future__ import annotations

import socket
from typing import IO, Optional

from ..exceptions import ErrorHandler, TimeoutError
from .timeouts import Deadline

DEFAULT_READ_SIZE = 8192


class HttpStream:
    """A readable byte stream with per-read deadline enforcement."""

    def __init__(
        self,
        sock: socket.socket,
        deadline: Optional[Deadline] = None,
        reader: Optional[IO[bytes]] = None,
        url: Optional[str] = None,
    ) -> None:
        self._sock = sock
        self._reader = reader
        self._closed = False
        self.deadline = deadline
        self.url = url

    @classmethod
    def unsecured(
        cls,
        sock: socket.socket,
        deadline: Optional[Deadline] = None,
        url: Optional[str] = None,
    ) -> "HttpStream":
        """Stream over a plain socket, buffered."""
        return cls(sock, deadline, reader=sock.makefile("rb"), url=url)

    @classmethod
    def secured(
        cls,
        tls_sock: socket.socket,
        deadline: Optional[Deadline] = None,
        url: Optional[str] = None,
    ) -> "HttpStream":
        """Stream over a TLS-wrapped socket."""
        return cls(tls_sock, deadline, url=url)

    @property
    def is_secure(self) -> bool:
        return self._reader is None

    @property
    def socket(self) -> socket.socket:
        return self._sock

    def _apply_deadline(self) -> None:
        if self.deadline is None:
            return

        remaining = self.deadline.remaining()
        if remaining <= 0:
            raise TimeoutError("The request's timeout was reached.", url=self.url)
        self._sock.settimeout(remaining)

    def read(self, size: int = DEFAULT_READ_SIZE) -> bytes:
        """
        Read up to ``size`` bytes; an empty result means end of stream.

        Raises:
            TimeoutError: The deadline passed before or during the read
            NetworkError: The socket failed
        """
        self._apply_deadline()
        try:
            if self._reader is not None:
                return self._reader.read1(size)
            return self._sock.recv(size)
        except OSError as e:
            timeout_value = self.deadline.remaining() if self.deadline else None
            raise ErrorHandler.handle_socket_error(
                e, url=self.url, phase="read", timeout_value=timeout_value
            ) from e

    def close(self) -> None:
        """Close the reader and the socket."""
        if self._closed:
            return
        self._closed = True
        try:
            if self._reader is not None:
                self._reader.close()
        finally:
            self._sock.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "HttpStream":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
