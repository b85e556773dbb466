"""
Pluggable TLS backend.

Exactly one TLSBackend is active per process. It is either installed once at
startup with configure_tls_backend(), or built lazily from the default
SecurityConfig on the first HTTPS request. After that it is never replaced and
is shared, read-only, by every TLS session.
"""

from __future__ import annotations

import logging
import socket
import ssl
import threading
from abc import ABC, abstractmethod
from typing import Optional

from ..config.models import SecurityConfig
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class TLSBackend(ABC):
    """Negotiates a TLS session over an already connected socket."""

    @abstractmethod
    def connect(self, server_name: str, sock: socket.socket) -> socket.socket:
        """
        Run the TLS handshake for ``server_name`` over ``sock``.

        Returns:
            A socket-like object with the blocking ``recv``/``sendall``/
            ``settimeout``/``close`` contract of a plain socket
        """


class StdlibTLSBackend(TLSBackend):
    """TLS backend built on the standard library ``ssl`` module."""

    def __init__(self, context: Optional[ssl.SSLContext] = None) -> None:
        self.context = context or ssl.create_default_context()

    @classmethod
    def from_config(cls, config: SecurityConfig) -> "StdlibTLSBackend":
        """Build the backend's trust store from a SecurityConfig."""
        cafile = str(config.ca_bundle_path) if config.ca_bundle_path else None
        context = ssl.create_default_context(cafile=cafile)
        if not config.verify_ssl:
            logger.warning("TLS certificate verification is disabled")
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        context.options |= ssl.OP_NO_COMPRESSION
        return cls(context)

    def connect(self, server_name: str, sock: socket.socket) -> socket.socket:
        return self.context.wrap_socket(sock, server_hostname=server_name)


_backend: Optional[TLSBackend] = None
_backend_lock = threading.Lock()


def configure_tls_backend(backend: TLSBackend) -> None:
    """
    Install the process-wide TLS backend.

    Call this once at startup, before the first HTTPS request.

    Raises:
        ConfigurationError: A backend is already installed or in use
    """
    global _backend
    with _backend_lock:
        if _backend is not None:
            raise ConfigurationError(
                "TLS backend is already configured; it can only be set once"
            )
        _backend = backend
    logger.debug("Installed TLS backend %s", type(backend).__name__)


def get_tls_backend() -> TLSBackend:
    """Return the process-wide TLS backend, building the default on first use."""
    global _backend
    if _backend is None:
        with _backend_lock:
            if _backend is None:
                _backend = StdlibTLSBackend.from_config(SecurityConfig())
                logger.debug("Initialized default TLS backend")
    return _backend


def _reset_tls_backend() -> None:
    """Forget the installed backend. Only meant for test isolation."""
    global _backend
    with _backend_lock:
        _backend = None
