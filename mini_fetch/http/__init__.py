"""
Connection core of mini_fetch.

This package takes a Request from socket acquisition to a lazily read
response: deadline bookkeeping, the transport stream, proxy tunnels, TLS
negotiation, redirect decisions and the response reader.
"""

from .connection import Connection, handle_redirects
from .hostnames import HAS_IDNA, ensure_ascii_host, server_name
from .redirects import REDIRECT_STATUSES, get_redirect
from .response import Response, ResponseLazy
from .stream import HttpStream
from .timeouts import Deadline, calibrate_timeout
from .tls import StdlibTLSBackend, TLSBackend, configure_tls_backend, get_tls_backend
from .tunnel import PROXY_CHUNK_SIZE, open_tunnel

__all__ = [
    "Connection",
    "handle_redirects",
    "HAS_IDNA",
    "ensure_ascii_host",
    "server_name",
    "REDIRECT_STATUSES",
    "get_redirect",
    "Response",
    "ResponseLazy",
    "HttpStream",
    "Deadline",
    "calibrate_timeout",
    "TLSBackend",
    "StdlibTLSBackend",
    "configure_tls_backend",
    "get_tls_backend",
    "PROXY_CHUNK_SIZE",
    "open_tunnel",
]
