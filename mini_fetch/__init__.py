"""
Minimal synchronous HTTP/1.1 client.

mini_fetch sends one request at a time over a blocking socket and hands back
the response with its body still on the wire:

- One time budget for the whole exchange, enforced on connect, write and
  every read (``timeout=`` or the MINI_FETCH_TIMEOUT environment variable)
- HTTPS through a pluggable TLS backend, configured once per process
- HTTP proxies through CONNECT tunnels
- Redirect following (301, 302, 303, 307) with loop detection and a cap
- Non-ASCII host names via the optional ``idna`` package

Example:
    ```python
    import mini_fetch

    response = mini_fetch.get("https://example.com/", timeout=10)
    print(response.status_code, response.text)
    ```
"""

from .convenience import delete, get, head, options, patch, post, put, request
from .exceptions import (
    AddressLookupError,
    BadProxyError,
    CapabilityError,
    ConfigurationError,
    ConnectionError,
    DeadlineExceededError,
    ErrorHandler,
    HeadersOverflowError,
    IncompleteBodyError,
    InfiniteRedirectionLoopError,
    InvalidProxyCredentialsError,
    InvalidURLError,
    MalformedChunkError,
    MalformedHeaderError,
    MalformedStatusLineError,
    MiniFetchError,
    NetworkError,
    ProtocolError,
    ProxyConnectError,
    ProxyError,
    PunycodeConversionFailedError,
    PunycodeFeatureNotEnabledError,
    RedirectLocationMissingError,
    ResponseError,
    StatusLineOverflowError,
    TimeoutError,
    TooManyRedirectionsError,
)
from .http import (
    Connection,
    Deadline,
    HttpStream,
    Response,
    ResponseLazy,
    StdlibTLSBackend,
    TLSBackend,
    configure_tls_backend,
    get_redirect,
    get_tls_backend,
)
from .models import Method, Proxy, Request

__version__ = "0.1.0"

__all__ = [
    # Convenience functions
    "request",
    "get",
    "head",
    "post",
    "put",
    "delete",
    "patch",
    "options",
    # Models
    "Method",
    "Proxy",
    "Request",
    # Connection core
    "Connection",
    "Deadline",
    "HttpStream",
    "Response",
    "ResponseLazy",
    "TLSBackend",
    "StdlibTLSBackend",
    "configure_tls_backend",
    "get_tls_backend",
    "get_redirect",
    # Exceptions
    "MiniFetchError",
    "NetworkError",
    "AddressLookupError",
    "ConnectionError",
    "TimeoutError",
    "DeadlineExceededError",
    "ProtocolError",
    "InvalidURLError",
    "RedirectLocationMissingError",
    "TooManyRedirectionsError",
    "InfiniteRedirectionLoopError",
    "ProxyError",
    "ProxyConnectError",
    "BadProxyError",
    "InvalidProxyCredentialsError",
    "ResponseError",
    "MalformedStatusLineError",
    "MalformedHeaderError",
    "MalformedChunkError",
    "StatusLineOverflowError",
    "HeadersOverflowError",
    "IncompleteBodyError",
    "CapabilityError",
    "PunycodeFeatureNotEnabledError",
    "PunycodeConversionFailedError",
    "ConfigurationError",
    "ErrorHandler",
]
