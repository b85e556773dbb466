"""
Request model for the mini_fetch library.

A Request holds everything the connection core needs: the target host (always
with an explicit port), the resource, the method, the serialized payload, the
optional timeout and proxy, and the redirect history of the chain it belongs to.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple
from urllib.parse import urldefrag, urljoin, urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..exceptions import (
    InfiniteRedirectionLoopError,
    InvalidURLError,
    TooManyRedirectionsError,
)
from .base import Method
from .proxy import Proxy

if TYPE_CHECKING:
    from ..http.response import Response, ResponseLazy

DEFAULT_MAX_REDIRECTS = 100
DEFAULT_PORTS = {"http": 80, "https": 443}


def parse_url(url: str) -> Tuple[bool, str, str, Optional[str]]:
    """
    Split an http(s) URL into ``(https, host, resource, fragment)``.

    ``host`` always carries an explicit port, the scheme default when the URL
    has none.

    Raises:
        InvalidURLError: If the scheme is not http/https or the host is missing
    """
    parts = urlsplit(url.strip())
    scheme = parts.scheme.lower()
    if scheme not in DEFAULT_PORTS:
        raise InvalidURLError(f"unsupported URL scheme: {parts.scheme!r}", url=url)

    hostname = parts.hostname
    if not hostname:
        raise InvalidURLError("URL has no host", url=url)

    try:
        port = parts.port
    except ValueError as e:
        raise InvalidURLError(f"invalid port in URL: {e}", url=url) from e
    if port is None:
        port = DEFAULT_PORTS[scheme]

    if ":" in hostname:
        host = f"[{hostname}]:{port}"
    else:
        host = f"{hostname}:{port}"

    resource = parts.path or "/"
    if parts.query:
        resource = f"{resource}?{parts.query}"

    return scheme == "https", host, resource, parts.fragment or None


class Request(BaseModel):
    """
    A single HTTP/1.1 request.

    Example:
        ```python
        from mini_fetch import Method, Request

        request = Request(
            method=Method.POST,
            url="http://example.com/submit",
            headers={"Content-Type": "application/json"},
            body=b'{"name": "value"}',
            timeout=10,
        )
        response = request.send()
        ```

    Validation:
        - URL must use http or https scheme and name a host
        - Timeout, when set, must not be negative
        - Methods given as strings are matched case-insensitively
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    method: Method = Field(default=Method.GET, description="HTTP method")
    url: str = Field(description="Target http:// or https:// URL")
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[bytes] = Field(default=None, description="Request payload")
    timeout: Optional[float] = Field(
        default=None,
        ge=0,
        description="Time budget in seconds for the whole exchange, from connect "
        "to the last body byte. None falls back to MINI_FETCH_TIMEOUT.",
    )
    proxy: Optional[Proxy] = Field(
        default=None, description="HTTP proxy to tunnel through"
    )
    max_redirects: int = Field(default=DEFAULT_MAX_REDIRECTS, ge=0)
    redirects: List[Tuple[str, str]] = Field(
        default_factory=list,
        description="(method, url) pairs visited earlier in the redirect chain",
    )

    # Derived from url on construction
    host: str = Field(default="", description="Target as host:port")
    resource: str = Field(default="/", description="Path and query")
    https: bool = False
    fragment: Optional[str] = None

    @field_validator("method", mode="before")
    @classmethod
    def normalize_method(cls, v: Any) -> Any:
        """Accept methods given as strings in any case."""
        if isinstance(v, str) and not isinstance(v, Method):
            return v.upper()
        return v

    @field_validator("body", mode="before")
    @classmethod
    def encode_body(cls, v: Any) -> Any:
        """Encode text bodies as UTF-8."""
        if isinstance(v, str):
            return v.encode("utf-8")
        return v

    def model_post_init(self, __context: Any) -> None:
        self.https, self.host, self.resource, self.fragment = parse_url(self.url)

    @property
    def host_header(self) -> str:
        """The Host header value; the port is omitted when it is the default."""
        hostname, _, port = self.host.rpartition(":")
        if int(port) == DEFAULT_PORTS["https" if self.https else "http"]:
            return hostname
        return self.host

    def as_bytes(self) -> bytes:
        """Serialize the request line, headers and body."""
        lines = [
            f"{self.method.value} {self.resource} HTTP/1.1",
            f"Host: {self.host_header}",
        ]
        lines.extend(f"{name}: {value}" for name, value in self.headers.items())

        names = {name.lower() for name in self.headers}
        if self.body is not None and "content-length" not in names:
            lines.append(f"Content-Length: {len(self.body)}")
        if "connection" not in names:
            lines.append("Connection: close")

        head = ("\r\n".join(lines) + "\r\n\r\n").encode("utf-8")
        return head + (self.body or b"")

    def redirect_to(
        self, location: str, method: Optional[Method] = None
    ) -> "Request":
        """
        Build the request for the next redirect hop.

        Relative locations are resolved against this request's URL. The
        fragment is carried over when the location has none. A body is only
        carried over when the method is unchanged.

        Args:
            location: Value of the Location header
            method: Method for the next hop, defaults to this request's method

        Raises:
            InfiniteRedirectionLoopError: The same method and URL were already visited
            TooManyRedirectionsError: The chain is longer than max_redirects
        """
        method = Method(method) if method is not None else self.method
        target = urljoin(self.url, location.strip())
        if self.fragment and not urldefrag(target).fragment:
            target = f"{urldefrag(target).url}#{self.fragment}"

        history = [*self.redirects, (self.method.value, self.url)]
        visited = {(m, urldefrag(u).url) for m, u in history}
        if (method.value, urldefrag(target).url) in visited:
            raise InfiniteRedirectionLoopError(
                f"redirect loop detected at {method.value} {target}", url=target
            )
        if len(history) > self.max_redirects:
            raise TooManyRedirectionsError(
                f"more than {self.max_redirects} redirects",
                url=target,
                max_redirects=self.max_redirects,
            )

        headers = dict(self.headers)
        body = self.body
        if method != self.method:
            body = None
            headers = {
                name: value
                for name, value in headers.items()
                if name.lower() not in ("content-length", "content-type")
            }

        return Request(
            method=method,
            url=target,
            headers=headers,
            body=body,
            timeout=self.timeout,
            proxy=self.proxy,
            max_redirects=self.max_redirects,
            redirects=history,
        )

    def send_lazy(self) -> "ResponseLazy":
        """Send the request and return the response with an unread body."""
        from ..http.connection import Connection

        connection = Connection(self)
        if self.https:
            return connection.send_https()
        return connection.send()

    def send(self) -> "Response":
        """Send the request and read the whole response body."""
        from ..http.response import Response

        return Response.from_lazy(self.send_lazy())
