"""
HTTP/1.1 response parsing.

ResponseLazy reads the status line and headers as soon as it is built and
leaves the body on the stream until it is iterated. Response is the eager
variant with the whole body in memory.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

from ..exceptions import (
    HeadersOverflowError,
    IncompleteBodyError,
    MalformedChunkError,
    MalformedHeaderError,
    MalformedStatusLineError,
    StatusLineOverflowError,
)
from ..models.base import Method
from .stream import DEFAULT_READ_SIZE, HttpStream

logger = logging.getLogger(__name__)

MAX_STATUS_LINE_LENGTH = 65536
MAX_HEADERS_SIZE = 65536


class _BufferedSource:
    """Line and chunk reads on top of an HttpStream."""

    def __init__(self, stream: HttpStream) -> None:
        self.stream = stream
        self.buffer = bytearray()
        self.eof = False

    def _fill(self) -> bool:
        if self.eof:
            return False
        data = self.stream.read(DEFAULT_READ_SIZE)
        if not data:
            self.eof = True
            return False
        self.buffer += data
        return True

    def readline(self, limit: int) -> Optional[bytes]:
        """
        Read one line including its terminator.

        Returns None if the line is longer than ``limit``. At end of stream the
        partial line (possibly empty) is returned.
        """
        while True:
            index = self.buffer.find(b"\n")
            if index >= 0:
                if index + 1 > limit:
                    return None
                line = bytes(self.buffer[: index + 1])
                del self.buffer[: index + 1]
                return line
            if len(self.buffer) > limit:
                return None
            if not self._fill():
                line = bytes(self.buffer)
                self.buffer.clear()
                return line

    def read_some(self, size: int) -> bytes:
        """Read up to ``size`` bytes, b"" at end of stream."""
        if not self.buffer and not self._fill():
            return b""
        data = bytes(self.buffer[:size])
        del self.buffer[:size]
        return data


def _parse_status_line(line: bytes, url: Optional[str]) -> tuple[str, int, str]:
    text = line.rstrip(b"\r\n").decode("latin-1")
    parts = text.split(" ", 2)
    if len(parts) < 2 or not parts[0].startswith("HTTP/"):
        raise MalformedStatusLineError(f"malformed status line: {text!r}", url=url)

    code = parts[1]
    if len(code) != 3 or not code.isdigit():
        raise MalformedStatusLineError(f"malformed status code: {code!r}", url=url)

    reason = parts[2] if len(parts) > 2 else ""
    return parts[0], int(code), reason


class ResponseLazy:
    """
    A response whose body has not been read yet.

    Headers are stored with lower-cased names, so ``headers.get("location")``
    finds ``Location`` regardless of how the server spelled it.

    Example:
        ```python
        response = Request(url="http://example.com/big.iso").send_lazy()
        with response:
            for chunk in response.iter_content(65536):
                sink.write(chunk)
        ```
    """

    def __init__(
        self,
        source: _BufferedSource,
        status_code: int,
        reason_phrase: str,
        http_version: str,
        headers: Dict[str, str],
        url: Optional[str] = None,
        method: Method = Method.GET,
    ) -> None:
        self._source = source
        self.status_code = status_code
        self.reason_phrase = reason_phrase
        self.http_version = http_version
        self.headers = headers
        self.url = url
        self.method = method
        self._body: Optional[Iterator[bytes]] = None

    @classmethod
    def from_stream(
        cls,
        stream: HttpStream,
        url: Optional[str] = None,
        method: Method = Method.GET,
    ) -> "ResponseLazy":
        """
        Read the status line and headers from ``stream``.

        Interim 1xx responses (other than 101) are skipped.

        Raises:
            MalformedStatusLineError: No or an unparseable status line
            StatusLineOverflowError: The status line is too long
            MalformedHeaderError: A header line has no colon
            HeadersOverflowError: The header block is too large
        """
        source = _BufferedSource(stream)
        while True:
            line = source.readline(MAX_STATUS_LINE_LENGTH)
            if line is None:
                raise StatusLineOverflowError(
                    f"status line longer than {MAX_STATUS_LINE_LENGTH} bytes", url=url
                )
            if not line:
                raise MalformedStatusLineError(
                    "connection closed before the status line", url=url
                )

            version, status_code, reason = _parse_status_line(line, url)
            headers = cls._read_headers(source, url)
            if 100 <= status_code < 200 and status_code != 101:
                logger.debug("Skipping interim %d response", status_code)
                continue

            logger.debug("Received %d %s from %s", status_code, reason, url)
            return cls(source, status_code, reason, version, headers, url, method)

    @staticmethod
    def _read_headers(source: _BufferedSource, url: Optional[str]) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        last_name: Optional[str] = None
        budget = MAX_HEADERS_SIZE

        while True:
            line = source.readline(budget)
            if line is None:
                raise HeadersOverflowError(
                    f"headers larger than {MAX_HEADERS_SIZE} bytes", url=url
                )
            budget -= len(line)

            text = line.rstrip(b"\r\n").decode("latin-1")
            if not text:
                # Blank line, or end of stream right after the headers
                return headers

            if text[0] in " \t" and last_name is not None:
                # obs-fold continuation
                headers[last_name] = f"{headers[last_name]} {text.strip()}"
                continue

            name, sep, value = text.partition(":")
            if not sep or not name.strip():
                raise MalformedHeaderError(f"malformed header line: {text!r}", url=url)

            name = name.strip().lower()
            value = value.strip()
            if name in headers:
                headers[name] = f"{headers[name]}, {value}"
            else:
                headers[name] = value
            last_name = name

    @property
    def has_body(self) -> bool:
        if self.method == Method.HEAD:
            return False
        return not (100 <= self.status_code < 200 or self.status_code in (204, 304))

    @property
    def content_length(self) -> Optional[int]:
        value = self.headers.get("content-length")
        if value is None:
            return None
        # Repeated identical values were joined with ", "
        values = {v.strip() for v in value.split(",")}
        if len(values) != 1:
            raise MalformedHeaderError(f"conflicting Content-Length: {value!r}", url=self.url)
        length = values.pop()
        if not length.isdigit():
            raise MalformedHeaderError(f"invalid Content-Length: {value!r}", url=self.url)
        return int(length)

    @property
    def is_chunked(self) -> bool:
        encodings = self.headers.get("transfer-encoding", "")
        return "chunked" in [e.strip().lower() for e in encodings.split(",")]

    def iter_content(self, chunk_size: int = DEFAULT_READ_SIZE) -> Iterator[bytes]:
        """
        Iterate over the body in chunks of at most ``chunk_size`` bytes.

        The body can only be iterated once. The stream is closed once the body
        has been read completely.
        """
        if self._body is not None:
            raise RuntimeError("response body has already been consumed")

        if not self.has_body:
            body: Iterator[bytes] = iter(())
        elif self.is_chunked:
            body = self._iter_chunked(chunk_size)
        elif self.content_length is not None:
            body = self._iter_fixed(self.content_length, chunk_size)
        else:
            body = self._iter_until_eof(chunk_size)

        self._body = self._closing(body)
        return self._body

    def __iter__(self) -> Iterator[bytes]:
        return self.iter_content()

    def _closing(self, body: Iterator[bytes]) -> Iterator[bytes]:
        try:
            yield from body
        finally:
            self.close()

    def _iter_fixed(self, length: int, chunk_size: int) -> Iterator[bytes]:
        remaining = length
        while remaining > 0:
            data = self._source.read_some(min(chunk_size, remaining))
            if not data:
                raise IncompleteBodyError(
                    "connection closed before the body was complete",
                    url=self.url,
                    bytes_read=length - remaining,
                    expected_bytes=length,
                )
            remaining -= len(data)
            yield data

    def _iter_until_eof(self, chunk_size: int) -> Iterator[bytes]:
        while True:
            data = self._source.read_some(chunk_size)
            if not data:
                return
            yield data

    def _iter_chunked(self, chunk_size: int) -> Iterator[bytes]:
        total = 0
        while True:
            line = self._source.readline(MAX_STATUS_LINE_LENGTH)
            if line is None:
                raise MalformedChunkError("chunk header too long", url=self.url)
            if not line:
                raise IncompleteBodyError(
                    "connection closed inside a chunked body",
                    url=self.url,
                    bytes_read=total,
                )

            size_text = line.split(b";", 1)[0].strip()
            try:
                size = int(size_text, 16)
            except ValueError:
                raise MalformedChunkError(
                    f"invalid chunk size: {size_text!r}", url=self.url
                ) from None
            if size < 0:
                raise MalformedChunkError(f"invalid chunk size: {size_text!r}", url=self.url)

            if size == 0:
                self._read_trailers()
                return

            for data in self._iter_fixed(size, chunk_size):
                total += len(data)
                yield data

            terminator = self._source.readline(2)
            if terminator not in (b"\r\n", b"\n"):
                raise MalformedChunkError("chunk not terminated by CRLF", url=self.url)

    def _read_trailers(self) -> None:
        trailers = self._read_headers(self._source, self.url)
        for name, value in trailers.items():
            self.headers.setdefault(name, value)

    def read(self) -> bytes:
        """Read the rest of the body."""
        return b"".join(self.iter_content())

    def close(self) -> None:
        """Close the underlying stream."""
        self._source.stream.close()

    def __enter__(self) -> "ResponseLazy":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<ResponseLazy [{self.status_code}] {self.url}>"


@dataclass
class Response:
    """A response with its body read into memory."""

    status_code: int
    reason_phrase: str
    headers: Dict[str, str] = field(default_factory=dict)
    content: bytes = b""
    url: Optional[str] = None
    http_version: str = "HTTP/1.1"

    @classmethod
    def from_lazy(cls, lazy: ResponseLazy) -> "Response":
        """Read the whole body of ``lazy``."""
        with lazy:
            content = lazy.read()
        return cls(
            status_code=lazy.status_code,
            reason_phrase=lazy.reason_phrase,
            headers=lazy.headers,
            content=content,
            url=lazy.url,
            http_version=lazy.http_version,
        )

    @property
    def encoding(self) -> str:
        """Charset from Content-Type, utf-8 when absent."""
        content_type = self.headers.get("content-type", "")
        for param in content_type.split(";")[1:]:
            name, _, value = param.partition("=")
            if name.strip().lower() == "charset" and value.strip():
                return value.strip().strip('"')
        return "utf-8"

    @property
    def text(self) -> str:
        try:
            return self.content.decode(self.encoding, errors="replace")
        except LookupError:
            return self.content.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.text)

    @property
    def ok(self) -> bool:
        return self.status_code < 400
