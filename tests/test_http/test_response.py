"""
Tests for response parsing.
"""

import pytest

from mini_fetch.exceptions import (
    HeadersOverflowError,
    IncompleteBodyError,
    MalformedChunkError,
    MalformedHeaderError,
    MalformedStatusLineError,
    StatusLineOverflowError,
)
from mini_fetch.http.response import MAX_STATUS_LINE_LENGTH, Response, ResponseLazy
from mini_fetch.models import Method


class TestStatusLine:
    """Test status line parsing."""

    def test_basic_response(self, fake_stream):
        """Test a plain response with a Content-Length body."""
        stream = fake_stream(b"HTTP/1.1 200 OK\r\nContent-Length: 5\r\n\r\nhello")
        response = ResponseLazy.from_stream(stream, url="http://example.com/")

        assert response.status_code == 200
        assert response.reason_phrase == "OK"
        assert response.http_version == "HTTP/1.1"
        assert response.read() == b"hello"
        assert stream.closed

    def test_reason_with_spaces(self, fake_stream):
        """Test multi-word reason phrases."""
        response = ResponseLazy.from_stream(
            fake_stream(b"HTTP/1.1 404 Not Found Here\r\n\r\n")
        )

        assert response.reason_phrase == "Not Found Here"

    def test_missing_reason(self, fake_stream):
        """Test a status line without a reason phrase."""
        response = ResponseLazy.from_stream(fake_stream(b"HTTP/1.1 204\r\n\r\n"))

        assert response.status_code == 204
        assert response.reason_phrase == ""

    def test_split_across_reads(self, fake_stream):
        """Test a head delivered byte by byte."""
        raw = b"HTTP/1.1 200 OK\r\nX-A: b\r\nContent-Length: 2\r\n\r\nok"
        stream = fake_stream(*[raw[i:i + 1] for i in range(len(raw))])
        response = ResponseLazy.from_stream(stream)

        assert response.headers["x-a"] == "b"
        assert response.read() == b"ok"

    @pytest.mark.parametrize(
        "line",
        [b"garbage\r\n\r\n", b"HTTP/1.1 2000 OK\r\n\r\n", b"HTTP/1.1 abc OK\r\n\r\n"],
    )
    def test_malformed(self, fake_stream, line):
        """Test unparseable status lines."""
        with pytest.raises(MalformedStatusLineError):
            ResponseLazy.from_stream(fake_stream(line))

    def test_empty_reply(self, fake_stream):
        """Test a connection closed before any byte arrived."""
        with pytest.raises(MalformedStatusLineError, match="closed"):
            ResponseLazy.from_stream(fake_stream())

    def test_overflow(self, fake_stream):
        """Test an endless status line."""
        stream = fake_stream(b"HTTP/1.1 200 " + b"x" * (MAX_STATUS_LINE_LENGTH + 10))

        with pytest.raises(StatusLineOverflowError):
            ResponseLazy.from_stream(stream)

    def test_interim_responses_skipped(self, fake_stream):
        """Test that 100 Continue is skipped."""
        stream = fake_stream(
            b"HTTP/1.1 100 Continue\r\n\r\n"
            b"HTTP/1.1 201 Created\r\nContent-Length: 0\r\n\r\n"
        )
        response = ResponseLazy.from_stream(stream)

        assert response.status_code == 201


class TestHeaders:
    """Test header parsing."""

    def test_names_lowercased(self, fake_stream):
        """Test case-insensitive lookup through lower-cased names."""
        response = ResponseLazy.from_stream(
            fake_stream(b"HTTP/1.1 301 Moved\r\nLOCATION: /b\r\n\r\n")
        )

        assert response.headers == {"location": "/b"}

    def test_duplicates_joined(self, fake_stream):
        """Test repeated header fields."""
        response = ResponseLazy.from_stream(
            fake_stream(b"HTTP/1.1 200 OK\r\nVia: a\r\nvia: b\r\nContent-Length: 0\r\n\r\n")
        )

        assert response.headers["via"] == "a, b"

    def test_folded_header(self, fake_stream):
        """Test obs-fold continuation lines."""
        response = ResponseLazy.from_stream(
            fake_stream(b"HTTP/1.1 200 OK\r\nX-Long: one\r\n  two\r\nContent-Length: 0\r\n\r\n")
        )

        assert response.headers["x-long"] == "one two"

    def test_bare_lf(self, fake_stream):
        """Test lines terminated by LF only."""
        response = ResponseLazy.from_stream(
            fake_stream(b"HTTP/1.1 200 OK\nContent-Length: 2\n\nok")
        )

        assert response.read() == b"ok"

    def test_malformed_header(self, fake_stream):
        """Test a header line without a colon."""
        with pytest.raises(MalformedHeaderError):
            ResponseLazy.from_stream(fake_stream(b"HTTP/1.1 200 OK\r\nbroken\r\n\r\n"))

    def test_headers_overflow(self, fake_stream):
        """Test an oversized header block."""
        headers = b"".join(b"X-%d: %s\r\n" % (i, b"v" * 1000) for i in range(100))

        with pytest.raises(HeadersOverflowError):
            ResponseLazy.from_stream(fake_stream(b"HTTP/1.1 200 OK\r\n" + headers + b"\r\n"))

    def test_conflicting_content_length(self, fake_stream):
        """Test repeated Content-Length fields that disagree."""
        response = ResponseLazy.from_stream(
            fake_stream(b"HTTP/1.1 200 OK\r\nContent-Length: 1\r\nContent-Length: 2\r\n\r\nab")
        )

        with pytest.raises(MalformedHeaderError):
            response.read()


class TestBody:
    """Test body framing."""

    def test_chunked(self, fake_stream):
        """Test a chunked body with an extension and a trailer."""
        stream = fake_stream(
            b"HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\n\r\n"
            b"5;name=value\r\nhello\r\n"
            b"6\r\n world\r\n"
            b"0\r\nX-Checksum: abc\r\n\r\n"
        )
        response = ResponseLazy.from_stream(stream)

        assert response.is_chunked
        assert response.read() == b"hello world"
        assert response.headers["x-checksum"] == "abc"

    def test_chunked_bad_size(self, fake_stream):
        """Test a chunk header that is not hexadecimal."""
        response = ResponseLazy.from_stream(
            fake_stream(b"HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\n\r\nzz\r\n")
        )

        with pytest.raises(MalformedChunkError):
            response.read()

    def test_chunked_truncated(self, fake_stream):
        """Test a chunked body cut off mid-stream."""
        response = ResponseLazy.from_stream(
            fake_stream(b"HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\n\r\n5\r\nhel")
        )

        with pytest.raises(IncompleteBodyError):
            response.read()

    def test_until_eof(self, fake_stream):
        """Test a body delimited by connection close."""
        response = ResponseLazy.from_stream(
            fake_stream(b"HTTP/1.1 200 OK\r\n\r\n", b"part one, ", b"part two")
        )

        assert response.read() == b"part one, part two"

    def test_truncated_fixed_length(self, fake_stream):
        """Test a body shorter than its Content-Length."""
        response = ResponseLazy.from_stream(
            fake_stream(b"HTTP/1.1 200 OK\r\nContent-Length: 10\r\n\r\nabc")
        )

        with pytest.raises(IncompleteBodyError) as exc_info:
            response.read()

        assert exc_info.value.bytes_read == 3
        assert exc_info.value.expected_bytes == 10

    def test_does_not_read_past_content_length(self, fake_stream):
        """Test that trailing bytes after the body are left alone."""
        response = ResponseLazy.from_stream(
            fake_stream(b"HTTP/1.1 200 OK\r\nContent-Length: 2\r\n\r\nokEXTRA")
        )

        assert response.read() == b"ok"

    @pytest.mark.parametrize("status", [204, 304])
    def test_no_body_statuses(self, fake_stream, status):
        """Test statuses that never carry a body."""
        stream = fake_stream(b"HTTP/1.1 %d X\r\n\r\nignored" % status)

        assert ResponseLazy.from_stream(stream).read() == b""

    def test_head_has_no_body(self, fake_stream):
        """Test that a HEAD response ignores its Content-Length."""
        stream = fake_stream(b"HTTP/1.1 200 OK\r\nContent-Length: 100\r\n\r\n")
        response = ResponseLazy.from_stream(stream, method=Method.HEAD)

        assert response.read() == b""

    def test_iter_content_chunk_size(self, fake_stream):
        """Test that iteration respects the requested chunk size."""
        response = ResponseLazy.from_stream(
            fake_stream(b"HTTP/1.1 200 OK\r\nContent-Length: 10\r\n\r\n0123456789")
        )

        chunks = list(response.iter_content(4))
        assert all(len(c) <= 4 for c in chunks)
        assert b"".join(chunks) == b"0123456789"

    def test_body_consumed_once(self, fake_stream):
        """Test that a second iteration is refused."""
        response = ResponseLazy.from_stream(
            fake_stream(b"HTTP/1.1 200 OK\r\nContent-Length: 2\r\n\r\nok")
        )
        response.read()

        with pytest.raises(RuntimeError):
            response.read()

    def test_body_is_lazy(self, fake_stream):
        """Test that building the response does not read the body."""
        stream = fake_stream(b"HTTP/1.1 200 OK\r\nContent-Length: 4\r\n\r\n", b"body")
        ResponseLazy.from_stream(stream)

        assert stream.chunks == [b"body"]


class TestResponse:
    """Test the eager Response."""

    def test_from_lazy(self, fake_stream):
        """Test reading a lazy response into memory."""
        stream = fake_stream(
            b"HTTP/1.1 200 OK\r\nContent-Type: application/json; charset=utf-8\r\n"
            b"Content-Length: 8\r\n\r\n{\"a\": 1}"
        )
        response = Response.from_lazy(ResponseLazy.from_stream(stream, url="http://x/"))

        assert response.ok
        assert response.url == "http://x/"
        assert response.json() == {"a": 1}
        assert stream.closed

    def test_encoding(self):
        """Test charset detection."""
        response = Response(
            200, "OK", {"content-type": 'text/plain; charset="latin-1"'}, "é".encode("latin-1")
        )

        assert response.encoding == "latin-1"
        assert response.text == "é"

    def test_default_encoding(self):
        """Test the UTF-8 fallback."""
        assert Response(200, "OK", {}, "é".encode("utf-8")).text == "é"

    def test_ok(self):
        """Test the ok flag."""
        assert Response(302, "Found").ok
        assert not Response(404, "Not Found").ok
