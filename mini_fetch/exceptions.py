"""
Exception hierarchy for the mini_fetch HTTP client.

This module provides the custom exceptions raised while sending a request, and
an error handler that converts low-level socket and TLS failures into them.
"""

from __future__ import annotations

import socket
import ssl
from typing import Any, Optional


class MiniFetchError(Exception):
    """
    Base exception for all mini_fetch operations.

    This is the root exception class for all errors that can occur while
    sending a request. All other custom exceptions inherit from this class.

    Attributes:
        message: Human-readable error message
        url: URL that caused the error (if applicable)
        details: Additional error details as keyword arguments
    """

    def __init__(self, message: str, url: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message)
        self.message = message
        self.url = url
        self.details = kwargs


# I/O errors


class NetworkError(MiniFetchError):
    """
    Raised for I/O failures on the connection.

    Covers read and write failures, TLS negotiation failures and any other
    socket-level problem that is not more specifically classified below.
    """

    pass


class AddressLookupError(NetworkError):
    """Raised when the host name cannot be resolved to a socket address."""

    pass


class ConnectionError(NetworkError):
    """
    Raised when the connection cannot be established.

    This includes connection refused, host unreachable and similar issues
    occurring while the socket connects.
    """

    pass


class TimeoutError(NetworkError):
    """
    Raised when a blocking socket call times out.

    Attributes:
        timeout_value: The timeout value that was exceeded (in seconds)
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        timeout_value: Optional[float] = None,
    ) -> None:
        super().__init__(message, url)
        self.timeout_value = timeout_value


class DeadlineExceededError(TimeoutError):
    """
    Raised when the request deadline lapsed between two phases.

    Unlike a plain TimeoutError, no blocking call was in progress: the budget
    was already spent when the next phase was about to start.
    """

    pass


# Protocol-logic errors


class ProtocolError(MiniFetchError):
    """Base class for protocol-level failures."""

    pass


class InvalidURLError(ProtocolError):
    """Raised when a URL cannot be used for a request."""

    pass


class RedirectLocationMissingError(ProtocolError):
    """Raised when a redirect response carries no Location header."""

    def __init__(
        self,
        message: str = "redirect response has no Location header",
        url: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, url)
        self.status_code = status_code


class TooManyRedirectionsError(ProtocolError):
    """Raised when a redirect chain is longer than the request allows."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        max_redirects: Optional[int] = None,
    ) -> None:
        super().__init__(message, url)
        self.max_redirects = max_redirects


class InfiniteRedirectionLoopError(ProtocolError):
    """Raised when a redirect points back to an already visited URL."""

    pass


class ProxyError(ProtocolError):
    """Base class for proxy tunnel failures."""

    pass


class ProxyConnectError(ProxyError):
    """Raised when the proxy closes the tunnel without answering."""

    pass


class BadProxyError(ProxyError):
    """Raised when the proxy is misconfigured or refuses the tunnel."""

    pass


class InvalidProxyCredentialsError(ProxyError):
    """Raised when the proxy rejects the supplied credentials (401, 407)."""

    pass


class ResponseError(ProtocolError):
    """Base class for malformed responses."""

    pass


class MalformedStatusLineError(ResponseError):
    """Raised when the status line cannot be parsed."""

    pass


class MalformedHeaderError(ResponseError):
    """Raised when a header line cannot be parsed."""

    pass


class MalformedChunkError(ResponseError):
    """Raised when a chunked body has an invalid chunk header or trailer."""

    pass


class StatusLineOverflowError(ResponseError):
    """Raised when the status line exceeds the allowed length."""

    pass


class HeadersOverflowError(ResponseError):
    """Raised when the header block exceeds the allowed size."""

    pass


class IncompleteBodyError(ResponseError):
    """Raised when the connection closes before the body is complete."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        bytes_read: int = 0,
        expected_bytes: Optional[int] = None,
    ) -> None:
        super().__init__(message, url)
        self.bytes_read = bytes_read
        self.expected_bytes = expected_bytes


# Capability errors


class CapabilityError(MiniFetchError):
    """Raised when an operation needs an optional capability."""

    pass


class PunycodeFeatureNotEnabledError(CapabilityError):
    """Raised for non-ASCII hosts when the `idna` package is not installed."""

    pass


class PunycodeConversionFailedError(CapabilityError):
    """Raised when a non-ASCII host cannot be converted to ASCII."""

    pass


class ConfigurationError(MiniFetchError):
    """Raised when the library is configured incorrectly."""

    pass


class ErrorHandler:
    """
    Utility class for converting socket-level failures into MiniFetchError.

    Phases are the names used in log messages and error texts: "connect",
    "tunnel", "handshake", "write" and "read".
    """

    @staticmethod
    def handle_socket_error(
        error: BaseException,
        url: Optional[str] = None,
        phase: str = "read",
        timeout_value: Optional[float] = None,
    ) -> MiniFetchError:
        """
        Convert a socket, TLS or OS exception to a MiniFetchError subclass.

        Args:
            error: The original exception
            url: The URL being requested
            phase: The connection phase during which the error happened
            timeout_value: The time budget that was in force, if any

        Returns:
            Appropriate MiniFetchError subclass
        """
        if isinstance(error, MiniFetchError):
            return error

        elif isinstance(error, socket.timeout):
            return TimeoutError(
                f"Timed out during {phase}: {error}",
                url=url,
                timeout_value=timeout_value,
            )

        elif isinstance(error, socket.gaierror):
            return AddressLookupError(
                f"failed to lookup address information: {error}", url=url
            )

        elif isinstance(error, ssl.SSLError):
            return NetworkError(f"TLS error during {phase}: {error}", url=url)

        elif phase == "connect" and isinstance(error, OSError):
            return ConnectionError(f"Connection error: {error}", url=url)

        else:
            return NetworkError(f"I/O error during {phase}: {error}", url=url)
