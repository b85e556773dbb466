"""
Host name helpers: ASCII normalization and TLS server names.

Non-ASCII host names are converted label by label with the optional ``idna``
package (``pip install mini-fetch[punycode]``). Without it such hosts are
rejected instead of being sent as raw UTF-8.
"""

from __future__ import annotations

from ..exceptions import PunycodeConversionFailedError, PunycodeFeatureNotEnabledError

try:
    import idna

    HAS_IDNA = True
except ImportError:
    idna = None
    HAS_IDNA = False


def split_host(host: str) -> tuple[str, str]:
    """Split ``host:port`` into ``(host, port)``; port is "" when absent."""
    if host.endswith("]") or ":" not in host:
        return host, ""
    hostname, _, port = host.rpartition(":")
    return hostname, port


def ensure_ascii_host(host: str) -> str:
    """
    Return ``host`` with every non-ASCII label IDNA-encoded.

    Raises:
        PunycodeFeatureNotEnabledError: The ``idna`` package is not installed
        PunycodeConversionFailedError: A label cannot be encoded
    """
    if host.isascii():
        return host

    if not HAS_IDNA:
        raise PunycodeFeatureNotEnabledError(
            f"host {host!r} is not ASCII; install the 'idna' package "
            "(pip install mini-fetch[punycode]) to send it"
        )

    hostname, port = split_host(host)
    labels = []
    for label in hostname.split("."):
        if label.isascii():
            labels.append(label)
            continue
        try:
            labels.append(idna.encode(label, uts46=True).decode("ascii"))
        except idna.IDNAError as e:
            raise PunycodeConversionFailedError(
                f"cannot convert host label {label!r} to ASCII: {e}"
            ) from e

    ascii_host = ".".join(labels)
    return f"{ascii_host}:{port}" if port else ascii_host


def server_name(host: str) -> str:
    """TLS server name for ``host:port``: the host without port or brackets."""
    hostname, _ = split_host(host)
    return hostname.strip("[]")
