#!/usr/bin/env python3
"""
Command-line interface for the mini_fetch library.

    mini-fetch https://example.com/
    mini-fetch -X POST -H "Content-Type: application/json" -d '{"a": 1}' http://localhost:8000/items
    mini-fetch --proxy http://proxy.local:3128 --timeout 10 --include https://example.com/
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import BinaryIO, Dict, List, Optional

from .config import load_config
from .config.models import ClientConfig, LogLevel, SecurityConfig
from .exceptions import MiniFetchError
from .http.response import ResponseLazy
from .http.tls import StdlibTLSBackend, configure_tls_backend
from .logging import setup_logging
from .models import Method, Proxy, Request

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="mini-fetch",
        description="Send one HTTP(S) request and print the response body.",
    )
    parser.add_argument("url", help="http:// or https:// URL to request")
    parser.add_argument(
        "-X", "--method",
        default="GET",
        type=str.upper,
        choices=[m.value for m in Method],
        help="request method (default: GET)",
    )
    parser.add_argument(
        "-H", "--header",
        action="append",
        default=[],
        metavar="'NAME: VALUE'",
        help="extra request header, may be repeated",
    )
    parser.add_argument("-d", "--data", help="request body")
    parser.add_argument(
        "-t", "--timeout",
        type=float,
        help="time budget in seconds for the whole exchange",
    )
    parser.add_argument("--proxy", help="HTTP proxy, e.g. http://user:pw@host:3128")
    parser.add_argument("--max-redirects", type=int, help="longest redirect chain to follow")
    parser.add_argument(
        "-i", "--include",
        action="store_true",
        help="print the status line and headers before the body",
    )
    parser.add_argument("-o", "--output", help="write the body to this file")
    parser.add_argument(
        "-k", "--insecure",
        action="store_true",
        help="do not verify TLS certificates",
    )
    parser.add_argument("--config", help="JSON or YAML configuration file")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=[level.value for level in LogLevel],
        help="logging level (default from configuration)",
    )
    return parser


def parse_headers(values: List[str]) -> Dict[str, str]:
    """Parse ``Name: value`` strings."""
    headers: Dict[str, str] = {}
    for value in values:
        name, sep, content = value.partition(":")
        if not sep or not name.strip():
            raise ValueError(f"invalid header: {value!r}")
        headers[name.strip()] = content.strip()
    return headers


def build_request(args: argparse.Namespace, config: ClientConfig) -> Request:
    """Turn parsed arguments into a Request."""
    headers = parse_headers(args.header)
    if config.user_agent and not any(h.lower() == "user-agent" for h in headers):
        headers["User-Agent"] = config.user_agent

    timeout = args.timeout if args.timeout is not None else config.default_timeout
    max_redirects = (
        args.max_redirects if args.max_redirects is not None else config.max_redirects
    )

    return Request(
        method=args.method,
        url=args.url,
        headers=headers,
        body=args.data,
        timeout=timeout,
        proxy=Proxy.from_url(args.proxy) if args.proxy else None,
        max_redirects=max_redirects,
    )


def write_response(response: ResponseLazy, include: bool, out: BinaryIO) -> None:
    """Stream the response to ``out``."""
    if include:
        head = [f"{response.http_version} {response.status_code} {response.reason_phrase}"]
        head.extend(f"{name}: {value}" for name, value in response.headers.items())
        out.write(("\r\n".join(head) + "\r\n\r\n").encode("latin-1", errors="replace"))

    for chunk in response.iter_content():
        out.write(chunk)
    out.flush()


def main(argv: Optional[List[str]] = None) -> int:
    """Run the command line; returns the process exit code."""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except MiniFetchError as e:
        parser.error(e.message)

    logging_config = config.logging
    if args.log_level:
        logging_config = logging_config.model_copy(update={"level": LogLevel(args.log_level)})
    setup_logging(logging_config)

    security = config.security
    if args.insecure:
        security = SecurityConfig(verify_ssl=False, ca_bundle_path=security.ca_bundle_path)
    if security != SecurityConfig():
        configure_tls_backend(StdlibTLSBackend.from_config(security))

    try:
        request = build_request(args, config)
    except (ValueError, MiniFetchError) as e:
        parser.error(str(e))

    try:
        response = request.send_lazy()
        with response:
            if args.output:
                with open(args.output, "wb") as f:
                    write_response(response, args.include, f)
            else:
                write_response(response, args.include, sys.stdout.buffer)
    except MiniFetchError as e:
        logger.debug("Request failed", exc_info=True)
        print(f"mini-fetch: {e.message}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
