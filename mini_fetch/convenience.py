"""
Convenience functions for one-off requests.

This module provides simple functions for common requests without building a
Request explicitly.
"""

from __future__ import annotations

import json as jsonlib
from typing import Any, Dict, Optional, Union

from mini_fetch.http.response import Response, ResponseLazy
from mini_fetch.models import Method, Proxy, Request


def request(
    method: Union[Method, str],
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    body: Optional[Union[bytes, str]] = None,
    json: Any = None,
    timeout: Optional[float] = None,
    proxy: Optional[Union[Proxy, str]] = None,
    max_redirects: Optional[int] = None,
    lazy: bool = False,
) -> Union[Response, ResponseLazy]:
    """
    Send a single request.

    Args:
        method: HTTP method, as a Method or a string
        url: Target http:// or https:// URL
        headers: Extra request headers
        body: Raw payload; strings are sent as UTF-8
        json: Object to send as a JSON body (sets Content-Type)
        timeout: Time budget in seconds for the whole exchange. When None,
                 MINI_FETCH_TIMEOUT is used if set, otherwise nothing is bounded.
        proxy: Proxy object or URL such as "http://user:pw@proxy:3128"
        max_redirects: Longest redirect chain to follow
        lazy: Return a ResponseLazy instead of reading the body

    Returns:
        Response with the body in memory, or ResponseLazy when ``lazy`` is set

    Raises:
        MiniFetchError: Any failure while sending or receiving

    Example:
        ```python
        response = request("POST", "http://example.com/items", json={"id": 1})
        print(response.status_code, response.json())
        ```
    """
    headers = dict(headers or {})
    if json is not None:
        body = jsonlib.dumps(json).encode("utf-8")
        if not any(name.lower() == "content-type" for name in headers):
            headers["Content-Type"] = "application/json"

    if isinstance(proxy, str):
        proxy = Proxy.from_url(proxy)

    options: Dict[str, Any] = {}
    if max_redirects is not None:
        options["max_redirects"] = max_redirects

    req = Request(
        method=method,
        url=url,
        headers=headers,
        body=body,
        timeout=timeout,
        proxy=proxy,
        **options,
    )
    if lazy:
        return req.send_lazy()
    return req.send()


def get(url: str, **kwargs: Any) -> Union[Response, ResponseLazy]:
    """Send a GET request."""
    return request(Method.GET, url, **kwargs)


def head(url: str, **kwargs: Any) -> Union[Response, ResponseLazy]:
    """Send a HEAD request."""
    return request(Method.HEAD, url, **kwargs)


def post(url: str, **kwargs: Any) -> Union[Response, ResponseLazy]:
    """Send a POST request."""
    return request(Method.POST, url, **kwargs)


def put(url: str, **kwargs: Any) -> Union[Response, ResponseLazy]:
    """Send a PUT request."""
    return request(Method.PUT, url, **kwargs)


def delete(url: str, **kwargs: Any) -> Union[Response, ResponseLazy]:
    """Send a DELETE request."""
    return request(Method.DELETE, url, **kwargs)


def patch(url: str, **kwargs: Any) -> Union[Response, ResponseLazy]:
    """Send a PATCH request."""
    return request(Method.PATCH, url, **kwargs)


def options(url: str, **kwargs: Any) -> Union[Response, ResponseLazy]:
    """Send an OPTIONS request."""
    return request(Method.OPTIONS, url, **kwargs)
