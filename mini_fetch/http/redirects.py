"""
Redirect decisions.
"""

from __future__ import annotations

from typing import Optional

from ..exceptions import RedirectLocationMissingError
from ..models.base import Method
from ..models.request import Request

# 308 is not followed
REDIRECT_STATUSES = frozenset({301, 302, 303, 307})

# Methods that 303 See Other turns into GET
SEE_OTHER_DOWNGRADES = frozenset({Method.POST, Method.PUT, Method.DELETE})


def get_redirect(
    request: Request, status_code: int, location: Optional[str]
) -> Optional[Request]:
    """
    Decide whether a response leads to another request.

    Args:
        request: The request that produced the response
        status_code: The response status
        location: The Location header, if present

    Returns:
        The next hop's request, or None when the response is final

    Raises:
        RedirectLocationMissingError: A redirect status without a Location
        TooManyRedirectionsError: The chain exceeds request.max_redirects
        InfiniteRedirectionLoopError: The next hop was already visited
    """
    if status_code not in REDIRECT_STATUSES:
        return None

    if not location or not location.strip():
        raise RedirectLocationMissingError(
            f"{status_code} response has no Location header",
            url=request.url,
            status_code=status_code,
        )

    method = request.method
    if status_code == 303 and method in SEE_OTHER_DOWNGRADES:
        method = Method.GET

    return request.redirect_to(location, method=method)
