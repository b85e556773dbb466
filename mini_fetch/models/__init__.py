"""
Data models for the mini_fetch library.
"""

from .base import BaseConfig, Method
from .proxy import Proxy
from .request import DEFAULT_MAX_REDIRECTS, Request, parse_url

__all__ = [
    "BaseConfig",
    "Method",
    "Proxy",
    "Request",
    "parse_url",
    "DEFAULT_MAX_REDIRECTS",
]
