"""
Base models and common types for the mini_fetch library.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class Method(str, Enum):
    """HTTP request methods."""

    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    CONNECT = "CONNECT"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"
    PATCH = "PATCH"


class BaseConfig(BaseModel):
    """Base configuration class with common validation settings."""

    model_config = ConfigDict(
        use_enum_values=True, validate_assignment=True, extra="forbid"
    )
