"""
Configuration management for mini_fetch.

This module provides configuration loading from environment variables and
configuration files.
"""

from .loader import ConfigLoader, load_config, timeout_from_environment
from .models import ClientConfig, LoggingConfig, LogLevel, SecurityConfig

__all__ = [
    "ClientConfig",
    "LoggingConfig",
    "LogLevel",
    "SecurityConfig",
    "ConfigLoader",
    "load_config",
    "timeout_from_environment",
]
