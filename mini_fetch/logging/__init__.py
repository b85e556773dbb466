"""
Logging setup for mini_fetch.

The library only emits records through module loggers; applications (and the
command-line interface) install handlers with setup_logging().
"""

from .filters import SensitiveDataFilter
from .formatters import ColoredFormatter, StructuredFormatter
from .manager import LoggingManager, get_logger, get_logging_manager, setup_logging

__all__ = [
    "LoggingManager",
    "setup_logging",
    "get_logger",
    "get_logging_manager",
    "StructuredFormatter",
    "ColoredFormatter",
    "SensitiveDataFilter",
]
