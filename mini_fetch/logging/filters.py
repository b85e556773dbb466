"""
Custom logging filters for mini_fetch.

This module provides filters for credential masking and component-specific
filtering.
"""

from __future__ import annotations

import logging
import re
from typing import List, Pattern


class SensitiveDataFilter(logging.Filter):
    """Filter to mask credentials in log messages."""

    def __init__(self) -> None:
        """Initialize sensitive data filter."""
        super().__init__()

        self.patterns: List[Pattern[str]] = [
            # Authorization and Proxy-Authorization header values
            re.compile(
                r"((?:proxy-)?authorization\s*:\s*(?:basic|bearer)?\s*)([^\s\\]+)",
                re.IGNORECASE,
            ),
            # URLs with credentials
            re.compile(r"(https?://[^:/@\s]+):([^@\s]+)@", re.IGNORECASE),
            # Passwords
            re.compile(
                r'(password|passwd|pwd)["\s]*[:=]["\s]*([^\s"\']+)', re.IGNORECASE
            ),
        ]

        self.replacements = [
            r"\1***MASKED***",  # Authorization headers
            r"\1:***MASKED***@",  # URL credentials
            r"\1: ***MASKED***",  # Passwords
        ]

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter log record to mask sensitive data."""
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # Let the handler report the broken format string
            return True

        for pattern, replacement in zip(self.patterns, self.replacements):
            message = pattern.sub(replacement, message)

        record.msg = message
        record.args = ()

        return True

