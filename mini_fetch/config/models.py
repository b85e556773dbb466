"""
Configuration models for mini_fetch.

This module defines all configuration data models with validation and defaults.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(default=LogLevel.INFO, description="Default logging level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format",
    )
    file_path: Optional[Path] = Field(default=None, description="Log file path")
    max_file_size: int = Field(
        default=10 * 1024 * 1024, description="Max log file size in bytes"
    )
    backup_count: int = Field(default=5, description="Number of backup log files")
    enable_console: bool = Field(default=True, description="Enable console logging")
    enable_file: bool = Field(default=False, description="Enable file logging")
    enable_structured: bool = Field(
        default=False, description="Enable structured JSON logging"
    )

    # Component-specific log levels
    component_levels: Dict[str, LogLevel] = Field(
        default_factory=dict, description="Per-component log levels"
    )


class SecurityConfig(BaseModel):
    """TLS configuration used to build the process-wide TLS backend."""

    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    ca_bundle_path: Optional[Path] = Field(
        default=None, description="Custom CA bundle path"
    )


class ClientConfig(BaseModel):
    """Top-level client configuration."""

    default_timeout: Optional[float] = Field(
        default=None,
        ge=0,
        description="Timeout in seconds for requests that do not set one. "
        "None leaves connect, write and read unbounded.",
    )
    max_redirects: int = Field(
        default=100, ge=0, description="Maximum number of redirects to follow"
    )
    user_agent: Optional[str] = Field(
        default=None, description="User-Agent header added by the CLI"
    )

    # Sub-configurations
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)

    model_config = ConfigDict(
        validate_assignment=True,
        extra="forbid",
        use_enum_values=True
    )
