"""
Logging configuration module.

Contains logging-related Pydantic config models:
- LoggingSettings: Log level, file path, rotation settings
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

__all__ = ["LoggingSettings"]


class LoggingSettings(BaseModel):
    """Logging configuration."""

    level: Literal["debug", "info", "warning", "error"] = Field(
        default="info",
        description="Log level",
    )
    file: str = Field(
        default="~/.openclaw/logs/watchdog.log",
        description="Watchdog log file path",
    )
    max_size_mb: int = Field(
        default=10,
        description="Maximum log file size in MB",
    )
    backup_count: int = Field(
        default=5,
        description="Number of backup log files to keep",
    )

    @field_validator("max_size_mb", "backup_count")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate value is positive."""
        if v <= 0:
            raise ValueError("Value must be positive")
        return v
