"""
Alert configuration module.

Contains the destinations alerts are dispatched to and the local activity
log every alert is appended to.
"""

from pydantic import BaseModel, Field, field_validator

__all__ = ["AlertConfig"]


class AlertConfig(BaseModel):
    """Alert destinations. With no destination, alerts are only logged."""

    imessage_number: str | None = Field(
        default=None,
        description="Phone number or handle alerts are sent to via the imsg CLI",
    )
    imsg_cli: str = Field(
        default="/opt/homebrew/opt/imsg/bin/imsg",
        description="Path to the imsg command line tool",
    )
    webhook_url: str | None = Field(
        default=None,
        description="Optional URL receiving alerts as JSON POST requests",
    )
    webhook_timeout: float = Field(
        default=10.0,
        gt=0.0,
        le=60.0,
        description="Timeout in seconds for webhook delivery",
    )
    prefix: str = Field(
        default="openclaw watchdog: ",
        description="Text prepended to every alert message",
    )
    activity_log: str = Field(
        default="~/.openclaw/logs/watchdog-alerts.log",
        description="Append-only log receiving every alert",
    )

    @field_validator("imessage_number", "webhook_url")
    @classmethod
    def empty_as_none(cls, v: str | None) -> str | None:
        """Treat blank values (e.g. an unset env var) as not configured."""
        if v is not None and not v.strip():
            return None
        return v
