"""
Watchdog configuration module.

Contains the per-check configuration sections for a watchdog invocation:
health probing, escalation, supervisor control, session log guarding,
config error monitoring and disk monitoring.
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

__all__ = [
    "ConfigErrorConfig",
    "DiskConfig",
    "EscalationConfig",
    "HealthCheckConfig",
    "SessionLogConfig",
    "SupervisorConfig",
    "DEFAULT_TRUNCATION_MARKER",
]

DEFAULT_TRUNCATION_MARKER = (
    '{"type":"system","message":{"role":"system",'
    '"content":"[watchdog: session truncated to prevent bloat crash]"}}'
)


class HealthCheckConfig(BaseModel):
    """Gateway health endpoint configuration."""

    host: str = Field(
        default="127.0.0.1",
        description="Host the gateway listens on",
    )
    port: int = Field(
        default=18789,
        description="Gateway HTTP port (also used to find the process to kill)",
    )
    path: str = Field(
        default="/health",
        description="Health endpoint path",
    )
    timeout: float = Field(
        default=5.0,
        gt=0.0,
        le=60.0,
        description="Seconds before a health probe is considered unreachable",
    )

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port number is in valid range."""
        if not (1 <= v <= 65535):
            raise ValueError("Port must be between 1 and 65535")
        return v

    @property
    def url(self) -> str:
        path = self.path if self.path.startswith("/") else f"/{self.path}"
        return f"http://{self.host}:{self.port}{path}"


class EscalationConfig(BaseModel):
    """Failure counting and forced-restart configuration."""

    failure_threshold: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Consecutive unreachable probes before the gateway is killed",
    )
    kill_grace_seconds: float = Field(
        default=2.0,
        ge=0.0,
        le=60.0,
        description="Seconds to wait after killing the gateway process",
    )
    supervisor_wait_seconds: float = Field(
        default=10.0,
        ge=0.0,
        le=120.0,
        description="Seconds to give the supervisor to restart the gateway before re-probing",
    )


class SupervisorConfig(BaseModel):
    """Service manager that restarts the gateway."""

    backend: Literal["auto", "launchd", "systemd"] = Field(
        default="auto",
        description="Service manager backend (auto picks launchd on macOS, systemd elsewhere)",
    )
    service_label: str = Field(
        default="ai.openclaw.gateway",
        description="launchd label or systemd unit of the gateway service",
    )


class SessionLogConfig(BaseModel):
    """Session log bloat thresholds and truncation shape."""

    directory: str = Field(
        default="~/.openclaw/agents/main/sessions",
        description="Directory holding one append-only log per session",
    )
    pattern: str = Field(
        default="*.jsonl",
        description="Glob selecting session log files inside the directory",
    )
    warn_lines: int = Field(
        default=1500,
        ge=1,
        description="Line count above which a session log is reported",
    )
    crit_lines: int = Field(
        default=1900,
        ge=1,
        description="Line count above which the largest session log is truncated",
    )
    head_lines: int = Field(
        default=200,
        ge=0,
        description="Leading lines kept on truncation (early/system context)",
    )
    tail_lines: int = Field(
        default=300,
        ge=0,
        description="Trailing lines kept on truncation (recent turns)",
    )
    marker: str = Field(
        default=DEFAULT_TRUNCATION_MARKER,
        description="Record inserted between head and tail when truncating",
    )

    @field_validator("marker")
    @classmethod
    def validate_marker(cls, v: str) -> str:
        """Marker must be a single non-empty line."""
        v = v.strip()
        if not v or "\n" in v:
            raise ValueError("Marker must be a single non-empty line")
        return v

    @model_validator(mode="after")
    def validate_thresholds(self) -> "SessionLogConfig":
        if self.warn_lines > self.crit_lines:
            raise ValueError("warn_lines must not exceed crit_lines")
        if self.head_lines + self.tail_lines >= self.crit_lines:
            raise ValueError("head_lines + tail_lines must be below crit_lines")
        return self


class ConfigErrorConfig(BaseModel):
    """Detection and throttling of recurring gateway config errors."""

    error_log: str = Field(
        default="~/.openclaw/logs/gateway.err.log",
        description="Gateway stderr capture to scan",
    )
    tail_lines: int = Field(
        default=20,
        ge=1,
        le=10000,
        description="Number of trailing lines to scan",
    )
    patterns: list[str] = Field(
        default_factory=lambda: [
            "invalid config",
            "missing env var",
            "missing required environment variable",
            "must have required property",
            "missing required property",
        ],
        description="Case-insensitive substrings that mark a config validation failure",
    )
    cooldown_seconds: float = Field(
        default=3600.0,
        ge=0.0,
        description="Minimum seconds between two config error alerts",
    )
    max_excerpt_lines: int = Field(
        default=3,
        ge=1,
        le=50,
        description="Matching lines quoted in the alert",
    )


class DiskConfig(BaseModel):
    """Disk pressure monitoring."""

    path: str = Field(
        default="/",
        description="Mount point whose usage is checked",
    )
    threshold_percent: float = Field(
        default=90.0,
        gt=0.0,
        le=100.0,
        description="Alert when used capacity exceeds this percentage",
    )
