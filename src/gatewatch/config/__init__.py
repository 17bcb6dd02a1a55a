"""Configuration models and loaders for gatewatch."""

from gatewatch.config.alerts import AlertConfig
from gatewatch.config.app import WatchdogAppConfig, load_config
from gatewatch.config.logging import LoggingSettings
from gatewatch.config.watchdog import (
    ConfigErrorConfig,
    DiskConfig,
    EscalationConfig,
    HealthCheckConfig,
    SessionLogConfig,
    SupervisorConfig,
)

__all__ = [
    "AlertConfig",
    "ConfigErrorConfig",
    "DiskConfig",
    "EscalationConfig",
    "HealthCheckConfig",
    "LoggingSettings",
    "SessionLogConfig",
    "SupervisorConfig",
    "WatchdogAppConfig",
    "load_config",
]
