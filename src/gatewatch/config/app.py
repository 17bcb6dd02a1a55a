"""
Configuration management for the gateway watchdog.

Provides YAML-based configuration with environment and CLI overrides,
configuration hierarchy (CLI > environment > YAML > Defaults), and validation.
"""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from gatewatch.config.alerts import AlertConfig
from gatewatch.config.logging import LoggingSettings
from gatewatch.config.watchdog import (
    ConfigErrorConfig,
    DiskConfig,
    EscalationConfig,
    HealthCheckConfig,
    SessionLogConfig,
    SupervisorConfig,
)

DEFAULT_CONFIG_FILE = "~/.openclaw/watchdog.yaml"

# Environment variables honoured by the shell watchdog this tool replaces.
ENV_OVERRIDES: dict[str, str] = {
    "OPENCLAW_GATEWAY_PORT": "health.port",
    "WATCHDOG_ALERT_NUMBER": "alerts.imessage_number",
    "IMSG_CLI": "alerts.imsg_cli",
}

_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(:-([^}]*))?\}")


class WatchdogAppConfig(BaseModel):
    """
    Main configuration for a watchdog invocation.

    Groups every check's settings plus the paths of the persisted state
    record and the invocation lock.
    """

    state_file: str = Field(
        default="~/.openclaw/logs/watchdog-state.json",
        description="JSON record persisted between invocations",
    )
    lock_file: str = Field(
        default="~/.openclaw/logs/watchdog.lock",
        description="Lock file preventing overlapping invocations",
    )
    health: HealthCheckConfig = Field(
        default_factory=HealthCheckConfig,
        description="Gateway health probe",
    )
    escalation: EscalationConfig = Field(
        default_factory=EscalationConfig,
        description="Failure threshold and recovery timing",
    )
    supervisor: SupervisorConfig = Field(
        default_factory=SupervisorConfig,
        description="Service manager used to restart the gateway",
    )
    sessions: SessionLogConfig = Field(
        default_factory=SessionLogConfig,
        description="Session log bloat guard",
    )
    config_errors: ConfigErrorConfig = Field(
        default_factory=ConfigErrorConfig,
        description="Gateway config error detection",
    )
    disk: DiskConfig = Field(
        default_factory=DiskConfig,
        description="Disk pressure monitoring",
    )
    alerts: AlertConfig = Field(
        default_factory=AlertConfig,
        description="Alert destinations",
    )
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Watchdog logging",
    )


def expand_env_vars(content: str) -> str:
    """
    Expand ${VAR} and ${VAR:-default} references in configuration text.

    Unset variables without a default are left untouched.
    """

    def _replace(match: re.Match[str]) -> str:
        name, has_default, default = match.group(1), match.group(2), match.group(3)
        value = os.environ.get(name)
        if has_default is not None:
            return value if value else (default or "")
        return value if value is not None else match.group(0)

    return _ENV_VAR_PATTERN.sub(_replace, content)


def load_yaml(config_file: str) -> dict[str, Any]:
    """
    Load YAML or JSON configuration file.

    Args:
        config_file: Path to YAML or JSON configuration file

    Returns:
        Dictionary with parsed YAML/JSON content

    Raises:
        ValueError: If YAML/JSON is invalid or file format is wrong
    """
    config_path = Path(config_file).expanduser()

    if not config_path.exists():
        return {}

    # Validate file extension matches format
    file_ext = config_path.suffix.lower()
    if file_ext not in [".yaml", ".yml", ".json"]:
        raise ValueError(
            f"Config file must have .yaml, .yml, or .json extension, got: {file_ext}\n"
            f"File: {config_path}"
        )

    try:
        with open(config_path) as f:
            content = expand_env_vars(f.read())

        if file_ext == ".json":
            data = json.loads(content) if content.strip() else {}
        else:
            data = yaml.safe_load(content)

    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file: {e}") from e
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping at top level: {config_path}")
    return data


def _set_nested(config_dict: dict[str, Any], key: str, value: Any) -> None:
    parts = key.split(".")
    current = config_dict
    for part in parts[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]
    current[parts[-1]] = value


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply the legacy watchdog environment variables to config dictionary.

    Args:
        config_dict: Configuration dictionary

    Returns:
        Configuration dictionary with environment overrides applied
    """
    for env_name, key in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            _set_nested(config_dict, key, value)
    return config_dict


def apply_cli_overrides(
    config_dict: dict[str, Any],
    cli_overrides: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Apply CLI argument overrides to config dictionary.

    Args:
        config_dict: Configuration dictionary
        cli_overrides: Dictionary of CLI overrides, nested keys written as "health.port"

    Returns:
        Configuration dictionary with CLI overrides applied
    """
    if cli_overrides is None:
        return config_dict

    for key, value in cli_overrides.items():
        _set_nested(config_dict, key, value)

    return config_dict


def load_config(
    config_file: str | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> WatchdogAppConfig:
    """
    Load configuration with hierarchy: CLI > environment > YAML > Defaults.

    Args:
        config_file: Path to YAML config file (default: ~/.openclaw/watchdog.yaml)
        cli_overrides: Dictionary of CLI argument overrides

    Returns:
        Validated WatchdogAppConfig instance

    Raises:
        ValueError: If configuration is invalid
        OSError: If the config file exists but cannot be read
    """
    if config_file is None:
        config_file = DEFAULT_CONFIG_FILE

    config_dict = load_yaml(config_file)
    config_dict = apply_env_overrides(config_dict)
    config_dict = apply_cli_overrides(config_dict, cli_overrides)

    try:
        return WatchdogAppConfig(**config_dict)
    except Exception as e:
        raise ValueError(
            f"Configuration validation failed: {e}\n"
            f"Please check your configuration file at {config_file}"
        ) from e

