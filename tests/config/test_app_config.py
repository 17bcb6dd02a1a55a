"""Tests for the configuration system."""

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml
from pydantic import ValidationError

from gatewatch.config.alerts import AlertConfig
from gatewatch.config.app import (
    WatchdogAppConfig,
    apply_cli_overrides,
    apply_env_overrides,
    expand_env_vars,
    load_config,
    load_yaml,
)
from gatewatch.config.logging import LoggingSettings
from gatewatch.config.watchdog import (
    ConfigErrorConfig,
    DiskConfig,
    EscalationConfig,
    HealthCheckConfig,
)

pytestmark = pytest.mark.unit

CLEAN_ENV = {
    k: v
    for k, v in os.environ.items()
    if k not in ("OPENCLAW_GATEWAY_PORT", "WATCHDOG_ALERT_NUMBER", "IMSG_CLI")
}


class TestExpandEnvVars:
    """Tests for expand_env_vars function."""

    def test_expand_simple_env_var(self) -> None:
        with patch.dict(os.environ, {"MY_VAR": "hello"}):
            assert expand_env_vars("value: ${MY_VAR}") == "value: hello"

    def test_expand_with_default_when_var_unset(self) -> None:
        env = os.environ.copy()
        env.pop("UNSET_VAR", None)
        with patch.dict(os.environ, env, clear=True):
            assert expand_env_vars("value: ${UNSET_VAR:-fallback}") == "value: fallback"

    def test_expand_with_default_when_var_empty(self) -> None:
        with patch.dict(os.environ, {"EMPTY_VAR": ""}):
            assert expand_env_vars("value: ${EMPTY_VAR:-fallback}") == "value: fallback"

    def test_expand_simple_var_unset_leaves_unchanged(self) -> None:
        env = os.environ.copy()
        env.pop("UNDEFINED_VAR", None)
        with patch.dict(os.environ, env, clear=True):
            assert expand_env_vars("value: ${UNDEFINED_VAR}") == "value: ${UNDEFINED_VAR}"

    def test_expand_empty_default(self) -> None:
        env = os.environ.copy()
        env.pop("UNSET_VAR", None)
        with patch.dict(os.environ, env, clear=True):
            assert expand_env_vars("value: ${UNSET_VAR:-}") == "value: "


class TestSectionDefaults:
    def test_health_defaults(self) -> None:
        health = HealthCheckConfig()
        assert health.url == "http://127.0.0.1:18789/health"
        assert health.timeout == 5.0

    def test_health_url_adds_leading_slash(self) -> None:
        assert HealthCheckConfig(path="healthz").url == "http://127.0.0.1:18789/healthz"

    def test_port_out_of_range(self) -> None:
        with pytest.raises(ValidationError):
            HealthCheckConfig(port=70000)

    def test_escalation_defaults(self) -> None:
        config = EscalationConfig()
        assert config.failure_threshold == 3
        assert config.kill_grace_seconds == 2.0

    def test_threshold_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            EscalationConfig(failure_threshold=0)

    def test_config_error_defaults(self) -> None:
        config = ConfigErrorConfig()
        assert config.tail_lines == 20
        assert config.cooldown_seconds == 3600.0
        assert "invalid config" in config.patterns

    def test_disk_defaults(self) -> None:
        assert DiskConfig().threshold_percent == 90.0

    def test_disk_threshold_bounds(self) -> None:
        with pytest.raises(ValidationError):
            DiskConfig(threshold_percent=150)

    def test_alerts_default_to_log_only(self) -> None:
        config = AlertConfig()
        assert config.imessage_number is None
        assert config.webhook_url is None

    def test_logging_levels(self) -> None:
        with pytest.raises(ValidationError):
            LoggingSettings(level="verbose")
        with pytest.raises(ValidationError):
            LoggingSettings(backup_count=0)


class TestLoadYaml:
    def test_missing_file(self, temp_dir: Path) -> None:
        assert load_yaml(str(temp_dir / "missing.yaml")) == {}

    def test_yaml_file(self, temp_dir: Path) -> None:
        config_file = temp_dir / "watchdog.yaml"
        config_file.write_text(yaml.dump({"health": {"port": 9000}}))
        assert load_yaml(str(config_file)) == {"health": {"port": 9000}}

    def test_json_file(self, temp_dir: Path) -> None:
        config_file = temp_dir / "watchdog.json"
        config_file.write_text(json.dumps({"disk": {"path": "/data"}}))
        assert load_yaml(str(config_file)) == {"disk": {"path": "/data"}}

    def test_empty_file(self, temp_dir: Path) -> None:
        config_file = temp_dir / "watchdog.yaml"
        config_file.write_text("")
        assert load_yaml(str(config_file)) == {}

    def test_wrong_extension(self, temp_dir: Path) -> None:
        config_file = temp_dir / "watchdog.txt"
        config_file.write_text("health: {}")
        with pytest.raises(ValueError, match="extension"):
            load_yaml(str(config_file))

    def test_invalid_yaml(self, temp_dir: Path) -> None:
        config_file = temp_dir / "watchdog.yaml"
        config_file.write_text("health: [unclosed")
        with pytest.raises(ValueError, match="Invalid YAML"):
            load_yaml(str(config_file))

    def test_non_mapping(self, temp_dir: Path) -> None:
        config_file = temp_dir / "watchdog.yaml"
        config_file.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="mapping"):
            load_yaml(str(config_file))

    def test_expands_env_vars(self, temp_dir: Path) -> None:
        config_file = temp_dir / "watchdog.yaml"
        config_file.write_text("alerts:\n  webhook_url: ${HOOK_URL:-https://fallback}\n")
        with patch.dict(os.environ, {"HOOK_URL": "https://hooks.example/a"}):
            assert load_yaml(str(config_file))["alerts"]["webhook_url"] == "https://hooks.example/a"


class TestOverrides:
    def test_cli_overrides_nested(self) -> None:
        result = apply_cli_overrides({"health": {"port": 1}}, {"health.port": 2, "state_file": "x"})
        assert result == {"health": {"port": 2}, "state_file": "x"}

    def test_cli_overrides_none(self) -> None:
        assert apply_cli_overrides({"a": 1}, None) == {"a": 1}

    def test_env_overrides(self) -> None:
        env = dict(CLEAN_ENV, OPENCLAW_GATEWAY_PORT="19000", WATCHDOG_ALERT_NUMBER="+1555")
        with patch.dict(os.environ, env, clear=True):
            result = apply_env_overrides({})
        assert result == {"health": {"port": "19000"}, "alerts": {"imessage_number": "+1555"}}

    def test_empty_env_ignored(self) -> None:
        with patch.dict(os.environ, dict(CLEAN_ENV, WATCHDOG_ALERT_NUMBER=""), clear=True):
            assert apply_env_overrides({}) == {}


class TestLoadConfig:
    def test_defaults_without_file(self, temp_dir: Path) -> None:
        with patch.dict(os.environ, CLEAN_ENV, clear=True):
            config = load_config(str(temp_dir / "absent.yaml"))
        assert config == WatchdogAppConfig()

    def test_hierarchy(self, temp_dir: Path) -> None:
        config_file = temp_dir / "watchdog.yaml"
        config_file.write_text(
            yaml.dump({"health": {"port": 9000, "timeout": 2}, "disk": {"threshold_percent": 80}})
        )
        env = dict(CLEAN_ENV, OPENCLAW_GATEWAY_PORT="9100")
        with patch.dict(os.environ, env, clear=True):
            config = load_config(str(config_file), cli_overrides={"disk.threshold_percent": 85})
        assert config.health.port == 9100
        assert config.health.timeout == 2
        assert config.disk.threshold_percent == 85

    def test_validation_error(self, temp_dir: Path) -> None:
        config_file = temp_dir / "watchdog.yaml"
        config_file.write_text(yaml.dump({"escalation": {"failure_threshold": 0}}))
        with pytest.raises(ValueError, match="Configuration validation failed"):
            load_config(str(config_file))

    def test_unreadable_path_raises_os_error(self, temp_dir: Path) -> None:
        config_dir = temp_dir / "watchdog.yaml"
        config_dir.mkdir()
        with pytest.raises(OSError):
            load_config(str(config_dir))
