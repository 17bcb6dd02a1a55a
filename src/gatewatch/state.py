"""
Persisted watchdog state.

Each watchdog invocation is a fresh process; the only memory shared between
runs is a flat JSON object on disk. Reads never fail: a missing or corrupt
file is treated as an empty record. Writes re-read the whole record, apply
the change and atomically replace the file so unrelated keys survive.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

CONSECUTIVE_FAILURES = "consecutive_failures"
LAST_HEALTHY = "last_healthy"
LAST_RECOVERY = "last_recovery"
LAST_CONFIG_ALERT = "last_config_alert"


class StateStore:
    """Key/value record backed by a single JSON file."""

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()

    def load(self) -> dict[str, Any]:
        """
        Read the whole record.

        Returns:
            The stored mapping, or an empty dict if the file is absent,
            unreadable, not valid JSON, or not a JSON object.
        """
        try:
            with open(self.path) as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable state file {self.path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring state file {self.path}: expected a JSON object")
            return {}
        return data

    def get(self, key: str, default: Any = None) -> Any:
        return self.load().get(key, default)

    def get_int(self, key: str, default: int = 0) -> int:
        """Read a value as int, accepting numeric strings written by older watchdogs."""
        value = self.get(key, default)
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return default

    def get_float(self, key: str, default: float = 0.0) -> float:
        value = self.get(key, default)
        try:
            return float(value)
        except (TypeError, ValueError):
            return default

    def set(self, key: str, value: Any) -> None:
        self.update({key: value})

    def update(self, values: dict[str, Any]) -> None:
        """Read-modify-write the record with several keys at once."""
        data = self.load()
        data.update(values)
        try:
            self._write(data)
        except OSError as e:
            # Losing an update only makes counters under-count.
            logger.error(f"Failed to write state file {self.path}: {e}")

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            dir=str(self.path.parent), prefix=".watchdog-state_", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, self.path)
        except Exception:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise
