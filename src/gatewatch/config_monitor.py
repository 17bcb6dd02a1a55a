"""Recurring gateway config error detection with alert cooldown."""

from __future__ import annotations

import logging
import time
from collections import deque
from pathlib import Path

from gatewatch.config.watchdog import ConfigErrorConfig
from gatewatch.notifier import AlertSeverity, Notifier
from gatewatch.state import LAST_CONFIG_ALERT, StateStore

logger = logging.getLogger(__name__)


def tail_lines(path: Path, count: int) -> list[str]:
    with open(path, errors="replace") as f:
        return [line.rstrip("\n") for line in deque(f, maxlen=count)]


class ConfigErrorMonitor:
    """
    Scans the tail of the gateway's stderr log for config validation failures.

    Config errors are never fixed automatically; they are surfaced at most
    once per cooldown window so a persistently broken config does not flood
    the alert channel.
    """

    def __init__(self, config: ConfigErrorConfig, state: StateStore, notifier: Notifier):
        self.config = config
        self.state = state
        self.notifier = notifier

    def find_errors(self) -> list[str]:
        """Return the matching lines among the last ``tail_lines`` of the error log."""
        error_log = Path(self.config.error_log).expanduser()
        if not error_log.is_file():
            return []
        patterns = [p.lower() for p in self.config.patterns]
        return [
            line
            for line in tail_lines(error_log, self.config.tail_lines)
            if any(p in line.lower() for p in patterns)
        ]

    def check(self) -> bool:
        """
        Alert about config errors unless an alert was sent within the cooldown.

        Returns:
            True if an alert was sent
        """
        errors = self.find_errors()
        if not errors:
            return False

        now = time.time()
        last_alert = self.state.get_float(LAST_CONFIG_ALERT)
        if now - last_alert <= self.config.cooldown_seconds:
            logger.debug(f"Config errors present, alert suppressed ({now - last_alert:.0f}s since last)")
            return False

        excerpt = "\n".join(errors[-self.config.max_excerpt_lines :])
        self.notifier.notify(f"config errors detected:\n{excerpt}", AlertSeverity.WARNING)
        self.state.set(LAST_CONFIG_ALERT, int(now))
        return True
