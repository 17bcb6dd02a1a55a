"""Disk pressure check."""

from __future__ import annotations

import logging

import psutil

from gatewatch.config.watchdog import DiskConfig
from gatewatch.notifier import AlertSeverity, Notifier

logger = logging.getLogger(__name__)


class DiskMonitor:
    """Alerts when the monitored filesystem is fuller than the threshold.

    Stateless: a full disk alerts on every invocation.
    """

    def __init__(self, config: DiskConfig, notifier: Notifier):
        self.config = config
        self.notifier = notifier

    def usage_percent(self) -> float:
        return float(psutil.disk_usage(self.config.path).percent)

    def check(self) -> bool:
        usage = self.usage_percent()
        logger.debug(f"Disk usage on {self.config.path}: {usage:.1f}%")
        if usage > self.config.threshold_percent:
            self.notifier.notify(
                f"disk usage at {usage:.0f}% on {self.config.path}", AlertSeverity.WARNING
            )
            return True
        return False
