"""Alert delivery.

Every alert is appended to a local activity log first; external delivery
(iMessage, webhook) is best effort and its failures never abort a run.
"""

from __future__ import annotations

import logging
import os
import subprocess  # nosec B404 - subprocess needed for the imsg CLI
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Protocol

import httpx

from gatewatch.config.alerts import AlertConfig

logger = logging.getLogger(__name__)


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class AlertEvent:
    severity: AlertSeverity
    message: str
    timestamp: float = field(default_factory=time.time)

    def format_line(self) -> str:
        stamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(self.timestamp))
        return f"[{stamp}] ALERT[{self.severity.value}]: {self.message}"


class AlertDispatcher(Protocol):
    """External alert channel."""

    def send(self, event: AlertEvent) -> bool: ...


class IMessageDispatcher:
    """Sends alerts as iMessages through the imsg command line tool."""

    def __init__(self, cli_path: str, number: str, timeout: float = 15.0):
        self.cli_path = cli_path
        self.number = number
        self.timeout = timeout

    def send(self, event: AlertEvent) -> bool:
        cli = str(Path(self.cli_path).expanduser())
        if not os.access(cli, os.X_OK):
            logger.debug(f"imsg CLI not executable at {cli}, skipping iMessage alert")
            return False
        result = subprocess.run(  # nosec B603 - fixed argv, no shell
            [cli, "send", self.number, event.message],
            capture_output=True,
            text=True,
            timeout=self.timeout,
        )
        if result.returncode != 0:
            logger.warning(f"imsg send exited with {result.returncode}: {result.stderr.strip()}")
            return False
        return True


class WebhookDispatcher:
    """POSTs alerts as JSON to a webhook URL."""

    def __init__(self, url: str, timeout: float = 10.0):
        self.url = url
        self.timeout = timeout

    def send(self, event: AlertEvent) -> bool:
        response = httpx.post(
            self.url,
            json={
                "severity": event.severity.value,
                "message": event.message,
                "timestamp": event.timestamp,
            },
            timeout=self.timeout,
        )
        if response.status_code >= 400:
            logger.warning(f"Alert webhook returned status {response.status_code}")
            return False
        return True


def build_dispatchers(config: AlertConfig) -> list[AlertDispatcher]:
    """Create the dispatchers for every configured destination."""
    dispatchers: list[AlertDispatcher] = []
    if config.imessage_number:
        dispatchers.append(IMessageDispatcher(config.imsg_cli, config.imessage_number))
    if config.webhook_url:
        dispatchers.append(WebhookDispatcher(config.webhook_url, timeout=config.webhook_timeout))
    return dispatchers


class Notifier:
    """Formats alerts, records them locally and dispatches them."""

    def __init__(
        self,
        activity_log: str | Path,
        dispatchers: Iterable[AlertDispatcher] = (),
        prefix: str = "",
    ):
        self.activity_log = Path(activity_log).expanduser()
        self.dispatchers = list(dispatchers)
        self.prefix = prefix

    @classmethod
    def from_config(cls, config: AlertConfig) -> Notifier:
        return cls(config.activity_log, build_dispatchers(config), prefix=config.prefix)

    def notify(self, message: str, severity: AlertSeverity = AlertSeverity.WARNING) -> AlertEvent:
        """
        Record and dispatch an alert.

        Args:
            message: Human readable alert text
            severity: Alert severity

        Returns:
            The AlertEvent that was emitted
        """
        event = AlertEvent(severity=severity, message=f"{self.prefix}{message}")
        logger.warning(f"ALERT: {event.message}")
        self._append(event)

        for dispatcher in self.dispatchers:
            try:
                dispatcher.send(event)
            except Exception as e:
                logger.warning(f"Alert dispatch via {type(dispatcher).__name__} failed: {e}")
        return event

    def _append(self, event: AlertEvent) -> None:
        try:
            self.activity_log.parent.mkdir(parents=True, exist_ok=True)
            with open(self.activity_log, "a") as f:
                f.write(event.format_line() + "\n")
        except OSError as e:
            logger.error(f"Failed to append alert to {self.activity_log}: {e}")
