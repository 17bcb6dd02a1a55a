"""
Gateway watchdog invocation.

Performs one bounded pass of health checks and recovery actions, then exits.
Meant to be started every couple of minutes by launchd, systemd timers or
cron; context between runs lives in the state file.

Usage:
    python -m gatewatch.watchdog [--config PATH] [--verbose]
"""

from __future__ import annotations

import argparse
import fcntl
import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from logging.handlers import RotatingFileHandler
from pathlib import Path

from gatewatch.config.app import WatchdogAppConfig, load_config
from gatewatch.config.logging import LoggingSettings
from gatewatch.config_monitor import ConfigErrorMonitor
from gatewatch.disk_monitor import DiskMonitor
from gatewatch.escalation import EscalationController, EscalationOutcome
from gatewatch.notifier import Notifier
from gatewatch.process import Supervisor
from gatewatch.prober import ProbeResult, probe
from gatewatch.session_guard import SessionLogGuardian, TruncationResult
from gatewatch.state import StateStore

logger = logging.getLogger(__name__)


@dataclass
class WatchdogReport:
    """What a single invocation observed and did."""

    probe: ProbeResult | None = None
    escalation: EscalationOutcome | None = None
    truncation: TruncationResult | None = None
    config_alert: bool = False
    disk_alert: bool = False
    skipped: bool = False
    errors: list[str] = field(default_factory=list)


@contextmanager
def invocation_lock(path: str | Path) -> Iterator[bool]:
    """
    Hold an exclusive, non-blocking lock for the duration of a run.

    A lock file that cannot be created does not block the run: the run
    proceeds unlocked.

    Yields:
        True if the run may proceed, False if another run holds the lock
    """
    lock_path = Path(path).expanduser()
    fd: int | None
    try:
        lock_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(lock_path, os.O_RDWR | os.O_CREAT, 0o600)
    except OSError as e:
        logger.warning(f"Cannot open lock file {lock_path}, running unlocked: {e}")
        fd = None

    if fd is None:
        yield True
        return

    acquired = False
    try:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            acquired = True
        except BlockingIOError:
            pass
        if acquired:
            os.ftruncate(fd, 0)
            os.write(fd, str(os.getpid()).encode())
        yield acquired
    finally:
        if acquired:
            fcntl.flock(fd, fcntl.LOCK_UN)
        os.close(fd)


class Watchdog:
    """
    One watchdog pass over the gateway and its host.

    Checks, in order:
    - Health probe and failure-counted escalation (kill + supervisor kick)
    - Session log bloat
    - Recurring config errors
    - Disk pressure

    A check that raises is logged and skipped; the others still run.
    """

    def __init__(
        self,
        config: WatchdogAppConfig | None = None,
        notifier: Notifier | None = None,
        state: StateStore | None = None,
        supervisor: Supervisor | None = None,
    ):
        self.config = config or WatchdogAppConfig()
        self.notifier = notifier or Notifier.from_config(self.config.alerts)
        self.state = state or StateStore(self.config.state_file)

        self.escalation = EscalationController(
            self.state,
            self.notifier,
            config=self.config.escalation,
            health=self.config.health,
            supervisor=supervisor or Supervisor(self.config.supervisor),
        )
        self.session_guard = SessionLogGuardian(self.config.sessions, self.notifier)
        self.config_monitor = ConfigErrorMonitor(self.config.config_errors, self.state, self.notifier)
        self.disk_monitor = DiskMonitor(self.config.disk, self.notifier)

    def check_health(self, report: WatchdogReport) -> None:
        report.probe = probe(self.config.health.url, self.config.health.timeout)
        report.escalation = self.escalation.handle(report.probe)

    def check_sessions(self, report: WatchdogReport) -> None:
        report.truncation = self.session_guard.sweep()

    def check_config(self, report: WatchdogReport) -> None:
        report.config_alert = self.config_monitor.check()

    def check_disk(self, report: WatchdogReport) -> None:
        report.disk_alert = self.disk_monitor.check()

    def run_once(self) -> WatchdogReport:
        """Run every check once and report what happened."""
        report = WatchdogReport()
        checks = [
            ("health", self.check_health),
            ("sessions", self.check_sessions),
            ("config", self.check_config),
            ("disk", self.check_disk),
        ]
        for name, check in checks:
            try:
                check(report)
            except Exception:
                logger.exception(f"{name} check failed")
                report.errors.append(name)
        return report

    def run(self) -> WatchdogReport:
        """Run once under the invocation lock."""
        with invocation_lock(self.config.lock_file) as acquired:
            if not acquired:
                logger.info("Another watchdog invocation is running, skipping")
                return WatchdogReport(skipped=True)
            return self.run_once()


def setup_logging(settings: LoggingSettings, verbose: bool = False) -> None:
    """
    Configure logging to the rotating watchdog log file.

    Falls back to stderr when the log file cannot be opened.

    Args:
        settings: Logging settings from config
        verbose: Also log to stderr at DEBUG level
    """
    log_level = logging.DEBUG if verbose else getattr(logging, settings.level.upper())
    log_file = Path(settings.file).expanduser()

    handlers: list[logging.Handler] = []
    file_error: OSError | None = None
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                log_file,
                maxBytes=settings.max_size_mb * 1024 * 1024,
                backupCount=settings.backup_count,
            )
        )
    except OSError as e:
        file_error = e
    if verbose or file_error is not None:
        handlers.append(logging.StreamHandler())

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True,
    )

    # Silence noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    if file_error is not None:
        logger.warning(f"Cannot write log file {log_file}, logging to stderr: {file_error}")


def main() -> None:
    """Entry point for a scheduled watchdog invocation."""
    parser = argparse.ArgumentParser(description="Gateway self-healing watchdog")
    parser.add_argument(
        "--config",
        help="Path to watchdog configuration file",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    args = parser.parse_args()

    # A broken config file must not stop the watchdog from watching.
    config_error: Exception | None = None
    try:
        config = load_config(args.config)
    except (ValueError, OSError) as e:
        config_error = e
        config = WatchdogAppConfig()

    setup_logging(config.logging, verbose=args.verbose)
    if config_error is not None:
        logger.error(f"Falling back to default configuration: {config_error}")

    Watchdog(config).run()


if __name__ == "__main__":
    main()
