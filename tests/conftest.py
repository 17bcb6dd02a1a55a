"""Pytest configuration and shared fixtures for gatewatch tests."""

import tempfile
from collections.abc import Iterator
from pathlib import Path

import pytest

from gatewatch.config.app import WatchdogAppConfig
from gatewatch.notifier import AlertEvent, Notifier
from gatewatch.state import StateStore


class RecordingDispatcher:
    """Dispatcher double that keeps every event it is asked to send."""

    def __init__(self) -> None:
        self.events: list[AlertEvent] = []

    def send(self, event: AlertEvent) -> bool:
        self.events.append(event)
        return True

    @property
    def messages(self) -> list[str]:
        return [event.message for event in self.events]


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def notifier(temp_dir: Path, dispatcher: RecordingDispatcher) -> Notifier:
    return Notifier(temp_dir / "logs" / "alerts.log", [dispatcher])


@pytest.fixture
def state(temp_dir: Path) -> StateStore:
    return StateStore(temp_dir / "logs" / "watchdog-state.json")


@pytest.fixture
def app_config(temp_dir: Path) -> WatchdogAppConfig:
    """Configuration with every path inside the temp directory."""
    return WatchdogAppConfig(
        state_file=str(temp_dir / "logs" / "watchdog-state.json"),
        lock_file=str(temp_dir / "logs" / "watchdog.lock"),
        sessions={"directory": str(temp_dir / "sessions")},
        config_errors={"error_log": str(temp_dir / "logs" / "gateway.err.log")},
        alerts={"activity_log": str(temp_dir / "logs" / "alerts.log")},
        logging={"file": str(temp_dir / "logs" / "watchdog.log")},
        escalation={"kill_grace_seconds": 0, "supervisor_wait_seconds": 0},
    )
