"""
Process discovery, forced termination and supervisor control.

The watchdog never starts the gateway itself. It kills whatever holds the
gateway port and nudges the host's service manager, which owns restarts.
"""

from __future__ import annotations

import logging
import os
import platform
import subprocess  # nosec B404 - subprocess needed for service manager control

import psutil

from gatewatch.config.watchdog import SupervisorConfig

logger = logging.getLogger(__name__)

SUPERVISOR_TIMEOUT = 15


def find_port_pid(port: int) -> int | None:
    """
    Find the process listening on a TCP port.

    Args:
        port: Port the gateway listens on

    Returns:
        PID of the first listening process found, or None
    """
    for proc in psutil.process_iter(["pid", "name"]):
        try:
            for conn in proc.net_connections(kind="inet"):
                if conn.laddr and conn.laddr.port == port and conn.status == psutil.CONN_LISTEN:
                    return int(proc.pid)
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            continue
    return None


def kill_process(pid: int) -> bool:
    """
    Send SIGKILL to a process.

    Returns:
        True if the signal was delivered
    """
    try:
        proc = psutil.Process(pid)
        logger.info(f"Killing hung gateway process {pid} ({proc.name()})")
        proc.kill()
        return True
    except psutil.NoSuchProcess:
        logger.info(f"Gateway process {pid} already exited")
        return False
    except psutil.AccessDenied:
        logger.error(f"Permission denied killing gateway process {pid}")
        return False


class Supervisor:
    """Asks the host service manager to force-restart the gateway unit."""

    def __init__(self, config: SupervisorConfig | None = None):
        self.config = config or SupervisorConfig()

    @property
    def backend(self) -> str:
        if self.config.backend != "auto":
            return self.config.backend
        return "launchd" if platform.system() == "Darwin" else "systemd"

    def restart_command(self) -> list[str]:
        label = self.config.service_label
        if self.backend == "launchd":
            return ["launchctl", "kickstart", "-k", f"gui/{os.getuid()}/{label}"]
        return ["systemctl", "--user", "restart", label]

    def restart(self) -> bool:
        """
        Force-restart the managed service.

        Returns:
            True if the service manager accepted the request
        """
        cmd = self.restart_command()
        logger.info(f"Asking {self.backend} to restart {self.config.service_label}")
        try:
            result = subprocess.run(  # nosec B603 - fixed argv, no shell
                cmd,
                capture_output=True,
                text=True,
                timeout=SUPERVISOR_TIMEOUT,
            )
        except FileNotFoundError:
            logger.error(f"Supervisor command not found: {cmd[0]}")
            return False
        except subprocess.TimeoutExpired:
            logger.error(f"Supervisor restart timed out after {SUPERVISOR_TIMEOUT}s")
            return False

        if result.returncode != 0:
            logger.error(
                f"Supervisor restart failed (exit {result.returncode}): {result.stderr.strip()}"
            )
            return False
        return True
