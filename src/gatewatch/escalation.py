"""
Failure-counted escalation for an unresponsive gateway.

The persisted ``consecutive_failures`` counter is the whole state machine:

- HEALTHY: counter is 0
- DEGRADING: 1 <= counter < threshold, nothing done beyond logging
- RECOVERING: counter >= threshold, one kill + supervisor kick this run

Only transport failures (UNREACHABLE) count. A gateway answering with a
wrong status is alive and is left alone.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from gatewatch.config.watchdog import EscalationConfig, HealthCheckConfig
from gatewatch.notifier import AlertSeverity, Notifier
from gatewatch.process import Supervisor, find_port_pid, kill_process
from gatewatch.prober import ProbeResult, ProbeStatus, probe
from gatewatch.state import CONSECUTIVE_FAILURES, LAST_HEALTHY, LAST_RECOVERY, StateStore

logger = logging.getLogger(__name__)


class GatewayPhase(str, Enum):
    HEALTHY = "healthy"
    DEGRADING = "degrading"
    RECOVERING = "recovering"


def phase_for(failures: int, threshold: int) -> GatewayPhase:
    """Derive the escalation phase from the failure counter."""
    if failures <= 0:
        return GatewayPhase.HEALTHY
    if failures < threshold:
        return GatewayPhase.DEGRADING
    return GatewayPhase.RECOVERING


@dataclass
class EscalationOutcome:
    phase: GatewayPhase
    failures: int
    killed_pid: int | None = None
    reprobe: ProbeResult | None = None
    supervisor_kicked: bool = False

    @property
    def recovery_attempted(self) -> bool:
        return self.phase is GatewayPhase.RECOVERING


class EscalationController:
    """Turns probe results into counter updates and, past the threshold, a restart."""

    def __init__(
        self,
        state: StateStore,
        notifier: Notifier,
        config: EscalationConfig | None = None,
        health: HealthCheckConfig | None = None,
        supervisor: Supervisor | None = None,
        prober: Callable[[str, float], ProbeResult] = probe,
    ):
        self.state = state
        self.notifier = notifier
        self.config = config or EscalationConfig()
        self.health = health or HealthCheckConfig()
        self.supervisor = supervisor or Supervisor()
        self.prober = prober

    def current_phase(self) -> GatewayPhase:
        return phase_for(self.state.get_int(CONSECUTIVE_FAILURES), self.config.failure_threshold)

    def handle(self, result: ProbeResult) -> EscalationOutcome:
        """
        Apply one probe result.

        Args:
            result: This invocation's probe result

        Returns:
            EscalationOutcome describing what was done
        """
        if result.status is ProbeStatus.HEALTHY:
            self.state.update({CONSECUTIVE_FAILURES: 0, LAST_HEALTHY: int(time.time())})
            return EscalationOutcome(GatewayPhase.HEALTHY, 0)

        if result.status is ProbeStatus.UNHEALTHY:
            failures = self.state.get_int(CONSECUTIVE_FAILURES)
            logger.info(f"Health check returned HTTP {result.status_code}")
            return EscalationOutcome(
                phase_for(failures, self.config.failure_threshold), failures
            )

        threshold = self.config.failure_threshold
        failures = self.state.get_int(CONSECUTIVE_FAILURES) + 1
        self.state.set(CONSECUTIVE_FAILURES, failures)
        logger.warning(f"Health check failed (attempt {failures}/{threshold})")

        if failures < threshold:
            return EscalationOutcome(GatewayPhase.DEGRADING, failures)

        return self._recover(failures)

    def _recover(self, failures: int) -> EscalationOutcome:
        outcome = EscalationOutcome(GatewayPhase.RECOVERING, failures)
        logger.warning(f"Gateway unresponsive after {failures} checks, attempting recovery")
        self.notifier.notify(
            f"gateway unresponsive after {failures} health checks. "
            "killing it and letting the supervisor restart it.",
            AlertSeverity.CRITICAL,
        )

        try:
            pid = find_port_pid(self.health.port)
            if pid is None:
                logger.info(f"No process is listening on port {self.health.port}")
            elif kill_process(pid):
                outcome.killed_pid = pid
                time.sleep(self.config.kill_grace_seconds)

            time.sleep(self.config.supervisor_wait_seconds)
            outcome.reprobe = self.prober(self.health.url, self.health.timeout)
            if not outcome.reprobe.healthy:
                logger.warning("Supervisor did not restart the gateway, forcing a restart")
                outcome.supervisor_kicked = self.supervisor.restart()
            else:
                logger.info("Gateway recovered after kill")
                self.notifier.notify("gateway recovered after restart.", AlertSeverity.INFO)
        finally:
            # One attempt per invocation; the next one starts a fresh count.
            self.state.update({CONSECUTIVE_FAILURES: 0, LAST_RECOVERY: int(time.time())})

        return outcome
