"""Gateway liveness probe."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

import httpx

logger = logging.getLogger(__name__)

HEALTHY_STATUS_CODES = frozenset({200, 204})


class ProbeStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    UNREACHABLE = "unreachable"


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a single health probe."""

    status: ProbeStatus
    status_code: int | None = None
    error: str | None = None

    @property
    def healthy(self) -> bool:
        return self.status is ProbeStatus.HEALTHY

    def describe(self) -> str:
        if self.status is ProbeStatus.UNREACHABLE:
            return f"unreachable ({self.error})" if self.error else "unreachable"
        return f"HTTP {self.status_code}"


def probe(url: str, timeout: float = 5.0) -> ProbeResult:
    """
    Issue one GET against the gateway health endpoint.

    Never raises; transport failures are reported as UNREACHABLE.

    Args:
        url: Health endpoint URL
        timeout: Seconds before the request is abandoned

    Returns:
        ProbeResult classifying the response
    """
    try:
        response = httpx.get(url, timeout=timeout, follow_redirects=False)
    except httpx.TimeoutException:
        logger.warning("Health probe failed: timeout")
        return ProbeResult(ProbeStatus.UNREACHABLE, error="timeout")
    except httpx.ConnectError:
        logger.warning("Health probe failed: connection refused")
        return ProbeResult(ProbeStatus.UNREACHABLE, error="connection refused")
    except Exception as e:
        logger.warning(f"Health probe failed: {e}")
        return ProbeResult(ProbeStatus.UNREACHABLE, error=str(e) or type(e).__name__)

    if response.status_code in HEALTHY_STATUS_CODES:
        logger.debug("Health probe passed")
        return ProbeResult(ProbeStatus.HEALTHY, status_code=response.status_code)

    logger.warning(f"Health probe returned status {response.status_code}")
    return ProbeResult(ProbeStatus.UNHEALTHY, status_code=response.status_code)
