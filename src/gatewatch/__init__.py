"""Gatewatch - a self-healing watchdog for long-running agent gateways.

Probes gateway liveness, kills and restarts a hung gateway after repeated
failures, trims bloated session logs, throttles alerts about recurring
configuration errors and keeps an eye on disk pressure.
"""

__version__ = "0.1.0"
