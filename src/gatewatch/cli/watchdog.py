"""
Watchdog run and status commands.
"""

import time

import click

from gatewatch.config.app import WatchdogAppConfig
from gatewatch.escalation import phase_for
from gatewatch.state import (
    CONSECUTIVE_FAILURES,
    LAST_CONFIG_ALERT,
    LAST_HEALTHY,
    LAST_RECOVERY,
    StateStore,
)
from gatewatch.watchdog import Watchdog, setup_logging


def format_timestamp(value: float) -> str:
    if not value:
        return "never"
    ago = int(time.time() - value)
    stamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(value))
    return f"{stamp} ({ago}s ago)"


@click.command()
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Log to stderr as well as the watchdog log",
)
@click.pass_context
def run(ctx: click.Context, verbose: bool) -> None:
    """Run one watchdog pass."""
    config: WatchdogAppConfig = ctx.obj["config"]
    setup_logging(config.logging, verbose=verbose)

    report = Watchdog(config).run()

    # Findings are reported through alerts; the exit code stays 0.
    if not verbose:
        return
    if report.skipped:
        click.echo("Skipped: another watchdog invocation is running")
        return
    if report.probe is not None:
        click.echo(f"Probe: {report.probe.describe()}")
    if report.escalation is not None:
        click.echo(
            f"Phase: {report.escalation.phase.value} "
            f"(failures: {report.escalation.failures})"
        )
    if report.truncation is not None:
        click.echo(
            f"Truncated {report.truncation.path.name}: "
            f"{report.truncation.original_lines} -> {report.truncation.new_lines} lines"
        )
    if report.config_alert:
        click.echo("Config error alert sent")
    if report.disk_alert:
        click.echo("Disk usage alert sent")
    for name in report.errors:
        click.echo(f"Check failed: {name}", err=True)


@click.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the persisted watchdog state."""
    config: WatchdogAppConfig = ctx.obj["config"]
    store = StateStore(config.state_file)

    failures = store.get_int(CONSECUTIVE_FAILURES)
    phase = phase_for(failures, config.escalation.failure_threshold)

    click.echo(f"Gateway: {config.health.url}")
    click.echo(f"State file: {store.path}")
    click.echo(f"Phase: {phase.value}")
    click.echo(f"Consecutive failures: {failures}/{config.escalation.failure_threshold}")
    click.echo(f"Last healthy: {format_timestamp(store.get_float(LAST_HEALTHY))}")
    click.echo(f"Last recovery: {format_timestamp(store.get_float(LAST_RECOVERY))}")
    click.echo(f"Last config alert: {format_timestamp(store.get_float(LAST_CONFIG_ALERT))}")
