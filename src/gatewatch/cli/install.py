"""
launchd agent installation for the watchdog.

The watchdog is scheduled by launchd with StartInterval; every run is a
fresh ``python -m gatewatch.watchdog`` process.
"""

import os
import plistlib
import subprocess  # nosec B404 - subprocess needed for launchctl
import sys
from pathlib import Path
from typing import Any

import click

from gatewatch.config.app import WatchdogAppConfig

AGENT_LABEL = "com.openclaw.watchdog"


def get_plist_path() -> Path:
    return Path.home() / "Library" / "LaunchAgents" / f"{AGENT_LABEL}.plist"


def build_agent_plist(
    log_dir: Path,
    interval: int,
    alert_number: str | None = None,
    config_file: str | None = None,
) -> dict[str, Any]:
    """
    Build the launchd agent definition.

    Args:
        log_dir: Directory for launchd's stdout/stderr capture
        interval: Seconds between invocations
        alert_number: Optional iMessage destination exported to the watchdog
        config_file: Optional config path passed through to the watchdog

    Returns:
        Plist dictionary
    """
    program = [sys.executable, "-m", "gatewatch.watchdog"]
    if config_file:
        program += ["--config", str(Path(config_file).expanduser().resolve())]

    env = {
        "HOME": str(Path.home()),
        "PATH": "/opt/homebrew/bin:/usr/local/bin:/usr/bin:/bin",
    }
    if alert_number:
        env["WATCHDOG_ALERT_NUMBER"] = alert_number

    return {
        "Label": AGENT_LABEL,
        "Comment": f"Gateway self-healing watchdog - health checks every {interval}s",
        "ProgramArguments": program,
        "StartInterval": interval,
        "RunAtLoad": True,
        "StandardOutPath": str(log_dir / "watchdog-launchd.log"),
        "StandardErrorPath": str(log_dir / "watchdog-launchd.err.log"),
        "EnvironmentVariables": env,
    }


def _launchctl(*args: str) -> subprocess.CompletedProcess[str]:
    return subprocess.run(  # nosec B603 - fixed argv
        ["launchctl", *args],
        capture_output=True,
        text=True,
        timeout=15,
    )


@click.command()
@click.option(
    "--alert-number",
    envvar="WATCHDOG_ALERT_NUMBER",
    help="iMessage destination for alerts",
)
@click.option(
    "--interval",
    type=click.IntRange(30, 3600),
    default=120,
    show_default=True,
    help="Seconds between watchdog runs",
)
@click.pass_context
def install(ctx: click.Context, alert_number: str | None, interval: int) -> None:
    """Install the watchdog as a launchd agent."""
    config: WatchdogAppConfig = ctx.obj["config"]
    log_dir = Path(config.logging.file).expanduser().parent
    log_dir.mkdir(parents=True, exist_ok=True)

    plist_path = get_plist_path()
    plist_path.parent.mkdir(parents=True, exist_ok=True)
    agent = build_agent_plist(log_dir, interval, alert_number, ctx.obj.get("config_file"))
    with open(plist_path, "wb") as f:
        plistlib.dump(agent, f)

    domain = f"gui/{os.getuid()}"
    try:
        # Unload existing agent if present
        _launchctl("bootout", f"{domain}/{AGENT_LABEL}")
        result = _launchctl("bootstrap", domain, str(plist_path))
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        click.echo(f"Failed to load agent: {e}", err=True)
        sys.exit(1)
    if result.returncode != 0:
        click.echo(f"launchctl bootstrap failed: {result.stderr.strip()}", err=True)
        sys.exit(1)

    click.echo("Watchdog installed and running")
    click.echo(f"  plist: {plist_path}")
    click.echo(f"  interval: every {interval}s")
    click.echo(f"  logs: {config.logging.file}")
    if alert_number:
        click.echo(f"  alerts: {alert_number}")


@click.command()
def uninstall() -> None:
    """Remove the watchdog launchd agent."""
    plist_path = get_plist_path()
    try:
        _launchctl("bootout", f"gui/{os.getuid()}/{AGENT_LABEL}")
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        click.echo(f"Warning: could not unload agent: {e}", err=True)

    if plist_path.exists():
        plist_path.unlink()
        click.echo(f"Removed {plist_path}")
    else:
        click.echo("Watchdog agent was not installed")
