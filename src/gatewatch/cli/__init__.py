"""
Gatewatch CLI entry point.
"""

import sys

import click

from gatewatch.config.app import load_config

from .install import install, uninstall
from .watchdog import run, status


@click.group()
@click.option(
    "--config",
    type=click.Path(exists=True),
    help="Path to custom configuration file",
)
@click.pass_context
def cli(ctx: click.Context, config: str | None) -> None:
    """Gatewatch - self-healing watchdog for agent gateways."""
    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = load_config(config)
    except (ValueError, OSError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    ctx.obj["config_file"] = config


cli.add_command(run)
cli.add_command(status)
cli.add_command(install)
cli.add_command(uninstall)
