"""
toolforge — CLI entrypoint.

Usage:
    toolforge --help
    toolforge create "Inventory Tracker" --permission inventory:read --feature component
    toolforge manifest inventory-tracker --feature backend --json
    toolforge registrations list
"""

from __future__ import annotations

import os
from pathlib import Path

import click

from toolforge import __version__
from toolforge.core.observability.logging_config import setup_logging
from toolforge.ui.cli.create import create, manifest, register
from toolforge.ui.cli.registrations import registrations


@click.group()
@click.version_option(version=__version__, prog_name="toolforge")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to toolforge.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """toolforge — scaffold and register platform tools."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("TOOLFORGE_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("TOOLFORGE_LOG_FILE"),
        log_file_level=os.environ.get("TOOLFORGE_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )


cli.add_command(create)
cli.add_command(manifest)
cli.add_command(register)
cli.add_command(registrations)


if __name__ == "__main__":
    cli()
