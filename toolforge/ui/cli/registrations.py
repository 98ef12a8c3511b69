"""
CLI commands for the local registration history.

Thin wrappers over ``toolforge.core.persistence.registration_cache``.
"""

from __future__ import annotations

import json
import sys

import click

from toolforge.core.errors import ToolforgeError
from toolforge.core.persistence.registration_cache import RegistrationCache
from toolforge.ui.cli.console import fail, load_cli_config

_STATUS_STYLE = {
    "success": ("✓", "green"),
    "failed": ("✗", "red"),
    "skipped": ("⊘", "yellow"),
}


def _cache(ctx: click.Context) -> RegistrationCache:
    return RegistrationCache(load_cli_config(ctx).cache_file)


@click.group()
def registrations() -> None:
    """Registration history — list, show, and clear cached outcomes."""


@registrations.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_registrations(ctx: click.Context, as_json: bool) -> None:
    """List cached registrations, newest first."""
    cache = _cache(ctx)
    records = cache.all()

    if as_json:
        click.echo(json.dumps([r.model_dump(mode="json") for r in records], indent=2))
        return

    if not records:
        click.echo("No registrations recorded.")
        return

    click.secho(f"\n📋 Registrations ({len(records)})", fg="cyan", bold=True)
    for record in records:
        icon, color = _STATUS_STYLE.get(record.status, ("•", "white"))
        click.secho(f"   {icon} {record.tool_id} ", fg=color, nl=False)
        click.echo(f"{record.status} at {record.timestamp}")
        if record.error:
            click.echo(f"     │ {record.error}")
    click.echo()


@registrations.command("show")
@click.argument("tool_id")
@click.pass_context
def show_registration(ctx: click.Context, tool_id: str) -> None:
    """Show the cached registration for one tool."""
    record = _cache(ctx).get(tool_id)
    if record is None:
        click.secho(f"❌ No registration recorded for '{tool_id}'", fg="red", err=True)
        sys.exit(1)

    click.echo(json.dumps(record.model_dump(mode="json"), indent=2))


@registrations.command("clear")
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation.")
@click.pass_context
def clear_registrations(ctx: click.Context, yes: bool) -> None:
    """Delete the registration cache."""
    cache = _cache(ctx)
    if not yes:
        click.confirm(f"Delete {cache.path}?", abort=True)

    try:
        existed = cache.clear()
    except ToolforgeError as e:
        fail(str(e))

    if existed:
        click.secho(f"🗑️  Cleared {cache.path}", fg="green")
    else:
        click.echo("Registration cache was already empty.")
