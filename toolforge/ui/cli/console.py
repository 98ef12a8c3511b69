"""
Console output helpers shared by the CLI commands.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, NoReturn, TypeVar

import click

from toolforge.core.config.loader import load_config
from toolforge.core.errors import ToolforgeError
from toolforge.core.models.config import ToolforgeConfig
from toolforge.core.observability.reporter import Reporter

T = TypeVar("T")


class ConsoleReporter(Reporter):
    """Reporter that prints colored progress lines with click."""

    def __init__(self, root: Path | None = None, verbose: bool = False, quiet: bool = False):
        self.root = root
        self.verbose = verbose
        self.quiet = quiet

    def _show(self, path: Path) -> str:
        if self.root is None:
            return str(path)
        try:
            return str(path.relative_to(self.root))
        except ValueError:
            return str(path)

    def on_stage(self, name: str) -> None:
        if not self.quiet:
            click.secho(f"\n🔧 {name}...", fg="cyan")

    def on_directory_created(self, path: Path) -> None:
        if self.verbose:
            click.echo(f"   📁 {self._show(path)}")

    def on_file_written(self, path: Path, size: int) -> None:
        if not self.quiet:
            click.secho("   ✓ ", fg="green", nl=False)
            click.echo(f"{self._show(path)} ({size / 1024:.1f} KB)")

    def on_file_skipped(self, path: Path, reason: str) -> None:
        if not self.quiet:
            click.secho("   ⊘ ", fg="yellow", nl=False)
            click.echo(f"{self._show(path)} ({reason})")

    def on_info(self, message: str) -> None:
        if self.verbose:
            click.echo(f"   {message}")

    def on_warning(self, message: str) -> None:
        click.secho(f"   ⚠️  {message}", fg="yellow", err=True)

    def on_error(self, message: str) -> None:
        click.secho(f"❌ {message}", fg="red", err=True)

    def on_retry(self, attempt: int, max_retries: int, delay: float) -> None:
        click.secho(f"   🔄 Retry {attempt}/{max_retries} in {delay:.1f}s...", fg="yellow", err=True)


def load_cli_config(ctx: click.Context) -> ToolforgeConfig:
    """Load configuration for a command, exiting 1 on ConfigError."""
    try:
        return load_config(ctx.obj.get("config_path"))
    except ToolforgeError as e:
        fail(str(e))


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    return asyncio.run(coro)


def fail(message: str) -> NoReturn:
    click.secho(f"❌ {message}", fg="red", err=True)
    sys.exit(1)
