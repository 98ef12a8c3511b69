"""
CLI commands for scaffolding — create, manifest, register.

Thin wrappers over ``toolforge.core.use_cases.create_tool``.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click
import yaml

from toolforge.core.errors import ToolforgeError
from toolforge.core.models.config import ToolforgeConfig
from toolforge.core.models.tool import DEFAULT_VERSION, Feature
from toolforge.core.observability.reporter import LoggingReporter
from toolforge.core.persistence.registration_cache import RegistrationCache
from toolforge.core.services.aggregators import PatchStatus
from toolforge.core.services.conflicts import ConflictPolicy
from toolforge.core.services.manifest import build_manifest
from toolforge.core.services.validation import suggest_identifier, validate_metadata
from toolforge.core.use_cases.create_tool import (
    CreateToolResult,
    RegistrationOptions,
    create_tool,
    register_tool,
)
from toolforge.ui.cli.console import ConsoleReporter, fail, load_cli_config, run_async

logger = logging.getLogger(__name__)

DEFAULT_ICON = "pi-box"
_FEATURE_CHOICES = [f.value for f in Feature]


def _interactive() -> bool:
    return sys.stdin.isatty()


def metadata_options(func: Callable) -> Callable:
    """Options shared by every command that takes tool metadata."""
    options = [
        click.argument("tool_name", required=False),
        click.option("--id", "tool_id", default=None, help="Kebab-case identifier (default: derived from the name)."),
        click.option("--description", "-d", default=None, help="Short description (10-500 characters)."),
        click.option("--icon", default=None, help=f"PrimeIcons class (default: {DEFAULT_ICON})."),
        click.option("--version", "tool_version", default=None, help=f"Semantic version (default: {DEFAULT_VERSION})."),
        click.option("--permission", "-p", "permissions", multiple=True, help="Permission tag (repeatable)."),
        click.option(
            "--feature", "-f", "features", multiple=True,
            type=click.Choice(_FEATURE_CHOICES), help="Feature to generate (repeatable).",
        ),
        click.option(
            "--from-file", "from_file", type=click.Path(exists=True, dir_okay=False), default=None,
            help="Read metadata from a JSON or YAML file; options override it.",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def registry_options(func: Callable) -> Callable:
    options = [
        click.option("--admin-email", default=None, help="Registry admin email (env: TOOLFORGE_ADMIN_EMAIL)."),
        click.option("--admin-password", default=None, help="Registry admin password (env: TOOLFORGE_ADMIN_PASSWORD)."),
        click.option("--api-url", default=None, help="Registry API URL (env: TOOLFORGE_API_URL)."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _gather_metadata(
    tool_name: str | None,
    tool_id: str | None,
    description: str | None,
    icon: str | None,
    tool_version: str | None,
    permissions: tuple[str, ...],
    features: tuple[str, ...],
    from_file: str | None,
    prompt: bool,
) -> dict[str, Any]:
    """Merge file metadata, CLI options and (when interactive) prompts.

    Raises:
        click.Abort: if the user cancels a prompt.
    """
    raw: dict[str, Any] = _read_metadata_file(Path(from_file)) if from_file else {}

    overrides = {
        "display_name": tool_name,
        "identifier": tool_id,
        "description": description,
        "icon": icon,
        "version": tool_version,
        "permissions": list(permissions) or None,
        "features": list(features) or None,
    }
    for key, value in overrides.items():
        if value is not None:
            raw[key] = value

    name = raw.get("display_name") or raw.get("toolName") or raw.get("name")
    if not name and prompt:
        name = click.prompt("Tool name")
        raw["display_name"] = name

    if not any(raw.get(k) for k in ("identifier", "toolId", "tool_id", "id")) and name:
        suggested = suggest_identifier(str(name))
        raw["identifier"] = click.prompt("Tool identifier", default=suggested) if prompt else suggested

    if prompt and raw.get("description") is None:
        raw["description"] = click.prompt("Description", default="", show_default=False)

    raw.setdefault("icon", DEFAULT_ICON)

    if not raw.get("permissions") and prompt:
        answer = click.prompt("Permissions (comma-separated)", default=f"{raw.get('identifier')}:read")
        raw["permissions"] = [p.strip() for p in answer.split(",") if p.strip()]

    if not raw.get("features") and prompt:
        answer = click.prompt(
            f"Features (comma-separated: {', '.join(_FEATURE_CHOICES)})",
            default="component,service,backend",
        )
        raw["features"] = [f.strip() for f in answer.split(",") if f.strip()]

    return raw


def _read_metadata_file(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        fail(f"Cannot read metadata file {path}: {e}")
    if not isinstance(data, dict):
        fail(f"Metadata file {path} must contain a mapping")
    return dict(data)


def _resolve_root(config: ToolforgeConfig, root: str | None) -> Path:
    return Path(root).resolve() if root else config.resolve_root()


# ── create ──────────────────────────────────────────────────────


@click.command()
@metadata_options
@click.option("--root", "-r", default=None, type=click.Path(file_okay=False), help="Workspace root (default: auto-detect).")
@click.option("--force", is_flag=True, help="Overwrite existing files.")
@click.option("--skip-existing", is_flag=True, help="Leave existing files untouched.")
@click.option("--register/--no-register", "do_register", default=False, help="Register the tool after generation.")
@registry_options
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def create(
    ctx: click.Context,
    tool_name: str | None,
    tool_id: str | None,
    description: str | None,
    icon: str | None,
    tool_version: str | None,
    permissions: tuple[str, ...],
    features: tuple[str, ...],
    from_file: str | None,
    root: str | None,
    force: bool,
    skip_existing: bool,
    do_register: bool,
    admin_email: str | None,
    admin_password: str | None,
    api_url: str | None,
    yes: bool,
    as_json: bool,
) -> None:
    """Scaffold a new tool into the workspace.

    Examples:

        toolforge create "Inventory Tracker" -p inventory:read -f component -f service

        toolforge create --from-file tool.yml --skip-existing

        toolforge create "Data Exporter" -p export:run -f backend -f database --register
    """
    config = load_cli_config(ctx)
    workspace = _resolve_root(config, root)
    prompt = _interactive() and not as_json

    try:
        raw = _gather_metadata(
            tool_name, tool_id, description, icon, tool_version,
            permissions, features, from_file, prompt,
        )
        if prompt and not yes:
            click.confirm(f"Generate '{raw.get('identifier')}' in {workspace}?", default=True, abort=True)
    except click.Abort:
        click.secho("\n⊘ Cancelled by user", fg="yellow")
        sys.exit(0)

    reporter = LoggingReporter() if as_json else ConsoleReporter(
        root=workspace, verbose=ctx.obj.get("verbose", False), quiet=ctx.obj.get("quiet", False),
    )

    try:
        result = run_async(create_tool(
            raw,
            workspace,
            config=config,
            policy=ConflictPolicy.from_flags(force=force, skip_existing=skip_existing),
            register=do_register,
            registration=RegistrationOptions(email=admin_email, password=admin_password, api_url=api_url),
            reporter=reporter,
        ))
    except Exception as e:
        logger.debug("create failed", exc_info=True)
        fail(f"Unexpected error: {e}")

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.success else 1)

    if not result.success:
        sys.exit(1)

    _print_summary(result, workspace)


def _print_summary(result: CreateToolResult, workspace: Path) -> None:
    metadata = result.metadata
    generation = result.generation
    if metadata is None or generation is None:
        fail(result.error or "Tool generation did not complete")

    click.echo()
    click.secho(f"✅ Tool '{metadata.identifier}' created", fg="green", bold=True)
    click.echo(f"   Files created: {len(generation.files_created)}")
    if generation.files_skipped:
        click.echo(f"   Files skipped: {len(generation.files_skipped)}")

    failed = [p for p in result.patches if p.status is PatchStatus.FAILED]
    if failed:
        click.echo()
        click.secho("   ⚠️  Wire these index files by hand:", fg="yellow")
        for patch in failed:
            click.echo(f"     • {patch.path.relative_to(workspace)} — {patch.message}")

    registration = result.registration
    if registration and registration.status == "success":
        click.secho("   📡 Registered with the tool registry", fg="cyan")
    elif registration and registration.status == "failed":
        click.secho(f"   ⚠️  Registration failed: {registration.error}", fg="yellow")
        click.echo(f"      Retry with: toolforge register {metadata.identifier}")

    click.echo()
    click.secho("   Next steps:", fg="white", bold=True)
    click.echo(f"     • Open {metadata.route} in the web app")
    if result.manifest and result.manifest.path_for("frontend.integration"):
        click.echo("     • Follow INTEGRATION.md in the tool folder")
    if registration and registration.status == "skipped":
        click.echo(f"     • Register it: toolforge register {metadata.identifier}")
    click.echo()


# ── manifest (dry run) ──────────────────────────────────────────


@click.command()
@metadata_options
@click.option("--root", "-r", default=None, type=click.Path(file_okay=False), help="Workspace root (default: auto-detect).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def manifest(
    ctx: click.Context,
    tool_name: str | None,
    tool_id: str | None,
    description: str | None,
    icon: str | None,
    tool_version: str | None,
    permissions: tuple[str, ...],
    features: tuple[str, ...],
    from_file: str | None,
    root: str | None,
    as_json: bool,
) -> None:
    """Show the files a tool would generate, without writing anything."""
    config = load_cli_config(ctx)
    workspace = _resolve_root(config, root)

    raw = _gather_metadata(
        tool_name, tool_id, description, icon, tool_version,
        permissions, features, from_file, prompt=False,
    )
    try:
        metadata = validate_metadata(raw)
        plan = build_manifest(metadata, workspace)
    except ToolforgeError as e:
        fail(str(e))

    if as_json:
        click.echo(json.dumps(plan.to_dict(), indent=2))
        return

    click.secho(f"\n📋 {metadata.display_name} ({metadata.identifier})", fg="cyan", bold=True)
    click.echo(f"   Features: {', '.join(metadata.sorted_features())}")
    for area in plan.areas:
        if not area.files:
            continue
        click.echo()
        click.secho(f"   {area.name}:", fg="white", bold=True)
        for entry in area.files:
            click.echo(f"     • {entry.path.relative_to(workspace)}")
    click.echo()


# ── register ────────────────────────────────────────────────────


@click.command()
@metadata_options
@registry_options
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def register(
    ctx: click.Context,
    tool_name: str | None,
    tool_id: str | None,
    description: str | None,
    icon: str | None,
    tool_version: str | None,
    permissions: tuple[str, ...],
    features: tuple[str, ...],
    from_file: str | None,
    admin_email: str | None,
    admin_password: str | None,
    api_url: str | None,
    as_json: bool,
) -> None:
    """Register an already generated tool with the registry.

    Examples:

        toolforge register "Inventory Tracker" -p inventory:read -f component

        toolforge register --from-file tool.yml --api-url https://platform.example.com
    """
    config = load_cli_config(ctx)
    prompt = _interactive() and not as_json

    try:
        raw = _gather_metadata(
            tool_name, tool_id, description, icon, tool_version,
            permissions, features, from_file, prompt,
        )
        if prompt and not admin_password and not config.registry.admin_password:
            admin_password = click.prompt("Admin password", hide_input=True)
    except click.Abort:
        click.secho("\n⊘ Cancelled by user", fg="yellow")
        sys.exit(0)

    reporter = LoggingReporter() if as_json else ConsoleReporter(
        verbose=ctx.obj.get("verbose", False), quiet=ctx.obj.get("quiet", False),
    )

    try:
        record = run_async(register_tool(
            raw,
            config,
            RegistrationOptions(email=admin_email, password=admin_password, api_url=api_url),
            reporter=reporter,
            cache=RegistrationCache(config.cache_file),
        ))
    except Exception as e:
        logger.debug("register failed", exc_info=True)
        fail(f"Unexpected error: {e}")

    if as_json:
        click.echo(json.dumps(record.model_dump(mode="json"), indent=2))
        sys.exit(0 if record.status == "success" else 1)

    if record.status != "success":
        fail(record.error or "Registration failed")

    click.secho(f"\n✅ Tool '{record.tool_id}' registered", fg="green", bold=True)
    registered_at = (record.details or {}).get("registered_at")
    if registered_at:
        click.echo(f"   at {registered_at}")
    click.echo()
