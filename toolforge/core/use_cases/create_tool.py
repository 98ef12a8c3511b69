"""
Create-tool use case — the full scaffolding pipeline.

    validate → manifest → generate (conflicts, render, write)
             → patch aggregators → register (optional) → cache

Validation, manifest and generation failures stop the run and are
returned as ``result.error``. Aggregator failures are warnings.
Registration failures are cached as ``failed`` and reported, but the
generated files stay in place.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx

from toolforge.adapters.filesystem import FileSystem, LocalFileSystem
from toolforge.core.errors import FileSystemError, ToolforgeError
from toolforge.core.models.config import ToolforgeConfig
from toolforge.core.models.manifest import Manifest
from toolforge.core.models.registration import RegistrationRecord, RegistrationStatus
from toolforge.core.models.result import GenerationResult
from toolforge.core.models.tool import ToolMetadata
from toolforge.core.observability.reporter import LoggingReporter, Reporter
from toolforge.core.persistence.registration_cache import RegistrationCache
from toolforge.core.reliability.backoff import SleepFn
from toolforge.core.services.aggregators import PatchOutcome, PatchStatus, patch_all
from toolforge.core.services.conflicts import ConflictPolicy
from toolforge.core.services.generator import generate_tool_files
from toolforge.core.services.manifest import build_manifest
from toolforge.core.services.registry_client import RegistryClient
from toolforge.core.services.templates import TemplateEngine
from toolforge.core.services.validation import validate_metadata

logger = logging.getLogger(__name__)


@dataclass
class RegistrationOptions:
    """How to reach the registry for one run.

    ``email``/``password``/``api_url`` override the configured values.
    """

    email: str | None = None
    password: str | None = None
    api_url: str | None = None
    transport: httpx.AsyncBaseTransport | None = None
    sleep: SleepFn = asyncio.sleep


@dataclass
class CreateToolResult:
    """Outcome of one create-tool run."""

    metadata: ToolMetadata | None = None
    manifest: Manifest | None = None
    generation: GenerationResult | None = None
    patches: list[PatchOutcome] = field(default_factory=list)
    registration: RegistrationRecord | None = None
    error: str | None = None
    error_kind: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None and self.generation is not None and self.generation.success

    @property
    def registered(self) -> bool:
        return self.registration is not None and self.registration.status == "success"

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        result: dict[str, Any] = {"success": self.success}
        if self.error:
            result["error"] = self.error
            result["error_kind"] = self.error_kind
        if self.metadata:
            result["tool_id"] = self.metadata.identifier
            result["tool_name"] = self.metadata.display_name
        if self.generation:
            result["generation"] = self.generation.to_dict()
        if self.patches:
            result["aggregators"] = [
                {"target": p.target, "path": str(p.path), "status": p.status.value, "message": p.message}
                for p in self.patches
            ]
        if self.registration:
            result["registration"] = self.registration.model_dump(mode="json")
        return result

    def fail(self, error: ToolforgeError) -> CreateToolResult:
        self.error = str(error)
        self.error_kind = error.kind.value
        return self


async def create_tool(
    raw: Mapping[str, Any],
    root: Path,
    config: ToolforgeConfig | None = None,
    policy: ConflictPolicy = ConflictPolicy.ABORT,
    register: bool = False,
    registration: RegistrationOptions | None = None,
    fs: FileSystem | None = None,
    engine: TemplateEngine | None = None,
    reporter: Reporter | None = None,
    cache: RegistrationCache | None = None,
) -> CreateToolResult:
    """Scaffold a tool into the workspace at ``root``.

    Args:
        raw: Unvalidated metadata (CLI options, JSON file, ...).
        root: Workspace root; every generated path stays inside it.
        config: Loaded configuration (registry settings, cache path).
        policy: What to do with existing files.
        register: Whether to register the tool after generation.
        registration: Per-run registry overrides.
        fs: File-system port (default: the local disk).
        engine: Template engine (default: bundled templates or
            ``config.templates_dir``).
        reporter: Progress sink.
        cache: Registration cache (default: ``config.cache_file``).

    Returns:
        CreateToolResult; never raises for expected failures.
    """
    config = config or ToolforgeConfig()
    reporter = reporter or LoggingReporter()
    fs = fs or LocalFileSystem()
    engine = engine or TemplateEngine(config.templates_dir)
    cache = cache or RegistrationCache(config.cache_file)
    result = CreateToolResult()

    # ── 1. Validate ──────────────────────────────────────────────
    reporter.on_stage("Validating metadata")
    try:
        metadata = validate_metadata(raw)
        result.metadata = metadata
        manifest = build_manifest(metadata, root)
        result.manifest = manifest
    except ToolforgeError as e:
        reporter.on_error(str(e))
        return result.fail(e)

    # ── 2. Generate ──────────────────────────────────────────────
    generation = await generate_tool_files(
        metadata, root, fs,
        policy=policy,
        engine=engine,
        reporter=reporter,
        manifest=manifest,
    )
    result.generation = generation
    if not generation.success:
        result.error = generation.errors[0] if generation.errors else "Generation failed"
        result.error_kind = generation.error_kind
        return result

    # ── 3. Aggregators ───────────────────────────────────────────
    result.patches = await patch_all(metadata, manifest, fs, reporter)
    failed = [p for p in result.patches if p.status is PatchStatus.FAILED]
    if failed:
        reporter.on_warning(
            f"{len(failed)} index file(s) need manual wiring: "
            + ", ".join(p.target for p in failed)
        )

    # ── 4. Registration ──────────────────────────────────────────
    if register:
        result.registration = await register_tool(
            metadata, config, registration, reporter=reporter, cache=cache,
        )
    else:
        result.registration = _record(cache, reporter, metadata.identifier, "skipped")

    logger.info("Created tool %s under %s", metadata.identifier, root)
    return result


async def register_tool(
    metadata: ToolMetadata | Mapping[str, Any],
    config: ToolforgeConfig | None = None,
    options: RegistrationOptions | None = None,
    reporter: Reporter | None = None,
    cache: RegistrationCache | None = None,
) -> RegistrationRecord:
    """Authenticate, register one tool and cache the outcome.

    Registry errors are caught: the returned record has status
    ``failed`` and ``error`` set.
    """
    config = config or ToolforgeConfig()
    options = options or RegistrationOptions()
    reporter = reporter or LoggingReporter()
    cache = cache or RegistrationCache(config.cache_file)
    tool_id = _tool_id(metadata)

    reporter.on_stage("Registering tool with the registry")
    try:
        async with RegistryClient(
            base_url=options.api_url,
            settings=config.registry,
            transport=options.transport,
            sleep=options.sleep,
            reporter=reporter,
        ) as client:
            client.validate(metadata)
            session = await client.authenticate(options.email, options.password)
            registered = await client.register(metadata, session)
    except ToolforgeError as e:
        reporter.on_warning(f"Registration failed for {tool_id}: {e}")
        return _record(cache, reporter, tool_id, "failed", error=str(e))
    except Exception as e:
        logger.debug("Unexpected registry failure for %s", tool_id, exc_info=True)
        error = f"Registration failed: {type(e).__name__}: {e}"
        reporter.on_warning(f"Registration failed for {tool_id}: {error}")
        return _record(cache, reporter, tool_id, "failed", error=error)

    reporter.on_info(f"Registered {registered.tool_id}")
    return _record(cache, reporter, tool_id, "success", details=registered.model_dump())


# ── Helpers ─────────────────────────────────────────────────────


def _record(
    cache: RegistrationCache,
    reporter: Reporter,
    tool_id: str,
    status: RegistrationStatus,
    details: dict[str, Any] | None = None,
    error: str | None = None,
) -> RegistrationRecord:
    """Cache a registration outcome; a cache write failure is only a warning."""
    try:
        return cache.save(tool_id, status, details=details, error=error)
    except FileSystemError as e:
        reporter.on_warning(f"Could not update registration cache: {e}")
        return RegistrationRecord(tool_id=tool_id, status=status, details=details, error=error)


def _tool_id(metadata: ToolMetadata | Mapping[str, Any]) -> str:
    if isinstance(metadata, ToolMetadata):
        return metadata.identifier
    for key in ("toolId", "identifier", "tool_id", "id"):
        if metadata.get(key):
            return str(metadata[key])
    return ""

