"""
File generator — turn validated metadata into files on disk.

Flow:
    manifest → conflict scan (policy) → render → directories → files

Everything before the directory stage is read-only, so validation,
conflict and template errors leave the tree untouched. A file-system
error during the write stages stops the run; files already written
stay where they are (no rollback).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from toolforge.adapters.filesystem import DIR_MODE, FILE_MODE, FileSystem
from toolforge.core.errors import ConflictError, ToolforgeError
from toolforge.core.models.manifest import Manifest
from toolforge.core.models.result import GenerationResult
from toolforge.core.models.tool import ToolMetadata
from toolforge.core.observability.reporter import LoggingReporter, Reporter
from toolforge.core.services.conflicts import ConflictPolicy, scan_conflicts
from toolforge.core.services.manifest import build_manifest
from toolforge.core.services.rendering import render_manifest
from toolforge.core.services.templates import TemplateEngine

logger = logging.getLogger(__name__)


@dataclass
class _Progress:
    """Mutable accumulator, frozen into a GenerationResult at the end."""

    files_created: list[Path] = field(default_factory=list)
    directories_created: list[Path] = field(default_factory=list)
    files_skipped: list[Path] = field(default_factory=list)
    conflicts: list[Path] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    error_kind: str | None = None

    def freeze(self, success: bool) -> GenerationResult:
        return GenerationResult(
            success=success,
            files_created=tuple(self.files_created),
            directories_created=tuple(self.directories_created),
            files_skipped=tuple(self.files_skipped),
            conflicts=tuple(self.conflicts),
            errors=tuple(self.errors),
            error_kind=self.error_kind,
        )


async def generate_tool_files(
    metadata: ToolMetadata,
    root: Path,
    fs: FileSystem,
    policy: ConflictPolicy = ConflictPolicy.ABORT,
    engine: TemplateEngine | None = None,
    reporter: Reporter | None = None,
    manifest: Manifest | None = None,
) -> GenerationResult:
    """Generate every file for a tool.

    Expected failures (conflicts, template errors, file-system errors)
    are captured in the returned result; ``result.errors`` holds their
    messages. Use ``generate_or_raise`` to get the exception instead.
    """
    reporter = reporter or LoggingReporter()
    progress = _Progress()
    try:
        await _generate(metadata, root, fs, policy, engine, reporter, manifest, progress)
    except ToolforgeError as e:
        progress.errors.append(str(e))
        progress.error_kind = e.kind.value
        reporter.on_error(f"Generation failed: {e}")
        return progress.freeze(success=False)
    return progress.freeze(success=True)


async def generate_or_raise(
    metadata: ToolMetadata,
    root: Path,
    fs: FileSystem,
    policy: ConflictPolicy = ConflictPolicy.ABORT,
    engine: TemplateEngine | None = None,
    reporter: Reporter | None = None,
    manifest: Manifest | None = None,
) -> GenerationResult:
    """Like ``generate_tool_files`` but raises the first ToolforgeError."""
    progress = _Progress()
    await _generate(metadata, root, fs, policy, engine, reporter or LoggingReporter(),
                    manifest, progress)
    return progress.freeze(success=True)


async def _generate(
    metadata: ToolMetadata,
    root: Path,
    fs: FileSystem,
    policy: ConflictPolicy,
    engine: TemplateEngine | None,
    reporter: Reporter,
    manifest: Manifest | None,
    progress: _Progress,
) -> None:
    manifest = manifest or build_manifest(metadata, root)

    # ── 1. Conflicts ─────────────────────────────────────────────
    existing: set[Path] = set()
    if policy is ConflictPolicy.FORCE:
        reporter.on_warning("Force mode: existing files will be overwritten")
    else:
        reporter.on_stage("Checking for conflicts")
        conflicts = await scan_conflicts(manifest, fs)
        if conflicts and policy is ConflictPolicy.ABORT:
            progress.conflicts.extend(conflicts)
            raise ConflictError(metadata.identifier, conflicts, manifest.root)
        existing = set(conflicts)
        if conflicts:
            reporter.on_warning(f"Skip mode: {len(conflicts)} existing path(s) left untouched")
        else:
            reporter.on_info("No conflicts detected")

    # ── 2. Render (no writes yet) ────────────────────────────────
    reporter.on_stage("Rendering templates")
    rendered = render_manifest(metadata, manifest, engine)

    # ── 3. Directories ───────────────────────────────────────────
    reporter.on_stage("Creating directories")
    for directory in manifest.unique_dirs():
        if await fs.exists(directory):
            continue
        await fs.mkdir(directory)
        await fs.set_permissions(directory, DIR_MODE)
        progress.directories_created.append(directory)
        reporter.on_directory_created(directory)

    # ── 4. Files ─────────────────────────────────────────────────
    reporter.on_stage("Writing files")
    for item in rendered:
        if item.path in existing:
            progress.files_skipped.append(item.path)
            reporter.on_file_skipped(item.path, "exists")
            continue

        await fs.write(item.path, item.content)
        await fs.set_permissions(item.path, FILE_MODE)
        progress.files_created.append(item.path)
        reporter.on_file_written(item.path, await fs.size(item.path))

    logger.info(
        "Generated %d file(s) in %d director(ies) for %s",
        len(progress.files_created),
        len(progress.directories_created),
        metadata.identifier,
    )
