"""
Aggregator patcher — wire a generated tool into existing index files.

Each target is a barrel or router file in the workspace that must gain
one line per tool:

    apps/api/src/controllers/index.ts    export { XController } ...
    apps/api/src/services/index.ts       export { XService } ...
    apps/api/src/repositories/index.ts   export { XRepository } ...
    apps/api/src/validators/index.ts     export { validateXCreate, ... } ...
    apps/api/src/routes/index.ts         export { xRoutes } ...
    apps/api/src/server.ts               import + this.app.use(...)
    packages/shared/src/index.ts         export * from './types/x.types';

Patching is idempotent: a statement already present verbatim is left
alone, so a second run changes nothing. Targets are independent; a
failure on one is reported as a warning and the rest still run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path, PurePosixPath

from toolforge.adapters.filesystem import FileSystem
from toolforge.core.models.manifest import Manifest
from toolforge.core.models.tool import ToolMetadata
from toolforge.core.observability.reporter import LoggingReporter, Reporter

logger = logging.getLogger(__name__)

# Route registration goes right before this line in server.ts ...
ROUTE_SENTINEL = "this.app.use('/api/tools', toolRegistryRoutes);"
# ... or, failing that, before this comment.
ROUTE_FALLBACK_ANCHOR = "// API root endpoint"


class PatchStatus(StrEnum):
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class PatchOutcome:
    """Result of patching one aggregator file."""

    target: str
    path: Path
    status: PatchStatus
    message: str = ""


class AnchorNotFoundError(ValueError):
    """Neither the route sentinel nor the fallback anchor exists."""


@dataclass(frozen=True)
class AggregatorTarget:
    """One aggregator file and how to extend it."""

    name: str
    path: PurePosixPath
    requires_role: str
    statement: Callable[[ToolMetadata], str]
    kind: str = "append"   # "append" or "server"


AGGREGATOR_TARGETS: tuple[AggregatorTarget, ...] = (
    AggregatorTarget(
        name="controllers",
        path=PurePosixPath("apps/api/src/controllers/index.ts"),
        requires_role="backend.controller",
        statement=lambda m: f"export {{ {m.class_name}Controller }} from './{m.identifier}.controller';",
    ),
    AggregatorTarget(
        name="services",
        path=PurePosixPath("apps/api/src/services/index.ts"),
        requires_role="backend.service",
        statement=lambda m: f"export {{ {m.class_name}Service }} from './{m.identifier}.service';",
    ),
    AggregatorTarget(
        name="repositories",
        path=PurePosixPath("apps/api/src/repositories/index.ts"),
        requires_role="backend.repository",
        statement=lambda m: f"export {{ {m.class_name}Repository }} from './{m.identifier}.repository';",
    ),
    AggregatorTarget(
        name="validators",
        path=PurePosixPath("apps/api/src/validators/index.ts"),
        requires_role="backend.validator",
        statement=lambda m: (
            f"export {{ validate{m.class_name}Create, validate{m.class_name}Update }} "
            f"from './{m.identifier}.validator';"
        ),
    ),
    AggregatorTarget(
        name="routes",
        path=PurePosixPath("apps/api/src/routes/index.ts"),
        requires_role="backend.routes",
        statement=lambda m: f"export {{ {m.member_name}Routes }} from './{m.identifier}.routes';",
    ),
    AggregatorTarget(
        name="server",
        path=PurePosixPath("apps/api/src/server.ts"),
        requires_role="backend.routes",
        statement=lambda m: f"import {{ {m.member_name}Routes }} from './routes/{m.identifier}.routes';",
        kind="server",
    ),
    AggregatorTarget(
        name="shared",
        path=PurePosixPath("packages/shared/src/index.ts"),
        requires_role="shared.types",
        statement=lambda m: f"export * from './types/{m.identifier}.types';",
    ),
)


def route_registration(metadata: ToolMetadata) -> str:
    """The server.ts usage line (without indentation)."""
    return f"this.app.use('{metadata.api_base_path}', {metadata.member_name}Routes);"


# ── Text transforms (pure) ──────────────────────────────────────


def has_statement(content: str, statement: str) -> bool:
    return statement in content


def append_statement(content: str, statement: str) -> str:
    """Append a line after existing content, keeping one trailing newline."""
    trimmed = content.rstrip()
    if not trimmed:
        return f"{statement}\n"
    return f"{trimmed}\n{statement}\n"


def insert_import_alphabetically(content: str, new_import: str) -> str:
    """Insert an import line in sorted position among existing imports.

    The new line goes before the first import that sorts after it;
    otherwise after the end of the last import statement (multi-line
    imports included); with no imports at all, at the top of the file.
    """
    lines = content.split("\n")
    import_starts = [i for i, line in enumerate(lines) if line.strip().startswith("import ")]

    if not import_starts:
        return f"{new_import}\n{content}"

    for i in import_starts:
        if new_import < lines[i].strip():
            lines.insert(i, new_import)
            return "\n".join(lines)

    insert_at = _statement_end(lines, import_starts[-1]) + 1
    lines.insert(insert_at, new_import)
    return "\n".join(lines)


def insert_before_anchor(content: str, line: str) -> str:
    """Insert ``line`` before the route sentinel, else before the fallback anchor.

    The inserted line copies the anchor's indentation.

    Raises:
        AnchorNotFoundError: if neither anchor is present.
    """
    lines = content.split("\n")
    for anchor, gap in ((ROUTE_SENTINEL, False), (ROUTE_FALLBACK_ANCHOR, True)):
        for i, existing in enumerate(lines):
            if existing.strip() == anchor:
                indent = existing[: len(existing) - len(existing.lstrip())]
                new_lines = [f"{indent}{line}"] + ([""] if gap else [])
                lines[i:i] = new_lines
                return "\n".join(lines)
    raise AnchorNotFoundError(
        f"no route anchor found (expected '{ROUTE_SENTINEL}' or '{ROUTE_FALLBACK_ANCHOR}')"
    )


def _statement_end(lines: list[str], start: int) -> int:
    """Index of the line that closes the import statement starting at ``start``."""
    for i in range(start, len(lines)):
        stripped = lines[i].rstrip()
        if stripped.endswith(";") or " from " in stripped or stripped.startswith("import '"):
            return i
    return start


# ── File patching ───────────────────────────────────────────────


async def read_or_empty(fs: FileSystem, path: Path) -> str:
    """Read a file, treating a missing file as empty content."""
    if not await fs.exists(path):
        return ""
    return await fs.read(path)


async def patch_append(fs: FileSystem, path: Path, statement: str) -> PatchStatus:
    content = await read_or_empty(fs, path)
    if has_statement(content, statement):
        return PatchStatus.UNCHANGED
    await fs.write(path, append_statement(content, statement))
    return PatchStatus.UPDATED


async def patch_server(fs: FileSystem, path: Path, import_line: str, route_line: str) -> PatchStatus:
    content = await read_or_empty(fs, path)
    updated = content
    if not has_statement(updated, route_line):
        updated = insert_before_anchor(updated, route_line)
    if not has_statement(updated, import_line):
        updated = insert_import_alphabetically(updated, import_line)
    if updated == content:
        return PatchStatus.UNCHANGED
    await fs.write(path, updated)
    return PatchStatus.UPDATED


async def patch_all(
    metadata: ToolMetadata,
    manifest: Manifest,
    fs: FileSystem,
    reporter: Reporter | None = None,
    targets: tuple[AggregatorTarget, ...] = AGGREGATOR_TARGETS,
) -> list[PatchOutcome]:
    """Patch every aggregator target for a tool.

    Never raises for a single target: failures become ``FAILED``
    outcomes plus a reporter warning so the operator can wire the
    file by hand.
    """
    reporter = reporter or LoggingReporter()
    reporter.on_stage("Updating index files")
    outcomes: list[PatchOutcome] = []

    for target in targets:
        path = manifest.root / target.path
        if manifest.path_for(target.requires_role) is None:
            outcomes.append(PatchOutcome(target.name, path, PatchStatus.SKIPPED,
                                         f"{target.requires_role} not generated"))
            continue

        statement = target.statement(metadata)
        try:
            if target.kind == "server":
                status = await patch_server(fs, path, statement, route_registration(metadata))
            else:
                status = await patch_append(fs, path, statement)
        except Exception as e:
            logger.debug("Patching %s failed", path, exc_info=True)
            message = f"Failed to update {target.path}: {e}"
            reporter.on_warning(message)
            outcomes.append(PatchOutcome(target.name, path, PatchStatus.FAILED, str(e)))
            continue

        if status is PatchStatus.UPDATED:
            reporter.on_info(f"Updated {target.path}")
        else:
            reporter.on_info(f"{target.path} already wired")
        outcomes.append(PatchOutcome(target.name, path, status))

    logger.debug(
        "Aggregator patch for %s: %s",
        metadata.identifier,
        {o.target: o.status.value for o in outcomes},
    )
    return outcomes
