"""
Manifest builder — metadata in, target paths out.

Pure function of (metadata, root): no I/O, no timestamps, no random
components, so two calls with equal input produce equal manifests.

Layout (relative to the workspace root):

    apps/web/src/app/features/tools/{id}/     frontend (component feature)
    apps/api/src/{controllers,services,routes,validators}/{id}.*.ts
    apps/api/src/repositories/{id}.repository.ts   (database feature)
    apps/api/tests/integration/{id}.test.ts        (integration_tests feature)
    packages/shared/src/types/{id}.types.ts        (always)
    apps/web/src/app/features/tools/{id}/README.md (always)
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath

from toolforge.core.errors import PathOutsideRootError
from toolforge.core.models.manifest import Manifest, ManifestArea, ManifestEntry
from toolforge.core.models.tool import Feature, ToolMetadata

FRONTEND_TOOLS_DIR = PurePosixPath("apps/web/src/app/features/tools")
BACKEND_SRC_DIR = PurePosixPath("apps/api/src")
BACKEND_TESTS_DIR = PurePosixPath("apps/api/tests/integration")
SHARED_TYPES_DIR = PurePosixPath("packages/shared/src/types")


def build_manifest(metadata: ToolMetadata, root: Path) -> Manifest:
    """Compute every file the tool needs, grouped by area.

    Args:
        metadata: Validated tool metadata.
        root: Workspace root (absolute paths are derived from it).

    Raises:
        PathOutsideRootError: if any computed path leaves ``root``.
    """
    root = Path(root).resolve()
    tool_id = metadata.identifier
    frontend_base = root / FRONTEND_TOOLS_DIR / tool_id

    def at(base: Path, name: str, role: str) -> ManifestEntry:
        return ManifestEntry(role=role, path=_contained(base / name, root))

    # ── Frontend ─────────────────────────────────────────────────
    frontend: list[ManifestEntry] = []
    if metadata.has(Feature.COMPONENT):
        frontend += [
            at(frontend_base, f"{tool_id}.component.ts", "frontend.component"),
            at(frontend_base, f"{tool_id}.component.html", "frontend.component_html"),
            at(frontend_base, f"{tool_id}.component.scss", "frontend.component_css"),
            at(frontend_base, f"{tool_id}.routes.ts", "frontend.routes"),
            at(frontend_base, "menu-item.ts", "frontend.menu_item"),
            at(frontend_base, "INTEGRATION.md", "frontend.integration"),
        ]
    if metadata.has(Feature.SERVICE):
        frontend.append(at(frontend_base, f"{tool_id}.service.ts", "frontend.service"))
    if metadata.has(Feature.TESTS):
        if metadata.has(Feature.COMPONENT):
            frontend.append(
                at(frontend_base, f"{tool_id}.component.spec.ts", "frontend.component_spec")
            )
        if metadata.has(Feature.SERVICE):
            frontend.append(
                at(frontend_base, f"{tool_id}.service.spec.ts", "frontend.service_spec")
            )

    # ── Backend ──────────────────────────────────────────────────
    backend_src = root / BACKEND_SRC_DIR
    backend: list[ManifestEntry] = []
    if metadata.has(Feature.BACKEND):
        backend += [
            at(backend_src / "controllers", f"{tool_id}.controller.ts", "backend.controller"),
            at(backend_src / "services", f"{tool_id}.service.ts", "backend.service"),
            at(backend_src / "routes", f"{tool_id}.routes.ts", "backend.routes"),
            at(backend_src / "validators", f"{tool_id}.validator.ts", "backend.validator"),
        ]
    if metadata.has(Feature.DATABASE):
        backend.append(
            at(backend_src / "repositories", f"{tool_id}.repository.ts", "backend.repository")
        )

    # ── Tests ────────────────────────────────────────────────────
    tests: list[ManifestEntry] = []
    if metadata.has(Feature.INTEGRATION_TESTS):
        tests.append(at(root / BACKEND_TESTS_DIR, f"{tool_id}.test.ts", "tests.integration"))

    # ── Shared + config (always) ─────────────────────────────────
    shared = [at(root / SHARED_TYPES_DIR, f"{tool_id}.types.ts", "shared.types")]
    config = [at(frontend_base, "README.md", "config.readme")]

    has_frontend = metadata.has(Feature.COMPONENT)
    return Manifest(
        tool_id=tool_id,
        root=root,
        frontend=ManifestArea(
            name="frontend",
            base=_contained(frontend_base, root) if has_frontend else None,
            files=tuple(frontend),
        ),
        backend=ManifestArea(name="backend", files=tuple(backend)),
        shared=ManifestArea(name="shared", files=tuple(shared)),
        config=ManifestArea(name="config", files=tuple(config)),
        tests=ManifestArea(name="tests", files=tuple(tests)),
    )


def _contained(path: Path, root: Path) -> Path:
    """Normalize ``path`` and make sure it stays inside ``root``."""
    # collapses any ".." an identifier might carry
    normalized = Path(*path.parts).resolve()
    if normalized != root and root not in normalized.parents:
        raise PathOutsideRootError(normalized, root)
    return normalized
