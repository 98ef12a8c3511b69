"""
Tests for the aggregator patcher — barrel files and server.ts wiring.
"""

from pathlib import Path

import pytest
from conftest import SERVER_TS, make_metadata

from toolforge.adapters.filesystem import LocalFileSystem
from toolforge.adapters.memory import MemoryFileSystem
from toolforge.core.models.tool import Feature
from toolforge.core.observability.reporter import RecordingReporter
from toolforge.core.services.aggregators import (
    ROUTE_SENTINEL,
    AnchorNotFoundError,
    PatchStatus,
    append_statement,
    insert_before_anchor,
    insert_import_alphabetically,
    patch_all,
)
from toolforge.core.services.manifest import build_manifest

API = "apps/api/src"


def _snapshot(root: Path) -> dict[Path, bytes]:
    return {p: p.read_bytes() for p in root.rglob("*.ts")}


class TestTextTransforms:
    def test_append_to_empty(self):
        assert append_statement("", "export * from './a';") == "export * from './a';\n"

    def test_append_normalizes_trailing_whitespace(self):
        assert append_statement("export * from './a';\n\n\n", "export * from './b';") == (
            "export * from './a';\nexport * from './b';\n"
        )

    def test_import_sorted_position(self):
        content = "import { a } from './a';\nimport { c } from './c';\n\nconst x = 1;\n"
        out = insert_import_alphabetically(content, "import { b } from './b';")
        assert out.splitlines()[:3] == [
            "import { a } from './a';",
            "import { b } from './b';",
            "import { c } from './c';",
        ]

    def test_import_after_multiline_import(self):
        content = "import {\n  a,\n  b,\n} from './ab';\n\nconst x = 1;\n"
        out = insert_import_alphabetically(content, "import { z } from './z';")
        lines = out.splitlines()
        assert lines.index("import { z } from './z';") == lines.index("} from './ab';") + 1

    def test_import_without_existing_imports(self):
        out = insert_import_alphabetically("const x = 1;\n", "import { a } from './a';")
        assert out.startswith("import { a } from './a';\nconst x = 1;")

    def test_insert_before_sentinel_keeps_indent(self):
        content = f"  {ROUTE_SENTINEL}\n"
        out = insert_before_anchor(content, "this.app.use('/api/tools/x', xRoutes);")
        assert out == f"  this.app.use('/api/tools/x', xRoutes);\n  {ROUTE_SENTINEL}\n"

    def test_fallback_anchor_adds_gap(self):
        content = "    // API root endpoint\n"
        out = insert_before_anchor(content, "route();")
        assert out == "    route();\n\n    // API root endpoint\n"

    def test_no_anchor(self):
        with pytest.raises(AnchorNotFoundError):
            insert_before_anchor("const app = express();\n", "route();")


class TestPatchAll:
    async def test_wires_every_target(self, workspace: Path):
        metadata = make_metadata(features=(Feature.COMPONENT, Feature.BACKEND, Feature.DATABASE))
        manifest = build_manifest(metadata, workspace)

        outcomes = await patch_all(metadata, manifest, LocalFileSystem())

        assert {o.target: o.status for o in outcomes} == {
            "controllers": PatchStatus.UPDATED,
            "services": PatchStatus.UPDATED,
            "repositories": PatchStatus.UPDATED,
            "validators": PatchStatus.UPDATED,
            "routes": PatchStatus.UPDATED,
            "server": PatchStatus.UPDATED,
            "shared": PatchStatus.UPDATED,
        }
        controllers = (workspace / API / "controllers/index.ts").read_text()
        assert controllers == (
            "export { AuthController } from './auth.controller';\n"
            "export { InventoryTrackerController } from './inventory-tracker.controller';\n"
        )
        shared = (workspace / "packages/shared/src/index.ts").read_text()
        assert "export * from './types/inventory-tracker.types';" in shared

    async def test_server_import_and_route(self, workspace: Path):
        metadata = make_metadata(features=(Feature.BACKEND,))
        await patch_all(metadata, build_manifest(metadata, workspace), LocalFileSystem())

        lines = (workspace / API / "server.ts").read_text().splitlines()
        assert lines[:4] == [
            "import express from 'express';",
            "import { authRoutes } from './routes/auth.routes';",
            "import { inventoryTrackerRoutes } from './routes/inventory-tracker.routes';",
            "import { toolRegistryRoutes } from './routes/tool-registry.routes';",
        ]
        route = "    this.app.use('/api/tools/inventory-tracker', inventoryTrackerRoutes);"
        assert lines[lines.index(route) + 1] == f"    {ROUTE_SENTINEL}"

    async def test_idempotent(self, workspace: Path):
        """A second run leaves every aggregator byte-identical."""
        metadata = make_metadata(features=(Feature.BACKEND, Feature.DATABASE))
        manifest = build_manifest(metadata, workspace)
        fs = LocalFileSystem()

        await patch_all(metadata, manifest, fs)
        after_first = _snapshot(workspace)
        outcomes = await patch_all(metadata, manifest, fs)

        assert _snapshot(workspace) == after_first
        assert all(o.status is PatchStatus.UNCHANGED for o in outcomes)
        server = (workspace / API / "server.ts").read_text()
        assert server.count("inventoryTrackerRoutes);") == 1
        assert server.count("import { inventoryTrackerRoutes }") == 1

    async def test_skips_targets_for_missing_roles(self, workspace: Path):
        metadata = make_metadata(features=(Feature.COMPONENT,))
        before = _snapshot(workspace)

        outcomes = await patch_all(metadata, build_manifest(metadata, workspace), LocalFileSystem())

        statuses = {o.target: o.status for o in outcomes}
        assert statuses["controllers"] is PatchStatus.SKIPPED
        assert statuses["server"] is PatchStatus.SKIPPED
        assert statuses["repositories"] is PatchStatus.SKIPPED
        assert statuses["shared"] is PatchStatus.UPDATED
        assert (workspace / API / "server.ts").read_bytes() == before[workspace / API / "server.ts"]

    async def test_creates_missing_index(self, root: Path):
        metadata = make_metadata(features=(Feature.COMPONENT,))
        await patch_all(metadata, build_manifest(metadata, root), LocalFileSystem())
        assert (root / "packages/shared/src/index.ts").read_text() == (
            "export * from './types/inventory-tracker.types';\n"
        )

    async def test_missing_anchor_fails_without_writing(self, root: Path):
        server = root / API / "server.ts"
        original = "import express from 'express';\nconst app = express();\n"
        fs = MemoryFileSystem({server: original})
        reporter = RecordingReporter()
        metadata = make_metadata(features=(Feature.BACKEND,))

        outcomes = await patch_all(metadata, build_manifest(metadata, root), fs, reporter)

        server_outcome = next(o for o in outcomes if o.target == "server")
        assert server_outcome.status is PatchStatus.FAILED
        assert fs.files[server] == original
        assert any("server.ts" in w for w in reporter.of("warning"))

    async def test_failure_is_isolated(self, root: Path):
        """One unwritable aggregator doesn't stop the others."""
        metadata = make_metadata(features=(Feature.BACKEND,))
        controllers = root / API / "controllers/index.ts"
        fs = MemoryFileSystem({root / API / "server.ts": SERVER_TS})
        fs.set_failure(controllers)
        reporter = RecordingReporter()

        outcomes = await patch_all(metadata, build_manifest(metadata, root), fs, reporter)

        statuses = {o.target: o.status for o in outcomes}
        assert statuses["controllers"] is PatchStatus.FAILED
        assert statuses["services"] is PatchStatus.UPDATED
        assert statuses["server"] is PatchStatus.UPDATED
        assert len(reporter.of("warning")) == 1

    async def test_undecodable_index_is_isolated(self, workspace: Path):
        """An index file that isn't UTF-8 becomes a FAILED outcome, not a crash."""
        metadata = make_metadata(features=(Feature.BACKEND,))
        controllers = workspace / API / "controllers/index.ts"
        controllers.write_bytes(b"// caf\xe9 controllers\nexport { AuthController } from './auth.controller';\n")
        reporter = RecordingReporter()

        outcomes = await patch_all(metadata, build_manifest(metadata, workspace), LocalFileSystem(), reporter)

        statuses = {o.target: o.status for o in outcomes}
        assert statuses["controllers"] is PatchStatus.FAILED
        assert statuses["services"] is PatchStatus.UPDATED
        assert statuses["server"] is PatchStatus.UPDATED
        assert any("controllers/index.ts" in w for w in reporter.of("warning"))
        assert controllers.read_bytes().startswith(b"// caf\xe9")
