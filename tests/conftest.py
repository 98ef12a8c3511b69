"""
Shared test fixtures and configuration.
"""

import textwrap
from pathlib import Path

import pytest

from toolforge.adapters.memory import MemoryFileSystem
from toolforge.core.models.tool import Feature, ToolMetadata

SERVER_TS = textwrap.dedent("""\
    import express from 'express';
    import { authRoutes } from './routes/auth.routes';
    import { toolRegistryRoutes } from './routes/tool-registry.routes';

    class Server {
      private setupRoutes(): void {
        this.app.use('/api/auth', authRoutes);
        this.app.use('/api/tools', toolRegistryRoutes);

        // API root endpoint
        this.app.get('/api', (_req, res) => res.json({ ok: true }));
      }
    }
""")


def make_metadata(
    identifier: str = "inventory-tracker",
    features: tuple[Feature, ...] = (Feature.COMPONENT, Feature.SERVICE, Feature.BACKEND),
    **overrides,
) -> ToolMetadata:
    values = {
        "identifier": identifier,
        "display_name": "Inventory Tracker",
        "description": "Track stock levels across warehouses",
        "icon": "pi-box",
        "version": "1.0.0",
        "permissions": ("inventory:read",),
        "features": frozenset(features),
    }
    values.update(overrides)
    return ToolMetadata(**values)


def raw_metadata(**overrides) -> dict:
    """Unvalidated metadata as a CLI or metadata file would supply it."""
    values = {
        "toolId": "inventory-tracker",
        "toolName": "Inventory Tracker",
        "description": "Track stock levels across warehouses",
        "icon": "pi-box",
        "version": "1.0.0",
        "permissions": ["inventory:read"],
        "features": ["component", "service", "backend"],
    }
    values.update(overrides)
    return values


@pytest.fixture
def metadata() -> ToolMetadata:
    return make_metadata()


@pytest.fixture
def root(tmp_path: Path) -> Path:
    """An empty workspace root."""
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    return workspace.resolve()


@pytest.fixture
def memory_fs() -> MemoryFileSystem:
    return MemoryFileSystem()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A workspace root with the aggregator files a real platform has."""
    root = (tmp_path / "platform").resolve()
    api = root / "apps" / "api" / "src"
    for name in ("controllers", "services", "repositories", "validators", "routes"):
        (api / name).mkdir(parents=True)
        (api / name / "index.ts").write_text("export { AuthController } from './auth.controller';\n")
    (api / "server.ts").write_text(SERVER_TS)
    shared = root / "packages" / "shared" / "src"
    shared.mkdir(parents=True)
    (shared / "index.ts").write_text("export * from './types/user.types';\n")
    return root
