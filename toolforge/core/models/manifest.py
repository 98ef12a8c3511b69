"""
Manifest model — the set of paths one scaffolding run will create.

A manifest is pure data: absolute paths grouped by area, no content.
It is built fresh per invocation by ``services.manifest.build_manifest``
and never persisted.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class ManifestEntry(BaseModel):
    """One target file and the template role that renders it."""

    model_config = ConfigDict(frozen=True)

    role: str       # e.g. "frontend.component", "backend.controller"
    path: Path


class ManifestArea(BaseModel):
    """Files belonging to one area (frontend, backend, shared, config, tests)."""

    model_config = ConfigDict(frozen=True)

    name: str
    base: Path | None = None
    files: tuple[ManifestEntry, ...] = ()

    def get(self, role: str) -> Path | None:
        for entry in self.files:
            if entry.role == role:
                return entry.path
        return None


class Manifest(BaseModel):
    """Target file and directory paths for a tool, partitioned by area."""

    model_config = ConfigDict(frozen=True)

    tool_id: str
    root: Path
    frontend: ManifestArea = Field(default_factory=lambda: ManifestArea(name="frontend"))
    backend: ManifestArea = Field(default_factory=lambda: ManifestArea(name="backend"))
    shared: ManifestArea = Field(default_factory=lambda: ManifestArea(name="shared"))
    config: ManifestArea = Field(default_factory=lambda: ManifestArea(name="config"))
    tests: ManifestArea = Field(default_factory=lambda: ManifestArea(name="tests"))

    @property
    def areas(self) -> tuple[ManifestArea, ...]:
        return (self.frontend, self.backend, self.shared, self.config, self.tests)

    def entries(self) -> list[ManifestEntry]:
        """All file entries across areas, in area order."""
        return [entry for area in self.areas for entry in area.files]

    def all_files(self) -> list[Path]:
        return [entry.path for entry in self.entries()]

    def unique_dirs(self) -> list[Path]:
        """Parent directories of every file, deduplicated, shallowest first."""
        seen: dict[Path, None] = {}
        if self.frontend.base is not None:
            seen[self.frontend.base] = None
        for path in self.all_files():
            seen.setdefault(path.parent, None)
        return sorted(seen, key=lambda p: (len(p.parts), str(p)))

    def path_for(self, role: str) -> Path | None:
        for area in self.areas:
            found = area.get(role)
            if found is not None:
                return found
        return None

    def to_dict(self) -> dict:
        """JSON-friendly view with paths relative to the root."""
        def rel(p: Path) -> str:
            return p.relative_to(self.root).as_posix()

        return {
            "tool_id": self.tool_id,
            "root": str(self.root),
            "areas": {
                area.name: {
                    "base": rel(area.base) if area.base else None,
                    "files": {e.role: rel(e.path) for e in area.files},
                }
                for area in self.areas
                if area.files or area.base
            },
        }
