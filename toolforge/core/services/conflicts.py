"""
Conflict scanning — compare a manifest against the live file tree.

    abort          (default) any existing path stops generation before a write
    force          no scan; every file is overwritten
    skip_existing  existing files are left alone, the rest are written
"""

from __future__ import annotations

import logging
from enum import StrEnum
from pathlib import Path

from toolforge.adapters.filesystem import FileSystem
from toolforge.core.models.manifest import Manifest

logger = logging.getLogger(__name__)


class ConflictPolicy(StrEnum):
    """What to do when target paths already exist."""

    ABORT = "abort"
    FORCE = "force"
    SKIP_EXISTING = "skip_existing"

    @classmethod
    def from_flags(cls, force: bool = False, skip_existing: bool = False) -> ConflictPolicy:
        """Map CLI flags to a policy. ``force`` wins if both are set."""
        if force:
            return cls.FORCE
        if skip_existing:
            return cls.SKIP_EXISTING
        return cls.ABORT


async def scan_conflicts(manifest: Manifest, fs: FileSystem) -> list[Path]:
    """Return every manifest path that already exists.

    Checks each file path, then the frontend base directory. Read-only.
    """
    conflicts: list[Path] = []
    for path in manifest.all_files():
        if await fs.exists(path):
            conflicts.append(path)

    base = manifest.frontend.base
    if base is not None and await fs.exists(base):
        conflicts.append(base)

    logger.debug("Conflict scan for %s: %d existing path(s)", manifest.tool_id, len(conflicts))
    return conflicts
