"""
Generation result — the immutable report of one scaffolding run.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict


class GenerationResult(BaseModel):
    """Outcome of local file generation.

    Accumulated by the generator while it runs and handed to the
    caller frozen.
    """

    model_config = ConfigDict(frozen=True)

    success: bool = False
    files_created: tuple[Path, ...] = ()
    directories_created: tuple[Path, ...] = ()
    files_skipped: tuple[Path, ...] = ()
    conflicts: tuple[Path, ...] = ()
    errors: tuple[str, ...] = ()
    error_kind: str | None = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "files_created": [str(p) for p in self.files_created],
            "directories_created": [str(p) for p in self.directories_created],
            "files_skipped": [str(p) for p in self.files_skipped],
            "conflicts": [str(p) for p in self.conflicts],
            "errors": list(self.errors),
            "error_kind": self.error_kind,
        }
