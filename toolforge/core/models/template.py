"""
Rendered file model — a manifest entry paired with its content.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel


class RenderedFile(BaseModel):
    """A file produced by the render phase, ready for the writer.

    Attributes:
        role:    Template role from the manifest (e.g. "backend.service").
        path:    Absolute target path.
        content: Full file content.
    """

    role: str
    path: Path
    content: str
