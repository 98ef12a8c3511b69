"""Adapters — bindings between the pipeline and the outside world.

Public re-exports for convenient access.
"""

from toolforge.adapters.filesystem import DIR_MODE, FILE_MODE, FileSystem, LocalFileSystem
from toolforge.adapters.memory import MemoryFileSystem

__all__ = [
    "DIR_MODE",
    "FILE_MODE",
    "FileSystem",
    "LocalFileSystem",
    "MemoryFileSystem",
]
