"""
File-system port — the only way the pipeline touches disk.

The generator, conflict scanner and aggregator patcher talk to a
``FileSystem`` instead of calling pathlib directly, so the whole
pipeline runs against ``MemoryFileSystem`` in tests.

All methods are coroutines and are awaited one at a time by callers:
a directory exists before files are written into it, and a file's
permissions are set right after its content lands.

Every failure is raised as ``FileSystemError`` carrying the operation,
the offending path and the underlying cause.
"""

from __future__ import annotations

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path

from toolforge.core.errors import FileSystemError

logger = logging.getLogger(__name__)

DIR_MODE = 0o755    # rwxr-xr-x
FILE_MODE = 0o644   # rw-r--r--


class FileSystem(ABC):
    """Abstract file-system contract.

    To add a backend:
        1. Subclass FileSystem
        2. Implement every abstract coroutine
        3. Raise FileSystemError (never bare OSError) on failure
    """

    @abstractmethod
    async def mkdir(self, path: Path) -> None:
        """Create a directory and its parents. Succeeds if it already exists."""

    @abstractmethod
    async def write(self, path: Path, content: str) -> None:
        """Write text, creating parent directories and overwriting content."""

    @abstractmethod
    async def read(self, path: Path) -> str:
        """Read text. Raises FileSystemError (cause FileNotFoundError) if missing."""

    @abstractmethod
    async def exists(self, path: Path) -> bool:
        """Whether a file or directory exists at ``path``."""

    @abstractmethod
    async def set_permissions(self, path: Path, mode: int) -> None:
        """Apply a POSIX mode. No-op where the platform has no permission model."""

    @abstractmethod
    async def size(self, path: Path) -> int:
        """Size of a file in bytes."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"


class LocalFileSystem(FileSystem):
    """FileSystem backed by the real disk.

    Blocking pathlib calls run in a worker thread via ``asyncio.to_thread``.
    """

    async def mkdir(self, path: Path) -> None:
        await self._call("create directory", path, _mkdir, path)

    async def write(self, path: Path, content: str) -> None:
        await self._call("write file", path, _write, path, content)
        logger.debug("Wrote %s (%d chars)", path, len(content))

    async def read(self, path: Path) -> str:
        return await self._call("read file", path, Path.read_text, path, "utf-8")

    async def exists(self, path: Path) -> bool:
        return await self._call("check", path, Path.exists, path)

    async def set_permissions(self, path: Path, mode: int) -> None:
        if os.name == "nt":
            return
        await self._call("set permissions on", path, os.chmod, path, mode)

    async def size(self, path: Path) -> int:
        stat = await self._call("stat", path, os.stat, path)
        return stat.st_size

    @staticmethod
    async def _call(operation: str, path: Path, func, *args):  # type: ignore[no-untyped-def]
        try:
            return await asyncio.to_thread(func, *args)
        except (OSError, UnicodeDecodeError) as e:
            raise FileSystemError(operation, path, e) from e


def _mkdir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
