"""
In-memory file system — test double for the FileSystem port.

Behaves like LocalFileSystem (implicit parent creation, overwrite on
write, FileSystemError on failure) without touching disk. Individual
paths can be configured to fail so error propagation is testable.
"""

from __future__ import annotations

from pathlib import Path

from toolforge.adapters.filesystem import FileSystem
from toolforge.core.errors import FileSystemError


class MemoryFileSystem(FileSystem):
    """Universal in-memory file system for tests and dry runs."""

    def __init__(self, files: dict[Path, str] | None = None):
        self.files: dict[Path, str] = {}
        self.dirs: set[Path] = set()
        self.modes: dict[Path, int] = {}
        self._failures: dict[Path, OSError] = {}
        self._ops: list[tuple[str, Path]] = []
        for path, content in (files or {}).items():
            self._store(Path(path), content)

    @property
    def operations(self) -> list[tuple[str, Path]]:
        """Every (operation, path) call received, in order."""
        return self._ops

    def set_failure(self, path: Path, error: OSError | None = None) -> None:
        """Make any mutating operation on ``path`` fail."""
        self._failures[Path(path)] = error or PermissionError(13, "Permission denied")

    async def mkdir(self, path: Path) -> None:
        path = Path(path)
        self._record("mkdir", path)
        self._check("create directory", path)
        if path in self.files:
            raise FileSystemError("create directory", path, FileExistsError(17, "File exists"))
        self._add_dirs(path)

    async def write(self, path: Path, content: str) -> None:
        path = Path(path)
        self._record("write", path)
        self._check("write file", path)
        if path in self.dirs:
            raise FileSystemError("write file", path, IsADirectoryError(21, "Is a directory"))
        self._store(path, content)

    async def read(self, path: Path) -> str:
        path = Path(path)
        self._record("read", path)
        if path not in self.files:
            raise FileSystemError("read file", path, FileNotFoundError(2, "No such file"))
        return self.files[path]

    async def exists(self, path: Path) -> bool:
        path = Path(path)
        return path in self.files or path in self.dirs

    async def set_permissions(self, path: Path, mode: int) -> None:
        path = Path(path)
        self._record("chmod", path)
        if path not in self.files and path not in self.dirs:
            raise FileSystemError("set permissions on", path, FileNotFoundError(2, "No such file"))
        self.modes[path] = mode

    async def size(self, path: Path) -> int:
        path = Path(path)
        if path not in self.files:
            raise FileSystemError("stat", path, FileNotFoundError(2, "No such file"))
        return len(self.files[path].encode("utf-8"))

    # ── Internal ─────────────────────────────────────────────────

    def _store(self, path: Path, content: str) -> None:
        self._add_dirs(path.parent)
        self.files[path] = content

    def _add_dirs(self, path: Path) -> None:
        for parent in (path, *path.parents):
            self.dirs.add(parent)

    def _record(self, op: str, path: Path) -> None:
        self._ops.append((op, path))

    def _check(self, operation: str, path: Path) -> None:
        if path in self._failures:
            raise FileSystemError(operation, path, self._failures[path])
