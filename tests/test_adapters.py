"""
Tests for the file-system port — local disk and in-memory backends.
"""

import os
from pathlib import Path

import pytest

from toolforge.adapters.filesystem import FILE_MODE, LocalFileSystem
from toolforge.adapters.memory import MemoryFileSystem
from toolforge.core.errors import ErrorKind, FileSystemError


class TestLocalFileSystem:
    async def test_write_creates_parents(self, tmp_path: Path):
        fs = LocalFileSystem()
        target = tmp_path / "a" / "b" / "file.ts"
        await fs.write(target, "export {};\n")

        assert await fs.exists(target)
        assert await fs.read(target) == "export {};\n"
        assert await fs.size(target) == len("export {};\n")

    async def test_mkdir_is_idempotent(self, tmp_path: Path):
        fs = LocalFileSystem()
        await fs.mkdir(tmp_path / "x" / "y")
        await fs.mkdir(tmp_path / "x" / "y")
        assert (tmp_path / "x" / "y").is_dir()

    @pytest.mark.skipif(os.name == "nt", reason="POSIX modes only")
    async def test_set_permissions(self, tmp_path: Path):
        fs = LocalFileSystem()
        target = tmp_path / "file.ts"
        await fs.write(target, "")
        await fs.set_permissions(target, FILE_MODE)
        assert target.stat().st_mode & 0o777 == FILE_MODE

    async def test_read_missing_raises(self, tmp_path: Path):
        with pytest.raises(FileSystemError) as exc:
            await LocalFileSystem().read(tmp_path / "missing.ts")
        assert exc.value.kind is ErrorKind.FILE_SYSTEM
        assert exc.value.operation == "read file"
        assert isinstance(exc.value.cause, FileNotFoundError)

    async def test_read_undecodable_raises(self, tmp_path: Path):
        target = tmp_path / "index.ts"
        target.write_bytes(b"// caf\xe9\n")
        with pytest.raises(FileSystemError) as exc:
            await LocalFileSystem().read(target)
        assert exc.value.operation == "read file"
        assert isinstance(exc.value.cause, UnicodeDecodeError)

    async def test_write_over_directory_raises(self, tmp_path: Path):
        (tmp_path / "dir").mkdir()
        with pytest.raises(FileSystemError, match="Failed to write file"):
            await LocalFileSystem().write(tmp_path / "dir", "x")


class TestMemoryFileSystem:
    async def test_write_and_read(self):
        fs = MemoryFileSystem()
        await fs.write(Path("/ws/a/b.ts"), "content")
        assert await fs.read(Path("/ws/a/b.ts")) == "content"
        assert await fs.exists(Path("/ws/a"))
        assert fs.operations == [("write", Path("/ws/a/b.ts")), ("read", Path("/ws/a/b.ts"))]

    async def test_seeded_files(self):
        fs = MemoryFileSystem({"/ws/index.ts": "export * from './x';\n"})
        assert await fs.exists(Path("/ws/index.ts"))
        assert await fs.size(Path("/ws/index.ts")) == len("export * from './x';\n")

    async def test_configured_failure(self):
        fs = MemoryFileSystem()
        fs.set_failure(Path("/ws/locked.ts"))
        with pytest.raises(FileSystemError, match="Permission denied"):
            await fs.write(Path("/ws/locked.ts"), "x")
        assert not await fs.exists(Path("/ws/locked.ts"))

    async def test_mkdir_over_file_raises(self):
        fs = MemoryFileSystem({"/ws/file": ""})
        with pytest.raises(FileSystemError, match="create directory"):
            await fs.mkdir(Path("/ws/file"))

    async def test_chmod_missing_raises(self):
        with pytest.raises(FileSystemError):
            await MemoryFileSystem().set_permissions(Path("/nope"), FILE_MODE)
