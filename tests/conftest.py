"""Shared fixtures: in-memory SFTP server and mock SSH connections."""

import posixpath
import stat
from collections.abc import Callable
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import asyncssh
import pytest

from patchbay_mcp.models import ConnectionConfig


class FakeFile:
    """Async file handle backed by FakeSFTP storage."""

    def __init__(self, sftp: "FakeSFTP", path: str, mode: str) -> None:
        self._sftp = sftp
        self._path = path
        self._mode = mode
        self._pos = 0
        self._buffer = bytearray()

    async def __aenter__(self) -> "FakeFile":
        self._sftp._raise("open", self._path)
        if "r" in self._mode:
            if self._path in self._sftp.dirs:
                raise asyncssh.SFTPFailure(f"{self._path} is a directory")
            if self._path not in self._sftp.files:
                raise asyncssh.SFTPNoSuchFile(f"No such file: {self._path}")
        elif posixpath.dirname(self._path) not in self._sftp.dirs:
            raise asyncssh.SFTPNoSuchFile(f"No such directory: {self._path}")
        return self

    async def __aexit__(self, *exc_info: Any) -> bool:
        if "w" in self._mode and exc_info[0] is None:
            self._sftp.files[self._path] = bytes(self._buffer)
        return False

    async def read(self, size: int = -1) -> bytes:
        self._sftp._raise("read", self._path)
        data = self._sftp.files[self._path]
        end = len(data) if size < 0 else self._pos + size
        chunk = data[self._pos : end]
        self._pos += len(chunk)
        return chunk

    async def write(self, data: bytes) -> int:
        self._buffer.extend(data)
        return len(data)


class FakeSFTP:
    """In-memory stand-in for asyncssh.SFTPClient.

    ``errors`` maps ``(method, path)`` to an exception raised by that call.
    """

    def __init__(
        self,
        dirs: list[str] | None = None,
        files: dict[str, bytes] | None = None,
    ) -> None:
        self.dirs: set[str] = {"/"} | set(dirs or [])
        self.files: dict[str, bytes] = dict(files or {})
        self.mtimes: dict[str, int] = {}
        self.errors: dict[tuple[str, str], BaseException] = {}
        self.mkdir_calls: list[str] = []
        self.stat_calls: list[str] = []
        self.exited = 0

    def _raise(self, method: str, path: str) -> None:
        exc = self.errors.get((method, path))
        if exc is not None:
            raise exc

    def _attrs(self, path: str) -> SimpleNamespace:
        if path in self.dirs:
            return SimpleNamespace(
                permissions=stat.S_IFDIR | 0o755, size=4096, mtime=self.mtimes.get(path)
            )
        return SimpleNamespace(
            permissions=stat.S_IFREG | 0o644,
            size=len(self.files[path]),
            mtime=self.mtimes.get(path),
        )

    async def readdir(self, path: str) -> list[SimpleNamespace]:
        self._raise("readdir", path)
        if path not in self.dirs:
            raise asyncssh.SFTPNoSuchFile(f"No such file: {path}")
        children = sorted(
            p for p in self.dirs | set(self.files) if p != path and posixpath.dirname(p) == path
        )
        names = [
            SimpleNamespace(filename=".", attrs=self._attrs(path)),
            SimpleNamespace(filename="..", attrs=self._attrs(path)),
        ]
        names.extend(
            SimpleNamespace(filename=posixpath.basename(p), attrs=self._attrs(p))
            for p in children
        )
        return names

    async def stat(self, path: str) -> SimpleNamespace:
        self.stat_calls.append(path)
        self._raise("stat", path)
        if path not in self.dirs and path not in self.files:
            raise asyncssh.SFTPNoSuchFile(f"No such file: {path}")
        return self._attrs(path)

    def open(self, path: str, mode: str = "r") -> FakeFile:
        return FakeFile(self, path, mode)

    async def mkdir(self, path: str) -> None:
        self.mkdir_calls.append(path)
        self._raise("mkdir", path)
        if path in self.dirs or path in self.files:
            raise asyncssh.SFTPFailure(f"{path} already exists")
        if posixpath.dirname(path) not in self.dirs:
            raise asyncssh.SFTPNoSuchFile(f"No such directory: {path}")
        self.dirs.add(path)

    async def remove(self, path: str) -> None:
        self._raise("remove", path)
        if path not in self.files:
            raise asyncssh.SFTPNoSuchFile(f"No such file: {path}")
        del self.files[path]

    def exit(self) -> None:
        self.exited += 1


def _make_connection(sftp: FakeSFTP | None = None) -> MagicMock:
    conn = MagicMock()
    conn.is_closed.return_value = False
    conn.run = AsyncMock(return_value=MagicMock(exit_status=0))
    conn.start_sftp_client = AsyncMock(return_value=sftp or FakeSFTP())
    return conn


@pytest.fixture
def fake_sftp() -> FakeSFTP:
    """Empty in-memory SFTP server."""
    return FakeSFTP()


@pytest.fixture
def sftp_factory() -> type[FakeSFTP]:
    """The FakeSFTP class, for tests that need several servers."""
    return FakeSFTP


@pytest.fixture
def make_connection() -> Callable[..., MagicMock]:
    """Factory for mock SSH connections serving a given FakeSFTP."""
    return _make_connection


@pytest.fixture
def connection_config() -> ConnectionConfig:
    """Password-authenticated connection config."""
    return ConnectionConfig(host="10.0.0.5", username="deploy", port=22, password="s3cret")
