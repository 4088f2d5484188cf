"""Remote directory listing and file reads over SFTP.

Every public call goes through ``_with_retry``: the first attempt runs on a
pooled session; failures classified as transient are retried on fresh,
unpooled sessions with a linear backoff. The pooled session goes back to
the pool only after the retry budget is spent.
"""

import asyncio
import logging
import posixpath
import stat
from collections.abc import Awaitable, Callable
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, TypeVar

import asyncssh

from patchbay_mcp.models import ConnectionConfig, RemoteEntry
from patchbay_mcp.protocols import SessionProvider
from patchbay_mcp.services.connection import Connector, make_connector
from patchbay_mcp.services.errors import (
    ErrorKind,
    PatchbayError,
    ReadFailed,
    RemoteOperationError,
    classify_error,
    describe_error,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
SFTPOperation = Callable[[asyncssh.SFTPClient], Awaitable[T]]

EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def entry_from_attrs(name: str, path: str, attrs: Any) -> RemoteEntry:
    """Build a RemoteEntry from SFTP attributes.

    Absent size or mtime default to 0 and the epoch.
    """
    permissions = getattr(attrs, "permissions", None)
    mtime = getattr(attrs, "mtime", None)
    return RemoteEntry(
        name=name,
        path=path,
        is_directory=bool(permissions) and stat.S_ISDIR(permissions),
        size=getattr(attrs, "size", None) or 0,
        modify_time=datetime.fromtimestamp(mtime or 0, tz=timezone.utc),
    )


async def open_sftp(
    conn: asyncssh.SSHClientConnection, timeout: float
) -> asyncssh.SFTPClient:
    """Start the SFTP subsystem with a hard timeout.

    Raises:
        RemoteOperationError: With kind SFTP_INIT_TIMEOUT on timeout, or the
            classified kind of any other startup failure
    """
    try:
        return await asyncio.wait_for(conn.start_sftp_client(), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise RemoteOperationError(
            f"SFTP subsystem did not start within {timeout:g}s",
            kind=ErrorKind.SFTP_INIT_TIMEOUT,
        ) from e
    except (OSError, asyncssh.Error) as e:
        raise RemoteOperationError(
            f"Failed to initialize SFTP: {describe_error(e)}",
            kind=classify_error(e),
        ) from e


class RemoteReader:
    """Lists directories and reads files on SSH hosts."""

    def __init__(
        self,
        pool: SessionProvider,
        max_retries: int = 2,
        retry_backoff: float = 1.0,
        sftp_init_timeout: float = 10.0,
        connector: Connector | None = None,
        chunk_size: int = 65536,
    ) -> None:
        """Initialize reader.

        Args:
            pool: Pool supplying the first-attempt session
            max_retries: Retries after the initial attempt
            retry_backoff: Seconds multiplied by the retry number before each retry
            sftp_init_timeout: Seconds allowed for SFTP subsystem startup
            connector: Opens the fresh sessions used by retries
            chunk_size: Bytes requested per read when streaming a file
        """
        self.pool = pool
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self.sftp_init_timeout = sftp_init_timeout
        self.chunk_size = chunk_size
        self._connector = connector or make_connector()

    async def list_directory(
        self,
        config: ConnectionConfig,
        path: str,
        recursive: bool = False,
        include_content: bool = False,
    ) -> list[RemoteEntry]:
        """List a remote directory.

        Args:
            config: Connection parameters
            path: Remote directory
            recursive: Walk subdirectories depth-first
            include_content: Attach file contents (recursive mode only)

        Returns:
            Entries in listing order; for recursive walks each directory is
            followed by its descendants.
        """

        async def operation(sftp: asyncssh.SFTPClient) -> list[RemoteEntry]:
            if recursive:
                return await self._walk(sftp, path, include_content)
            return await self._list_flat(sftp, path)

        return await self._with_retry(config, operation, f"list {path}")

    async def read_file(self, config: ConnectionConfig, path: str) -> str:
        """Read a remote file as text."""

        async def operation(sftp: asyncssh.SFTPClient) -> str:
            return await self._read(sftp, path)

        return await self._with_retry(config, operation, f"read {path}")

    async def stat(self, config: ConnectionConfig, path: str) -> RemoteEntry:
        """Return metadata for a single remote path."""

        async def operation(sftp: asyncssh.SFTPClient) -> RemoteEntry:
            attrs = await sftp.stat(path)
            return entry_from_attrs(posixpath.basename(path.rstrip("/")) or path, path, attrs)

        return await self._with_retry(config, operation, f"stat {path}")

    async def _with_retry(
        self,
        config: ConnectionConfig,
        operation: SFTPOperation[T],
        description: str,
    ) -> T:
        """Run an SFTP operation with transient-error retries."""
        pooled = await self.pool.checkout(config)
        try:
            attempt = 0
            while True:
                attempt += 1
                try:
                    if attempt == 1:
                        return await self._run(pooled.connection, operation, description)
                    return await self._run_fresh(config, operation, description)
                except PatchbayError as e:
                    if not e.is_transient:
                        raise
                    if attempt == 1:
                        self.pool.invalidate(pooled)
                    if attempt > self.max_retries:
                        logger.error(
                            "Failed to %s on %s after %d attempt(s): %s",
                            description,
                            config.display_name,
                            attempt,
                            e,
                        )
                        raise
                    delay = self.retry_backoff * attempt
                    logger.warning(
                        "Failed to %s on %s (%s), retry %d/%d in %.1fs",
                        description,
                        config.display_name,
                        e.kind.value,
                        attempt,
                        self.max_retries,
                        delay,
                    )
                    await asyncio.sleep(delay)
        finally:
            self.pool.release(pooled)

    async def _run_fresh(
        self,
        config: ConnectionConfig,
        operation: SFTPOperation[T],
        description: str,
    ) -> T:
        """Run an operation on a new session that is closed afterwards."""
        conn = await self._connector(config)
        try:
            return await self._run(conn, operation, description)
        finally:
            conn.close()

    async def _run(
        self,
        conn: asyncssh.SSHClientConnection,
        operation: SFTPOperation[T],
        description: str,
    ) -> T:
        """Open SFTP on a connection and run the operation."""
        sftp = await open_sftp(conn, self.sftp_init_timeout)
        try:
            return await operation(sftp)
        except PatchbayError:
            raise
        except (OSError, asyncssh.Error) as e:
            raise RemoteOperationError(
                f"Failed to {description}: {describe_error(e)}",
                kind=classify_error(e),
            ) from e
        finally:
            sftp.exit()

    async def _list_flat(
        self, sftp: asyncssh.SFTPClient, path: str
    ) -> list[RemoteEntry]:
        names = await sftp.readdir(path)
        return [
            entry_from_attrs(name.filename, posixpath.join(path, name.filename), name.attrs)
            for name in names
            if name.filename not in (".", "..")
        ]

    async def _walk(
        self, sftp: asyncssh.SFTPClient, path: str, include_content: bool
    ) -> list[RemoteEntry]:
        """Depth-first listing; one directory level runs concurrently."""
        entries = await self._list_flat(sftp, path)

        async def expand(entry: RemoteEntry) -> list[RemoteEntry]:
            if entry.is_directory:
                try:
                    children = await self._walk(sftp, entry.path, include_content)
                except (OSError, asyncssh.Error) as e:
                    kind = classify_error(e)
                    if kind.is_transient:
                        raise
                    logger.warning("Skipping unreadable directory %s: %s", entry.path, e)
                    children = []
                return [entry, *children]
            if include_content:
                return [await self._attach_content(sftp, entry)]
            return [entry]

        results = await asyncio.gather(
            *(expand(entry) for entry in entries), return_exceptions=True
        )
        walked: list[RemoteEntry] = []
        for result in results:
            if isinstance(result, BaseException):
                raise result
            walked.extend(result)
        return walked

    async def _attach_content(
        self, sftp: asyncssh.SFTPClient, entry: RemoteEntry
    ) -> RemoteEntry:
        """Return the entry with its content, or unchanged if the read fails."""
        try:
            content = await self._read(sftp, entry.path)
        except (PatchbayError, OSError, asyncssh.Error) as e:
            logger.warning("Failed to read content of %s: %s", entry.path, e)
            return entry
        return replace(entry, content=content)

    async def _read(self, sftp: asyncssh.SFTPClient, path: str) -> str:
        """Stat then stream a file into one string."""
        attrs = await sftp.stat(path)
        permissions = getattr(attrs, "permissions", None)
        if permissions and stat.S_ISDIR(permissions):
            raise RemoteOperationError(
                f"Failed to read {path}: is a directory",
                kind=ErrorKind.NOT_A_FILE,
                path=path,
            )

        chunks: list[bytes] = []
        try:
            async with sftp.open(path, "rb") as f:
                while True:
                    chunk = await f.read(self.chunk_size)
                    if not chunk:
                        break
                    chunks.append(chunk)
        except (OSError, asyncssh.Error) as e:
            kind = classify_error(e)
            raise ReadFailed(
                f"Failed to read {path}: {describe_error(e)}",
                kind=kind if kind.is_transient else ErrorKind.READ_FAILED,
                path=path,
            ) from e

        return b"".join(chunks).decode("utf-8", errors="replace")
