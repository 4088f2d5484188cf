"""Apply parsed file operations to a local or remote project root.

Operations are applied one at a time, in document order. A failed
operation does not stop the batch and earlier operations are not rolled
back; the returned ApplyReport records every outcome.
"""

import logging
import posixpath
import stat
from enum import Enum
from pathlib import Path

import asyncssh

from patchbay_mcp.models import (
    ApplyReport,
    ConnectionConfig,
    FileOperation,
    OperationKind,
    OperationOutcome,
)
from patchbay_mcp.protocols import ChangeApplier
from patchbay_mcp.services.connection import Connector, make_connector
from patchbay_mcp.services.errors import ApplyFailed, PatchbayError, describe_error
from patchbay_mcp.services.reader import open_sftp

logger = logging.getLogger(__name__)


class LocalChangeApplier:
    """Applies operations under a local directory.

    Paths are joined to the root as given; the change-set source is trusted.
    """

    def __init__(self, root: str | Path) -> None:
        """Initialize applier.

        Args:
            root: Project directory operations are relative to
        """
        self.root = Path(root)

    def resolve(self, relative_path: str) -> Path:
        """Join a change-set path onto the root."""
        return self.root / relative_path.lstrip("/\\")

    async def apply(
        self, operation: FileOperation, known_dirs: set[str] | None = None
    ) -> None:
        """Apply one operation.

        Raises:
            ApplyFailed: On any I/O error, tagged with the target path
        """
        target = self.resolve(operation.path)
        try:
            if operation.kind is OperationKind.DELETE:
                target.unlink(missing_ok=True)
                logger.info("Deleted %s", target)
                return

            parent = target.parent
            if known_dirs is None or str(parent) not in known_dirs:
                parent.mkdir(parents=True, exist_ok=True)
                if known_dirs is not None:
                    known_dirs.add(str(parent))

            # newline="" keeps the content byte-for-byte
            with open(target, "w", encoding="utf-8", newline="") as f:
                f.write(operation.content or "")
            logger.info("Wrote %s (%d chars)", target, len(operation.content or ""))
        except OSError as e:
            raise ApplyFailed(str(target), e) from e


class ApplyState(str, Enum):
    """Lifecycle of one remote apply call."""

    IDLE = "idle"
    CONNECTING = "connecting"
    READY = "ready"
    EXECUTING = "executing"
    CLOSED = "closed"
    CONNECT_FAILED = "connect_failed"


async def _is_remote_directory(sftp: asyncssh.SFTPClient, path: str) -> bool:
    try:
        attrs = await sftp.stat(path)
    except (OSError, asyncssh.Error):
        return False
    permissions = getattr(attrs, "permissions", None)
    return not permissions or stat.S_ISDIR(permissions)


async def ensure_remote_directory(
    sftp: asyncssh.SFTPClient,
    path: str,
    known_dirs: set[str] | None = None,
) -> None:
    """Create a remote directory and any missing ancestors.

    Walks upward with stat until an existing ancestor is found, then
    creates the missing directories top-down. Existing directories are not
    an error, including ones created concurrently by someone else.

    Args:
        sftp: Open SFTP client
        path: Directory to ensure
        known_dirs: Directories already verified in this batch; updated

    Raises:
        ApplyFailed: If a directory cannot be checked or created
    """
    path = path or "."
    if known_dirs is not None and path in known_dirs:
        return

    try:
        attrs = await sftp.stat(path)
    except asyncssh.SFTPNoSuchFile:
        parent = posixpath.dirname(path) or "."
        if parent == path:
            raise ApplyFailed(path, f"Cannot create directory {path}") from None
        await ensure_remote_directory(sftp, parent, known_dirs)
        try:
            await sftp.mkdir(path)
            logger.info("Created directory %s", path)
        except (OSError, asyncssh.Error) as e:
            if not await _is_remote_directory(sftp, path):
                raise ApplyFailed(
                    path, f"Error creating directory {path}: {describe_error(e)}"
                ) from e
    except (OSError, asyncssh.Error) as e:
        raise ApplyFailed(
            path, f"Error checking directory {path}: {describe_error(e)}"
        ) from e
    else:
        permissions = getattr(attrs, "permissions", None)
        if permissions and not stat.S_ISDIR(permissions):
            raise ApplyFailed(path, f"{path} exists and is not a directory")

    if known_dirs is not None:
        known_dirs.add(path)


class RemoteChangeApplier:
    """Applies operations under a directory on an SSH host.

    Each ``apply`` call opens its own session, independent of the shared
    pool, and closes it when the operation finishes or fails.
    """

    def __init__(
        self,
        config: ConnectionConfig,
        root: str,
        connector: Connector | None = None,
        sftp_init_timeout: float = 10.0,
    ) -> None:
        """Initialize applier.

        Args:
            config: Connection parameters for the target host
            root: Remote project directory
            connector: Opens the per-operation session
            sftp_init_timeout: Seconds allowed for SFTP subsystem startup
        """
        self.config = config
        self.root = root
        self.sftp_init_timeout = sftp_init_timeout
        self.state = ApplyState.IDLE
        self._connector = connector or make_connector()

    def resolve(self, relative_path: str) -> str:
        """Join a change-set path onto the remote root."""
        return posixpath.join(self.root, relative_path.lstrip("/"))

    async def apply(
        self, operation: FileOperation, known_dirs: set[str] | None = None
    ) -> None:
        """Apply one operation over a dedicated session.

        Raises:
            ApplyFailed: If connecting, creating directories, writing or
                deleting fails
        """
        target = self.resolve(operation.path)

        self.state = ApplyState.CONNECTING
        try:
            conn = await self._connector(self.config)
        except PatchbayError as e:
            self.state = ApplyState.CONNECT_FAILED
            raise ApplyFailed(target, e) from e

        try:
            self.state = ApplyState.READY
            sftp = await open_sftp(conn, self.sftp_init_timeout)
            try:
                self.state = ApplyState.EXECUTING
                await self._execute(sftp, operation, target, known_dirs)
            finally:
                sftp.exit()
        except ApplyFailed:
            raise
        except PatchbayError as e:
            raise ApplyFailed(target, e) from e
        finally:
            conn.close()
            self.state = ApplyState.CLOSED

    async def _execute(
        self,
        sftp: asyncssh.SFTPClient,
        operation: FileOperation,
        target: str,
        known_dirs: set[str] | None,
    ) -> None:
        if operation.kind is OperationKind.DELETE:
            try:
                await sftp.remove(target)
            except asyncssh.SFTPNoSuchFile:
                logger.warning("File %s does not exist, skipping delete", target)
                return
            except (OSError, asyncssh.Error) as e:
                raise ApplyFailed(target, f"delete failed: {describe_error(e)}") from e
            logger.info("Deleted %s", target)
            return

        await ensure_remote_directory(sftp, posixpath.dirname(target), known_dirs)

        data = (operation.content or "").encode("utf-8")
        try:
            async with sftp.open(target, "wb") as f:
                await f.write(data)
        except (OSError, asyncssh.Error) as e:
            raise ApplyFailed(target, f"write failed: {describe_error(e)}") from e
        logger.info("Wrote %s (%d bytes)", target, len(data))


async def apply_change_set(
    operations: list[FileOperation], applier: ChangeApplier
) -> ApplyReport:
    """Apply operations strictly in order, continuing past failures.

    Args:
        operations: Parsed operations, in document order
        applier: Local or remote backend

    Returns:
        Report with one outcome per operation
    """
    report = ApplyReport()
    known_dirs: set[str] = set()

    for operation in operations:
        try:
            await applier.apply(operation, known_dirs=known_dirs)
        except PatchbayError as e:
            logger.error(
                "Failed to apply %s %s: %s", operation.kind.value, operation.path, e
            )
            report.outcomes.append(OperationOutcome(operation, success=False, error=str(e)))
            continue
        report.outcomes.append(OperationOutcome(operation, success=True))

    logger.info(
        "Applied %d/%d operation(s)", len(report.succeeded), len(report.outcomes)
    )
    return report
