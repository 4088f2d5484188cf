"""Error kinds and exception hierarchy for Patchbay services.

Transport failures are classified once, into an ``ErrorKind``, where the
exception is caught. Retry decisions match on the kind instead of searching
error messages.
"""

import asyncio
from enum import Enum

import asyncssh


class ErrorKind(str, Enum):
    """Structured classification of a failure."""

    # Transient: worth another attempt on a fresh session
    CHANNEL_OPEN_FAILED = "channel_open_failed"
    OPEN_FAILED = "open_failed"
    CONNECTION_RESET = "connection_reset"
    SFTP_INIT_TIMEOUT = "sftp_init_timeout"

    # Permanent
    NOT_FOUND = "not_found"
    NOT_A_FILE = "not_a_file"
    PERMISSION_DENIED = "permission_denied"
    AUTH_FAILED = "auth_failed"
    CONNECTION_FAILED = "connection_failed"
    READ_FAILED = "read_failed"
    WRITE_FAILED = "write_failed"
    MALFORMED_DOCUMENT = "malformed_document"
    UNKNOWN = "unknown"

    @property
    def is_transient(self) -> bool:
        """Whether a retry on a fresh session may succeed."""
        return self in _TRANSIENT_KINDS


_TRANSIENT_KINDS = frozenset(
    {
        ErrorKind.CHANNEL_OPEN_FAILED,
        ErrorKind.OPEN_FAILED,
        ErrorKind.CONNECTION_RESET,
        ErrorKind.SFTP_INIT_TIMEOUT,
    }
)


class PatchbayError(Exception):
    """Base class for all Patchbay service errors."""

    default_kind = ErrorKind.UNKNOWN

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind | None = None,
        path: str | None = None,
    ) -> None:
        """Initialize error.

        Args:
            message: Human readable description
            kind: Classification, defaults to the class default
            path: Filesystem path involved, if any
        """
        self.kind = kind or self.default_kind
        self.path = path
        super().__init__(message)

    @property
    def is_transient(self) -> bool:
        """Whether the failure is classified as transient."""
        return self.kind.is_transient


class CredentialError(PatchbayError):
    """Private key could not be loaded."""


class KeyFileNotFound(CredentialError):
    """Key file does not exist."""

    default_kind = ErrorKind.NOT_FOUND


class KeyFileIsDirectory(CredentialError):
    """Key path points at a directory."""

    default_kind = ErrorKind.NOT_A_FILE


class KeyFileNotText(CredentialError):
    """Key file is not a UTF-8 text key (DER, PPK and similar)."""

    default_kind = ErrorKind.READ_FAILED


class ConnectionFailed(PatchbayError):
    """Failed to establish or authenticate an SSH session."""

    default_kind = ErrorKind.CONNECTION_FAILED

    def __init__(
        self,
        target: str,
        original_error: BaseException,
        *,
        kind: ErrorKind | None = None,
    ) -> None:
        """Initialize connection error.

        Args:
            target: user@host:port of the session
            original_error: Transport exception that caused the failure
            kind: Classification override
        """
        self.target = target
        self.original_error = original_error
        super().__init__(f"Cannot connect to {target}: {original_error}", kind=kind)


class RemoteOperationError(PatchbayError):
    """An SFTP operation failed."""


class ReadFailed(RemoteOperationError):
    """Streaming a remote file failed after it was opened."""

    default_kind = ErrorKind.READ_FAILED


class MalformedDocument(PatchbayError):
    """Change-set text lacks the expected structure."""

    default_kind = ErrorKind.MALFORMED_DOCUMENT


class ApplyFailed(PatchbayError):
    """Applying a single file operation failed."""

    default_kind = ErrorKind.WRITE_FAILED

    def __init__(self, path: str, reason: str | BaseException) -> None:
        """Initialize apply error.

        Args:
            path: Target path of the failed operation
            reason: Description or underlying exception
        """
        super().__init__(f"Failed to apply change to {path}: {reason}", path=path)


def classify_error(exc: BaseException) -> ErrorKind:
    """Map a transport or OS exception to an ErrorKind."""
    if isinstance(exc, PatchbayError):
        return exc.kind

    # SFTP status codes, most specific first
    if isinstance(exc, asyncssh.SFTPNoSuchFile):
        return ErrorKind.NOT_FOUND
    if isinstance(exc, asyncssh.SFTPPermissionDenied):
        return ErrorKind.PERMISSION_DENIED
    if isinstance(exc, (asyncssh.SFTPConnectionLost, asyncssh.SFTPNoConnection)):
        return ErrorKind.CONNECTION_RESET
    if isinstance(exc, asyncssh.SFTPFailure):
        return ErrorKind.OPEN_FAILED

    if isinstance(exc, asyncssh.ChannelOpenError):
        return ErrorKind.CHANNEL_OPEN_FAILED
    if isinstance(exc, asyncssh.PermissionDenied):
        return ErrorKind.AUTH_FAILED
    if isinstance(exc, (asyncssh.ConnectionLost, ConnectionResetError, BrokenPipeError)):
        return ErrorKind.CONNECTION_RESET
    if isinstance(exc, asyncio.TimeoutError):
        return ErrorKind.SFTP_INIT_TIMEOUT

    if isinstance(exc, FileNotFoundError):
        return ErrorKind.NOT_FOUND
    if isinstance(exc, IsADirectoryError):
        return ErrorKind.NOT_A_FILE
    if isinstance(exc, PermissionError):
        return ErrorKind.PERMISSION_DENIED

    return ErrorKind.UNKNOWN


def describe_error(exc: BaseException) -> str:
    """Return a short message for an exception, preferring SFTP reasons."""
    reason = getattr(exc, "reason", None)
    if isinstance(reason, str) and reason:
        return reason
    return str(exc) or type(exc).__name__
