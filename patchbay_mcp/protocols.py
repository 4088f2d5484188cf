"""Protocol interfaces for dependency inversion.

Services depend on these rather than on concrete classes, so tests can
pass lightweight fakes:

    class RecordingApplier:
        def __init__(self):
            self.seen = []

        async def apply(self, operation, known_dirs=None):
            self.seen.append(operation)

    report = await apply_change_set(operations, RecordingApplier())
"""

from typing import Protocol, runtime_checkable

from patchbay_mcp.models import ConnectionConfig, FileOperation, PooledSession


@runtime_checkable
class SessionProvider(Protocol):
    """Hands out SSH sessions for exclusive use.

    Implemented by ``SessionPool``.
    """

    async def checkout(self, config: ConnectionConfig) -> PooledSession:
        """Borrow a session for the config.

        Raises:
            ConnectionFailed: If no session can be established
        """
        ...

    def release(self, pooled: PooledSession) -> None:
        """Hand a borrowed session back."""
        ...

    def invalidate(self, pooled: PooledSession) -> None:
        """Mark a borrowed session as unusable."""
        ...

    async def close_all(self) -> None:
        """Close every session."""
        ...


@runtime_checkable
class ChangeApplier(Protocol):
    """Applies one file operation to some project root.

    Implemented by ``LocalChangeApplier`` and ``RemoteChangeApplier``.
    """

    async def apply(
        self, operation: FileOperation, known_dirs: set[str] | None = None
    ) -> None:
        """Apply a single operation.

        Args:
            operation: Operation to apply
            known_dirs: Directories already ensured during this batch

        Raises:
            ApplyFailed: If the operation could not be applied
        """
        ...


__all__ = [
    "ChangeApplier",
    "SessionProvider",
]
