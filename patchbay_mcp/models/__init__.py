"""Data models for Patchbay MCP."""

from patchbay_mcp.models.changes import (
    ApplyReport,
    FileOperation,
    OperationKind,
    OperationOutcome,
)
from patchbay_mcp.models.remote import LocalEntry, RemoteEntry
from patchbay_mcp.models.result import ActionResult
from patchbay_mcp.models.ssh import ConnectionConfig, PooledSession, SSHConfigHost
from patchbay_mcp.models.stats import Bundle, FileMeasure, FileStats

__all__ = [
    "ActionResult",
    "ApplyReport",
    "Bundle",
    "ConnectionConfig",
    "FileMeasure",
    "FileOperation",
    "FileStats",
    "LocalEntry",
    "OperationKind",
    "OperationOutcome",
    "PooledSession",
    "RemoteEntry",
    "SSHConfigHost",
]
