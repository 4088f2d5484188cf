"""Services for Patchbay MCP."""

from patchbay_mcp.services.applier import (
    LocalChangeApplier,
    RemoteChangeApplier,
    apply_change_set,
    ensure_remote_directory,
)
from patchbay_mcp.services.bundle import bundle_local, bundle_remote
from patchbay_mcp.services.changeset import parse_change_set
from patchbay_mcp.services.connection import make_connector, open_connection
from patchbay_mcp.services.credentials import (
    check_key_needs_passphrase,
    read_private_key,
)
from patchbay_mcp.services.errors import (
    ApplyFailed,
    ConnectionFailed,
    CredentialError,
    ErrorKind,
    MalformedDocument,
    PatchbayError,
    RemoteOperationError,
)
from patchbay_mcp.services.local_fs import (
    find_similar_paths,
    list_files_recursive,
    read_directory,
)
from patchbay_mcp.services.pool import SessionPool
from patchbay_mcp.services.reader import RemoteReader
from patchbay_mcp.services.stats import (
    compute_local_stats,
    compute_remote_stats,
    estimate_tokens,
)

__all__ = [
    "ApplyFailed",
    "ConnectionFailed",
    "CredentialError",
    "ErrorKind",
    "LocalChangeApplier",
    "MalformedDocument",
    "PatchbayError",
    "RemoteChangeApplier",
    "RemoteOperationError",
    "RemoteReader",
    "SessionPool",
    "apply_change_set",
    "bundle_local",
    "bundle_remote",
    "check_key_needs_passphrase",
    "compute_local_stats",
    "compute_remote_stats",
    "ensure_remote_directory",
    "estimate_tokens",
    "find_similar_paths",
    "list_files_recursive",
    "make_connector",
    "open_connection",
    "parse_change_set",
    "read_directory",
    "read_private_key",
]
