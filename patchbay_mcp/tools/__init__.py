"""MCP-facing actions for Patchbay MCP."""

from patchbay_mcp.tools.actions import (
    apply_changes,
    bundle_selected_files,
    check_key_needs_passphrase,
    get_all_files_in_directory,
    get_file_stats,
    get_remote_file_content,
    get_remote_file_stats,
    get_similar_paths,
    list_ssh_hosts,
    read_local_directory,
    read_remote_directory,
    resolve_identity,
)

__all__ = [
    "apply_changes",
    "bundle_selected_files",
    "check_key_needs_passphrase",
    "get_all_files_in_directory",
    "get_file_stats",
    "get_remote_file_content",
    "get_remote_file_stats",
    "get_similar_paths",
    "list_ssh_hosts",
    "read_local_directory",
    "read_remote_directory",
    "resolve_identity",
]
