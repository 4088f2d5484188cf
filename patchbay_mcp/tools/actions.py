"""Public action entry points.

Every action takes the ``Dependencies`` container and returns an
``ActionResult``. Service exceptions are converted here and never cross
this boundary.
"""

import logging
from pathlib import Path

from patchbay_mcp.config import SSHConfigParser
from patchbay_mcp.dependencies import Dependencies
from patchbay_mcp.models import (
    ActionResult,
    ApplyReport,
    Bundle,
    ConnectionConfig,
    FileStats,
    LocalEntry,
    RemoteEntry,
    SSHConfigHost,
)
from patchbay_mcp.protocols import ChangeApplier
from patchbay_mcp.services import (
    LocalChangeApplier,
    PatchbayError,
    RemoteChangeApplier,
    apply_change_set,
    bundle_local,
    bundle_remote,
    check_key_needs_passphrase as key_file_needs_passphrase,
    compute_local_stats,
    compute_remote_stats,
    find_similar_paths,
    list_files_recursive,
    parse_change_set,
    read_directory,
    read_private_key,
)

logger = logging.getLogger(__name__)


def resolve_identity(
    connection: ConnectionConfig, identity_file: str | None
) -> ConnectionConfig:
    """Load ``identity_file`` into the config, if one is given.

    Raises:
        CredentialError: If the key file is missing or a directory
        OSError: If the key file cannot be read
    """
    if not identity_file:
        return connection
    return connection.with_private_key(read_private_key(identity_file))


def _load_connection(
    connection: ConnectionConfig, identity_file: str | None
) -> tuple[ConnectionConfig | None, str | None]:
    """Return (config, None) or (None, failure message)."""
    try:
        return resolve_identity(connection, identity_file), None
    except (PatchbayError, OSError) as e:
        return None, f"Failed to read identity file: {e}"


async def check_key_needs_passphrase(
    deps: Dependencies, key_path: str
) -> ActionResult[bool]:
    """Report whether a private key file is passphrase-protected."""
    try:
        needs = key_file_needs_passphrase(key_path)
    except (PatchbayError, OSError) as e:
        return ActionResult.fail(f"Failed to check key: {e}")
    return ActionResult.ok(needs, "Key checked successfully")


async def list_ssh_hosts(deps: Dependencies) -> ActionResult[list[SSHConfigHost]]:
    """List host blocks from the configured SSH config file."""
    config_path = deps.settings.ssh_config_path
    if not config_path.exists():
        return ActionResult.fail("SSH config file not found")
    hosts = SSHConfigParser(config_path).parse()
    return ActionResult.ok(hosts, "SSH config parsed successfully")


async def read_remote_directory(
    deps: Dependencies,
    connection: ConnectionConfig,
    path: str,
    recursive: bool = False,
    include_content: bool = False,
    identity_file: str | None = None,
) -> ActionResult[list[RemoteEntry]]:
    """List a directory on an SSH host."""
    config, error = _load_connection(connection, identity_file)
    if config is None:
        return ActionResult.fail(error or "Invalid connection")

    try:
        entries = await deps.reader.list_directory(
            config, path, recursive=recursive, include_content=include_content
        )
    except PatchbayError as e:
        return ActionResult.fail(f"Failed to read directory: {e}")
    return ActionResult.ok(entries, "Directory read successfully")


async def get_remote_file_content(
    deps: Dependencies,
    connection: ConnectionConfig,
    path: str,
    identity_file: str | None = None,
) -> ActionResult[str]:
    """Read a file on an SSH host."""
    config, error = _load_connection(connection, identity_file)
    if config is None:
        return ActionResult.fail(error or "Invalid connection")

    try:
        content = await deps.reader.read_file(config, path)
    except PatchbayError as e:
        return ActionResult.fail(f"Failed to read file: {e}")
    return ActionResult.ok(content, "File read successfully")


async def get_remote_file_stats(
    deps: Dependencies,
    connection: ConnectionConfig,
    paths: list[str],
    root_dir: str | None = None,
    identity_file: str | None = None,
) -> ActionResult[FileStats]:
    """Aggregate line, character and token counts over remote files."""
    config, error = _load_connection(connection, identity_file)
    if config is None:
        return ActionResult.fail(error or "Invalid connection")

    stats = await compute_remote_stats(
        deps.reader,
        config,
        paths,
        root_dir=root_dir,
        batch_size=deps.settings.stats_batch_size,
    )
    return ActionResult.ok(stats, "File stats calculated successfully")


async def read_local_directory(
    deps: Dependencies, path: str
) -> ActionResult[list[LocalEntry]]:
    """List one level of a local directory, honoring .gitignore."""
    try:
        entries = read_directory(path)
    except OSError as e:
        return ActionResult.fail(f"Failed to read directory: {e}")
    return ActionResult.ok(entries, "Directory read successfully")


async def get_all_files_in_directory(
    deps: Dependencies, path: str
) -> ActionResult[list[str]]:
    """List every non-ignored file below a local directory."""
    try:
        files = list_files_recursive(path)
    except OSError as e:
        return ActionResult.fail(f"Failed to get directory files: {e}")
    return ActionResult.ok(files, "Files retrieved successfully")


async def get_file_stats(
    deps: Dependencies, paths: list[str], root_dir: str | None = None
) -> ActionResult[FileStats]:
    """Aggregate line, character and token counts over local files."""
    stats = compute_local_stats(paths, root_dir=root_dir)
    return ActionResult.ok(stats, "File stats calculated successfully")


async def get_similar_paths(
    deps: Dependencies, search_path: str
) -> ActionResult[list[str]]:
    """Suggest local paths resembling ``search_path``, relative to home."""
    suggestions = find_similar_paths(Path.home(), search_path)
    return ActionResult.ok(suggestions, "Found similar paths")


async def bundle_selected_files(
    deps: Dependencies,
    paths: list[str],
    root_dir: str | None = None,
    connection: ConnectionConfig | None = None,
    identity_file: str | None = None,
) -> ActionResult[Bundle]:
    """Concatenate selected files into one text blob.

    Reads from the SSH host when ``connection`` is given, otherwise from
    the local filesystem.
    """
    if connection is None:
        return ActionResult.ok(bundle_local(paths, root_dir), "Files combined successfully")

    config, error = _load_connection(connection, identity_file)
    if config is None:
        return ActionResult.fail(error or "Invalid connection")
    bundle = await bundle_remote(deps.reader, config, paths, root_dir=root_dir)
    return ActionResult.ok(bundle, "Files combined successfully")


async def apply_changes(
    deps: Dependencies,
    document: str,
    project_directory: str = "",
    connection: ConnectionConfig | None = None,
    identity_file: str | None = None,
) -> ActionResult[ApplyReport]:
    """Parse a change-set and apply it to a local or remote project.

    The document is parsed before anything is touched; a parse failure
    aborts with no changes. Operations are then applied in document order
    and every one is attempted even if an earlier one fails.
    """
    try:
        operations = parse_change_set(document)
    except PatchbayError as e:
        return ActionResult.fail(str(e))

    directory = project_directory.strip() or deps.settings.project_directory
    if not directory:
        return ActionResult.fail(
            "No project directory provided and no fallback found in environment."
        )

    applier: ChangeApplier
    if connection is None:
        applier = LocalChangeApplier(directory)
    else:
        config, error = _load_connection(connection, identity_file)
        if config is None:
            return ActionResult.fail(error or "Invalid connection")
        applier = RemoteChangeApplier(
            config,
            directory,
            connector=deps.connector,
            sftp_init_timeout=deps.settings.sftp_init_timeout,
        )

    logger.info(
        "Applying %d change(s) to %s%s",
        len(operations),
        f"{connection.display_name}:" if connection else "",
        directory,
    )
    report = await apply_change_set(operations, applier)
    if report.all_succeeded:
        return ActionResult.ok(report, f"Applied {len(report.succeeded)} change(s)")

    first_error = report.failed[0].error
    return ActionResult.fail(
        f"{len(report.failed)} of {len(report.outcomes)} change(s) failed: {first_error}",
        data=report,
    )
