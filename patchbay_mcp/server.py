"""Patchbay MCP FastMCP server.

Thin wrapper that exposes the actions in ``patchbay_mcp.tools`` as MCP
tools. All business logic lives in tools/ and services/.
"""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import PlainTextResponse

from patchbay_mcp import tools
from patchbay_mcp.config import Settings
from patchbay_mcp.dependencies import Dependencies
from patchbay_mcp.middleware import ErrorHandlingMiddleware, LoggingMiddleware
from patchbay_mcp.models import ConnectionConfig
from patchbay_mcp.utils.console import MCPRequestFormatter

NOISY_LOGGERS = [
    "uvicorn",
    "uvicorn.access",
    "uvicorn.error",
    "asyncssh",
    "httpx",
    "httpcore",
    "fastmcp",
    "starlette",
    "anyio",
]


def _configure_logging(settings: Settings) -> None:
    """Configure logging for the patchbay_mcp package.

    Called at module load so loggers are configured however the server
    is started.
    """
    use_colors = settings.log_colors and sys.stderr.isatty()

    package_logger = logging.getLogger("patchbay_mcp")
    package_logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    if not package_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(MCPRequestFormatter(use_colors=use_colors))
        package_logger.addHandler(handler)
        package_logger.propagate = False

    for name in NOISY_LOGGERS:
        lg = logging.getLogger(name)
        lg.setLevel(logging.WARNING)
        lg.handlers = []
        lg.propagate = False

    root_logger = logging.getLogger()
    root_logger.handlers = []
    root_logger.setLevel(logging.WARNING)


_configure_logging(Settings.from_env())

logger = logging.getLogger(__name__)


def get_deps(server: FastMCP) -> Dependencies:
    """Return the dependencies attached by create_server."""
    deps: Dependencies = server.deps  # type: ignore[attr-defined]
    return deps


def build_connection(
    host: str,
    username: str,
    port: int = 22,
    password: str | None = None,
    private_key: str | None = None,
    passphrase: str | None = None,
) -> ConnectionConfig:
    """Assemble tool arguments into a ConnectionConfig."""
    return ConnectionConfig(
        host=host,
        username=username,
        port=port,
        password=password or None,
        private_key=private_key or None,
        passphrase=passphrase or None,
    )


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[dict[str, Any]]:
    """Log startup and drain the session pool at shutdown."""
    logger.info("Patchbay MCP server starting up")
    deps = get_deps(server)
    logger.info(
        "Session pool ready (max_size=%d, idle_timeout=%ds)",
        deps.settings.max_pool_size,
        deps.settings.idle_timeout,
    )

    try:
        yield {"settings": deps.settings}
    finally:
        logger.info("Patchbay MCP server shutting down")
        if deps.pool.pool_size > 0:
            logger.info(
                "Closing %d pooled session(s): %s",
                deps.pool.pool_size,
                ", ".join(deps.pool.active_targets),
            )
        await deps.cleanup()
        logger.info("Patchbay MCP server shutdown complete")


def configure_middleware(server: FastMCP, settings: Settings) -> None:
    """Add middleware: ErrorHandling (innermost) then Logging."""
    server.add_middleware(
        ErrorHandlingMiddleware(include_traceback=settings.include_traceback)
    )
    server.add_middleware(
        LoggingMiddleware(
            include_payloads=settings.log_payloads,
            slow_threshold_ms=float(settings.slow_threshold_ms),
        )
    )


def register_tools(server: FastMCP) -> None:
    """Register one MCP tool per action."""

    @server.tool
    async def check_key_needs_passphrase(key_path: str) -> dict[str, Any]:
        """Check whether a private key file is passphrase-protected."""
        result = await tools.check_key_needs_passphrase(get_deps(server), key_path)
        return result.to_dict()

    @server.tool
    async def list_ssh_hosts() -> dict[str, Any]:
        """List host blocks from the SSH config file."""
        result = await tools.list_ssh_hosts(get_deps(server))
        return result.to_dict()

    @server.tool
    async def read_remote_directory(
        host: str,
        username: str,
        path: str,
        port: int = 22,
        password: str | None = None,
        private_key: str | None = None,
        passphrase: str | None = None,
        identity_file: str | None = None,
        recursive: bool = False,
        include_content: bool = False,
    ) -> dict[str, Any]:
        """List a directory on an SSH host, optionally recursively with file contents."""
        connection = build_connection(host, username, port, password, private_key, passphrase)
        result = await tools.read_remote_directory(
            get_deps(server),
            connection,
            path,
            recursive=recursive,
            include_content=include_content,
            identity_file=identity_file,
        )
        return result.to_dict()

    @server.tool
    async def get_remote_file_content(
        host: str,
        username: str,
        path: str,
        port: int = 22,
        password: str | None = None,
        private_key: str | None = None,
        passphrase: str | None = None,
        identity_file: str | None = None,
    ) -> dict[str, Any]:
        """Read a text file on an SSH host."""
        connection = build_connection(host, username, port, password, private_key, passphrase)
        result = await tools.get_remote_file_content(
            get_deps(server), connection, path, identity_file=identity_file
        )
        return result.to_dict()

    @server.tool
    async def get_remote_file_stats(
        host: str,
        username: str,
        paths: list[str],
        root_dir: str | None = None,
        port: int = 22,
        password: str | None = None,
        private_key: str | None = None,
        passphrase: str | None = None,
        identity_file: str | None = None,
    ) -> dict[str, Any]:
        """Count lines, characters and estimated tokens across remote files."""
        connection = build_connection(host, username, port, password, private_key, passphrase)
        result = await tools.get_remote_file_stats(
            get_deps(server),
            connection,
            paths,
            root_dir=root_dir,
            identity_file=identity_file,
        )
        return result.to_dict()

    @server.tool
    async def read_local_directory(path: str) -> dict[str, Any]:
        """List one level of a local directory, skipping hidden and gitignored entries."""
        result = await tools.read_local_directory(get_deps(server), path)
        return result.to_dict()

    @server.tool
    async def get_all_files_in_directory(path: str) -> dict[str, Any]:
        """List every non-ignored file below a local directory."""
        result = await tools.get_all_files_in_directory(get_deps(server), path)
        return result.to_dict()

    @server.tool
    async def get_file_stats(
        paths: list[str], root_dir: str | None = None
    ) -> dict[str, Any]:
        """Count lines, characters and estimated tokens across local files."""
        result = await tools.get_file_stats(get_deps(server), paths, root_dir=root_dir)
        return result.to_dict()

    @server.tool
    async def get_similar_paths(search_path: str) -> dict[str, Any]:
        """Suggest local paths whose names resemble the given one."""
        result = await tools.get_similar_paths(get_deps(server), search_path)
        return result.to_dict()

    @server.tool
    async def bundle_selected_files(
        paths: list[str],
        root_dir: str | None = None,
        host: str | None = None,
        username: str | None = None,
        port: int = 22,
        password: str | None = None,
        private_key: str | None = None,
        passphrase: str | None = None,
        identity_file: str | None = None,
    ) -> dict[str, Any]:
        """Concatenate selected files into one text blob (remote when host is given)."""
        connection = None
        if host:
            connection = build_connection(
                host, username or "", port, password, private_key, passphrase
            )
        result = await tools.bundle_selected_files(
            get_deps(server),
            paths,
            root_dir=root_dir,
            connection=connection,
            identity_file=identity_file,
        )
        return result.to_dict()

    @server.tool
    async def apply_changes(
        document: str,
        project_directory: str = "",
        host: str | None = None,
        username: str | None = None,
        port: int = 22,
        password: str | None = None,
        private_key: str | None = None,
        passphrase: str | None = None,
        identity_file: str | None = None,
    ) -> dict[str, Any]:
        """Apply a <code_changes> document to a local or remote project directory."""
        connection = None
        if host:
            connection = build_connection(
                host, username or "", port, password, private_key, passphrase
            )
        result = await tools.apply_changes(
            get_deps(server),
            document,
            project_directory=project_directory,
            connection=connection,
            identity_file=identity_file,
        )
        return result.to_dict()


def create_server(settings: Settings | None = None) -> FastMCP:
    """Create and configure the MCP server with middleware and tools.

    Returns:
        Configured FastMCP server instance
    """
    settings = settings or Settings.from_env()
    server = FastMCP("patchbay_mcp", lifespan=app_lifespan)

    # Sessions are opened lazily, so building the pool here is cheap
    server.deps = Dependencies.from_settings(settings)  # type: ignore[attr-defined]

    configure_middleware(server, settings)
    register_tools(server)

    @server.custom_route("/health", methods=["GET"])
    async def health_check(request: Request) -> PlainTextResponse:
        """Health check endpoint."""
        client_host = request.client.host if request.client else "unknown"
        logger.debug("Health check from %s", client_host)
        return PlainTextResponse("OK")

    return server


# Default server instance
mcp = create_server()
