"""Entry point for the patchbay_mcp server."""

import logging

from patchbay_mcp.config import Settings
from patchbay_mcp.server import mcp  # importing also configures logging

logger = logging.getLogger(__name__)


def run_server() -> None:
    """Run the MCP server with the configured transport."""
    settings = Settings.from_env()

    if settings.transport == "stdio":
        logger.info("Starting Patchbay MCP server (transport=stdio)")
        mcp.run(transport="stdio")
    else:
        logger.info(
            "Starting Patchbay MCP server (transport=http, host=%s, port=%d)",
            settings.http_host,
            settings.http_port,
        )
        mcp.run(
            transport="http",
            host=settings.http_host,
            port=settings.http_port,
        )


if __name__ == "__main__":
    run_server()
