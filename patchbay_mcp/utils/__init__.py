"""Utilities for Patchbay MCP."""

from patchbay_mcp.utils.console import ColorfulFormatter, MCPRequestFormatter

__all__ = [
    "ColorfulFormatter",
    "MCPRequestFormatter",
]
