"""Patchbay MCP middleware components."""

from patchbay_mcp.middleware.base import PatchbayMiddleware
from patchbay_mcp.middleware.errors import ErrorHandlingMiddleware
from patchbay_mcp.middleware.logging import LoggingMiddleware, mask_secrets

__all__ = [
    "ErrorHandlingMiddleware",
    "LoggingMiddleware",
    "PatchbayMiddleware",
    "mask_secrets",
]
