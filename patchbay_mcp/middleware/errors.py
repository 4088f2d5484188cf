"""Error handling middleware for unexpected exceptions in handlers."""

import logging
import traceback
from collections import defaultdict
from typing import Any

from fastmcp.server.middleware import MiddlewareContext

from patchbay_mcp.middleware.base import PatchbayMiddleware
from patchbay_mcp.services.errors import PatchbayError


def error_label(exc: Exception) -> str:
    """Stats key for an exception: its ErrorKind for service errors."""
    if isinstance(exc, PatchbayError):
        return f"{type(exc).__name__}:{exc.kind.value}"
    return type(exc).__name__


class ErrorHandlingMiddleware(PatchbayMiddleware):
    """Logs and counts exceptions escaping a handler, then re-raises.

    Actions convert service errors into failed results, so anything seen
    here is a bug or a transport-level failure.
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        include_traceback: bool = False,
    ) -> None:
        """Initialize error handling middleware.

        Args:
            logger: Optional custom logger.
            include_traceback: Whether to include full traceback in logs.
        """
        super().__init__(logger=logger)
        self.include_traceback = include_traceback
        self._error_counts: dict[str, int] = defaultdict(int)

    def get_error_stats(self) -> dict[str, int]:
        """Return occurrence counts keyed by ``error_label``."""
        return dict(self._error_counts)

    async def on_message(
        self,
        context: MiddlewareContext,
        call_next: Any,
    ) -> Any:
        """Run the handler, logging and counting any exception it raises."""
        try:
            return await call_next(context)

        except Exception as e:
            label = error_label(e)
            self._error_counts[label] += 1
            count = self._error_counts[label]

            if self.include_traceback:
                self.logger.error(
                    "Error in %s: %s: %s (seen %d)\n%s",
                    context.method,
                    label,
                    e,
                    count,
                    traceback.format_exc(),
                )
            else:
                self.logger.error(
                    "Error in %s: %s: %s (seen %d)", context.method, label, e, count
                )
            raise
