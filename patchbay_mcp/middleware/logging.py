"""Logging middleware for tool call tracking."""

import json
import logging
import time
from typing import Any

from fastmcp.server.middleware import MiddlewareContext

from patchbay_mcp.middleware.base import PatchbayMiddleware

SECRET_ARGUMENTS = frozenset({"password", "passphrase", "private_key"})
MASK = "***"


def mask_secrets(args: dict[str, Any] | None) -> dict[str, Any]:
    """Copy tool arguments with credential values replaced by a mask."""
    if not args:
        return {}
    return {
        key: (MASK if key in SECRET_ARGUMENTS and value else value)
        for key, value in args.items()
    }


class LoggingMiddleware(PatchbayMiddleware):
    """Logs tool calls with arguments, result summary and duration.

    Credential arguments are masked before anything is logged. Calls
    slower than ``slow_threshold_ms`` are logged at WARNING.

    Example:
        >>> server.add_middleware(LoggingMiddleware(include_payloads=True))
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        include_payloads: bool = False,
        max_payload_length: int = 1000,
        slow_threshold_ms: float = 1000.0,
    ) -> None:
        """Initialize logging middleware.

        Args:
            logger: Optional custom logger.
            include_payloads: Whether to log request/response payloads.
            max_payload_length: Maximum payload length before truncation.
            slow_threshold_ms: Threshold in ms for slow request warnings.
        """
        super().__init__(logger=logger)
        self.include_payloads = include_payloads
        self.max_payload_length = max_payload_length
        self.slow_threshold_ms = slow_threshold_ms

    def _truncate(self, data: Any) -> str:
        """Truncate data to max payload length."""
        try:
            text = json.dumps(data, default=str)
        except (TypeError, ValueError):
            text = str(data)

        if len(text) > self.max_payload_length:
            return text[: self.max_payload_length] + "... [truncated]"
        return text

    def _format_args(self, args: dict[str, Any] | None) -> str:
        """Format masked tool arguments for logging."""
        masked = mask_secrets(args)
        if not masked:
            return "()"
        parts = []
        for key, value in masked.items():
            if isinstance(value, str) and len(value) > 50:
                value = value[:50] + "..."
            parts.append(f"{key}={value!r}")
        return f"({', '.join(parts)})"

    def _format_duration(self, duration_ms: float) -> str:
        """Format duration with slow indicator if needed."""
        if duration_ms >= self.slow_threshold_ms:
            return f"{duration_ms:.1f}ms SLOW!"
        return f"{duration_ms:.1f}ms"

    async def on_call_tool(
        self,
        context: MiddlewareContext,
        call_next: Any,
    ) -> Any:
        """Log tool calls with name, arguments, and timing."""
        start = time.perf_counter()
        tool_name = getattr(context.message, "name", "unknown")
        args = getattr(context.message, "arguments", None)

        self.logger.info(">>> TOOL: %s%s", tool_name, self._format_args(args))

        if self.include_payloads and args:
            self.logger.debug("    Args: %s", self._truncate(mask_secrets(args)))

        try:
            result = await call_next(context)
        except Exception as e:
            duration_ms = (time.perf_counter() - start) * 1000
            self.logger.error(
                "!!! TOOL: %s -> %s: %s [%s]",
                tool_name,
                type(e).__name__,
                e,
                self._format_duration(duration_ms),
            )
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        log_level = (
            logging.WARNING if duration_ms >= self.slow_threshold_ms else logging.INFO
        )
        self.logger.log(
            log_level,
            "<<< TOOL: %s -> %s [%s]",
            tool_name,
            self._summarize_result(result),
            self._format_duration(duration_ms),
        )

        if self.include_payloads and result is not None:
            self.logger.debug("    Result: %s", self._truncate(result))

        return result

    async def on_list_tools(
        self,
        context: MiddlewareContext,
        call_next: Any,
    ) -> Any:
        """Log tool listing requests."""
        start = time.perf_counter()
        result = await call_next(context)
        duration_ms = (time.perf_counter() - start) * 1000

        tool_count: int | str = "?"
        if hasattr(result, "tools"):
            tool_count = len(result.tools)
        elif isinstance(result, (list, tuple)):
            tool_count = len(result)

        self.logger.info(
            "<<< LIST TOOLS -> %s tool(s) [%s]",
            tool_count,
            self._format_duration(duration_ms),
        )
        return result

    def _summarize_result(self, result: Any) -> str:
        """Create a brief summary of a result for logging."""
        if result is None:
            return "null"

        # Action results serialized by the server
        if isinstance(result, dict) and "success" in result:
            if result["success"]:
                return "ok"
            return f"failed: {result.get('message', '')}"

        structured = getattr(result, "structured_content", None)
        if isinstance(structured, dict) and "success" in structured:
            return self._summarize_result(structured)

        if isinstance(result, str):
            return f"{len(result)} chars"

        if hasattr(result, "content"):
            content = result.content
            if isinstance(content, (list, tuple)):
                return f"{len(content)} content item(s)"
            return "content"

        return type(result).__name__
