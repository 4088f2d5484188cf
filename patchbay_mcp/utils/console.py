"""Colorful console logging formatter."""

import logging
import re
from datetime import datetime

# ANSI color codes
COLORS = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "magenta": "\033[35m",
    "cyan": "\033[36m",
    "white": "\033[37m",
    "bright_black": "\033[90m",
    "bright_red": "\033[91m",
    "bright_green": "\033[92m",
    "bright_yellow": "\033[93m",
    "bright_blue": "\033[94m",
    "bright_magenta": "\033[95m",
    "bright_cyan": "\033[96m",
    "bg_red": "\033[41m",
}

LEVEL_COLORS = {
    "DEBUG": COLORS["bright_black"],
    "INFO": COLORS["bright_green"],
    "WARNING": COLORS["bright_yellow"],
    "ERROR": COLORS["bright_red"],
    "CRITICAL": COLORS["bg_red"] + COLORS["white"] + COLORS["bold"],
}

# Longest prefix first so services.pool wins over services
COMPONENT_COLORS = {
    "patchbay_mcp.server": COLORS["bright_cyan"],
    "patchbay_mcp.services.pool": COLORS["bright_magenta"],
    "patchbay_mcp.services.reader": COLORS["magenta"],
    "patchbay_mcp.services.applier": COLORS["bright_blue"],
    "patchbay_mcp.services": COLORS["blue"],
    "patchbay_mcp.tools": COLORS["cyan"],
    "patchbay_mcp.middleware": COLORS["yellow"],
    "patchbay_mcp.config": COLORS["green"],
    "default": COLORS["white"],
}

PREFIX = "patchbay_mcp."

_HIGHLIGHTS = [
    (re.compile(r"(\d+\.?\d*ms)"), COLORS["bright_yellow"]),
    (re.compile(r"([\w.\-]+@[\w.\-]+:\d+)"), COLORS["bright_magenta"]),
    (re.compile(r"(pool_size=\d+(?:/\d+)?)"), COLORS["cyan"]),
    (re.compile(r"\b(CREATE|UPDATE|DELETE|create|update|delete)\b"), COLORS["bright_blue"]),
]

# First match wins; checked against the lowercased message
_INDICATORS = [
    (("starting", "ready"), COLORS["bright_green"], ">>>"),
    (("shutting down", "shutdown"), COLORS["bright_red"], "<<<"),
    (("error", "failed"), COLORS["bright_red"], "!! "),
    (("retry", "slow"), COLORS["bright_yellow"], "!  "),
    (("applied", "wrote", "deleted", "created directory"), COLORS["bright_green"], "OK "),
    (("opening", "established"), COLORS["bright_cyan"], "+  "),
    (("closing",), COLORS["bright_yellow"], "-  "),
    (("reusing",), COLORS["bright_magenta"], "~  "),
]


class ColorfulFormatter(logging.Formatter):
    """Renders ``time | LEVEL | component | message`` with optional ANSI colors."""

    def __init__(self, use_colors: bool = True) -> None:
        """Initialize the formatter.

        Args:
            use_colors: Whether to use ANSI colors.
        """
        super().__init__()
        self.use_colors = use_colors

    def _colorize(self, text: str, color: str) -> str:
        if not self.use_colors:
            return text
        return f"{color}{text}{COLORS['reset']}"

    def _get_component_color(self, name: str) -> str:
        for prefix, color in COMPONENT_COLORS.items():
            if prefix != "default" and name.startswith(prefix):
                return color
        return COMPONENT_COLORS["default"]

    def _format_timestamp(self, record: logging.LogRecord) -> str:
        dt = datetime.fromtimestamp(record.created).astimezone()
        return f"{dt:%H:%M:%S}.{int(record.msecs):03d} {dt:%m/%d}"

    def _format_level(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelname, COLORS["white"])
        return self._colorize(f"{record.levelname:<8}", color)

    def _format_component(self, record: logging.LogRecord) -> str:
        name = record.name
        if name.startswith(PREFIX):
            name = name[len(PREFIX) :]
        return self._colorize(f"{name:<20}", self._get_component_color(record.name))

    def _highlight_message(self, message: str) -> str:
        if not self.use_colors:
            return message
        for pattern, color in _HIGHLIGHTS:
            message = pattern.sub(f"{color}\\1{COLORS['reset']}", message)
        return message

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record."""
        sep = self._colorize("|", COLORS["dim"])
        line = " ".join(
            [
                self._colorize(self._format_timestamp(record), COLORS["dim"]),
                sep,
                self._format_level(record),
                sep,
                self._format_component(record),
                sep,
                self._highlight_message(record.getMessage()),
            ]
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class MCPRequestFormatter(ColorfulFormatter):
    """ColorfulFormatter with a leading event marker per line."""

    def format(self, record: logging.LogRecord) -> str:
        """Prefix the formatted line with a marker for notable events."""
        base = super().format(record)
        if not self.use_colors:
            return base

        message = record.getMessage().lower()
        for needles, color, marker in _INDICATORS:
            if any(needle in message for needle in needles):
                return f"{color}{marker}{COLORS['reset']} {base}"
        return f"    {base}"
