"""
Console rendering for parsed log entries.
"""

from datetime import datetime
from typing import Dict, Optional

import click

from .parse import LogLevel, ParsedLogEntry

LEVEL_WIDTH = 7
DEFAULT_COLOR = "white"

LEVEL_COLORS: Dict[str, str] = {
    LogLevel.ERROR.value: "red",
    LogLevel.WARN.value: "yellow",
    LogLevel.WARNING.value: "yellow",
    LogLevel.INFO.value: "green",
    LogLevel.DEBUG.value: "cyan",
    LogLevel.TRACE.value: "magenta",
}


def format_timestamp(timestamp_ms: int) -> str:
    """Render an epoch-millisecond delivery time as local ``YYYY-MM-DD HH:MM:SS``."""
    return datetime.fromtimestamp(timestamp_ms // 1000).strftime("%Y-%m-%d %H:%M:%S")


class OutputFormatter:
    """Renders parsed log entries as color-coded console lines."""

    def __init__(self, show_timestamp: bool = True, show_stream_name: bool = False, color: bool = True):
        self.show_timestamp = show_timestamp
        self.show_stream_name = show_stream_name
        self.color = color
        self.colors = dict(LEVEL_COLORS)

    def color_for(self, level: str) -> str:
        """Return the display color for a level, white when unrecognised."""
        return self.colors.get(level.upper(), DEFAULT_COLOR)

    def format_level(self, level: str) -> str:
        padded = level.upper().ljust(LEVEL_WIDTH)
        if not self.color:
            return padded
        return click.style(padded, fg=self.color_for(level))

    def format(self, entry: ParsedLogEntry, timestamp_ms: Optional[int] = None,
               stream_name: Optional[str] = None) -> str:
        """
        Render one entry.

        Args:
            entry: Parsed log entry
            timestamp_ms: Delivery time of the entry in epoch milliseconds
            stream_name: Stream the entry came from

        Returns:
            The line to print, without a trailing newline
        """
        parts = []
        if self.show_timestamp and timestamp_ms is not None:
            parts.append(f"[{format_timestamp(timestamp_ms)}]")
        if self.show_stream_name and stream_name:
            parts.append(f"[{stream_name}]")
        parts.append(f"{self.format_level(entry.level)} {entry.message}")
        return " ".join(parts)
