"""
Log line classification.

Turns a raw log line, either structured JSON or free text, into a
ParsedLogEntry with a severity level and the message to display.
"""

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class LogLevel(Enum):
    """Severity levels recognised in log lines."""
    ERROR = "ERROR"
    WARN = "WARN"
    WARNING = "WARNING"
    INFO = "INFO"
    DEBUG = "DEBUG"
    TRACE = "TRACE"


DEFAULT_LEVEL = LogLevel.INFO.value

TIMESTAMP_KEYS = ("timestamp", "time", "@timestamp")
LEVEL_KEYS = ("level", "severity", "log_level")
MESSAGE_KEYS = ("message", "msg")

LEVEL_PATTERN = re.compile(r"\b(ERROR|WARN(?:ING)?|INFO|DEBUG|TRACE)\b", re.IGNORECASE)


@dataclass
class ParsedLogEntry:
    """A log line split into display fields."""
    level: str
    message: str
    timestamp: Optional[Any] = None  # None means "use the delivery time"


def _first_present(document: Dict[str, Any], keys) -> Optional[Any]:
    for key in keys:
        value = document.get(key)
        if value is not None:
            return value
    return None


class LogMessageParser:
    """Classifies raw log lines as structured JSON or free text."""

    def parse(self, line: str) -> ParsedLogEntry:
        """
        Parse a raw log line.

        Never raises: a line that looks like JSON but does not decode is
        classified as free text.

        Args:
            line: Raw log line as delivered by the log service

        Returns:
            ParsedLogEntry
        """
        stripped = line.strip()
        if stripped.startswith("{") and stripped.endswith("}"):
            entry = self._parse_structured(line)
            if entry is not None:
                return entry
        return self._parse_free_text(line)

    def _parse_structured(self, line: str) -> Optional[ParsedLogEntry]:
        try:
            document = json.loads(line)
        except (ValueError, RecursionError):
            return None
        if not isinstance(document, dict):
            return None

        level = _first_present(document, LEVEL_KEYS)
        message = _first_present(document, MESSAGE_KEYS)
        return ParsedLogEntry(
            level=str(level).strip().upper() if level is not None else DEFAULT_LEVEL,
            message=str(message) if message is not None else line,
            timestamp=_first_present(document, TIMESTAMP_KEYS),
        )

    def _parse_free_text(self, line: str) -> ParsedLogEntry:
        match = LEVEL_PATTERN.search(line)
        level = match.group(1).upper() if match else DEFAULT_LEVEL
        return ParsedLogEntry(level=level, message=line)
