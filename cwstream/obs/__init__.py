"""
Log streaming: polling, cursors, classification and console output.
"""

from .backoff import Backoff
from .cursor import StreamCursor
from .format import OutputFormatter
from .parse import LogLevel, LogMessageParser, ParsedLogEntry
from .stream import EngineState, PollEngine

__all__ = [
    "Backoff",
    "StreamCursor",
    "OutputFormatter",
    "LogLevel",
    "LogMessageParser",
    "ParsedLogEntry",
    "EngineState",
    "PollEngine",
]
