"""
Per-stream read cursors.
"""

from typing import Dict, Iterator, Optional


class StreamCursor:
    """
    High-watermark registry keyed by log stream name.

    Each value is the epoch-millisecond timestamp of the newest entry already
    rendered from that stream. Keys are added the first time a stream yields
    an entry and are never removed, so a stream that drops out of the
    most-recently-active window resumes where it left off.
    """

    def __init__(self):
        self._positions: Dict[str, int] = {}

    def get(self, stream_name: str) -> Optional[int]:
        return self._positions.get(stream_name)

    def start_time(self, stream_name: str, window_start: int) -> int:
        """
        First timestamp to request for a stream.

        The stored watermark (or the lookback window start for a new stream)
        plus one, so the last consumed entry is never delivered again.
        """
        position = self._positions.get(stream_name)
        if position is None:
            position = window_start
        return position + 1

    def advance(self, stream_name: str, timestamp: int) -> None:
        """Move a stream's watermark forward; older timestamps are ignored."""
        current = self._positions.get(stream_name)
        if current is None or timestamp > current:
            self._positions[stream_name] = timestamp

    def __contains__(self, stream_name: str) -> bool:
        return stream_name in self._positions

    def __len__(self) -> int:
        return len(self._positions)

    def __iter__(self) -> Iterator[str]:
        return iter(self._positions)
