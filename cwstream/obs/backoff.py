"""
Exponential backoff for the poll loop.
"""

from ..config import BACKOFF_CAP, BACKOFF_FLOOR


class Backoff:
    """Doubling delay between failed cycles, reset on the first success."""

    def __init__(self, floor: float = BACKOFF_FLOOR, cap: float = BACKOFF_CAP):
        self.floor = floor
        self.cap = cap
        self.current = floor

    def next_delay(self) -> float:
        """Return the delay for this failure and double the next one."""
        delay = self.current
        self.current = min(self.current * 2, self.cap)
        return delay

    def reset(self) -> None:
        self.current = self.floor
