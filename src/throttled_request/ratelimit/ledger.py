"""Sliding-window completion ledger.

Tracks the completion times of dispatched operations inside a trailing
window. Unlike a limiter that counts invocations, the window here is
measured from when each operation *finished*, so a slow request keeps
holding its slot until it settles and then for one more window.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator


class CompletionLedger:
    """Ordered completion timestamps, oldest first.

    Entries older than the window are dropped lazily by ``prune()``;
    nothing is removed on ``record()``.
    """

    def __init__(self, window_seconds: float):
        """Initialize the ledger.

        Args:
            window_seconds: Length of the trailing window
        """
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.window_seconds = window_seconds
        self._entries: deque[float] = deque()

    def record(self, timestamp: float) -> None:
        """Append a completion time (monotonic seconds)."""
        self._entries.append(timestamp)

    def prune(self, now: float) -> int:
        """Remove entries that have left the window.

        Returns:
            Number of entries removed
        """
        cutoff = now - self.window_seconds
        removed = 0
        while self._entries and self._entries[0] <= cutoff:
            self._entries.popleft()
            removed += 1
        return removed

    @property
    def oldest(self) -> float | None:
        """Oldest completion still held, if any."""
        return self._entries[0] if self._entries else None

    def next_expiry(self, now: float) -> float | None:
        """Seconds until the oldest entry leaves the window."""
        if not self._entries:
            return None
        return max(0.0, self._entries[0] + self.window_seconds - now)

    def count_within(self, now: float) -> int:
        """Count entries inside the window without pruning."""
        cutoff = now - self.window_seconds
        return sum(1 for ts in self._entries if ts > cutoff)

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __iter__(self) -> Iterator[float]:
        return iter(self._entries)
