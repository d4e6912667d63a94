"""Sliding window of recent palm positions.

Backs the linear (wave / swipe) gesture detectors. Thread-safe and
memory-efficient.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from threading import Lock


@dataclass(frozen=True, slots=True)
class PositionSample:
    """Normalized palm position at a point in time."""
    x: float
    y: float
    timestamp_ms: float


class PositionHistory:
    """Fixed-capacity FIFO of position samples.

    Oldest samples are evicted on overflow. Samples must arrive in
    non-decreasing timestamp order.

    Usage:
        >>> history = PositionHistory(max_len=12)
        >>> history.push(0.4, 0.5, 1000.0)
        >>> if history.is_full:
        ...     oldest, newest = history.endpoints()
    """

    def __init__(self, max_len: int = 12) -> None:
        if max_len < 2:
            raise ValueError(f"max_len must be >= 2, got {max_len}")
        self._max_len = max_len
        self._buffer: deque[PositionSample] = deque(maxlen=max_len)
        self._lock = Lock()

    @property
    def max_len(self) -> int:
        return self._max_len

    @property
    def length(self) -> int:
        with self._lock:
            return len(self._buffer)

    @property
    def is_full(self) -> bool:
        """True when the window holds max_len samples."""
        with self._lock:
            return len(self._buffer) == self._max_len

    def push(self, x: float, y: float, timestamp_ms: float) -> None:
        """Append a sample, evicting the oldest one when full.

        Raises:
            ValueError: If the sample is older than the newest stored sample.
        """
        with self._lock:
            if self._buffer and timestamp_ms < self._buffer[-1].timestamp_ms:
                raise ValueError(
                    f"Out-of-order sample: {timestamp_ms} < {self._buffer[-1].timestamp_ms}"
                )
            self._buffer.append(PositionSample(float(x), float(y), float(timestamp_ms)))

    def endpoints(self) -> tuple[PositionSample, PositionSample]:
        """Return the (oldest, newest) samples.

        Raises:
            LookupError: If the history is empty.
        """
        with self._lock:
            if not self._buffer:
                raise LookupError("Position history is empty")
            return self._buffer[0], self._buffer[-1]

    def samples(self) -> list[PositionSample]:
        with self._lock:
            return list(self._buffer)

    def clear(self) -> None:
        """Clear the history."""
        with self._lock:
            self._buffer.clear()
