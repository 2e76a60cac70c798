from __future__ import annotations

import threading
from collections import deque


class RollingHistory:
    """Bounded, chronological buffer of readings.

    Owned by the caller and passed into processors. Appends are serialized so
    concurrent evaluation cycles cannot interleave eviction and insertion.
    """

    def __init__(self, cap: int):
        if cap < 1:
            raise ValueError(f"history cap must be >= 1, got {cap}")
        self._cap = cap
        self._values: deque[float] = deque(maxlen=cap)
        self._lock = threading.Lock()

    @property
    def cap(self) -> int:
        return self._cap

    def append(self, value: float) -> None:
        with self._lock:
            self._values.append(value)

    def push(self, value: float) -> list[float]:
        """Append and return the resulting contents as one atomic step."""
        with self._lock:
            self._values.append(value)
            return list(self._values)

    def values(self) -> list[float]:
        """Snapshot copy, oldest first."""
        with self._lock:
            return list(self._values)

    def last(self) -> float | None:
        with self._lock:
            return self._values[-1] if self._values else None

    def clear(self) -> None:
        with self._lock:
            self._values.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)

    def __repr__(self) -> str:
        return f"RollingHistory(cap={self._cap}, len={len(self)})"
