"""In-memory fixed-window rate limiting."""

from __future__ import annotations

import time
from typing import Callable

from intake.errors import RateLimitError


WindowKey = tuple[str, int, int]


class RateLimiter:
    """Count calls per (operation, window) and reject once a window is full.

    Advisory and per-process only; nothing is persisted.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._counts: dict[WindowKey, int] = {}

    def check(self, operation: str, limit: int = 10, window_ms: int = 60_000) -> None:
        """Count one call to ``operation``; raise RateLimitError when the window is full."""
        now = int(self._clock() * 1000)
        self._purge(now)

        key = (operation, window_ms, now // window_ms)
        count = self._counts.get(key, 0)
        if count >= limit:
            raise RateLimitError(f"Terlalu banyak permintaan untuk {operation}. Coba lagi nanti.")
        self._counts[key] = count + 1

    def _purge(self, now: int) -> None:
        expired = [
            key for key in self._counts if (key[2] + 1) * key[1] <= now
        ]
        for key in expired:
            del self._counts[key]

    def clear(self) -> None:
        """Forget every window."""
        self._counts.clear()

    def __len__(self) -> int:
        return len(self._counts)
