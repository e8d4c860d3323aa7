"""In-memory attempt limiter for login and password-reset requests."""

from __future__ import annotations

import time
from collections import defaultdict, deque
from threading import Lock
from typing import Deque


class AttemptLimiter:
    """Per-key sliding window of recent attempts, safe across worker threads."""

    def __init__(self, max_attempts: int, window_seconds: int) -> None:
        self._max_attempts = max_attempts
        self._window = window_seconds
        self._attempts: defaultdict[str, Deque[float]] = defaultdict(deque)
        self._lock = Lock()

    def allow(self, key: str) -> bool:
        """Record an attempt for ``key``; ``False`` once the window is full."""
        now = time.monotonic()
        cutoff = now - self._window
        with self._lock:
            recent = self._attempts[key]
            while recent and recent[0] <= cutoff:
                recent.popleft()
            if len(recent) >= self._max_attempts:
                return False
            recent.append(now)
            return True

    def reset(self, key: str) -> None:
        """Forget the attempts recorded for ``key``, e.g. after a successful login."""
        with self._lock:
            self._attempts.pop(key, None)
